"""Store selection from settings."""

import logging

from taskery.config import Settings, settings as default_settings
from taskery.time_tracking.rest_store import RestTimeEntryStore
from taskery.time_tracking.sqlite_store import SQLiteTimeEntryStore
from taskery.time_tracking.store import TimeEntryStore

logger = logging.getLogger(__name__)


def build_store(config: Settings | None = None) -> TimeEntryStore:
    """Create the time entry store selected by the settings.

    Args:
        config: Settings to use (defaults to the global settings)

    Returns:
        A SQLite store for the "local" backend, a REST store for "rest"

    Raises:
        ValueError: If the REST backend is selected but not configured
    """
    config = config or default_settings

    if config.store_backend == "rest":
        if not config.rest_configured():
            raise ValueError(
                "Hosted backend not configured. Set TASKERY_STORE_URL and TASKERY_STORE_API_KEY."
            )
        logger.debug(f"Using REST time entry store at {config.store_url}")
        return RestTimeEntryStore(
            base_url=config.store_url,
            api_key=config.store_api_key,
            access_token=config.access_token,
            timeout=config.request_timeout_seconds,
        )

    path = config.get_database_path()
    logger.debug(f"Using SQLite time entry store at {path}")
    return SQLiteTimeEntryStore(path, user_id=config.local_user_id)
