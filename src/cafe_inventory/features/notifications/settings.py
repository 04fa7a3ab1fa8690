import logging

import pydantic

from ...common.snapshot import SnapshotStore
from .schemas import EmailSettings

logger = logging.getLogger(__name__)

EMAIL_SETTINGS_KEY = "email-config"


class EmailSettingsRepository:
    """Email notification credentials kept in the local snapshot store."""

    def __init__(self, store: SnapshotStore):
        self._store = store

    def load(self) -> EmailSettings:
        raw = self._store.get(EMAIL_SETTINGS_KEY)
        if raw is None:
            return EmailSettings()
        try:
            return EmailSettings.model_validate_json(raw)
        except pydantic.ValidationError:
            logger.warning("Ignoring unreadable email settings", exc_info=True)
            return EmailSettings()

    def save(self, settings: EmailSettings) -> None:
        self._store.set(EMAIL_SETTINGS_KEY, settings.model_dump_json().encode("utf-8"))
