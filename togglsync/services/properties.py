import logging
from typing import Optional

from sqlalchemy.orm import Session

from togglsync.config import Settings
from togglsync.models.property import Property
from togglsync.utils.encrypt import decrypt_data, encrypt_data, get_fernet

log = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
KEY_LAST_TIME_ENTRY_ID = "lastTimeEntryId"
KEY_RECORDING_YEAR = "recordingYear"
KEY_API_TOKEN = "apiToken"


def user_scope(email: str) -> str:
    return f"user:{email}"


def state_scope(settings: Settings) -> str:
    """Scope holding the watermark and recording year, per the configured watermark_scope."""
    if settings.watermark_scope == "global":
        return GLOBAL_SCOPE
    return user_scope(settings.user_email)


class PropertyStore:
    """String key/value properties within one scope."""

    def __init__(self, db: Session, scope: str):
        self.db = db
        self.scope = scope

    def _find(self, key: str) -> Optional[Property]:
        return self.db.query(Property).filter(Property.scope == self.scope, Property.key == key).first()

    def get(self, key: str) -> Optional[str]:
        prop = self._find(key)
        return prop.value if prop else None

    def set(self, key: str, value: str) -> None:
        prop = self._find(key)
        if prop is None:
            prop = Property(scope=self.scope, key=key, value=value)
            self.db.add(prop)
        else:
            prop.value = value
        self.db.commit()

    def delete(self, key: str) -> bool:
        prop = self._find(key)
        if prop is None:
            return False
        self.db.delete(prop)
        self.db.commit()
        return True


class WatermarkStore:
    """
    The highest persisted time entry ID. Writes never lower it: advance() stores
    max(current, candidate).
    """

    def __init__(self, properties: PropertyStore):
        self.properties = properties

    def get(self) -> int:
        raw = self.properties.get(KEY_LAST_TIME_ENTRY_ID)
        return int(raw) if raw else 0

    def advance(self, candidate: int) -> int:
        current = self.get()
        new_value = max(current, int(candidate))
        if new_value != current:
            self.properties.set(KEY_LAST_TIME_ENTRY_ID, str(new_value))
            log.debug(f"Watermark advanced {current} -> {new_value}")
        return new_value

    def get_recording_year(self, default: int) -> int:
        raw = self.properties.get(KEY_RECORDING_YEAR)
        return int(raw) if raw else default

    def set_recording_year(self, year: int) -> None:
        self.properties.set(KEY_RECORDING_YEAR, str(year))


class TokenStore:
    """The user's Toggl API token, Fernet-encrypted at rest."""

    def __init__(self, db: Session, settings: Settings):
        self.properties = PropertyStore(db, user_scope(settings.user_email))
        self.fernet = get_fernet(settings.encryption_key, settings.secret_key)

    def get(self) -> Optional[str]:
        encrypted = self.properties.get(KEY_API_TOKEN)
        if not encrypted:
            return None
        return decrypt_data(encrypted, self.fernet)

    def save(self, token: str) -> None:
        if not token or not token.strip():
            raise ValueError("API token must not be empty")
        self.properties.set(KEY_API_TOKEN, encrypt_data(token.strip(), self.fernet))
        log.info("Saved Toggl API token")

    def delete(self) -> bool:
        deleted = self.properties.delete(KEY_API_TOKEN)
        if deleted:
            log.info("Deleted Toggl API token")
        return deleted

    @staticmethod
    def mask(token: str) -> str:
        if len(token) <= 4:
            return "*" * len(token)
        return "*" * (len(token) - 4) + token[-4:]
