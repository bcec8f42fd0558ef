"""One-time PIN stores for signing codes.

InMemoryPinStore is process-local (single instance, lost on restart);
DatabasePinStore keeps codes in the pin_code table so every instance sees them.
Codes are never stored in clear text.
"""

import hashlib
import hmac
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict

from sqlalchemy.orm import Session

from hohema_loans.config import settings
from hohema_loans.domain.exceptions import PinVerificationError
from hohema_loans.infrastructure.database.models import PinCode
from hohema_loans.utils.date_utils import ensure_utc, utcnow


def generate_pin(length: int) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_pin(pin: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{pin}".encode("utf-8")).hexdigest()


def pin_matches(pin: str, pin_hash: str, salt: str) -> bool:
    return hmac.compare_digest(hash_pin(pin, salt), pin_hash)


class PinStore:
    """Issue and verify short-lived numeric PINs keyed by purpose/subject"""

    def __init__(
        self,
        ttl_minutes: int | None = None,
        max_attempts: int | None = None,
        pin_length: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.ttl = timedelta(minutes=settings.pin_ttl_minutes if ttl_minutes is None else ttl_minutes)
        self.max_attempts = settings.pin_max_attempts if max_attempts is None else max_attempts
        self.pin_length = settings.pin_length if pin_length is None else pin_length
        self.clock = clock

    def issue(self, key: str) -> str:
        """Create (or replace) the PIN for key and return it in clear text"""
        raise NotImplementedError

    def verify(self, key: str, pin: str) -> None:
        """
        Consume the PIN for key.

        Raises:
            PinVerificationError: No PIN, expired, wrong code or too many attempts
        """
        raise NotImplementedError


@dataclass
class _PinEntry:
    pin_hash: str
    salt: str
    expires_at: datetime
    attempts: int = 0


class InMemoryPinStore(PinStore):
    """Lock-guarded dict with expiry; for single-instance deployments and tests"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._entries: Dict[str, _PinEntry] = {}
        self._lock = threading.Lock()

    def issue(self, key: str) -> str:
        pin = generate_pin(self.pin_length)
        salt = secrets.token_hex(16)
        with self._lock:
            self._purge_expired()
            self._entries[key] = _PinEntry(
                pin_hash=hash_pin(pin, salt),
                salt=salt,
                expires_at=self.clock() + self.ttl,
            )
        return pin

    def verify(self, key: str, pin: str) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                raise PinVerificationError("No signing PIN found. Please request a new one.")

            if entry.expires_at <= self.clock():
                del self._entries[key]
                raise PinVerificationError("PIN has expired. Please request a new one.")

            if entry.attempts >= self.max_attempts:
                raise PinVerificationError("Too many incorrect attempts. Please request a new PIN.")

            if not pin_matches(pin, entry.pin_hash, entry.salt):
                entry.attempts += 1
                remaining = self.max_attempts - entry.attempts
                raise PinVerificationError(f"Incorrect PIN. {remaining} attempt(s) remaining.")

            del self._entries[key]

    def _purge_expired(self) -> None:
        now = self.clock()
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[key]


class DatabasePinStore(PinStore):
    """PINs in the shared database; safe for multi-instance deployments"""

    def __init__(self, db: Session, **kwargs):
        super().__init__(**kwargs)
        self.db = db

    def issue(self, key: str) -> str:
        pin = generate_pin(self.pin_length)
        salt = secrets.token_hex(16)

        record = self.db.query(PinCode).filter(PinCode.key == key).first()
        if record is None:
            record = PinCode(key=key)
            self.db.add(record)

        record.pin_hash = hash_pin(pin, salt)
        record.salt = salt
        record.expires_at = self.clock() + self.ttl
        record.attempts = 0
        self.db.flush()
        return pin

    def verify(self, key: str, pin: str) -> None:
        record = self.db.query(PinCode).filter(PinCode.key == key).first()
        if record is None:
            raise PinVerificationError("No signing PIN found. Please request a new one.")

        if ensure_utc(record.expires_at) <= self.clock():
            self.db.delete(record)
            self.db.flush()
            raise PinVerificationError("PIN has expired. Please request a new one.")

        if record.attempts >= self.max_attempts:
            raise PinVerificationError("Too many incorrect attempts. Please request a new PIN.")

        if not pin_matches(pin, record.pin_hash, record.salt):
            record.attempts += 1
            self.db.flush()
            remaining = self.max_attempts - record.attempts
            raise PinVerificationError(f"Incorrect PIN. {remaining} attempt(s) remaining.")

        self.db.delete(record)
        self.db.flush()
