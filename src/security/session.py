"""
App lock: PIN and session timeouts

The PIN is stored only as its SHA-256 hex digest. Secure pages (such as
Credentials) stay unlocked while the user is on them and for a short
grace period after leaving; the whole app locks after being in the
background for longer than the suspend timeout.

Every method that depends on time takes an optional `now` (seconds, as
from time.monotonic) so tests can drive the clock.
"""

import hashlib
import hmac
import re
import time
from typing import Optional

import structlog

from src.config import get_settings
from src.managers.errors import InvalidInputError
from src.models.ledger import Ledger
from src.services.storage import LedgerStorageInterface

logger = structlog.get_logger("security.session")

PIN_PATTERN = re.compile(r"^\d{4,6}$")


def hash_pin(pin: str) -> str:
    return hashlib.sha256(pin.encode("utf-8")).hexdigest()


class PinManager:
    """PIN setup and verification against the Ledger's security block."""

    def __init__(self, ledger: Ledger, storage: LedgerStorageInterface):
        self._ledger = ledger
        self._storage = storage

    @property
    def is_setup(self) -> bool:
        security = self._ledger.security
        return security.is_setup and bool(security.pin_hash)

    def setup_pin(self, pin: str) -> None:
        if not pin or not PIN_PATTERN.match(pin):
            raise InvalidInputError("PIN must be 4 to 6 digits", {"pin": "Must be 4 to 6 digits"})
        self._ledger.security.pin_hash = hash_pin(pin)
        self._ledger.security.is_setup = True
        self._storage.save(self._ledger)
        logger.info("pin_set")

    def verify_pin(self, pin: str) -> bool:
        stored = self._ledger.security.pin_hash
        if not stored or not pin:
            return False
        return hmac.compare_digest(hash_pin(pin), stored)

    def change_pin(self, current: str, new: str) -> None:
        if not self.verify_pin(current):
            raise InvalidInputError("Current PIN is incorrect", {"current": "Incorrect PIN"})
        self.setup_pin(new)

    def disable(self) -> None:
        self._ledger.security.pin_hash = None
        self._ledger.security.is_setup = False
        self._ledger.security.biometric_enabled = False
        self._storage.save(self._ledger)
        logger.info("pin_removed")


class SessionLock:
    """Tracks when the user last authenticated and left a secure page."""

    def __init__(
        self,
        session_timeout: Optional[float] = None,
        suspend_timeout: Optional[float] = None,
    ):
        settings = get_settings().security
        self.session_timeout = session_timeout if session_timeout is not None else settings.session_timeout_seconds
        self.suspend_timeout = suspend_timeout if suspend_timeout is not None else settings.suspend_timeout_seconds
        self.unlocked = False
        self._authenticated_at: Optional[float] = None
        self._current_page: Optional[str] = None
        self._left_page_at: Optional[float] = None
        self._suspended_at: Optional[float] = None

    @staticmethod
    def _now(now: Optional[float]) -> float:
        return time.monotonic() if now is None else now

    def authenticated(self, now: Optional[float] = None) -> None:
        self._authenticated_at = self._now(now)
        self.unlocked = True

    def clear(self) -> None:
        self._authenticated_at = None
        self._current_page = None
        self._left_page_at = None

    def lock(self) -> None:
        self.clear()
        self.unlocked = False

    def is_session_valid(self, page: str, now: Optional[float] = None) -> bool:
        if self._authenticated_at is None:
            return False
        if self._current_page == page:
            return True
        since = self._left_page_at if self._left_page_at is not None else self._authenticated_at
        return self._now(now) - since < self.session_timeout

    def enter_page(self, page: str, now: Optional[float] = None) -> None:
        if self._authenticated_at is not None and not self.is_session_valid(page, now):
            self.clear()
        self._current_page = page
        self._left_page_at = None

    def leave_page(self, now: Optional[float] = None) -> None:
        if self._current_page is not None:
            self._left_page_at = self._now(now)
            self._current_page = None

    def suspended(self, now: Optional[float] = None) -> None:
        self._suspended_at = self._now(now)

    def resumed(self, now: Optional[float] = None) -> bool:
        """True when the app was away long enough to need unlocking again."""
        if self._suspended_at is None:
            return False
        elapsed = self._now(now) - self._suspended_at
        self._suspended_at = None
        if elapsed >= self.suspend_timeout:
            self.lock()
            return True
        return False
