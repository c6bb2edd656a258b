"""
Short-lived memory of recent booking submissions

Double clicks and voice agents that fire the same booking twice would
otherwise create two rows and two rounds of email. Entries live for the
dedup window only and are lost on restart.
"""
import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from .intake import BookingForm

logger = logging.getLogger(__name__)

DedupKey = Tuple[str, str, str, str]


class BookingDedupCache:
    """(email, date, time, zone) -> expiry timestamp"""

    def __init__(self, ttl_seconds: float = 120, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: Dict[DedupKey, float] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key_for(form: BookingForm) -> DedupKey:
        return (form.email.lower(), form.date, form.time, form.time_zone)

    def check_and_remember(self, key: DedupKey) -> bool:
        """
        True if the key was seen inside the window (a repeat submission).
        Otherwise the key is stored with a fresh expiry and False is returned.
        """
        now = self.clock()
        expires_at = self._entries.get(key)
        if expires_at is not None and expires_at > now:
            return True

        self._entries[key] = now + self.ttl_seconds
        return False

    def forget(self, key: DedupKey):
        """Drop a key so the next submission with it is processed again"""
        self._entries.pop(key, None)

    def sweep(self) -> int:
        """Drop expired entries, return how many were removed"""
        now = self.clock()
        expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self):
        self._entries.clear()

    async def run_sweeper(self, interval_seconds: float):
        """Sweep forever; the app lifespan owns and cancels this task"""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("dedup sweep removed %s entries, %s left", removed, len(self))
