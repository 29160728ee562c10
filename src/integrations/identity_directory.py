"""Phone number to caller display name directory."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTACTS: Mapping[str, str] = {
    "+593992520223": "David",
    "+593992722256": "Emilio Rosado",
    "+593995772424": "Kevin Rojas",
}


class IdentityDirectory:
    """In-memory directory shared by webhook handlers.

    Note: This is a single-process store. Lookups happen during call setup
    only; writes come from outbound call placement.
    """

    def __init__(self, contacts: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._names: dict[str, str] = dict(contacts or {})

    def lookup(self, phone: str | None) -> str | None:
        if not phone:
            return None
        with self._lock:
            return self._names.get(phone.strip())

    def register(self, phone: str, name: str) -> None:
        phone = phone.strip()
        with self._lock:
            previous = self._names.get(phone)
            self._names[phone] = name
        if previous is not None and previous != name:
            LOGGER.info("Replaced directory entry for %s: %s -> %s", phone, previous, name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._names)
