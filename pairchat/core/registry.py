import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol

from pairchat.network.protocol import encode_event

log = logging.getLogger(__name__)


class Delivery(Enum):
    DELIVERED = "delivered"
    DROPPED = "dropped"


class Handle(Protocol):
    """Transport handle owned by the registry for one live connection."""

    def is_writable(self) -> bool: ...

    def send(self, text: str) -> bool: ...

    def close(self, code: int, reason: str) -> None: ...


class ConnectionRegistry:
    """Identifier -> transport handle map. Sends never raise."""

    def __init__(self):
        self._handles: Dict[str, Handle] = {}

    def register(self, identifier: str, handle: Handle) -> Optional[Handle]:
        """Install ``handle`` for ``identifier``, returning the handle it replaced."""
        previous = self._handles.pop(identifier, None)
        # re-insert so iteration order follows the latest registration
        self._handles[identifier] = handle
        if previous is handle:
            return None
        if previous is not None:
            log.info(f"{identifier} re-registered, previous connection replaced")
        return previous

    def unregister(self, identifier: str, handle: Optional[Handle] = None) -> bool:
        current = self._handles.get(identifier)
        if current is None:
            return False
        if handle is not None and current is not handle:
            return False
        del self._handles[identifier]
        return True

    def handle_for(self, identifier: str) -> Optional[Handle]:
        return self._handles.get(identifier)

    def identifiers(self) -> List[str]:
        return list(self._handles)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def send(self, identifier: str, event: dict) -> Delivery:
        handle = self._handles.get(identifier)
        if handle is None:
            log.debug(f"drop {event.get('type')} for {identifier}: not registered")
            return Delivery.DROPPED
        return self._deliver(identifier, handle, encode_event(event))

    def broadcast(self, event: dict, exclude: Iterable[str] = ()) -> int:
        """Send ``event`` to every registered identifier not in ``exclude``."""
        skip = set(exclude)
        text = encode_event(event)
        delivered = 0
        for identifier, handle in list(self._handles.items()):
            if identifier in skip:
                continue
            if self._deliver(identifier, handle, text) is Delivery.DELIVERED:
                delivered += 1
        return delivered

    def _deliver(self, identifier: str, handle: Handle, text: str) -> Delivery:
        if not handle.is_writable():
            log.debug(f"drop frame for {identifier}: connection not writable")
            return Delivery.DROPPED
        if not handle.send(text):
            log.debug(f"drop frame for {identifier}: send refused")
            return Delivery.DROPPED
        return Delivery.DELIVERED
