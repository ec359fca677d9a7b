"""Per-connection event handling.

The transport opens a :class:`Session` for every connection, feeds each
inbound frame to :meth:`RelayService.handle_frame` and calls
:meth:`RelayService.close_session` exactly once when the connection ends.
Nothing here awaits, so each call runs to completion before the next event.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from pairchat.core.context import RelayContext, RelayMode
from pairchat.core.registry import Handle
from pairchat.network import protocol
from pairchat.network.protocol import InboundEvent
from pairchat.utils.error_codes import CLOSE_REPLACED, ProtocolError

log = logging.getLogger(__name__)


@dataclass
class Session:
    handle: Handle
    identifier: Optional[str] = None


class RelayService:
    def __init__(self, ctx: RelayContext):
        self.ctx = ctx
        self._handlers = {
            RelayMode.PAIRED: {
                protocol.REGISTER: self._register_paired,
                protocol.MESSAGE: self._relay,
                protocol.SKIP: self._skip,
            },
            RelayMode.DIRECT: {
                protocol.REGISTER: self._register_direct,
                protocol.GET_USERS: self._get_users,
                protocol.DIRECT_MESSAGE: self._direct_message,
                protocol.GET_CONVERSATION: self._get_conversation,
            },
        }[ctx.mode]

    def open_session(self, handle: Handle) -> Session:
        return Session(handle)

    def owns(self, session: Session) -> bool:
        """True while the session's identifier still maps to its own handle."""
        return (
            session.identifier is not None
            and self.ctx.registry.handle_for(session.identifier) is session.handle
        )

    def handle_frame(self, session: Session, raw) -> None:
        try:
            event = protocol.decode_event(raw)
        except ProtocolError as e:
            log.debug(f"Dropped malformed frame: {e}")
            return

        handler = self._handlers.get(event.type)
        if handler is None:
            log.debug(f"Dropped {event.type}: not served in {self.ctx.mode.value} mode")
            return
        with self.ctx.lock:
            if event.type != protocol.REGISTER and not self.owns(session):
                log.debug(f"Dropped {event.type}: connection not registered")
                return
            handler(session, event)

    def close_session(self, session: Session) -> None:
        with self.ctx.lock:
            self._depart(session)

    # --- lifecycle ---

    def _claim(self, session: Session, username: str) -> bool:
        """Bind ``username`` to the session. True if the identifier was not already online."""
        if session.identifier is not None and session.identifier != username:
            self._depart(session)
        session.identifier = username
        fresh = username not in self.ctx.registry
        previous = self.ctx.registry.register(username, session.handle)
        if previous is not None:
            previous.close(CLOSE_REPLACED, "identifier registered from another connection")
        log.info(f"{username} registered")
        return fresh

    def _depart(self, session: Session) -> None:
        identifier = session.identifier
        if identifier is None:
            return
        session.identifier = None
        # a connection replaced by a newer registration leaves no trace
        if not self.ctx.registry.unregister(identifier, session.handle):
            return
        log.info(f"{identifier} disconnected")
        if self.ctx.mode is RelayMode.PAIRED:
            self.ctx.matching.disconnect(identifier)
        else:
            self.ctx.router.announce_leave(identifier)

    # --- paired mode ---

    def _register_paired(self, session: Session, event: InboundEvent) -> None:
        username = event["username"]
        self._claim(session, username)
        partner = self.ctx.matching.partner_of(username)
        if partner is not None:
            self.ctx.registry.send(username, protocol.paired(partner))
            return
        self.ctx.matching.join_pool(username)

    def _relay(self, session: Session, event: InboundEvent) -> None:
        self.ctx.router.relay(session.identifier, event["text"])

    def _skip(self, session: Session, event: InboundEvent) -> None:
        self.ctx.matching.skip(session.identifier)

    # --- direct mode ---

    def _register_direct(self, session: Session, event: InboundEvent) -> None:
        username = event["username"]
        if self._claim(session, username):
            self.ctx.router.announce_join(username)
        else:
            self.ctx.router.welcome(username)

    def _get_users(self, session: Session, event: InboundEvent) -> None:
        self.ctx.router.roster(session.identifier)

    def _direct_message(self, session: Session, event: InboundEvent) -> None:
        self.ctx.router.direct_message(session.identifier, event["recipient"], event["message"])

    def _get_conversation(self, session: Session, event: InboundEvent) -> None:
        self.ctx.router.send_history(session.identifier, event["with"])
