import logging
from typing import Callable, List

from pairchat.core.conversation_log import ConversationLog, LogEntry, utc_timestamp
from pairchat.core.matching import MatchingEngine
from pairchat.core.registry import ConnectionRegistry, Delivery
from pairchat.network import protocol
from pairchat.utils.error_codes import RECIPIENT_OFFLINE_MESSAGE

log = logging.getLogger(__name__)


class MessageRouter:
    """Works out where an event goes and builds what gets sent there.

    Paired deployments use :meth:`relay`; direct deployments use the
    addressing, history and roster methods.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        matching: MatchingEngine,
        conversations: ConversationLog,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self.registry = registry
        self.matching = matching
        self.conversations = conversations
        self.clock = clock

    # --- paired relay ---

    def relay(self, sender: str, text: str) -> Delivery:
        partner = self.matching.partner_of(sender)
        if partner is None:
            log.debug(f"drop message from {sender}: not paired")
            return Delivery.DROPPED
        return self.registry.send(partner, protocol.relayed_message(sender, text))

    # --- direct addressing ---

    def direct_message(self, sender: str, recipient: str, text: str) -> Delivery:
        if recipient not in self.registry:
            self.registry.send(sender, protocol.error(RECIPIENT_OFFLINE_MESSAGE))
            return Delivery.DROPPED

        entry = self.conversations.append(sender, recipient, text, self.clock())
        delivery = self.registry.send(
            recipient, protocol.direct_message(sender, text, entry.timestamp)
        )
        self.registry.send(sender, protocol.message_sent(recipient, text, entry.timestamp))
        log.info(f"{sender} -> {recipient}: direct message ({delivery.value})")
        return delivery

    def history(self, requester: str, counterpart: str) -> List[LogEntry]:
        return self.conversations.history(requester, counterpart)

    def send_history(self, requester: str, counterpart: str) -> Delivery:
        history = [entry.to_wire() for entry in self.history(requester, counterpart)]
        return self.registry.send(requester, protocol.conversation_history(counterpart, history))

    # --- presence ---

    def others(self, identifier: str) -> List[str]:
        return [other for other in self.registry.identifiers() if other != identifier]

    def roster(self, requester: str) -> Delivery:
        return self.registry.send(
            requester, protocol.user_list(self.others(requester), len(self.registry))
        )

    def welcome(self, identifier: str) -> Delivery:
        return self.registry.send(
            identifier, protocol.registered(identifier, self.others(identifier), len(self.registry))
        )

    def announce_join(self, identifier: str) -> None:
        self.welcome(identifier)
        self.registry.broadcast(
            protocol.user_joined(identifier, len(self.registry)), exclude=(identifier,)
        )

    def announce_leave(self, identifier: str) -> None:
        self.registry.broadcast(protocol.user_left(identifier, len(self.registry)))
