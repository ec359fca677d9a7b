import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from pairchat.core.conversation_log import ConversationLog, utc_timestamp
from pairchat.core.matching import MatchingEngine
from pairchat.core.registry import ConnectionRegistry
from pairchat.core.router import MessageRouter


class RelayMode(str, Enum):
    PAIRED = "paired"  # anonymous partner matching and relay
    DIRECT = "direct"  # named recipients with conversation history


@dataclass
class RelayContext:
    """All mutable relay state, shared by every connection's handler.

    Handlers take ``lock`` around every mutation so the registry, pool,
    pairing relation and conversation log change together.
    """

    mode: RelayMode
    registry: ConnectionRegistry
    matching: MatchingEngine
    conversations: ConversationLog
    router: MessageRouter
    lock: threading.RLock = field(default_factory=threading.RLock)

    @classmethod
    def create(cls, mode: RelayMode, clock: Optional[Callable[[], str]] = None) -> "RelayContext":
        registry = ConnectionRegistry()
        matching = MatchingEngine(registry)
        conversations = ConversationLog()
        router = MessageRouter(registry, matching, conversations, clock=clock or utc_timestamp)
        return cls(
            mode=RelayMode(mode),
            registry=registry,
            matching=matching,
            conversations=conversations,
            router=router,
        )
