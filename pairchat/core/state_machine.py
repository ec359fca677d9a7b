from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class Phase(Enum):
    UNREGISTERED = auto()
    AVAILABLE = auto()
    PAIRED = auto()


@dataclass(frozen=True)
class ParticipantState:
    """Matching state of one identifier. ``partner`` is set only when PAIRED."""

    phase: Phase
    partner: Optional[str] = None

    def __post_init__(self):
        if (self.phase is Phase.PAIRED) != (self.partner is not None):
            raise ValueError(f"partner must be set exactly when paired, got {self!r}")

    @property
    def is_paired(self) -> bool:
        return self.phase is Phase.PAIRED

    @property
    def is_available(self) -> bool:
        return self.phase is Phase.AVAILABLE


UNREGISTERED = ParticipantState(Phase.UNREGISTERED)
AVAILABLE = ParticipantState(Phase.AVAILABLE)


def paired_with(partner: str) -> ParticipantState:
    return ParticipantState(Phase.PAIRED, partner)


class AppState(Enum):
    """Terminal client lifecycle."""

    INIT = auto()
    CONNECTING = auto()
    SEARCHING = auto()  # paired mode, waiting in the pool
    PAIRED = auto()
    ONLINE = auto()  # direct mode, registered
    DISCONNECTED = auto()
    SESSION_DESTROYED = auto()


class StateMachine:
    def __init__(self):
        self.current_state = AppState.INIT

    def transition_to(self, new_state: AppState):
        self.current_state = new_state

    @property
    def is_live(self) -> bool:
        return self.current_state in (AppState.SEARCHING, AppState.PAIRED, AppState.ONLINE)
