from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, List, Tuple

ConversationKey = Tuple[str, str]


def conversation_key(a: str, b: str) -> ConversationKey:
    """Order-independent key: (a, b) and (b, a) share one history."""
    return (a, b) if a <= b else (b, a)


def utc_timestamp() -> str:
    """ISO-8601 UTC with milliseconds, e.g. ``2024-05-01T12:00:00.000Z``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LogEntry:
    sender: str
    message: str
    timestamp: str

    def to_wire(self) -> dict:
        return asdict(self)


class ConversationLog:
    """Append-only message history, kept in memory for the life of the process."""

    def __init__(self):
        self._entries: Dict[ConversationKey, List[LogEntry]] = defaultdict(list)

    def append(self, sender: str, recipient: str, message: str, timestamp: str) -> LogEntry:
        entry = LogEntry(sender, message, timestamp)
        self._entries[conversation_key(sender, recipient)].append(entry)
        return entry

    def history(self, a: str, b: str) -> List[LogEntry]:
        key = conversation_key(a, b)
        if key not in self._entries:
            return []
        return list(self._entries[key])

    def __len__(self) -> int:
        return len(self._entries)
