"""JSON wire protocol spoken between the relay and its clients.

Every frame is a UTF-8 JSON object with a ``type`` field. Inbound frames are
decoded into :class:`InboundEvent`; anything that does not match the table
below raises :class:`ProtocolError` and is dropped by the caller.

Outbound events are plain dicts built by the helpers at the bottom of this
module so the field names live in one place.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from pairchat.utils.error_codes import ProtocolError

REGISTER = "register"
MESSAGE = "message"
SKIP = "skip"
DIRECT_MESSAGE = "direct_message"
GET_USERS = "get_users"
GET_CONVERSATION = "get_conversation"

# inbound type -> required string fields
INBOUND_FIELDS = {
    REGISTER: ("username",),
    MESSAGE: ("text",),
    SKIP: (),
    DIRECT_MESSAGE: ("recipient", "message"),
    GET_USERS: (),
    GET_CONVERSATION: ("with",),
}


@dataclass(frozen=True)
class InboundEvent:
    type: str
    fields: Dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        return self.fields[name]


def decode_event(raw: Union[str, bytes]) -> InboundEvent:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"invalid utf-8: {e}")
    try:
        obj = json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as e:
        raise ProtocolError(f"invalid json: {e}")

    if not isinstance(obj, dict):
        raise ProtocolError("frame is not an object")
    msg_type = obj.get("type")
    if not isinstance(msg_type, str) or msg_type not in INBOUND_FIELDS:
        raise ProtocolError(f"unknown type: {msg_type!r}")

    fields = {}
    for name in INBOUND_FIELDS[msg_type]:
        value = obj.get(name)
        if not isinstance(value, str):
            raise ProtocolError(f"{msg_type}: field {name!r} missing or not a string")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogates from \u escapes cannot be re-sent as UTF-8
            raise ProtocolError(f"{msg_type}: field {name!r} is not valid unicode")
        fields[name] = value

    if msg_type == REGISTER:
        fields["username"] = fields["username"].strip()
        if not fields["username"]:
            raise ProtocolError("register: empty username")

    return InboundEvent(msg_type, fields)


def encode_event(event: Dict[str, Any]) -> str:
    return json.dumps(event, ensure_ascii=False, separators=(",", ":"))


# --- outbound events ---

def paired(partner: str) -> dict:
    return {"type": "paired", "partner": partner}


def skipped() -> dict:
    return {"type": "skipped"}


def partner_left() -> dict:
    return {"type": "partner_left"}


def relayed_message(sender: str, text: str) -> dict:
    return {"type": "message", "from": sender, "text": text}


def registered(username: str, online_users: Iterable[str], total_users: int) -> dict:
    return {
        "type": "registered",
        "username": username,
        "onlineUsers": list(online_users),
        "totalUsers": total_users,
    }


def user_joined(username: str, total_users: int) -> dict:
    return {"type": "user_joined", "username": username, "totalUsers": total_users}


def user_left(username: str, total_users: int) -> dict:
    return {"type": "user_left", "username": username, "totalUsers": total_users}


def user_list(users: Iterable[str], total_users: int) -> dict:
    return {"type": "user_list", "users": list(users), "totalUsers": total_users}


def direct_message(sender: str, message: str, timestamp: str) -> dict:
    return {"type": "direct_message", "from": sender, "message": message, "timestamp": timestamp}


def message_sent(recipient: str, message: str, timestamp: str) -> dict:
    return {"type": "message_sent", "to": recipient, "message": message, "timestamp": timestamp}


def conversation_history(counterpart: str, history: List[dict]) -> dict:
    return {"type": "conversation_history", "with": counterpart, "history": history}


def error(message: str) -> dict:
    return {"type": "error", "message": message}
