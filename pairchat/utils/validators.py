import re

MAX_USERNAME_LENGTH = 32
MAX_MESSAGE_LENGTH = 1000


def validate_username(username: str) -> bool:
    """
    Validates a username typed into the terminal client:
    Length: 1-32
    Characters: letters, digits, '_', '.', '-'
    The relay itself accepts any non-empty string.
    """
    if not username:
        return False
    if len(username) > MAX_USERNAME_LENGTH:
        return False
    pattern = r"^[A-Za-z0-9_.\-]+$"
    return bool(re.match(pattern, username))


def validate_message_length(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> bool:
    """Strict length check applied before a message leaves the client."""
    if not message:
        return False
    return len(message) <= max_length
