class ErrorCodes:
    SUCCESS = 0
    ERR_NETWORK = 101
    ERR_PROTOCOL = 102
    ERR_RECIPIENT_OFFLINE = 201
    ERR_SESSION_REPLACED = 302
    ERR_PEER_DISCONNECT = 303
    ERR_CONFIG = 401
    ERR_INTERNAL = 500

# WebSocket close code sent to a connection whose identifier was taken over
CLOSE_REPLACED = 4001

RECIPIENT_OFFLINE_MESSAGE = "recipient not online"


class RelayError(Exception):
    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class ProtocolError(RelayError):
    """Inbound frame could not be decoded into a known event."""

    def __init__(self, message):
        super().__init__(ErrorCodes.ERR_PROTOCOL, message)


class ChatClientError(RelayError):
    pass
