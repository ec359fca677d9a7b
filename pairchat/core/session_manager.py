from pairchat.config import DEFAULT_URI
from pairchat.core.context import RelayMode
from pairchat.core.state_machine import AppState, StateMachine
from pairchat.network import protocol
from pairchat.network.transport import TransportLayer
from pairchat.security.rate_limiter import RateLimiter
from pairchat.utils.error_codes import ChatClientError, ErrorCodes
from pairchat.utils.validators import MAX_MESSAGE_LENGTH, validate_message_length

QUIT = "/quit"


class SessionManager:
    def __init__(self, ui_callback=None, uri=DEFAULT_URI, mode=RelayMode.PAIRED, transport=None):
        self.state_machine = StateMachine()
        self.transport = transport or TransportLayer(uri)
        self.mode = RelayMode(mode)
        self.ui_callback = ui_callback
        self.rate_limiter = RateLimiter(max_calls=5, period=1.0)  # 5 msgs/sec
        self.username = None
        self.partner = None

        self.transport.on_event_callback = self.on_network_event
        self.transport.on_closed_callback = self.on_connection_lost

        self._event_handlers = {
            "paired": self._on_paired,
            "skipped": self._on_partner_gone,
            "partner_left": self._on_partner_gone,
            "message": lambda d: self._emit("MESSAGE", (d.get("from"), d.get("text"))),
            "registered": self._on_registered,
            "user_joined": lambda d: self._emit("USER_JOINED", (d.get("username"), d.get("totalUsers"))),
            "user_left": lambda d: self._emit("USER_LEFT", (d.get("username"), d.get("totalUsers"))),
            "user_list": lambda d: self._emit("USER_LIST", d.get("users", [])),
            "direct_message": lambda d: self._emit("DIRECT_MESSAGE", (d.get("from"), d.get("message"))),
            "message_sent": lambda d: self._emit("MESSAGE_SENT", (d.get("to"), d.get("message"))),
            "conversation_history": lambda d: self._emit("HISTORY", (d.get("with"), d.get("history", []))),
            "error": lambda d: self._emit("ERROR", d.get("message")),
        }

    @property
    def state(self) -> AppState:
        return self.state_machine.current_state

    def _emit(self, event_type, data=None):
        if self.ui_callback:
            self.ui_callback(event_type, data)

    def _transition(self, new_state: AppState, data=None):
        self.state_machine.transition_to(new_state)
        self._emit(new_state.name, data)

    async def start_session(self, username: str):
        self.username = username
        self._transition(AppState.CONNECTING)

        success = await self.transport.connect(username)
        if not success:
            self.state_machine.transition_to(AppState.DISCONNECTED)
            raise ChatClientError(ErrorCodes.ERR_NETWORK, "Could not connect to relay")

        if self.mode is RelayMode.PAIRED:
            self._transition(AppState.SEARCHING)

    # --- inbound ---

    async def on_network_event(self, data: dict):
        handler = self._event_handlers.get(data.get("type"))
        if handler:
            handler(data)

    def _on_paired(self, data: dict):
        self.partner = data.get("partner")
        self._transition(AppState.PAIRED, self.partner)

    def _on_partner_gone(self, data: dict):
        self.partner = None
        self._emit(data["type"].upper())
        self._transition(AppState.SEARCHING)

    def _on_registered(self, data: dict):
        self._transition(AppState.ONLINE, (data.get("onlineUsers", []), data.get("totalUsers")))

    def on_connection_lost(self):
        if self.state is AppState.SESSION_DESTROYED:
            return
        self._transition(AppState.DISCONNECTED)

    # --- outbound ---

    def _can_send(self, text: str) -> bool:
        if not validate_message_length(text):
            self._emit("ERROR", f"Messages must be 1-{MAX_MESSAGE_LENGTH} characters.")
            return False
        if not self.rate_limiter.check():
            self._emit("ERROR", "Rate limit exceeded. Slow down.")
            return False
        return True

    async def send_message(self, text: str):
        if self.state is not AppState.PAIRED:
            self._emit("ERROR", "No partner yet.")
            return
        if self._can_send(text):
            await self.transport.send_event({"type": protocol.MESSAGE, "text": text})

    async def skip(self):
        if self.state is not AppState.PAIRED:
            return
        await self.transport.send_event({"type": protocol.SKIP})
        self.partner = None
        self._transition(AppState.SEARCHING)

    async def send_direct(self, recipient: str, text: str):
        if self._can_send(text):
            await self.transport.send_event(
                {"type": protocol.DIRECT_MESSAGE, "recipient": recipient, "message": text}
            )

    async def request_users(self):
        await self.transport.send_event({"type": protocol.GET_USERS})

    async def request_history(self, counterpart: str):
        await self.transport.send_event({"type": protocol.GET_CONVERSATION, "with": counterpart})

    async def handle_input(self, line: str) -> bool:
        """Run one line typed by the user. Returns False once the session should end."""
        text = line.strip()
        if not text:
            return True
        if text.lower() == QUIT:
            await self.destroy_session()
            return False

        command, _, rest = text.partition(" ")
        if self.mode is RelayMode.PAIRED:
            if command == "/skip":
                await self.skip()
            else:
                await self.send_message(text)
            return True

        if command == "/users":
            await self.request_users()
        elif command == "/history" and rest.strip():
            await self.request_history(rest.strip())
        elif command == "/msg":
            recipient, _, message = rest.strip().partition(" ")
            if recipient and message.strip():
                await self.send_direct(recipient, message.strip())
            else:
                self._emit("ERROR", "Usage: /msg <user> <text>")
        else:
            self._emit("ERROR", "Commands: /msg <user> <text>, /users, /history <user>, /quit")
        return True

    async def destroy_session(self):
        self.state_machine.transition_to(AppState.SESSION_DESTROYED)
        await self.transport.disconnect()
        self.partner = None
        self.rate_limiter.reset()
        self._emit("DESTROYED")
