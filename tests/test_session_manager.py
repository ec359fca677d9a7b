import pytest

from pairchat.core.context import RelayMode
from pairchat.core.session_manager import SessionManager
from pairchat.core.state_machine import AppState
from pairchat.utils.error_codes import ChatClientError, ErrorCodes


class FakeTransport:
    def __init__(self, connects=True):
        self.connects = connects
        self.sent = []
        self.registered_as = None
        self.disconnected = False
        self.on_event_callback = None
        self.on_closed_callback = None

    async def connect(self, username):
        self.registered_as = username
        return self.connects

    async def send_event(self, event):
        self.sent.append(event)

    async def disconnect(self):
        self.disconnected = True


@pytest.fixture
def ui_events():
    return []


@pytest.fixture
def make_manager(ui_events):
    def _make(mode=RelayMode.PAIRED, connects=True):
        transport = FakeTransport(connects)
        manager = SessionManager(lambda kind, data=None: ui_events.append((kind, data)), mode=mode, transport=transport)
        return manager, transport
    return _make


@pytest.mark.asyncio
async def test_paired_session_flow(make_manager, ui_events):
    manager, transport = make_manager()

    await manager.start_session("alice")
    assert transport.registered_as == "alice"
    assert manager.state is AppState.SEARCHING

    await manager.on_network_event({"type": "paired", "partner": "bob"})
    assert manager.state is AppState.PAIRED
    assert manager.partner == "bob"

    assert await manager.handle_input("hello there") is True
    assert transport.sent == [{"type": "message", "text": "hello there"}]

    await manager.on_network_event({"type": "message", "from": "bob", "text": "hey"})
    assert ("MESSAGE", ("bob", "hey")) in ui_events


@pytest.mark.asyncio
async def test_skip_returns_to_searching(make_manager):
    manager, transport = make_manager()
    await manager.start_session("alice")
    await manager.on_network_event({"type": "paired", "partner": "bob"})

    await manager.handle_input("/skip")

    assert transport.sent == [{"type": "skip"}]
    assert manager.state is AppState.SEARCHING
    assert manager.partner is None


@pytest.mark.asyncio
async def test_partner_leaving_is_reported(make_manager, ui_events):
    manager, _ = make_manager()
    await manager.start_session("alice")
    await manager.on_network_event({"type": "paired", "partner": "bob"})

    await manager.on_network_event({"type": "partner_left"})

    assert ("PARTNER_LEFT", None) in ui_events
    assert manager.state is AppState.SEARCHING


@pytest.mark.asyncio
async def test_message_without_partner_is_not_sent(make_manager, ui_events):
    manager, transport = make_manager()
    await manager.start_session("alice")

    await manager.handle_input("hello?")

    assert transport.sent == []
    assert ui_events[-1][0] == "ERROR"


@pytest.mark.asyncio
async def test_rate_limit_blocks_flood(make_manager):
    manager, transport = make_manager()
    await manager.start_session("alice")
    await manager.on_network_event({"type": "paired", "partner": "bob"})

    for i in range(8):
        await manager.handle_input(f"msg {i}")

    assert len(transport.sent) == 5


@pytest.mark.asyncio
async def test_direct_mode_commands(make_manager, ui_events):
    manager, transport = make_manager(mode=RelayMode.DIRECT)
    await manager.start_session("u1")
    await manager.on_network_event({"type": "registered", "username": "u1", "onlineUsers": ["u2"], "totalUsers": 2})
    assert manager.state is AppState.ONLINE
    assert ("ONLINE", (["u2"], 2)) in ui_events

    await manager.handle_input("/msg u2 hello world")
    await manager.handle_input("/users")
    await manager.handle_input("/history u2")
    await manager.handle_input("/msg u2")

    assert transport.sent == [
        {"type": "direct_message", "recipient": "u2", "message": "hello world"},
        {"type": "get_users"},
        {"type": "get_conversation", "with": "u2"},
    ]
    assert ui_events[-1] == ("ERROR", "Usage: /msg <user> <text>")


@pytest.mark.asyncio
async def test_quit_destroys_session(make_manager, ui_events):
    manager, transport = make_manager()
    await manager.start_session("alice")

    assert await manager.handle_input("/quit") is False
    assert transport.disconnected
    assert manager.state is AppState.SESSION_DESTROYED

    manager.on_connection_lost()
    assert ui_events[-1] == ("DESTROYED", None)


@pytest.mark.asyncio
async def test_connection_failure_raises(make_manager):
    manager, _ = make_manager(connects=False)
    with pytest.raises(ChatClientError) as excinfo:
        await manager.start_session("alice")
    assert excinfo.value.code == ErrorCodes.ERR_NETWORK
    assert manager.state is AppState.DISCONNECTED


@pytest.mark.asyncio
async def test_unknown_server_events_are_ignored(make_manager, ui_events):
    manager, _ = make_manager()
    before = list(ui_events)
    await manager.on_network_event({"type": "mystery"})
    assert ui_events == before
