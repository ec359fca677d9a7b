import json

import pytest

from pairchat.core.context import RelayContext, RelayMode
from pairchat.core.dispatcher import RelayService

FIXED_TS = "2024-05-01T12:00:00.000Z"


class FakeHandle:
    """Stands in for a WebSocket link; records every frame it is given."""

    def __init__(self, name="conn", writable=True):
        self.name = name
        self.writable = writable
        self.frames = []
        self.closed_with = None

    def is_writable(self):
        return self.writable

    def send(self, text):
        self.frames.append(json.loads(text))
        return True

    def close(self, code, reason):
        self.closed_with = (code, reason)
        self.writable = False

    def types(self):
        return [f["type"] for f in self.frames]

    def last(self, msg_type=None):
        matching = [f for f in self.frames if msg_type is None or f["type"] == msg_type]
        return matching[-1] if matching else None

    def __repr__(self):
        return f"FakeHandle({self.name!r})"


@pytest.fixture
def make_handle():
    def _make(name="conn", writable=True):
        return FakeHandle(name, writable)
    return _make


@pytest.fixture
def paired_ctx():
    return RelayContext.create(RelayMode.PAIRED, clock=lambda: FIXED_TS)


@pytest.fixture
def direct_ctx():
    return RelayContext.create(RelayMode.DIRECT, clock=lambda: FIXED_TS)


@pytest.fixture
def connect(make_handle):
    """Open a session on ``service`` and register it as ``username``."""
    def _connect(service, username):
        handle = make_handle(username)
        session = service.open_session(handle)
        service.handle_frame(session, json.dumps({"type": "register", "username": username}))
        return session, handle
    return _connect


def assert_matching_consistent(matching):
    pool = matching.pool
    assert len(pool) == len(set(pool)), f"duplicate pool entries: {pool}"
    for identifier in pool:
        assert matching.state_of(identifier).is_available
    for a, b in matching.pairs():
        assert a != b
        assert matching.partner_of(a) == b
        assert matching.partner_of(b) == a
        assert a not in pool and b not in pool


@pytest.fixture
def paired_service(paired_ctx):
    return RelayService(paired_ctx)


@pytest.fixture
def direct_service(direct_ctx):
    return RelayService(direct_ctx)
