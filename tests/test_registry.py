from pairchat.core.registry import ConnectionRegistry, Delivery


def test_register_and_send(make_handle):
    registry = ConnectionRegistry()
    alice = make_handle("alice")
    assert registry.register("alice", alice) is None

    assert registry.send("alice", {"type": "skipped"}) is Delivery.DELIVERED
    assert alice.frames == [{"type": "skipped"}]
    assert "alice" in registry
    assert len(registry) == 1


def test_second_registration_replaces_handle(make_handle):
    registry = ConnectionRegistry()
    first, second = make_handle("first"), make_handle("second")
    registry.register("alice", first)

    assert registry.register("alice", second) is first
    registry.send("alice", {"type": "partner_left"})

    assert first.frames == []
    assert second.frames == [{"type": "partner_left"}]
    assert len(registry) == 1


def test_registering_same_handle_twice_reports_nothing_replaced(make_handle):
    registry = ConnectionRegistry()
    handle = make_handle()
    registry.register("alice", handle)
    assert registry.register("alice", handle) is None


def test_unregister_ignores_stale_handle(make_handle):
    registry = ConnectionRegistry()
    old, new = make_handle("old"), make_handle("new")
    registry.register("alice", old)
    registry.register("alice", new)

    assert registry.unregister("alice", old) is False
    assert registry.handle_for("alice") is new
    assert registry.unregister("alice", new) is True
    assert "alice" not in registry
    assert registry.unregister("alice") is False


def test_send_to_unknown_identifier_is_dropped():
    registry = ConnectionRegistry()
    assert registry.send("ghost", {"type": "skipped"}) is Delivery.DROPPED


def test_send_to_unwritable_handle_is_dropped(make_handle):
    registry = ConnectionRegistry()
    closing = make_handle(writable=False)
    registry.register("alice", closing)

    assert registry.send("alice", {"type": "skipped"}) is Delivery.DROPPED
    assert closing.frames == []


def test_broadcast_skips_excluded_and_unwritable(make_handle):
    registry = ConnectionRegistry()
    a, b, c = make_handle("a"), make_handle("b"), make_handle("c", writable=False)
    for name, handle in (("a", a), ("b", b), ("c", c)):
        registry.register(name, handle)

    delivered = registry.broadcast({"type": "user_left", "username": "z", "totalUsers": 3}, exclude=("a",))

    assert delivered == 1
    assert a.frames == []
    assert b.types() == ["user_left"]
    assert c.frames == []


def test_identifiers_follow_registration_order(make_handle):
    registry = ConnectionRegistry()
    for name in ("carol", "alice", "bob"):
        registry.register(name, make_handle(name))
    assert registry.identifiers() == ["carol", "alice", "bob"]
