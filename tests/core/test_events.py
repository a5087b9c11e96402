from blockdoc_toolkit.core.events import EventEmitter


def test_listeners_called_in_order_with_payload():
    emitter = EventEmitter()
    seen = []
    emitter.on("doc:change", lambda p: seen.append(("a", p)))
    emitter.on("doc:change", lambda p: seen.append(("b", p)))

    emitter.emit("doc:change", 1)

    assert seen == [("a", 1), ("b", 1)]


def test_unsubscribe_callable_and_off():
    emitter = EventEmitter()
    seen = []
    listener = seen.append
    unsubscribe = emitter.on("x", listener)
    assert emitter.listener_count("x") == 1

    unsubscribe()
    emitter.emit("x", "ignored")

    assert seen == []
    assert emitter.listener_count("x") == 0
    assert emitter.off("x", listener) is False


def test_failing_listener_does_not_block_others():
    emitter = EventEmitter()
    seen = []

    def broken(payload):
        raise RuntimeError("boom")

    emitter.on("x", broken)
    emitter.on("x", seen.append)
    emitter.emit("x", "ok")

    assert seen == ["ok"]


def test_listener_may_unsubscribe_during_emit():
    emitter = EventEmitter()
    seen = []
    holder = {}

    def once(payload):
        seen.append(payload)
        holder["unsub"]()

    holder["unsub"] = emitter.on("x", once)
    emitter.emit("x", 1)
    emitter.emit("x", 2)

    assert seen == [1]


def test_emitters_are_independent():
    first, second = EventEmitter(), EventEmitter()
    seen = []
    first.on("x", seen.append)
    second.emit("x", "other")
    assert seen == []
