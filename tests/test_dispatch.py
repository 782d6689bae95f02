import threading
from types import SimpleNamespace

import pytest

import sweet
from sweet import Redispatcher, SetupError, UnknownOperation, current_setup, setup
from sweet.components import Core, PKAuto, Relationship, Table
from sweet.dispatch import SetupNamespace, bind_method, capability_chain

HELPER_CALLS = []


def recorded_helper(*args):
    """module level function, setup blocks must call this one and not the target method"""
    HELPER_CALLS.append(args)
    return "module"


class Recorder:
    """Plain setup target, no components"""

    def __init__(self):
        self.calls = []

    def addColumns(self, columns):
        self.calls.append(("addColumns", columns))

    def setPrimaryKey(self, name):
        self.calls.append(("setPrimaryKey", name))

    def belongsTo(self, relation, other_type, fk):
        self.calls.append(("belongsTo", relation, other_type, fk))
        return relation

    def recorded_helper(self, *args):
        self.calls.append(("recorded_helper",) + args)


class ClassTarget:
    calls = []

    @classmethod
    def add(cls, value):
        cls.calls.append((cls, value))
        return value * 2

    @staticmethod
    def double(value):
        return value * 2

    def plain(receiver, value):
        return receiver, value

    name = "not a method"

    class Meta:
        pass


@pytest.fixture(autouse=True)
def reset_recorders():
    HELPER_CALLS.clear()
    ClassTarget.calls = []
    yield


def test_block_calls_are_redispatched_in_order():
    target = Recorder()

    def block():
        addColumns(["id", "name", "country_id"])
        setPrimaryKey("id")
        belongsTo("country", "World.Country", "country_id")

    result = setup(target, block, defaults=False)

    assert result is None
    assert target.calls == [
        ("addColumns", ["id", "name", "country_id"]),
        ("setPrimaryKey", "id"),
        ("belongsTo", "country", "World.Country", "country_id"),
    ]


def test_return_value_is_forwarded():
    target = Recorder()
    results = []

    def block():
        results.append(belongsTo("country", "World.Country", "country_id"))

    setup(target, block, defaults=False)
    assert results == ["country"]


def test_unknown_call_raises_unknown_operation():
    target = Recorder()

    def block():
        setPrimaryKey("id")
        add_colums("id")

    with pytest.raises(UnknownOperation) as exc_info:
        setup(target, block, defaults=False)

    assert exc_info.value.name == "add_colums"
    assert exc_info.value.target is target
    assert "add_colums" in str(exc_info.value)
    assert "test_dispatch.Recorder" in str(exc_info.value)
    # the calls before the failing one happened
    assert target.calls == [("setPrimaryKey", "id")]


def test_unknown_operation_is_logged(caplog):
    def block():
        does_not_exist()

    with caplog.at_level("ERROR", logger=sweet.log.name):
        with pytest.raises(UnknownOperation):
            setup(Recorder(), block, defaults=False)

    assert "unknown class setup method 'does_not_exist'" in caplog.text


def test_errors_from_methods_propagate_unchanged():
    class Failing:
        @classmethod
        def explode(cls):
            raise KeyError("boom")

    def block():
        explode()

    with pytest.raises(KeyError, match="boom"):
        setup(Failing, block, defaults=False)


def test_teardown_after_failure():
    first, second = Recorder(), Recorder()

    def failing_block():
        setPrimaryKey("id")
        raise RuntimeError("halfway")

    def block():
        setPrimaryKey("name")

    with pytest.raises(RuntimeError):
        setup(first, failing_block, defaults=False)
    assert current_setup() is None

    setup(second, block, defaults=False)
    assert second.calls == [("setPrimaryKey", "name")]
    assert first.calls == [("setPrimaryKey", "id")]


def test_namespace_is_inactive_after_setup():
    captured = []

    def block():
        captured.append(lambda: setPrimaryKey)

    setup(Recorder(), block, defaults=False)

    with pytest.raises(NameError):
        captured[0]()


def test_module_globals_and_builtins_are_not_redispatched(monkeypatch):
    target = Recorder()
    resolved = []
    original_resolve = Redispatcher.resolve

    def counting_resolve(self, name):
        resolved.append(name)
        return original_resolve(self, name)

    monkeypatch.setattr(Redispatcher, "resolve", counting_resolve)
    results = []

    def block():
        results.append(recorded_helper("x"))
        results.append(len([1, 2, 3]))
        setPrimaryKey("id")

    setup(target, block, defaults=False)

    assert results == ["module", 3]
    assert HELPER_CALLS == [("x",)]
    assert target.calls == [("setPrimaryKey", "id")]
    assert resolved == ["setPrimaryKey"]


def test_block_closure_and_globals():
    target = Recorder()
    columns = ["id", "name"]

    def block():
        global assigned_in_block
        assigned_in_block = "primary"
        addColumns(columns)
        setPrimaryKey(assigned_in_block)

    setup(target, block, defaults=False)

    assert target.calls == [("addColumns", ["id", "name"]), ("setPrimaryKey", "primary")]
    # globals assigned in the block stay in the setup namespace
    assert "assigned_in_block" not in globals()


def test_local_assigned_after_the_block_does_not_shadow():
    target = Recorder()

    def block():
        addColumns(["id"])
        setPrimaryKey("id")

    setup(target, block, defaults=False)
    addColumns = target.calls[0][1]
    setPrimaryKey = None

    assert addColumns == ["id"]
    assert setPrimaryKey is None
    assert target.calls == [("addColumns", ["id"]), ("setPrimaryKey", "id")]


def test_bound_local_shadows_the_target_method():
    target = Recorder()
    local_calls = []

    def setPrimaryKey(name):
        local_calls.append(name)

    def block():
        setPrimaryKey("id")

    setup(target, block, defaults=False)

    assert local_calls == ["id"]
    assert target.calls == []


def test_block_must_be_a_function():
    with pytest.raises(TypeError):
        setup(Recorder(), print, defaults=False)


def test_defaults_need_the_default_methods():
    def block():
        pass

    with pytest.raises(UnknownOperation) as exc_info:
        setup(Recorder(), block)
    assert exc_info.value.name == "load_components"


def test_reentrant_setup_of_the_same_target_fails():
    target = Recorder()

    def inner():
        setPrimaryKey("inner")

    def outer():
        setup(target, inner, defaults=False)

    with pytest.raises(SetupError):
        setup(target, outer, defaults=False)
    assert current_setup() is None


def test_nested_setup_of_another_target():
    outer_target, inner_target = Recorder(), Recorder()
    seen = []

    def inner():
        seen.append(current_setup())
        setPrimaryKey("inner")

    def outer():
        setup(inner_target, inner, defaults=False)
        seen.append(current_setup())
        setPrimaryKey("outer")

    setup(outer_target, outer, defaults=False)

    assert seen == [inner_target, outer_target]
    assert inner_target.calls == [("setPrimaryKey", "inner")]
    assert outer_target.calls == [("setPrimaryKey", "outer")]


def test_concurrent_setups_on_distinct_targets():
    targets = [Recorder() for _ in range(8)]
    barrier = threading.Barrier(len(targets))
    errors = []

    def block():
        barrier.wait(timeout=5)
        setPrimaryKey("id")

    def run(target):
        try:
            setup(target, block, defaults=False)
        except Exception as exc:  # pragma: no cover
            errors.append(exc)

    threads = [threading.Thread(target=run, args=(target,)) for target in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert all(target.calls == [("setPrimaryKey", "id")] for target in targets)


def test_bind_method():
    assert bind_method(ClassTarget.__dict__["add"], ClassTarget)(3) == 6
    assert ClassTarget.calls == [(ClassTarget, 3)]
    assert bind_method(ClassTarget.__dict__["double"], ClassTarget)(4) == 8
    assert bind_method(ClassTarget.__dict__["plain"], ClassTarget)(5) == (ClassTarget, 5)
    assert bind_method(ClassTarget.__dict__["name"], ClassTarget) is None
    assert bind_method(ClassTarget.__dict__["Meta"], ClassTarget) is None


def test_bind_method_on_instance():
    target = ClassTarget()
    assert bind_method(ClassTarget.__dict__["plain"], target)(1) == (target, 1)
    bind_method(ClassTarget.__dict__["add"], target)(2)
    assert ClassTarget.calls == [(ClassTarget, 2)]


def test_redispatcher():
    dispatcher = Redispatcher(ClassTarget)

    assert dispatcher.invoke("add", 1) == 2
    assert dispatcher.double(2) == 4
    assert dispatcher.resolve("Some::Package::add")(5) == 10
    assert dispatcher.can("name") is None
    assert dispatcher.can("missing") is None
    assert set(dispatcher.methods()) == {"add", "double", "plain"}
    with pytest.raises(UnknownOperation):
        dispatcher.missing
    with pytest.raises(AttributeError):
        dispatcher.__missing_dunder__


def test_redispatcher_resolves_mro():
    class Base:
        @classmethod
        def base_method(cls):
            return ("base", cls)

        @classmethod
        def shadowed(cls):
            return "base"

    class Child(Base):
        @classmethod
        def shadowed(cls):
            return "child"

    dispatcher = Redispatcher(Child)
    assert dispatcher.base_method() == ("base", Child)
    assert dispatcher.shadowed() == "child"


def test_capability_chain_order():
    class Person(sweet.SweetBase):
        @sweet.setup_class
        def setup():
            add_columns("id")

    chain = capability_chain(Person)
    assert chain == (Person, PKAuto, Core, Relationship, Table, sweet.SweetBase)
    assert capability_chain(Person()) == chain


def test_setup_namespace_lookup():
    dispatcher = SimpleNamespace(resolve=lambda name: ("resolved", name))
    namespace = SetupNamespace(dispatcher, {"known": 1, "__builtins__": __builtins__})

    assert namespace["known"] == 1
    assert namespace["len"] is len
    with pytest.raises(KeyError):
        namespace["unknown"]

    namespace.install()
    assert namespace["unknown"] == ("resolved", "unknown")
    namespace.remove()
    with pytest.raises(KeyError):
        namespace["unknown"]
