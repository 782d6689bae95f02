# dispatch.py: runs class setup blocks
#
# A setup block is a plain function whose body calls the class methods of the class being set up
# without qualifying them:
#
#     @setup_class
#     def setup():
#         add_columns("id", "name", "country_id")
#         set_primary_key("id")
#         belongs_to("country", "World.Country", "country_id")
#
# The block is re-created over a SetupNamespace: a globals mapping that falls back to the
# module globals and the builtins first, and only then resolves the name against the
# capability chain of the class (see `Redispatcher`).
# The namespace is created for a single setup invocation and deactivated when the block returns or raises.
#
import builtins
import inspect
import types
from contextvars import ContextVar
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple

import sweet
from .components import Component
from .config import auto_table_name, get_default_components
from .errors import SetupError, UnknownOperation
from .source import find_source
from .util import class_key, default_table_name, unqualify

SETUP_BLOCK_TAG = "_s_setup_block"

# classes that never provide setup methods
NOT_PROVIDERS = (object, Component)

# targets whose setup block is running, innermost last
_ACTIVE_SETUPS: ContextVar[Tuple[Any, ...]] = ContextVar("sweet_active_setups", default=())

_MISSING = object()


def capability_chain(target) -> Tuple[type, ...]:
    """
    The classes consulted when resolving a setup method, in order:
    the target class, the loaded components (with their bases) and the other classes of the target mro

    :param target: class or object being set up
    :return: tuple of classes
    """
    cls = target if inspect.isclass(target) else type(target)
    mro = inspect.getmro(cls)
    source = find_source(cls)
    providers = [cls]
    for component in source.components if source is not None else ():
        providers.extend(inspect.getmro(component))
    providers.extend(mro[1:])

    chain = []
    for provider in providers:
        if provider in NOT_PROVIDERS or provider in chain:
            continue
        chain.append(provider)
    return tuple(chain)


def bind_method(value: Any, target: Any) -> Optional[Callable]:
    """
    Bind a class dict member so that `target` is the receiver

    :param value: member from a class __dict__
    :param target: class or object being set up
    :return: callable or None if `value` isn't a method
    """
    owner = target if inspect.isclass(target) else type(target)
    if isinstance(value, staticmethod):
        return value.__func__
    if isinstance(value, classmethod):
        return types.MethodType(value.__func__, owner)
    if inspect.isfunction(value):
        return types.MethodType(value, target)
    if inspect.isclass(value) or not callable(value):
        return None
    return value


class Redispatcher:
    """
    Explicit dispatch of setup method names to the capability chain of a target.
    The chain is recomputed on every lookup because a block may load components halfway.

    Methods can be called by name or as attributes:

        dispatcher = Redispatcher(Person)
        dispatcher.invoke("add_columns", "id", "name")
        dispatcher.set_primary_key("id")
    """

    def __init__(self, target: Any) -> None:
        self.target = target

    def __repr__(self) -> str:
        return f"<Redispatcher for {class_key(self.target)}>"

    def __getattr__(self, name: str) -> Callable:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.resolve(name)

    @property
    def chain(self) -> Tuple[type, ...]:
        return capability_chain(self.target)

    def can(self, name: str) -> Optional[Callable]:
        """
        :param name: method name, qualified names are stripped to the last segment
        :return: the bound method or None
        """
        name = unqualify(name)
        for provider in self.chain:
            value = vars(provider).get(name, _MISSING)
            if value is _MISSING:
                continue
            method = bind_method(value, self.target)
            if method is not None:
                return method
        return None

    def resolve(self, name: str) -> Callable:
        """
        :param name: method name
        :return: the bound method, calls to it are logged
        :raises UnknownOperation: if no class in the chain implements `name`
        """
        name = unqualify(name)
        method = self.can(name)
        if method is None:
            raise UnknownOperation(name, self.target)

        target_key = class_key(self.target)

        @wraps(method)
        def dispatch(*args, **kwargs):
            sweet.log.debug(f"{target_key}: {name}{args}{kwargs if kwargs else ''}")
            return method(*args, **kwargs)

        return dispatch

    def invoke(self, name: str, *args, **kwargs) -> Any:
        """
        Call method `name` on the target, the result of the method is returned
        """
        return self.resolve(name)(*args, **kwargs)

    def methods(self) -> Dict[str, Callable]:
        """
        :return: the dispatch table: all method names available to the target
        """
        table = {}
        for provider in self.chain:
            for name, value in vars(provider).items():
                if name in table:
                    continue
                method = bind_method(value, self.target)
                if method is not None:
                    table[name] = method
        return table


class SetupNamespace(dict):
    """
    Globals of a setup block.
    Lookups fall back to the module globals of the block, the builtins and, while the namespace is active,
    to the redispatcher. Assignments to globals inside the block stay in this namespace.
    """

    def __init__(self, redispatcher: Redispatcher, module_globals: Dict[str, Any]) -> None:
        super().__init__()
        self.redispatcher = redispatcher
        self.module_globals = module_globals
        self.active = False
        self["__builtins__"] = module_globals.get("__builtins__", builtins)
        self["__name__"] = module_globals.get("__name__")

    def __missing__(self, name: str) -> Any:
        try:
            return self.module_globals[name]
        except KeyError:
            pass
        builtin_ns = self["__builtins__"]
        if isinstance(builtin_ns, types.ModuleType):
            builtin_ns = vars(builtin_ns)
        if name in builtin_ns:
            return builtin_ns[name]
        if not self.active:
            raise KeyError(name)
        return self.redispatcher.resolve(name)

    def install(self) -> None:
        self.active = True

    def remove(self) -> None:
        self.active = False

    def bind(self, block: types.FunctionType) -> types.FunctionType:
        """
        :return: a copy of `block` that uses this namespace as its globals

        A setup method name that is also a local of the enclosing function, assigned after the block runs,
        is compiled as a free variable. Its cell is still empty when the block runs, such cells are
        replaced with a cell holding the setup method.
        """
        closure = block.__closure__
        if closure:
            cells = []
            for name, cell in zip(block.__code__.co_freevars, closure):
                try:
                    cell.cell_contents
                except ValueError:
                    if self.redispatcher.can(name) is not None:
                        cell = types.CellType(self.redispatcher.resolve(name))
                cells.append(cell)
            closure = tuple(cells)
        func = types.FunctionType(block.__code__, self, block.__name__, block.__defaults__, closure)
        func.__kwdefaults__ = block.__kwdefaults__
        func.__qualname__ = block.__qualname__
        func.__module__ = block.__module__
        return func


def current_setup() -> Optional[Any]:
    """
    :return: the target of the innermost running setup block, or None
    """
    active = _ACTIVE_SETUPS.get()
    return active[-1] if active else None


def apply_defaults(redispatcher: Redispatcher) -> None:
    """
    Load the default components and set the default table name,
    eg. MyDB.Whatever.MyTable uses 'mytable'
    """
    components = get_default_components()
    if components:
        redispatcher.invoke("load_components", *components)
    if auto_table_name():
        redispatcher.invoke("table", default_table_name(class_key(redispatcher.target)))


def setup(target: Any, block: types.FunctionType, defaults: bool = True) -> None:
    """
    Run a setup block: every name the block calls that isn't a global or a builtin
    is translated to a method call on `target`.

    :param target: class (or object) to set up
    :param block: function without arguments
    :param defaults: load the default components and set the default table name first
    :raises UnknownOperation: when the block calls a method the target doesn't have
    """
    if not inspect.isfunction(block):
        raise TypeError(f"setup block should be a function, not {type(block).__name__}")

    active = _ACTIVE_SETUPS.get()
    if any(target is running for running in active):
        raise SetupError(f"setup of {class_key(target)} is already running")

    redispatcher = Redispatcher(target)
    if defaults:
        apply_defaults(redispatcher)

    namespace = SetupNamespace(redispatcher, block.__globals__)
    func = namespace.bind(block)
    token = _ACTIVE_SETUPS.set(active + (target,))
    namespace.install()
    sweet.log.debug(f"Running setup block {block.__qualname__} for {class_key(target)}")
    try:
        func()
    finally:
        namespace.remove()
        _ACTIVE_SETUPS.reset(token)
    sweet.log.debug(f"Setup of {class_key(target)} done")


def is_setup_block(value: Any) -> bool:
    """
    :param value: class dict member
    :return: whether `value` was marked with `setup_class`
    """
    return inspect.isfunction(value) and getattr(value, SETUP_BLOCK_TAG, None) is not None


def setup_class(arg: Any = None, *, defaults: bool = True) -> Any:
    """
    Decorator for setup blocks.

    Inside a `SweetBase` subclass body the block is marked and runs when the class has been created:

        class Person(SweetBase):
            @setup_class
            def setup():
                add_columns("id", "name")

    With a class argument the block runs immediately against that class, the class is returned:

        @setup_class(Person)
        def _():
            set_primary_key("id")
    """
    if inspect.isfunction(arg):
        setattr(arg, SETUP_BLOCK_TAG, {"defaults": defaults})
        return arg

    if arg is None:

        def mark(block):
            return setup_class(block, defaults=defaults)

        return mark

    def run(block):
        setup(arg, block, defaults=defaults)
        return arg

    return run


def run_setup_blocks(cls: type) -> None:
    """
    Run (and remove) the setup blocks defined in the body of `cls`
    """
    blocks = [(name, value) for name, value in vars(cls).items() if is_setup_block(value)]
    for name, block in blocks:
        delattr(cls, name)
        setup(cls, block, **getattr(block, SETUP_BLOCK_TAG))
