# base.py: implements the SweetBase class, the base class of all classes configured with setup blocks
#
# pylint: disable=no-self-argument,protected-access
#
"""
Subclassing SweetBase makes a class a setup target:

- `setup_class` blocks in the class body run when the class has been created
- component methods (``Person.columns()``, ``Person.table()``) are available as class attributes
- a `Schema` maps the configured classes to SQLAlchemy tables

    class Person(SweetBase):
        @setup_class
        def setup():
            add_columns("id", "name", "country_id")
            set_primary_key("id")
            belongs_to("country", "World.Country", "country_id")
"""
from sqlalchemy import inspect as sqla_inspect
from typing import Any, Tuple

from .components import load_components
from .dispatch import Redispatcher, run_setup_blocks, setup
from .source import find_source
from .util import classproperty


class SweetMeta(type):
    """
    Class attributes that aren't found on the class are looked up in the loaded components
    """

    def __getattr__(cls, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        method = Redispatcher(cls).can(name)
        if method is None:
            raise AttributeError(f"type object '{cls.__name__}' has no attribute '{name}'")
        return method


class SweetBase(metaclass=SweetMeta):
    """
    Base class of the setup targets
    """

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        run_setup_blocks(cls)

    def __init__(self, **kwargs) -> None:
        """
        Set the attributes from the keyword arguments, only columns and relationships are allowed
        """
        cls = type(self)
        attributes = cls._s_attributes
        for key, value in kwargs.items():
            if key not in attributes:
                raise TypeError(f"{key!r} is an invalid keyword argument for {cls.__name__}")
            setattr(self, key, value)

    def __repr__(self) -> str:
        source = find_source(type(self))
        pks = source.primary_key if source is not None else ()
        values = " ".join(f"{pk}={getattr(self, pk, None)!r}" for pk in pks)
        return f"<{type(self).__name__} {values}>" if values else f"<{type(self).__name__}>"

    @classmethod
    def load_components(cls, *components) -> Tuple[type, ...]:
        """
        Load components by name (or class), eg. load_components("PK::Auto", "Core")
        """
        return load_components(cls, *components)

    @classmethod
    def setup_class(cls, block) -> type:
        """
        Run a setup block for this class, can be used as a decorator:

            @Person.setup_class
            def _():
                has_many("books", "Book", "person_id")
        """
        setup(cls, block)
        return cls

    @classproperty
    def _s_components(cls) -> Tuple[type, ...]:
        """
        :return: the components loaded into this class
        """
        source = find_source(cls)
        return source.components if source is not None else ()

    @classproperty
    def _s_attributes(cls) -> Tuple[str, ...]:
        """
        :return: names of the mapped attributes, or the configured columns and relationships before mapping
        """
        mapper = sqla_inspect(cls, raiseerr=False)
        if mapper is not None:
            return tuple(mapper.attrs.keys())
        source = find_source(cls)
        if source is None:
            return ()
        return tuple(source.columns) + tuple(source.relationships)

    @classproperty
    def _s_mapped(cls) -> bool:
        """
        :return: whether a `Schema` mapped this class
        """
        return sqla_inspect(cls, raiseerr=False) is not None
