"""
    components.py: setup methods that can be loaded into a class with ``load_components``

    A component is a class with classmethods. Loading a component doesn't change the bases of the
    class, the component is added to the capability chain that setup blocks (and class attribute
    lookups, see :class:`~sweet.base.SweetMeta`) use to resolve method names.

    Components are registered by name, "PK::Auto" and "PK.Auto" refer to the same component.
    A name starting with "+" is imported, eg. "+myapp.components.Audit"
"""
import importlib
from typing import Any, Dict, Optional, Tuple

import sweet
from .errors import ComponentNotFoundError, SetupError
from .source import (
    BELONGS_TO,
    HAS_MANY,
    HAS_ONE,
    MANY_TO_MANY,
    MIGHT_HAVE,
    ColumnInfo,
    RelationshipInfo,
    source_of,
)
from .util import class_key

COMPONENTS: Dict[str, type] = {}


class Component:
    """
    Base class of the components, it doesn't provide any methods itself
    """

    component_name: Optional[str] = None


def normalize_component_name(name: str) -> str:
    return name.strip().replace("::", ".")


def register_component(name: str):
    """
    Class decorator that registers a component under `name`
    """

    def decorator(cls):
        cls.component_name = normalize_component_name(name)
        COMPONENTS[cls.component_name] = cls
        return cls

    return decorator


def get_component(ref: Any) -> type:
    """
    :param ref: component class, registered name or "+" prefixed import path
    :return: component class
    """
    if isinstance(ref, type):
        return ref
    name = normalize_component_name(ref)
    if name.startswith("+"):
        module_name, _, attr = name[1:].rpartition(".")
        try:
            return getattr(importlib.import_module(module_name), attr)
        except (ImportError, AttributeError, ValueError) as exc:
            raise ComponentNotFoundError(ref) from exc
    try:
        return COMPONENTS[name]
    except KeyError:
        raise ComponentNotFoundError(ref) from None


def load_components(target: Any, *refs: Any) -> Tuple[type, ...]:
    """
    Add components to the capability chain of `target`, components that are already loaded are skipped

    :return: the loaded components
    """
    source = source_of(target)
    loaded = list(source.components)
    for ref in refs:
        component = get_component(ref)
        if component in loaded:
            continue
        sweet.log.debug(f"Loading component {component.__name__} into {class_key(target)}")
        loaded.append(component)
    source.components = tuple(loaded)
    return source.components


def has_component(target: Any, component: type) -> bool:
    return component in source_of(target).components


@register_component("Table")
class Table(Component):
    """
    Table name, columns, primary key and unique constraints
    """

    @classmethod
    def table(cls, name: Optional[str] = None) -> Optional[str]:
        """
        Set the table name, the current table name is returned
        """
        source = source_of(cls)
        if name is not None:
            source.table_name = name
        return source.table_name

    @classmethod
    def add_columns(cls, *columns, **column_infos) -> None:
        """
        Add columns, a column name may be followed by its column info dict:

            add_columns("id", {"data_type": "integer"}, "name", country_id={"data_type": "integer"})

        Adding an existing column replaces its info
        """
        source = source_of(cls)
        pending = list(columns)
        while pending:
            name = pending.pop(0)
            if not isinstance(name, str):
                raise SetupError(f"Invalid column name {name!r} for {class_key(cls)}")
            info = pending.pop(0) if pending and isinstance(pending[0], dict) else None
            source.columns[name] = ColumnInfo.from_info(name, info)
        for name, info in column_infos.items():
            source.columns[name] = ColumnInfo.from_info(name, info)

    @classmethod
    def add_column(cls, name: str, info: Optional[dict] = None) -> None:
        source_of(cls).columns[name] = ColumnInfo.from_info(name, info)

    @classmethod
    def remove_columns(cls, *names: str) -> None:
        source = source_of(cls)
        source.check_columns(names, f"remove_columns on {class_key(cls)}")
        in_use = [name for name in names if name in source.primary_key]
        if in_use:
            raise SetupError(f"Can't remove primary key column(s) {', '.join(in_use)} from {class_key(cls)}")
        for name in names:
            del source.columns[name]
        for constraint, constraint_columns in list(source.unique_constraints.items()):
            if set(constraint_columns) & set(names):
                del source.unique_constraints[constraint]

    @classmethod
    def columns(cls) -> list:
        return list(source_of(cls).columns)

    @classmethod
    def has_column(cls, name: str) -> bool:
        return name in source_of(cls).columns

    @classmethod
    def column_info(cls, name: str) -> dict:
        source = source_of(cls)
        source.check_columns([name], f"column_info on {class_key(cls)}")
        return source.columns[name].as_dict()

    @classmethod
    def set_primary_key(cls, *names: str) -> None:
        if not names:
            raise SetupError(f"set_primary_key on {class_key(cls)} needs at least one column")
        source = source_of(cls)
        source.check_columns(names, f"Primary key of {class_key(cls)}")
        source.primary_key = tuple(names)

    @classmethod
    def primary_columns(cls) -> tuple:
        return source_of(cls).primary_key

    @classmethod
    def add_unique_constraint(cls, name_or_columns, columns=None) -> str:
        """
        Add a unique constraint, the default constraint name is "<table>_<col1>_<col2>"

        :return: the name of the constraint
        """
        source = source_of(cls)
        name = None if columns is None else name_or_columns
        columns = name_or_columns if columns is None else columns
        columns = (columns,) if isinstance(columns, str) else tuple(columns)
        if name is None:
            name = "_".join((source.table_name or cls.__name__.lower(),) + columns)
        if not columns:
            raise SetupError(f"Unique constraint '{name}' on {class_key(cls)} has no columns")
        source.check_columns(columns, f"Unique constraint '{name}'")
        source.unique_constraints[name] = columns
        return name

    @classmethod
    def unique_constraints(cls) -> dict:
        """
        :return: constraint names mapped to their columns, the primary key is named "primary"
        """
        source = source_of(cls)
        result = {"primary": source.primary_key} if source.primary_key else {}
        result.update(source.unique_constraints)
        return result


def _add_relationship(target: Any, info: RelationshipInfo) -> None:
    source = source_of(target)
    if info.name in source.relationships:
        raise SetupError(f"Relationship '{info.name}' already exists on {class_key(target)}")
    source.relationships[info.name] = info


@register_component("Relationship")
class Relationship(Component):
    """
    Relationships between classes, the related class is referenced by class or by (qualified) name.
    Extra keyword arguments are passed to `sqlalchemy.orm.relationship`
    """

    @classmethod
    def belongs_to(cls, rel: str, other: Any, fk: Optional[str] = None, **attrs) -> None:
        """
        The class holds a foreign key column pointing to the primary key of `other`,
        the foreign key column defaults to the relationship name
        """
        fk = fk or rel
        source_of(cls).check_columns([fk], f"belongs_to '{rel}' on {class_key(cls)}")
        _add_relationship(cls, RelationshipInfo(rel, BELONGS_TO, other, self_column=fk, attrs=attrs))

    @classmethod
    def has_many(cls, rel: str, other: Any, foreign_column: Optional[str] = None, **attrs) -> None:
        """
        `other` holds a column pointing to our primary key,
        if `foreign_column` isn't given it's assumed to have the same name as our primary key column
        """
        _add_relationship(cls, RelationshipInfo(rel, HAS_MANY, other, foreign_column=foreign_column, attrs=attrs))

    @classmethod
    def has_one(cls, rel: str, other: Any, foreign_column: Optional[str] = None, **attrs) -> None:
        _add_relationship(cls, RelationshipInfo(rel, HAS_ONE, other, foreign_column=foreign_column, attrs=attrs))

    @classmethod
    def might_have(cls, rel: str, other: Any, foreign_column: Optional[str] = None, **attrs) -> None:
        _add_relationship(cls, RelationshipInfo(rel, MIGHT_HAVE, other, foreign_column=foreign_column, attrs=attrs))

    @classmethod
    def many_to_many(cls, rel: str, link_rel: str, foreign_rel: str, **attrs) -> None:
        """
        Bridge over the `link_rel` has_many relationship to the `foreign_rel` belongs_to relationship of the link class
        """
        link = source_of(cls).relationships.get(link_rel)
        if link is None or link.kind not in (HAS_MANY, HAS_ONE, MIGHT_HAVE):
            raise SetupError(f"many_to_many '{rel}' on {class_key(cls)}: '{link_rel}' is not a has_many relationship")
        _add_relationship(cls, RelationshipInfo(rel, MANY_TO_MANY, link_rel=link_rel, foreign_rel=foreign_rel, attrs=attrs))

    @classmethod
    def relationships(cls) -> list:
        return list(source_of(cls).relationships)

    @classmethod
    def relationship_info(cls, name: str) -> RelationshipInfo:
        try:
            return source_of(cls).relationships[name]
        except KeyError:
            raise SetupError(f"No such relationship '{name}' on {class_key(cls)}") from None


@register_component("PK::Auto")
class PKAuto(Component):
    """
    A single integer primary key column is generated by the database,
    optionally from a named sequence
    """

    @classmethod
    def sequence(cls, name: Optional[str] = None) -> Optional[str]:
        source = source_of(cls)
        if name is not None:
            source.sequence = name
        return source.sequence


@register_component("Core")
class Core(Relationship, Table):
    """
    The components every class needs: table, columns and relationships
    """
