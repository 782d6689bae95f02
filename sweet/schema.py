# -*- coding: utf-8 -*-
"""
    schema.py: maps classes configured with setup blocks to SQLAlchemy tables

    schema = Schema()
    schema.register_classes(Person, Country)
    schema.create_all(engine)

    Mapping happens in `finalize`, in three passes so that classes can reference each other in
    any order: first all tables are created, then the foreign keys of the belongs_to relationships
    are added and finally the classes are mapped with their relationships.
"""
#
# pylint: disable=protected-access
import importlib
import inspect
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, ForeignKeyConstraint, MetaData, Sequence, Table, UniqueConstraint
from sqlalchemy.orm import registry as sqla_registry, relationship

import sweet
from .base import SweetBase
from .components import PKAuto, has_component
from .errors import SetupError
from .source import BELONGS_TO, MANY_TO_MANY, ColumnInfo, RelationshipInfo, ResultSource, find_source
from .sweet_types import get_sqla_type, is_integer_type
from .util import class_key, default_table_name, unqualify

# relationship() arguments that pair two relationships
PAIRING_ATTRS = ("back_populates", "backref", "overlaps", "viewonly")


class Schema:
    """
    A collection of classes and the SQLAlchemy registry they're mapped with
    :param metadata: SQLAlchemy MetaData for the tables
    :param registry: SQLAlchemy registry used to map the classes
    """

    def __init__(self, metadata: Optional[MetaData] = None, registry: Optional[sqla_registry] = None) -> None:
        if registry is None:
            registry = sqla_registry(metadata=metadata)
        self.registry = registry
        self.metadata = registry.metadata
        self.classes: Dict[str, type] = {}  # moniker => class
        self.tables: Dict[type, Table] = {}

    @classmethod
    def from_db(cls, db: Any) -> "Schema":
        """
        :param db: Flask-SQLAlchemy extension object, its model registry and metadata are used
        """
        return cls(registry=db.Model.registry)

    def __repr__(self) -> str:
        return f"<Schema {', '.join(self.classes)}>"

    def register_class(self, cls: type, moniker: Optional[str] = None) -> type:
        """
        :param cls: class configured with a setup block
        :param moniker: name used to reference the class, defaults to the class name
        """
        if find_source(cls) is None:
            raise SetupError(f"{class_key(cls)} has not been set up")
        moniker = moniker or cls.__name__
        existing = self.classes.get(moniker)
        if existing is not None and existing is not cls:
            raise SetupError(f"Moniker '{moniker}' is already used by {class_key(existing)}")
        self.classes[moniker] = cls
        sweet.log.debug(f"Registered {class_key(cls)} as '{moniker}'")
        return cls

    def register_classes(self, *classes: type) -> None:
        for cls in classes:
            self.register_class(cls)

    def load_classes(self, module: Any) -> List[type]:
        """
        Register all configured SweetBase subclasses defined in `module`
        :param module: module or module name
        :return: the registered classes
        """
        if isinstance(module, str):
            module = importlib.import_module(module)
        result = []
        for _, member in inspect.getmembers(module, inspect.isclass):
            if member.__module__ != module.__name__ or not issubclass(member, SweetBase) or member is SweetBase:
                continue
            if find_source(member) is None:
                continue
            result.append(self.register_class(member))
        return result

    def class_for(self, ref: Any) -> type:
        """
        :param ref: class, moniker, "module.qualname" or a qualified name ending with a class name, eg. "World.Country"
        :return: registered class
        """
        registered = list(self.classes.values())
        if isinstance(ref, type):
            if ref in registered:
                return ref
            raise SetupError(f"{class_key(ref)} is not registered")
        if ref in self.classes:
            return self.classes[ref]
        for cls in registered:
            if class_key(cls) == ref:
                return cls
        name = unqualify(ref)
        matches = []
        for moniker, cls in self.classes.items():
            if (moniker == name or cls.__name__ == name) and cls not in matches:
                matches.append(cls)
        if len(matches) == 1:
            return matches[0]
        if matches:
            raise SetupError(f"'{ref}' is ambiguous: {', '.join(class_key(cls) for cls in matches)}")
        raise SetupError(f"'{ref}' is not registered")

    def sources(self) -> List[str]:
        return list(self.classes)

    def source(self, ref: Any) -> ResultSource:
        return find_source(self.class_for(ref))

    def table_for(self, ref: Any) -> Table:
        cls = self.class_for(ref)
        try:
            return self.tables[cls]
        except KeyError:
            raise SetupError(f"{class_key(cls)} has not been finalized") from None

    #
    # Mapping
    #
    def finalize(self) -> "Schema":
        """
        Create the tables and map the classes that haven't been mapped yet
        """
        pending = [cls for cls in self.classes.values() if cls not in self.tables]
        for cls in pending:
            self.tables[cls] = self._build_table(cls)
        for cls in pending:
            self._add_foreign_keys(cls)
        properties = {cls: self._build_relationships(cls) for cls in pending}
        self._pair_relationships(properties)
        for cls in pending:
            self.registry.map_imperatively(cls, self.tables[cls], properties={name: relationship(other, **attrs) for name, (other, attrs) in properties[cls].items()})
            sweet.log.debug(f"Mapped {class_key(cls)} to table '{self.tables[cls].name}'")
        return self

    def create_all(self, engine: Any) -> None:
        self.finalize()
        self.metadata.create_all(engine)

    def _build_table(self, cls: type) -> Table:
        source = find_source(cls)
        if not source.primary_key:
            raise SetupError(f"{class_key(cls)} has no primary key")
        autoinc_column = self._autoinc_column(cls, source)
        columns = [self._build_column(info, source, autoinc_column) for info in source.columns.values()]
        constraints = [UniqueConstraint(*cols, name=name) for name, cols in source.unique_constraints.items()]
        table_name = source.table_name or default_table_name(class_key(cls))
        return Table(table_name, self.metadata, *columns, *constraints)

    @staticmethod
    def _autoinc_column(cls: type, source: ResultSource) -> Optional[str]:
        """
        :return: the primary key column the database generates (PK::Auto), if any
        """
        if not has_component(cls, PKAuto) or len(source.primary_key) != 1:
            return None
        pk = source.primary_key[0]
        info = source.columns[pk]
        if is_integer_type(info.data_type) or info.is_auto_increment:
            return pk
        return None

    @staticmethod
    def _build_column(info: ColumnInfo, source: ResultSource, autoinc_column: Optional[str]) -> Column:
        args: List[Any] = [info.name, get_sqla_type(info.data_type, info.size)]
        sequence = info.sequence or (source.sequence if info.name == autoinc_column else None)
        if sequence:
            args.append(Sequence(sequence))
        kwargs = dict(info.extra)
        kwargs["primary_key"] = info.name in source.primary_key
        if info.is_nullable is not None:
            kwargs["nullable"] = info.is_nullable
        if info.default_value is not None:
            kwargs["default"] = info.default_value
        if info.is_auto_increment or info.name == autoinc_column:
            kwargs["autoincrement"] = True
        elif kwargs["primary_key"]:
            kwargs.setdefault("autoincrement", False)
        return Column(*args, **kwargs)

    def _single_pk(self, cls: type) -> str:
        primary_key = find_source(cls).primary_key
        if len(primary_key) != 1:
            raise SetupError(f"Relationships need a single column primary key on {class_key(cls)}")
        return primary_key[0]

    def _column(self, cls: type, name: str, rel: RelationshipInfo) -> Column:
        table = self.tables[cls]
        if name not in table.c:
            raise SetupError(f"Relationship '{rel.name}': no column '{name}' in {class_key(cls)}")
        return table.c[name]

    def _add_foreign_keys(self, cls: type) -> None:
        table = self.tables[cls]
        for rel in find_source(cls).relationships.values():
            if rel.kind != BELONGS_TO:
                continue
            other = self.class_for(rel.other)
            remote = self._column(other, self._single_pk(other), rel)
            table.append_constraint(ForeignKeyConstraint([rel.self_column], [remote]))

    def _build_relationships(self, cls: type) -> Dict[str, Any]:
        """
        :return: relationship name => (related class, relationship() keyword arguments)
        """
        result = {}
        for rel in find_source(cls).relationships.values():
            if rel.kind == MANY_TO_MANY:
                result[rel.name] = self._many_to_many(cls, rel)
                continue
            other = self.class_for(rel.other)
            attrs = dict(rel.attrs)
            if rel.kind == BELONGS_TO:
                local = self._column(cls, rel.self_column, rel)
                remote = self._column(other, self._single_pk(other), rel)
                foreign = local
            else:
                local = self._column(cls, self._single_pk(cls), rel)
                remote = self._column(other, rel.foreign_column or local.name, rel)
                foreign = remote
            attrs.setdefault("primaryjoin", local == remote)
            attrs.setdefault("foreign_keys", [foreign])
            attrs.setdefault("uselist", rel.uselist)
            result[rel.name] = (other, attrs)
        return result

    def _many_to_many(self, cls: type, rel: RelationshipInfo) -> Any:
        link_rel = find_source(cls).relationships[rel.link_rel]
        link_cls = self.class_for(link_rel.other)
        far_rel = find_source(link_cls).relationships.get(rel.foreign_rel)
        if far_rel is None or far_rel.kind != BELONGS_TO:
            raise SetupError(f"many_to_many '{rel.name}': '{rel.foreign_rel}' is not a belongs_to relationship of {class_key(link_cls)}")
        far_cls = self.class_for(far_rel.other)

        local = self._column(cls, self._single_pk(cls), rel)
        link_local = self._column(link_cls, link_rel.foreign_column or local.name, rel)
        link_far = self._column(link_cls, far_rel.self_column, rel)
        far = self._column(far_cls, self._single_pk(far_cls), rel)

        attrs = dict(rel.attrs)
        attrs.setdefault("secondary", self.tables[link_cls])
        attrs.setdefault("primaryjoin", local == link_local)
        attrs.setdefault("secondaryjoin", link_far == far)
        attrs.setdefault("foreign_keys", [link_local, link_far])
        attrs.setdefault("viewonly", True)
        return far_cls, attrs

    def _pair_relationships(self, properties: Dict[type, Dict[str, Any]]) -> None:
        """
        Let a belongs_to relationship and the has_many/has_one/might_have relationship on the other side
        that joins over the same column populate each other
        """
        for cls, rels in properties.items():
            for name, rel in find_source(cls).relationships.items():
                if rel.kind != BELONGS_TO or _is_paired(rels[name][1]):
                    continue
                other = rels[name][0]
                candidates = [
                    other_name
                    for other_name, other_rel in _reverse_candidates(other, properties)
                    if self.class_for(other_rel.other) is cls and (other_rel.foreign_column or self._single_pk(other)) == rel.self_column
                ]
                if len(candidates) != 1:
                    continue
                other_attrs = properties[other][candidates[0]][1]
                if _is_paired(other_attrs):
                    continue
                rels[name][1]["back_populates"] = candidates[0]
                other_attrs["back_populates"] = name


def _is_paired(attrs: Dict[str, Any]) -> bool:
    return any(key in attrs for key in PAIRING_ATTRS)


def _reverse_candidates(other: type, properties: Dict[type, Dict[str, Any]]) -> Iterable:
    if other not in properties:
        return ()
    return [(name, rel) for name, rel in find_source(other).relationships.items() if rel.kind not in (BELONGS_TO, MANY_TO_MANY)]
