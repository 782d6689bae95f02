"""Per-class setup configuration.

Every class configured through a setup block owns a :class:`ResultSource`,
stored as ``_s_source`` in the class ``__dict__``. The components fill it in,
:class:`~sweet.schema.Schema` turns it into SQLAlchemy tables and mappers.

A subclass starts out with a copy of the source of its nearest configured
base class, so it never mutates the configuration of its parent.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .errors import SetupError

SOURCE_ATTR = "_s_source"

# keys accepted in an add_columns() column info dict
COLUMN_INFO_KEYS = ("data_type", "size", "is_nullable", "default_value", "is_auto_increment", "is_foreign_key", "sequence", "extra")

BELONGS_TO = "belongs_to"
HAS_MANY = "has_many"
HAS_ONE = "has_one"
MIGHT_HAVE = "might_have"
MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True)
class ColumnInfo:
    """Column definition, as passed to ``add_columns``"""

    name: str
    data_type: Optional[str] = None
    size: Any = None
    is_nullable: Optional[bool] = None
    default_value: Any = None
    is_auto_increment: bool = False
    is_foreign_key: bool = False
    sequence: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_info(cls, name: str, info: Optional[Mapping[str, Any]] = None) -> "ColumnInfo":
        info = dict(info or {})
        unknown = sorted(set(info) - set(COLUMN_INFO_KEYS))
        if unknown:
            raise SetupError(f"Invalid column info for '{name}': {', '.join(unknown)}")
        return cls(name=name, **info)

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "name"}


@dataclass(frozen=True)
class RelationshipInfo:
    """Relationship definition

    ``self_column`` is the foreign key column of a belongs_to relationship,
    ``foreign_column`` the column of the related class that points to our primary key
    (has_many, has_one, might_have), ``None`` means it has the name of our primary key column.
    ``link_rel`` and ``foreign_rel`` are only used by many_to_many.
    """

    name: str
    kind: str
    other: Union[str, type, None] = None
    self_column: Optional[str] = None
    foreign_column: Optional[str] = None
    link_rel: Optional[str] = None
    foreign_rel: Optional[str] = None
    attrs: Mapping[str, Any] = field(default_factory=dict)

    @property
    def uselist(self) -> bool:
        return self.kind in (HAS_MANY, MANY_TO_MANY)


@dataclass
class ResultSource:
    """Configuration collected for a single class"""

    table_name: Optional[str] = None
    columns: Dict[str, ColumnInfo] = field(default_factory=dict)
    primary_key: Tuple[str, ...] = ()
    unique_constraints: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    relationships: Dict[str, RelationshipInfo] = field(default_factory=dict)
    sequence: Optional[str] = None
    components: Tuple[type, ...] = ()

    def copy(self) -> "ResultSource":
        return replace(
            self,
            columns=dict(self.columns),
            unique_constraints=dict(self.unique_constraints),
            relationships=dict(self.relationships),
        )

    def check_columns(self, names, what: str) -> None:
        missing = [name for name in names if name not in self.columns]
        if missing:
            raise SetupError(f"{what} references unknown column(s): {', '.join(missing)}")


def find_source(cls: type) -> Optional[ResultSource]:
    """
    :return: the source of `cls` or of its nearest configured base class, without creating one
    """
    for klass in cls.__mro__:
        source = vars(klass).get(SOURCE_ATTR)
        if source is not None:
            return source
    return None


def source_of(target) -> ResultSource:
    """
    :param target: class or object being configured
    :return: the (mutable) source owned by the target class
    """
    cls = target if isinstance(target, type) else type(target)
    source = vars(cls).get(SOURCE_ATTR)
    if source is None:
        inherited = find_source(cls)
        source = inherited.copy() if inherited is not None else ResultSource()
        # the inherited table name belongs to the parent
        source.table_name = None
        setattr(cls, SOURCE_ATTR, source)
    return source
