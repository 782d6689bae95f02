# Map the column "data_type" names used in add_columns() to SQLAlchemy types
#
# Lookups are case insensitive and ignore everything after an opening parenthesis,
# so "VARCHAR(64)" and "varchar" map to the same type.
# If a type isn't found in the table, String is used
#
from sqlalchemy import types as sqla_types
from typing import Any, Optional

DATA_TYPES = {
    "integer": sqla_types.Integer,
    "int": sqla_types.Integer,
    "smallint": sqla_types.SmallInteger,
    "tinyint": sqla_types.SmallInteger,
    "mediumint": sqla_types.Integer,
    "bigint": sqla_types.BigInteger,
    "serial": sqla_types.Integer,
    "bigserial": sqla_types.BigInteger,
    "numeric": sqla_types.Numeric,
    "decimal": sqla_types.Numeric,
    "float": sqla_types.Float,
    "real": sqla_types.Float,
    "double": sqla_types.Float,
    "varchar": sqla_types.String,
    "char": sqla_types.String,
    "nvarchar": sqla_types.Unicode,
    "text": sqla_types.Text,
    "tinytext": sqla_types.Text,
    "mediumtext": sqla_types.Text,
    "longtext": sqla_types.Text,
    "boolean": sqla_types.Boolean,
    "bool": sqla_types.Boolean,
    "date": sqla_types.Date,
    "datetime": sqla_types.DateTime,
    "timestamp": sqla_types.DateTime,
    "time": sqla_types.Time,
    "interval": sqla_types.Interval,
    "blob": sqla_types.LargeBinary,
    "longblob": sqla_types.LargeBinary,
    "bytea": sqla_types.LargeBinary,
    "binary": sqla_types.LargeBinary,
    "varbinary": sqla_types.LargeBinary,
    "json": sqla_types.JSON,
    "uuid": sqla_types.Uuid,
}

# types that accept a "size" argument
SIZED_TYPES = (sqla_types.String, sqla_types.Numeric, sqla_types.LargeBinary)


def get_sqla_type(data_type: Optional[str], size: Any = None) -> sqla_types.TypeEngine:
    """
    :param data_type: column data_type name, eg. "integer" or "varchar"
    :param size: optional size, eg. 64 for a varchar or (10, 2) for a numeric
    :return: SQLAlchemy type instance
    """
    key = (data_type or "varchar").split("(")[0].strip().lower()
    type_class = DATA_TYPES.get(key, sqla_types.String)
    if size is None or not issubclass(type_class, SIZED_TYPES):
        return type_class()
    if isinstance(size, (list, tuple)):
        return type_class(*size)
    return type_class(size)


def is_integer_type(data_type: Optional[str]) -> bool:
    key = (data_type or "").split("(")[0].strip().lower()
    type_class = DATA_TYPES.get(key)
    return type_class is not None and issubclass(type_class, sqla_types.Integer)
