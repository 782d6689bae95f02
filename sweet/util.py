#
import re
from typing import Callable

NAMESPACE_SEPARATOR = re.compile(r"\.|::")


class ClassPropertyDescriptor:
    """
    Read-only property on the class, eg. `Person._s_components`
    """

    def __init__(self, fget: classmethod) -> None:
        self.fget = fget

    def __get__(self, obj, klass=None):
        if klass is None:
            klass = type(obj)
        return self.fget.__get__(obj, klass)()


def classproperty(func: Callable) -> ClassPropertyDescriptor:
    if not isinstance(func, (classmethod, staticmethod)):
        func = classmethod(func)
    return ClassPropertyDescriptor(func)


def unqualify(name: str) -> str:
    """
    Strip a qualified name to its last segment, eg. "World::Person::add_columns" => "add_columns"
    """
    return NAMESPACE_SEPARATOR.split(name)[-1]


def class_key(target) -> str:
    """
    :param target: class or object
    :return: "module.qualname" of the target class
    """
    cls = target if isinstance(target, type) else type(target)
    return f"{cls.__module__}.{cls.__qualname__}"


def default_table_name(name: str) -> str:
    """
    The default table name is the last part of the class name, lower-cased
    eg. "MyDB.Whatever.MyTable" => "mytable"
    """
    return unqualify(name).lower()
