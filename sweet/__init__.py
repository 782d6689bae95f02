# flake8: noqa: F401
#
# sweet: syntactic sugar for SQLAlchemy model classes
#
from .sweet_init import Sweet, log
from .errors import SweetError, UnknownOperation, SetupError, ComponentNotFoundError
from .components import Component, register_component, load_components
from .dispatch import setup, setup_class, current_setup, Redispatcher
from .base import SweetBase
from .schema import Schema
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "Sweet",
    "log",
    # setup:
    "setup",
    "setup_class",
    "current_setup",
    "Redispatcher",
    "SweetBase",
    # components:
    "Component",
    "register_component",
    "load_components",
    # mapping:
    "Schema",
    # Errors:
    "SweetError",
    "UnknownOperation",
    "SetupError",
    "ComponentNotFoundError",
)
