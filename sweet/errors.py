# Exceptions raised while setting up model classes
#
# Every exception is logged when it is created, the log level determines how
# much detail ends up in the logs:
#
# [2024-01-01 12:00:00,000] ERROR: unknown class setup method 'add_colums' called at world.Person
#
import traceback
from sqlalchemy.exc import DontWrapMixin
import sweet
from .config import is_debug
from .util import class_key


class SweetError(Exception, DontWrapMixin):
    """
    Base class of the sweet exceptions
    """

    message = ""

    def __init__(self, message=""):
        Exception.__init__(self, message)
        self.message = message

    def __str__(self):
        return self.message


class UnknownOperation(SweetError, AttributeError):
    """
    This exception is raised when a setup block calls a name that none of the
    classes in the capability chain of the target implements
    """

    def __init__(self, name, target):
        """
        :param name: the name that was called
        :param target: the class (or object) being set up
        """
        self.name = name
        self.target = target
        SweetError.__init__(self, f"unknown class setup method '{name}' called at {class_key(target)}")
        sweet.log.error(self.message)
        if is_debug():
            sweet.log.debug("".join(traceback.format_stack(limit=8)))


class SetupError(SweetError):
    """
    This exception is raised when a class is configured with invalid values
    """

    def __init__(self, message=""):
        SweetError.__init__(self, message)
        sweet.log.warning("SetupError: %s", message)


class ComponentNotFoundError(SweetError, LookupError):
    """
    This exception is raised when a component name can't be resolved
    """

    def __init__(self, name):
        self.name = name
        SweetError.__init__(self, f"component '{name}' not found")
        sweet.log.error(self.message)
