# Configuration settings can be set in app.config, as Sweet class attributes or in the environment
# get_config looks them up in that order
import os
import logging
from flask import current_app
from functools import lru_cache
import sweet
from typing import Any, Optional, Tuple


@lru_cache(maxsize=128)
def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter
    :param option: configuration parameter
    :return: configuration value or None
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # RuntimeError: working outside of application context
        result = getattr(sweet.Sweet, option, os.environ.get(option, None))
    return result


def get_default_components() -> Tuple[str, ...]:
    """
    :return: names of the components loaded before every setup block
    """
    components = get_config("SWEET_DEFAULT_COMPONENTS")
    if not components:
        return ()
    if isinstance(components, str):
        components = components.replace(",", " ").split()
    return tuple(components)


def auto_table_name() -> bool:
    """
    :return: whether setup derives the table name from the class name
    """
    value = get_config("SWEET_AUTO_TABLE_NAME")
    if isinstance(value, str):
        return value.strip().lower() not in ("0", "false", "no", "off", "")
    return value is None or bool(value)


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether debug logging is enabled
    :rtype: Boolean
    """
    return sweet.log.getEffectiveLevel() < logging.INFO
