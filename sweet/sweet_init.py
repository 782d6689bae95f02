import logging
import os
import sys
from flask import Flask
import flask.app
from typing import Any, Optional
from .config import get_config


class Sweet:
    """This class holds the sweet configuration and hooks it into a Flask application
    :param app: a Flask application (optional)
    :param schema: the `Schema` used by the application models
    """

    # Configuration settings are stored as class variables
    SWEET_DEFAULT_COMPONENTS = ("PK::Auto", "Core")
    SWEET_AUTO_TABLE_NAME = True
    LOGLEVEL = logging.WARNING

    def __init__(self, app: Optional[flask.app.Flask] = None, *args, **kwargs) -> None:
        """
        Constructor
        """
        self.app = app
        self.schema = None
        if app is not None:
            self.init_app(app, *args, **kwargs)

    def init_app(self, app: flask.app.Flask, schema: Any = None, **kwargs) -> None:
        """
        Copy the app configuration and register the extension
        """
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        self.app = app
        self.schema = schema

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for conf_name, conf_val in kwargs.items():
            setattr(Sweet, conf_name, conf_val)

        for conf_name, conf_val in app.config.items():
            if conf_name.startswith("SWEET_"):
                setattr(Sweet, conf_name, conf_val)

        # options may have been read before the app was created
        get_config.cache_clear()
        app.extensions["sweet"] = self

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        Specify the log format, records go to sys.stderr
        """
        log = logging.getLogger(__name__)
        if log.level == logging.NOTSET:
            handler = logging.StreamHandler(sys.stderr)
            formatter = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s")
            handler.setFormatter(formatter)
            log.setLevel(loglevel)
            log.addHandler(handler)
        return log


#
# logging initialization
#
try:
    DEBUG = os.getenv("DEBUG", logging.WARNING)
    LOGLEVEL = int(DEBUG)
except ValueError:  # pragma: no cover
    print(f'Invalid LogLevel in DEBUG Environment Variable! "{DEBUG}"')
    LOGLEVEL = logging.INFO

log = Sweet.init_logging(LOGLEVEL)
