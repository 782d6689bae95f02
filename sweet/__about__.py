__version__ = "0.2.0"
__description__ = "sweet : syntactic sugar for SQLAlchemy model classes"
