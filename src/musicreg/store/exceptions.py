"""Custom exceptions for the tabular store."""


class StoreError(Exception):
    """Base exception for tabular store errors."""


class TableNotFoundError(StoreError):
    """Table (sheet) with given name does not exist."""


class RecordNotFoundError(StoreError):
    """Row with given primary key does not exist in the table."""


class RecordExistsError(StoreError):
    """A different row with the same primary key already exists."""
