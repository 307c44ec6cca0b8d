"""Exceptions raised by `paycode.bitcoin` while parsing wire-format
objects and scripts."""


class DeserializationError(Exception):
    """Generic error for exceptions found while deserializing an object."""
    pass


class InvalidTransactionInputError(DeserializationError):
    """Raised when a TransactionInput object cannot be deserialized."""
    pass


class InvalidTransactionOutputError(DeserializationError):
    """Raised when a TransactionOutput object cannot be deserialized."""
    pass


class InvalidTransactionError(DeserializationError):
    """Raised when a Transaction object cannot be deserialized."""
    pass


class ScriptParsingError(Exception):
    """Raised when parsing an invalid Script."""
    pass
