class DotCollectionError(Exception):
    """Base exception for dotcollection errors."""


class InvalidCallbackError(DotCollectionError, TypeError):
    """Raised when a callback is required but the argument is not callable."""


class SerializationError(DotCollectionError, ValueError):
    """Raised when items cannot be encoded to, or decoded from, a blob."""


class UnknownFormatError(DotCollectionError):
    """Raised when a requested serialization format is not supported."""
