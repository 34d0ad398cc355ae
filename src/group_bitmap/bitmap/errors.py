"""Exceptions raised by the membership bitmap."""


class BitmapError(Exception):
    """Base class for bitmap failures."""


class ConfigurationError(BitmapError, ValueError):
    """Raised when a bitmap cannot be constructed from the requested settings."""


class IndexOutOfRange(BitmapError, IndexError):
    """Raised when a raw bit index falls outside ``[0, bit_count)``."""

    def __init__(self, index: int, bit_count: int) -> None:
        super().__init__(f"bit index {index} out of range [0, {bit_count})")
        self.index = index
        self.bit_count = bit_count
