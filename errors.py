"""Exception types raised by the HWiNFO log pipeline."""

UNKNOWN_ERROR_TEXT = "Unknown error"


class HwlogError(Exception):
    """Base class for pipeline errors that callers are expected to present."""


class UnrecognizedFieldError(HwlogError, KeyError):
    """Raised when a requested sensor field has no data in any row."""

    def __init__(self, field_key: str, row_count: int = 0):
        self.field_key = field_key
        self.row_count = row_count
        super().__init__(field_key)

    def __str__(self) -> str:
        return f"Field {self.field_key!r} not found in {self.row_count} row(s)"


def format_error(exc: object) -> str:
    """Return a readable message for ``exc`` including its ``__cause__`` chain."""

    if exc is None:
        return UNKNOWN_ERROR_TEXT
    if isinstance(exc, str):
        return exc

    message = str(exc) or type(exc).__name__
    cause = getattr(exc, "__cause__", None)
    if cause is not None:
        return f"{message}\n{format_error(cause)}"
    return message


__all__ = ["HwlogError", "UnrecognizedFieldError", "format_error"]
