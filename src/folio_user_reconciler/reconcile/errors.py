"""Errors raised while reconciling users with FOLIO."""

import typing


class RequestValidationError(ValueError):
    """The batch or one of its records is malformed and cannot be imported."""

    def __init__(self, parameters: list[dict[str, typing.Any]]) -> None:
        """Initializes a new instance of RequestValidationError."""
        self.parameters = parameters
        keys = ", ".join(str(p["key"]) for p in parameters)
        super().__init__(f"Invalid import request: {keys}")


class BatchFatalError(RuntimeError):
    """The batch as a whole cannot be imported."""

    def __init__(self, error: str) -> None:
        """Initializes a new instance of BatchFatalError."""
        self.error = error
        super().__init__(error)


class RecordError(Exception):
    """A single user cannot be imported; it does not affect other users."""

    def __init__(self, reason: str, stage: str) -> None:
        """Initializes a new instance of RecordError."""
        self.reason = reason
        self.stage = stage
        super().__init__(reason)


class DirectoryError(RuntimeError):
    """A request to FOLIO failed or returned something unexpected."""
