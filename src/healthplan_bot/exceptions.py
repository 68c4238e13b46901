"""Bot-level exceptions.

Turn errors are reported to the conversation by the turn-error hook; only
startup problems surface as exceptions of their own.
"""

from __future__ import annotations


class MissingConfigurationError(ValueError):
    """Raised at startup when required environment variables are not set."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = list(missing or [])
