from __future__ import annotations

import asyncio
from typing import Optional


class ConfigurationError(Exception):
    """Raised when there's an error in configuration."""

    pass


class InvalidArgumentError(ValueError):
    """Raised when a caller-supplied parameter violates a documented precondition."""

    pass


class AuthenticationError(Exception):
    """Raised when an auth token can't be obtained."""

    pass


class ApiError(Exception):
    """
    Raised when an HTTP exchange with the API fails.

    A failed status code populates ``status_code`` and ``content``. An exception
    raised while sending the request or reading the response is available as
    ``__cause__`` and leaves ``status_code`` unset.

    Attributes:
        status_code: HTTP status code of the failed response, if any.
        content: Response body (best effort) of the failed response, if any.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, content: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.content = content


class ConversionError(Exception):
    """
    Raised when the external audio encoder fails.

    Attributes:
        exit_code: Encoder exit code, if the process ran to completion.
        error_output: Captured standard error of the encoder, if available.
    """

    def __init__(self, message: str, *, exit_code: Optional[int] = None, error_output: Optional[str] = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.error_output = error_output


class CancelledError(asyncio.CancelledError):
    """Raised when an operation is cancelled before completion."""

    pass
