"""REST side of the backend: validation and result submission."""

from .client import (
    BackendClient,
    BackendClientError,
    BackendNotFoundError,
    BackendRequestError,
)
from .validator import CanStart, CannotStart, SessionValidator, ValidationFailed, ValidationOutcome

__all__ = [
    "BackendClient",
    "BackendClientError",
    "BackendNotFoundError",
    "BackendRequestError",
    "CanStart",
    "CannotStart",
    "SessionValidator",
    "ValidationFailed",
    "ValidationOutcome",
]
