"""
Error taxonomy for the content vault.

DuplicateKeyError never leaves the intake path (it is retried with a fresh key).
ContentNotFoundError is deliberately the same for "never existed" and "source post
was deleted". GateError carries the per-channel breakdown for the join prompt.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from filegate.gate.models import GateResult


class VaultError(Exception):
    """Base class for all vault errors."""


class DuplicateKeyError(VaultError):
    def __init__(self, key: str):
        super().__init__(f"Key already issued: {key}")
        self.key = key


class KeyIssuanceError(VaultError):
    """Raised when every issued key collided with an existing one."""

    def __init__(self, source_post_id: int, attempts: int):
        super().__init__(f"Could not issue a unique key for post {source_post_id} after {attempts} attempts")
        self.source_post_id = source_post_id
        self.attempts = attempts


class ContentNotFoundError(VaultError):
    def __init__(self, key: str):
        super().__init__("Content unavailable")
        self.key = key


class GateError(VaultError):
    """Membership gate not satisfied; the request was stored for a later re-check."""

    def __init__(self, result: GateResult):
        super().__init__("Membership gate not satisfied")
        self.result = result


class NoPendingRequestError(VaultError):
    """Re-check found nothing to replay (gate is satisfied)."""


class DeliveryFailedError(VaultError):
    """Copying content to the user failed. Safe to retry."""

    def __init__(self, key: str, cause: Exception | None = None):
        super().__init__(f"Delivery failed for key {key}")
        self.key = key
        self.cause = cause


class TransportError(Exception):
    """Messaging gateway call failed."""

    def __init__(self, message: str, error_code: int = 0, description: str = ""):
        super().__init__(message)
        self.error_code = error_code
        self.description = description


class RateLimitedError(TransportError):
    def __init__(self, message: str, retry_after: float, description: str = ""):
        super().__init__(message, error_code=429, description=description)
        self.retry_after = retry_after


class ForbiddenError(TransportError):
    """Bot lacks rights for the operation (e.g. cannot edit channel posts)."""


class MessageGoneError(TransportError):
    """Target message no longer exists."""
