"""Exceptions for guard app."""

from typing import ClassVar


class RateLimitedError(Exception):
    """Raised when a source address exceeds a policy ceiling."""

    status_code: ClassVar[int] = 429

    def __init__(
        self,
        policy_name: str,
        source_address: str,
        limit: int,
        retry_after_seconds: int,
    ) -> None:
        """Initialize RateLimitedError.

        Args:
            policy_name: Name of the exceeded policy.
            source_address: Throttled client address.
            limit: Requests allowed per window.
            retry_after_seconds: Seconds until the window resets.
        """
        self.policy_name = policy_name
        self.source_address = source_address
        self.limit = limit
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f'Too many {policy_name} requests from this address, '
            'please try again later',
        )


class AuthenticationRequiredError(Exception):
    """Raised when an operation needs an authenticated principal."""

    status_code: ClassVar[int] = 401


class ConflictError(Exception):
    """Raised when registering an email that is already taken."""

    status_code: ClassVar[int] = 409
