"""Request gating: throttling, authentication and ownership checks."""

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, final

from django.conf import settings
from django.http import HttpRequest

from server.apps.audit.logic.audit_log import (
    AuditSink,
    DatabaseAuditLog,
    record_event,
)
from server.apps.audit.models import EventKind
from server.apps.guard.exceptions import (
    AuthenticationRequiredError,
    RateLimitedError,
)
from server.apps.guard.logic.rate_limiting import RateLimiter, build_rate_limiter
from server.apps.sharing.exceptions import ForbiddenError

if TYPE_CHECKING:
    from server.apps.sharing.models import EncryptedFile

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT: Final = 'unknown'

# Matches AuditEvent field lengths
_SOURCE_ADDRESS_MAX_LENGTH: Final = 64
_CLIENT_SIGNATURE_MAX_LENGTH: Final = 512


def get_trust_forwarded_for() -> bool:
    """Whether a trusted proxy sets `X-Forwarded-For`.

    Returns:
        RATE_LIMIT_TRUST_FORWARDED_FOR from settings or default of False.
    """
    return getattr(settings, 'RATE_LIMIT_TRUST_FORWARDED_FOR', False)


@final
@dataclass(frozen=True)
class ClientContext:
    """Origin of a request.

    `source_address` is what audit events record and may come from a
    client-supplied header. `throttle_address` keys the rate limiter and
    only comes from the peer address, unless the deployment trusts its
    proxy to set `X-Forwarded-For`.
    """

    source_address: str
    client_signature: str
    throttle_address: str | None = None

    @property
    def rate_limit_key(self) -> str:
        """Address counted against rate-limit policies."""
        return self.throttle_address or self.source_address

    @classmethod
    def from_request(cls, request: HttpRequest) -> 'ClientContext':
        """Identify the client behind a Django request.

        The first `X-Forwarded-For` hop wins over `REMOTE_ADDR` for the
        audit address, so it survives a reverse proxy. Rate limiting keys
        on `REMOTE_ADDR` unless RATE_LIMIT_TRUST_FORWARDED_FOR is set,
        since any client can send the header.

        Args:
            request: Incoming request.

        Returns:
            ClientContext for the request.
        """
        remote_address = request.META.get('REMOTE_ADDR', '') or UNKNOWN_CLIENT
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        forwarded_address = forwarded.split(',')[0].strip()
        source_address = forwarded_address or remote_address

        if get_trust_forwarded_for():
            throttle_address = source_address
        else:
            throttle_address = remote_address

        client_signature = request.META.get('HTTP_USER_AGENT', '')
        return cls(
            source_address=source_address[:_SOURCE_ADDRESS_MAX_LENGTH],
            client_signature=(
                client_signature or UNKNOWN_CLIENT
            )[:_CLIENT_SIGNATURE_MAX_LENGTH],
            throttle_address=throttle_address[:_SOURCE_ADDRESS_MAX_LENGTH],
        )


@final
class AccessGuard:
    """Gate registry operations behind limits and identity checks."""

    def __init__(self, limiter: RateLimiter, audit_log: AuditSink) -> None:
        """Initialize the guard.

        Args:
            limiter: Rate limiter applying the named policies.
            audit_log: Sink receiving RATE_LIMITED events.
        """
        self._limiter = limiter
        self._audit_log = audit_log

    @property
    def audit_log(self) -> AuditSink:
        """Sink shared with the operations this guard protects."""
        return self._audit_log

    def throttle(
        self,
        policy_name: str,
        client: ClientContext,
        file_id: uuid.UUID | str | None = None,
    ) -> None:
        """Count a request against a policy.

        Args:
            policy_name: Policy to apply.
            client: Request origin.
            file_id: Record the request targets, for the audit trail.

        Raises:
            RateLimitedError: If the client exceeded the policy ceiling.
        """
        try:
            self._limiter.check(policy_name, client.rate_limit_key)
        except RateLimitedError as error:
            record_event(
                self._audit_log,
                client,
                EventKind.RATE_LIMITED,
                file_id=file_id,
                detail={
                    'policy': policy_name,
                    'limit': error.limit,
                },
            )
            raise

    def require_principal(self, user: Any) -> Any:
        """Ensure the request carries an authenticated principal.

        Args:
            user: `request.user` or None.

        Returns:
            The authenticated user.

        Raises:
            AuthenticationRequiredError: If nobody is logged in.
        """
        if user is None or not user.is_authenticated:
            raise AuthenticationRequiredError('Authentication required')
        return user


def require_owner(record: 'EncryptedFile', requester_id: int) -> None:
    """Ensure the requester owns the record before mutating it.

    Args:
        record: Record about to be mutated.
        requester_id: Authenticated principal id.

    Raises:
        ForbiddenError: If the requester is not the owner.
    """
    if record.owner_id != requester_id:
        logger.warning(
            'Principal %s attempted to modify file %s owned by %s',
            requester_id,
            record.id,
            record.owner_id,
        )
        raise ForbiddenError('You do not own this file')


def build_access_guard(
    limiter: RateLimiter | None = None,
    audit_log: AuditSink | None = None,
) -> AccessGuard:
    """Create a guard wired to the configured stores.

    Args:
        limiter: Rate limiter, defaults to the database-backed limiter.
        audit_log: Audit sink, defaults to the database audit log.

    Returns:
        AccessGuard instance.
    """
    return AccessGuard(
        limiter=limiter or build_rate_limiter(),
        audit_log=audit_log or DatabaseAuditLog(),
    )
