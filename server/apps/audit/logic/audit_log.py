"""Best-effort audit sink.

Appending an event can never fail the request that triggered it:
the sink contract has no error channel, failures only reach the
local diagnostic logger.
"""

import logging
import uuid
from typing import TYPE_CHECKING, Any, Protocol, final

from django.db import transaction

from server.apps.audit.models import AuditEvent, EventKind

if TYPE_CHECKING:
    from server.apps.guard.logic.access_guard import ClientContext

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    """Write-only destination for audit events."""

    def append(self, event: AuditEvent) -> None:
        """Persist event. Must not raise."""


@final
class DatabaseAuditLog:
    """Audit sink storing events in the `AuditEvent` table."""

    def append(self, event: AuditEvent) -> None:
        """Store event, swallowing any storage failure.

        The insert runs in its own savepoint so a failed write leaves
        an enclosing transaction usable.

        Args:
            event: Unsaved AuditEvent instance.
        """
        try:
            with transaction.atomic():
                event.save(force_insert=True)
        except Exception:
            logger.exception(
                'Failed to append audit event %s for %s',
                event.event_kind,
                event.source_address,
            )


def build_event(
    client: 'ClientContext',
    event_kind: EventKind,
    file_id: uuid.UUID | str | None = None,
    detail: dict[str, Any] | None = None,
) -> AuditEvent:
    """Build an unsaved audit event for a client request.

    Args:
        client: Request origin.
        event_kind: What happened.
        file_id: Record the event refers to, if any.
        detail: Optional structured context.

    Returns:
        AuditEvent ready for `AuditSink.append`.
    """
    return AuditEvent(
        source_address=client.source_address,
        client_signature=client.client_signature,
        file_id=file_id,
        event_kind=event_kind,
        detail=detail,
    )


def record_event(
    sink: AuditSink,
    client: 'ClientContext',
    event_kind: EventKind,
    file_id: uuid.UUID | str | None = None,
    detail: dict[str, Any] | None = None,
) -> None:
    """Build and append an event in one call."""
    sink.append(build_event(client, event_kind, file_id, detail))
