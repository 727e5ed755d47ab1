"""Database models for guard app."""

from typing import ClassVar, Final, final, override

from django.db import models

# Constants for field max lengths
_POLICY_MAX_LENGTH: Final = 32
_SOURCE_ADDRESS_MAX_LENGTH: Final = 64


@final
class RateLimitWindow(models.Model):
    """Fixed-window request counter for one (policy, source address) pair.

    The row is reset in place when its window elapses, so the table holds
    at most one row per policy and client address.
    """

    policy = models.CharField(max_length=_POLICY_MAX_LENGTH)

    source_address = models.CharField(max_length=_SOURCE_ADDRESS_MAX_LENGTH)

    window_started_at = models.DateTimeField(
        help_text='Start of the current counting window',
    )

    hits = models.PositiveIntegerField(
        default=0,
        help_text='Requests seen in the current window',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Rate Limit Window'  # type: ignore[mutable-override]
        verbose_name_plural = 'Rate Limit Windows'  # type: ignore[mutable-override]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['policy', 'source_address'],
                name='guard_policy_source_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.policy}:{self.source_address} = {self.hits}'
