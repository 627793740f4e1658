"""Results of integration lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from readlater.domain.events.integration_events import DomainEvent
    from readlater.domain.exceptions.domain_exceptions import DomainException
    from readlater.domain.models.integration import Integration


@dataclass
class IntegrationOutcome:
    """What a create/update/delete did.

    ``partial`` is True when the record was written but its sync task could
    not be provisioned; ``error`` then holds the provisioning failure. The
    record heals on the next enable.
    """

    integration: Integration
    events: list[DomainEvent] = field(default_factory=list)
    partial: bool = False
    error: DomainException | None = None

    @property
    def task_provisioned(self) -> bool:
        return self.integration.task_name is not None
