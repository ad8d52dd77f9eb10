"""Unit configurations, boot images and results.

All types are immutable. A batch is resolved once at the input boundary
into an ordered tuple of unit specs; nothing downstream inspects how the
inputs were shaped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from .constants import Action

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

type Tag = tuple[str, str]


@dataclass(frozen=True, slots=True)
class ImageCriteria:
    """AMI selection criteria. At least one field must be set."""

    name: re.Pattern[str] | None = None
    owners: tuple[str, ...] = ()
    filters: tuple[tuple[str, str], ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.name is None and not self.owners and not self.filters


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    unit: str
    runner_user: str
    runner_directory: str
    instance_type: str
    subnet_id: str
    image: ImageCriteria
    security_group_ids: tuple[str, ...] = ()
    tags: tuple[Tag, ...] = ()

    @property
    def action(self) -> Action:
        return Action.LAUNCH


@dataclass(frozen=True, slots=True)
class TerminateSpec:
    unit: str
    instance_id: str
    label: str

    @property
    def action(self) -> Action:
        return Action.TERMINATE


type UnitSpec = LaunchSpec | TerminateSpec


@dataclass(frozen=True, slots=True)
class Batch:
    """Uniform sequence of units for one invocation.

    ``is_batch`` is False only for a plain single-unit invocation (no
    ``matrix`` input), in which case the single unit's identity is ``""``.
    """

    action: Action
    units: tuple[UnitSpec, ...]
    is_batch: bool = False

    def __post_init__(self) -> None:
        ids = [u.unit for u in self.units]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate unit identities in batch: {ids}")
        if any(u.action is not self.action for u in self.units):
            raise ValueError(f"Batch mixes actions; expected only {self.action}")


@dataclass(frozen=True, slots=True)
class BootImage:
    image_id: str
    name: str = ""
    creation_date: datetime | None = None

    @property
    def created(self) -> datetime:
        return self.creation_date or EPOCH


@dataclass(frozen=True, slots=True)
class Runner:
    """A self-hosted runner as reported by GitHub."""

    id: int
    name: str
    status: str
    labels: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class Launched:
    unit: str
    instance_id: str
    label: str

    def to_output(self) -> dict[str, str]:
        return {"instance-id": self.instance_id, "label": self.label}


@dataclass(frozen=True, slots=True)
class BatchResult:
    action: Action
    is_batch: bool = False
    launched: dict[str, Launched] = field(default_factory=dict)
    failures: dict[str, BaseException] = field(default_factory=dict)

    @property
    def failed(self) -> bool:
        return bool(self.failures)

    @property
    def matrix(self) -> dict[str, dict[str, str]]:
        return {unit: item.to_output() for unit, item in self.launched.items()}
