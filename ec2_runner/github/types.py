"""GitHub REST API response types.

TypedDicts for API responses - no conversion needed.
"""

from __future__ import annotations

from typing import NotRequired, TypedDict


class RunnerLabelResponse(TypedDict):
    name: str
    id: NotRequired[int]
    type: NotRequired[str]  # "read-only" | "custom"


class RunnerResponse(TypedDict):
    """Self-hosted runner as listed for a repository."""

    id: int
    name: str
    os: NotRequired[str]
    status: str  # "online" | "offline"
    busy: NotRequired[bool]
    labels: list[RunnerLabelResponse]


class RunnersListResponse(TypedDict):
    total_count: int
    runners: list[RunnerResponse]


class RegistrationTokenResponse(TypedDict):
    token: str
    expires_at: str
