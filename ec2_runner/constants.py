"""Centralized constants and enums for ec2-runner.

Timings are fixed ceilings, not user configuration; clients accept them as
keyword overrides so tests can shrink them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

# =============================================================================
# Actions
# =============================================================================


class Action(StrEnum):
    """Operation requested for a batch."""

    LAUNCH = "launch"
    TERMINATE = "terminate"


# =============================================================================
# EC2
# =============================================================================


# Throttling error codes reported by the EC2 API. Any other ClientError is
# treated as a permanent rejection.
THROTTLING_ERROR_CODES: Final = frozenset({
    "RequestLimitExceeded",
    "Throttling",
    "ThrottlingException",
    "ThrottledException",
    "RequestThrottled",
    "RequestThrottledException",
    "TooManyRequestsException",
    "SlowDown",
})

THROTTLE_MAX_ATTEMPTS: Final = 6
THROTTLE_RETRY_INTERVAL: Final = 10.0

# instance_running waiter: 20 polls x 15s = 5 minutes
INSTANCE_RUNNING_WAIT_DELAY: Final = 15
INSTANCE_RUNNING_MAX_ATTEMPTS: Final = 20


# =============================================================================
# GitHub runners
# =============================================================================


class RunnerStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


GITHUB_API_URL: Final = "https://api.github.com"
GITHUB_SERVER_URL: Final = "https://github.com"
GITHUB_API_VERSION: Final = "2022-11-28"

RUNNERS_PAGE_SIZE: Final = 100

RUNNER_ONLINE_GRACE: Final = 30.0
RUNNER_ONLINE_INTERVAL: Final = 10.0
RUNNER_ONLINE_TIMEOUT: Final = 10 * 60.0


# =============================================================================
# Labels
# =============================================================================

LABEL_TIMESTAMP_CHARS: Final = 4
LABEL_RANDOM_CHARS: Final = 4
