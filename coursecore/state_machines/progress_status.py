"""
coursecore/state_machines/progress_status.py
Course Progress Status State Machine

State Flow: Not Started → In Progress → Completed
                              ↑______________|   (curriculum grew)

"Started" is kept in the vocabulary so legacy records deserialize; it is
never produced by a computed transition and behaves exactly like In Progress.

A record never goes back to Not Started once any item was completed, even if
every completed item was later removed from the curriculum.
"""
from enum import Enum
from typing import Dict, List, Optional


class ProgressStatus(str, Enum):
    """Wire values are persisted verbatim."""
    NOT_STARTED = "Not Started"
    STARTED = "Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"

    @property
    def is_started(self) -> bool:
        return self != ProgressStatus.NOT_STARTED


TRANSITIONS: Dict[ProgressStatus, List[ProgressStatus]] = {
    ProgressStatus.NOT_STARTED: [ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED],
    ProgressStatus.STARTED: [ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED],
    ProgressStatus.IN_PROGRESS: [ProgressStatus.COMPLETED],
    ProgressStatus.COMPLETED: [ProgressStatus.IN_PROGRESS],
}


def can_transition(current: ProgressStatus, target: ProgressStatus) -> bool:
    """Staying in the same state is always allowed."""
    if current == target:
        return True
    return target in TRANSITIONS.get(current, [])


def coerce_status(value: Optional[str]) -> Optional[ProgressStatus]:
    """Stored string -> enum; unknown strings count as absent."""
    if value is None:
        return None
    try:
        return ProgressStatus(value)
    except ValueError:
        return None


def compute_percentage(completed: int, total: int) -> int:
    """
    Integer percentage rounded half up: 1/8 -> 13, 1/3 -> 33, 2/3 -> 67.

    0 when total is 0. completed is clamped to [0, total].
    """
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    return (200 * completed + total) // (2 * total)


def derive_status(
    completed: int,
    total: int,
    previous: Optional[ProgressStatus] = None,
) -> ProgressStatus:
    """
    Next status from the live counts and the previously stored status.

        derive_status(2, 2)                                -> Completed
        derive_status(1, 2)                                -> In Progress
        derive_status(0, 2, ProgressStatus.NOT_STARTED)    -> Not Started
        derive_status(0, 3, ProgressStatus.COMPLETED)      -> In Progress
    """
    if total > 0 and completed >= total:
        return ProgressStatus.COMPLETED
    if completed > 0:
        return ProgressStatus.IN_PROGRESS
    if previous is None or previous == ProgressStatus.NOT_STARTED:
        return ProgressStatus.NOT_STARTED
    return ProgressStatus.IN_PROGRESS
