from coursecore.state_machines.progress_status import (
    ProgressStatus,
    TRANSITIONS,
    can_transition,
    coerce_status,
    compute_percentage,
    derive_status,
)
