from kenz_waitlist.client.strategies import (
    LocalSimulatedStore,
    RemoteLedgerClient,
    SubmissionResult,
    SubmissionStrategy,
    check_backend_reachable,
)
from kenz_waitlist.client.widget import (
    IntakeWidget,
    LiveRegion,
    OutcomeKind,
    ValidationResult,
    WidgetOutcome,
    validate,
)

__all__ = [
    "IntakeWidget",
    "LiveRegion",
    "LocalSimulatedStore",
    "OutcomeKind",
    "RemoteLedgerClient",
    "SubmissionResult",
    "SubmissionStrategy",
    "ValidationResult",
    "WidgetOutcome",
    "check_backend_reachable",
    "validate",
]
