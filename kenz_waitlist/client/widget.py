import logging
import re
from enum import Enum
from typing import List, Optional

import httpx
from pydantic import BaseModel

from kenz_waitlist.core.exceptions import BackendUnreachableError
from kenz_waitlist.client.strategies import (
    LocalSimulatedStore,
    RemoteLedgerClient,
    SubmissionResult,
    SubmissionStrategy,
    check_backend_reachable,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MSG_REQUIRED = "Please enter your email address"
MSG_INVALID = "Please enter a valid email address"
MSG_NETWORK = "Network error. Please check your connection and try again."
MSG_GENERIC = "Something went wrong. Please try again."


class ValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None


def validate(candidate: Optional[str]) -> ValidationResult:
    """Syntactic check only; the server still has the final say."""
    email = (candidate or "").strip()
    if not email:
        return ValidationResult(valid=False, reason=MSG_REQUIRED)
    if not EMAIL_PATTERN.match(email):
        return ValidationResult(valid=False, reason=MSG_INVALID)
    return ValidationResult(valid=True)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    ALREADY_REGISTERED = "already_registered"
    VALIDATION_ERROR = "validation_error"
    REQUEST_FAILED = "request_failed"


class WidgetOutcome(BaseModel):
    kind: OutcomeKind
    message: str
    retryable: bool = False
    result: Optional[SubmissionResult] = None


class LiveRegion:
    """Status text exposed to assistive technology (aria-live="polite")."""

    politeness = "polite"
    atomic = True

    def __init__(self):
        self.text = ""
        self.history: List[str] = []

    def announce(self, message: str) -> None:
        self.text = message
        self.history.append(message)


class IntakeWidget:
    """Email capture form logic without the rendering.

    The delivery strategy is picked by checking the endpoint before the first
    submission: the real API when it answers, the simulated store otherwise.
    If the API drops mid-request the check runs again and picks afresh.
    Only one submission runs at a time; extra attempts are dropped.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        remote: SubmissionStrategy = None,
        simulated: SubmissionStrategy = None,
        transport: httpx.AsyncBaseTransport = None,
        source: str = "landing_page",
    ):
        self.endpoint = endpoint
        self.transport = transport
        self.source = source
        self.remote = remote or RemoteLedgerClient(endpoint, transport=transport)
        self.simulated = simulated or LocalSimulatedStore()
        self.status_region = LiveRegion()
        self.is_submitting = False
        self._strategy: Optional[SubmissionStrategy] = None

    @property
    def submit_disabled(self) -> bool:
        return self.is_submitting

    async def select_strategy(self) -> SubmissionStrategy:
        if self._strategy is None:
            if await check_backend_reachable(self.endpoint, transport=self.transport):
                self._strategy = self.remote
            else:
                logger.warning(
                    f"Waitlist backend unreachable at {self.endpoint}; "
                    "using simulated local store, signups will not be persisted"
                )
                self._strategy = self.simulated
        return self._strategy

    def _announce(self, outcome: WidgetOutcome) -> WidgetOutcome:
        self.status_region.announce(outcome.message)
        return outcome

    async def submit(self, email: Optional[str]) -> Optional[WidgetOutcome]:
        """Validate and send ``email``; returns None if a submission is pending."""
        if self.is_submitting:
            logger.debug("Waitlist submission ignored, another one is in flight")
            return None

        check = validate(email)
        if not check.valid:
            return self._announce(WidgetOutcome(kind=OutcomeKind.VALIDATION_ERROR, message=check.reason))

        self.is_submitting = True
        try:
            strategy = await self.select_strategy()
            try:
                result = await strategy.submit(email.strip(), self.source)
            except BackendUnreachableError as e:
                logger.warning(f"Waitlist submission failed: {e.message}")
                # Let a fresh reachability check choose between the API and the simulated store
                self._strategy = None
                strategy = await self.select_strategy()
                if strategy is not self.simulated:
                    return self._announce(WidgetOutcome(kind=OutcomeKind.REQUEST_FAILED, message=MSG_NETWORK, retryable=True))
                result = await strategy.submit(email.strip(), self.source)
        finally:
            self.is_submitting = False

        if result.simulated:
            logger.warning(f"Simulated waitlist signup (not persisted), position {result.waitlistPosition}")

        if not result.success:
            return self._announce(WidgetOutcome(
                kind=OutcomeKind.REQUEST_FAILED,
                message=result.message or MSG_GENERIC,
                retryable=True,
                result=result,
            ))
        if result.alreadyExists:
            return self._announce(WidgetOutcome(kind=OutcomeKind.ALREADY_REGISTERED, message=result.message, result=result))
        return self._announce(WidgetOutcome(kind=OutcomeKind.SUCCESS, message=result.message, result=result))
