import ipaddress
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import email_validator
from email_validator import EmailNotValidError, validate_email
from pydantic import ValidationError as PydanticValidationError

from kenz_waitlist.core.config import settings
from kenz_waitlist.core.exceptions import (
    CapacityExceededError,
    DuplicateSignupError,
    EmailRequiredError,
    InvalidEmailError,
    LedgerUnavailableError,
)
from kenz_waitlist.schemas.waitlist import SignupRecord, WaitlistIn, WaitlistResponse
from kenz_waitlist.services.email_service import EmailService
from kenz_waitlist.services.ledger import LedgerStore
from kenz_waitlist.utils import audit

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "unknown"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Anything outside letters, digits and !#$%&'*+-=?^_`{|}~@.[] is dropped
_INVALID_EMAIL_CHARS = re.compile(r"[^A-Za-z0-9!#$%&'*+\-=?^_`{|}~@.\[\]]")

# Reserved names such as .test or .local are checked like any other domain
email_validator.SPECIAL_USE_DOMAIN_NAMES.clear()


def sanitize_email(raw: str) -> str:
    """Trim, strip characters that cannot appear in an address, lowercase."""
    return _INVALID_EMAIL_CHARS.sub("", raw.strip()).lower()


def validate_email_format(email: str) -> None:
    try:
        # Syntax only: no DNS lookups, reserved test domains and [IP] literals pass
        validate_email(
            email,
            check_deliverability=False,
            globally_deliverable=False,
            allow_domain_literal=True,
        )
    except EmailNotValidError as e:
        raise InvalidEmailError(str(e))


def _well_formed_ip(candidate: Optional[str]) -> Optional[str]:
    if not candidate:
        return None
    candidate = candidate.strip()
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return None
    return candidate


def resolve_client_address(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    """First X-Forwarded-For entry, else the peer address, else "unknown".

    Forwarded headers are client controlled, so the result is metadata only.
    """
    first_forwarded = forwarded_for.split(",")[0] if forwarded_for else None
    return _well_formed_ip(first_forwarded) or _well_formed_ip(peer) or UNKNOWN_ADDRESS


def truncate_agent(agent: Optional[str], limit: int = None) -> str:
    limit = settings.USER_AGENT_MAX_LENGTH if limit is None else limit
    return (agent or "")[:limit]


class WaitlistService:
    def __init__(self, ledger: LedgerStore, email_service: EmailService = None, max_bytes: int = None):
        self.ledger = ledger
        self.email = email_service or EmailService()
        self.max_bytes = settings.LEDGER_MAX_BYTES if max_bytes is None else max_bytes

    def _parse(self, payload: Any) -> WaitlistIn:
        if not isinstance(payload, dict) or payload.get("email") is None:
            raise EmailRequiredError()
        try:
            return WaitlistIn.model_validate(payload)
        except PydanticValidationError as e:
            raise InvalidEmailError(str(e))

    def join(
        self,
        payload: Any,
        *,
        forwarded_for: Optional[str] = None,
        peer: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> WaitlistResponse:
        """Validate a submission and record it on the waitlist once.

        Raises a ValidationError subclass for bad input and a DatabaseError
        subclass when the ledger is full or cannot be written.
        """
        try:
            submission = self._parse(payload)
            email = sanitize_email(submission.email)
            validate_email_format(email)
        except (EmailRequiredError, InvalidEmailError) as e:
            audit.audit_signup(audit.REJECTED, reason=e.error_code)
            raise

        product = settings.PRODUCT_NAME
        backend = type(self.ledger).__name__
        duplicate = False
        record = None
        position = None
        try:
            with self.ledger.locked():
                if self.ledger.exists(email):
                    duplicate = True
                else:
                    size = self.ledger.size_bytes()
                    if size >= self.max_bytes:
                        logger.error(f"Waitlist ledger size exceeded limit ({size} >= {self.max_bytes} bytes)")
                        raise CapacityExceededError(f"ledger at {size} bytes")
                    record = SignupRecord(
                        email=email,
                        submitted_at=datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT),
                        source=submission.source or settings.DEFAULT_SOURCE,
                        client_address=resolve_client_address(forwarded_for, peer),
                        agent_string=truncate_agent(user_agent),
                    )
                    position = self.ledger.append(record)
        except CapacityExceededError:
            raise
        except DuplicateSignupError:
            duplicate = True
        except Exception as e:
            logger.exception(f"Waitlist API error: {e}")
            raise LedgerUnavailableError(str(e))

        if duplicate:
            audit.audit_signup(audit.DUPLICATE, email=email, ledger=backend)
            return WaitlistResponse(
                success=True,
                message=f"You're already on the waitlist! We'll notify you when {product} launches.",
                alreadyExists=True,
            )

        logger.info(f"Waitlist signup #{position} from {record.client_address} (source={record.source})")
        audit.audit_signup(audit.JOINED, email=email, position=position, source=record.source, ledger=backend)
        self.email.notify_admin(email, record.client_address)

        return WaitlistResponse(
            success=True,
            message=f"Welcome to the waitlist! We'll notify you when {product} launches.",
            waitlistPosition=position,
            timestamp=record.submitted_at,
        )
