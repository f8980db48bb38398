"""Audit trail for waitlist submissions, one JSON line per outcome.

Lines carry an email fingerprint instead of the address, so the stream can be
shipped to log storage without holding the waitlist itself.
"""
import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional

_logger = logging.getLogger("audit")

JOINED = "WAITLIST_JOINED"
DUPLICATE = "WAITLIST_DUPLICATE"
REJECTED = "WAITLIST_REJECTED"


def email_fingerprint(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return hashlib.sha256(email.strip().lower().encode()).hexdigest()[:12]


def audit_signup(
    event: str,
    *,
    email: Optional[str] = None,
    position: Optional[int] = None,
    source: Optional[str] = None,
    reason: Optional[str] = None,
    ledger: Optional[str] = None,
) -> None:
    """Log a signup outcome: JOINED with position/source, DUPLICATE, or REJECTED with reason."""
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "email_hash": email_fingerprint(email),
        "position": position,
        "source": source,
        "reason": reason,
        "ledger": ledger,
    }
    _logger.info(json.dumps({k: v for k, v in entry.items() if v is not None}, ensure_ascii=False))
