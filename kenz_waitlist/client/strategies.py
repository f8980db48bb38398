"""
Ways the intake widget can deliver a signup.

``RemoteLedgerClient`` talks to the waitlist API. ``LocalSimulatedStore`` is a
stand-in for deployments without a backend (static hosting): it answers in the
same shape but keeps nothing durable, and every result it returns is flagged
``simulated``. ``check_backend_reachable`` decides which of the two a widget should use.
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel

from kenz_waitlist.core.config import settings
from kenz_waitlist.core.exceptions import BackendUnreachableError

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    success: bool
    message: str
    waitlistPosition: Optional[int] = None
    timestamp: Optional[str] = None
    alreadyExists: bool = False
    # True when the signup only exists in the local simulated store
    simulated: bool = False


class SubmissionStrategy(Protocol):
    async def submit(self, email: str, source: str = "landing_page") -> SubmissionResult:
        ...


async def check_backend_reachable(endpoint: str, transport: httpx.AsyncBaseTransport = None, timeout: float = 5.0) -> bool:
    """Return True when anything answers at ``endpoint``.

    Any HTTP status counts as reachable; only transport failures (DNS,
    refused connection, timeout) mean the backend is absent.
    """
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            await client.options(endpoint)
    except httpx.TransportError as e:
        logger.info(f"Waitlist backend reachability check failed for {endpoint}: {e!r}")
        return False
    return True


class RemoteLedgerClient:
    def __init__(self, endpoint: str, transport: httpx.AsyncBaseTransport = None, timeout: float = 30.0):
        self.endpoint = endpoint
        self.transport = transport
        self.timeout = timeout

    async def submit(self, email: str, source: str = "landing_page") -> SubmissionResult:
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    json={"email": email, "source": source},
                    headers={"Accept": "application/json"},
                )
        except httpx.TransportError as e:
            raise BackendUnreachableError(self.endpoint, repr(e))

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if response.is_success and body.get("success"):
            return SubmissionResult.model_validate(body)
        return SubmissionResult(
            success=False,
            message=body.get("message") or f"Request failed with status {response.status_code}",
        )


class LocalSimulatedStore:
    """Non-durable signup store used when no backend is deployed.

    Entries live in memory, optionally mirrored to a JSON file at ``path``.
    Deleting that file forgets every simulated signup.
    """

    SOURCE = "simulated_demo"

    def __init__(self, path=None):
        self.path = Path(path) if path else None
        self.emails: List[str] = []
        self.entries: Dict[str, dict] = {}
        self._load()

    def _load(self) -> None:
        if not self.path or not self.path.exists():
            return
        with open(self.path, encoding="utf-8") as fh:
            data = json.load(fh)
        self.emails = list(data.get("emails", []))
        self.entries = dict(data.get("entries", {}))

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump({"emails": self.emails, "entries": self.entries}, fh)

    async def submit(self, email: str, source: str = "landing_page") -> SubmissionResult:
        email = email.strip().lower()
        product = settings.PRODUCT_NAME

        if email in self.emails:
            return SubmissionResult(
                success=True,
                message=f"You're already on the waitlist! We'll notify you when {product} launches.",
                alreadyExists=True,
                waitlistPosition=self.emails.index(email) + 1,
                simulated=True,
            )

        self.emails.append(email)
        position = len(self.emails)
        timestamp = datetime.now(timezone.utc).isoformat()
        self.entries[email] = {"timestamp": timestamp, "source": self.SOURCE, "position": position}
        self._save()

        return SubmissionResult(
            success=True,
            message=f"Welcome to the waitlist! You're #{position} in line. We'll notify you when {product} launches.",
            waitlistPosition=position,
            timestamp=timestamp,
            simulated=True,
        )
