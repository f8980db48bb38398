from pydantic import BaseModel, Field
from typing import List, Optional


# Column order of the persisted ledger
LEDGER_COLUMNS = ["email", "timestamp", "source", "ip_address", "user_agent"]


class WaitlistIn(BaseModel):
    email: str
    source: Optional[str] = None


class SignupRecord(BaseModel):
    """One accepted waitlist signup, as written to the ledger."""
    email: str = Field(..., description="Trimmed, sanitized, lowercased email")
    submitted_at: str = Field(..., description="Acceptance time, YYYY-MM-DD HH:MM:SS (UTC)")
    source: str = Field(..., description="Where the submission came from")
    client_address: str = Field("unknown", description="Best-effort client IP, not trusted")
    agent_string: str = Field("", description="Client user agent, truncated")

    class Config:
        frozen = True

    def to_row(self) -> List[str]:
        return [self.email, self.submitted_at, self.source, self.client_address, self.agent_string]


class WaitlistResponse(BaseModel):
    success: bool
    message: str
    waitlistPosition: Optional[int] = None
    timestamp: Optional[str] = None
    alreadyExists: Optional[bool] = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
