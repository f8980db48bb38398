from fastapi import FastAPI
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from dotenv import load_dotenv
import logging

from kenz_waitlist.core.config import settings
from kenz_waitlist.core.cors import WaitlistCORSMiddleware
from kenz_waitlist.schemas.waitlist import ErrorResponse
from kenz_waitlist.api.v1.api import api_router

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Configure audit logger (JSON lines)
audit_logger = logging.getLogger("audit")
if not audit_logger.handlers:
    handler = logging.StreamHandler()
    # Keep raw JSON line without extra prefixes
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
audit_logger.setLevel(logging.INFO)
# Do not propagate to root to avoid duplication
audit_logger.propagate = False

api_description = """
## Kenz Tasks Waitlist

Collects early-access signups from the Kenz landing page.

- `POST /api/v1/public/waitlist` with `{"email": "...", "source": "..."}`
- Each address is stored once; repeat submissions report `alreadyExists`
- Successful signups return their `waitlistPosition`
"""

app = FastAPI(
    title=settings.PROJECT_NAME,
    description=api_description,
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

# Set up CORS
app.add_middleware(
    WaitlistCORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

# Include API router
app.include_router(api_router, prefix="/api/v1")

@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request, exc):
    # Any verb a route does not accept gets the waitlist failure shape
    if exc.status_code == 405:
        return JSONResponse(
            ErrorResponse(message="Method not allowed").model_dump(),
            status_code=405,
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)

@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} is running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "ledger_backend": settings.LEDGER_BACKEND}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
