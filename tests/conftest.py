import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from kenz_waitlist.main import app
from kenz_waitlist.services.ledger import CsvLedger, get_ledger


@pytest.fixture
def ledger(tmp_path):
    return CsvLedger(tmp_path / "data" / "waitlist.csv")


@pytest.fixture
def waitlist_app(ledger):
    app.dependency_overrides[get_ledger] = lambda: ledger
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def ac(waitlist_app):
    async with AsyncClient(transport=ASGITransport(app=waitlist_app), base_url="http://test") as client:
        yield client
