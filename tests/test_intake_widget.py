import asyncio
import json
import logging

import httpx
import pytest
from httpx import ASGITransport

from kenz_waitlist.client import (
    IntakeWidget,
    LocalSimulatedStore,
    OutcomeKind,
    RemoteLedgerClient,
    SubmissionResult,
    check_backend_reachable,
    validate,
)
from kenz_waitlist.client.widget import MSG_INVALID, MSG_NETWORK, MSG_REQUIRED
from kenz_waitlist.core.exceptions import BackendUnreachableError

ENDPOINT = "http://test/api/v1/public/waitlist"


def unreachable_transport():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


def answering_transport(status_code=200, body=None):
    def handler(request):
        if request.method == "OPTIONS":
            return httpx.Response(200)
        return httpx.Response(status_code, json=body)
    return httpx.MockTransport(handler)


@pytest.mark.parametrize("candidate,valid,reason", [
    ("someone@example.com", True, None),
    ("  someone@example.com  ", True, None),
    ("", False, MSG_REQUIRED),
    (None, False, MSG_REQUIRED),
    ("someone@example", False, MSG_INVALID),
    ("some one@example.com", False, MSG_INVALID),
    ("@example.com", False, MSG_INVALID),
])
def test_validate(candidate, valid, reason):
    result = validate(candidate)
    assert result.valid is valid
    assert result.reason == reason


@pytest.mark.asyncio
async def test_backend_reachability_check():
    assert await check_backend_reachable(ENDPOINT, transport=answering_transport()) is True
    assert await check_backend_reachable(ENDPOINT, transport=unreachable_transport()) is False


@pytest.mark.asyncio
async def test_simulated_store_positions_and_duplicates(tmp_path):
    path = tmp_path / "local" / "waitlist.json"
    store = LocalSimulatedStore(path)

    first = await store.submit("a@example.com")
    second = await store.submit("B@example.com")
    again = await store.submit("b@example.com")

    assert (first.waitlistPosition, second.waitlistPosition) == (1, 2)
    assert first.simulated and second.simulated and again.simulated
    assert again.alreadyExists is True
    assert again.waitlistPosition == 2

    data = json.loads(path.read_text())
    assert data["emails"] == ["a@example.com", "b@example.com"]
    assert data["entries"]["a@example.com"]["source"] == LocalSimulatedStore.SOURCE

    reloaded = LocalSimulatedStore(path)
    assert (await reloaded.submit("a@example.com")).alreadyExists is True


@pytest.mark.asyncio
async def test_simulated_store_without_path_keeps_nothing(tmp_path):
    store = LocalSimulatedStore()
    await store.submit("gone@example.com")
    assert list(tmp_path.iterdir()) == []
    assert (await LocalSimulatedStore().submit("gone@example.com")).alreadyExists is False


@pytest.mark.asyncio
async def test_remote_client_against_api(waitlist_app, ledger):
    client = RemoteLedgerClient(ENDPOINT, transport=ASGITransport(app=waitlist_app))

    joined = await client.submit("Remote@Example.com")
    assert joined.success and not joined.simulated
    assert joined.waitlistPosition == 1
    assert ledger.exists("remote@example.com")

    again = await client.submit("remote@example.com")
    assert again.alreadyExists is True

    rejected = await client.submit("nope")
    assert rejected.success is False
    assert rejected.message == "Invalid email format"


@pytest.mark.asyncio
async def test_remote_client_transport_failure():
    client = RemoteLedgerClient(ENDPOINT, transport=unreachable_transport())
    with pytest.raises(BackendUnreachableError):
        await client.submit("a@example.com")


@pytest.mark.asyncio
async def test_remote_client_non_json_error():
    client = RemoteLedgerClient(ENDPOINT, transport=httpx.MockTransport(lambda r: httpx.Response(502, text="Bad gateway")))
    result = await client.submit("a@example.com")
    assert result.success is False
    assert "502" in result.message


@pytest.mark.asyncio
async def test_widget_end_to_end(waitlist_app, ledger):
    widget = IntakeWidget(ENDPOINT, transport=ASGITransport(app=waitlist_app))

    outcome = await widget.submit("widget@example.com")
    assert outcome.kind == OutcomeKind.SUCCESS
    assert outcome.result.waitlistPosition == 1
    assert widget.status_region.text == outcome.message

    outcome = await widget.submit("WIDGET@example.com")
    assert outcome.kind == OutcomeKind.ALREADY_REGISTERED
    assert outcome.retryable is False
    assert ledger.count() == 1


@pytest.mark.asyncio
async def test_widget_validation_error_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    widget = IntakeWidget(ENDPOINT, transport=httpx.MockTransport(handler))
    outcome = await widget.submit("not-an-email")

    assert outcome.kind == OutcomeKind.VALIDATION_ERROR
    assert outcome.message == MSG_INVALID
    assert widget.status_region.text == MSG_INVALID
    assert calls == []


@pytest.mark.asyncio
async def test_widget_falls_back_to_simulated_store(caplog):
    widget = IntakeWidget(ENDPOINT, transport=unreachable_transport())

    with caplog.at_level(logging.WARNING):
        outcome = await widget.submit("offline@example.com")

    assert outcome.kind == OutcomeKind.SUCCESS
    assert outcome.result.simulated is True
    assert "simulated" in caplog.text.lower()

    outcome = await widget.submit("offline@example.com")
    assert outcome.kind == OutcomeKind.ALREADY_REGISTERED
    assert outcome.result.simulated is True


@pytest.mark.asyncio
async def test_widget_request_failure_is_retryable():
    failure = {"success": False, "message": "Service temporarily unavailable"}
    widget = IntakeWidget(ENDPOINT, transport=answering_transport(500, failure))

    outcome = await widget.submit("busy@example.com")
    assert outcome.kind == OutcomeKind.REQUEST_FAILED
    assert outcome.retryable is True
    assert outcome.message == "Service temporarily unavailable"
    assert widget.status_region.history == ["Service temporarily unavailable"]


def scripted_options_transport(answers):
    """OPTIONS requests succeed or fail in the order given by ``answers``."""
    remaining = list(answers)

    def handler(request):
        if remaining.pop(0):
            return httpx.Response(200)
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_widget_switches_to_simulated_store_when_backend_drops(caplog):
    widget = IntakeWidget(
        ENDPOINT,
        transport=scripted_options_transport([True, False]),
        remote=RemoteLedgerClient(ENDPOINT, transport=unreachable_transport()),
    )

    with caplog.at_level(logging.WARNING):
        outcome = await widget.submit("drop@example.com")

    assert outcome.kind == OutcomeKind.SUCCESS
    assert outcome.result.simulated is True
    assert outcome.result.waitlistPosition == 1
    assert widget._strategy is widget.simulated
    assert MSG_NETWORK not in widget.status_region.history
    assert "not persisted" in caplog.text
    assert widget.submit_disabled is False


@pytest.mark.asyncio
async def test_widget_reports_network_error_when_backend_still_answers():
    widget = IntakeWidget(
        ENDPOINT,
        transport=scripted_options_transport([True, True]),
        remote=RemoteLedgerClient(ENDPOINT, transport=unreachable_transport()),
    )

    outcome = await widget.submit("drop@example.com")
    assert outcome.kind == OutcomeKind.REQUEST_FAILED
    assert outcome.retryable is True
    assert outcome.message == MSG_NETWORK
    assert widget.status_region.text == MSG_NETWORK
    assert widget.submit_disabled is False


class SlowStrategy:
    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0

    async def submit(self, email, source="landing_page"):
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return SubmissionResult(success=True, message="Welcome!", waitlistPosition=1)


@pytest.mark.asyncio
async def test_widget_ignores_submit_while_pending():
    slow = SlowStrategy()
    widget = IntakeWidget(ENDPOINT, transport=answering_transport(), remote=slow)

    pending = asyncio.create_task(widget.submit("first@example.com"))
    await slow.started.wait()

    assert widget.submit_disabled is True
    assert await widget.submit("second@example.com") is None

    slow.release.set()
    outcome = await pending
    assert outcome.kind == OutcomeKind.SUCCESS
    assert slow.calls == 1
    assert widget.submit_disabled is False
