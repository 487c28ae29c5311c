import json
from datetime import datetime, timezone

import httpx
import pytest

from togglsync.connectors.base import CalendarRequestError
from togglsync.connectors.google_calendar_connector import GOOGLE_OAUTH_TOKEN_URL, GoogleCalendarConnector

BASE_URL = "https://calendar.test/calendar/v3"


def make_connector(handler) -> GoogleCalendarConnector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GoogleCalendarConnector(
        {"base_url": BASE_URL, "client_id": "cid", "client_secret": "csecret", "refresh_token": "rtoken"},
        client=client
    )


def token_response():
    return httpx.Response(200, json={"access_token": "access-1", "expires_in": 3600})


def test_requires_credentials():
    with pytest.raises(ValueError):
        GoogleCalendarConnector({"client_id": "cid"})


@pytest.mark.asyncio
async def test_create_event_refreshes_token_once():
    calls = {"token": 0, "events": []}

    def handler(request: httpx.Request):
        if str(request.url) == GOOGLE_OAUTH_TOKEN_URL:
            calls["token"] += 1
            return token_response()
        calls["events"].append(request)
        assert request.headers["Authorization"] == "Bearer access-1"
        body = json.loads(request.content)
        return httpx.Response(200, json={"id": f"evt-{len(calls['events'])}", "summary": body["summary"]})

    connector = make_connector(handler)
    start = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)
    end = datetime(2024, 3, 1, 10, tzinfo=timezone.utc)
    first = await connector.create_event("cal@group", "[Alpha] work", start, end, description="Time Entry ID: 1")
    second = await connector.create_event("cal@group", "[Alpha] more", start, end)
    await connector.close()

    assert calls["token"] == 1
    assert first.id == "evt-1"
    assert second.id == "evt-2"
    assert calls["events"][0].url.path == "/calendar/v3/calendars/cal@group/events"
    assert json.loads(calls["events"][0].content)["description"] == "Time Entry ID: 1"


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [404, 410])
async def test_delete_missing_event_counts_as_deleted(status_code):
    def handler(request: httpx.Request):
        if str(request.url) == GOOGLE_OAUTH_TOKEN_URL:
            return token_response()
        assert request.method == "DELETE"
        return httpx.Response(status_code)

    connector = make_connector(handler)
    await connector.delete_event("cal", "evt-1")
    await connector.close()


@pytest.mark.asyncio
async def test_delete_failure_raises():
    def handler(request: httpx.Request):
        if str(request.url) == GOOGLE_OAUTH_TOKEN_URL:
            return token_response()
        return httpx.Response(500, text="boom")

    connector = make_connector(handler)
    with pytest.raises(CalendarRequestError) as exc_info:
        await connector.delete_event("cal", "evt-1")
    await connector.close()
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_token_refresh_failure_raises():
    def handler(request: httpx.Request):
        return httpx.Response(400, json={"error": "invalid_grant"})

    connector = make_connector(handler)
    with pytest.raises(CalendarRequestError):
        await connector.create_event("cal", "t", datetime.now(timezone.utc), datetime.now(timezone.utc))
    await connector.close()
