import base64
import json

import httpx
import pytest

from togglsync.connectors.base import TimeEntrySpec, TogglRequestError
from togglsync.connectors.toggl_connector import MAX_TIME_ENTRIES, TogglConnector

BASE_URL = "https://toggl.test/api/v8"


def make_connector(handler) -> TogglConnector:
    client = httpx.AsyncClient(
        base_url=BASE_URL,
        auth=("secret-token", "api_token"),
        transport=httpx.MockTransport(handler)
    )
    return TogglConnector({"base_url": BASE_URL, "api_token": "secret-token"}, client=client)


def entry_json(entry_id, **overrides):
    data = {
        "id": entry_id, "wid": 5, "pid": None, "description": "work", "tags": None,
        "start": "2024-03-01T09:00:00+00:00", "stop": "2024-03-01T10:00:00+00:00",
        "duration": 3600, "uid": 42, "guid": "g", "billable": False, "duronly": False,
        "at": "2024-03-01T10:00:05+00:00",
    }
    data.update(overrides)
    return data


def test_requires_token():
    with pytest.raises(ValueError):
        TogglConnector({"api_token": ""})


@pytest.mark.asyncio
async def test_basic_auth_uses_token_and_api_token_literal():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=[{"id": 5, "name": "Work"}])

    connector = make_connector(handler)
    workspaces = await connector.list_workspaces()
    await connector.close()

    expected = base64.b64encode(b"secret-token:api_token").decode()
    assert seen["auth"] == f"Basic {expected}"
    assert workspaces[0].name == "Work"


@pytest.mark.asyncio
async def test_null_projects_body_means_no_projects():
    def handler(request: httpx.Request):
        assert request.url.path == "/api/v8/workspaces/5/projects"
        return httpx.Response(200, content=b"null", headers={"Content-Type": "application/json"})

    connector = make_connector(handler)
    assert await connector.list_workspace_projects(5) == []
    await connector.close()


@pytest.mark.asyncio
async def test_single_entry_is_unwrapped_from_data():
    def handler(request: httpx.Request):
        assert request.url.path == "/api/v8/time_entries/101"
        return httpx.Response(200, json={"data": entry_json(101, tags=["a"])})

    connector = make_connector(handler)
    entry = await connector.get_time_entry(101)
    await connector.close()
    assert entry.id == 101
    assert entry.tags == ["a"]


@pytest.mark.asyncio
async def test_list_time_entries_enforces_cap():
    def handler(request: httpx.Request):
        return httpx.Response(200, json=[entry_json(i) for i in range(1, MAX_TIME_ENTRIES + 6)])

    connector = make_connector(handler)
    entries = await connector.list_time_entries()
    await connector.close()
    assert len(entries) == MAX_TIME_ENTRIES


@pytest.mark.asyncio
async def test_list_time_entries_passes_range():
    def handler(request: httpx.Request):
        assert request.url.params["start_date"] == "2024-03-01T00:00:00+09:00"
        assert request.url.params["end_date"] == "2024-03-02T00:00:00+09:00"
        return httpx.Response(200, json=[])

    connector = make_connector(handler)
    assert await connector.list_time_entries("2024-03-01T00:00:00+09:00", "2024-03-02T00:00:00+09:00") == []
    await connector.close()


@pytest.mark.asyncio
async def test_list_time_entries_rejects_single_bound():
    connector = make_connector(lambda request: httpx.Response(200, json=[]))
    with pytest.raises(ValueError):
        await connector.list_time_entries(start_date="2024-03-01T00:00:00Z")
    await connector.close()


@pytest.mark.asyncio
async def test_error_status_raises_request_error():
    def handler(request: httpx.Request):
        return httpx.Response(403, text="forbidden")

    connector = make_connector(handler)
    with pytest.raises(TogglRequestError) as exc_info:
        await connector.get_time_entry(7)
    await connector.close()
    assert exc_info.value.status_code == 403
    assert exc_info.value.body == "forbidden"
    assert exc_info.value.url.endswith("/time_entries/7")


@pytest.mark.asyncio
async def test_transport_error_has_no_status():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    connector = make_connector(handler)
    with pytest.raises(TogglRequestError) as exc_info:
        await connector.list_workspaces()
    await connector.close()
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_bulk_add_tags_joins_ids():
    seen = {}

    def handler(request: httpx.Request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [entry_json(1, tags=["x"]), entry_json(2, tags=["x"])]})

    connector = make_connector(handler)
    updated = await connector.bulk_add_tags([1, 2], ["x"])
    await connector.close()

    assert seen["method"] == "PUT"
    assert seen["path"] == "/api/v8/time_entries/1,2"
    assert seen["body"] == {"time_entry": {"tags": ["x"], "tag_action": "add"}}
    assert [e.id for e in updated] == [1, 2]


@pytest.mark.asyncio
async def test_create_sends_time_entry_payload():
    seen = {}

    def handler(request: httpx.Request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": entry_json(900, wid=7)})

    spec = TimeEntrySpec(
        wid=7, pid=None, description="moved", tags=["a"],
        start="2024-03-01T09:00:00.000Z", stop="2024-03-01T10:00:00.000Z",
        duration=3600, created_with="togglsync"
    )
    connector = make_connector(handler)
    created = await connector.create_time_entry(spec)
    await connector.close()

    assert created.id == 900
    assert seen["body"]["time_entry"]["wid"] == 7
    assert seen["body"]["time_entry"]["created_with"] == "togglsync"


@pytest.mark.asyncio
async def test_delete_with_empty_body():
    def handler(request: httpx.Request):
        assert request.method == "DELETE"
        return httpx.Response(200)

    connector = make_connector(handler)
    assert await connector.delete_time_entry(101) is True
    await connector.close()


@pytest.mark.asyncio
async def test_stop_running_entry_when_idle():
    def handler(request: httpx.Request):
        assert request.url.path == "/api/v8/time_entries/current"
        return httpx.Response(200, json={"data": None})

    connector = make_connector(handler)
    assert await connector.stop_running_time_entry() is None
    await connector.close()


@pytest.mark.asyncio
async def test_stop_running_entry():
    def handler(request: httpx.Request):
        if request.url.path.endswith("/current"):
            return httpx.Response(200, json={"data": entry_json(102, duration=-1709283600, stop=None)})
        assert request.method == "PUT"
        assert request.url.path == "/api/v8/time_entries/102/stop"
        return httpx.Response(200, json={"data": entry_json(102, duration=600)})

    connector = make_connector(handler)
    stopped = await connector.stop_running_time_entry()
    await connector.close()
    assert stopped.id == 102
    assert stopped.duration == 600
