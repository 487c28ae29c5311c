from fastapi.testclient import TestClient

from fakes import make_entry


def test_sync_run_records_entries(api_client: TestClient, toggl):
    toggl.entries[1] = make_entry(1)

    response = api_client.post("/api/v1/sync/run")

    assert response.status_code == 200
    data = response.json()
    assert data["job"] == "record"
    assert data["outcome"] == "SYNCED"
    assert data["time_entry_ids"] == [1]

    runs = api_client.get("/api/v1/sync/runs", params={"job": "record"}).json()
    assert runs["total"] == 1
    assert runs["data"][0]["status"] == "completed"


def test_edit_row_flags_it_for_update(api_client: TestClient, toggl):
    toggl.entries[1] = make_entry(1)
    location = api_client.post("/api/v1/sync/run").json()["table_location"]
    rows = api_client.get("/api/v1/records/rows", params={"table_location": location}).json()
    row_id = rows["data"][0]["id"]

    response = api_client.put(f"/api/v1/records/rows/{row_id}", json={"description": "edited"})

    assert response.status_code == 200
    assert response.json()["description"] == "edited"
    assert response.json()["update_flag"] == 1

    pending = api_client.get("/api/v1/records/rows", params={"table_location": location, "pending_only": True}).json()
    assert pending["total"] == 1

    report = api_client.post("/api/v1/reconcile/run").json()
    assert report["outcome"] == "UPDATED"
    assert toggl.entries[1].description == "edited"


def test_edit_row_rejects_stop_before_start(api_client: TestClient, toggl):
    toggl.entries[1] = make_entry(1)
    location = api_client.post("/api/v1/sync/run").json()["table_location"]
    row_id = api_client.get("/api/v1/records/rows", params={"table_location": location}).json()["data"][0]["id"]

    response = api_client.put(f"/api/v1/records/rows/{row_id}", json={"stop": "2024-03-01T08:00:00Z"})

    assert response.status_code == 400


def test_edit_missing_row(api_client: TestClient):
    assert api_client.put("/api/v1/records/rows/999", json={"description": "x"}).status_code == 404


def test_list_tables_after_rollover_check(api_client: TestClient):
    report = api_client.post("/api/v1/rollover/check").json()
    assert report["outcome"] == "TABLE_CREATED"

    tables = api_client.get("/api/v1/records/tables").json()
    assert [t["location"] for t in tables] == [report["table_location"]]


def test_tags_run_without_configuration(api_client: TestClient):
    response = api_client.post("/api/v1/tags/run")
    assert response.status_code == 200
    assert response.json()["outcome"] == "NO_TAG_CONFIGURED"


def test_update_toggl_endpoint(api_client: TestClient, toggl):
    toggl.entries[3] = make_entry(3, duration=-1)

    data = api_client.post("/api/v1/reconcile/update-toggl").json()

    assert data["stopped_time_entry_id"] == 3
    assert data["record"]["time_entry_ids"] == [3]


def test_token_lifecycle(api_client: TestClient):
    response = api_client.put("/api/v1/token/toggl", json={"api_token": "abcdef123456", "validate_token": False})
    assert response.status_code == 200
    assert response.json() == {"configured": True, "source": "saved", "masked_token": "********3456"}

    status = api_client.get("/api/v1/token/toggl").json()
    assert status["source"] == "saved"
    assert status["masked_token"] == "********3456"

    assert api_client.delete("/api/v1/token/toggl").status_code == 204
    assert api_client.delete("/api/v1/token/toggl").status_code == 404


def test_empty_token_rejected(api_client: TestClient):
    response = api_client.put("/api/v1/token/toggl", json={"api_token": "  ", "validate_token": False})
    assert response.status_code == 400


def test_audit_logs(api_client: TestClient):
    api_client.post("/api/v1/sync/run")

    logs = api_client.get("/api/v1/audit-logs/", params={"action": "sync_triggered"}).json()
    assert logs["total"] == 1
    log_id = logs["data"][0]["id"]

    single = api_client.get(f"/api/v1/audit-logs/{log_id}")
    assert single.status_code == 200
    assert single.json()["action"] == "sync_triggered"
    assert api_client.get("/api/v1/audit-logs/9999").status_code == 404


def test_edit_row_rejects_null_required_fields(api_client: TestClient, toggl):
    toggl.entries[1] = make_entry(1)
    location = api_client.post("/api/v1/sync/run").json()["table_location"]
    row_id = api_client.get("/api/v1/records/rows", params={"table_location": location}).json()["data"][0]["id"]

    for body in ({"stop": None}, {"start": None}, {"workspace_id": None}, {"tags": None}):
        response = api_client.put(f"/api/v1/records/rows/{row_id}", json=body)
        assert response.status_code == 400, body
        assert "must not be null" in response.json()["detail"]

    row = api_client.get("/api/v1/records/rows", params={"table_location": location}).json()["data"][0]
    assert row["update_flag"] is None
    assert row["workspace_id"] == 5


def test_edit_row_accepts_null_optional_fields(api_client: TestClient, toggl):
    toggl.entries[1] = make_entry(1, pid=11)
    location = api_client.post("/api/v1/sync/run").json()["table_location"]
    row_id = api_client.get("/api/v1/records/rows", params={"table_location": location}).json()["data"][0]["id"]

    response = api_client.put(f"/api/v1/records/rows/{row_id}", json={"project_id": None, "project": "NA"})

    assert response.status_code == 200
    assert response.json()["project_id"] is None
    assert response.json()["update_flag"] == 1
