import httpx
import logging
from typing import Dict, Any, List, Optional

from togglsync.connectors.base import (
    BaseTimeTrackingConnector,
    TimeEntrySpec,
    TogglProject,
    TogglRequestError,
    TogglTimeEntry,
    TogglWorkspace,
)

log = logging.getLogger(__name__)

# Limits imposed by GET /time_entries (Toggl API v8). Without start_date/end_date the API
# returns entries started in the last DEFAULT_LOOKBACK_DAYS days; any response holds at
# most MAX_TIME_ENTRIES entries. Older or overflowing entries are simply not returned.
MAX_TIME_ENTRIES = 1000
DEFAULT_LOOKBACK_DAYS = 9

_STATUS_HINTS = {
    400: "bad request; check the request payload and date formats",
    401: "authentication failed; check the Toggl API token",
    403: "access denied; the token owner may lack rights on this workspace",
    404: "resource not found",
    429: "too many requests; wait a moment and try again",
    500: "server error; the service may be temporarily unavailable",
    502: "bad gateway; the service may be temporarily unavailable",
    503: "service unavailable; try again later",
}


class TogglConnector(BaseTimeTrackingConnector):
    """
    Connector for the Toggl Track API v8.
    Pure protocol translation: every call is a single request, errors surface as
    TogglRequestError and nothing is retried here.
    """

    def __init__(self, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = self.config.get("base_url", "https://api.track.toggl.com/api/v8").rstrip("/")
        self.api_token = self.config["api_token"]
        if not self.api_token:
            raise ValueError("Toggl connector requires an API token")

        # Toggl uses basic auth with the token as user name and the literal 'api_token' as password
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self.api_token, "api_token"),
            follow_redirects=True,
            timeout=30.0
        )
        self.headers = {"Content-Type": "application/json"}
        log.info(f"Toggl connector initialized with base URL: {self.base_url}")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Helper to make authenticated requests to the Toggl API.
        Returns the decoded JSON body, or None for an empty body.
        """
        if not path.startswith("/"):
            path = f"/{path}"

        try:
            log.trace(f"Toggl API {method} {path}")
            response = await self.client.request(method, path, headers=self.headers, **kwargs)
            log.trace(f"Toggl API response: {response.status_code}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            url = str(e.request.url)
            body = e.response.text
            hint = _STATUS_HINTS.get(status, "unexpected response")
            error_msg = f"Toggl HTTP {status} for {method} {url}: {hint}"
            log.error(f"{error_msg}\nRaw response: {body}")
            raise TogglRequestError(error_msg, status_code=status, body=body, url=url) from e
        except httpx.RequestError as e:
            error_msg = f"Toggl request error for {method} {e.request.url}: {str(e)}"
            log.error(error_msg)
            raise TogglRequestError(error_msg, url=str(e.request.url)) from e

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _unwrap(response_data: Any) -> Any:
        """Single-entry endpoints wrap their payload in {"data": ...}."""
        if isinstance(response_data, dict) and "data" in response_data:
            return response_data["data"]
        return response_data

    async def list_workspaces(self) -> List[TogglWorkspace]:
        response_data = await self._request("GET", "/workspaces")
        workspaces = [TogglWorkspace.model_validate(w) for w in (response_data or [])]
        log.debug(f"Fetched {len(workspaces)} Toggl workspaces")
        return workspaces

    async def list_workspace_projects(self, workspace_id: int) -> List[TogglProject]:
        # Toggl answers JSON null for a workspace without projects
        response_data = await self._request("GET", f"/workspaces/{workspace_id}/projects")
        projects = [TogglProject.model_validate(p) for p in (response_data or [])]
        log.debug(f"Fetched {len(projects)} projects for workspace {workspace_id}")
        return projects

    async def list_time_entries(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> List[TogglTimeEntry]:
        """
        Fetches time entries started between start_date and end_date (ISO 8601 with offset).
        Both bounds must be given together; without them Toggl returns the entries of the
        last DEFAULT_LOOKBACK_DAYS days.
        """
        if bool(start_date) != bool(end_date):
            raise ValueError("list_time_entries requires both start_date and end_date, or neither")

        params = {}
        if start_date and end_date:
            params = {"start_date": start_date, "end_date": end_date}

        response_data = await self._request("GET", "/time_entries", params=params) or []
        if len(response_data) >= MAX_TIME_ENTRIES:
            log.warning(
                f"Toggl returned {len(response_data)} time entries, the API cap is {MAX_TIME_ENTRIES}; "
                f"older entries in the window may be missing. Narrow the range to fetch them."
            )
            response_data = response_data[:MAX_TIME_ENTRIES]

        entries = [TogglTimeEntry.model_validate(e) for e in response_data]
        window = f"{start_date} → {end_date}" if params else f"last {DEFAULT_LOOKBACK_DAYS} days"
        log.info(f"Toggl fetch returned {len(entries)} time entries ({window})")
        return entries

    async def get_time_entry(self, time_entry_id: int) -> TogglTimeEntry:
        response_data = await self._request("GET", f"/time_entries/{time_entry_id}")
        data = self._unwrap(response_data)
        if not data:
            raise TogglRequestError(f"Toggl time entry {time_entry_id} not found", status_code=404)
        return TogglTimeEntry.model_validate(data)

    async def get_running_time_entry(self) -> Optional[TogglTimeEntry]:
        data = self._unwrap(await self._request("GET", "/time_entries/current"))
        return TogglTimeEntry.model_validate(data) if data else None

    async def create_time_entry(self, spec: TimeEntrySpec) -> TogglTimeEntry:
        log.debug(f"Toggl create_time_entry payload: {spec.to_payload()}")
        response_data = await self._request("POST", "/time_entries", json=spec.to_payload())
        created = TogglTimeEntry.model_validate(self._unwrap(response_data))
        log.info(f"Created Toggl time entry {created.id} in workspace {created.wid}")
        return created

    async def update_time_entry(self, time_entry_id: int, spec: TimeEntrySpec) -> TogglTimeEntry:
        log.debug(f"Toggl update_time_entry {time_entry_id} payload: {spec.to_payload()}")
        response_data = await self._request("PUT", f"/time_entries/{time_entry_id}", json=spec.to_payload())
        updated = TogglTimeEntry.model_validate(self._unwrap(response_data))
        log.info(f"Updated Toggl time entry {time_entry_id}")
        return updated

    async def delete_time_entry(self, time_entry_id: int) -> bool:
        await self._request("DELETE", f"/time_entries/{time_entry_id}")
        log.info(f"Deleted Toggl time entry {time_entry_id}")
        return True

    async def bulk_add_tags(self, time_entry_ids: List[int], tags: List[str]) -> List[TogglTimeEntry]:
        if not time_entry_ids:
            return []
        ids = ",".join(str(i) for i in time_entry_ids)
        payload = {"time_entry": {"tags": list(tags), "tag_action": "add"}}
        response_data = await self._request("PUT", f"/time_entries/{ids}", json=payload)
        data = self._unwrap(response_data) or []
        if isinstance(data, dict):
            data = [data]
        log.info(f"Added tags {tags} to {len(time_entry_ids)} Toggl time entries")
        return [TogglTimeEntry.model_validate(e) for e in data]

    async def stop_time_entry(self, time_entry_id: int) -> TogglTimeEntry:
        response_data = await self._request("PUT", f"/time_entries/{time_entry_id}/stop")
        return TogglTimeEntry.model_validate(self._unwrap(response_data))

    async def stop_running_time_entry(self) -> Optional[TogglTimeEntry]:
        """Stops the currently running entry; returns None when nothing is running."""
        running = await self.get_running_time_entry()
        if running is None:
            log.debug("No running Toggl time entry to stop")
            return None
        stopped = await self.stop_time_entry(running.id)
        log.info(f"Stopped running Toggl time entry {stopped.id} (duration {stopped.duration}s)")
        return stopped

    async def validate_connection(self) -> bool:
        """Validates the token by fetching the current user."""
        try:
            await self._request("GET", "/me")
            log.info("Toggl connection validated successfully")
            return True
        except TogglRequestError as e:
            log.error(f"Toggl connection validation failed: {e}")
            return False

    async def close(self):
        await self.client.aclose()
