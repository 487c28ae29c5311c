import httpx
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from urllib.parse import quote

from togglsync.connectors.base import BaseCalendarConnector, CalendarEvent, CalendarRequestError

log = logging.getLogger(__name__)

GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"


class GoogleCalendarConnector(BaseCalendarConnector):
    """
    Mirrors time entries as Google Calendar (API v3) events.
    Credentials are an OAuth client plus a long-lived refresh token; the short-lived
    access token is cached until shortly before it expires.
    """

    def __init__(self, config: Dict[str, Any], client: Optional[httpx.AsyncClient] = None):
        self.base_url = config.get("base_url", "https://www.googleapis.com/calendar/v3").rstrip("/")
        self.client_id = config.get("client_id")
        self.client_secret = config.get("client_secret")
        self.refresh_token = config.get("refresh_token")
        self.token_url = config.get("token_url", GOOGLE_OAUTH_TOKEN_URL)
        if not (self.client_id and self.client_secret and self.refresh_token):
            raise ValueError("Google Calendar connector requires client_id, client_secret and refresh_token")

        self.client = client or httpx.AsyncClient(timeout=30.0)
        self._access_token: Optional[str] = None
        self._access_token_expires_at: Optional[datetime] = None

    def _token_is_fresh(self) -> bool:
        if self._access_token is None or self._access_token_expires_at is None:
            return False
        return datetime.now(timezone.utc) < self._access_token_expires_at

    async def _get_access_token(self) -> str:
        if self._token_is_fresh():
            return self._access_token

        try:
            response = await self.client.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.RequestError as e:
            raise CalendarRequestError(f"Google OAuth token refresh request failed: {e}") from e

        if response.status_code >= 300:
            raise CalendarRequestError(
                f"Google OAuth token refresh failed ({response.status_code})",
                status_code=response.status_code
            )

        payload = response.json()
        access_token = payload.get("access_token")
        if not access_token:
            raise CalendarRequestError("Google OAuth token response is missing an access_token")

        expires_in = int(payload.get("expires_in") or 3600)
        # Refresh a minute early
        self._access_token = access_token
        self._access_token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=max(expires_in - 60, 30))
        log.debug("Refreshed Google Calendar access token")
        return self._access_token

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        token = await self._get_access_token()
        url = f"{self.base_url}{path}"
        try:
            log.trace(f"Calendar API {method} {path}")
            response = await self.client.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
            log.trace(f"Calendar API response: {response.status_code}")
        except httpx.RequestError as e:
            error_msg = f"Calendar request error for {method} {url}: {str(e)}"
            log.error(error_msg)
            raise CalendarRequestError(error_msg) from e
        return response

    async def create_event(
        self,
        calendar_id: str,
        title: str,
        start: datetime,
        end: datetime,
        description: str = ""
    ) -> CalendarEvent:
        body = {
            "summary": title,
            "description": description,
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
        }
        response = await self._request("POST", f"/calendars/{quote(calendar_id, safe='')}/events", json=body)
        if response.status_code >= 300:
            error_msg = f"Calendar HTTP {response.status_code} creating event in {calendar_id}"
            log.error(f"{error_msg}\nRaw response: {response.text}")
            raise CalendarRequestError(error_msg, status_code=response.status_code)

        event_id = response.json()["id"]
        log.debug(f"Created calendar event {event_id} in {calendar_id}: {title}")
        return CalendarEvent(
            id=event_id,
            calendar_id=calendar_id,
            title=title,
            description=description,
            start=start,
            end=end
        )

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Deletes an event; an event that is already gone (404/410) counts as deleted."""
        path = f"/calendars/{quote(calendar_id, safe='')}/events/{quote(event_id, safe='')}"
        response = await self._request("DELETE", path)
        if response.status_code in (404, 410):
            log.info(f"Calendar event {event_id} in {calendar_id} already deleted")
            return
        if response.status_code >= 300:
            error_msg = f"Calendar HTTP {response.status_code} deleting event {event_id} in {calendar_id}"
            log.error(f"{error_msg}\nRaw response: {response.text}")
            raise CalendarRequestError(error_msg, status_code=response.status_code)
        log.debug(f"Deleted calendar event {event_id} in {calendar_id}")

    async def close(self):
        await self.client.aclose()
