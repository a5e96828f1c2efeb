"""VibeCalendar backend REST client.

Thin async wrapper over httpx for the FastAPI backend: JWT login, event
mirroring, the remote profile and the anonymous timeline. Every endpoint
except the auth ones requires a stored bearer token; a 401 received while
holding a token means the session expired and the user is logged out.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from vibecal.integrations.api_models import (
    AuthResponse,
    ReactionType,
    RegisterRequest,
    RemoteProfile,
    ScheduleEvent,
    TimelineFeedItem,
    TimelineFeedResponse,
    TimelinePost,
    User,
)
from vibecal.integrations.auth import AuthManager

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class APIError(Exception):
    """Base class for backend failures."""


class APIHTTPError(APIError):
    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"HTTP error {status_code}" + (f": {detail}" if detail else ""))


class APIInvalidResponseError(APIError):
    """The server answered with something that is not a usable response."""


class APIDecodingError(APIError):
    """The response body could not be decoded into the expected shape."""


class APIEncodingError(APIError):
    """The request body could not be serialized."""


class APIServerError(APIError):
    """The server could not be reached or failed to answer."""


def _is_auth_endpoint(endpoint: str) -> bool:
    return "/auth/" in endpoint or "/login" in endpoint or "/register" in endpoint


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class VibeAPIClient:
    """Async client for the VibeCalendar backend."""

    def __init__(
        self,
        base_url: str | None = None,
        auth: AuthManager | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if base_url is None or timeout is None:
            from vibecal.config import settings
            base_url = base_url or settings.api_base_url
            timeout = timeout if timeout is not None else settings.API_TIMEOUT_SECONDS

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self.auth = auth or AuthManager()

    # -- transport ---------------------------------------------------------

    async def _send(
        self, method: str, endpoint: str, token: str | None = None, **kwargs: Any,
    ) -> httpx.Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport,
            ) as client:
                return await client.request(method, endpoint, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Request %s %s failed: %s", method, endpoint, exc)
            raise APIServerError(f"{method} {endpoint} failed: {exc}") from exc

    async def _request(
        self,
        method: str,
        endpoint: str,
        body: BaseModel | None = None,
        **kwargs: Any,
    ) -> Any:
        """Send an API request and return the decoded JSON (None when empty)."""
        token = self.auth.get_auth_token()
        if token is None and not _is_auth_endpoint(endpoint):
            logger.warning("Request blocked: no auth token for %s", endpoint)
            raise APIHTTPError(401)

        if body is not None:
            try:
                kwargs["json"] = body.model_dump(mode="json")
            except (TypeError, ValueError) as exc:
                raise APIEncodingError(f"Could not encode request body: {exc}") from exc

        response = await self._send(method, endpoint, token=token, **kwargs)

        if not response.is_success:
            if response.status_code == 401 and token is not None:
                logger.warning("401 received with a token; session expired, logging out.")
                self.auth.logout()
            else:
                logger.error(
                    "API error %d on %s %s: %s",
                    response.status_code, method, endpoint, response.text[:200],
                )
            raise APIHTTPError(response.status_code, response.text[:200])

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise APIDecodingError(f"Invalid JSON from {endpoint}: {exc}") from exc

    @staticmethod
    def _decode(model: type[_M], data: Any) -> _M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise APIDecodingError(f"Unexpected {model.__name__} payload: {exc}") from exc

    @classmethod
    def _decode_list(cls, model: type[_M], data: Any) -> list[_M]:
        if not isinstance(data, list):
            raise APIDecodingError(f"Expected a list of {model.__name__}, got {type(data).__name__}")
        return [cls._decode(model, item) for item in data]

    # -- auth --------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResponse:
        """Log in with the form-encoded JWT endpoint and store the session."""
        response = await self._send(
            "POST", "/auth/jwt/login", data={"username": email, "password": password},
        )
        if not response.is_success:
            logger.error("Login failed (%d): %s", response.status_code, response.text[:200])
            raise APIHTTPError(response.status_code, response.text[:200])

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise APIDecodingError(f"Unexpected login response: {exc}") from exc

        user_response = await self._send("GET", "/users/me", token=token)
        if not user_response.is_success:
            raise APIInvalidResponseError(
                f"Could not fetch user after login (HTTP {user_response.status_code})"
            )
        try:
            user = self._decode(User, user_response.json())
        except ValueError as exc:
            raise APIDecodingError(f"Invalid JSON from /users/me: {exc}") from exc

        self.auth.set_authenticated(token, user.id)
        logger.info("Logged in as %s", user.id)
        return AuthResponse(token=token, user=user)

    async def register(self, username: str, email: str, password: str) -> AuthResponse:
        request = RegisterRequest(username=username, email=email, password=password)
        data = await self._request("POST", "/auth/register", body=request)
        self._decode(User, data)
        return await self.login(email, password)

    async def validate_session(self) -> bool:
        if self.auth.get_auth_token() is None:
            return False
        try:
            await self._request("GET", "/users/me")
            return True
        except APIError as exc:
            logger.info("Session validation failed: %s", exc)
            return False

    def logout(self) -> None:
        self.auth.logout()

    # -- events ------------------------------------------------------------

    async def fetch_events(self) -> list[ScheduleEvent]:
        return self._decode_list(ScheduleEvent, await self._request("GET", "/events/"))

    async def create_event(self, event: ScheduleEvent) -> ScheduleEvent:
        return self._decode(ScheduleEvent, await self._request("POST", "/events/", body=event))

    async def update_event(self, event: ScheduleEvent) -> ScheduleEvent:
        return self._decode(
            ScheduleEvent, await self._request("PUT", f"/events/{event.id}", body=event),
        )

    async def delete_event(self, event_id: str) -> None:
        await self._request("DELETE", f"/events/{event_id}")

    # -- profile -----------------------------------------------------------

    async def fetch_profile(self) -> RemoteProfile:
        return self._decode(RemoteProfile, await self._request("GET", "/profile/"))

    async def update_profile(self, profile: RemoteProfile) -> RemoteProfile:
        return self._decode(RemoteProfile, await self._request("PUT", "/profile/", body=profile))

    # -- timeline ----------------------------------------------------------

    async def fetch_timeline(self, limit: int = 20, offset: int = 0) -> list[TimelineFeedItem]:
        data = await self._request(
            "GET", "/timeline/posts", params={"limit": limit, "offset": offset},
        )
        responses = self._decode_list(TimelineFeedResponse, data)
        return [TimelineFeedItem.from_response(res) for res in responses]

    async def toggle_reaction(self, post_id: str, reaction: ReactionType) -> None:
        await self._request(
            "POST", f"/timeline/posts/{post_id}/reactions", params={"reaction_type": reaction.value},
        )

    async def remove_reaction(self, post_id: str) -> None:
        await self._request("DELETE", f"/timeline/posts/{post_id}/reactions")

    async def create_post(self, post: TimelinePost) -> TimelinePost:
        return self._decode(TimelinePost, await self._request("POST", "/timeline/posts", body=post))

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/timeline/posts/{post_id}")

    async def upload_icon(self, post_id: str, image: bytes) -> str:
        """Upload a JPEG icon for a post and return its public URL."""
        data = await self._request(
            "POST",
            f"/timeline/posts/{post_id}/icon",
            files={"file": ("icon.jpg", image, "image/jpeg")},
        )
        if not isinstance(data, dict) or "icon_url" not in data:
            raise APIInvalidResponseError(f"Icon upload for {post_id} returned no icon_url")
        return str(data["icon_url"])
