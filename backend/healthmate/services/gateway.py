"""HealthMate API gateway: submit handlers for the login, register and contact forms.

Each handler takes a form's value map, posts it to the HealthMate API and
returns the decoded JSON body. A failed request raises GatewayError whose
message is the API's own "message" field when it sent one, so the submission
controller can surface it verbatim.
"""

from typing import Any, Awaitable, Callable, Mapping, Optional

import aiohttp
import structlog

from healthmate.config import get_settings

logger = structlog.get_logger()

SubmitHandler = Callable[[Mapping[str, str]], Awaitable[Any]]


class GatewayError(Exception):
    """The HealthMate API rejected a request or could not be reached."""

    def __init__(self, message: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class HealthMateGateway:
    """Thin aiohttp client over the HealthMate API.

    The aiohttp session is created lazily and must be closed with close().
    """

    def __init__(self, base_url: Optional[str] = None, timeout_seconds: Optional[float] = None):
        settings = get_settings()
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.HTTP_TIMEOUT_SECONDS)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _post(self, path: str, payload: dict) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().post(url, json=payload) as resp:
                body = await _read_json(resp)
                if resp.status >= 400:
                    message = body.get("message", "") if isinstance(body, dict) else ""
                    logger.warning("gateway_request_rejected", path=path, status=resp.status)
                    raise GatewayError(message, status=resp.status)
                return body
        except aiohttp.ClientError as e:
            logger.error("gateway_request_failed", path=path, error=str(e))
            # Empty message: the form's generic failure text is shown instead
            raise GatewayError("", status=None) from e

    # ── Submit handlers ──

    async def login(self, values: Mapping[str, str]) -> Any:
        return await self._post("/auth/login", {
            "email": values.get("email", ""),
            "password": values.get("password", ""),
        })

    async def register(self, values: Mapping[str, str]) -> Any:
        # confirmPassword never leaves the client
        return await self._post("/auth/register", {
            "name": values.get("name", ""),
            "email": values.get("email", ""),
            "password": values.get("password", ""),
        })

    async def send_contact(self, values: Mapping[str, str]) -> Any:
        return await self._post("/contact", dict(values))

    def handler_for(self, form_id: str) -> Optional[SubmitHandler]:
        """Submit handler for a form id, or None if the form has none."""
        return {
            "login": self.login,
            "register": self.register,
            "contact": self.send_contact,
        }.get(form_id)

    async def ping(self) -> None:
        """Reachability check for health reporting. Raises on failure."""
        async with self._get_session().get(self.base_url) as resp:
            await resp.read()


async def _read_json(resp: aiohttp.ClientResponse) -> Any:
    try:
        return await resp.json(content_type=None)
    except ValueError:
        return {}
