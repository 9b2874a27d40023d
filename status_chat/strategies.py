"""Delivery strategies for getting data across the origin boundary"""

from typing import Any, Optional

import httpx
import orjson
from loguru import logger

from .callbacks import CallbackRegistry
from .config import CALLBACK_PARAM, PAGE_ORIGIN, RELAY_URL
from .exceptions import (
    AttemptTimeoutError,
    HttpStatusError,
    MalformedPayloadError,
    NetworkError,
    OpaqueResponseError,
    RelayApplicationError,
)
from .models import AttemptResult, LogicalRequest, Strategy


class TransportStrategy:
    """One way of delivering a logical request. Subclasses raise on failure."""

    name: Strategy

    def applicable(self, request: LogicalRequest) -> bool:
        return True

    async def attempt(self, request: LogicalRequest, client: httpx.AsyncClient) -> AttemptResult:
        raise NotImplementedError

    async def _get(self, client: httpx.AsyncClient, url, **kwargs) -> httpx.Response:
        """GET with httpx errors translated into transport exceptions"""
        try:
            return await client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise AttemptTimeoutError(f"{self.name.value} request timed out: {e}")
        except httpx.TransportError as e:
            raise NetworkError(f"{self.name.value} network error: {e}")

    def _check_status(self, response: httpx.Response) -> None:
        if response.status_code >= 400 or response.status_code < 200:
            raise HttpStatusError(
                f"{self.name.value} got HTTP {response.status_code}",
                http_status=response.status_code,
            )


class DirectFetchStrategy(TransportStrategy):
    """
    Plain cross-origin GET.

    The response only counts when the server grants our origin read access
    through Access-Control-Allow-Origin; otherwise it is opaque.
    """

    name = Strategy.DIRECT_FETCH

    def __init__(self, page_origin: str = PAGE_ORIGIN):
        self.page_origin = page_origin

    def is_readable(self, response: httpx.Response) -> bool:
        allowed = response.headers.get("access-control-allow-origin", "").strip()
        return allowed == "*" or allowed == self.page_origin

    async def attempt(self, request: LogicalRequest, client: httpx.AsyncClient) -> AttemptResult:
        url = request.target_url()
        logger.debug(f"   → Direct GET {url}")
        response = await self._get(client, url, headers={"Origin": self.page_origin})

        if not self.is_readable(response):
            raise OpaqueResponseError("Response not readable from this origin (opaque)")

        self._check_status(response)
        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise MalformedPayloadError(
                f"Direct response is not JSON: {e}", http_status=response.status_code
            )
        return AttemptResult(data=data, http_status=response.status_code)


class RelayFetchStrategy(TransportStrategy):
    """
    Fetch through a public CORS relay.

    The relay wraps the target's body as {contents, status: {http_code}};
    a non-200 inner code is an application error, never retried.
    """

    name = Strategy.RELAY_FETCH

    def __init__(self, relay_url: Optional[str] = RELAY_URL):
        self.relay_url = relay_url

    def applicable(self, request: LogicalRequest) -> bool:
        return bool(self.relay_url)

    async def attempt(self, request: LogicalRequest, client: httpx.AsyncClient) -> AttemptResult:
        target = str(request.target_url())
        logger.debug(f"   → Relay GET {self.relay_url} (url={target})")
        response = await self._get(client, self.relay_url, params={"url": target})
        self._check_status(response)

        try:
            envelope = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise MalformedPayloadError(f"Relay envelope is not JSON: {e}")
        if not isinstance(envelope, dict):
            raise MalformedPayloadError("Relay envelope is not a JSON object")

        inner_status = self._inner_status(envelope)
        if inner_status != 200:
            raise RelayApplicationError(
                f"Relay reported HTTP {inner_status} from target", http_status=inner_status or 0
            )

        return AttemptResult(data=self.unwrap(envelope.get("contents")), http_status=inner_status)

    @staticmethod
    def _inner_status(envelope: dict) -> Optional[int]:
        status = envelope.get("status")
        if not isinstance(status, dict):
            return None
        code = status.get("http_code")
        try:
            return int(code)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def unwrap(contents: Any) -> Any:
        """Parse relayed contents as JSON, falling back to the raw text"""
        if contents is None:
            raise MalformedPayloadError("Relay envelope has no contents")
        if not isinstance(contents, str):
            return contents
        try:
            return orjson.loads(contents)
        except orjson.JSONDecodeError:
            return contents


class ScriptInjectionStrategy(TransportStrategy):
    """
    Script-injection delivery.

    Loads `target&callback=<name>` and executes the body as a callback
    invocation. There is no status code to see, so a delivered payload is
    reported as HTTP 200.
    """

    name = Strategy.SCRIPT_INJECTION

    def __init__(self, registry: CallbackRegistry):
        self.registry = registry

    async def attempt(self, request: LogicalRequest, client: httpx.AsyncClient) -> AttemptResult:
        with self.registry.reserve() as pending:
            url = request.target_url({CALLBACK_PARAM: pending.name})
            pending.script_url = str(url)
            logger.debug(f"   → Script GET {url}")

            try:
                response = await self._get(client, url)
                self._check_status(response)
            except (HttpStatusError, NetworkError) as e:
                # Script onerror: no way to tell a 404 from a dropped connection
                raise NetworkError(f"Failed to load script: {e}")

            invoked = self.registry.execute_script(response.text, pending.name)
            if invoked is None:
                logger.debug("   Script ran without invoking a callback")

            # Resolves when our callback fires; the caller's timeout bounds the wait
            data = await pending.future
            return AttemptResult(data=data, http_status=200)
