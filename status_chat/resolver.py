"""Transport resolver: strategy selection, retry and timeout handling"""

import asyncio
import time
from typing import Dict, List, Optional, Sequence

import httpx
from loguru import logger

from .callbacks import CallbackRegistry
from .config import (
    DEFAULT_ENDPOINT,
    DEFAULT_REQUEST_TIMEOUT,
    OPERATIONS,
    PAGE_ORIGIN,
    RELAY_URL,
)
from .exceptions import AttemptTimeoutError, InvalidEndpointError
from .models import (
    ErrorKind,
    LogicalRequest,
    Outcome,
    ParamValue,
    ResultEnvelope,
    Strategy,
)
from .retry import RetryPolicy, classify_error, error_kind_of
from .state import Phase, ResolutionState, Transition
from .strategies import (
    DirectFetchStrategy,
    RelayFetchStrategy,
    ScriptInjectionStrategy,
    TransportStrategy,
)


def validate_endpoint(url: str) -> str:
    """
    Check that `url` is an absolute http(s) URL.

    Returns:
        The stripped URL

    Raises:
        InvalidEndpointError: If the URL is relative, has no host or can't be parsed
    """
    if not isinstance(url, str):
        raise InvalidEndpointError(f"Invalid endpoint URL {url!r}: not a string")
    candidate = url.strip()
    try:
        parsed = httpx.URL(candidate)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidEndpointError(f"Invalid endpoint URL {url!r}: {e}")
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidEndpointError(f"Invalid endpoint URL {url!r}: not an absolute http(s) URL")
    return candidate


class TransportResolver:
    """
    Resolves logical requests against a backend that won't set CORS headers.

    - Strategies tried in fixed order: direct, relay, script injection
    - Opaque direct responses fall through without retry
    - Transient failures retried with linear backoff, per strategy
    - Every attempt bounded by a timeout
    - Never raises: all failures end up in the ResultEnvelope
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retry_policy: Optional[RetryPolicy] = None,
        relay_url: Optional[str] = RELAY_URL,
        page_origin: str = PAGE_ORIGIN,
        strategies: Optional[Sequence[TransportStrategy]] = None,
        callbacks: Optional[CallbackRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the resolver.

        Args:
            endpoint: Backend base URL used by `request()`
            timeout: Per-attempt timeout in seconds
            retry_policy: Retry ceiling and backoff; defaults to RetryPolicy()
            relay_url: CORS relay endpoint, None disables the relay strategy
            page_origin: Origin presented on direct fetches
            strategies: Override the default strategy chain
            callbacks: Registry for script-injection callbacks
            transport: httpx transport for every client (tests use MockTransport)
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.callbacks = callbacks or CallbackRegistry()
        self.transport = transport
        if strategies is None:
            strategies = [
                DirectFetchStrategy(page_origin=page_origin),
                RelayFetchStrategy(relay_url=relay_url),
                ScriptInjectionStrategy(self.callbacks),
            ]
        self.strategies: List[TransportStrategy] = list(strategies)

        logger.debug(
            f"Transport resolver initialized: timeout={timeout}s, "
            f"max_attempts={self.retry_policy.max_attempts}, "
            f"strategies={[s.name.value for s in self.strategies]}"
        )

    def set_endpoint(self, url: str) -> None:
        """Switch the backend used by subsequent requests"""
        self.endpoint = validate_endpoint(url)
        logger.info(f"Endpoint configured: {self.endpoint}")

    def request(self, operation: str, **parameters: ParamValue) -> LogicalRequest:
        """Build a logical request against the active endpoint"""
        if operation not in OPERATIONS:
            logger.warning(f"Unknown operation '{operation}', sending anyway")
        return LogicalRequest(operation=operation, parameters=parameters, endpoint=self.endpoint)

    def _client(self) -> httpx.AsyncClient:
        # Fresh client per resolution; redirects are followed like a browser fetch
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=self.timeout,
            follow_redirects=True,
        )

    async def _attempt(
        self, strategy: TransportStrategy, request: LogicalRequest, client: httpx.AsyncClient
    ):
        try:
            return await asyncio.wait_for(strategy.attempt(request, client), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise AttemptTimeoutError(
                f"{strategy.name.value} attempt timed out after {self.timeout}s"
            )

    async def resolve(self, request: LogicalRequest) -> ResultEnvelope:
        """Deliver `request` through the first strategy that works"""
        try:
            validate_endpoint(request.endpoint)
        except InvalidEndpointError as e:
            logger.error(f"❌ [{request.operation}] {e}")
            return ResultEnvelope.failure(ErrorKind.INVALID_ENDPOINT, str(e))

        strategies: Dict[Strategy, TransportStrategy] = {
            s.name: s for s in self.strategies if s.applicable(request)
        }
        state = ResolutionState(
            list(strategies), self.retry_policy.attempts_for(request.operation)
        )
        request_id = request.operation
        logger.info(f"🔍 [{request_id}] Resolving via {[s.value for s in strategies]}")

        start_time = time.time()
        last_error = "No applicable strategies"
        state.start()

        async with self._client() as client:
            while state.phase is Phase.TRYING:
                name = state.current_strategy
                strategy = strategies[name]
                state.begin_attempt()
                logger.debug(
                    f"   [{request_id}] {name.value} attempt {state.attempt}/{state.max_attempts}"
                )

                try:
                    result = await self._attempt(strategy, request, client)
                except Exception as e:
                    outcome = classify_error(e, self.retry_policy)
                    kind = error_kind_of(e)
                    last_error = str(e)
                    if outcome is Outcome.INCONCLUSIVE:
                        logger.info(f"   [{request_id}] {name.value} inconclusive: {e}")
                    else:
                        logger.warning(
                            f"⚠️ [{request_id}] {name.value} attempt {state.attempt} failed "
                            f"({outcome.value}, {kind.value}): {e}"
                        )
                    failed_attempt = state.attempt
                    transition = state.record(outcome, kind, last_error)
                    if transition is Transition.RETRY:
                        delay = self.retry_policy.delay_for(failed_attempt)
                        logger.info(f"   Retrying {name.value} in {delay:.1f}s...")
                        await asyncio.sleep(delay)
                    continue

                state.record(Outcome.SUCCESS)
                elapsed = time.time() - start_time
                logger.success(
                    f"✅ [{request_id}] Delivered via {name.value} "
                    f"(HTTP {result.http_status}, {elapsed:.2f}s, {state.total_attempts} attempt(s))"
                )
                return ResultEnvelope.ok(
                    data=result.data,
                    http_status=result.http_status,
                    strategy=name,
                    attempts=state.total_attempts,
                    failures=tuple(state.failures),
                )

        logger.error(
            f"❌ [{request_id}] All strategies exhausted after {state.total_attempts} attempt(s)"
        )
        return ResultEnvelope.failure(
            ErrorKind.ALL_STRATEGIES_EXHAUSTED,
            f"All strategies exhausted: {last_error}",
            attempts=state.total_attempts,
            failures=tuple(state.failures),
        )
