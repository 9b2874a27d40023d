"""Status chat API client built on the transport resolver"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from loguru import logger

from .config import (
    DEFAULT_ENDPOINT,
    OPERATION_HEALTH,
    OPERATION_STATUSES,
    OPERATION_UPDATE_STATUS,
)
from .models import ResultEnvelope, StatusRecord
from .resolver import TransportResolver


class StatusChatClient:
    """
    Client for the three backend operations:
    - health: liveness check
    - statuses: everyone's latest status
    - update-status: publish our own status
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        resolver: Optional[TransportResolver] = None,
        **resolver_options,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Backend URL, ignored when `resolver` is given
            resolver: Existing resolver to share
            **resolver_options: Passed to TransportResolver (timeout, retry_policy, ...)
        """
        if resolver is None:
            resolver = TransportResolver(endpoint=endpoint, **resolver_options)
        self.resolver = resolver

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass

    @property
    def endpoint(self) -> str:
        return self.resolver.endpoint

    def set_endpoint(self, url: str) -> None:
        self.resolver.set_endpoint(url)

    async def health_check(self) -> ResultEnvelope:
        return await self.resolver.resolve(self.resolver.request(OPERATION_HEALTH))

    async def get_statuses(self) -> ResultEnvelope:
        return await self.resolver.resolve(self.resolver.request(OPERATION_STATUSES))

    async def update_status(
        self, name: str, status: str, timestamp: Optional[str] = None
    ) -> ResultEnvelope:
        """
        Publish a status for `name`.

        Retries may record the update twice if an earlier attempt reached the
        backend but its response was lost.

        Raises:
            ValueError: If name or status is blank
        """
        name = (name or "").strip()
        status = (status or "").strip()
        if not name or not status:
            raise ValueError("Both a name and a status message are required")

        if timestamp is None:
            timestamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        logger.info(f"Updating status for {name}")
        request = self.resolver.request(
            OPERATION_UPDATE_STATUS, name=name, status=status, timestamp=timestamp
        )
        return await self.resolver.resolve(request)

    @staticmethod
    def parse_statuses(data: Any) -> List[StatusRecord]:
        """Extract status records from a `statuses` payload, skipping bad entries"""
        if not isinstance(data, dict):
            return []
        raw_statuses = data.get("statuses") or []
        if not isinstance(raw_statuses, list):
            return []

        records = []
        for raw in raw_statuses:
            record = StatusRecord.from_dict(raw)
            if record is None:
                logger.debug(f"Skipping malformed status entry: {raw!r}")
                continue
            records.append(record)
        return records
