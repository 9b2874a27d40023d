"""Data models and enums for the status chat client"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import httpx

ParamValue = Union[str, int, float]


class Strategy(Enum):
    """Delivery strategies, in the order the resolver tries them"""

    DIRECT_FETCH = "DirectFetch"
    RELAY_FETCH = "RelayFetch"
    SCRIPT_INJECTION = "ScriptInjection"


class ErrorKind(Enum):
    """Failure categories reported in result envelopes"""

    INVALID_ENDPOINT = "InvalidEndpoint"
    OPAQUE_RESPONSE = "OpaqueResponse"
    RELAY_APPLICATION_ERROR = "RelayApplicationError"
    MALFORMED_PAYLOAD = "MalformedPayload"
    TIMEOUT = "Timeout"
    NETWORK_ERROR = "NetworkError"
    HTTP_ERROR = "HttpError"
    ALL_STRATEGIES_EXHAUSTED = "AllStrategiesExhausted"


class Outcome(Enum):
    """Classified result of a single attempt"""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient"  # Retry the same strategy
    TERMINAL_FAILURE = "terminal"  # Give up on this strategy
    INCONCLUSIVE = "inconclusive"  # Can't tell, move on without retrying


@dataclass(frozen=True)
class LogicalRequest:
    """One backend operation addressed to one endpoint"""

    operation: str
    parameters: Dict[str, ParamValue] = field(default_factory=dict)
    endpoint: str = ""

    def target_url(self, extra: Optional[Dict[str, str]] = None) -> httpx.URL:
        """Backend URL carrying the operation and parameters as query string"""
        params = {"path": self.operation}
        for key, value in self.parameters.items():
            if value is not None:
                params[key] = str(value)
        if extra:
            params.update(extra)
        return httpx.URL(self.endpoint.strip()).copy_merge_params(params)


@dataclass(frozen=True)
class AttemptResult:
    """Payload recovered by a strategy attempt"""

    data: Any
    http_status: int


@dataclass(frozen=True)
class StrategyFailure:
    """Why a strategy was given up on"""

    strategy: Strategy
    error_kind: ErrorKind
    message: str
    attempts: int


@dataclass(frozen=True)
class ResultEnvelope:
    """Normalized result of a resolution, the only value handed to callers"""

    success: bool
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    http_status: int = 0
    strategy_used: Optional[Strategy] = None
    attempts: int = 0
    failures: Tuple[StrategyFailure, ...] = ()
    error: Optional[str] = None

    @classmethod
    def ok(
        cls, data: Any, http_status: int, strategy: Strategy, attempts: int = 1,
        failures: Tuple[StrategyFailure, ...] = (),
    ) -> "ResultEnvelope":
        return cls(
            success=True,
            data=data,
            http_status=http_status,
            strategy_used=strategy,
            attempts=attempts,
            failures=failures,
        )

    @classmethod
    def failure(
        cls, error_kind: ErrorKind, error: str, attempts: int = 0,
        failures: Tuple[StrategyFailure, ...] = (),
    ) -> "ResultEnvelope":
        return cls(
            success=False,
            error_kind=error_kind,
            http_status=0,
            attempts=attempts,
            failures=failures,
            error=error,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "httpStatus": self.http_status,
            "attempts": self.attempts,
        }
        if self.success:
            result["data"] = self.data
            result["strategyUsed"] = self.strategy_used.value
        else:
            result["errorKind"] = self.error_kind.value
            result["error"] = self.error
        if self.failures:
            result["failures"] = [
                {
                    "strategy": f.strategy.value,
                    "errorKind": f.error_kind.value,
                    "message": f.message,
                    "attempts": f.attempts,
                }
                for f in self.failures
            ]
        return result


@dataclass(frozen=True)
class StatusRecord:
    """One user's latest status as reported by the backend"""

    name: str
    status: str
    timestamp: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["StatusRecord"]:
        if not isinstance(raw, dict):
            return None
        name = raw.get("name")
        status = raw.get("status")
        if not name or status is None:
            return None
        return cls(name=str(name), status=str(status), timestamp=str(raw.get("timestamp", "")))


@dataclass
class Preferences:
    """Locally persisted user settings"""

    username: Optional[str] = None
    endpoint: Optional[str] = None
