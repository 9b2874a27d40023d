"""Live Status Chat Client
Async client for a serverless status backend that can't set CORS headers
"""

__version__ = "1.0.0"

from .callbacks import CallbackRegistry
from .client import StatusChatClient
from .exceptions import (
    AttemptTimeoutError,
    HttpStatusError,
    InvalidEndpointError,
    MalformedPayloadError,
    NetworkError,
    OpaqueResponseError,
    RelayApplicationError,
    StatusChatError,
)
from .feed import render_feed, time_ago
from .models import (
    ErrorKind,
    LogicalRequest,
    Outcome,
    Preferences,
    ResultEnvelope,
    StatusRecord,
    Strategy,
)
from .preferences import PreferenceStore
from .resolver import TransportResolver, validate_endpoint
from .retry import RetryPolicy, classify_error
from .strategies import (
    DirectFetchStrategy,
    RelayFetchStrategy,
    ScriptInjectionStrategy,
    TransportStrategy,
)

__all__ = [
    "__version__",
    "CallbackRegistry",
    "StatusChatClient",
    "AttemptTimeoutError",
    "HttpStatusError",
    "InvalidEndpointError",
    "MalformedPayloadError",
    "NetworkError",
    "OpaqueResponseError",
    "RelayApplicationError",
    "StatusChatError",
    "render_feed",
    "time_ago",
    "ErrorKind",
    "LogicalRequest",
    "Outcome",
    "Preferences",
    "ResultEnvelope",
    "StatusRecord",
    "Strategy",
    "PreferenceStore",
    "TransportResolver",
    "validate_endpoint",
    "RetryPolicy",
    "classify_error",
    "DirectFetchStrategy",
    "RelayFetchStrategy",
    "ScriptInjectionStrategy",
    "TransportStrategy",
]
