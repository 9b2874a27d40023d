"""Custom exception classes for the status chat client"""

from .models import ErrorKind


class StatusChatError(Exception):
    """Base exception for transport errors"""

    kind = ErrorKind.NETWORK_ERROR

    def __init__(self, message: str = "", http_status: int = 0):
        self.http_status = http_status
        super().__init__(message or self.kind.value)


class InvalidEndpointError(StatusChatError, ValueError):
    """Raised when the endpoint is not an absolute http(s) URL"""

    kind = ErrorKind.INVALID_ENDPOINT


class OpaqueResponseError(StatusChatError):
    """Raised when a cross-origin response cannot be read

    The transfer may well have happened, but the server did not grant read
    permission to our origin, so the payload is lost to us. This is an
    inconclusive outcome, not a failure worth retrying.
    """

    kind = ErrorKind.OPAQUE_RESPONSE


class RelayApplicationError(StatusChatError):
    """Raised when the relay reports a non-200 status for the target"""

    kind = ErrorKind.RELAY_APPLICATION_ERROR


class MalformedPayloadError(StatusChatError):
    """Raised when a payload cannot be parsed as JSON"""

    kind = ErrorKind.MALFORMED_PAYLOAD


class AttemptTimeoutError(StatusChatError):
    """Raised when a single attempt exceeds its timeout"""

    kind = ErrorKind.TIMEOUT


class NetworkError(StatusChatError):
    """Raised when the network transfer itself failed"""

    kind = ErrorKind.NETWORK_ERROR


class HttpStatusError(StatusChatError):
    """Raised on a readable error status from the backend or relay"""

    kind = ErrorKind.HTTP_ERROR
