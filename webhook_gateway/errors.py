"""Error taxonomy for the webhook gateway.

Every error carries the HTTP status the endpoint answers with. Events that
are ignored on purpose (bots, unsupported actions, non-qualifying labels)
are not errors and never raise.
"""

from fastapi import status


class GatewayError(Exception):
    """Base class for request-terminating gateway failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AuthenticationError(GatewayError):
    """Raised when the request signature cannot be verified."""

    status_code = status.HTTP_401_UNAUTHORIZED


class MalformedPayloadError(GatewayError):
    """Raised when a body that must be decoded is not a JSON object."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnknownIssueActionError(GatewayError):
    """Raised when an issues payload carries no recognised ``action``.

    Callers treat this as an early exit rather than a failure.
    """

    status_code = status.HTTP_200_OK

    def __init__(self, action: object):
        self.action = action
        super().__init__(f"Unknown issues action: {action!r}")


class PayloadSchemaError(GatewayError):
    """Raised when a label event does not match the expected shape."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class DownstreamDeliveryError(GatewayError):
    """Raised when relaying to a sink fails.

    Attributes:
        sink: The sink the delivery was aimed at.
        cause: Short description of what went wrong.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, sink: str, cause: str):
        self.sink = sink
        self.cause = cause
        super().__init__(f"Delivery to {sink} failed: {cause}")
