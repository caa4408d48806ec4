import binascii
import hashlib
import hmac
import json
import logging
from collections.abc import Mapping
from typing import Annotated, Any

from fastapi import Depends, Header, Request
from pydantic import ValidationError

from webhook_gateway.config import Settings, settings
from webhook_gateway.errors import (
    AuthenticationError,
    MalformedPayloadError,
    PayloadSchemaError,
    UnknownIssueActionError,
)
from webhook_gateway.feature_relay.services import RelayService, build_notification

from .models import (
    ActionProbe,
    EventClassification,
    InboundRequest,
    IssueLabelEvent,
    IssuesAction,
    VerifiedRequest,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
SIGNATURE_PREFIX = "sha256="
REPORTED_LABEL = "good first issue"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def sign(body: bytes, secret: str) -> str:
    """Returns the ``X-Hub-Signature-256`` value GitHub would send for body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(headers: Mapping[str, str], body: bytes, secret: str) -> bool:
    """
    Checks the HMAC-SHA256 signature of a delivery against the shared secret.

    The digest is computed over the raw body exactly as received, so this
    must run before the body is parsed. Any missing, malformed or mismatched
    signature yields False; nothing is raised.
    """
    signature = _header(headers, SIGNATURE_HEADER)
    if not signature or not secret:
        return False

    signature = signature.removeprefix(SIGNATURE_PREFIX)
    try:
        received = binascii.unhexlify(signature)
    except (binascii.Error, ValueError):
        return False

    computed = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return hmac.compare_digest(received, computed)


def classify(event_type: str | None) -> EventClassification:
    """Maps the ``X-GitHub-Event`` header to an event category."""
    if not event_type:
        return EventClassification.UNKNOWN
    if event_type == "issues":
        return EventClassification.ISSUES
    if event_type == "pull_request":
        return EventClassification.PULL_REQUEST
    return EventClassification.GENERIC


def is_human_sender(payload: Any) -> bool:
    """True only when ``sender.type`` is exactly ``"User"``."""
    if not isinstance(payload, Mapping):
        return False
    sender = payload.get("sender")
    if not isinstance(sender, Mapping):
        return False
    return sender.get("type") == "User"


def _load_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(f"Body is not valid JSON: {e}") from e


def _load_json_object(body: bytes) -> dict[str, Any]:
    payload = _load_json(body)
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Body is not a JSON object")
    return payload


def decode_action(body: bytes) -> IssuesAction:
    """
    Reads only the top-level ``action`` of an issues payload.

    Raises:
        MalformedPayloadError: If the body is not a JSON object.
        UnknownIssueActionError: If the action is missing or unrecognised.
    """
    payload = _load_json_object(body)
    try:
        probe = ActionProbe.model_validate({"action": payload.get("action")})
    except ValidationError as e:
        raise UnknownIssueActionError(payload.get("action")) from e
    try:
        return IssuesAction(probe.action)
    except ValueError as e:
        raise UnknownIssueActionError(probe.action) from e


def decode_issue_label_event(body: bytes) -> IssueLabelEvent:
    """Fully decodes a label event. A shape mismatch is a PayloadSchemaError."""
    try:
        return IssueLabelEvent.model_validate_json(body)
    except ValidationError as e:
        raise PayloadSchemaError(f"Issue label payload did not match: {e}") from e


def should_report(event: IssueLabelEvent) -> bool:
    """True for an open issue that just received the good first issue label."""
    if event.action != IssuesAction.LABELED.value:
        return False
    if event.issue.state != "open":
        return False
    return event.label is not None and event.label.name == REPORTED_LABEL


class WebhookService:
    """Service for handling webhook logic."""

    def __init__(self, config: Settings):
        self.config = config

    async def validate_signature(
        self, request: Request, x_hub_signature_256: str | None = Header(None)
    ) -> VerifiedRequest:
        """
        Validates the GitHub webhook signature.

        Raises:
            AuthenticationError: If the signature is missing or invalid.
        """
        if not x_hub_signature_256:
            logger.warning("Missing X-Hub-Signature-256 header")
            raise AuthenticationError("Missing X-Hub-Signature-256 header")

        if not self.config.GITHUB_WEBHOOK_SECRET:
            logger.error("Webhook secret is not configured on the server.")
            raise AuthenticationError("Invalid signature.")

        body = await request.body()
        inbound = InboundRequest(
            body=body,
            headers=request.headers,
            event_type=request.headers.get("x-github-event"),
        )
        verified = VerifiedRequest(
            request=inbound,
            authentic=verify(inbound.headers, body, self.config.GITHUB_WEBHOOK_SECRET),
        )
        if not verified.authentic:
            logger.warning("Unauthorized request at /github!")
            raise AuthenticationError("Invalid signature.")

        logger.debug("Webhook signature validated successfully.")
        return verified

    async def process_webhook(
        self, verified: VerifiedRequest, relay: RelayService
    ) -> None:
        """
        Routes an authenticated delivery to the matching relay path.

        Returns normally both when something was relayed and when the event
        was deliberately ignored.
        """
        if not verified.authentic:
            raise AuthenticationError("Request was not verified.")

        inbound = verified.request
        classification = classify(inbound.event_type)
        logger.info(
            "Processing webhook event: %s (%s)",
            inbound.event_type,
            classification.value,
        )

        if classification is EventClassification.ISSUES:
            await self._process_issue(inbound, relay)
        else:
            await self._process_activity(inbound, relay)

    async def _process_issue(
        self, inbound: InboundRequest, relay: RelayService
    ) -> None:
        try:
            action = decode_action(inbound.body)
        except UnknownIssueActionError as e:
            logger.info("Ignoring issues event with unsupported action %r.", e.action)
            return

        if not action.is_label_action:
            logger.debug("Ignoring issues event with action %s.", action.value)
            return

        event = decode_issue_label_event(inbound.body)
        if not should_report(event):
            logger.info(
                "Issue #%s label event does not qualify for a notification.",
                event.issue.number,
            )
            return

        await relay.notify(build_notification(event))

    async def _process_activity(
        self, inbound: InboundRequest, relay: RelayService
    ) -> None:
        payload = _load_json(inbound.body)
        if not is_human_sender(payload):
            logger.info("Ignoring event from non-human sender.")
            return

        await relay.forward(inbound.body, inbound.headers)


# Dependency provider for the service
def get_webhook_service() -> WebhookService:
    return WebhookService(config=settings)


WebhookServiceDep = Annotated[WebhookService, Depends(get_webhook_service)]


# Dependency for signature validation
async def verify_github_signature(
    request: Request,
    service: WebhookServiceDep,
    x_hub_signature_256: str | None = Header(None),
) -> VerifiedRequest:
    """FastAPI dependency to verify the GitHub webhook signature."""
    return await service.validate_signature(request, x_hub_signature_256)


VerifiedRequestDep = Annotated[VerifiedRequest, Depends(verify_github_signature)]
