import logging

from fastapi import APIRouter, Response, status

from webhook_gateway.feature_relay.services import RelayServiceDep

from .services import VerifiedRequestDep, WebhookServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Webhook"])


@router.post("/github", status_code=status.HTTP_200_OK)
async def handle_github_webhook(
    verified: VerifiedRequestDep,
    service: WebhookServiceDep,
    relay: RelayServiceDep,
) -> Response:
    """
    Handles incoming GitHub webhooks after signature validation.

    Issues events are announced on the issues sink when they qualify; other
    events from human senders are forwarded verbatim to the activity sink.
    """
    logger.info("Received POST request at /github.")
    await service.process_webhook(verified, relay)
    return Response(status_code=status.HTTP_200_OK)
