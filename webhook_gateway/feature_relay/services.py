import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Annotated

import httpx
from fastapi import Depends

from webhook_gateway.config import Settings, settings
from webhook_gateway.errors import DownstreamDeliveryError
from webhook_gateway.feature_webhook.models import IssueLabelEvent

from .models import EMBED_TITLE_LIMIT, EmbedAuthor, Notification

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"

# Never relayed: credentials and identity of the inbound hop, plus framing
# headers the outbound client sets itself
STRIPPED_HEADERS = frozenset(
    {
        "authorization",
        "host",
        "connection",
        "keep-alive",
        "content-length",
        "transfer-encoding",
    }
)


def sanitize_headers(
    headers: Mapping[str, str] | Iterable[tuple[str, str]],
) -> list[tuple[str, str]]:
    """Copies headers for relay, dropping every name in STRIPPED_HEADERS.

    Pairs are kept in order, repeated headers included.
    """
    items = headers.items() if isinstance(headers, Mapping) else headers
    return [
        (name, value) for name, value in items if name.lower() not in STRIPPED_HEADERS
    ]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def build_notification(event: IssueLabelEvent) -> Notification:
    """Builds the embed announcing a newly labelled good first issue."""
    issue = event.issue
    repo = event.repository.name
    title = _truncate(
        f"[{repo}] New good first issue #{issue.number}: {issue.title}",
        EMBED_TITLE_LIMIT,
    )
    description = (
        f"{event.sender.login} marked issue [#{issue.number}]({issue.html_url}) "
        f"in **{repo}** as a good first issue:\n"
        f"> {issue.title}"
    )
    if issue.labels:
        labels = ", ".join(label.name for label in issue.labels)
        description += f"\nLabels: {labels}"
    return Notification(
        author=EmbedAuthor(name=event.sender.login, icon_url=event.sender.avatar_url),
        title=title,
        url=issue.html_url,
        description=description,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


class RelayService:
    """Delivers events to the downstream notification sinks.

    Deliveries are best effort: a failed attempt is logged and reported to
    the caller as a DownstreamDeliveryError, never retried.
    """

    def __init__(
        self,
        config: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.transport = transport

    def issues_sink(self) -> tuple[str, dict[str, str]]:
        """Resolves the issues sink URL and any auth headers it needs."""
        if self.config.DISCORD_BOT_TOKEN and self.config.ISSUES_CHANNEL_ID:
            channel = self.config.ISSUES_CHANNEL_ID
            url = f"{DISCORD_API_BASE}/channels/{channel}/messages"
            return url, {"Authorization": f"Bot {self.config.DISCORD_BOT_TOKEN}"}
        return self.config.ISSUES_WEBHOOK_URL, {}

    async def forward(
        self,
        body: bytes,
        headers: Mapping[str, str] | Iterable[tuple[str, str]],
    ) -> None:
        """Relays the raw delivery to the activity sink, body untouched."""
        await self._post(
            "activity",
            self.config.ACTIVITY_WEBHOOK_URL,
            content=body,
            headers=sanitize_headers(headers),
        )
        logger.info("Forwarded GitHub event to activity sink.")

    async def notify(self, notification: Notification) -> None:
        """Posts a rich notification to the issues sink."""
        url, auth_headers = self.issues_sink()
        await self._post(
            "issues",
            url,
            json=notification.to_payload(),
            headers=auth_headers,
        )
        logger.info("Posted notification %r to issues sink.", notification.title)

    async def _post(self, sink: str, url: str, **kwargs) -> httpx.Response:
        if not url:
            logger.error("No URL configured for the %s sink.", sink)
            raise DownstreamDeliveryError(sink, "sink is not configured")

        # Non-ASCII header values fail while httpx encodes the request
        try:
            async with httpx.AsyncClient(
                transport=self.transport, timeout=self.config.RELAY_TIMEOUT_SECONDS
            ) as client:
                response = await client.post(url, **kwargs)
        except (httpx.HTTPError, UnicodeEncodeError) as e:
            logger.error("Delivery to %s sink failed: %s", sink, e)
            raise DownstreamDeliveryError(sink, str(e) or type(e).__name__) from e

        if not response.is_success:
            logger.error(
                "Delivery to %s sink rejected with status %s: %s",
                sink,
                response.status_code,
                response.text,
            )
            raise DownstreamDeliveryError(sink, f"status {response.status_code}")
        return response


# Dependency provider for the service
def get_relay_service() -> RelayService:
    return RelayService(config=settings)


RelayServiceDep = Annotated[RelayService, Depends(get_relay_service)]
