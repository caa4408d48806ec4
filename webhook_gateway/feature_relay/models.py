from pydantic import BaseModel

# Brand color of the community the notifications are posted to
BRAND_COLOR = 6_530_042
FOOTER_TEXT = "GitHub"
EMBED_TITLE_LIMIT = 256


class EmbedAuthor(BaseModel):
    name: str
    icon_url: str | None = None


class EmbedFooter(BaseModel):
    text: str


class Notification(BaseModel):
    """Rich message posted to the issues sink as a Discord embed."""

    author: EmbedAuthor
    title: str
    url: str | None = None
    description: str
    color: int = BRAND_COLOR
    footer: EmbedFooter = EmbedFooter(text=FOOTER_TEXT)
    timestamp: str

    def to_payload(self) -> dict:
        """Returns the JSON body for a webhook or channel message post."""
        return {"embeds": [self.model_dump(exclude_none=True)]}
