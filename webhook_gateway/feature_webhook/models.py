from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class InboundRequest:
    """Immutable view of one webhook delivery, captured before any parsing."""

    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)
    event_type: str | None = None


@dataclass(frozen=True)
class VerifiedRequest:
    """An inbound request together with the outcome of signature checking."""

    request: InboundRequest
    authentic: bool


class EventClassification(str, Enum):
    """Event categories derived from the ``X-GitHub-Event`` header."""

    ISSUES = "issues"
    # Reserved: currently relayed like any generic event
    PULL_REQUEST = "pull_request"
    GENERIC = "generic"
    UNKNOWN = "unknown"


class IssuesAction(str, Enum):
    """Actions GitHub sends with ``issues`` events."""

    OPENED = "opened"
    EDITED = "edited"
    DELETED = "deleted"
    PINNED = "pinned"
    UNPINNED = "unpinned"
    CLOSED = "closed"
    REOPENED = "reopened"
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"
    LABELED = "labeled"
    UNLABELED = "unlabeled"
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    TRANSFERRED = "transferred"
    MILESTONED = "milestoned"
    DEMILESTONED = "demilestoned"
    TYPED = "typed"
    UNTYPED = "untyped"

    @property
    def is_label_action(self) -> bool:
        return self in (IssuesAction.LABELED, IssuesAction.UNLABELED)


class ActionProbe(BaseModel):
    """Reads nothing but the top-level ``action`` of a payload."""

    model_config = ConfigDict(extra="ignore")

    action: str | None = None


class Label(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class Issue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    number: int
    title: str
    html_url: str
    state: str
    labels: list[Label] = []


class Sender(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str
    avatar_url: str | None = None
    type: str


class Repository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class IssueLabelEvent(BaseModel):
    """Decoded ``issues`` event for a label being added or removed.

    ``label`` is the label the action applied to and decides whether the
    event is reported; ``issue.labels`` is the label set after the change,
    listed in the notification.
    """

    model_config = ConfigDict(extra="ignore")

    action: str
    issue: Issue
    label: Label | None = None
    sender: Sender
    repository: Repository
