"""Statement data models for raw and normalized user content.

This module defines the records that flow through the front half of the
pipeline:

SourceItem:
    One raw comment or post as delivered by a statement source. Items
    that fail validation are dropped by the normalizer.

SourceContent:
    Everything a source returned for one subject. Its fingerprint keys
    the result cache, so a changed item count or a newer item invalidates
    a cached report.

Statement:
    A normalized, deduplicated text unit with a dense per-run id
    (``ID-1`` .. ``ID-n`` in chronological order).

Summary:
    The gloss produced for one statement by the summarization stage.
"""

from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256

from pydantic import BaseModel, ConfigDict, Field


class StatementKind(str, Enum):
    """Origin of a statement."""

    COMMENT = "comment"
    POST = "post"


class SourceItem(BaseModel):
    """A raw record from a statement source.

    For posts ``text`` holds the self-text body and ``title`` the post
    title; for comments ``title`` is the title of the parent thread.
    """

    text: str = Field(description="Body text as written by the subject")
    timestamp: int = Field(description="Creation time (epoch seconds, UTC)")
    venue: str = Field(description="Community the item was posted in")
    weight: int = Field(default=0, description="Engagement score")
    permalink: str = Field(default="", description="Permalink or source id")
    title: str | None = Field(default=None, description="Post title or parent thread title")


class SourceContent(BaseModel):
    """All raw content fetched for one subject."""

    subject: str
    comments: list[SourceItem] = Field(default_factory=list)
    posts: list[SourceItem] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return len(self.comments) + len(self.posts)

    @property
    def latest_timestamp(self) -> int:
        timestamps = [item.timestamp for item in (*self.comments, *self.posts)]
        return max(timestamps, default=0)

    @property
    def fingerprint(self) -> str:
        """16-character content fingerprint (item count + newest timestamp)."""
        payload = f"{self.item_count}|{self.latest_timestamp}"
        return sha256(payload.encode()).hexdigest()[:16]

    @property
    def is_empty(self) -> bool:
        return self.item_count == 0


class Statement(BaseModel):
    """A normalized statement ready for analysis.

    Attributes:
        id: Dense per-run identifier (``ID-<n>``); meaningless across runs
        text: Statement text (post title and body are joined)
        timestamp: Creation time in epoch seconds
        venue: Community the statement was made in
        weight: Engagement score
        kind: Whether it came from a comment or a post
        context_title: Thread or post title, if known
        permalink: Link back to the original item
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    timestamp: int
    venue: str
    weight: int = 0
    kind: StatementKind = StatementKind.COMMENT
    context_title: str | None = None
    permalink: str = ""

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def __str__(self) -> str:
        return f"Statement({self.id}, r/{self.venue}, '{self.text[:40]}...')"


class Summary(BaseModel):
    """Gloss for one statement.

    ``fallback`` is True when the gloss was produced locally rather than
    by the text-generation backend.
    """

    model_config = ConfigDict(frozen=True)

    statement_id: str
    gloss: str
    fallback: bool = False
