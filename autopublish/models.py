"""
Core data models for the auto-publish service.

Defines:
- ``ArticleStatus``: Lifecycle status of an article.
- ``Article``: A content record as read from the ``articles`` table.
- ``SyncResult``: Outcome of a best-effort external call.
- ``CycleReport``: Summary of one scheduler cycle.

Date columns on ``Article`` are kept exactly as stored. Turning them into
instants is the job of :mod:`autopublish.scheduling.due_dates`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from autopublish.exceptions import ValidationError
from autopublish.utils import utc_now


# =============================================================================
# ARTICLE STATUS ENUM
# =============================================================================


class ArticleStatus(Enum):
    """Lifecycle status of an article.

    Transitions owned by the scheduler:
        DRAFT   -> PUBLISHED
        PENDING -> PUBLISHED

    ``ARCHIVED`` is set by editors and never touched by the scheduler.
    """

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# Order matters: the runner concatenates query results in this order.
CANDIDATE_STATUSES: List[ArticleStatus] = [ArticleStatus.DRAFT, ArticleStatus.PENDING]


# =============================================================================
# ARTICLE
# =============================================================================


@dataclass
class Article:
    """A content record eligible for scheduled publication.

    Attributes:
        id: Unique identifier (primary key of the ``articles`` table).
        title: Headline.
        description: Short summary.
        content: Full body text.
        hashtags: Space-separated hashtags.
        featured: ``"yes"`` when the article is featured.
        status: Raw status string (see :class:`ArticleStatus`).
        scheduled_at: When the article should go live, as stored.
        published_at: Publication timestamp, as stored.
        external_id: Airtable record id once mirrored.
        source: Provenance tag (``"airtable"`` once mirrored).
        finished: Editorial completion flag, independent of ``status``.
        date: Optional editorial date, as stored.
        image_url: Public image used for the Instagram cross-post.
        raw: The full row this article was built from.
    """

    # Required fields
    id: Any
    title: str

    # Content
    description: Optional[str] = None
    content: Optional[str] = None
    hashtags: Optional[str] = None
    featured: Optional[str] = None

    # Status tracking
    status: str = ArticleStatus.DRAFT.value
    scheduled_at: Any = None
    published_at: Any = None
    finished: bool = False
    date: Any = None

    # External sync
    external_id: Optional[str] = None
    source: Optional[str] = None
    image_url: Optional[str] = None

    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Article":
        """Build an ``Article`` from a database row dict.

        Args:
            row: Dict from a Supabase query result.

        Returns:
            An ``Article`` instance.

        Raises:
            ValidationError: If the row has no ``id``.
        """
        if not row or row.get("id") is None:
            raise ValidationError("article row must have 'id'")

        return cls(
            id=row["id"],
            title=row.get("title") or "",
            description=row.get("description"),
            content=row.get("content"),
            hashtags=row.get("hashtags"),
            featured=row.get("featured"),
            status=row.get("status") or ArticleStatus.DRAFT.value,
            scheduled_at=row.get("scheduled_at"),
            published_at=row.get("published_at"),
            finished=row.get("finished") is True,
            date=row.get("date"),
            external_id=row.get("external_id"),
            source=row.get("source"),
            image_url=row.get("image_url"),
            raw=dict(row),
        )


# =============================================================================
# OUTCOME VALUES
# =============================================================================


@dataclass
class SyncResult:
    """Outcome of a best-effort call to an external service.

    Attributes:
        success: Whether the call achieved its effect.
        error: Human-readable failure reason when ``success`` is ``False``.
        record_id: Identifier returned by the remote service on success.
        status_code: HTTP status of the last response, if one was received.
    """

    success: bool
    error: Optional[str] = None
    record_id: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, record_id: Optional[str] = None, status_code: Optional[int] = None) -> "SyncResult":
        return cls(success=True, record_id=record_id, status_code=status_code)

    @classmethod
    def failed(cls, error: str, status_code: Optional[int] = None) -> "SyncResult":
        return cls(success=False, error=error, status_code=status_code)


# =============================================================================
# CYCLE REPORT
# =============================================================================


@dataclass
class CycleReport:
    """Summary of one auto-publish cycle.

    Attributes:
        started_at: When the cycle began.
        finished_at: When the cycle ended (``None`` while running).
        candidates: Number of draft/pending articles scanned.
        due: Number of candidates whose due date had passed.
        published: Ids whose status transition committed.
        failed: Ids whose pipeline aborted or raised.
        error: Cycle-level failure message (scan/filter stage).
        duration_ms: Wall-clock duration of the cycle.
    """

    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    candidates: int = 0
    due: int = 0
    published: List[Any] = field(default_factory=list)
    failed: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for structured logging."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "candidates": self.candidates,
            "due": self.due,
            "published": [str(i) for i in self.published],
            "failed": [str(i) for i in self.failed],
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    "ArticleStatus",
    "CANDIDATE_STATUSES",
    "Article",
    "SyncResult",
    "CycleReport",
]
