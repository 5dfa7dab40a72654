"""
Due-date resolution for scheduled articles.

An article's effective go-live instant is its ``scheduled_at`` value, or
its ``published_at`` value when ``scheduled_at`` is missing or unparseable.

NOTE: the ``published_at`` fallback means an article that was published,
then reverted to draft, is treated as immediately due.  Kept for
compatibility with existing rows.
"""

from datetime import datetime
from typing import Optional

from autopublish.models import Article
from autopublish.utils import ensure_utc, parse_timestamp


def resolve_due_date(article: Article) -> Optional[datetime]:
    """Return the instant *article* should go live, or ``None``.

    Never raises: unparseable values are treated as absent.
    """
    for value in (article.scheduled_at, article.published_at):
        resolved = parse_timestamp(value)
        if resolved is not None:
            return resolved
    return None


def is_due(article: Article, now: datetime) -> bool:
    """``True`` iff *article* has a resolvable due date at or before *now*."""
    when = resolve_due_date(article)
    return when is not None and when <= ensure_utc(now)
