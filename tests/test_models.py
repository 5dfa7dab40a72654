"""Tests for autopublish.models: ArticleStatus, Article, SyncResult, CycleReport."""

from datetime import datetime, timezone

import pytest

from autopublish.exceptions import ValidationError
from autopublish.models import (
    CANDIDATE_STATUSES,
    Article,
    ArticleStatus,
    CycleReport,
    SyncResult,
)


# =============================================================================
# ArticleStatus enum tests
# =============================================================================


class TestArticleStatus:
    """Tests for the ArticleStatus enum."""

    def test_string_values(self):
        assert ArticleStatus.DRAFT.value == "draft"
        assert ArticleStatus.PENDING.value == "pending"
        assert ArticleStatus.PUBLISHED.value == "published"
        assert ArticleStatus.ARCHIVED.value == "archived"

    @pytest.mark.parametrize("status", [ArticleStatus.PUBLISHED, ArticleStatus.ARCHIVED])
    def test_terminal_statuses_are_not_scanned(self, status):
        assert status not in CANDIDATE_STATUSES

    def test_candidate_statuses_order_is_draft_then_pending(self):
        """The runner relies on this order for deterministic scans."""
        assert CANDIDATE_STATUSES == [ArticleStatus.DRAFT, ArticleStatus.PENDING]


# =============================================================================
# Article tests
# =============================================================================


class TestArticleFromRow:
    """Tests for Article.from_row."""

    def test_minimal_row_defaults(self):
        """A row with only an id gets empty/neutral defaults."""
        article = Article.from_row({"id": 7})
        assert article.id == 7
        assert article.title == ""
        assert article.status == "draft"
        assert article.finished is False
        assert article.external_id is None
        assert article.scheduled_at is None

    def test_full_row(self):
        row = {
            "id": "a-1",
            "title": "Launch",
            "description": "Short",
            "content": "Long",
            "hashtags": "#a #b",
            "featured": "yes",
            "status": "pending",
            "scheduled_at": "2025-06-15T12:00:00Z",
            "published_at": None,
            "finished": True,
            "date": "2025-06-01",
            "external_id": "rec123",
            "source": "airtable",
            "image_url": "https://cdn.example.com/a.jpg",
            "extra": "kept in raw",
        }
        article = Article.from_row(row)

        assert article.title == "Launch"
        assert article.featured == "yes"
        assert article.scheduled_at == "2025-06-15T12:00:00Z"
        assert article.finished is True
        assert article.external_id == "rec123"
        assert article.image_url == "https://cdn.example.com/a.jpg"
        assert article.raw["extra"] == "kept in raw"

    def test_date_columns_are_kept_raw(self):
        """Parsing is the due-date resolver's job, not the model's."""
        article = Article.from_row({"id": 1, "scheduled_at": "garbage"})
        assert article.scheduled_at == "garbage"

    @pytest.mark.parametrize("value", ["true", 1, "yes", None])
    def test_finished_requires_literal_true(self, value):
        assert Article.from_row({"id": 1, "finished": value}).finished is False

    def test_missing_id_raises(self):
        with pytest.raises(ValidationError, match="must have 'id'"):
            Article.from_row({"title": "No id"})


# =============================================================================
# SyncResult / CycleReport tests
# =============================================================================


class TestSyncResult:
    def test_ok(self):
        result = SyncResult.ok(record_id="rec1", status_code=200)
        assert result.success is True
        assert result.record_id == "rec1"
        assert result.error is None

    def test_failed(self):
        result = SyncResult.failed("boom", status_code=422)
        assert result.success is False
        assert result.error == "boom"
        assert result.status_code == 422
        assert result.record_id is None


class TestCycleReport:
    def test_defaults(self):
        report = CycleReport()
        assert report.candidates == 0
        assert report.published == []
        assert report.failed == []
        assert report.started_at.tzinfo is not None

    def test_to_dict_serialises_ids_and_times(self):
        started = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
        report = CycleReport(
            started_at=started,
            finished_at=started,
            candidates=3,
            due=2,
            published=[1],
            failed=[2],
            duration_ms=15,
        )
        data = report.to_dict()
        assert data["started_at"] == "2025-06-15T12:00:00+00:00"
        assert data["published"] == ["1"]
        assert data["failed"] == ["2"]
        assert data["due"] == 2
        assert data["error"] is None
