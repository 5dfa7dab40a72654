"""
Tests for the HTTP clients in autopublish.tools.

All HTTP traffic goes through ``httpx.MockTransport``; no real requests
are made.
"""

import json

import httpx
import pytest

from autopublish.exceptions import MirrorSyncError
from autopublish.models import Article
from autopublish.tools.airtable import AirtableClient
from autopublish.tools.instagram import (
    MAX_CAPTION_LENGTH,
    InstagramClient,
    InstagramPoster,
    build_caption,
)


def transport_for(handler):
    """Wrap *handler* and collect the requests it receives."""
    seen = []

    def _handle(request):
        seen.append(request)
        return handler(request)

    transport = httpx.MockTransport(_handle)
    transport.seen = seen
    return transport


# =============================================================================
# AirtableClient
# =============================================================================


class TestAirtableClient:
    def test_build_url_encodes_table_name(self):
        client = AirtableClient("key", "appX", "Articles / 2025")
        assert client.build_url() == "https://api.airtable.com/v0/appX/Articles%20%2F%202025"

    def test_custom_base_url_trailing_slash(self):
        client = AirtableClient("key", "appX", "T", base_url="http://localhost:9000/v0/")
        assert client.build_url() == "http://localhost:9000/v0/appX/T"

    @pytest.mark.asyncio
    async def test_create_record_success(self):
        transport = transport_for(
            lambda request: httpx.Response(200, json={"records": [{"id": "rec42", "fields": {}}]})
        )
        client = AirtableClient("key", "appX", "Articles", transport=transport)

        result = await client.create_record({"Name": "Hello"})

        assert result.success is True
        assert result.record_id == "rec42"
        assert result.status_code == 200
        request = transport.seen[0]
        assert request.headers["Authorization"] == "Bearer key"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"records": [{"fields": {"Name": "Hello"}}]}

    @pytest.mark.asyncio
    async def test_non_success_status_includes_body(self):
        transport = transport_for(lambda request: httpx.Response(401, text="AUTHENTICATION_REQUIRED"))
        result = await AirtableClient("bad", "appX", "T", transport=transport).create_record({})

        assert result.success is False
        assert result.status_code == 401
        assert result.error == "Airtable push failed (401): AUTHENTICATION_REQUIRED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        ["not json", json.dumps({"records": []}), json.dumps({"records": [{}]}), json.dumps([1])],
        ids=["invalid-json", "no-records", "no-id", "not-an-object"],
    )
    async def test_unusable_body_fails(self, body):
        transport = transport_for(lambda request: httpx.Response(200, text=body))
        result = await AirtableClient("k", "appX", "T", transport=transport).create_record({})

        assert result.success is False
        assert result.record_id is None
        assert result.status_code == 200

    def test_parse_record_id_carries_status_code(self):
        with pytest.raises(MirrorSyncError) as excinfo:
            AirtableClient._parse_record_id(json.dumps({"records": []}), 201)
        assert excinfo.value.status_code == 201

    @pytest.mark.asyncio
    async def test_transport_error_fails(self):
        def boom(request):
            raise httpx.ConnectTimeout("timed out")

        result = await AirtableClient("k", "appX", "T", transport=httpx.MockTransport(boom)).create_record({})

        assert result.success is False
        assert result.error.startswith("Airtable request failed")


# =============================================================================
# Caption building
# =============================================================================


class TestBuildCaption:
    def test_joins_parts_with_blank_lines(self):
        article = Article(id=1, title="Title", description="Desc", hashtags="#a #b")
        assert build_caption(article) == "Title\n\nDesc\n\n#a #b"

    def test_skips_empty_parts(self):
        article = Article(id=1, title="Title", description="  ", hashtags=None)
        assert build_caption(article) == "Title"

    def test_truncates_long_captions(self):
        article = Article(id=1, title="x" * (MAX_CAPTION_LENGTH + 100))
        caption = build_caption(article)
        assert len(caption) == MAX_CAPTION_LENGTH
        assert caption.endswith("…")


# =============================================================================
# InstagramClient / InstagramPoster
# =============================================================================


def graph_handler(request):
    path = request.url.path
    if path.endswith("/media"):
        return httpx.Response(200, json={"id": "container-1"})
    if path.endswith("/media_publish"):
        assert request.url.params["creation_id"] == "container-1"
        return httpx.Response(200, json={"id": "media-9"})
    return httpx.Response(404)


class TestInstagramClient:
    @pytest.mark.asyncio
    async def test_two_step_publish(self):
        transport = transport_for(graph_handler)
        client = InstagramClient("tok", "1789", transport=transport)

        result = await client.publish_image("https://cdn.example.com/a.jpg", "caption")

        assert result.success is True
        assert result.record_id == "media-9"
        first, second = transport.seen
        assert first.url.path == "/v19.0/1789/media"
        assert first.url.params["image_url"] == "https://cdn.example.com/a.jpg"
        assert first.url.params["access_token"] == "tok"
        assert second.url.path == "/v19.0/1789/media_publish"

    @pytest.mark.asyncio
    async def test_http_error_reports_status(self):
        transport = transport_for(lambda request: httpx.Response(400, json={"error": {"message": "bad"}}))
        result = await InstagramClient("tok", "1789", transport=transport).publish_image("u", "c")

        assert result.success is False
        assert result.status_code == 400
        assert len(transport.seen) == 1

    @pytest.mark.asyncio
    async def test_missing_id_fails(self):
        transport = transport_for(lambda request: httpx.Response(200, json={}))
        result = await InstagramClient("tok", "1789", transport=transport).publish_image("u", "c")

        assert result.success is False
        assert "returned no id" in result.error


class TestInstagramPoster:
    @pytest.mark.asyncio
    async def test_not_configured(self, store):
        article = Article(id=1, title="T", image_url="https://cdn.example.com/a.jpg")
        result = await InstagramPoster(store).post_article_to_instagram(article)

        assert result.success is False
        assert result.error == "Instagram not configured"

    @pytest.mark.asyncio
    async def test_article_without_image_is_not_posted(self, store):
        store.configure("instagram", access_token="tok", business_account_id="1789")
        transport = transport_for(graph_handler)

        result = await InstagramPoster(store, transport=transport).post_article_to_instagram(
            Article(id=1, title="T")
        )

        assert result.success is False
        assert transport.seen == []

    @pytest.mark.asyncio
    async def test_posts_with_stored_credentials(self, store):
        store.configure("instagram", access_token="tok", business_account_id="1789")
        transport = transport_for(graph_handler)
        article = Article(id=1, title="Launch", hashtags="#go", image_url="https://cdn.example.com/a.jpg")

        result = await InstagramPoster(store, transport=transport).post_article_to_instagram(article)

        assert result.success is True
        assert transport.seen[0].url.params["caption"] == "Launch\n\n#go"
