"""
Async Instagram Graph API client for cross-posting published articles.

Publishing an image post is a two-step flow:

1. ``POST /{account_id}/media`` with ``image_url`` and ``caption`` creates
   a media container.
2. ``POST /{account_id}/media_publish`` with ``creation_id`` publishes it.

``InstagramPoster`` resolves credentials from the integration settings
table and exposes :meth:`InstagramPoster.post_article_to_instagram`, the
cross-post adapter used by the scheduler.  Results are reported as
:class:`~autopublish.models.SyncResult`.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from autopublish.config import INSTAGRAM_PROVIDER, INSTAGRAM_SETTING_KEYS
from autopublish.exceptions import CrossPostError
from autopublish.models import Article, SyncResult

logger = logging.getLogger(__name__)

# Instagram rejects captions longer than this.
MAX_CAPTION_LENGTH = 2200


def build_caption(article: Article) -> str:
    """Compose an Instagram caption from an article.

    Title, description and hashtags are joined by blank lines and the
    result is truncated to ``MAX_CAPTION_LENGTH`` characters.
    """
    parts: List[str] = [
        part.strip()
        for part in (article.title, article.description, article.hashtags)
        if part and part.strip()
    ]
    caption = "\n\n".join(parts)
    if len(caption) > MAX_CAPTION_LENGTH:
        caption = caption[: MAX_CAPTION_LENGTH - 1].rstrip() + "…"
    return caption


class InstagramClient:
    """Async client for the Instagram content publishing API.

    Args:
        access_token: Long-lived Graph API access token.
        account_id: Instagram business account id.
        base_url: Graph API root including version.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport for tests.
    """

    BASE_URL: str = "https://graph.facebook.com/v19.0"

    def __init__(
        self,
        access_token: str,
        account_id: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.access_token = access_token
        self.account_id = account_id
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, client: httpx.AsyncClient, path: str, params: Dict[str, Any]) -> str:
        """POST to a Graph endpoint and return the ``id`` from the response.

        Raises:
            CrossPostError: If the response has no ``id``.
            httpx.HTTPStatusError: On non-2xx responses.
        """
        response = await client.post(
            f"{self.base_url}/{self.account_id}/{path}",
            params={**params, "access_token": self.access_token},
        )
        response.raise_for_status()
        data = response.json()
        media_id = data.get("id") if isinstance(data, dict) else None
        if not media_id:
            raise CrossPostError(f"Instagram {path} returned no id")
        return media_id

    async def publish_image(self, image_url: str, caption: str) -> SyncResult:
        """Create and publish a single-image post.

        Returns:
            ``SyncResult`` whose ``record_id`` is the published media id.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                creation_id = await self._post(
                    client, "media", {"image_url": image_url, "caption": caption}
                )
                media_id = await self._post(
                    client, "media_publish", {"creation_id": creation_id}
                )
        except httpx.HTTPStatusError as exc:
            return SyncResult.failed(
                f"Instagram API error ({exc.response.status_code}): {exc.response.text}",
                status_code=exc.response.status_code,
            )
        except (httpx.HTTPError, CrossPostError, ValueError) as exc:
            return SyncResult.failed(f"Instagram request failed: {exc}")

        logger.info("[INSTAGRAM] Published media %s", media_id)
        return SyncResult.ok(record_id=media_id)


class InstagramPoster:
    """Cross-post adapter that posts published articles to Instagram.

    Credentials are looked up on every call so that integration settings
    edited at runtime take effect on the next cycle.

    Args:
        db: Database client exposing ``get_integration_setting_by_key``.
        base_url: Optional Graph API root override.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport for tests.
    """

    def __init__(
        self,
        db: "SupabaseDB",  # noqa: F821
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.db = db
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def _load_credentials(self) -> Optional[Dict[str, str]]:
        credentials: Dict[str, str] = {}
        for name, key in INSTAGRAM_SETTING_KEYS.items():
            setting = await self.db.get_integration_setting_by_key(INSTAGRAM_PROVIDER, key)
            value = (setting or {}).get("value")
            if not value:
                return None
            credentials[name] = value
        return credentials

    async def post_article_to_instagram(self, article: Article) -> SyncResult:
        """Post *article* to Instagram.

        Returns:
            Failed ``SyncResult`` when Instagram is not configured or the
            article has no ``image_url``; otherwise the API outcome.
        """
        if not article.image_url:
            return SyncResult.failed("article has no image_url")

        credentials = await self._load_credentials()
        if credentials is None:
            return SyncResult.failed("Instagram not configured")

        client = InstagramClient(
            access_token=credentials["access_token"],
            account_id=credentials["account_id"],
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )
        return await client.publish_image(article.image_url, build_caption(article))
