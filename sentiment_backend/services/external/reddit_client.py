"""Client for Reddit's JSON search API."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from sentiment_backend.domain.models.sentiment import RedditPost
from sentiment_backend.infrastructure.constants.llm_constants import (
    REDDIT_DEFAULT_TIMEOUT,
    REDDIT_DEFAULT_USER_AGENT,
    REDDIT_MAX_SEARCH_LIMIT,
    REDDIT_OAUTH_BASE_URL,
    REDDIT_PUBLIC_BASE_URL,
)
from sentiment_backend.services.external.reddit_session import RedditSession

logger = logging.getLogger(__name__)


class SourceError(RuntimeError):
    """Raised when Reddit cannot be queried or returns an unusable response."""


class RedditSearchClient:
    """Searches Reddit submissions, anonymously or with a session token."""

    def __init__(
        self,
        session: Optional[RedditSession] = None,
        *,
        user_agent: str = REDDIT_DEFAULT_USER_AGENT,
        timeout: float = REDDIT_DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._session = session or RedditSession.anonymous()
        self._user_agent = user_agent
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def __aenter__(self) -> "RedditSearchClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _build_request(
        self, query: str, limit: int, session: RedditSession
    ) -> Dict[str, Any]:
        headers = {"User-Agent": self._user_agent}
        if session.is_active():
            url = f"{REDDIT_OAUTH_BASE_URL}/search"
            headers.update(session.authorization_header())
        else:
            url = f"{REDDIT_PUBLIC_BASE_URL}/search.json"

        params = {
            "q": query,
            "limit": str(limit),
            "sort": "relevance",
            "t": "all",
            "type": "link",
            "raw_json": "1",
        }
        return {"url": url, "params": params, "headers": headers}

    @staticmethod
    def _parse_post(data: Dict[str, Any]) -> Optional[RedditPost]:
        post_id = data.get("id")
        title = data.get("title")
        if not post_id or not title:
            return None
        permalink = data.get("permalink")
        return RedditPost(
            id=str(post_id),
            title=str(title),
            selftext=data.get("selftext") or "",
            author=data.get("author"),
            subreddit=data.get("subreddit"),
            score=int(data.get("score") or 0),
            num_comments=int(data.get("num_comments") or 0),
            created_utc=data.get("created_utc"),
            permalink=f"{REDDIT_PUBLIC_BASE_URL}{permalink}" if permalink else None,
            url=data.get("url"),
        )

    def _parse_listing(self, body: Any) -> List[RedditPost]:
        try:
            children = body["data"]["children"]
        except (KeyError, TypeError) as exc:
            raise SourceError("Unexpected Reddit search response shape") from exc

        posts: List[RedditPost] = []
        for child in children:
            if not isinstance(child, dict) or child.get("kind") != "t3":
                continue
            post = self._parse_post(child.get("data") or {})
            if post is not None:
                posts.append(post)
        return posts

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def fetch(
        self, query: str, limit: int, session: Optional[RedditSession] = None
    ) -> List[RedditPost]:
        """Return at most ``limit`` posts matching ``query``, in Reddit's order."""
        session = session or self._session
        limit = max(1, min(limit, REDDIT_MAX_SEARCH_LIMIT))
        request = self._build_request(query, limit, session)

        logger.info(
            f"Searching Reddit for '{query}' (limit={limit}, "
            f"authenticated={session.is_active()})"
        )

        try:
            response = await self._client.get(
                request["url"], params=request["params"], headers=request["headers"]
            )
        except httpx.HTTPError as exc:
            raise SourceError(f"Reddit request failed: {exc}") from exc

        if response.status_code == 429:
            raise SourceError("Reddit rate limit exceeded, try again later")
        if response.status_code in (401, 403):
            raise SourceError(
                f"Reddit rejected the request ({response.status_code}); "
                "the session token may be invalid"
            )
        if response.status_code >= 400:
            raise SourceError(
                f"Reddit returned HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise SourceError("Reddit returned invalid JSON") from exc

        posts = self._parse_listing(body)[:limit]
        logger.info(f"Reddit search for '{query}' returned {len(posts)} posts")
        return posts
