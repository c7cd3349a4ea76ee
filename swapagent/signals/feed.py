import logging
from typing import Optional

import requests
from pydantic import ValidationError

from swapagent.config import settings
from swapagent.errors import ProviderError
from swapagent.types import Post

logger = logging.getLogger("swapagent.signals.feed")


def get_feed(
    api_key: Optional[str] = None,
    sort: str = "new",
    limit: int = 50,
    base_url: Optional[str] = None,
) -> list[Post]:
    """Fetch recent posts from the social feed.

    The API answers with either a bare list of posts or ``{"posts": [...]}``.
    """
    url = f"{(base_url or settings.moltbook_base).rstrip('/')}/feed"
    key = api_key or settings.moltbook_api_key
    headers = {"Authorization": f"Bearer {key}"} if key else {}
    try:
        r = requests.get(
            url,
            params={"sort": sort, "limit": str(limit)},
            headers=headers,
            timeout=settings.http_timeout,
        )
    except requests.RequestException as e:
        raise ProviderError(f"feed: {e}", provider="feed") from e
    if r.status_code != 200:
        raise ProviderError(
            f"feed: HTTP {r.status_code} {r.text}", provider="feed", status=r.status_code
        )
    try:
        data = r.json()
    except ValueError as e:
        raise ProviderError("feed: invalid JSON", provider="feed") from e

    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("posts") or []
    else:
        items = []
    if not isinstance(items, list):
        items = []

    posts = []
    for item in items:
        if not isinstance(item, dict) or item.get("id") is None:
            continue
        try:
            post = Post.model_validate(
                {
                    **item,
                    "id": str(item["id"]),
                    "title": item.get("title") or "",
                    "author": item.get("author") or {},
                    "upvotes": item.get("upvotes") or 0,
                    "downvotes": item.get("downvotes") or 0,
                }
            )
        except ValidationError as e:
            logger.debug(f"[feed] skipping post {item['id']}: {e.error_count()} invalid fields")
            continue
        posts.append(post)
    logger.debug(f"[feed] fetched {len(posts)} posts sort={sort}")
    return posts
