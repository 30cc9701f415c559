"""Post-commit revalidation of cached views.

After a comment write, the public law document view and the admin listing
must stop serving stale data. The Redis revalidator drops the cached view
and publishes the path so other instances can refresh as well.
"""

import json
from typing import TYPE_CHECKING

from lawcomments.core.logging import get_logger
from lawcomments.core.redis import view_cache_key


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = get_logger(__name__)

LAW_DOCUMENT_VIEW = "/law-document"
ADMIN_COMMENTS_VIEW = "/admin/law-comments"


class ViewRevalidator:
    """Revalidator used when no cache is configured: nothing to refresh."""

    async def revalidate(self, path: str) -> None:
        logger.debug("view_revalidation_skipped", path=path)


class RedisViewRevalidator(ViewRevalidator):
    """Clears a view's cache entry and announces it on a Pub/Sub channel."""

    def __init__(self, redis: "Redis", channel: str = "views:revalidate"):
        self.redis = redis
        self.channel = channel

    async def revalidate(self, path: str) -> None:
        """Invalidate one view.

        Raises:
            redis.RedisError: If Redis is unreachable; callers decide whether
                that matters
        """
        await self.redis.delete(view_cache_key(path))
        await self.redis.publish(self.channel, json.dumps({"path": path}))
        logger.debug("view_revalidated", path=path)
