"""Tests for view revalidation."""

import json
from unittest.mock import AsyncMock

import pytest

from lawcomments.comments.revalidation import (
    LAW_DOCUMENT_VIEW,
    RedisViewRevalidator,
    ViewRevalidator,
)


@pytest.mark.asyncio
async def test_default_revalidator_does_nothing():
    await ViewRevalidator().revalidate(LAW_DOCUMENT_VIEW)


@pytest.mark.asyncio
async def test_redis_revalidator_clears_and_publishes(mock_redis: AsyncMock):
    revalidator = RedisViewRevalidator(mock_redis, channel="views:test")

    await revalidator.revalidate(LAW_DOCUMENT_VIEW)

    mock_redis.delete.assert_awaited_once_with("views:/law-document")
    channel, message = mock_redis.publish.await_args.args
    assert channel == "views:test"
    assert json.loads(message) == {"path": "/law-document"}


@pytest.mark.asyncio
async def test_redis_errors_propagate(mock_redis: AsyncMock):
    mock_redis.delete.side_effect = ConnectionError("redis down")

    with pytest.raises(ConnectionError):
        await RedisViewRevalidator(mock_redis).revalidate(LAW_DOCUMENT_VIEW)
