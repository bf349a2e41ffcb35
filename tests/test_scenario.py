"""End-to-end flow: create, resolve cold and warm, aggregate clicks, delete."""

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from aiokafka import TopicPartition
from httpx import AsyncClient

from app.aggregator import ClickAggregator
from app.store import LinkStore


class ReplayConsumer:
    """Replays recorded producer sends as consumer records."""

    def __init__(self, sent: list[tuple[str, bytes, bytes | None]]):
        self._records = [
            SimpleNamespace(topic=topic, partition=0, offset=offset, key=key, value=value)
            for offset, (topic, value, key) in enumerate(sent)
        ]
        self.commits: list[dict[TopicPartition, int]] = []

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for record in self._records:
            yield record

    async def commit(self, offsets: dict[TopicPartition, int]) -> None:
        self.commits.append(offsets)


@pytest.mark.asyncio
async def test_full_link_lifecycle(
    client: AsyncClient, store: LinkStore, redis_client, publisher, producer, logger
) -> None:
    with patch("app.registry.generate_short_code", return_value="ab3F9"):
        create_resp = await client.post("/api/shorten", json={"url": "https://example.com/a"})
    assert create_resp.status_code == 201
    assert create_resp.json()["short_code"] == "ab3F9"
    assert create_resp.json()["click_count"] == 0
    assert await redis_client.get("slug:ab3F9") == "https://example.com/a"

    # Expire the cache entry so the first visit takes the database path.
    await redis_client.delete("slug:ab3F9")

    first = await client.get("/ab3F9", follow_redirects=False)
    assert first.status_code == 307
    assert first.headers["location"] == "https://example.com/a"
    assert await redis_client.get("slug:ab3F9") == "https://example.com/a"

    with patch.object(store, "find_by_code", wraps=store.find_by_code) as find:
        second = await client.get("/ab3F9", follow_redirects=False)
        find.assert_not_called()
    assert second.status_code == 308
    assert second.headers["location"] == "https://example.com/a"

    await publisher.flush()
    assert len(producer.sent) == 2
    for topic, value, key in producer.sent:
        assert topic == "url_clicks"
        assert key == b"ab3F9"
        assert json.loads(value)["slug"] == "ab3F9"

    consumer = ReplayConsumer(producer.sent)
    await ClickAggregator(store, logger=logger).consume(consumer)
    assert consumer.commits[-1] == {TopicPartition("url_clicks", 0): 2}

    stats = await client.get("/api/stats/ab3F9")
    assert stats.json()["click_count"] == 2

    delete_resp = await client.delete("/api/links", params={"url": "https://example.com/a"})
    assert delete_resp.status_code == 200
    assert delete_resp.json()["success"] is True
    assert await redis_client.get("slug:ab3F9") is None

    gone = await client.get("/ab3F9", follow_redirects=False)
    assert gone.status_code == 404

    again = await client.delete("/api/links", params={"url": "https://example.com/a"})
    assert again.status_code == 404
    assert again.json()["success"] is False
