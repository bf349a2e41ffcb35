"""ClickEventPublisher tests."""

import asyncio
import datetime
import json
from unittest.mock import AsyncMock, patch

import pytest

from app.config import Settings
from app.kafka import ClickEventPublisher, serialize_click_event
from app.schemas import ClickEvent


def test_serialize_click_event_is_utf8_json():
    event = ClickEvent(slug="ab3F9", timestamp="2026-01-01T00:00:00+00:00")
    assert json.loads(serialize_click_event(event).decode("utf-8")) == {
        "slug": "ab3F9",
        "timestamp": "2026-01-01T00:00:00+00:00",
    }


def test_click_event_now_is_utc_iso8601():
    event = ClickEvent.now("ab3F9")
    parsed = datetime.datetime.fromisoformat(event.timestamp)
    assert parsed.utcoffset() == datetime.timedelta(0)


class TestPublish:
    """Tests for fire-and-forget publishing."""

    @pytest.mark.asyncio
    async def test_publish_sends_keyed_event(self, publisher: ClickEventPublisher, producer):
        publisher.publish("ab3F9")
        await publisher.flush()

        assert len(producer.sent) == 1
        topic, value, key = producer.sent[0]
        assert topic == "url_clicks"
        assert key == b"ab3F9"
        assert json.loads(value)["slug"] == "ab3F9"

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_delivery(self, producer, logger):
        release = asyncio.Event()

        async def slow_send(topic, value, key=None):
            await release.wait()
            producer.sent.append((topic, value, key))

        producer.send_and_wait = slow_send
        publisher = ClickEventPublisher("url_clicks", producer=producer, logger=logger)

        publisher.publish("ab3F9")
        assert publisher.pending == 1
        assert producer.sent == []

        release.set()
        await publisher.flush()
        assert publisher.pending == 0
        assert len(producer.sent) == 1

    @pytest.mark.asyncio
    async def test_send_failure_is_logged_not_raised(self, failing_producer, logger):
        publisher = ClickEventPublisher("url_clicks", producer=failing_producer, logger=logger)

        with patch.object(logger, "error") as log_error:
            publisher.publish("ab3F9")
            await publisher.flush()

        log_error.assert_called_once()
        assert "ab3F9" in log_error.call_args.args[0]
        assert publisher.pending == 0

    @pytest.mark.asyncio
    async def test_disabled_publisher_drops_events(self, logger):
        publisher = ClickEventPublisher("url_clicks", logger=logger)
        assert publisher.enabled is False

        with patch.object(logger, "warning") as log_warning:
            publisher.publish("ab3F9")
            await publisher.flush()

        log_warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_flushes_then_stops_producer(self, publisher: ClickEventPublisher, producer):
        publisher.publish("ab3F9")
        await publisher.stop()

        assert len(producer.sent) == 1
        assert producer.stopped is True
        assert publisher.enabled is False


class TestStart:
    """Tests for ClickEventPublisher.start."""

    @pytest.mark.asyncio
    async def test_start_with_unreachable_broker_is_disabled(self, logger):
        settings = Settings(KAFKA_BOOTSTRAP_SERVERS="kafka.invalid:9092")
        with (
            patch("app.kafka.AIOKafkaProducer.start", new=AsyncMock(side_effect=ConnectionError("no broker"))),
            patch("app.kafka.AIOKafkaProducer.stop", new=AsyncMock()) as stop,
        ):
            publisher = await ClickEventPublisher.start(settings, logger)

        assert publisher.enabled is False
        stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_success_enables_publisher(self, logger):
        with (
            patch("app.kafka.AIOKafkaProducer.start", new=AsyncMock()),
            patch("app.kafka.AIOKafkaProducer.stop", new=AsyncMock()),
        ):
            publisher = await ClickEventPublisher.start(Settings(), logger)
            assert publisher.enabled is True
            await publisher.stop()
