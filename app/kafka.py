"""Kafka producer side of the click analytics pipeline.

``ClickEventPublisher.publish`` is a non-blocking "submit and continue" call:
it builds a :class:`ClickEvent`, schedules the send on the event loop and
returns immediately. Send failures are logged and counted, never retried and
never raised to the resolver, so analytics can neither delay nor fail a
redirect.

Flow Diagram — publish()
========================
::
    ┌─────────────┐
    │ Resolver    │
    │ publish()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐      ┌──────────────┐
    │ create_task │ ───▶ │ send_and_wait│
    │ (returns)   │      │ topic, key=  │
    └─────────────┘      │ slug         │
                         └──────┬───────┘
                         OK?    │
                         ┌──────┴──────┐
                         │ NO          │ YES
                         ▼             ▼
                    ┌─────────┐   ┌─────────┐
                    │ log +   │   │ metric  │
                    │ metric  │   │         │
                    └─────────┘   └─────────┘
"""

import asyncio
import logging

from aiokafka import AIOKafkaProducer
from prometheus_client import Counter

from app.config import Settings
from app.schemas import ClickEvent

__all__ = ["ClickEventPublisher", "serialize_click_event"]

KAFKA_EVENTS_PUBLISHED_TOTAL = Counter(
    "url_shortener_kafka_events_published_total",
    "Total Kafka click events published successfully",
)
KAFKA_EVENTS_FAILED_TOTAL = Counter(
    "url_shortener_kafka_events_failed_total",
    "Total Kafka click events that failed to publish",
)


def serialize_click_event(event: ClickEvent) -> bytes:
    return event.model_dump_json().encode("utf-8")


class ClickEventPublisher:
    """Fire-and-forget publisher of click events to a single Kafka topic."""

    def __init__(
        self,
        topic: str,
        producer: AIOKafkaProducer | None = None,
        logger: logging.Logger | None = None,
    ):
        self._topic = topic
        self._producer = producer
        self._logger = logger or logging.getLogger("urlshortener.kafka")
        self._pending: set[asyncio.Task] = set()

    @classmethod
    async def start(cls, settings: Settings, logger: logging.Logger | None = None) -> "ClickEventPublisher":
        """Start a producer from settings.

        A broker that is unreachable at startup leaves the publisher disabled:
        events are logged and dropped instead of failing the process.
        """
        publisher = cls(settings.KAFKA_CLICK_TOPIC, logger=logger)
        producer = AIOKafkaProducer(
            bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
            request_timeout_ms=settings.KAFKA_MESSAGE_TIMEOUT_MS,
        )
        try:
            await producer.start()
        except Exception as exc:
            publisher._logger.error(f"Kafka producer failed to start, click events disabled: {exc}")
            await producer.stop()
            return publisher
        publisher._producer = producer
        return publisher

    @property
    def enabled(self) -> bool:
        return self._producer is not None

    @property
    def pending(self) -> int:
        return len(self._pending)

    def publish(self, slug: str) -> None:
        event = ClickEvent.now(slug)
        task = asyncio.get_running_loop().create_task(self._send(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, event: ClickEvent) -> None:
        if self._producer is None:
            KAFKA_EVENTS_FAILED_TOTAL.inc()
            self._logger.warning(f"Kafka producer unavailable, dropping click event for `{event.slug}`")
            return
        try:
            await self._producer.send_and_wait(
                self._topic,
                serialize_click_event(event),
                key=event.slug.encode("utf-8"),
            )
        except Exception as exc:
            KAFKA_EVENTS_FAILED_TOTAL.inc()
            self._logger.error(f"Failed to send click event for `{event.slug}`: {exc}")
            return
        KAFKA_EVENTS_PUBLISHED_TOTAL.inc()
        self._logger.debug(f"Published click event for `{event.slug}` to {self._topic}")

    async def flush(self) -> None:
        """Wait for every in-flight send to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def stop(self) -> None:
        await self.flush()
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None
