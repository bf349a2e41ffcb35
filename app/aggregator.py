"""Click aggregator: folds click events into the durable click counters.

Each consumed message is parsed, applied to the store as ``click_count + 1``
and only then acknowledged by committing its offset. A crash between the
increment and the commit replays the message, so counts may run high but
never low.

Flow Diagram — consume()
========================
::
    ┌──────────────┐
    │ Kafka message│
    └──────┬───────┘
           ▼
    ┌──────────────┐  bad JSON / no slug
    │ parse payload│ ─────────────────▶ log + drop ──┐
    └──────┬───────┘                                 │
           ▼                                         │
    ┌──────────────┐  StoreError                     │
    │ UPDATE clicks│ ─────────────────▶ log ─────────┤
    │ = clicks + 1 │                                 │
    └──────┬───────┘                                 │
           ▼                                         ▼
    ┌──────────────┐                          ┌──────────────┐
    │ rowcount 0?  │ ───────────────────────▶ │ commit offset│
    │ (log)        │                          │ offset + 1   │
    └──────────────┘                          └──────────────┘

Key Behaviours
===============
- One event, one increment; events are never merged.
- Malformed payloads and store failures are logged and skipped, never retried.
- A commit rejected by Kafka (e.g. a rebalance) is logged; the message is redelivered later.
- Any other exception stops the loop before the offset is committed.
"""

import logging

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError
from aiokafka.structs import ConsumerRecord
from prometheus_client import Counter
from pydantic import ValidationError

from app.errors import StoreError
from app.schemas import ClickPayload
from app.store import LinkStore

__all__ = ["ClickAggregator"]

ANALYTICS_EVENTS_CONSUMED_TOTAL = Counter(
    "analytics_events_consumed_total",
    "Click events consumed by the analytics aggregator",
)
ANALYTICS_EVENTS_DROPPED_TOTAL = Counter(
    "analytics_events_dropped_total",
    "Click events dropped because the payload could not be parsed",
)
ANALYTICS_CLICKS_APPLIED_TOTAL = Counter(
    "analytics_clicks_applied_total",
    "Click increments applied to the link store",
)
ANALYTICS_STORE_FAILURES_TOTAL = Counter(
    "analytics_store_failures_total",
    "Click increments that failed against the link store",
)
ANALYTICS_COMMIT_FAILURES_TOTAL = Counter(
    "analytics_commit_failures_total",
    "Offset commits rejected by Kafka, e.g. during a group rebalance",
)


class ClickAggregator:
    def __init__(self, store: LinkStore, logger: logging.Logger | None = None):
        self._store = store
        self._logger = logger or logging.getLogger("urlshortener.aggregator")

    def parse_click_event(self, raw: bytes | str | None) -> str | None:
        """Return the slug carried by ``raw``, or None if the payload is unusable."""
        if raw is None:
            self._logger.warning("Dropping click event with empty payload")
            ANALYTICS_EVENTS_DROPPED_TOTAL.inc()
            return None
        try:
            payload = ClickPayload.model_validate_json(raw)
        except ValidationError as exc:
            self._logger.warning(f"Dropping malformed click event {raw!r}: {exc.error_count()} error(s)")
            ANALYTICS_EVENTS_DROPPED_TOTAL.inc()
            return None
        return payload.slug

    async def handle(self, raw: bytes | str | None) -> bool:
        """Apply one click event; returns True when a row was incremented."""
        ANALYTICS_EVENTS_CONSUMED_TOTAL.inc()
        slug = self.parse_click_event(raw)
        if slug is None:
            return False

        try:
            updated = await self._store.increment_clicks(slug)
        except StoreError as exc:
            ANALYTICS_STORE_FAILURES_TOTAL.inc()
            self._logger.error(f"Failed to record click for `{slug}`: {exc}")
            return False

        if updated == 0:
            self._logger.warning(f"Click for unknown short code `{slug}` ignored")
            return False

        ANALYTICS_CLICKS_APPLIED_TOTAL.inc()
        self._logger.debug(f"Recorded click for `{slug}`")
        return True

    async def process(self, consumer: AIOKafkaConsumer, message: ConsumerRecord) -> None:
        await self.handle(message.value)
        offsets = {TopicPartition(message.topic, message.partition): message.offset + 1}
        try:
            await consumer.commit(offsets)
        except KafkaError as exc:
            # Uncommitted messages are redelivered.
            ANALYTICS_COMMIT_FAILURES_TOTAL.inc()
            self._logger.warning(
                f"Offset commit failed at {message.topic}[{message.partition}]@{message.offset}: {exc!r}"
            )

    async def consume(self, consumer: AIOKafkaConsumer) -> None:
        """Process messages in delivery order until the consumer is stopped."""
        async for message in consumer:
            await self.process(consumer, message)
