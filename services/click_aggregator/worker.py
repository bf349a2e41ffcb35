"""Click aggregator worker entry point.

Consumes click events from Kafka as part of the analytics consumer group and
increments ``click_count`` in the link store, committing each offset only
after its message has been processed.
"""

import asyncio
import logging
import signal

from aiokafka import AIOKafkaConsumer
from prometheus_client import start_http_server

from app.aggregator import ClickAggregator
from app.config import get_settings
from app.database import async_session, close_db
from app.store import LinkStore

__all__ = ["build_consumer", "run"]

settings = get_settings()
logger = logging.getLogger("click-aggregator-worker")


def build_consumer() -> AIOKafkaConsumer:
    return AIOKafkaConsumer(
        settings.KAFKA_CLICK_TOPIC,
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        group_id=settings.ANALYTICS_CONSUMER_GROUP,
        client_id=settings.ANALYTICS_CONSUMER_NAME,
        auto_offset_reset="earliest",
        enable_auto_commit=False,
    )


async def run() -> None:
    """Main click aggregator worker."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info(
        f"Starting click aggregator: topic={settings.KAFKA_CLICK_TOPIC} group={settings.ANALYTICS_CONSUMER_GROUP}"
    )
    start_http_server(settings.ANALYTICS_METRICS_PORT)

    aggregator = ClickAggregator(LinkStore(async_session), logger=logger)
    consumer = build_consumer()
    await consumer.start()

    consume_task = asyncio.create_task(aggregator.consume(consumer))
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, consume_task.cancel)

    try:
        await consume_task
    except asyncio.CancelledError:
        logger.info("Click aggregator stopping on shutdown signal")
    finally:
        await consumer.stop()
        await close_db()
        logger.info("Click aggregator stopped")


if __name__ == "__main__":
    asyncio.run(run())
