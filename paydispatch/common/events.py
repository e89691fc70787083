"""Kafka envelope + consumer helpers for relayed provider callbacks.

Callback relays publish each provider record wrapped in a `CallbackEnvelope`;
the dispatcher consumes them with a resilient loop.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from aiokafka import AIOKafkaConsumer
from pydantic import BaseModel, Field

from paydispatch.common.config import settings
from paydispatch.common.logging import logger, trace_id_ctx


class CallbackEnvelope(BaseModel):
    """Canonical shape of a relayed provider callback."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    provider: str = "paypal"
    received_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    trace_id: str = Field(default_factory=lambda: str(uuid4()))
    record: dict[str, Any]


async def make_consumer(topic: str, group_id: str) -> AIOKafkaConsumer:
    """Create a configured Kafka consumer for one topic/group."""

    consumer = AIOKafkaConsumer(
        topic,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=group_id,
        auto_offset_reset="earliest",
        enable_auto_commit=False,
    )
    await consumer.start()
    return consumer


async def consume_forever(topic: str, group_id: str, handler) -> None:
    """Continuously consume one topic and pass parsed envelopes to `handler`.

    Errors in individual messages are logged and processing continues; offsets
    are committed once per fetched batch.
    """

    while True:
        consumer = None
        try:
            consumer = await make_consumer(topic, group_id)
            while True:
                results = await consumer.getmany(timeout_ms=500, max_records=50)
                for _, messages in results.items():
                    for msg in messages:
                        try:
                            envelope = CallbackEnvelope(**json.loads(msg.value.decode("utf-8")))
                            trace_token = trace_id_ctx.set(envelope.trace_id)
                            try:
                                logger.info(
                                    "callback_received topic=%s group=%s event_id=%s provider=%s",
                                    topic,
                                    group_id,
                                    envelope.event_id,
                                    envelope.provider,
                                )
                                await handler(envelope)
                            finally:
                                trace_id_ctx.reset(trace_token)
                        except Exception as exc:
                            logger.error(
                                "handler_error topic=%s group=%s offset=%s error=%s",
                                topic,
                                group_id,
                                msg.offset,
                                exc,
                            )
                await consumer.commit()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("consumer_loop_error topic=%s group=%s error=%s", topic, group_id, exc)
            await asyncio.sleep(2)
        finally:
            if consumer is not None:
                await consumer.stop()
            await asyncio.sleep(0)
