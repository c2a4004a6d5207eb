import json
from typing import Any

import aio_pika
from aio_pika.exceptions import AMQPError

from app.core.config import rabbitmq_logger, settings
from app.core.enums import DispatchResult
from app.infrastructure.messaging.connection import get_connection


async def publish_event(
    queue_name: str, event: dict[str, Any], headers: dict[str, Any] | None = None
) -> None:
    """
    Publish ``event`` as a persistent JSON message to ``queue_name``.

    Args:
        queue_name (str): Target queue, routed through the default exchange.
        event (dict[str, Any]): JSON serialisable payload.
        headers (dict[str, Any] | None): Extra message headers.

    Raises:
        Any exception raised by the connection or channel.
    """
    connection = await get_connection()
    channel = await connection.channel()
    try:
        await channel.declare_queue(queue_name, durable=True)

        message = aio_pika.Message(
            body=json.dumps(event).encode(),
            headers=headers or {},
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        await channel.default_exchange.publish(message, routing_key=queue_name)
    finally:
        await channel.close()


async def enqueue_event(queue_name: str, event: dict[str, Any]) -> DispatchResult:
    """
    Publish an event without letting broker outages reach the caller.

    Returns:
        DispatchResult: ``ACCEPTED`` when the broker took the message,
        ``QUEUE_UNAVAILABLE`` when messaging is disabled or the broker could
        not be reached.
    """
    if not settings.ENABLE_MESSAGING:
        rabbitmq_logger.warning(f"Messaging disabled, event for {queue_name} dropped")
        return DispatchResult.QUEUE_UNAVAILABLE

    try:
        await publish_event(queue_name, event)
    except (AMQPError, OSError) as e:
        rabbitmq_logger.error(
            f"Failed to publish to {queue_name}: {type(e).__name__} - {e}"
        )
        return DispatchResult.QUEUE_UNAVAILABLE

    rabbitmq_logger.info(f"Event published to {queue_name}")
    return DispatchResult.ACCEPTED
