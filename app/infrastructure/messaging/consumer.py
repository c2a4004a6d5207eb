import json
from typing import Callable, Any

import aio_pika

from app.core.config import rabbitmq_logger


async def process_message(
    message: aio_pika.abc.AbstractIncomingMessage,
    handler: Callable[[dict[str, Any]], Any],
    channel: aio_pika.abc.AbstractChannel,
    retry_queue: str | None = None,
    max_retries: int | None = None,
    dead_letter_queue: str | None = None,
) -> None:
    """
    Run ``handler`` on one message and route it on failure.

    The retry attempt travels in the ``x-retry-attempt`` header. While retries
    remain the body is republished to the retry queue, whose TTL
    dead-letters it back to the main queue. After the last retry it goes to
    ``dead_letter_queue`` with ``x-error-message`` and ``x-original-queue``
    headers. The original delivery is acknowledged on success and rejected
    without requeue on failure.

    Args:
        message: The delivery to process.
        handler: Async callable receiving the decoded JSON body.
        channel: Channel used to republish failed messages.
        retry_queue: Retry queue name.
        max_retries: Attempt cap for ``retry_queue`` (None means unlimited).
        dead_letter_queue: Final destination for failed messages.
    """
    async with message.process(ignore_processed=True):
        try:
            event = json.loads(message.body.decode())
            await handler(event)
        except Exception as e:
            # Any handler failure follows the retry/dead-letter path
            rabbitmq_logger.error(f"Error in handler: {type(e).__name__} - {e}")
            headers = dict(message.headers or {})
            attempt = int(headers.get("x-retry-attempt", 0))  # type: ignore[arg-type]

            if retry_queue and (not max_retries or attempt < max_retries):
                headers["x-retry-attempt"] = attempt + 1
                await channel.default_exchange.publish(
                    aio_pika.Message(
                        body=message.body,
                        content_type=message.content_type,
                        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                        headers=headers,
                    ),
                    routing_key=retry_queue,
                )
                rabbitmq_logger.info(
                    f"Message requeued to {retry_queue} (attempt {attempt + 1})"
                )

            elif dead_letter_queue:
                headers["x-error-message"] = str(e)
                if dead_letter_queue.endswith("_dead"):
                    headers["x-original-queue"] = dead_letter_queue[: -len("_dead")]

                await channel.default_exchange.publish(
                    aio_pika.Message(
                        body=message.body,
                        content_type=message.content_type,
                        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                        headers=headers,
                    ),
                    routing_key=dead_letter_queue,
                )
                rabbitmq_logger.warning(f"Message dead-lettered to {dead_letter_queue}")

            await message.reject(requeue=False)
