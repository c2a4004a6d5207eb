"""
Standalone RabbitMQ consumer for background email delivery.

Usage:
    python -m app.infrastructure.messaging.main
    python manage.py runconsumer
"""

import asyncio
import signal
from functools import partial

import aio_pika

from app.infrastructure.messaging.connection import get_connection
from app.infrastructure.messaging.consumer import process_message
from app.infrastructure.messaging.queues import get_queue_configs
from app.core.config import rabbitmq_logger, settings
from app.core.services import BrevoService, Renderer


async def start_consumers(keep_alive: bool) -> aio_pika.RobustConnection | None:
    """
    Declare every configured queue and start consuming.

    For each entry of :func:`get_queue_configs` the main queue, its retry
    queue and its dead letter queue are declared. The retry queue dead-letters
    expired messages back to the main queue through the default exchange.

    Args:
        keep_alive (bool): Block forever and close the connection on exit when
            True; return the open connection to the caller when False.

    Returns:
        aio_pika.RobustConnection | None: The connection when ``keep_alive`` is False.
    """
    conn = await get_connection()
    channel = await conn.channel()
    await channel.set_qos(prefetch_count=10)

    for q in get_queue_configs():
        queue = await channel.declare_queue(q.name, durable=True)

        if retry := q.retry_queue:
            await channel.declare_queue(
                retry,
                durable=True,
                arguments={
                    "x-message-ttl": q.retry_ttl,
                    "x-dead-letter-exchange": "",
                    "x-dead-letter-routing-key": q.name,
                },
            )

        if dead := q.dead_letter_queue:
            await channel.declare_queue(dead, durable=True)

        await queue.consume(
            partial(
                process_message,
                handler=q.handler,
                channel=channel,
                retry_queue=q.retry_queue,
                max_retries=q.max_retries,
                dead_letter_queue=q.dead_letter_queue,
            ),
            no_ack=False,
        )
        rabbitmq_logger.info(f"Consuming from {q.name}")

    if keep_alive:
        try:
            await asyncio.Future()  # Run forever
        finally:
            await conn.close()
            rabbitmq_logger.info("RabbitMQ connection closed")
        return None
    return conn


async def main() -> None:
    """
    Entry point of the standalone consumer.

    Initializes Brevo and the template renderer, starts
    the consumers and runs until SIGINT or SIGTERM.
    """
    shutdown_event = asyncio.Event()
    conn: aio_pika.RobustConnection | None = None

    def handle_shutdown(signum, frame):
        rabbitmq_logger.info(f"Received signal {signum}, initiating shutdown...")
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    rabbitmq_logger.info("Starting standalone message consumer...")

    try:
        await BrevoService.init(
            api_key=settings.BREVO_API_KEY,
            sender_email=settings.BREVO_SENDER_EMAIL,
            sender_name=settings.BREVO_SENDER_NAME,
        )
        Renderer.initialize("app/templates")

        conn = await start_consumers(keep_alive=False)
        rabbitmq_logger.info("Message consumers started. Waiting for messages...")

        await shutdown_event.wait()

    except Exception as e:
        rabbitmq_logger.exception(f"Messaging error: {e}")
        raise

    finally:
        rabbitmq_logger.info("Shutting down message consumer...")
        if conn:
            await conn.close()
        await BrevoService.aclose()
        rabbitmq_logger.info("Message consumer shutdown complete.")


if __name__ == "__main__":
    asyncio.run(main())
