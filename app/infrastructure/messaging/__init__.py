from app.infrastructure.messaging.publisher import enqueue_event, publish_event

__all__ = ["enqueue_event", "publish_event"]
