from functools import lru_cache
from typing import Annotated, Any, Callable

from pydantic import BaseModel, Field, model_validator

from app.infrastructure.messaging.handlers.email_handler import handle_otp_email


class QueueConfig(BaseModel):
    """
    Declaration of a consumed queue and its failure path.

    A failed message goes to ``retry_queue`` (a queue with a TTL that feeds
    back into the main queue) until ``max_retries`` is reached, then to
    ``dead_letter_queue``.
    """

    name: Annotated[str, Field(description="Name of the main queue")]
    handler: Annotated[
        Callable[[dict[str, Any]], Any],
        Field(description="Function to handle messages from the queue"),
    ]
    retry_queue: Annotated[
        str | None, Field(description="Name of the retry queue")
    ] = None
    retry_ttl: Annotated[
        int | None,
        Field(gt=0, description="TTL in milliseconds for the retry queue"),
    ] = None
    max_retries: Annotated[
        int | None,
        Field(gt=0, description="Maximum retries through the retry queue"),
    ] = None
    dead_letter_queue: Annotated[
        str | None, Field(description="Name of the dead letter queue")
    ] = None

    @model_validator(mode="after")
    def check_retry_configuration(self) -> "QueueConfig":
        if self.retry_queue and not self.retry_ttl:
            raise ValueError("'retry_ttl' must be set when using 'retry_queue'.")
        return self


QUEUE_CONFIG: list[dict[str, Any]] = [
    # Registration OTP emails
    {
        "name": "otp_emails",
        "handler": handle_otp_email,
        "retry_queue": "otp_emails_retry",
        "retry_ttl": 30 * 1000,  # 30 seconds
        "max_retries": 3,
        "dead_letter_queue": "otp_emails_dead",
    },
]


@lru_cache()
def get_queue_configs() -> list[QueueConfig]:
    return [QueueConfig.model_validate(config) for config in QUEUE_CONFIG]
