import asyncio
import random
from typing import Any

from fastapi import status as http_status
import httpx
from pydantic import BaseModel

from app.core.config import brevo_logger, settings
from app.core.exceptions.types import AppException


class Contact(BaseModel):
    email: str
    name: str | None = None


class ListContact(BaseModel):
    to: list[Contact]


class BrevoService:
    """
    Thin client for the Brevo transactional email API.

    Transient failures (5xx, 429, timeouts, transport errors) are retried with
    exponential backoff and jitter; any other 4xx fails immediately.
    """

    _base_url: str = settings.BREVO_BASE_URL
    _api_key: str = settings.BREVO_API_KEY
    _sender_email: str = settings.BREVO_SENDER_EMAIL
    _sender_name: str = settings.BREVO_SENDER_NAME
    _client: httpx.AsyncClient | None = None

    _BACKOFF_BASE: float = 3.0  # seconds
    _BACKOFF_MAX: float = 60.0
    _JITTER: float = 0.2  # +/-20%

    @classmethod
    def _init_client(cls) -> None:
        """Create the shared HTTP client once."""
        if cls._client is None:
            cls._client = httpx.AsyncClient(
                base_url=cls._base_url,
                timeout=httpx.Timeout(30.0),
            )
            brevo_logger.info("Brevo HTTP client initialized")

    @classmethod
    async def aclose(cls) -> None:
        """Close the shared HTTP client, if any."""
        if cls._client is not None:
            try:
                await cls._client.aclose()
            finally:
                cls._client = None
                brevo_logger.info("Brevo HTTP client closed")

    @classmethod
    async def init(
        cls,
        api_key: str | None = None,
        sender_email: str | None = None,
        sender_name: str | None = None,
    ) -> None:
        """
        Configure credentials and sender identity, then (re)create the client.

        Arguments left as None keep their current value.

        Args:
            api_key (str | None): Brevo API key.
            sender_email (str | None): Default sender address.
            sender_name (str | None): Default sender display name.
        """
        if api_key is not None:
            cls._api_key = api_key
        if sender_email is not None:
            cls._sender_email = sender_email
        if sender_name is not None:
            cls._sender_name = sender_name
        await cls.aclose()
        cls._init_client()

    @classmethod
    def _compute_backoff(
        cls, attempt: int, err_headers: httpx.Headers | None = None
    ) -> float:
        """
        Seconds to wait before retry number ``attempt`` (1-based).

        Brevo's ``x-sib-ratelimit-reset`` header wins when present and numeric;
        otherwise ``_BACKOFF_BASE * 2 ** (attempt - 1)`` capped at
        ``_BACKOFF_MAX`` with multiplicative jitter.
        """
        if err_headers and "x-sib-ratelimit-reset" in err_headers:
            try:
                return float(err_headers.get("x-sib-ratelimit-reset"))
            except ValueError:
                brevo_logger.debug("Unparseable x-sib-ratelimit-reset header")
        base = min(cls._BACKOFF_BASE * (2 ** (attempt - 1)), cls._BACKOFF_MAX)
        return base * random.uniform(1 - cls._JITTER, 1 + cls._JITTER)

    @classmethod
    def _auth_headers(cls, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "api-key": cls._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    @classmethod
    async def _request(
        cls,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        max_attempts: int = 3,
    ) -> dict[str, Any] | str:
        """
        Call the Brevo API with bounded retries.

        Args:
            method: HTTP method.
            endpoint: Path relative to the configured base URL.
            json: Optional JSON body.
            headers: Extra headers merged over the auth headers.
            max_attempts: Initial try plus retries.

        Returns:
            The parsed JSON body, or the raw text when it is not JSON.

        Raises:
            AppException: On a non-retriable 4xx, or when retries are exhausted
                (status 5xx, 429 or 503 for network errors).
        """
        if cls._client is None:
            cls._init_client()
        assert cls._client is not None

        for attempt in range(1, max_attempts + 1):
            last_attempt = attempt == max_attempts
            try:
                resp = await cls._client.request(
                    method, endpoint, headers=cls._auth_headers(headers), json=json
                )
                resp.raise_for_status()
                body = cls._body(resp)
                brevo_logger.info(f"Brevo response: {body}")
                return body

            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                err_body = cls._body(exc.response)

                if status >= 500 or status == http_status.HTTP_429_TOO_MANY_REQUESTS:
                    wait = cls._compute_backoff(
                        attempt, exc.response.headers if status == 429 else None
                    )
                    brevo_logger.warning(
                        f"Brevo returned {status}; attempt {attempt}/{max_attempts}; "
                        f"wait={wait:.1f}s; body={err_body}"
                    )
                    if not last_attempt:
                        await asyncio.sleep(wait)
                        continue
                    brevo_logger.error(f"Brevo error after retries: {status}: {err_body}")
                    raise AppException(
                        message=f"Brevo request failed after retries: {status}",
                        status_code=status,
                    ) from exc

                brevo_logger.error(f"Brevo rejected request {status}: {err_body}")
                raise AppException(
                    message=f"HTTP error {status}: {err_body}", status_code=status
                ) from exc

            except (httpx.TimeoutException, httpx.TransportError) as exc:
                wait = cls._compute_backoff(attempt)
                brevo_logger.warning(
                    f"Brevo network error; attempt {attempt}/{max_attempts}; "
                    f"wait={wait:.1f}s; err={exc}"
                )
                if not last_attempt:
                    await asyncio.sleep(wait)
                    continue
                brevo_logger.error(f"Brevo network error after retries: {exc}")
                raise AppException(
                    message="Brevo network error after retries",
                    status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
                ) from exc

        raise AppException(
            message="No response from Brevo",
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @classmethod
    async def send_transactional_email(
        cls,
        subject: str,
        to: ListContact,
        htmlContent: str | None = None,
        textContent: str | None = None,
        sender: Contact | None = None,
    ) -> dict[str, Any] | str:
        """
        Send one transactional email.

        Args:
            subject (str): Subject line.
            to (ListContact): Recipients.
            htmlContent (str | None): HTML body.
            textContent (str | None): Plain text body.
            sender (Contact | None): Defaults to the configured sender.

        Returns:
            dict[str, Any] | str: Brevo's response, normally ``{"messageId": ...}``.

        Raises:
            ValueError: If neither body nor any recipient is given.
        """
        if not htmlContent and not textContent:
            raise ValueError("Either htmlContent or textContent must be provided")
        if not to.to:
            raise ValueError("At least one recipient must be provided")

        sender = sender or Contact(email=cls._sender_email, name=cls._sender_name)
        payload: dict[str, Any] = {
            "sender": sender.model_dump(exclude_none=True),
            "subject": subject,
            **to.model_dump(exclude_none=True),
        }
        if textContent:
            payload["textContent"] = textContent
        if htmlContent:
            payload["htmlContent"] = htmlContent

        return await cls._request(method="POST", endpoint="/smtp/email", json=payload)


__all__ = ["BrevoService", "Contact", "ListContact"]
