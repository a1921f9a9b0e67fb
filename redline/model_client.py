# model_client.py
import logging
from typing import Any, Dict, Optional

import anthropic
import httpx

from . import settings

logger = logging.getLogger(__name__)


class ModelError(RuntimeError):
    """The model call failed; the message is fit to show to the user."""


class ModelRejected(ModelError):
    """The endpoint answered with an error status."""


def _block_text(block: Any) -> str:
    if isinstance(block, dict):
        kind, text = block.get("type"), block.get("text")
    else:
        kind, text = getattr(block, "type", None), getattr(block, "text", None)
    return text if kind == "text" and isinstance(text, str) else ""


def response_text(message: Any) -> str:
    """Concatenate the text blocks of a Messages response."""
    content = message.get("content") if isinstance(message, dict) else getattr(message, "content", None)
    if not isinstance(content, list):
        return ""
    return "".join(_block_text(b) for b in content)


def error_message(body: Any) -> Optional[str]:
    """Return the model-reported error message from an error body, if any."""
    if not isinstance(body, dict):
        return None
    err = body.get("error")
    if not err:
        return None
    if isinstance(err, dict):
        return err.get("message") or err.get("type") or "Model request failed"
    return str(err)


class ModelClient:
    """Server-side access to the Messages endpoint.

    Analysis and email calls go through the ``anthropic`` SDK. ``post`` is a
    plain forward used by the proxy route. The credential never leaves the
    server.
    """

    def __init__(
        self,
        base_url: str = settings.MODEL_BASE_URL,
        api_key: str = settings.ANTHROPIC_API_KEY,
        timeout: float = settings.MODEL_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.messages_url = f"{self.base_url}/v1/messages"
        self.api_key = api_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.sdk = anthropic.AsyncAnthropic(
            api_key=api_key or None,
            base_url=self.base_url,
            timeout=timeout,
            max_retries=0,
            http_client=self._http,
        )

    async def create_message(self, body: Dict[str, Any]) -> anthropic.types.Message:
        """Send a Messages request; every failure raises ``ModelError``.

        An error status raises ``ModelRejected`` carrying the model's own
        message when the body has one.
        """
        if not self.api_key:
            raise ModelError("ANTHROPIC_API_KEY is not set")
        try:
            return await self.sdk.messages.create(**body)
        except anthropic.APIStatusError as e:
            message = error_message(e.body) or f"Model endpoint error {e.status_code}: {e.response.text[:200]}"
            raise ModelRejected(message) from e
        except anthropic.APIConnectionError as e:
            logger.warning("Model endpoint unreachable: %s", e.__cause__ or e)
            raise ModelError(f"Could not reach model endpoint: {e.__cause__ or e.message}") from e
        except anthropic.APIError as e:
            raise ModelError(f"Unexpected model response: {e.message}") from e

    async def post(self, body: Dict[str, Any]) -> httpx.Response:
        headers = {"anthropic-version": settings.ANTHROPIC_VERSION}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        try:
            return await self._http.post(self.messages_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Model endpoint unreachable: %s", e)
            raise ModelError(f"Could not reach model endpoint: {e}") from e

    async def aclose(self) -> None:
        await self._http.aclose()
