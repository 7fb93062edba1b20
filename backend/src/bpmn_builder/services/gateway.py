"""Client for the upstream OpenAI-compatible AI gateway used by the relay."""

import logging
from typing import AsyncIterator

import httpx

from models import ChatMessage

from bpmn_builder.config import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert BPMN 2.0 workflow designer with deep knowledge of Camunda BPM.
Help the user model their business process through conversation: ask at most
2-3 clarifying questions about participants, tasks, decisions and events, then
generate BPMN 2.0 XML with Camunda extensions and a BPMNDiagram layout.

Always wrap generated BPMN XML in ```xml code blocks."""


class GatewayError(Exception):
    """The gateway could not produce a stream."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class GatewayStream:
    """An open upstream completion stream yielding the decoded body."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()


class GatewayClient:
    """Opens streaming chat completions on the AI gateway."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.gateway_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.gateway_api_key
        self.model = model or settings.gateway_model
        self._transport = transport

    async def open_stream(self, messages: list[ChatMessage]) -> GatewayStream:
        """Start a streamed completion with the system prompt prepended.

        Raises:
            GatewayError: If the key is missing, the gateway is unreachable or
                it answers with a non-success status

        """
        if not self.api_key:
            raise GatewayError(500, "Gateway API key is not configured")

        logger.info(f"Processing BPMN chat request with {len(messages)} messages")

        body = {
            "model": self.model,
            "messages": [{"role": "system", "content": SYSTEM_PROMPT}]
            + [m.model_dump() for m in messages],
            "stream": True,
        }
        client = httpx.AsyncClient(timeout=httpx.Timeout(None), transport=self._transport)
        try:
            request = client.build_request(
                "POST",
                f"{self.base_url}/chat/completions",
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response = await client.send(request, stream=True)
        except httpx.RequestError as e:
            await client.aclose()
            logger.error(f"Gateway request error: {e}")
            raise GatewayError(500, "AI gateway error") from e

        if not response.is_success:
            await response.aread()
            logger.error(f"AI gateway error: {response.status_code} {response.text[:500]}")
            await response.aclose()
            await client.aclose()
            raise GatewayError(response.status_code, _gateway_message(response.status_code))

        return GatewayStream(client, response)


def _gateway_message(status_code: int) -> str:
    if status_code == 429:
        return "Rate limit exceeded. Please try again later."
    if status_code == 402:
        return "AI credits exhausted. Please add more credits."
    return "AI gateway error"
