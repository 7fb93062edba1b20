"""FastAPI relay between the workflow builder and the AI gateway."""

import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bpmn_builder.config import Settings, settings
from bpmn_builder.models import ErrorResponse, HealthResponse
from bpmn_builder.services.chat_mock import stream_mock_reply
from bpmn_builder.services.gateway import GatewayClient, GatewayError
from bpmn_builder.sse import create_sse_response
from models import ChatRequest

logger = logging.getLogger(__name__)

# Statuses passed through to the client; anything else becomes a 500
PASSTHROUGH_STATUSES = {402, 429}

app = FastAPI(
    title="BPMN Workflow Builder API",
    description="Relays workflow chat requests to the AI gateway as event streams",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def get_settings() -> Settings:
    return settings


def get_gateway_client(config: Settings = Depends(get_settings)) -> GatewayClient:
    return GatewayClient(
        base_url=config.gateway_url,
        api_key=config.gateway_api_key,
        model=config.gateway_model,
    )


@app.get("/health", response_model=HealthResponse)
async def health(config: Settings = Depends(get_settings)):
    """Health check endpoint."""
    return HealthResponse(mock_backend=config.mock_backend)


@app.post(
    "/chat",
    responses={402: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(
    request: ChatRequest,
    config: Settings = Depends(get_settings),
    gateway: GatewayClient = Depends(get_gateway_client),
):
    """Stream an assistant reply for the given history as server-sent events."""
    if config.mock_backend:
        logger.info(f"Serving mock reply for {len(request.messages)} messages")
        return create_sse_response(stream_mock_reply(request.messages))

    try:
        stream = await gateway.open_stream(request.messages)
    except GatewayError as e:
        status_code = e.status_code if e.status_code in PASSTHROUGH_STATUSES else 500
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(error=e.message).model_dump(),
        )

    return create_sse_response(stream.aiter_bytes())


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(app, host=settings.host, port=settings.port)
