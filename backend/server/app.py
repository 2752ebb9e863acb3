"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (OpenAI client, HTTP client) once per process
- Wire the pipeline and signaling relay
- Register routes
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from adapters.asr.openai_transcriber import OpenAITranscriber
from adapters.llm.openai_chat import OpenAIReplyGenerator
from adapters.realtime.signaling import RealtimeSignaling
from adapters.tts.openai_speech import OpenAISpeechSynthesizer
from config import AppConfig
from observability.logger import log_event, set_enabled
from orchestrator.errors import ClassifiedError
from orchestrator.pipeline import VoicePipeline

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    openai_client: AsyncOpenAI | None = None,
    http_client: httpx.AsyncClient | None = None,
    pipeline: VoicePipeline | None = None,
    signaling: RealtimeSignaling | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with injected fakes (no live network)
    - Environment-specific setup
    - ASGI server compatibility

    A missing or malformed credential does NOT prevent startup; every
    request then fails with a CONFIG error before reaching the network.
    """
    config = config or AppConfig.load_from_env()
    set_enabled(config.enable_json_logs)

    owned_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if owned_http_client:
            await http_client.aclose()

    app = FastAPI(title="Talking Bear Voice API", lifespan=lifespan)

    app.state.config = config
    app.state.http_client = http_client

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Create OpenAI client ONCE per process, only with a usable credential
    if openai_client is None and _credential_ok(config):
        openai_client = build_openai_client(config)
    app.state.openai_client = openai_client

    app.state.pipeline = pipeline or build_pipeline(config, openai_client)
    app.state.signaling = signaling or RealtimeSignaling(
        http_client=http_client,
        api_key=config.openai_api_key or "",
        base_url=config.openai_base_url,
        model=config.realtime_model,
    )

    # Routes
    register_routes(app)

    return app


def build_openai_client(config: AppConfig) -> AsyncOpenAI:
    """Build the provider client from validated configuration."""
    return AsyncOpenAI(
        api_key=config.require_openai_key(),
        base_url=config.openai_base_url,
    )


def build_pipeline(config: AppConfig, openai_client: AsyncOpenAI | None) -> VoicePipeline:
    """Wire OpenAI-backed stage adapters into a pipeline."""
    return VoicePipeline(
        api_key=config.openai_api_key,
        transcriber=OpenAITranscriber(client=openai_client, model=config.transcribe_model),
        generator=OpenAIReplyGenerator(client=openai_client, model=config.llm_model),
        synthesizer=OpenAISpeechSynthesizer(
            client=openai_client,
            model=config.tts_model,
            voice=config.tts_voice,
        ),
        max_retries=config.pipeline_max_retries,
        initial_delay_ms=config.pipeline_initial_delay_ms,
    )


def _credential_ok(config: AppConfig) -> bool:
    try:
        config.require_openai_key()
    except ClassifiedError as exc:
        log_event({
            "event_type": "CONFIG_INVALID",
            "kind": exc.kind.value,
            "message": exc.message,
        })
        return False
    return True
