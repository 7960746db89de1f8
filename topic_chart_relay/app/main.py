"""
FastAPI entrypoint (long-running server).

Routes:
- POST /api/analyze: topic -> research + extraction -> success envelope
- OPTIONS /api/analyze: empty 200 (browser preflights are answered by CORSMiddleware)
- GET /health: liveness

The provider client and settings are built once in the lifespan (or injected
through create_app) and handed to the pipeline per request.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from .analyzer import analyze
from .config import Settings, load_settings
from .errors import GENERIC_ERROR_MESSAGE, InputError
from .llm_client import GeminiClient, ProviderClient
from .logging_config import setup_logging
from .schemas import AnalysisEnvelope, ErrorResponse, FailureEnvelope, HealthResponse
from .utils import utc_timestamp

logger = logging.getLogger(__name__)


def get_client(request: Request) -> ProviderClient:
    return request.app.state.client


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def _read_topic(request: Request):
    """Topic from the JSON body; an unreadable body is an input error."""
    raw = await request.body()
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputError("Request body must be valid JSON", details=str(e)) from e
    if not isinstance(payload, dict):
        return None
    return payload.get("topic")


def create_app(client: Optional[ProviderClient] = None, settings: Optional[Settings] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.settings is None:
            app.state.settings = load_settings()
        setup_logging(app.state.settings.log_level)
        if app.state.client is None:
            app.state.client = GeminiClient(
                api_key=app.state.settings.require_api_key(),
                model_name=app.state.settings.model_name,
            )
        yield

    app = FastAPI(title="Topic Chart Relay", lifespan=lifespan)
    app.state.client = client
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/api/analyze")
    async def analyze_endpoint(
        request: Request,
        provider: ProviderClient = Depends(get_client),
        app_settings: Settings = Depends(get_settings),
    ):
        try:
            topic = await _read_topic(request)
            # Provider SDK is blocking; keep it off the event loop
            result = await run_in_threadpool(analyze, topic, provider, app_settings)
        except InputError as e:
            logger.warning(f"Rejected analyze request: {e.message}")
            return JSONResponse(status_code=400, content=ErrorResponse(error=e.message).to_wire())
        except Exception:
            logger.exception("Error during analysis")
            return JSONResponse(
                status_code=500,
                content=FailureEnvelope(error=GENERIC_ERROR_MESSAGE).to_wire(),
            )

        return JSONResponse(content=AnalysisEnvelope(data=result).to_wire())

    @app.options("/api/analyze")
    async def analyze_options():
        return Response(status_code=200)

    @app.get("/health")
    async def health():
        return HealthResponse(timestamp=utc_timestamp()).to_wire()

    return app


app = create_app()


def run():
    """Console entry point: serve the app with uvicorn on $PORT."""
    settings = load_settings()
    setup_logging(settings.log_level)
    logger.info(f"Server running at http://localhost:{settings.port}")
    logger.info("Make sure GEMINI_API_KEY is set in the environment")
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
