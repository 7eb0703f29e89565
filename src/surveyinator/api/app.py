"""
Surveyinator - FastAPI edge API for the expert preference survey
"""
import json
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from ..config import SurveyConfig
from ..database import SurveyRepository, create_database_engine
from ..errors import SurveyError, NotFound, ServerError
from ..logging import get_logger
from .handlers import handle_start, handle_vote

logger = get_logger(__name__)

# Matched by suffix so the API also works mounted under a path prefix
ROUTES = {
    "/api/start": handle_start,
    "/api/vote": handle_vote,
}


def cors_headers(origin: str) -> Dict[str, str]:
    """CORS headers echoing an allowed origin."""
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Max-Age": "86400",
    }


def error_response(status_code: int, message: str, origin: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code, headers=cors_headers(origin))


async def read_json_body(request: Request) -> Dict[str, Any]:
    """Decode the request body, treating anything but a JSON object as empty."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def create_app(config: SurveyConfig, repository: Optional[SurveyRepository] = None) -> FastAPI:
    """Build the API application.

    Args:
        config: Deployment settings (secret, allowed origins, database)
        repository: Pre-built repository; created from config.db_path if None

    Returns:
        FastAPI app exposing POST /api/start and POST /api/vote
    """
    if repository is None:
        engine = create_database_engine(
            config.db_path,
            encryption_key=config.encryption_key,
            require_encryption=config.require_encryption,
        )
        repository = SurveyRepository(engine)

    app = FastAPI(
        title="Surveyinator",
        description="Access-code gated pairwise preference survey API",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.repository = repository

    @app.middleware("http")
    async def origin_gate(request: Request, call_next):
        """Answer preflights, enforce the origin allow-list and POST-only access."""
        if request.method == "GET" and request.url.path == "/health":
            return await call_next(request)

        origin = request.headers.get("origin", "")
        allowed = config.origin_allowed(origin)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=cors_headers(origin) if allowed else {})

        if not allowed:
            logger.warning(f"Blocked request from disallowed origin {origin or '(none)'}")
            return error_response(403, "Origin not allowed", origin)

        if request.method != "POST":
            return error_response(405, "Method not allowed", origin)

        response = await call_next(request)
        response.headers.update(cors_headers(origin))
        return response

    @app.exception_handler(SurveyError)
    async def survey_error_handler(request: Request, exc: SurveyError):
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/{path:path}")
    async def dispatch(path: str, request: Request):
        route = "/" + path.rstrip("/")
        handler = next((h for suffix, h in ROUTES.items() if route.endswith(suffix)), None)
        if handler is None:
            raise NotFound("Not found")

        body = await read_json_body(request)
        try:
            return await run_in_threadpool(handler, config, repository, body)
        except SurveyError:
            raise
        except Exception:
            logger.exception(f"Unhandled error in {route}")
            raise ServerError("Internal server error")

    logger.info(f"Survey API ready, {len(config.allowed_origins)} allowed origin(s)")
    return app
