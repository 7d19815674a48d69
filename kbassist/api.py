"""HTTP endpoint for the chat client."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from .config import config
from .errors import ConfigurationError, RAGPipelineError
from .pipeline import RAGPipeline

logger = config.get_logger(__name__)

INVALID_REQUEST = 'Invalid request. Provide a "query" field in the request body.'
INVALID_JSON = "Invalid JSON in request body"


class HistoryMessage(BaseModel):
    """One prior chat message sent by the client."""

    role: str
    content: str


class AskRequest(BaseModel):
    """Request body for ``POST /api/ask``."""

    query: str
    conversation_history: list[HistoryMessage] = Field(
        default_factory=list, alias="conversationHistory"
    )

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError(INVALID_REQUEST)
        return value.strip()

    @field_validator("conversation_history", mode="before")
    @classmethod
    def history_default(cls, value: Any) -> Any:
        return [] if value is None else value


class SourceItem(BaseModel):
    source: str
    row: int | None = None
    text: str


class AskResponse(BaseModel):
    answer: str
    sources: list[SourceItem] | None = None


def _error(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    content = {"error": error}
    if message is not None:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    pipeline: RAGPipeline | None = None,
    *,
    include_sources: bool | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        pipeline: Pipeline used for every request. If None, one is built from
            configuration on the first request and reused afterwards.
        include_sources: Return sources with answers. If None, uses
            config.API_INCLUDE_SOURCES.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(title="KB Assist", version="1.0.0")
    app.state.pipeline = pipeline
    app.state.include_sources = (
        config.API_INCLUDE_SOURCES if include_sources is None else include_sources
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        logger.info("Rejected request to %s: %s", request.url.path, errors)
        if any(error.get("type") == "json_invalid" for error in errors):
            return _error(status.HTTP_400_BAD_REQUEST, INVALID_JSON)
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_REQUEST)

    def get_pipeline() -> RAGPipeline:
        if app.state.pipeline is None:
            app.state.pipeline = RAGPipeline.from_config()
        return app.state.pipeline

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/ask", response_model=AskResponse, response_model_exclude_none=True)
    def ask(request: AskRequest) -> Any:
        missing = [] if app.state.pipeline is not None else config.missing_settings()
        if missing:
            logger.error("Missing environment variables: %s", missing)
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Configuration error",
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file or environment configuration.",
            )

        try:
            result = get_pipeline().run_rag(
                request.query,
                [message.model_dump() for message in request.conversation_history],
            )
        except ConfigurationError as exc:
            logger.exception("Configuration error")
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Configuration error", str(exc)
            )
        except RAGPipelineError as exc:
            logger.error("API error: %s", exc)  # noqa: TRY400
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)
            )
        except Exception as exc:
            logger.exception("API error")
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(exc)
            )

        return result.to_dict(include_sources=app.state.include_sources)

    @app.api_route("/api/ask", methods=["GET", "PUT", "PATCH", "DELETE"])
    def ask_method_not_allowed() -> JSONResponse:
        return _error(
            status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed. Use POST."
        )

    return app
