"""FastAPI application for llmgen.

Logging: Uses structured JSON logging.
Set LOG_FORMAT=pretty for development-friendly output.

Invocation errors keep their class name across the HTTP boundary:

  {"error": "ToolCallMissingError", "detail": "..."}

  config / prompt / history / schema faults  → 422
  backend response could not be interpreted  → 502
  transport failure                          → 503
"""

from contextlib import asynccontextmanager

# Configure structured logging BEFORE importing anything else
from llmgen.utils.logging import configure_logging, get_logger, log  # noqa: E402

configure_logging()

MODULE = "api"
logger = get_logger()

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from llmgen.api.routes.generate import router as generate_router  # noqa: E402
from llmgen.api.routes.health import VERSION, router as health_router  # noqa: E402
from llmgen.config import load_backend_config  # noqa: E402
from llmgen.llm.errors import BackendResponseError, LLMGenError, TransportError  # noqa: E402


def status_for(error: LLMGenError) -> int:
    if isinstance(error, TransportError):
        return 503
    if isinstance(error, BackendResponseError):
        return 502
    return 422


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the backend configuration once, at startup."""
    app.state.backend_config = load_backend_config()
    log.info(logger, MODULE, "config_ready", "Backend configuration ready",
             backend=app.state.backend_config.backend.value)
    yield
    log.info(logger, MODULE, "shutdown", "Application shutdown complete")


app = FastAPI(
    title="llmgen",
    description="Text and structured generation across LLM backends",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(LLMGenError)
async def invocation_error_handler(request: Request, exc: LLMGenError) -> JSONResponse:
    status = status_for(exc)
    log.warning(logger, MODULE, "request_failed", "Request failed",
                path=request.url.path, status=status, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


app.include_router(health_router)
app.include_router(generate_router)
