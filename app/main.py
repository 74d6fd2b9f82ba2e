from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes.chat import router as chat_router
from app.core.config import settings
from app.core.errors import (
    InvalidPromptError,
    MissingCredentialError,
    OutputValidationError,
    UnknownSchemaError,
    UpstreamError,
)
from app.core.logging import log_startup_info, log_shutdown_info, get_logger
from app.llm.client import get_llm_client
from app.models.response import ErrorResponse, HealthCheckResponse

logger = get_logger(__name__)

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)


def _error_response(status_code: int, error_code: str, message: str) -> JSONResponse:
    body = ErrorResponse(error_code=error_code, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(InvalidPromptError)
async def invalid_prompt_handler(request: Request, exc: InvalidPromptError):
    return _error_response(400, exc.error_code, str(exc))


@app.exception_handler(UnknownSchemaError)
async def unknown_schema_handler(request: Request, exc: UnknownSchemaError):
    return _error_response(404, exc.error_code, str(exc))


@app.exception_handler(OutputValidationError)
async def output_validation_handler(request: Request, exc: OutputValidationError):
    logger.error(f"Validation failure on {request.url.path}: {exc} ({len(exc.errors)} errors)")
    return _error_response(502, exc.error_code, "Model output did not match the expected schema")


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return _error_response(502, exc.error_code, settings.STREAM_ERROR_MESSAGE)


@app.exception_handler(MissingCredentialError)
async def missing_credential_handler(request: Request, exc: MissingCredentialError):
    logger.error(f"{exc}")
    return _error_response(503, exc.error_code, "Service is not configured")


@app.on_event("startup")
async def startup_event():
    log_startup_info()
    # Fail fast: without a key the server must not start
    get_llm_client()
    logger.info("Application startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    log_shutdown_info()


@app.get("/health", response_model=HealthCheckResponse)
def health():
    """Health check endpoint: checks the provider is reachable."""
    llm_ok = True
    try:
        get_llm_client().get_model_info()
    except (UpstreamError, MissingCredentialError) as e:
        logger.warning(f"LLM health check failed: {e}")
        llm_ok = False

    return HealthCheckResponse(
        status="ok" if llm_ok else "degraded",
        llm_ok=llm_ok,
        model_name=settings.GEMINI_MODEL,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
