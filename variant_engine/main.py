from fastapi import FastAPI

from variant_engine import __version__
from variant_engine.api.api import api_router
from variant_engine.config.logging import get_configured_logger, initialize_logging
from variant_engine.config.otel import instrument_fastapi_app, setup_telemetry
from variant_engine.core.config import settings

# --- 1. 로깅 및 OpenTelemetry 초기화 ---
initialize_logging()
logger = get_configured_logger(__name__)
setup_telemetry()

app = FastAPI(title=settings.PROJECT_NAME, version=__version__)
app.include_router(api_router, prefix=settings.API_V1_STR)
instrument_fastapi_app(app)


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok", "service": settings.PROJECT_NAME}


@app.get("/", tags=["Root"])
def read_root():
    logger.info("Root endpoint / called")
    return {"message": "Welcome to the Variant Engine API"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("variant_engine.main:app", host="0.0.0.0", port=8000)
