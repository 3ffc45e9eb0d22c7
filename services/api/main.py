"""
Sanctuary Approval Letter Service - Backend API
FastAPI service that assembles architectural approval letters (letterhead + attachments) into one PDF.

Install dependencies:
pip install -e ".[test]"

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import contextvars
import logging
import os
import time
import uuid

from settings import get_settings
from routers import letters as letters_router

settings = get_settings()

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP
# ============================================================================

app = FastAPI(
    title="Sanctuary Approval Letter API",
    description="Assembles architectural review approval letters with their attachments into a single PDF",
    version="1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# ========== Request Tracing Middleware ==========
@app.middleware("http")
async def request_tracing_middleware(request, call_next):
    """Add request_id and timing to all requests."""
    request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    request_start_time_var.set(time.time())

    response = await call_next(request)

    latency = time.time() - request_start_time_var.get()
    logger.info(
        f"Request completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "latency_ms": round(latency * 1000, 2),
        }
    )

    response.headers["X-Request-ID"] = request_id
    return response


ALLOWED_ORIGINS = settings.get_origins_list()

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Letter-Page-Count", "X-Letter-Warnings", "X-Request-ID"],
)

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ENDPOINTS
# ============================================================================
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    brand_mark = settings.resolved_brand_mark_path()
    if not brand_mark.is_file():
        logger.error(f"Health check failed: brand mark missing at {brand_mark}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": "brand mark asset missing"}
        )
    return {
        "status": "healthy",
        "version": "1.0",
        "size_ceiling_bytes": settings.letter_size_ceiling_bytes,
    }


app.include_router(letters_router.router)


@app.on_event("startup")
async def startup_event():
    logger.info("Sanctuary Approval Letter API starting up...")
    logger.info(f"Brand mark: {settings.resolved_brand_mark_path()}")
    logger.info(f"Letter size ceiling: {settings.letter_size_ceiling_bytes} bytes")
    logger.info(f"Allowed origins: {ALLOWED_ORIGINS}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Sanctuary Approval Letter API shutting down...")

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
