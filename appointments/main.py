from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from appointments.api import bookings, realtime, webhook
from appointments.core.config import settings
from appointments.core.exceptions import BookingNotFoundError, BookingValidationError, SlotConflictError
from appointments.core.logger import logger, setup_logging
from appointments.services.container import build_services

setup_logging(
    settings.LOG_LEVEL,
    error_log=settings.ERROR_LOG_FILE,
    integration_log=settings.INTEGRATION_LOG_FILE,
    serialize=settings.LOG_JSON,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting Appointment Scheduler")
    app.state.services = build_services(settings)
    yield
    # Shutdown
    logger.info("🛑 Shutting down backend")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_credentials=True,
    allow_headers=["*"],
)


@app.exception_handler(BookingValidationError)
async def validation_error_handler(request: Request, exc: BookingValidationError):
    return JSONResponse(status_code=400, content={"message": exc.message, "reason": exc.reason})


@app.exception_handler(SlotConflictError)
async def conflict_error_handler(request: Request, exc: SlotConflictError):
    return JSONResponse(status_code=409, content={"message": exc.message, "reason": exc.reason})


@app.exception_handler(BookingNotFoundError)
async def not_found_handler(request: Request, exc: BookingNotFoundError):
    return JSONResponse(status_code=404, content={"message": exc.message})


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"🔥 UNHANDLED ERROR: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"message": "Server error", "detail": "An unexpected error occurred. Please try again later."}
    )


app.include_router(bookings.router, prefix=settings.API_V1_STR, tags=["Bookings"])
app.include_router(webhook.router, prefix=settings.API_V1_STR, tags=["Webhook"])
app.include_router(realtime.router, tags=["Realtime"])


@app.get("/")
async def health_check():
    return {'status': 'active', 'time': datetime.now().isoformat()}


@app.get("/health")
async def health_check_std():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("appointments.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
