from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import time

from .core.config import settings
from .core.database import close_db_connections
from .core.cache import cache_manager
from .core.error_handlers import register_exception_handlers
from .core.logging import setup_logging

# Import all routers
from .routers import (
    assignments, auth, calendar, expenses, health, lesson_plans, report_cards, students, subjects, tasks,
    teachers,
)

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting {settings.app_name} API ({settings.environment})")

    # Initialize cache
    await cache_manager.initialize()
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    yield

    logger.info(f"Shutting down {settings.app_name} API")
    await cache_manager.close()
    await close_db_connections()
    logger.info("Shutdown complete")

app = FastAPI(
    title="Homeschool Records API",
    description="Students, lessons, calendars, grades and expenses for homeschooling families",
    version=settings.app_version,
    lifespan=lifespan,
)

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} {response.status_code} - {process_time:.3f}s")
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"],
    max_age=3600,
)

register_exception_handlers(app)

app.mount(
    settings.upload_url_prefix,
    StaticFiles(directory=settings.upload_dir, check_dir=False),
    name="uploads",
)

# Include all routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(teachers.router)
app.include_router(students.router)
app.include_router(subjects.router)
app.include_router(calendar.router)
app.include_router(assignments.router)
app.include_router(tasks.router)
app.include_router(report_cards.router)
app.include_router(expenses.router)
app.include_router(lesson_plans.router)

@app.get("/")
async def root():
    return {
        "success": True,
        "data": {
            "message": "Homeschool Records API",
            "version": settings.app_version,
            "docs": "/docs",
        },
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("homeschool.main:app", host="0.0.0.0", port=8000, reload=True)
