# foodlink/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foodlink.core.config import settings
from foodlink.core.errors import FoodLinkError, foodlink_error_handler
from foodlink.core.logging import setup_logging
from foodlink.deps import get_repo
from foodlink.middleware.request_log import RequestLogMiddleware
from foodlink.routers import coverage as coverage_router
from foodlink.routers import donations as donations_router
from foodlink.routers import feed as feed_router
from foodlink.routers import jobs as jobs_router
from foodlink.routers import notifications as notifications_router
from foodlink.routers import reports as reports_router
from foodlink.routers import schedules as schedules_router
from foodlink.routers import stores as stores_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    repo = app.dependency_overrides.get(get_repo, get_repo)()
    await repo.ensure_indexes()
    logger.info("FoodLink API started (%s repository)", "mongo" if settings.use_mongo else "in-memory")
    yield
    if settings.use_mongo:
        from foodlink.core.db import get_client
        get_client().close()


app = FastAPI(lifespan=lifespan, title="FoodLink API")

app.add_exception_handler(FoodLinkError, foodlink_error_handler)

app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------- Include routers ----------------
app.include_router(schedules_router.router)       # /schedules
app.include_router(feed_router.router)            # /feed
app.include_router(coverage_router.router)        # /coverage
app.include_router(reports_router.router)         # /reports
app.include_router(donations_router.router)       # /donations
app.include_router(stores_router.router)          # /stores
app.include_router(notifications_router.router)   # /notifications
app.include_router(jobs_router.router)            # /jobs


# Health
@app.get("/health")
def health():
    return {"ok": True}
