from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.concurrency import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.events import EVENT_JOB_ERROR
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from api import router as api_router
from api.health import router as health_router
from api.ping import router as ping_router
from api.rate_limit import limiter
from api.services.notification_service import NotificationService
from api.services.sweeper import AlertRequest, LivenessSweeper, SweepReport
from db.engine import SessionLocal
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.settings_repository import SettingsRepository
from typing import Callable, Optional
import logging
import os
import secrets


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    filename=os.getenv("LOG_FILE", "log.txt"),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 30
SWEEP_JOB_ID = "liveness_sweep_job"

INSECURE_JWT_SECRETS = [
    "change-me-in-production",
    "change-me-to-random-string",
    "your-secret-key-here",
]

scheduler: Optional[AsyncIOScheduler] = None
last_sweep_report: Optional[SweepReport] = None


def ensure_jwt_secret() -> str:
    """Ensure JWT_SECRET exists and is not a known placeholder"""
    jwt_secret = os.getenv("JWT_SECRET")
    if jwt_secret and jwt_secret not in INSECURE_JWT_SECRETS:
        return jwt_secret

    db = SessionLocal()
    try:
        settings_repo = SettingsRepository(db)
        # A placeholder in the environment must not shadow the stored value
        os.environ.pop("JWT_SECRET", None)
        jwt_secret = settings_repo.get_setting("JWT_SECRET")
        if not jwt_secret or jwt_secret in INSECURE_JWT_SECRETS:
            jwt_secret = secrets.token_hex(32)
            settings_repo.set_setting("JWT_SECRET", jwt_secret, is_secret=True)
            logger.warning(
                "JWT_SECRET not set or insecure! Generated a random secret and stored it. "
                "Please set JWT_SECRET in your environment for production."
            )
    finally:
        db.close()

    os.environ["JWT_SECRET"] = jwt_secret
    return jwt_secret


def queue_alert(notifier: NotificationService) -> Callable[[AlertRequest], None]:
    """Hand alerts to the scheduler's thread pool so delivery never holds up a sweep."""

    def dispatch(alert: AlertRequest):
        if scheduler is not None and scheduler.running:
            scheduler.add_job(
                notifier.notify,
                args=[alert],
                name=f"notify_monitor_{alert.monitor_id}_{alert.status}",
            )
        else:
            notifier.notify(alert)

    return dispatch


def run_liveness_sweep() -> SweepReport:
    global last_sweep_report
    db = SessionLocal()
    try:
        notifier = NotificationService(SettingsRepository(db))
        sweeper = LivenessSweeper(MonitorRepository(db), dispatch=queue_alert(notifier))
        last_sweep_report = sweeper.sweep()
        return last_sweep_report
    finally:
        db.close()


def init_scheduler(
    sweep_job: Callable[[], object],
    interval_seconds: int = DEFAULT_SWEEP_INTERVAL_SECONDS,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_job,
        "interval",
        seconds=interval_seconds,
        id=SWEEP_JOB_ID,
        # A slow tick is skipped rather than stacked
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def job_error_listener(event):
    logger.error(f"Scheduled job {event.job_id} crashed: {event.exception}")


def start_scheduler():
    global scheduler
    db = SessionLocal()
    try:
        interval = SettingsRepository(db).get_int(
            "SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS
        )
    finally:
        db.close()

    logger.info(f"Starting liveness sweeper, every {interval}s")
    scheduler = init_scheduler(run_liveness_sweep, interval)
    scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
    scheduler.start()


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_jwt_secret()
    skip_scheduler = os.getenv("SKIP_SCHEDULER", "false").lower() == "true"
    if not skip_scheduler:
        start_scheduler()
    yield
    if not skip_scheduler and scheduler is not None:
        scheduler.shutdown(wait=True)


app = FastAPI(title="PingHook", lifespan=lifespan)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS Configuration - Allow same-origin by default, customize for production
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
if allowed_origins == ["*"]:
    logger.warning(
        "CORS is set to allow all origins (*). "
        "Set CORS_ORIGINS environment variable to restrict origins in production."
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    max_age=600,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


app.include_router(health_router)
app.include_router(ping_router)
app.include_router(api_router, prefix="/api")
