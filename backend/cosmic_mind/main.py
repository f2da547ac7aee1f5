from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cosmic_mind.core.config import settings
from cosmic_mind.core.llm import LLMClient
from cosmic_mind.db.base import SessionLocal
from cosmic_mind.db.session import create_tables
from cosmic_mind.routes import auth, content, share, chat, reminders, telegram
from cosmic_mind.services.notification_channel import TelegramChannel
from cosmic_mind.services.reminder_dispatcher import ReminderDispatcher
from cosmic_mind.services.reminder_scheduler import ReminderScheduler
from cosmic_mind.services.reminder_store import ReminderStore
from cosmic_mind.services.retry_policy import RetryPolicy


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_reminder_scheduler(channel: TelegramChannel) -> ReminderScheduler:
    """Wire the reminder store, dispatcher and APScheduler together"""
    store = ReminderStore(SessionLocal)
    dispatcher = ReminderDispatcher(
        channel=channel,
        store=store,
        retry_policy=RetryPolicy(
            max_attempts=settings.reminder_retry_attempts,
            delay_seconds=settings.reminder_retry_delay_seconds
        ),
        timezone=settings.reminder_timezone,
        default_destination=settings.telegram_default_chat_id
    )
    scheduler = AsyncIOScheduler(
        timezone=settings.reminder_timezone,
        job_defaults={"coalesce": True, "misfire_grace_time": 60}
    )
    return ReminderScheduler(scheduler, dispatcher, store, timezone=settings.reminder_timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.app_name} API")
    logger.info(f"CORS allow_origins: {settings.cors_origins}")
    create_tables()

    if not settings.telegram_enabled:
        logger.warning("TELEGRAM_BOT_TOKEN not set, reminders will be scheduled but not delivered")

    channel = TelegramChannel(
        token=settings.telegram_bot_token,
        base_url=settings.telegram_api_base_url,
        timeout=settings.telegram_timeout_s
    )
    reminder_scheduler = build_reminder_scheduler(channel)
    reminder_scheduler.start()
    reminder_scheduler.on_process_start()

    app.state.reminder_scheduler = reminder_scheduler
    app.state.llm_client = LLMClient()
    yield
    # Shutdown
    reminder_scheduler.shutdown()
    await channel.aclose()
    await app.state.llm_client.aclose()
    logger.info("Shutting down API")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Second brain: bookmarks, AI chat over saved content, and Telegram reminders",
    version=settings.version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(content.router, prefix="/api/v1", tags=["content"])
app.include_router(share.router, prefix="/api/v1", tags=["share"])
app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
app.include_router(reminders.router, prefix="/api/v1", tags=["reminders"])
app.include_router(telegram.router, prefix="/api/v1", tags=["telegram"])


@app.get("/api/v1/health")
async def health(request: Request):
    reminder_scheduler = getattr(request.app.state, "reminder_scheduler", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "services": {
            "scheduler": "running" if reminder_scheduler and reminder_scheduler.scheduler.running else "stopped",
            "scheduledReminders": len(reminder_scheduler) if reminder_scheduler else 0,
            "telegram": "configured" if settings.telegram_enabled else "not_configured",
            "groq": "configured" if settings.groq_enabled else "not_configured"
        }
    }
