import asyncio
import logging

from telegram.ext import Application

from src.config import settings, app_config
from src.bot.handlers.tokens import get_handlers as token_handlers, shutdown as shutdown_tokens
from src.bot.handlers.status import get_handlers as status_handlers
from src.bot.handlers.help import get_handlers as help_handlers
from src.metrics import start_metrics_server

logger = logging.getLogger(__name__)


def build_application() -> Application:
    # Inline queries from one user must overlap so newer keystrokes can
    # supersede older ones
    app = (
        Application.builder()
        .token(settings.telegram_apikey)
        .concurrent_updates(True)
        .build()
    )

    for handler in token_handlers():
        app.add_handler(handler)
    for handler in status_handlers():
        app.add_handler(handler)
    for handler in help_handlers():          # ← LAST: fallback catches unknown commands
        app.add_handler(handler)
    return app


async def run() -> None:
    metrics_port = app_config.get("metrics", {}).get("port", 9090)
    start_metrics_server(metrics_port)

    app = build_application()

    async with app:
        await app.start()
        logger.info(f"TokenBot starting — API at {settings.api_base_url}")
        await app.updater.start_polling(drop_pending_updates=True)
        try:
            await asyncio.sleep(float("inf"))
        except (KeyboardInterrupt, asyncio.CancelledError):
            pass
        finally:
            await app.updater.stop()
            await app.stop()
            await shutdown_tokens()
