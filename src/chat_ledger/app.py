from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from chat_ledger.api.routes import chat, users
from chat_ledger.core.settings import Settings, load_settings, log_environment
from chat_ledger.integration.telegram import TelegramReplyDispatcher
from chat_ledger.integration.webhook import WebhookOperationDispatcher
from chat_ledger.interpreter.llm import OpenAIInterpreter
from chat_ledger.logger import get_logger, setup_logging
from chat_ledger.orchestrator import CommandOrchestrator
from chat_ledger.services.profiles import ProfileService
from chat_ledger.storage.profiles import JsonProfileStore

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        log_environment(settings)

        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set. Every message will fail interpretation.")

        store = JsonProfileStore(settings.profiles_dir)
        interpreter = OpenAIInterpreter(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.interpreter_timeout,
        )
        operations = WebhookOperationDispatcher(settings.operations_webhook_url, dry_run=settings.dry_run)
        replies = TelegramReplyDispatcher(settings.telegram_bot_token, dry_run=settings.dry_run)

        app.state.settings = settings
        app.state.orchestrator = CommandOrchestrator.from_settings(
            settings,
            store=store,
            interpreter=interpreter,
            operations=operations,
            replies_dispatcher=replies,
        )
        app.state.profiles = ProfileService(store)

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        operations.close()
        replies.close()

    app = FastAPI(title="Chat Ledger", lifespan=lifespan)

    app.include_router(chat.router)
    app.include_router(users.router)

    return app


app = create_app()
