from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

# Load .env before settings are read
load_dotenv()

from app.core.config import Settings, settings as default_settings
from app.core.errors import register_exception_handlers
from app.core.logger import get_logger, mask_secret
from app.core.middleware import BodySizeLimitMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware
from app.fine_tune.api.route import fine_tune_router
from app.fine_tune.service.fine_tune_service import FineTuneService
from app.llm.api.handler import LLMHandler
from app.llm.api.route import llm_router
from app.llm.service.llm_service import LLMService
from app.llm.service.model_catalog import ModelCatalog
from app.llm.service.provider.base_provider import BaseProvider
from app.llm.service.provider.deepseek import DeepSeekProvider
from app.llm.service.provider.openai_provider import OpenAIProvider
from app.llm.service.router_service import ProviderRouter
from pkg.rate_limit.store import FixedWindowCounterStore

logger = get_logger("tunable-chat-proxy")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective configuration on startup; release HTTP clients on shutdown."""
    cfg: Settings = app.state.settings
    logger.info(f"{cfg.APP_NAME} starting up...")
    logger.info("=== Configuration Check ===")
    logger.info(f"ENV: {cfg.ENV}")
    logger.info(f"CLIENT_URL: {cfg.CLIENT_URL}")
    logger.info(f"OPENAI_API_KEY: {mask_secret(cfg.OPENAI_API_KEY)}")
    logger.info(f"DEEPSEEK_API_KEY: {mask_secret(cfg.DEEPSEEK_API_KEY)}")
    logger.info(f"Model routing: {cfg.VIRTUAL_MODEL} -> openai:{cfg.PRIMARY_MODEL} / deepseek:{cfg.SECONDARY_MODEL}")
    logger.info(f"Rate limit: {cfg.RATE_LIMIT_MAX_REQUESTS} requests / {cfg.RATE_LIMIT_WINDOW_SECONDS}s per address")
    logger.info("===========================")
    if not cfg.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set: chat will use the secondary provider and fine-tuning is unavailable")
    if not cfg.DEEPSEEK_API_KEY:
        logger.warning("DEEPSEEK_API_KEY not set: fallback and the public API will fail upstream")

    yield

    logger.info(f"{cfg.APP_NAME} shutting down...")
    await app.state.provider_router.aclose()


def create_app(
    settings: Optional[Settings] = None,
    primary: Optional[BaseProvider] = None,
    secondary: Optional[BaseProvider] = None,
    rate_limit_store: Optional[FixedWindowCounterStore] = None,
) -> FastAPI:
    """Build the application; providers and the counter store can be injected."""
    settings = settings or default_settings

    if primary is None:
        primary = OpenAIProvider(settings)
    if secondary is None:
        secondary = DeepSeekProvider(settings)
    catalog = ModelCatalog.from_settings(settings)
    provider_router = ProviderRouter(primary, secondary, catalog, probe_timeout_ms=settings.PROBE_TIMEOUT_MS)
    llm_service = LLMService(provider_router)
    # An empty store is falsy (__len__), so test for None explicitly
    if rate_limit_store is None:
        rate_limit_store = FixedWindowCounterStore(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )

    app = FastAPI(
        title=settings.APP_NAME,
        description="Chat completion proxy with provider fallback",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Expose on app.state for dependencies
    app.state.settings = settings
    app.state.logger = logger
    app.state.provider_router = provider_router
    app.state.llm_handler = LLMHandler(llm_service, settings)
    app.state.fine_tune_service = FineTuneService(
        primary,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
        default_model=settings.FINE_TUNE_BASE_MODEL,
        default_suffix=settings.FINE_TUNE_SUFFIX,
    )
    app.state.rate_limit_store = rate_limit_store

    # Last added runs first: CORS, security headers, the limiter, then the body cap
    app.add_middleware(
        BodySizeLimitMiddleware,
        max_bytes=settings.MAX_BODY_BYTES,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )
    app.add_middleware(
        RateLimitMiddleware,
        store=rate_limit_store,
        trust_forwarded_for=settings.TRUST_FORWARDED_FOR,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(llm_router)
    app.include_router(fine_tune_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host=default_settings.HOST, port=default_settings.PORT, reload=default_settings.DEBUG)
