"""
MunshiJi Advisor - Backend API
AI business advisor for small shops
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from app.api import advisor
from app.core.config import settings
from app.services.action_extractor import ActionExtractor
from app.services.advisor_tools import build_default_registry
from app.services.ai_service import AIService
from app.services.business_context_service import BusinessContextService
from app.services.llm_gateway import LLMGateway
from app.services.munshiji_service import MunshiJiService
from app.services.prompt_composer import PromptComposer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_munshiji_service() -> MunshiJiService:
    """
    Wire the advisor: gateway -> tools -> registry (frozen) -> orchestrator.

    Raises:
        ValueError: If ANTHROPIC_API_KEY is not configured
    """
    gateway = LLMGateway(settings=settings)
    ai_service = AIService(gateway)
    registry = build_default_registry(ai_service, tool_timeout=settings.TOOL_TIMEOUT_SECONDS)

    return MunshiJiService(
        context_service=BusinessContextService(),
        registry=registry,
        gateway=gateway,
        composer=PromptComposer(),
        extractor=ActionExtractor(),
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.munshiji_service = build_munshiji_service()
        logger.info(f"MunshiJi ready with {len(app.state.munshiji_service.registry.get_all())} tools")
    except ValueError as e:
        # Advisor endpoints answer 503 until the key is configured
        logger.error(f"Configuration error: {str(e)}")
        app.state.munshiji_service = None
    yield


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# MunshiJi advisor
app.include_router(advisor.router)


@app.get("/")
async def root():
    """Root endpoint - API status"""
    return {
        "message": "MunshiJi Advisor API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check for monitoring"""
    service = getattr(app.state, "munshiji_service", None)
    return {
        "status": "healthy" if service is not None else "not_configured",
        "service": "munshiji-api",
        "version": settings.API_VERSION,
        "model": settings.LLM_MODEL,
    }
