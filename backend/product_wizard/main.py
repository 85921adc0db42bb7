import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from product_wizard.config import settings
from product_wizard.database import engine
from product_wizard.middleware.exceptions import register_exception_handlers
from product_wizard.routers import health, products, wizard
from product_wizard.utils.redis import close_redis

logger = logging.getLogger("product_wizard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting product wizard ({settings.environment})")
    yield
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title="Product Wizard",
    description="Three-step product creation wizard",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(wizard.router, prefix="/api/product_wizard", tags=["product_wizard"])
app.include_router(products.router, prefix="/api/products", tags=["products"])
