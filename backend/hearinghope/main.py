import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hearinghope.config import settings
from hearinghope.database import init_models
from hearinghope.middleware.exceptions import register_exception_handlers
from hearinghope.routers import auth, bootstrap, health, permissions, system, users
from hearinghope.utils.cache import close_redis

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("hearinghope")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the model registry at startup, release Redis on shutdown."""
    if settings.environment == "development":
        await init_models()
    else:
        import hearinghope.models  # noqa: F401
    logger.info(f"Hearing Hope API started ({settings.environment})")
    try:
        yield
    finally:
        await close_redis()
        logger.info("Hearing Hope API stopped")


app = FastAPI(
    title="Hearing Hope",
    description="Staff management API: authentication, roles and permissions",
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
# Public
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Authenticated
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(permissions.router, prefix="/api/permissions", tags=["permissions"])
app.include_router(bootstrap.router, prefix="/api/bootstrap-permissions", tags=["permissions"])
app.include_router(system.router, prefix="/api/system", tags=["system"])
