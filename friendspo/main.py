import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
import sentry_sdk
from fastapi import FastAPI
from sqlalchemy import text

from friendspo.config import settings
from friendspo.database import engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize Sentry
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        profiles_sample_rate=0.1,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: verify DB connection and connect Redis
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))

    app.state.redis = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    await app.state.redis.ping()

    yield

    # Shutdown
    await app.state.redis.close()
    await engine.dispose()


app = FastAPI(
    title="Friendspo API",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from friendspo.middleware.rate_limit import RateLimitMiddleware  # noqa: E402

_cors_origins = [
    "http://localhost:8081",
    "http://localhost:19006",
    "https://friendspo.pages.dev",
]

app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from friendspo.middleware.error_handler import register_error_handlers  # noqa: E402

register_error_handlers(app)

# Routers
from friendspo.routers.friends import router as friends_router  # noqa: E402
from friendspo.routers.leaderboard import router as leaderboard_router  # noqa: E402
from friendspo.routers.leagues import router as leagues_router  # noqa: E402
from friendspo.routers.sessions import router as sessions_router  # noqa: E402
from friendspo.routers.stats import router as stats_router  # noqa: E402
from friendspo.routers.users import router as users_router  # noqa: E402

app.include_router(users_router)
app.include_router(sessions_router)
app.include_router(stats_router)
app.include_router(friends_router)
app.include_router(leaderboard_router)
app.include_router(leagues_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
