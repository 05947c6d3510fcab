"""
Timeline - FastAPI Backend
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import reward_managers, timelines, user
from config import ChainConfig, NeynarConfig, PostgresConfig, create_postgres_pool, get_settings
from repositories import RewardManagerRepository, TimelineRepository
from services.address_resolver import AddressResolver
from services.cache import AddressCache
from services.engagement_collector import EngagementCollector
from services.neynar_client import NeynarClient
from services.payout_contract import PayoutInitializer, PayoutStatsReader, create_web3
from services.timeline_service import TimelineService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = get_settings()

    db_pool = await create_postgres_pool(PostgresConfig.from_settings(settings))
    neynar = NeynarClient(NeynarConfig.from_settings(settings))
    chain_config = ChainConfig.from_settings(settings)
    w3 = create_web3(chain_config)

    app.state.neynar = neynar
    app.state.timeline_repository = TimelineRepository(db_pool)
    app.state.reward_manager_repository = RewardManagerRepository(db_pool)
    app.state.stats_reader = PayoutStatsReader(w3)

    if chain_config.private_key:
        app.state.timeline_service = TimelineService(
            neynar=neynar,
            collector=EngagementCollector(neynar, timeout=settings.http_timeout_seconds),
            resolver=AddressResolver(neynar, AddressCache(default_ttl=settings.address_cache_ttl_seconds)),
            initializer=PayoutInitializer.from_config(chain_config, w3=w3),
            timelines=app.state.timeline_repository,
            reward_managers=app.state.reward_manager_repository,
            resolve_timeout=settings.http_timeout_seconds,
            stale_claim_seconds=settings.stale_claim_seconds,
        )
        logger.info("✅ Timeline creation enabled")
    else:
        logger.warning("⚠️  REWARD_MANAGER_PRIVATE_KEY not set - timeline creation disabled")

    yield

    # Shutdown
    await neynar.close()
    await db_pool.close()


app = FastAPI(
    title="Timeline",
    description="Curate Farcaster casts into coined timelines with engagement-based supporter rewards",
    version="1.0.0",
    lifespan=lifespan,
)

# Enable CORS for webapp
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(timelines.router)
app.include_router(reward_managers.router)
app.include_router(user.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/health")
async def api_health():
    return {"status": "ok", "service": "timeline"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
