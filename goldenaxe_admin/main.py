# goldenaxe_admin/main.py

"""
Golden Axe Admin API
- Alerting: check passes over backend / RPC / Postgres probes + user rules
- Notifications: webhook and email channels with cooldown
- Sync history, indexer status, system health, network config
- API keys and customer overview
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from goldenaxe_admin.config import LOG_LEVEL
from goldenaxe_admin.database.postgres_client import dispose_engines, ensure_tables
from goldenaxe_admin.database.redis_client import RedisClient
from goldenaxe_admin.routes.alerts_router import alerts_router
from goldenaxe_admin.routes.health_router import health_router
from goldenaxe_admin.routes.keys_router import keys_router
from goldenaxe_admin.routes.networks_router import networks_router
from goldenaxe_admin.routes.notifications_router import notifications_router
from goldenaxe_admin.routes.status_router import status_router
from goldenaxe_admin.routes.sync_router import sync_router
from goldenaxe_admin.routes.users_router import users_router
from goldenaxe_admin.state import AppState

logger = logging.getLogger(__name__)


def setup_logging(level: str = LOG_LEVEL):
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    try:
        await ensure_tables()
    except Exception as e:
        logger.error(f"❌ Could not ensure alerting tables: {e}")

    app.state.admin = AppState()
    await app.state.admin.start()
    logger.info("🚀 Golden Axe Admin API started")

    yield

    await app.state.admin.close()
    await RedisClient.close()
    await dispose_engines()


app = FastAPI(
    title="Golden Axe Admin API",
    description="Alerting, notifications and health for the multi-chain log indexer",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ Include all routers
app.include_router(health_router)
app.include_router(alerts_router)
app.include_router(notifications_router)
app.include_router(sync_router)
app.include_router(networks_router)
app.include_router(status_router)
app.include_router(keys_router)
app.include_router(users_router)


@app.get("/")
async def root():
    """API info"""
    return {
        "service": "Golden Axe Admin API",
        "version": "1.0.0",
        "endpoints": {
            "health": "GET /health",
            "system_health": "GET /system-health (Redis cache)",
            "rpc_health": "GET /rpc-health",
            "alerts": "GET /alerts (runs a check pass), POST /alerts",
            "notifications": "GET /notifications, POST /notifications",
            "send": "POST /notifications/send",
            "sync_history": "GET /sync-history",
            "networks": "GET /networks, POST /networks, DELETE /networks?chain=",
            "status": "GET /status",
            "keys": "GET /keys, POST /keys, DELETE /keys?secret=",
            "users": "GET /users, GET /users/{email}"
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
