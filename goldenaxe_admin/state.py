"""
Process-wide application state
Created once in the app lifespan, stored on app.state, injected via Depends
"""
import logging
from typing import List, Optional

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from goldenaxe_admin.config import BE_URL, POSTMARK_KEY
from goldenaxe_admin.database.postgres_client import FeSessionLocal, be_engine, fe_engine
from goldenaxe_admin.probes.backend import BackendHealthProbe
from goldenaxe_admin.probes.postgres import PostgresStatsProbe
from goldenaxe_admin.probes.rpc import RpcProbe
from goldenaxe_admin.repositories.chain_repository import ChainStatsReader
from goldenaxe_admin.repositories.notification_repository import ChannelStore
from goldenaxe_admin.repositories.rule_repository import RuleTriggerRecorder
from goldenaxe_admin.services.alert_store import AlertStore
from goldenaxe_admin.services.notification_service import NotificationDispatcher
from goldenaxe_admin.services.sync_history import SyncHistoryRecorder

logger = logging.getLogger(__name__)


class AppState:
    """Owns the in-memory alert/history state and the shared clients"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        session_factory: async_sessionmaker = FeSessionLocal,
        db_probes: Optional[List[PostgresStatsProbe]] = None,
        backend_url: str = BE_URL,
        postmark_key: Optional[str] = POSTMARK_KEY
    ):
        self.client = client or httpx.AsyncClient()
        self.channel_store = ChannelStore(session_factory)
        self.dispatcher = NotificationDispatcher(self.channel_store, self.client, postmark_key=postmark_key)
        self.alert_store = AlertStore(on_new_alert=self.dispatcher.enqueue)
        self.rule_triggers = RuleTriggerRecorder(session_factory)
        self.sync_recorder = SyncHistoryRecorder()

        self.backend_probe = BackendHealthProbe(self.client, base_url=backend_url)
        self.rpc_probe = RpcProbe(self.client)
        self.db_probes = db_probes if db_probes is not None else [
            PostgresStatsProbe("frontend", fe_engine),
            PostgresStatsProbe("backend", be_engine),
        ]
        self.stats_reader = ChainStatsReader(be_engine)

    async def start(self):
        self.dispatcher.start()

    async def close(self):
        await self.rule_triggers.drain()
        await self.dispatcher.stop()
        await self.client.aclose()
        logger.info("App state closed")


def get_state(request: Request) -> AppState:
    """Dependency to get the process-wide state"""
    return request.app.state.admin
