"""
Alert Routes - REST API controllers
Each GET runs a check pass before returning the list
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from goldenaxe_admin.api.models.api_models import ActionResult, AlertAction, AlertsResponse
from goldenaxe_admin.database.postgres_client import get_be_db, get_fe_db
from goldenaxe_admin.repositories.chain_repository import ChainRepository
from goldenaxe_admin.repositories.rule_repository import RuleRepository
from goldenaxe_admin.services.alert_service import AlertService
from goldenaxe_admin.state import AppState, get_state


# Routers
alerts_router = APIRouter(prefix="/alerts", tags=["alerts"])


# Dependency to get service
async def get_alert_service(
    state: AppState = Depends(get_state),
    fe_db: AsyncSession = Depends(get_fe_db),
    be_db: AsyncSession = Depends(get_be_db)
) -> AlertService:
    """Create alert service with repositories and the shared probes"""
    return AlertService(
        store=state.alert_store,
        chain_repository=ChainRepository(be_db),
        rule_repository=RuleRepository(fe_db),
        rule_triggers=state.rule_triggers,
        backend_probe=state.backend_probe,
        rpc_probe=state.rpc_probe,
        db_probes=state.db_probes,
    )


# ============================================================================
# ALERT ENDPOINTS
# ============================================================================

@alerts_router.get("", response_model=AlertsResponse)
async def get_alerts(service: AlertService = Depends(get_alert_service)):
    """
    Run an alert check and return current alerts (newest first)
    with the unacknowledged count
    """
    return await service.get_alerts()


@alerts_router.post("", response_model=ActionResult, response_model_exclude_none=True)
async def alert_action(
    action: AlertAction,
    service: AlertService = Depends(get_alert_service)
):
    """
    Body action:
    - acknowledge (alertId)
    - acknowledge_all
    - clear_acknowledged
    """
    return await service.apply_action(action)
