# goldenaxe_admin/api/models/api_models.py

from datetime import date, datetime
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field

from goldenaxe_admin.api.models.alert import Alert, AlertCandidate


Comparison = Literal["gt", "gte", "lt", "lte", "eq"]
SeverityName = Literal["info", "warning", "critical"]


# ============================================================================
# Alerts (Dashboard)
# ============================================================================

class AlertsResponse(BaseModel):
    """Current alert list, newest first"""
    model_config = ConfigDict(populate_by_name=True)

    alerts: List[Alert]
    unacknowledged_count: int = Field(alias="unacknowledgedCount")
    last_check: datetime = Field(alias="lastCheck")


class AcknowledgeAction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Literal["acknowledge"]
    alert_id: str = Field(alias="alertId", min_length=1)


class AcknowledgeAllAction(BaseModel):
    action: Literal["acknowledge_all"]


class ClearAcknowledgedAction(BaseModel):
    action: Literal["clear_acknowledged"]


AlertAction = Annotated[
    Union[AcknowledgeAction, AcknowledgeAllAction, ClearAcknowledgedAction],
    Field(discriminator="action"),
]


class ActionResult(BaseModel):
    success: bool = True
    id: Optional[int] = None  # set by add_* actions


# ============================================================================
# Alert rules
# ============================================================================

class AlertRule(BaseModel):
    """User-defined threshold rule (wraps DBAlertRule)"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    chain: Optional[int] = None
    threshold: float
    comparison: str = "gt"
    severity: str = "warning"
    enabled: bool = True
    created_at: Optional[datetime] = None
    last_triggered_at: Optional[datetime] = None


# ============================================================================
# Notification channels
# ============================================================================

class WebhookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: str
    enabled: bool = True
    events: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_triggered_at: Optional[datetime] = None
    last_error: Optional[str] = None


class EmailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    enabled: bool = True
    events: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_sent_at: Optional[datetime] = None


class CatalogEntry(BaseModel):
    value: str
    label: str
    unit: Optional[str] = None


class NotificationSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    webhooks: List[WebhookResponse]
    emails: List[EmailResponse]
    rules: List[AlertRule]
    event_types: List[CatalogEntry] = Field(alias="eventTypes")
    rule_types: List[CatalogEntry] = Field(alias="ruleTypes")


# --- POST /notifications actions -------------------------------------------

class AddWebhookAction(BaseModel):
    action: Literal["add_webhook"]
    name: str = Field(min_length=1)
    url: AnyHttpUrl
    events: List[str] = Field(default_factory=list)


class AddEmailAction(BaseModel):
    action: Literal["add_email"]
    name: str = Field(min_length=1)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    events: List[str] = Field(default_factory=list)


class AddRuleAction(BaseModel):
    action: Literal["add_rule"]
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    chain: Optional[int] = None
    threshold: float
    comparison: Comparison = "gt"
    severity: SeverityName = "warning"


class ToggleAction(BaseModel):
    action: Literal["toggle_webhook", "toggle_email", "toggle_rule"]
    id: int
    enabled: bool


class DeleteAction(BaseModel):
    action: Literal["delete_webhook", "delete_email", "delete_rule"]
    id: int


class WebhookTestAction(BaseModel):
    action: Literal["test_webhook"]
    url: AnyHttpUrl


NotificationAction = Annotated[
    Union[AddWebhookAction, AddEmailAction, AddRuleAction, ToggleAction, DeleteAction, WebhookTestAction],
    Field(discriminator="action"),
]


class WebhookTestResult(BaseModel):
    success: bool
    status: Optional[int] = None
    error: Optional[str] = None


# --- POST /notifications/send ----------------------------------------------

class ManualAlert(AlertCandidate):
    """Alert body for a manual send - timestamp defaults to now"""
    timestamp: Optional[datetime] = None


class DeliveryResult(BaseModel):
    """Result of one channel delivery"""
    name: str
    success: bool
    error: Optional[str] = None


class SentCounts(BaseModel):
    webhooks: int = 0
    emails: int = 0


class DeliveryResults(BaseModel):
    webhooks: List[DeliveryResult] = Field(default_factory=list)
    emails: List[DeliveryResult] = Field(default_factory=list)


class SendResponse(BaseModel):
    success: bool
    sent: SentCounts
    results: DeliveryResults


# ============================================================================
# Networks (chain config)
# ============================================================================

class NetworkConfig(BaseModel):
    """Chain config row (wraps DBChainConfig)"""
    model_config = ConfigDict(from_attributes=True)

    chain: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=100)
    url: str
    enabled: bool = False
    batch_size: int = Field(default=2000, gt=0)
    concurrency: int = Field(default=10, gt=0, le=100)
    start_block: Optional[int] = Field(default=None, ge=0)


class NetworkUpsert(NetworkConfig):
    """POST /networks body - URL must be a real http(s) URL"""
    url: AnyHttpUrl


# ============================================================================
# Sync history
# ============================================================================

class SyncSnapshot(BaseModel):
    chain: int
    name: str
    block_count: int = 0
    log_count: int = 0
    latest_block: int = 0
    timestamp: datetime


class SyncRate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blocks_per_hour: int = Field(alias="blocksPerHour")
    logs_per_hour: int = Field(alias="logsPerHour")


class SyncStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    behind: int
    percent_synced: int = Field(alias="percentSynced")
    estimated_time_to_sync: str = Field(alias="estimatedTimeToSync")


class ChartSeries(BaseModel):
    blocks: List[int]
    timestamps: List[datetime]


class SyncHistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current: List[SyncSnapshot]
    history: Dict[int, List[SyncSnapshot]]
    sync_rates: Dict[int, SyncRate] = Field(alias="syncRates")
    rpc_blocks: Dict[int, int] = Field(alias="rpcBlocks")
    start_blocks: Dict[int, int] = Field(alias="startBlocks")
    sync_status: Dict[int, SyncStatus] = Field(alias="syncStatus")
    chart_data: Dict[int, ChartSeries] = Field(alias="chartData")


# ============================================================================
# API keys
# ============================================================================

class ApiKey(BaseModel):
    """api_keys row (wraps DBApiKey)"""
    model_config = ConfigDict(from_attributes=True)

    owner_email: str
    secret: str
    origins: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class ApiKeyCreate(BaseModel):
    owner_email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    origins: List[str] = Field(default_factory=list)


class ApiKeyCreated(BaseModel):
    success: bool = True
    secret: str


# ============================================================================
# Users
# ============================================================================

class UserSummary(BaseModel):
    """Latest paid plan, live key count and 30-day usage for one owner_email"""
    email: str
    plan_name: Optional[str] = None
    rate: Optional[int] = None
    timeout: Optional[int] = None
    connections: Optional[int] = None
    query_limit: Optional[int] = None
    plan_date: Optional[datetime] = None
    key_count: int = 0
    queries_30d: int = 0
    last_active: Optional[date] = None


class UserKey(BaseModel):
    secret: str
    origins: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class UserPlan(BaseModel):
    name: Optional[str] = None
    amount: Optional[float] = None
    rate: Optional[int] = None
    timeout: Optional[int] = None
    connections: Optional[int] = None
    queries: Optional[int] = None
    created_at: Optional[datetime] = None
    daimo_tx: Optional[str] = None
    stripe_customer: Optional[str] = None


class UserUsageDay(BaseModel):
    day: date
    queries: int = 0


class UserCollab(BaseModel):
    email: str
    created_at: Optional[datetime] = None
    disabled_at: Optional[datetime] = None


class UserDetail(BaseModel):
    email: str
    keys: List[UserKey]
    plans: List[UserPlan]
    usage: List[UserUsageDay]
    collabs: List[UserCollab]


# ============================================================================
# Indexer status
# ============================================================================

class ChainIndexStatus(BaseModel):
    """Totals for one chain; a side whose table is unreadable stays null"""
    latest_synced_block: Optional[int] = None
    total_blocks: Optional[int] = None
    latest_log_block: Optional[int] = None
    total_logs: Optional[int] = None


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    config: List[NetworkConfig]
    chain_status: Dict[int, ChainIndexStatus] = Field(alias="chainStatus")
    db_connected: bool = Field(alias="dbConnected")
