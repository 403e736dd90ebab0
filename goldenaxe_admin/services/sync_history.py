"""
Sync History - per-chain block/log counts over time
Each poll appends one snapshot per enabled chain to a bounded in-memory
history; rates, sync status and the sparkline are derived from it
"""
import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from goldenaxe_admin.api.models.api_models import (
    ChartSeries,
    SyncHistoryResponse,
    SyncRate,
    SyncSnapshot,
    SyncStatus,
)
from goldenaxe_admin.config import MAX_HISTORY_POINTS, SPARKLINE_POINTS, SYNC_RPC_TIMEOUT_SECONDS
from goldenaxe_admin.utils.numbers import round_half_up

logger = logging.getLogger(__name__)


# ============================================================================
# Derivations
# ============================================================================

def compute_sync_rate(history: List[SyncSnapshot]) -> Optional[SyncRate]:
    """
    Blocks/logs per hour between the oldest and newest retained snapshots.
    None with fewer than two points or no elapsed time.
    """
    if len(history) < 2:
        return None

    oldest, newest = history[0], history[-1]
    hours = (newest.timestamp - oldest.timestamp).total_seconds() / 3600
    if hours <= 0:
        return None

    return SyncRate(
        blocks_per_hour=round_half_up((newest.block_count - oldest.block_count) / hours),
        logs_per_hour=round_half_up((newest.log_count - oldest.log_count) / hours),
    )


def estimate_time_to_sync(behind: int, blocks_per_hour: Optional[float]) -> str:
    if blocks_per_hour is not None and blocks_per_hour > 0 and behind > 0:
        hours = behind / blocks_per_hour
        if hours < 1:
            return f"{round_half_up(hours * 60)} minutes"
        if hours < 24:
            return f"{round_half_up(hours)} hours"
        return f"{round_half_up(hours / 24)} days"
    if behind == 0:
        return "Synced"
    return "N/A"


def compute_sync_status(local_block: int, remote_block: int, rate: Optional[SyncRate]) -> SyncStatus:
    behind = remote_block - local_block
    percent = min(100, max(0, round_half_up(local_block / remote_block * 100))) if remote_block > 0 else 0
    return SyncStatus(
        behind=behind,
        percent_synced=percent,
        estimated_time_to_sync=estimate_time_to_sync(behind, rate.blocks_per_hour if rate else None),
    )


# ============================================================================
# Recorder (process-wide state)
# ============================================================================

class SyncHistoryRecorder:
    """Chronological, FIFO-evicted snapshot history per chain"""

    def __init__(self, max_points: int = MAX_HISTORY_POINTS, sparkline_points: int = SPARKLINE_POINTS):
        self.max_points = max_points
        self.sparkline_points = sparkline_points
        self._history: Dict[int, Deque[SyncSnapshot]] = {}
        self._lock = asyncio.Lock()

    async def record(self, snapshots: List[SyncSnapshot]):
        async with self._lock:
            for snapshot in snapshots:
                history = self._history.setdefault(snapshot.chain, deque(maxlen=self.max_points))
                history.append(snapshot)

    def history(self) -> Dict[int, List[SyncSnapshot]]:
        return {chain: list(points) for chain, points in self._history.items()}

    def sync_rates(self) -> Dict[int, SyncRate]:
        rates = {}
        for chain, points in self._history.items():
            rate = compute_sync_rate(list(points))
            if rate is not None:
                rates[chain] = rate
        return rates

    def chart_data(self) -> Dict[int, ChartSeries]:
        """Last N points per chain for the sparkline"""
        chart = {}
        for chain, points in self._history.items():
            recent = list(points)[-self.sparkline_points:]
            chart[chain] = ChartSeries(
                blocks=[p.block_count for p in recent],
                timestamps=[p.timestamp for p in recent],
            )
        return chart

    async def reset(self):
        async with self._lock:
            self._history = {}


# ============================================================================
# Service
# ============================================================================

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncHistoryService:
    """One poll: counts + RPC heads for every enabled chain, then derive"""

    def __init__(
        self,
        recorder: SyncHistoryRecorder,
        chain_repository,
        stats_reader,
        rpc_probe,
        clock: Callable[[], datetime] = utcnow
    ):
        self.recorder = recorder
        self.chain_repository = chain_repository
        self.stats_reader = stats_reader
        self.rpc_probe = rpc_probe
        self.clock = clock

    async def poll(self) -> SyncHistoryResponse:
        configs = await self.chain_repository.list_enabled()

        current, heads = await asyncio.gather(
            asyncio.gather(*(self.snapshot_chain(c) for c in configs)),
            asyncio.gather(*(self.remote_head(c) for c in configs)),
        )
        await self.recorder.record(current)

        rpc_blocks = {c.chain: head for c, head in zip(configs, heads) if head}
        start_blocks = {c.chain: c.start_block or 0 for c in configs}
        rates = self.recorder.sync_rates()

        sync_status = {
            snapshot.chain: compute_sync_status(
                snapshot.latest_block,
                rpc_blocks[snapshot.chain],
                rates.get(snapshot.chain),
            )
            for snapshot in current
            if snapshot.chain in rpc_blocks
        }

        return SyncHistoryResponse(
            current=current,
            history=self.recorder.history(),
            sync_rates=rates,
            rpc_blocks=rpc_blocks,
            start_blocks=start_blocks,
            sync_status=sync_status,
            chart_data=self.recorder.chart_data(),
        )

    async def snapshot_chain(self, config) -> SyncSnapshot:
        """Zeroed counts when the chain has no data or the query fails"""
        try:
            counts = await self.stats_reader.counts(config.chain)
        except Exception as e:
            logger.warning(f"⚠️ Sync counts for chain {config.chain} failed: {e}")
            counts = {}

        return SyncSnapshot(
            chain=config.chain,
            name=config.name,
            block_count=counts.get("block_count", 0),
            log_count=counts.get("log_count", 0),
            latest_block=counts.get("latest_block", 0),
            timestamp=self.clock(),
        )

    async def remote_head(self, config) -> Optional[int]:
        if not config.url:
            return None
        result = await self.rpc_probe.block_number(config.url, timeout=SYNC_RPC_TIMEOUT_SECONDS)
        return result.block_number if result.ok else None
