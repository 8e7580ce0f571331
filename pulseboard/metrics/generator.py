"""
Pulseboard - Synthetic Metrics Generator

Timer-driven producer of demo metric rows. Each tick writes 1-3 samples
drawn from a fixed catalog and, occasionally, a system audit entry.

This is load/demo data, not a measurement of the host. Every metric type
documents its value range and the generator never leaves it.

The generator only writes to the store. The broadcast hub polls the metrics
table on its own timer, so the two cadences stay independent.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from pulseboard.audit.models import AuditLog
from pulseboard.audit.service import record_event
from pulseboard.metrics.models import Metric
from pulseboard.metrics.store import create_metric


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricKind:
    """
    Catalog entry for one synthetic metric type.

    Attributes:
        name: Metric type tag
        low: Smallest value produced (inclusive)
        high: Largest value produced (inclusive)
        unit: Unit recorded in metadata
        metadata: Builds the metadata dict from the RNG
    """
    name: str
    low: int
    high: int
    unit: str
    metadata: Callable[[random.Random], Dict[str, Any]]

    def sample(self, rng: random.Random) -> int:
        return rng.randint(self.low, self.high)


def _random_ip(rng: random.Random) -> str:
    return ".".join(str(rng.randint(1, 254)) for _ in range(4))


METRIC_CATALOG: Dict[str, MetricKind] = {
    kind.name: kind
    for kind in (
        MetricKind("cpu_utilization", 0, 100, "percent", lambda rng: {"cores": 16}),
        MetricKind("system_load", 0, 100, "percent", lambda rng: {"threshold": 85}),
        MetricKind("memory_usage", 30, 70, "GB", lambda rng: {"total_gb": 128}),
        MetricKind("network_activity", 0, 999, "MB/s", lambda rng: {"protocol": "HTTPS"}),
        MetricKind(
            "database_queries", 50, 250, "queries/s",
            lambda rng: {"avg_response_ms": rng.randint(1, 100), "slow_queries": rng.randint(0, 4)},
        ),
        MetricKind(
            "api_requests", 100, 600, "requests/min",
            lambda rng: {"success_rate": rng.randint(98, 100), "avg_latency_ms": rng.randint(50, 250)},
        ),
        MetricKind(
            "security_scans", 10, 60, "scans",
            lambda rng: {"scan_type": "VULNERABILITY_ASSESSMENT", "threats_detected": rng.randint(0, 2)},
        ),
        MetricKind(
            "console_attempts", 0, 4, "attempts",
            lambda rng: {"source_ip": _random_ip(rng), "blocked": True, "severity": "HIGH"},
        ),
    )
}

SYSTEM_ACTIONS = (
    "SYSTEM_SCAN_COMPLETED",
    "SECURITY_CHECK_PASSED",
    "UNAUTHORIZED_ACCESS_BLOCKED",
    "DATA_BACKUP_COMPLETED",
    "AI_MODEL_UPDATED",
    "SYSTEM_MAINTENANCE_SCHEDULED",
)

SYSTEM_RESOURCES = (
    "CORE_SYSTEM",
    "SECURITY_SCANNER",
    "DATABASE_CLUSTER",
    "API_GATEWAY",
    "MODEL_REGISTRY",
)


class MetricsGenerator:
    """
    Writes synthetic metrics at a jittered interval.

    Args:
        session_factory: Async session factory for store writes
        base_interval: Mean seconds between ticks
        jitter: Maximum deviation from base_interval, in seconds
        audit_probability: Chance per tick of also writing a system audit entry
        rng: Random source (seed it for reproducible output)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        base_interval: float = 4.0,
        jitter: float = 1.0,
        audit_probability: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        self._session_factory = session_factory
        self._base_interval = base_interval
        self._jitter = jitter
        self._audit_probability = audit_probability
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="metrics-generator")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def next_delay(self) -> float:
        delay = self._base_interval + self._rng.uniform(-self._jitter, self._jitter)
        return max(0.1, delay)

    async def tick(self) -> List[Metric]:
        """
        Write one batch of 1-3 samples.

        Returns:
            The created metric rows
        """
        count = self._rng.randint(1, 3)
        created = []

        async with self._session_factory() as db:
            for _ in range(count):
                kind = self._rng.choice(list(METRIC_CATALOG.values()))
                metadata = {"unit": kind.unit, **kind.metadata(self._rng)}
                created.append(await create_metric(db, kind.name, kind.sample(self._rng), metadata))

            if self._rng.random() < self._audit_probability:
                await self._record_system_event(db)

        return created

    async def _record_system_event(self, db) -> AuditLog:
        action = self._rng.choice(SYSTEM_ACTIONS)
        return await record_event(
            db,
            action=action,
            resource=self._rng.choice(SYSTEM_RESOURCES),
            user_id=None,
            details={
                "automated": True,
                "priority": "HIGH" if "UNAUTHORIZED" in action else "NORMAL",
            },
        )

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.next_delay())
            try:
                await self.tick()
            except Exception:
                logger.exception("Metrics generation tick failed; continuing")
