"""
Fixed-window rate limiting per sensor.

``check_rate_limit`` is a pure state transition: the caller passes the
source's current state in and persists the returned state. Callers must
serialize checks for a given source and feed a non-decreasing ``now``.
"""

from datetime import datetime, timedelta
from typing import Dict, Optional

import pandas as pd

from field_telemetry.components.base import AdmissionComponent
from field_telemetry.config import PipelineConfig
from field_telemetry.models import RateLimitDecision, RateLimitState
from field_telemetry.utils import IngestionError, get_logger, log_stats_summary
from field_telemetry.utils.timeutils import ensure_aware, resolve_now

RATE_LIMIT_WINDOW_SECONDS = 60.0
RATE_LIMIT_MAX_REQUESTS = 60


def check_rate_limit(
    state: RateLimitState,
    now: Optional[datetime] = None,
    window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
    max_requests: int = RATE_LIMIT_MAX_REQUESTS
) -> RateLimitDecision:
    """
    Decide admission for one request from a source.

    Args:
        state: The source's current window state
        now: Reference time; read from the clock once if omitted
        window_seconds: Window length
        max_requests: Admissions allowed per window

    Returns:
        The decision and the state to persist for the source
    """
    now = resolve_now(now)
    window_age = ensure_aware(now) - ensure_aware(state.window_start)

    if window_age >= timedelta(seconds=window_seconds):
        return RateLimitDecision(
            allowed=True,
            new_state=RateLimitState(request_count=1, window_start=now)
        )

    if state.request_count < max_requests:
        return RateLimitDecision(
            allowed=True,
            new_state=state.model_copy(update={"request_count": state.request_count + 1})
        )

    return RateLimitDecision(allowed=False, new_state=state)


class RateLimitStateStore:
    """Per-instance mapping of sensor id to its current window state."""

    def __init__(self):
        self._states: Dict[str, RateLimitState] = {}

    def get(self, sensor_id: str, now: datetime) -> RateLimitState:
        """Return the stored state, or an empty window starting at ``now``."""
        return self._states.get(sensor_id, RateLimitState(request_count=0, window_start=now))

    def put(self, sensor_id: str, state: RateLimitState) -> None:
        self._states[sensor_id] = state

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, sensor_id: str) -> bool:
        return sensor_id in self._states


class RateLimitingComponent(AdmissionComponent):
    """Applies per-sensor admission control to validated readings."""

    def __init__(self, config: PipelineConfig, store: Optional[RateLimitStateStore] = None):
        super().__init__(config)
        self.logger = get_logger(__name__)
        self.settings = config.rate_limit
        self.store = store if store is not None else RateLimitStateStore()

        self.stats = {
            "records_checked": 0,
            "records_allowed": 0,
            "records_denied": 0
        }

    def execute(self, readings: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
        """
        Decide admission for each valid reading, in batch order.

        Rows already marked invalid are not counted against the limit.

        Args:
            readings: Output of the validation component
            now: Reference time for window arithmetic

        Returns:
            Readings with an ``allowed`` column added
        """
        now = resolve_now(now)
        self.reset_stats()

        try:
            admitted = readings.copy()
            allowed = []

            for row in admitted.itertuples(index=False):
                if not row.valid:
                    allowed.append(False)
                    continue

                decision = self.check(row.sensor_id, now)
                allowed.append(decision.allowed)

            admitted["allowed"] = pd.Series(allowed, index=admitted.index, dtype=bool)

            log_stats_summary(self.logger, "Rate Limiting", self.stats)
            return admitted

        except Exception as e:
            self.logger.error(f"Rate limiting failed: {str(e)}")
            raise IngestionError(f"Rate limiting failed: {str(e)}") from e

    def check(self, sensor_id: str, now: Optional[datetime] = None) -> RateLimitDecision:
        """Check and record one request for a sensor. Ids are keyed case-insensitively."""
        now = resolve_now(now)
        sensor_id = sensor_id.lower()
        decision = check_rate_limit(
            self.store.get(sensor_id, now),
            now=now,
            window_seconds=self.settings.window_seconds,
            max_requests=self.settings.max_requests
        )
        self.store.put(sensor_id, decision.new_state)

        self.stats["records_checked"] += 1
        if decision.allowed:
            self.stats["records_allowed"] += 1
        else:
            self.stats["records_denied"] += 1
            self.logger.info(
                f"Rate limit exceeded for {sensor_id}: "
                f"{decision.new_state.request_count} requests since {decision.new_state.window_start}"
            )

        return decision
