"""
Period aggregation of stored sensor readings.

Readings are bucketed by sensor and calendar period (hour or day) and each
bucket is reduced to average, minimum, maximum and count. An empty bucket
produces no row at all, never a zero-valued summary.
"""

from typing import Iterable, List, Optional, Union

import pandas as pd

from field_telemetry.components.base import AggregationComponentBase
from field_telemetry.config import PipelineConfig
from field_telemetry.models import AggregationResult, Granularity, Reading
from field_telemetry.utils import AggregationError, get_logger, log_stats_summary
from field_telemetry.utils.timeutils import get_period_end, get_period_start

AGGREGATE_COLUMNS = [
    "sensor_id",
    "period_type",
    "period_start",
    "period_end",
    "avg_value",
    "min_value",
    "max_value",
    "reading_count"
]


def aggregate_readings(readings: Iterable[Union[Reading, float]]) -> Optional[AggregationResult]:
    """
    Summarize a set of readings.

    Args:
        readings: Readings (or bare values) belonging to one period

    Returns:
        Summary statistics, or None when there is nothing to summarize
    """
    values = [r.value if isinstance(r, Reading) else float(r) for r in readings]
    if not values:
        return None

    avg_value = sum(values) / len(values)
    min_value = min(values)
    max_value = max(values)

    # Float summation can land a hair outside [min, max] for near-equal values
    avg_value = min(max(avg_value, min_value), max_value)

    return AggregationResult(
        avg_value=avg_value,
        min_value=min_value,
        max_value=max_value,
        reading_count=len(values)
    )


class AggregationComponent(AggregationComponentBase):
    """Rolls stored readings up into per-sensor period summaries."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize aggregation component.

        Args:
            config: Pipeline configuration
        """
        super().__init__(config)
        self.logger = get_logger(__name__)

        self.stats = {
            "input_records": 0,
            "sensors_aggregated": 0,
            "periods_produced": 0
        }

    def execute(self, readings: pd.DataFrame, granularity: Union[Granularity, str]) -> pd.DataFrame:
        """
        Aggregate readings into one row per (sensor_id, period_start).

        Timestamps are bucketed on their own local fields; normalize the
        timezone of ``recorded_at`` before calling.

        Args:
            readings: Readings with sensor_id, value and recorded_at columns
            granularity: ``hourly`` or ``daily``

        Returns:
            DataFrame with AGGREGATE_COLUMNS

        Raises:
            AggregationError: If aggregation fails
        """
        self.reset_stats()

        try:
            granularity = Granularity(granularity)
            self.logger.info(f"Starting {granularity.value} aggregation")
            self.stats["input_records"] = len(readings)

            if readings.empty:
                self.logger.warning("No readings to aggregate")
                return pd.DataFrame(columns=AGGREGATE_COLUMNS)

            bucketed = readings[["sensor_id", "value", "recorded_at"]].copy()
            recorded_at = pd.to_datetime(bucketed["recorded_at"])
            bucketed["period_start"] = [
                get_period_start(ts.to_pydatetime(), granularity) for ts in recorded_at
            ]

            rows = []
            for (sensor_id, period_start), group in bucketed.groupby(["sensor_id", "period_start"], sort=True):
                summary = aggregate_readings(group["value"].tolist())
                if summary is None:
                    continue
                rows.append(self._to_row(sensor_id, granularity, period_start, summary))

            aggregates = pd.DataFrame(rows, columns=AGGREGATE_COLUMNS)

            self.stats["sensors_aggregated"] = int(aggregates["sensor_id"].nunique())
            self.stats["periods_produced"] = len(aggregates)
            log_stats_summary(self.logger, "Aggregation", self.stats)

            return aggregates

        except Exception as e:
            self.logger.error(f"Aggregation failed: {str(e)}")
            raise AggregationError(f"Period aggregation failed: {str(e)}") from e

    def execute_all(self, readings: pd.DataFrame) -> List[pd.DataFrame]:
        """Aggregate at every configured granularity."""
        return [self.execute(readings, g) for g in self.config.aggregation.granularities]

    @staticmethod
    def _to_row(sensor_id: str, granularity: Granularity, period_start, summary: AggregationResult) -> dict:
        period_start = pd.Timestamp(period_start).to_pydatetime()
        return {
            "sensor_id": sensor_id,
            "period_type": granularity.value,
            "period_start": period_start,
            "period_end": get_period_end(period_start, granularity),
            "avg_value": summary.avg_value,
            "min_value": summary.min_value,
            "max_value": summary.max_value,
            "reading_count": summary.reading_count
        }
