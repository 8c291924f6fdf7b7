"""
Threshold alerting and statistical anomaly flagging for accepted readings.
"""

from typing import List

import numpy as np
import pandas as pd
from scipy import stats

from field_telemetry.components.base import AlertComponent
from field_telemetry.config import PipelineConfig
from field_telemetry.models import AlertResult, AlertSeverity, AlertType, ThresholdConfig
from field_telemetry.utils import AlertingError, get_logger, log_stats_summary

ALERT_COLUMNS = [
    "sensor_id",
    "alert_type",
    "severity",
    "trigger_value",
    "threshold_value",
    "message",
    "recorded_at"
]


def check_thresholds(value: float, thresholds: ThresholdConfig) -> AlertResult:
    """
    Check a value against a sensor's bounds.

    Critical bounds take precedence over warning bounds, and high over low.
    Comparisons are strict and unset bounds are skipped.
    """
    ordered_checks = [
        (thresholds.max_value, AlertSeverity.CRITICAL, AlertType.THRESHOLD_HIGH),
        (thresholds.min_value, AlertSeverity.CRITICAL, AlertType.THRESHOLD_LOW),
        (thresholds.warning_max_value, AlertSeverity.WARNING, AlertType.THRESHOLD_HIGH),
        (thresholds.warning_min_value, AlertSeverity.WARNING, AlertType.THRESHOLD_LOW),
    ]

    for bound, severity, alert_type in ordered_checks:
        if bound is None:
            continue
        crossed = value > bound if alert_type is AlertType.THRESHOLD_HIGH else value < bound
        if crossed:
            return AlertResult(
                should_alert=True,
                severity=severity,
                alert_type=alert_type,
                threshold_value=bound
            )

    return AlertResult(should_alert=False)


def flag_anomalies(readings: pd.DataFrame, z_threshold: float) -> pd.Series:
    """
    Flag per-sensor outliers by absolute z-score.

    Sensors with fewer than two readings, or with constant values, are never flagged.
    """
    flags = pd.Series(False, index=readings.index)

    for _, group in readings.groupby("sensor_id"):
        values = group["value"].to_numpy(dtype=float)
        if len(values) < 2 or np.all(values == values[0]):
            continue
        z_scores = np.abs(stats.zscore(values, nan_policy="omit"))
        flags.loc[group.index] = z_scores > z_threshold

    return flags


class AlertingComponent(AlertComponent):
    """Raises threshold alerts for accepted readings."""

    def __init__(self, config: PipelineConfig):
        super().__init__(config)
        self.logger = get_logger(__name__)
        self.z_threshold = config.aggregation.z_score_threshold

        self.stats = {
            "records_checked": 0,
            "critical_alerts": 0,
            "warning_alerts": 0,
            "anomalies_flagged": 0
        }

    def execute(self, readings: pd.DataFrame) -> pd.DataFrame:
        """
        Evaluate readings against their sensor's thresholds.

        Args:
            readings: Accepted readings with sensor_id, value and recorded_at

        Returns:
            DataFrame with ALERT_COLUMNS, one row per alert
        """
        self.reset_stats()

        try:
            self.stats["records_checked"] = len(readings)
            alerts: List[dict] = []

            for row in readings.itertuples(index=False):
                result = check_thresholds(row.value, self.config.get_thresholds(row.sensor_id))
                if not result.should_alert:
                    continue

                alerts.append({
                    "sensor_id": row.sensor_id,
                    "alert_type": result.alert_type.value,
                    "severity": result.severity.value,
                    "trigger_value": row.value,
                    "threshold_value": result.threshold_value,
                    "message": self._describe(result, row.value),
                    "recorded_at": row.recorded_at
                })
                self.stats[f"{result.severity.value}_alerts"] += 1

            if alerts:
                self.logger.warning(f"Raised {len(alerts)} threshold alerts")

            log_stats_summary(self.logger, "Alerting", self.stats)
            return pd.DataFrame(alerts, columns=ALERT_COLUMNS)

        except Exception as e:
            self.logger.error(f"Alerting failed: {str(e)}")
            raise AlertingError(f"Threshold alerting failed: {str(e)}") from e

    def flag(self, readings: pd.DataFrame) -> pd.DataFrame:
        """Return readings with an ``is_anomaly`` column of z-score outliers."""
        flagged = readings.copy()
        flagged["is_anomaly"] = flag_anomalies(flagged, self.z_threshold) if not flagged.empty else False

        count = int(flagged["is_anomaly"].sum()) if not flagged.empty else 0
        self.stats["anomalies_flagged"] = count
        if count > 0:
            self.logger.info(f"   Detected {count} anomalous readings")

        return flagged

    @staticmethod
    def _describe(result: AlertResult, value: float) -> str:
        direction = "above" if result.alert_type is AlertType.THRESHOLD_HIGH else "below"
        return f"{result.severity.value.title()}: value {value} is {direction} threshold {result.threshold_value}"
