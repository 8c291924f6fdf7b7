"""
Tests for threshold alerts and z-score anomaly flagging.
"""

from datetime import timedelta

import pandas as pd
import pytest

from field_telemetry.components.alerting import (
    ALERT_COLUMNS,
    AlertingComponent,
    check_thresholds,
    flag_anomalies
)
from field_telemetry.models import AlertSeverity, AlertType, ThresholdConfig

from tests.conftest import NOW, SENSOR_A, SENSOR_B

THRESHOLDS = ThresholdConfig(min_value=10, max_value=40, warning_min_value=15, warning_max_value=35)


class TestCheckThresholds:
    """Test suite for check_thresholds."""

    @pytest.mark.parametrize("value,severity,alert_type,bound", [
        (45, AlertSeverity.CRITICAL, AlertType.THRESHOLD_HIGH, 40),
        (5, AlertSeverity.CRITICAL, AlertType.THRESHOLD_LOW, 10),
        (37, AlertSeverity.WARNING, AlertType.THRESHOLD_HIGH, 35),
        (12, AlertSeverity.WARNING, AlertType.THRESHOLD_LOW, 15),
    ])
    def test_bounds(self, value, severity, alert_type, bound):
        result = check_thresholds(value, THRESHOLDS)

        assert result.should_alert is True
        assert result.severity == severity
        assert result.alert_type == alert_type
        assert result.threshold_value == bound

    def test_value_in_range_does_not_alert(self):
        result = check_thresholds(25, THRESHOLDS)

        assert result.should_alert is False
        assert result.severity is None

    def test_comparisons_are_strict(self):
        assert check_thresholds(40, THRESHOLDS).severity == AlertSeverity.WARNING
        assert check_thresholds(35, THRESHOLDS).should_alert is False
        assert check_thresholds(15, THRESHOLDS).should_alert is False

    def test_unset_bounds_are_ignored(self):
        only_warning = ThresholdConfig(warning_max_value=35)

        assert check_thresholds(1000, only_warning).severity == AlertSeverity.WARNING
        assert check_thresholds(-1000, only_warning).should_alert is False
        assert check_thresholds(1000, ThresholdConfig()).should_alert is False

    def test_critical_takes_precedence(self):
        # Overlapping bounds: a low critical max also crosses the warning max
        overlapping = ThresholdConfig(max_value=20, warning_max_value=10)
        result = check_thresholds(25, overlapping)

        assert result.severity == AlertSeverity.CRITICAL
        assert result.threshold_value == 20


class TestFlagAnomalies:
    """Test suite for flag_anomalies."""

    def test_flags_outlier(self):
        values = [20.0] * 5 + [21.0] * 5 + [200.0]
        readings = pd.DataFrame({"sensor_id": [SENSOR_A] * 11, "value": values})

        flags = flag_anomalies(readings, 3.0)

        assert flags.tolist() == [False] * 10 + [True]

    def test_constant_and_small_groups_not_flagged(self):
        readings = pd.DataFrame({
            "sensor_id": [SENSOR_A] * 3 + [SENSOR_B],
            "value": [5.0, 5.0, 5.0, 1000.0]
        })

        assert not flag_anomalies(readings, 3.0).any()

    def test_groups_are_independent(self):
        readings = pd.DataFrame({
            "sensor_id": [SENSOR_A] * 11 + [SENSOR_B] * 2,
            "value": [20.0] * 5 + [21.0] * 5 + [200.0] + [200.0, 205.0]
        })

        flags = flag_anomalies(readings, 3.0)

        assert flags.sum() == 1
        assert bool(flags.iloc[10]) is True


class TestAlertingComponent:
    """Test suite for AlertingComponent."""

    def _readings(self, sensor_ids, values):
        return pd.DataFrame({
            "sensor_id": sensor_ids,
            "value": values,
            "recorded_at": [NOW - timedelta(minutes=i) for i in range(len(values))]
        })

    def test_alerts_only_configured_sensors(self, sample_config):
        component = AlertingComponent(sample_config)
        readings = self._readings([SENSOR_A, SENSOR_A, SENSOR_B], [45.0, 25.0, 1000.0])

        alerts = component.execute(readings)

        assert list(alerts.columns) == ALERT_COLUMNS
        assert len(alerts) == 1
        assert alerts.iloc[0]["severity"] == "critical"
        assert alerts.iloc[0]["alert_type"] == "threshold_high"
        assert alerts.iloc[0]["threshold_value"] == 40
        assert "above threshold 40" in alerts.iloc[0]["message"]
        assert component.stats["critical_alerts"] == 1

    def test_no_alerts_returns_empty_frame(self, sample_config):
        component = AlertingComponent(sample_config)
        alerts = component.execute(self._readings([SENSOR_A], [25.0]))

        assert alerts.empty
        assert list(alerts.columns) == ALERT_COLUMNS

    def test_flag_adds_anomaly_column(self, sample_config):
        component = AlertingComponent(sample_config)
        readings = self._readings([SENSOR_A] * 11, [20.0] * 5 + [21.0] * 5 + [200.0])

        flagged = component.flag(readings)

        assert "is_anomaly" in flagged.columns
        assert flagged["is_anomaly"].sum() == 1
        assert component.stats["anomalies_flagged"] == 1

    def test_flag_empty_frame(self, sample_config):
        component = AlertingComponent(sample_config)
        flagged = component.flag(pd.DataFrame(columns=["sensor_id", "value", "recorded_at"]))

        assert "is_anomaly" in flagged.columns
        assert flagged.empty

    def test_uppercase_ids_use_configured_thresholds(self, sample_config):
        component = AlertingComponent(sample_config)
        alerts = component.execute(self._readings([SENSOR_A.upper()], [45.0]))

        assert len(alerts) == 1
        assert alerts.iloc[0]["threshold_value"] == 40

    def test_stats_describe_latest_batch(self, sample_config):
        component = AlertingComponent(sample_config)

        component.execute(self._readings([SENSOR_A, SENSOR_A], [45.0, 5.0]))
        component.execute(self._readings([SENSOR_A], [25.0]))

        assert component.stats["records_checked"] == 1
        assert component.stats["critical_alerts"] == 0
