"""
Pytest configuration and shared fixtures for testing.

Provides common test fixtures and setup for all test modules.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pandas as pd
import pytest

from field_telemetry.config import PipelineConfig

NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

SENSOR_A = "123e4567-e89b-12d3-a456-426614174000"
SENSOR_B = "9b2f7c1e-4d3a-4f6b-8e2d-1a5c7e9f0b34"
SENSOR_C = "0f8fad5b-d9cb-469f-a165-70867728950e"

UNIT_SQUARE = [
    {"lat": 0.0, "lng": 0.0},
    {"lat": 0.0, "lng": 1.0},
    {"lat": 1.0, "lng": 1.0},
    {"lat": 1.0, "lng": 0.0},
]


@pytest.fixture
def now():
    """Fixed reference time used across tests."""
    return NOW


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def config_data(temp_dir):
    """Raw configuration mapping with temporary storage paths."""
    return {
        "pipeline": {
            "name": "test_field_telemetry_pipeline",
            "version": "1.0.0"
        },
        "paths": {
            "readings_store": str(temp_dir / "readings"),
            "aggregates_store": str(temp_dir / "aggregates"),
            "rejections_log": str(temp_dir / "reports" / "rejected_readings.csv")
        },
        "ingestion": {
            "max_reading_age_hours": 24,
            "min_batch_size": 1,
            "max_batch_size": 100
        },
        "rate_limit": {
            "window_seconds": 60,
            "max_requests": 60
        },
        "geofences": {
            SENSOR_A: {"type": "polygon", "vertices": UNIT_SQUARE},
            SENSOR_B: {
                "type": "circle",
                "center_lat": 6.5244,
                "center_lng": 3.3792,
                "radius_meters": 150,
                "tolerance_meters": 50
            }
        },
        "thresholds": {
            SENSOR_A: {
                "min_value": 10,
                "max_value": 40,
                "warning_min_value": 15,
                "warning_max_value": 35
            }
        },
        "aggregation": {
            "granularities": ["hourly", "daily"],
            "z_score_threshold": 3.0
        },
        "write": {
            "compression": "zstd",
            "mode": "append"
        }
    }


@pytest.fixture
def sample_config(config_data):
    """Create a test configuration with temporary paths."""
    return PipelineConfig(**config_data)


@pytest.fixture
def sample_batch(now):
    """A submitted batch mixing valid and invalid readings."""
    return pd.DataFrame({
        "sensor_id": [SENSOR_A, SENSOR_A, SENSOR_B, SENSOR_C, "not-a-uuid", SENSOR_C],
        "value": [27.4, 36.0, 21.5, float("nan"), 12.0, 18.0],
        "recorded_at": [
            now - timedelta(minutes=5),
            now - timedelta(minutes=4),
            now - timedelta(minutes=3),
            now - timedelta(minutes=2),
            now - timedelta(minutes=1),
            now + timedelta(minutes=1),
        ],
        "lat": [0.5, 2.0, 6.5244, None, None, None],
        "lng": [0.5, 2.0, 3.3792, None, None, None],
    })


@pytest.fixture
def stored_readings(now):
    """Accepted readings spanning two hours for two sensors."""
    base = now.replace(hour=9, minute=0)
    return pd.DataFrame({
        "sensor_id": [SENSOR_A] * 4 + [SENSOR_B] * 2,
        "value": [20.0, 22.0, 30.0, 28.0, 5.0, 7.0],
        "recorded_at": [
            base + timedelta(minutes=10),
            base + timedelta(minutes=50),
            base + timedelta(hours=1, minutes=5),
            base + timedelta(hours=1, minutes=55),
            base + timedelta(minutes=15),
            base + timedelta(minutes=45),
        ],
    })
