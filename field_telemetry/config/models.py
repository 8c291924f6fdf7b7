"""
Pydantic models for pipeline configuration.

These models provide type-safe parsing and validation of the YAML configuration file.
They ensure all required settings are present and have the correct types.
"""

from pathlib import Path
from typing import Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from field_telemetry.models import Geofence, Granularity, ThresholdConfig
from field_telemetry.utils.exceptions import ConfigurationError


def _resolve_project_path(v):
    """Convert a relative path to an absolute one under the project root."""
    if isinstance(v, str):
        path = Path(v)
        if not path.is_absolute():
            project_root = Path(__file__).parent.parent.parent
            path = (project_root / v).resolve()
        return str(path)
    return v


class PipelineInfo(BaseModel):
    """Basic pipeline metadata."""
    name: str = Field(..., description="Pipeline name")
    version: str = Field(..., description="Pipeline version")


class StoragePaths(BaseModel):
    """File system paths for stored readings and rollups."""
    readings_store: str = Field(..., description="Directory of accepted readings (Parquet)")
    aggregates_store: str = Field(..., description="Directory of period rollups (Parquet)")
    rejections_log: str = Field(..., description="CSV file of rejected readings")

    @field_validator('readings_store', 'aggregates_store', 'rejections_log', mode='before')
    @classmethod
    def resolve_paths(cls, v):
        return _resolve_project_path(v)


class IngestionSettings(BaseModel):
    """Per-reading and per-batch acceptance rules."""
    max_reading_age_hours: float = Field(24.0, gt=0, description="Freshness window for readings")
    min_batch_size: int = Field(1, ge=1, description="Smallest accepted batch")
    max_batch_size: int = Field(100, ge=1, description="Largest accepted batch")


class RateLimitSettings(BaseModel):
    """Fixed-window admission control per sensor."""
    window_seconds: float = Field(60.0, gt=0, description="Window length in seconds")
    max_requests: int = Field(60, ge=1, description="Admissions allowed per window")


class AggregationSettings(BaseModel):
    """Period rollup and anomaly flagging parameters."""
    granularities: List[Granularity] = Field(
        default_factory=lambda: [Granularity.HOURLY, Granularity.DAILY],
        description="Periods produced by the aggregation job"
    )
    z_score_threshold: float = Field(3.0, gt=0, description="Z-score above which a reading is flagged anomalous")


class LoggingSettings(BaseModel):
    """Log level and destinations."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field("INFO", description="Root log level")
    log_file: Optional[str] = Field(None, description="Optional file receiving every record")
    include_timestamp: bool = Field(True, description="Prefix records with their time")

    @field_validator('level', mode='before')
    @classmethod
    def upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('log_file', mode='before')
    @classmethod
    def resolve_log_file(cls, v):
        return _resolve_project_path(v)


class WriteSettings(BaseModel):
    """Output file writing configuration."""
    compression: str = Field("zstd", description="Compression algorithm")
    mode: str = Field("append", description="Write mode: append or overwrite")


class PipelineConfig(BaseModel):
    """Complete pipeline configuration model."""
    model_config = ConfigDict(extra='forbid')

    pipeline: PipelineInfo = Field(..., description="Pipeline metadata")
    paths: StoragePaths = Field(..., description="Storage locations")
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings, description="Ingestion rules")
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings, description="Rate limiting")
    geofences: Dict[str, Geofence] = Field(default_factory=dict, description="Geofence per sensor id")
    thresholds: Dict[str, ThresholdConfig] = Field(default_factory=dict, description="Alert thresholds per sensor id")
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings, description="Aggregation settings")
    write: WriteSettings = Field(default_factory=WriteSettings, description="Output writing configuration")
    logging: LoggingSettings = Field(default_factory=LoggingSettings, description="Logging configuration")

    @field_validator('geofences', 'thresholds', mode='before')
    @classmethod
    def normalize_sensor_ids(cls, v):
        """Sensor ids are case-insensitive; key them by their lowercase form."""
        if isinstance(v, dict):
            return {str(k).lower(): entry for k, entry in v.items()}
        return v

    @classmethod
    def from_yaml(cls, config_path: Union[str, Path]) -> "PipelineConfig":
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        try:
            return cls(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    def get_geofence(self, sensor_id: str) -> Optional[Geofence]:
        """Get the geofence a sensor's location claims are checked against."""
        return self.geofences.get(sensor_id.lower())

    def get_thresholds(self, sensor_id: str) -> ThresholdConfig:
        """Get alert thresholds for a sensor (all bounds unset if none configured)."""
        return self.thresholds.get(sensor_id.lower(), ThresholdConfig())
