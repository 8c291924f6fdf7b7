"""
Ingestion validation for field telemetry readings.

Every submitted reading passes through ``validate_ingestion`` before it is
rate limited or stored. Checks run in a fixed order and stop at the first
failure, so a reading is always rejected under exactly one category.
"""

import math
import re
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd

from field_telemetry.components.base import ValidationComponent
from field_telemetry.config import PipelineConfig
from field_telemetry.models import IngestionErrorCode, IngestionValidationResult, Reading
from field_telemetry.utils import IngestionError, get_logger, log_stats_summary
from field_telemetry.utils.timeutils import ensure_aware, resolve_now

MAX_READING_AGE_HOURS = 24.0

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)

ERROR_MESSAGES = {
    IngestionErrorCode.INVALID_VALUE: "Value must be a finite number",
    IngestionErrorCode.FUTURE_TIMESTAMP: "Reading timestamp cannot be in the future",
    IngestionErrorCode.STALE_READING: "Reading timestamp too old to accept",
    IngestionErrorCode.INVALID_SOURCE_ID: "Invalid sensor ID format",
}


def _reject(code: IngestionErrorCode) -> IngestionValidationResult:
    return IngestionValidationResult(valid=False, error=code, message=ERROR_MESSAGES[code])


def is_valid_sensor_id(sensor_id) -> bool:
    """Check for canonical 8-4-4-4-12 hex UUID shape, case-insensitive."""
    return isinstance(sensor_id, str) and UUID_PATTERN.match(sensor_id) is not None


def validate_ingestion(
    reading: Reading,
    now: Optional[datetime] = None,
    max_age_hours: float = MAX_READING_AGE_HOURS
) -> IngestionValidationResult:
    """
    Validate a single reading.

    Args:
        reading: The submitted reading
        now: Reference time; read from the clock once if omitted
        max_age_hours: Freshness window

    Returns:
        Validation result carrying the first failing category, if any
    """
    now = ensure_aware(resolve_now(now))

    if not math.isfinite(reading.value):
        return _reject(IngestionErrorCode.INVALID_VALUE)

    recorded_at = ensure_aware(reading.recorded_at)
    if recorded_at > now:
        return _reject(IngestionErrorCode.FUTURE_TIMESTAMP)

    if now - recorded_at > timedelta(hours=max_age_hours):
        return _reject(IngestionErrorCode.STALE_READING)

    if not is_valid_sensor_id(reading.sensor_id):
        return _reject(IngestionErrorCode.INVALID_SOURCE_ID)

    return IngestionValidationResult(valid=True)


class IngestionValidationComponent(ValidationComponent):
    """Validates submitted reading batches row by row."""

    REQUIRED_COLUMNS = ("sensor_id", "value")

    def __init__(self, config: PipelineConfig):
        """
        Initialize validation component.

        Args:
            config: Pipeline configuration
        """
        super().__init__(config)
        self.logger = get_logger(__name__)
        self.settings = config.ingestion

        self.stats = {
            "input_records": 0,
            "duplicates_removed": 0,
            "records_accepted": 0,
            "records_rejected": 0
        }
        self.rejections = {code.value: 0 for code in IngestionErrorCode}

    def execute(self, batch: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
        """
        Validate a batch of raw readings.

        Args:
            batch: Raw readings with sensor_id, value and optional recorded_at
            now: Reference time; missing recorded_at values default to it

        Returns:
            Deduplicated batch with valid, error and message columns

        Raises:
            IngestionError: If the batch is the wrong size or shape
        """
        now = ensure_aware(resolve_now(now))
        self.reset_stats()
        self.rejections = {code.value: 0 for code in IngestionErrorCode}
        self._check_batch_shape(batch)

        try:
            self.logger.info(f"Validating batch of {len(batch)} readings")
            self.stats["input_records"] = len(batch)

            prepared = self._prepare_batch(batch, now)
            prepared = self._drop_duplicates(prepared)

            results = [
                validate_ingestion(
                    Reading(sensor_id=row.sensor_id, value=row.value, recorded_at=row.recorded_at),
                    now=now,
                    max_age_hours=self.settings.max_reading_age_hours
                )
                for row in prepared.itertuples(index=False)
            ]

            prepared["valid"] = [r.valid for r in results]
            prepared["error"] = [r.error.value if r.error else None for r in results]
            prepared["message"] = [r.message for r in results]

            self._record_outcomes(prepared)
            log_stats_summary(self.logger, "Ingestion Validation", self.stats)
            return prepared

        except Exception as e:
            self.logger.error(f"Validation failed: {str(e)}")
            raise IngestionError(f"Reading validation failed: {str(e)}") from e

    def _check_batch_shape(self, batch: pd.DataFrame) -> None:
        """Reject batches outside the configured size bounds or missing columns."""
        size = len(batch)
        if size < self.settings.min_batch_size or size > self.settings.max_batch_size:
            raise IngestionError(
                f"Batch size {size} outside allowed range "
                f"[{self.settings.min_batch_size}, {self.settings.max_batch_size}]"
            )

        missing = [c for c in self.REQUIRED_COLUMNS if c not in batch.columns]
        if missing:
            raise IngestionError(f"Batch is missing required columns: {missing}")

    def _prepare_batch(self, batch: pd.DataFrame, now: datetime) -> pd.DataFrame:
        """
        Coerce column types and default missing timestamps.

        Non-numeric values become NaN so they are rejected as invalid values
        rather than failing the batch. Timestamps are parsed per value, so a
        batch may mix ISO 8601 precisions and offsets.
        """
        prepared = batch.copy()
        # Ids are case-insensitive; every keyed lookup downstream uses the lowercase form
        prepared["sensor_id"] = prepared["sensor_id"].astype(str).str.lower()
        prepared["value"] = pd.to_numeric(prepared["value"], errors="coerce").astype(float)

        if "recorded_at" not in prepared.columns:
            prepared["recorded_at"] = None
        recorded_at = pd.to_datetime(prepared["recorded_at"], utc=True, format="ISO8601")
        prepared["recorded_at"] = recorded_at.fillna(pd.Timestamp(now).tz_convert("UTC"))

        return prepared

    def _drop_duplicates(self, prepared: pd.DataFrame) -> pd.DataFrame:
        """Readings are unique on (sensor_id, recorded_at); keep the first occurrence."""
        initial_count = len(prepared)
        deduplicated = prepared.drop_duplicates(subset=["sensor_id", "recorded_at"], keep="first")
        removed = initial_count - len(deduplicated)
        self.stats["duplicates_removed"] = removed

        if removed > 0:
            self.logger.info(f"   Removed {removed} duplicate readings")

        return deduplicated.reset_index(drop=True)

    def _record_outcomes(self, validated: pd.DataFrame) -> None:
        accepted = int(validated["valid"].sum())
        self.stats["records_accepted"] = accepted
        self.stats["records_rejected"] = len(validated) - accepted

        for row in validated[~validated["valid"]].itertuples(index=False):
            self.rejections[row.error] += 1
            self.logger.warning(f"Rejected reading from {row.sensor_id}: {row.error} ({row.message})")
