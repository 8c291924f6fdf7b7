"""
Storage components for accepted readings and period rollups.

Readings are kept as a hive-partitioned Parquet dataset (partitioned by
date) keyed by (sensor_id, recorded_at). Rollups are kept as a Parquet
dataset partitioned by period type and keyed by
(sensor_id, period_type, period_start). Window queries run through DuckDB.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

import duckdb
import pandas as pd
import pyarrow as pa
import pyarrow.dataset as ds

from field_telemetry.components.base import LoadingComponent
from field_telemetry.config import PipelineConfig
from field_telemetry.utils import LoadingError, get_logger, log_stats_summary
from field_telemetry.utils.timeutils import ensure_aware

READING_SCHEMA = pa.schema([
    ("sensor_id", pa.string()),
    ("value", pa.float64()),
    ("recorded_at", pa.timestamp("us", tz="UTC")),
    ("lat", pa.float64()),
    ("lng", pa.float64()),
    ("verification_status", pa.string()),
    ("is_anomaly", pa.bool_()),
    ("date", pa.string()),
])

AGGREGATE_SCHEMA = pa.schema([
    ("sensor_id", pa.string()),
    ("period_start", pa.timestamp("us", tz="UTC")),
    ("period_end", pa.timestamp("us", tz="UTC")),
    ("avg_value", pa.float64()),
    ("min_value", pa.float64()),
    ("max_value", pa.float64()),
    ("reading_count", pa.int64()),
    ("period_type", pa.string()),
])

AGGREGATE_KEY = ["sensor_id", "period_type", "period_start"]


def _parquet_glob(path: Path) -> str:
    return (path / "**" / "*.parquet").as_posix()


def _has_parquet_files(path: Path) -> bool:
    return path.exists() and any(path.rglob("*.parquet"))


def _select_list(schema: pa.Schema, exclude: Tuple[str, ...] = ()) -> str:
    """Project timestamp columns to naive UTC so results come back without a session timezone."""
    expressions = []
    for field in schema:
        if field.name in exclude:
            continue
        if pa.types.is_timestamp(field.type):
            expressions.append(f"timezone('UTC', {field.name}) AS {field.name}")
        else:
            expressions.append(field.name)
    return ", ".join(expressions)


def _to_naive_utc(value: datetime) -> datetime:
    return ensure_aware(value).astimezone(timezone.utc).replace(tzinfo=None)


class ReadingStoreComponent(LoadingComponent):
    """Persists accepted readings and answers time-window queries over them."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize reading store.

        Args:
            config: Pipeline configuration
        """
        super().__init__(config)
        self.logger = get_logger(__name__)

        self.stats = {
            "records_received": 0,
            "records_stored": 0,
            "duplicates_skipped": 0,
            "files_written": 0
        }

        self.output_path = Path(self.config.paths.readings_store)
        self.rejections_path = Path(self.config.paths.rejections_log)
        self.compression = self.config.write.compression
        self.write_mode = self.config.write.mode

    def execute(self, readings: pd.DataFrame) -> int:
        """
        Store accepted readings, skipping keys already in the store.

        Args:
            readings: Accepted readings with sensor_id, value and recorded_at

        Returns:
            Number of readings written

        Raises:
            LoadingError: If storage fails
        """
        self.reset_stats()

        try:
            self.logger.info("Starting reading storage")
            self.stats["records_received"] = len(readings)

            if readings.empty:
                self.logger.warning("No readings to store")
                return 0

            prepared = self._prepare_readings(readings)
            prepared = self._drop_stored_keys(prepared)

            if prepared.empty:
                self.logger.info("All readings already stored")
                return 0

            batch_token = self._write_dataset(
                pa.Table.from_pandas(prepared, schema=READING_SCHEMA, preserve_index=False),
                base_dir=self.output_path,
                partition_column="date"
            )

            self.stats["records_stored"] = len(prepared)
            self.stats["files_written"] = sum(1 for _ in self.output_path.rglob(f"part-{batch_token}-*.parquet"))
            log_stats_summary(self.logger, "Reading Storage", self.stats)

            return len(prepared)

        except Exception as e:
            self.logger.error(f"Loading failed: {str(e)}")
            raise LoadingError(f"Reading storage failed: {str(e)}") from e

    def _prepare_readings(self, readings: pd.DataFrame) -> pd.DataFrame:
        """Project readings onto the stored schema, filling optional columns."""
        prepared = pd.DataFrame({
            "sensor_id": readings["sensor_id"].astype(str).str.lower(),
            "value": pd.to_numeric(readings["value"], errors="coerce").astype(float),
            "recorded_at": pd.to_datetime(readings["recorded_at"], utc=True).dt.floor("us"),
        })

        for column in ("lat", "lng"):
            prepared[column] = (
                pd.to_numeric(readings[column], errors="coerce").astype(float)
                if column in readings.columns else float("nan")
            )

        prepared["verification_status"] = (
            readings["verification_status"].astype(object)
            if "verification_status" in readings.columns else None
        )
        prepared["is_anomaly"] = (
            readings["is_anomaly"].fillna(False).astype(bool)
            if "is_anomaly" in readings.columns else False
        )
        prepared["date"] = prepared["recorded_at"].dt.date.astype(str)

        return prepared.drop_duplicates(subset=["sensor_id", "recorded_at"]).reset_index(drop=True)

    def _drop_stored_keys(self, prepared: pd.DataFrame) -> pd.DataFrame:
        """Remove rows whose (sensor_id, recorded_at) key is already stored."""
        existing = self._existing_keys(prepared["recorded_at"].min(), prepared["recorded_at"].max())
        if not existing:
            return prepared

        keys = list(zip(prepared["sensor_id"], prepared["recorded_at"]))
        mask = [key not in existing for key in keys]
        skipped = len(prepared) - sum(mask)
        self.stats["duplicates_skipped"] = skipped

        if skipped > 0:
            self.logger.info(f"   Skipped {skipped} readings already in store")

        return prepared[mask].reset_index(drop=True)

    def _existing_keys(self, start: pd.Timestamp, end: pd.Timestamp) -> Set[Tuple[str, pd.Timestamp]]:
        stored = self.query_readings(start.to_pydatetime(), end.to_pydatetime())
        return set(zip(stored["sensor_id"], stored["recorded_at"]))

    def query_readings(
        self,
        start: datetime,
        end: datetime,
        sensor_id: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Select stored readings with recorded_at in [start, end].

        Args:
            start: Inclusive window start (naive values are treated as UTC)
            end: Inclusive window end
            sensor_id: Optional sensor filter

        Returns:
            Matching readings ordered by sensor and time
        """
        columns = [f.name for f in READING_SCHEMA if f.name != "date"]
        if not _has_parquet_files(self.output_path):
            return pd.DataFrame(columns=columns)

        query = f"""
            SELECT {_select_list(READING_SCHEMA, exclude=("date",))}
            FROM read_parquet(?, hive_partitioning = true, union_by_name = true)
            WHERE timezone('UTC', recorded_at) BETWEEN ? AND ?
        """
        params = [_parquet_glob(self.output_path), _to_naive_utc(start), _to_naive_utc(end)]
        if sensor_id is not None:
            query += " AND sensor_id = ?"
            params.append(sensor_id.lower())
        query += " ORDER BY sensor_id, recorded_at"

        conn = duckdb.connect(':memory:')
        try:
            result = conn.execute(query, params).df()
        finally:
            conn.close()

        result["recorded_at"] = pd.to_datetime(result["recorded_at"], utc=True)
        return result

    def log_rejections(self, validated: pd.DataFrame) -> int:
        """
        Append rejected readings to the CSV rejection log.

        Args:
            validated: Output of the validation component

        Returns:
            Number of rejected rows written
        """
        if "valid" not in validated.columns:
            return 0

        rejected = validated.loc[~validated["valid"], ["sensor_id", "value", "recorded_at", "error", "message"]]
        if rejected.empty:
            return 0

        try:
            self.rejections_path.parent.mkdir(parents=True, exist_ok=True)
            write_header = not self.rejections_path.exists()
            rejected.to_csv(self.rejections_path, mode="a", header=write_header, index=False)
            self.logger.info(f"Logged {len(rejected)} rejected readings to {self.rejections_path}")
            return len(rejected)

        except Exception as e:
            self.logger.error(f"Failed to log rejections: {str(e)}")
            raise LoadingError(f"Rejection logging failed: {str(e)}") from e

    def _write_dataset(self, table: pa.Table, base_dir: Path, partition_column: str) -> str:
        """Write one partitioned batch and return the token in its file names."""
        base_dir.mkdir(parents=True, exist_ok=True)
        batch_token = uuid.uuid4().hex

        partitioning = ds.partitioning(
            pa.schema([(partition_column, pa.string())]),
            flavor="hive"
        )

        if self.write_mode == 'overwrite':
            existing_data_behavior = 'delete_matching'
        else:
            existing_data_behavior = 'overwrite_or_ignore'

        ds.write_dataset(
            table,
            base_dir=base_dir,
            partitioning=partitioning,
            format="parquet",
            basename_template=f"part-{batch_token}-{{i}}.parquet",
            existing_data_behavior=existing_data_behavior,
            file_options=ds.ParquetFileFormat().make_write_options(
                compression=self.compression,
                use_dictionary=True
            )
        )
        return batch_token

    def get_storage_summary(self) -> Dict[str, Any]:
        """Storage location, settings and counters."""
        return {
            "storage_path": str(self.output_path),
            "compression": self.compression,
            "write_mode": self.write_mode,
            "partitions": sorted(p.name for p in self.output_path.glob("date=*") if p.is_dir()),
            "storage_stats": self.stats.copy()
        }


class AggregateStoreComponent(LoadingComponent):
    """Persists period rollups, replacing rows with the same key."""

    def __init__(self, config: PipelineConfig):
        super().__init__(config)
        self.logger = get_logger(__name__)

        self.stats = {
            "records_received": 0,
            "records_replaced": 0,
            "records_total": 0
        }

        self.output_path = Path(self.config.paths.aggregates_store)
        self.compression = self.config.write.compression

    def execute(self, aggregates: pd.DataFrame) -> int:
        """
        Upsert rollups keyed by (sensor_id, period_type, period_start).

        Args:
            aggregates: Output of the aggregation component

        Returns:
            Number of rollup rows written

        Raises:
            LoadingError: If storage fails
        """
        self.reset_stats()

        try:
            self.stats["records_received"] = len(aggregates)

            if aggregates.empty:
                self.logger.warning("No aggregates to store")
                return 0

            incoming = self._normalize(aggregates)
            existing = self.query_aggregates()

            if not existing.empty:
                combined = pd.concat([existing, incoming], ignore_index=True)
                merged = combined.drop_duplicates(subset=AGGREGATE_KEY, keep="last")
                self.stats["records_replaced"] = len(combined) - len(merged)
            else:
                merged = incoming

            merged = merged.sort_values(AGGREGATE_KEY).reset_index(drop=True)
            self._rewrite(merged)

            self.stats["records_total"] = len(merged)
            log_stats_summary(self.logger, "Aggregate Storage", self.stats)
            return len(incoming)

        except Exception as e:
            self.logger.error(f"Aggregate storage failed: {str(e)}")
            raise LoadingError(f"Aggregate storage failed: {str(e)}") from e

    def query_aggregates(
        self,
        sensor_id: Optional[str] = None,
        period_type: Optional[str] = None
    ) -> pd.DataFrame:
        """Read stored rollups, optionally filtered by sensor and period type."""
        columns = [f.name for f in AGGREGATE_SCHEMA]
        if not _has_parquet_files(self.output_path):
            return pd.DataFrame(columns=columns)

        query = f"""
            SELECT {_select_list(AGGREGATE_SCHEMA)}
            FROM read_parquet(?, hive_partitioning = true)
            WHERE 1 = 1
        """
        params = [_parquet_glob(self.output_path)]
        if sensor_id is not None:
            query += " AND sensor_id = ?"
            params.append(sensor_id.lower())
        if period_type is not None:
            query += " AND period_type = ?"
            params.append(period_type)
        query += " ORDER BY sensor_id, period_type, period_start"

        conn = duckdb.connect(':memory:')
        try:
            result = conn.execute(query, params).df()
        finally:
            conn.close()

        return self._normalize(result)

    @staticmethod
    def _normalize(aggregates: pd.DataFrame) -> pd.DataFrame:
        normalized = aggregates[[f.name for f in AGGREGATE_SCHEMA]].copy()
        normalized["sensor_id"] = normalized["sensor_id"].astype(str)
        normalized["period_type"] = normalized["period_type"].astype(str)
        for column in ("period_start", "period_end"):
            normalized[column] = pd.to_datetime(normalized[column], utc=True).dt.floor("us")
        normalized["reading_count"] = normalized["reading_count"].astype("int64")
        return normalized

    def _rewrite(self, merged: pd.DataFrame) -> None:
        self.output_path.mkdir(parents=True, exist_ok=True)

        ds.write_dataset(
            pa.Table.from_pandas(merged, schema=AGGREGATE_SCHEMA, preserve_index=False),
            base_dir=self.output_path,
            partitioning=ds.partitioning(pa.schema([("period_type", pa.string())]), flavor="hive"),
            format="parquet",
            basename_template=f"part-{uuid.uuid4().hex}-{{i}}.parquet",
            existing_data_behavior="delete_matching",
            file_options=ds.ParquetFileFormat().make_write_options(
                compression=self.compression,
                use_dictionary=True
            )
        )
