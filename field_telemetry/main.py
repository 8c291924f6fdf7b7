"""
Main pipeline orchestrator for field telemetry processing.

This module coordinates the execution of all pipeline components:
validation -> rate limiting -> geofence verification -> alerting -> storage,
and the periodic aggregation job over stored readings.
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from field_telemetry.components import (
    AggregateStoreComponent,
    AggregationComponent,
    AlertingComponent,
    GeofenceVerificationComponent,
    IngestionValidationComponent,
    RateLimitingComponent,
    ReadingStoreComponent
)
from field_telemetry.config import PipelineConfig
from field_telemetry.models import Granularity, IngestionBatchResult
from field_telemetry.utils import PipelineError, get_logger, setup_logging
from field_telemetry.utils.timeutils import resolve_now


class TelemetryPipeline:
    """Main pipeline orchestrator that coordinates all components."""

    def __init__(self, config: PipelineConfig):
        """
        Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration loaded from YAML
        """
        self.config = config
        self.logger = get_logger(__name__)

        # Components will be injected (dependency injection pattern)
        self.validation: Optional[IngestionValidationComponent] = None
        self.rate_limiting: Optional[RateLimitingComponent] = None
        self.verification: Optional[GeofenceVerificationComponent] = None
        self.alerting: Optional[AlertingComponent] = None
        self.reading_store: Optional[ReadingStoreComponent] = None
        self.aggregation: Optional[AggregationComponent] = None
        self.aggregate_store: Optional[AggregateStoreComponent] = None

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "TelemetryPipeline":
        """Build a pipeline with the default component set."""
        pipeline = cls(config)
        pipeline.set_components(
            validation=IngestionValidationComponent(config),
            rate_limiting=RateLimitingComponent(config),
            verification=GeofenceVerificationComponent(config),
            alerting=AlertingComponent(config),
            reading_store=ReadingStoreComponent(config),
            aggregation=AggregationComponent(config),
            aggregate_store=AggregateStoreComponent(config)
        )
        return pipeline

    def set_components(
        self,
        validation: IngestionValidationComponent,
        rate_limiting: RateLimitingComponent,
        verification: GeofenceVerificationComponent,
        alerting: AlertingComponent,
        reading_store: ReadingStoreComponent,
        aggregation: AggregationComponent,
        aggregate_store: AggregateStoreComponent
    ):
        """Set pipeline components (dependency injection)."""
        self.validation = validation
        self.rate_limiting = rate_limiting
        self.verification = verification
        self.alerting = alerting
        self.reading_store = reading_store
        self.aggregation = aggregation
        self.aggregate_store = aggregate_store

    def _require_components(self) -> None:
        components = [
            self.validation, self.rate_limiting, self.verification, self.alerting,
            self.reading_store, self.aggregation, self.aggregate_store
        ]
        if not all(components):
            raise PipelineError("All pipeline components must be set before execution")

    def ingest(self, batch: pd.DataFrame, now: Optional[datetime] = None) -> IngestionBatchResult:
        """
        Run one submitted batch through validation, admission, verification and storage.

        Args:
            batch: Raw readings (sensor_id, value, optional recorded_at, lat, lng)
            now: Reference time for the whole batch

        Returns:
            Counts of accepted, rejected and rate-limited readings
        """
        self._require_components()
        now = resolve_now(now)
        self.logger.info(f"Starting ingestion for pipeline: {self.config.pipeline.name}")

        validated = self.validation.execute(batch, now=now)
        self.reading_store.log_rejections(validated)

        admitted = self.rate_limiting.execute(validated, now=now)
        accepted = admitted[admitted["allowed"]].reset_index(drop=True)

        verified = self.verification.execute(accepted)
        alerts = self.alerting.execute(verified)
        flagged = self.alerting.flag(verified)

        stored = self.reading_store.execute(flagged)

        rejected = validated.loc[~validated["valid"], "error"].value_counts().to_dict()
        rate_limited = int((validated["valid"] & ~admitted["allowed"]).sum())
        geofence_counts = (
            verified["verification_status"].value_counts().to_dict() if not verified.empty else {}
        )

        result = IngestionBatchResult(
            received=len(batch),
            accepted=stored,
            duplicates=self.validation.stats["duplicates_removed"] + self.reading_store.stats["duplicates_skipped"],
            rejected={str(k): int(v) for k, v in rejected.items()},
            rate_limited=rate_limited,
            geofence={str(k): int(v) for k, v in geofence_counts.items()},
            alerts=len(alerts),
            anomalies=int(flagged["is_anomaly"].sum()) if not flagged.empty else 0
        )

        self.logger.info(
            f"Batch complete: {result.accepted} accepted, {sum(result.rejected.values())} rejected, "
            f"{result.rate_limited} rate limited"
        )
        return result

    def run_aggregation(
        self,
        start: datetime,
        end: datetime,
        granularity: Union[Granularity, str, None] = None
    ) -> List[pd.DataFrame]:
        """
        Aggregate stored readings in [start, end] and store the rollups.

        Args:
            start: Window start
            end: Window end
            granularity: A single granularity, or None for every configured one

        Returns:
            One rollup frame per granularity processed
        """
        self._require_components()

        readings = self.reading_store.query_readings(start, end)
        self.logger.info(f"Aggregating {len(readings)} readings between {start} and {end}")

        granularities = (
            [Granularity(granularity)] if granularity is not None
            else list(self.config.aggregation.granularities)
        )

        rollups = []
        for g in granularities:
            aggregates = self.aggregation.execute(readings, g)
            self.aggregate_store.execute(aggregates)
            rollups.append(aggregates)

        return rollups


def _read_batch(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Field telemetry ingestion and aggregation pipeline")
    parser.add_argument("--config", type=Path, default=Path("config/default.yaml"), help="YAML configuration file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (overrides the logging section of the config)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Validate and store a batch of readings")
    ingest.add_argument("batch", type=Path, help="CSV or Parquet file of readings")

    aggregate = subparsers.add_parser("aggregate", help="Roll stored readings up into period summaries")
    aggregate.add_argument("--start", type=datetime.fromisoformat, required=True, help="Window start (ISO 8601)")
    aggregate.add_argument("--end", type=datetime.fromisoformat, required=True, help="Window end (ISO 8601)")
    aggregate.add_argument("--granularity", choices=[g.value for g in Granularity], default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for pipeline execution."""
    args = build_parser().parse_args(argv)
    # Logs go to stderr; stdout carries the command result
    setup_logging(args.log_level or "INFO", stream=sys.stderr)
    logger = get_logger(__name__)

    try:
        config = PipelineConfig.from_yaml(args.config)
        setup_logging(
            args.log_level or config.logging.level,
            log_file=config.logging.log_file,
            include_timestamp=config.logging.include_timestamp,
            stream=sys.stderr
        )
        pipeline = TelemetryPipeline.from_config(config)

        if args.command == "ingest":
            result = pipeline.ingest(_read_batch(args.batch))
            print(result.model_dump_json(indent=2))
        else:
            rollups = pipeline.run_aggregation(args.start, args.end, args.granularity)
            for rollup in rollups:
                print(rollup.to_string(index=False) if not rollup.empty else "No readings in window")

        return 0

    except PipelineError as e:
        logger.error(f"Pipeline execution failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
