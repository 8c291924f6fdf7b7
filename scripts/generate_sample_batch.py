#!/usr/bin/env python3
"""
Sample batch generator for the field telemetry pipeline.

- Writes CSV batches of readings for the sensors configured in config/default.yaml,
  with location claims scattered around each sensor's geofence.
- Optionally injects edge cases: non-finite values, future and stale timestamps,
  malformed sensor ids, duplicate keys and threshold-crossing values.

Usage:
  python scripts/generate_sample_batch.py \
    --batches 3 \
    --rows-per-batch 40 \
    --include-edge-cases

Feed the output to the pipeline with:
  python -m field_telemetry ingest data/batches/batch_001.csv
"""

import argparse
import math
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd

from field_telemetry.config import PipelineConfig
from field_telemetry.models import CircleGeofence, Geofence, Point

METERS_PER_DEGREE = 111_195.0


def location_near(fence: Optional[Geofence], rng: np.random.Generator) -> Point:
    """Pick a location claim in or around a fence: mostly inside, some in the band, some outside."""
    if fence is None:
        return Point(lat=float(rng.uniform(-60, 60)), lng=float(rng.uniform(-180, 180)))

    if isinstance(fence, CircleGeofence):
        outer = fence.radius_meters + fence.tolerance_meters
        distance = float(rng.choice([
            rng.uniform(0, fence.radius_meters),
            rng.uniform(fence.radius_meters, outer),
            rng.uniform(outer, outer * 3 + 1),
        ], p=[0.7, 0.15, 0.15]))
        bearing = float(rng.uniform(0, 2 * math.pi))
        dlat = distance * math.cos(bearing) / METERS_PER_DEGREE
        dlng = distance * math.sin(bearing) / (METERS_PER_DEGREE * math.cos(math.radians(fence.center_lat)))
        return Point(lat=fence.center_lat + dlat, lng=fence.center_lng + dlng)

    lats = [v.lat for v in fence.vertices]
    lngs = [v.lng for v in fence.vertices]
    # Bounding box padded by half its size, so some claims land outside
    pad_lat = (max(lats) - min(lats)) / 2
    pad_lng = (max(lngs) - min(lngs)) / 2
    return Point(
        lat=float(rng.uniform(min(lats) - pad_lat, max(lats) + pad_lat)),
        lng=float(rng.uniform(min(lngs) - pad_lng, max(lngs) + pad_lng))
    )


def synth_batch(
    config: PipelineConfig,
    rows: int,
    now: datetime,
    seed: int = 42,
    include_edge_cases: bool = False
) -> pd.DataFrame:
    """Create a batch of readings for the configured sensors."""
    rng = np.random.default_rng(seed)
    sensors: List[str] = sorted(set(config.geofences) | set(config.thresholds)) or [str(uuid.uuid4())]

    records = []
    for _ in range(rows):
        sensor_id = str(rng.choice(sensors))
        thresholds = config.get_thresholds(sensor_id)
        low = thresholds.warning_min_value if thresholds.warning_min_value is not None else 15.0
        high = thresholds.warning_max_value if thresholds.warning_max_value is not None else 35.0

        location = location_near(config.get_geofence(sensor_id), rng)
        records.append({
            "sensor_id": sensor_id,
            "value": round(float(rng.normal(loc=(low + high) / 2, scale=(high - low) / 6)), 2),
            "recorded_at": now - timedelta(seconds=int(rng.integers(0, 3600))),
            "lat": location.lat,
            "lng": location.lng,
        })

    df = pd.DataFrame(records)

    if include_edge_cases and rows >= 10:
        edge = rng.choice(df.index, size=6, replace=False)
        df.loc[edge[0], "value"] = float("nan")
        df.loc[edge[1], "recorded_at"] = now + timedelta(minutes=5)
        df.loc[edge[2], "recorded_at"] = now - timedelta(hours=30)
        df.loc[edge[3], "sensor_id"] = "sensor-" + str(edge[3])
        df.loc[edge[4], "value"] = 1000.0
        df.loc[edge[5], "value"] = -1000.0
        # Duplicate (sensor_id, recorded_at) keys
        df = pd.concat([df, df.iloc[:2]], ignore_index=True)

    df["recorded_at"] = pd.to_datetime(df["recorded_at"], utc=True).map(lambda ts: ts.isoformat())
    return df.head(config.ingestion.max_batch_size)


def write_batch(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    print(f"Wrote {len(df)} readings to {path}")


def main():
    parser = argparse.ArgumentParser(description="Generate sample reading batches with edge cases")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--batches", type=int, default=3, help="Number of batch files")
    parser.add_argument("--rows-per-batch", type=int, default=40, help="Readings per batch")
    parser.add_argument("--output-dir", type=Path, default=None, help="Where to write batch CSVs")
    parser.add_argument("--include-edge-cases", action="store_true", help="Inject invalid and duplicate readings")
    args = parser.parse_args()

    # Resolve project root as repo root (parent of scripts/)
    project_root = Path(__file__).resolve().parent.parent
    config = PipelineConfig.from_yaml(args.config or project_root / "config" / "default.yaml")
    output_dir = args.output_dir or project_root / "data" / "batches"

    now = datetime.now(timezone.utc)
    for i in range(args.batches):
        df = synth_batch(config, args.rows_per_batch, now, seed=42 + i, include_edge_cases=args.include_edge_cases)
        write_batch(df, output_dir / f"batch_{i + 1:03d}.csv")

    print("\nAll sample batches generated in:", output_dir)


if __name__ == "__main__":
    main()
