"""
Abstract base classes for pipeline components.

These define the interfaces that all pipeline components must implement,
ensuring consistency and enabling easy testing through dependency injection.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

import pandas as pd

from field_telemetry.config import PipelineConfig
from field_telemetry.models import Granularity


class PipelineComponent(ABC):
    """Base class for all pipeline components."""

    def __init__(self, config: PipelineConfig):
        """Initialize component with pipeline configuration."""
        self.config = config
        self.stats: Dict[str, int] = {}

    def reset_stats(self) -> None:
        """Zero the counters. Stats describe the most recent batch only."""
        self.stats = {key: 0 for key in self.stats}

    @abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """Execute the component's main functionality."""
        pass


class ValidationComponent(PipelineComponent):
    """Abstract base for per-reading ingestion validation."""

    @abstractmethod
    def execute(self, batch: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
        """
        Validate a batch of raw readings.

        Args:
            batch: Raw readings with sensor_id, value and optional recorded_at
            now: Reference time for freshness checks

        Returns:
            The batch with validation outcome columns added
        """
        pass


class AdmissionComponent(PipelineComponent):
    """Abstract base for request admission control."""

    @abstractmethod
    def execute(self, readings: pd.DataFrame, now: Optional[datetime] = None) -> pd.DataFrame:
        """
        Decide admission for each valid reading.

        Args:
            readings: Validated readings
            now: Reference time for window arithmetic

        Returns:
            Readings with an admission column added
        """
        pass


class VerificationComponent(PipelineComponent):
    """Abstract base for location verification components."""

    @abstractmethod
    def execute(self, readings: pd.DataFrame) -> pd.DataFrame:
        """
        Verify location claims carried by readings.

        Args:
            readings: Readings, some carrying lat/lng columns

        Returns:
            Readings with verification columns added
        """
        pass


class AlertComponent(PipelineComponent):
    """Abstract base for threshold alerting components."""

    @abstractmethod
    def execute(self, readings: pd.DataFrame) -> pd.DataFrame:
        """
        Evaluate accepted readings against configured thresholds.

        Args:
            readings: Accepted readings

        Returns:
            One row per alert raised
        """
        pass


class AggregationComponentBase(PipelineComponent):
    """Abstract base for period aggregation components."""

    @abstractmethod
    def execute(self, readings: pd.DataFrame, granularity: Granularity) -> pd.DataFrame:
        """
        Roll readings up into period summaries.

        Args:
            readings: Stored readings with sensor_id, value and recorded_at
            granularity: Period size

        Returns:
            One summary row per sensor and period
        """
        pass


class LoadingComponent(PipelineComponent):
    """Abstract base for storage components."""

    @abstractmethod
    def execute(self, data: pd.DataFrame) -> int:
        """
        Persist rows to the store.

        Args:
            data: Rows to store

        Returns:
            Number of rows written
        """
        pass
