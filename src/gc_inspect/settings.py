"""Analysis settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AnalysisSettings(BaseModel):
    """Configurable thresholds and limits for aggregation and analysis."""

    model_config = ConfigDict(frozen=True)

    # Interval throughput (%) below which consecutive pauses form a bottleneck
    throughput_threshold: int = Field(default=90, ge=0, le=100)

    # Unidentified lines retained verbatim; the true count is always kept
    unidentified_line_limit: int = Field(default=1000, ge=0)

    # A first event within this uptime means the log starts at JVM start
    first_timestamp_threshold_ms: int = Field(default=60_000, ge=0)

    # GC share of total stopped time (%) below which non-GC safepoints dominate
    gc_stopped_ratio_threshold: int = Field(default=80, ge=0, le=100)

    max_pause_warning_ms: int = Field(default=5_000, ge=0)
