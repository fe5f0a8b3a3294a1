"""Batch pipeline: preprocess, identify, aggregate, analyze."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from gc_inspect.aggregate import RunAggregator
from gc_inspect.analysis import analyze_run, group_findings
from gc_inspect.catalogue import parse_line
from gc_inspect.jvm import JvmOptions, parse_jvm_options
from gc_inspect.models import AnalysisLevel, Finding, JvmRun
from gc_inspect.preprocess import Preprocessor
from gc_inspect.settings import AnalysisSettings

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    run: JvmRun
    findings: tuple[Finding, ...] = ()
    options: JvmOptions = JvmOptions()

    @property
    def grouped(self) -> dict[AnalysisLevel, list[Finding]]:
        return group_findings(self.findings)

    def has_level(self, level: AnalysisLevel) -> bool:
        return any(finding.level is level for finding in self.findings)


class GcManager:
    """Runs one log through every stage.

    Args:
        settings: Thresholds and limits; defaults apply when omitted.
    """

    def __init__(self, settings: AnalysisSettings | None = None) -> None:
        self.settings = settings or AnalysisSettings()

    def build_run(self, lines: Iterable[str], jvm_start: datetime | None = None) -> JvmRun:
        """Aggregate raw lines into a run without analyzing it."""
        aggregator = RunAggregator(self.settings)
        for canonical in Preprocessor().process(lines):
            if canonical.unidentified:
                aggregator.add_unidentified(canonical.text)
                continue
            event = parse_line(canonical.text, canonical.family, jvm_start)
            if event is None:
                aggregator.add_unidentified(canonical.text)
            else:
                aggregator.add_event(event)
        run = aggregator.finish()
        logger.debug(
            "Identified %d events, %d unidentified lines", run.event_count, run.unidentified_count
        )
        return run

    def analyze_lines(
        self,
        lines: Iterable[str],
        *,
        jvm_start: datetime | None = None,
        jvm_options: str | None = None,
    ) -> AnalysisResult:
        """Analyze raw lines.

        Caller supplied JVM options take precedence over the log's
        ``CommandLine flags:`` header.
        """
        run = self.build_run(lines, jvm_start)
        options = parse_jvm_options(jvm_options or run.jvm_options)
        findings = analyze_run(run, options, self.settings)
        return AnalysisResult(run=run, findings=tuple(findings), options=options)

    def analyze_file(
        self,
        path: Path,
        *,
        jvm_start: datetime | None = None,
        jvm_options: str | None = None,
    ) -> AnalysisResult:
        logger.info("Analyzing %s", path)
        with path.open(encoding="utf-8", errors="replace") as f:
            return self.analyze_lines(f, jvm_start=jvm_start, jvm_options=jvm_options)


def analyze_lines(
    lines: Iterable[str],
    *,
    jvm_start: datetime | None = None,
    jvm_options: str | None = None,
    settings: AnalysisSettings | None = None,
) -> AnalysisResult:
    return GcManager(settings).analyze_lines(lines, jvm_start=jvm_start, jvm_options=jvm_options)


def analyze_file(
    path: Path,
    *,
    jvm_start: datetime | None = None,
    jvm_options: str | None = None,
    settings: AnalysisSettings | None = None,
) -> AnalysisResult:
    return GcManager(settings).analyze_file(path, jvm_start=jvm_start, jvm_options=jvm_options)
