"""Single-pass aggregation of events into a ``JvmRun``."""

from __future__ import annotations

import logging
import re

from gc_inspect.models import (
    BANNER_FAMILIES,
    Bottleneck,
    CollectorFamily,
    EventKind,
    EventType,
    JvmRun,
    LogEvent,
    Region,
    RegionMaxima,
    SafepointSummary,
)
from gc_inspect.settings import AnalysisSettings
from gc_inspect.triggers import GcTrigger, SafepointTrigger
from gc_inspect.util import calc_percent, calc_ratio, calc_throughput, parse_size_to_kb

logger = logging.getLogger(__name__)


class _Maxima:
    """Running maxima for one region; None until a carrying event is seen."""

    def __init__(self) -> None:
        self.space: int | None = None
        self.occupancy: int | None = None
        self.after_gc: int | None = None

    @staticmethod
    def _max(current: int | None, value: int | None) -> int | None:
        if value is None:
            return current
        return value if current is None else max(current, value)

    def update(self, begin: int | None, end: int | None, space: int | None) -> None:
        self.space = self._max(self.space, space)
        self.occupancy = self._max(self.occupancy, begin)
        self.after_gc = self._max(self.after_gc, end)

    def freeze(self) -> RegionMaxima:
        return RegionMaxima(space=self.space, occupancy=self.occupancy, after_gc=self.after_gc)


class _SafepointTally:
    def __init__(self) -> None:
        self.count = 0
        self.pause_total = 0
        self.pause_max = 0

    def add(self, duration: int) -> None:
        self.count += 1
        self.pause_total += duration
        self.pause_max = max(self.pause_max, duration)


class RunAggregator:
    """Fold events into run statistics in arrival order.

    Call ``add_event`` / ``add_unidentified`` for every line, then ``finish``
    once to obtain the immutable ``JvmRun``.
    """

    # OpenJDK 64-Bit Server VM (25.252-b09) for linux-amd64 JRE (1.8.0_252-b09), built on ...
    LEGACY_VERSION: re.Pattern[str] = re.compile(r"JRE \((?P<version>[^)]+)\)")
    UNIFIED_VERSION: re.Pattern[str] = re.compile(r"\] Version: (?P<version>\S+)")
    LEGACY_MEMORY: re.Pattern[str] = re.compile(r"physical (?P<physical>\d{1,19})k")
    UNIFIED_MEMORY: re.Pattern[str] = re.compile(r"\] Memory: (?P<memory>\d{1,19}[KMG])")
    COMMAND_LINE: re.Pattern[str] = re.compile(r"CommandLine flags: (?P<options>.+)")

    def __init__(self, settings: AnalysisSettings | None = None) -> None:
        self.settings = settings or AnalysisSettings()
        self._events: list[LogEvent] = []
        self._type_counts: dict[EventType, int] = {}
        self._kind_counts: dict[EventKind, int] = {kind: 0 for kind in EventKind}

        self._pause_total = 0
        self._pause_max_event: LogEvent | None = None
        self._stopped_total = 0
        self._stopped_max: int | None = None
        self._safepoints: dict[SafepointTrigger, _SafepointTally] = {}

        self._first_event: LogEvent | None = None
        self._last_event: LogEvent | None = None
        self._end_timestamp: int | None = None

        self._parallel_count = 0
        self._inverted_count = 0
        self._worst_inverted: LogEvent | None = None

        self._blocking_maxima: dict[Region, _Maxima] = {}
        self._non_blocking_maxima: dict[Region, _Maxima] = {}

        self._families: list[CollectorFamily] = []
        self._trigger_counts: dict[GcTrigger, int] = {}
        self._bottlenecks: list[Bottleneck] = []
        self._prior_blocking: LogEvent | None = None
        self._out_of_order_count = 0
        self._first_out_of_order: LogEvent | None = None
        self._evacuation_failures = 0
        self._perm_gen_seen = False

        self._jdk_version: str | None = None
        self._physical_memory: int | None = None
        self._jvm_options: str | None = None

        self._unidentified: list[str] = []
        self._unidentified_count = 0

    # ============================================================
    # INPUT
    # ============================================================

    def add_unidentified(self, line: str) -> None:
        self._unidentified_count += 1
        if len(self._unidentified) < self.settings.unidentified_line_limit:
            self._unidentified.append(line)

    def add_event(self, event: LogEvent) -> None:
        self._type_counts[event.event_type] = self._type_counts.get(event.event_type, 0) + 1
        # Identified but not reportable: counted, never stored
        if not event.traits.reportable:
            return
        self._events.append(event)
        kind = event.kind
        self._kind_counts[kind] += 1

        if event.event_type in BANNER_FAMILIES:
            self._add_family(BANNER_FAMILIES[event.event_type])
        elif kind is not EventKind.INFO:
            self._add_family(event.family)

        if event.trigger is not None:
            self._trigger_counts[event.trigger] = self._trigger_counts.get(event.trigger, 0) + 1
        if (
            event.evacuation_failed
            or event.to_space_exhausted
            or event.event_type is EventType.UNIFIED_G1_TO_SPACE_EXHAUSTED
        ):
            self._evacuation_failures += 1
        if "Perm" in event.log_entry and event.traits.perm:
            self._perm_gen_seen = True

        self._track_regions(event)
        self._track_headers(event)

        if kind is EventKind.INFO:
            return
        self._track_timeline(event)
        if kind is EventKind.BLOCKING:
            self._track_pause(event)
        elif kind is EventKind.SAFEPOINT:
            self._track_safepoint(event)

    def _add_family(self, family: CollectorFamily) -> None:
        if family is not CollectorFamily.UNKNOWN and family not in self._families:
            self._families.append(family)

    def _track_regions(self, event: LogEvent) -> None:
        maxima = self._blocking_maxima if event.is_blocking else self._non_blocking_maxima
        for region in event.traits.regions:
            begin, end, space = event.region_values(region)
            if begin is None and end is None and space is None:
                continue
            maxima.setdefault(region, _Maxima()).update(begin, end, space)

    def _track_headers(self, event: LogEvent) -> None:
        entry = event.log_entry
        if event.event_type is EventType.HEADER_VERSION:
            if match := self.LEGACY_VERSION.search(entry):
                self._jdk_version = match.group("version")
        elif event.event_type is EventType.HEADER_MEMORY:
            if match := self.LEGACY_MEMORY.search(entry):
                self._physical_memory = int(match.group("physical"))
        elif event.event_type is EventType.HEADER_COMMAND_LINE_FLAGS:
            if match := self.COMMAND_LINE.search(entry):
                self._jvm_options = match.group("options").strip()
        elif event.event_type is EventType.UNIFIED_HEADER:
            if "Version: " in entry and (match := self.UNIFIED_VERSION.search(entry)):
                self._jdk_version = match.group("version")
            elif "Memory: " in entry and (match := self.UNIFIED_MEMORY.search(entry)):
                self._physical_memory = parse_size_to_kb(match.group("memory"))

    def _track_timeline(self, event: LogEvent) -> None:
        if event.timestamp is None:
            return
        if self._first_event is None:
            self._first_event = event
        self._last_event = event
        end = event.end_timestamp
        if end is not None and (self._end_timestamp is None or end > self._end_timestamp):
            self._end_timestamp = end

    def _track_pause(self, event: LogEvent) -> None:
        duration = event.duration or 0
        self._pause_total += duration
        if event.duration is not None and (
            self._pause_max_event is None
            or event.duration > (self._pause_max_event.duration or 0)
        ):
            self._pause_max_event = event

        if event.traits.parallel and event.parallelism is not None:
            self._parallel_count += 1
            if event.inverted_parallelism:
                self._inverted_count += 1
                worst = self._worst_inverted
                if worst is None or event.parallelism < (worst.parallelism or 0):
                    self._worst_inverted = event

        if event.timestamp is None:
            return
        prior = self._prior_blocking
        if prior is not None and prior.timestamp is not None:
            if event.timestamp < prior.timestamp:
                self._out_of_order_count += 1
                if self._first_out_of_order is None:
                    self._first_out_of_order = event
                    logger.debug("Timestamp out of order: %s", event.log_entry)
            else:
                self._check_bottleneck(prior, event)
        self._prior_blocking = event

    def _check_bottleneck(self, prior: LogEvent, event: LogEvent) -> None:
        end = event.end_timestamp
        if end is None or prior.timestamp is None:
            return
        interval_micros = (end - prior.timestamp) * 1000
        pause = (prior.duration or 0) + (event.duration or 0)
        throughput = calc_throughput(pause, interval_micros)
        if throughput is not None and throughput < self.settings.throughput_threshold:
            self._bottlenecks.append(Bottleneck(prior=prior, event=event, throughput=throughput))

    def _track_safepoint(self, event: LogEvent) -> None:
        duration = event.duration or 0
        self._stopped_total += duration
        if event.duration is not None:
            self._stopped_max = max(self._stopped_max or 0, event.duration)
        if event.safepoint_trigger is not None:
            self._safepoints.setdefault(event.safepoint_trigger, _SafepointTally()).add(duration)

    # ============================================================
    # OUTPUT
    # ============================================================

    def finish(self) -> JvmRun:
        start, end = self._run_window()
        elapsed_micros = (end - start) * 1000 if start is not None and end is not None else 0

        gc_throughput = calc_throughput(self._pause_total, elapsed_micros)
        stopped_throughput = None
        gc_stopped_ratio = None
        if self._kind_counts[EventKind.SAFEPOINT]:
            stopped_throughput = calc_throughput(self._stopped_total, elapsed_micros)
            gc_stopped_ratio = calc_percent(self._pause_total, self._stopped_total)

        blocking_maxima = {region: m.freeze() for region, m in self._blocking_maxima.items()}
        new_ratio = None
        young = blocking_maxima.get(Region.YOUNG)
        old = blocking_maxima.get(Region.OLD)
        if young is not None and old is not None and young.space and old.space is not None:
            new_ratio = calc_ratio(old.space, young.space)

        max_event = self._pause_max_event
        return JvmRun(
            events=tuple(self._events),
            event_type_counts=dict(self._type_counts),
            blocking_count=self._kind_counts[EventKind.BLOCKING],
            concurrent_count=self._kind_counts[EventKind.CONCURRENT],
            safepoint_count=self._kind_counts[EventKind.SAFEPOINT],
            gc_pause_total=self._pause_total,
            gc_pause_max=max_event.duration if max_event is not None else None,
            gc_pause_max_event=max_event,
            stopped_total=self._stopped_total,
            stopped_max=self._stopped_max,
            safepoint_summaries=tuple(
                SafepointSummary(
                    trigger=trigger,
                    count=tally.count,
                    pause_total=tally.pause_total,
                    pause_max=tally.pause_max,
                )
                for trigger, tally in sorted(
                    self._safepoints.items(), key=lambda item: item[1].pause_total, reverse=True
                )
            ),
            first_event=self._first_event,
            last_event=self._last_event,
            start_timestamp=start,
            end_timestamp=end,
            gc_throughput=gc_throughput,
            stopped_throughput=stopped_throughput,
            gc_stopped_ratio=gc_stopped_ratio,
            parallel_count=self._parallel_count,
            inverted_parallelism_count=self._inverted_count,
            worst_inverted_parallelism_event=self._worst_inverted,
            blocking_maxima=blocking_maxima,
            non_blocking_maxima={
                region: m.freeze() for region, m in self._non_blocking_maxima.items()
            },
            new_ratio=new_ratio,
            collector_families=tuple(self._families),
            trigger_counts=dict(self._trigger_counts),
            bottlenecks=tuple(self._bottlenecks),
            throughput_threshold=self.settings.throughput_threshold,
            out_of_order_count=self._out_of_order_count,
            first_out_of_order_event=self._first_out_of_order,
            evacuation_failure_count=self._evacuation_failures,
            perm_gen_seen=self._perm_gen_seen,
            jdk_version=self._jdk_version,
            physical_memory_kb=self._physical_memory,
            jvm_options=self._jvm_options,
            unidentified_lines=tuple(self._unidentified),
            unidentified_count=self._unidentified_count,
        )

    def _run_window(self) -> tuple[int | None, int | None]:
        """JVM uptime span covered by the log.

        A log whose first event falls within the first minute is taken to
        start with the JVM; otherwise (rotated logs) it starts at that event.
        """
        first = self._first_event
        if first is None or first.timestamp is None:
            return None, None
        start = first.timestamp
        if start <= self.settings.first_timestamp_threshold_ms:
            start = 0
        return start, self._end_timestamp
