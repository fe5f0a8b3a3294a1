"""Heuristic analysis of a finished run.

Each rule inspects the run (and the JVM options) and returns at most one
finding key. Keys carry their level as the first dotted segment; message text
lives in ``MESSAGES`` only.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from gc_inspect.jvm import JvmOptions
from gc_inspect.models import (
    AnalysisLevel,
    CollectorFamily,
    EventType,
    Finding,
    JvmRun,
)
from gc_inspect.settings import AnalysisSettings
from gc_inspect.triggers import EXPLICIT_TRIGGERS, GcTrigger

Rule = Callable[[JvmRun, JvmOptions, AnalysisSettings], str | None]

# ============================================================
# MESSAGES
# ============================================================

MESSAGES: dict[str, str] = {
    # errors
    "error.gc.time.limit.exceeded": (
        "The JVM spent more than the GC time limit collecting and is about to throw "
        "OutOfMemoryError: GC overhead limit exceeded. Size the heap for the live data set."
    ),
    "error.cms.concurrent.mode.failure": (
        "CMS concurrent mode failure: the old generation filled before the concurrent "
        "collection finished, forcing a serial full collection. Start the cycle earlier "
        "(-XX:CMSInitiatingOccupancyFraction) or enlarge the old generation."
    ),
    "error.cms.concurrent.mode.interrupted": (
        "CMS concurrent mode interrupted by an explicit or diagnostic full collection."
    ),
    "error.cms.promotion.failed": (
        "CMS promotion failed: the old generation was too fragmented to take survivors, "
        "forcing a serial full collection."
    ),
    "error.g1.evacuation.failure": (
        "G1 evacuation failure (to-space exhausted): there were not enough free regions "
        "to copy live objects. Increase the heap or -XX:G1ReservePercent."
    ),
    # warnings
    "warn.g1.full.gc": (
        "G1 fell back to a full collection. Full collections defeat the pause goal; "
        "check for humongous allocations and an undersized heap."
    ),
    "warn.explicit.gc.serial": (
        "Explicit garbage collection (System.gc() or tooling) triggered a serial full "
        "collection. Disable it with -XX:+DisableExplicitGC if it is not needed."
    ),
    "warn.explicit.gc.not.concurrent": (
        "Explicit garbage collection ran as a stop-the-world CMS full collection. "
        "Use -XX:+ExplicitGCInvokesConcurrent to run it concurrently."
    ),
    "warn.metaspace.threshold": (
        "Collections were triggered by the Metaspace reaching its threshold. Set "
        "-XX:MetaspaceSize to the steady-state size to avoid them."
    ),
    "warn.heap.dump.initiated.gc": "A heap dump initiated a full collection.",
    "warn.class.histogram": "A class histogram (jmap -histo) initiated a full collection.",
    "warn.gc.locker": (
        "GC locker: collections were delayed by threads in JNI critical regions."
    ),
    "warn.parallelism.inverted": (
        "Inverted parallelism: some parallel collections took longer in wall time than "
        "in CPU time, a sign of too many GC threads or CPU starvation."
    ),
    "warn.cms.deprecated": (
        "The CMS collector is deprecated (JDK9) and removed (JDK14). Migrate to G1."
    ),
    "warn.bottlenecks": (
        "Consecutive collections pushed throughput below the threshold; see the "
        "bottleneck list."
    ),
    "warn.gc.stopped.ratio": (
        "Garbage collection accounts for a small share of total stopped time; most "
        "safepoint time is spent on non-GC operations."
    ),
    "warn.unidentified.lines": "Some log lines were not recognized and were skipped.",
    "warn.timestamp.out.of.order": (
        "Timestamps go backwards: the log may contain concatenated or rotated files."
    ),
    "warn.thread.dump": "The log contains a thread dump.",
    "warn.z.allocation.stall": (
        "Z allocation stalls: application threads waited for memory. Increase the heap "
        "or -XX:ConcGCThreads."
    ),
    "warn.shenandoah.degenerated.gc": (
        "Shenandoah degenerated collections: the concurrent cycle could not keep up and "
        "finished stop-the-world."
    ),
    "warn.shenandoah.full.gc": "Shenandoah fell back to a full stop-the-world collection.",
    "warn.pause.max": "The longest collection pause exceeds the configured maximum.",
    "warn.gc.throughput.low": "Garbage collection throughput is below the threshold.",
    "warn.print.gc.details.missing": (
        "GC details are not logged. Add -XX:+PrintGCDetails (JDK8) or -Xlog:gc* (JDK9+)."
    ),
    "warn.cms.class.unloading.disabled": (
        "CMS class unloading is disabled (-XX:-CMSClassUnloadingEnabled); classes are "
        "only unloaded by full collections."
    ),
    "warn.heap.dump.on.oom.missing": (
        "Add -XX:+HeapDumpOnOutOfMemoryError to capture the heap when memory runs out."
    ),
    # information
    "info.explicit.gc": "Explicit garbage collection (System.gc() or tooling) was requested.",
    "info.explicit.gc.disabled": (
        "Explicit garbage collection is disabled (-XX:+DisableExplicitGC)."
    ),
    "info.serial.gc": (
        "The serial collector is in use. It suits small heaps and single-CPU machines only."
    ),
    "info.perm.gen": (
        "The log shows a permanent generation (JDK7 or earlier); class metadata is limited "
        "by -XX:MaxPermSize."
    ),
    "info.application.concurrent.time": (
        "-XX:+PrintGCApplicationConcurrentTime adds noise to the log without analysis value."
    ),
    "info.heap.min.not.equal.max": (
        "Initial and maximum heap differ; resizing causes extra full collections. "
        "Consider -Xms equal to -Xmx."
    ),
    "info.print.gc.application.stopped.time.missing": (
        "Stopped time is not logged. Add -XX:+PrintGCApplicationStoppedTime (JDK8) or "
        "-Xlog:safepoint (JDK9+)."
    ),
}

# ============================================================
# RULES
# ============================================================

_SERIAL_FULL_TYPES = frozenset(
    {
        EventType.SERIAL_OLD,
        EventType.PARALLEL_SERIAL_OLD,
        EventType.G1_FULL_GC_SERIAL,
        EventType.UNIFIED_SERIAL_OLD,
    }
)
_CMS_FULL_TYPES = frozenset({EventType.CMS_SERIAL_OLD, EventType.UNIFIED_OLD})
_G1_FULL_TYPES = frozenset({EventType.G1_FULL_GC_SERIAL, EventType.UNIFIED_G1_FULL_GC})


def _when(condition: bool, key: str) -> str | None:
    return key if condition else None


def _gc_time_limit(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.has_event(EventType.GC_OVERHEAD_LIMIT), "error.gc.time.limit.exceeded")


def _concurrent_mode_failure(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        run.trigger_count(GcTrigger.CMS_CONCURRENT_MODE_FAILURE) > 0,
        "error.cms.concurrent.mode.failure",
    )


def _concurrent_mode_interrupted(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        run.trigger_count(GcTrigger.CMS_CONCURRENT_MODE_INTERRUPTED) > 0,
        "error.cms.concurrent.mode.interrupted",
    )


def _promotion_failed(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.trigger_count(GcTrigger.PROMOTION_FAILED) > 0, "error.cms.promotion.failed")


def _evacuation_failure(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(run.evacuation_failure_count > 0, "error.g1.evacuation.failure")


def _g1_full_gc(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        any(
            event.event_type in _G1_FULL_TYPES and event.trigger not in EXPLICIT_TRIGGERS
            for event in run.events
        ),
        "warn.g1.full.gc",
    )


def _explicit_gc_serial(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        any(
            event.event_type in _SERIAL_FULL_TYPES and event.trigger in EXPLICIT_TRIGGERS
            for event in run.events
        ),
        "warn.explicit.gc.serial",
    )


def _explicit_gc_not_concurrent(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    if options.explicit_gc_invokes_concurrent:
        return None
    return _when(
        any(
            event.event_type in _CMS_FULL_TYPES
            and event.family is CollectorFamily.CMS
            and event.trigger in EXPLICIT_TRIGGERS
            for event in run.events
        ),
        "warn.explicit.gc.not.concurrent",
    )


def _explicit_gc(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.trigger_count(*EXPLICIT_TRIGGERS) > 0, "info.explicit.gc")


def _explicit_gc_disabled(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(options.disable_explicit_gc is True, "info.explicit.gc.disabled")


def _metaspace_threshold(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        run.trigger_count(GcTrigger.METADATA_GC_THRESHOLD) > 0, "warn.metaspace.threshold"
    )


def _heap_dump_gc(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.trigger_count(GcTrigger.HEAP_DUMP_INITIATED_GC) > 0, "warn.heap.dump.initiated.gc"
    )


def _class_histogram(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.trigger_count(GcTrigger.CLASS_HISTOGRAM, GcTrigger.HEAP_INSPECTION_INITIATED_GC) > 0,
        "warn.class.histogram",
    )


def _gc_locker(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.has_event(EventType.GC_LOCKER)
        or run.trigger_count(GcTrigger.GCLOCKER_INITIATED_GC) > 0,
        "warn.gc.locker",
    )


def _inverted_parallelism(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(run.inverted_parallelism_count > 0, "warn.parallelism.inverted")


def _serial_gc(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.has_family(CollectorFamily.SERIAL), "info.serial.gc")


def _cms_deprecated(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.has_family(CollectorFamily.CMS), "warn.cms.deprecated")


def _bottlenecks(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(bool(run.bottlenecks), "warn.bottlenecks")


def _gc_stopped_ratio(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.gc_stopped_ratio is not None
        and run.gc_stopped_ratio < settings.gc_stopped_ratio_threshold,
        "warn.gc.stopped.ratio",
    )


def _perm_gen(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.perm_gen_seen, "info.perm.gen")


def _unidentified(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.unidentified_count > 0, "warn.unidentified.lines")


def _out_of_order(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.out_of_order_count > 0, "warn.timestamp.out.of.order")


def _thread_dump(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.has_event(EventType.THREAD_DUMP), "warn.thread.dump")


def _z_allocation_stall(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(run.has_event(EventType.Z_ALLOCATION_STALL), "warn.z.allocation.stall")


def _shenandoah_degenerated(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        run.has_event(EventType.SHENANDOAH_DEGENERATED_GC), "warn.shenandoah.degenerated.gc"
    )


def _shenandoah_full(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(run.has_event(EventType.SHENANDOAH_FULL_GC), "warn.shenandoah.full.gc")


def _max_pause(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.gc_pause_max is not None and run.gc_pause_max > settings.max_pause_warning_ms * 1000,
        "warn.pause.max",
    )


def _low_throughput(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        run.gc_throughput is not None and run.gc_throughput < settings.throughput_threshold,
        "warn.gc.throughput.low",
    )


def _concurrent_time_logged(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        options.logs_concurrent_time or run.has_event(EventType.APPLICATION_CONCURRENT_TIME),
        "info.application.concurrent.time",
    )


def _gc_details_missing(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(bool(options.raw) and not options.logs_gc_details, "warn.print.gc.details.missing")


def _heap_min_not_max(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(options.heap_min_equals_max is False, "info.heap.min.not.equal.max")


def _cms_class_unloading(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        options.cms_class_unloading_enabled is False
        and (run.has_family(CollectorFamily.CMS) or options.collector is CollectorFamily.CMS),
        "warn.cms.class.unloading.disabled",
    )


def _stopped_time_missing(
    run: JvmRun, options: JvmOptions, settings: AnalysisSettings
) -> str | None:
    return _when(
        bool(options.raw) and not options.logs_stopped_time and run.safepoint_count == 0,
        "info.print.gc.application.stopped.time.missing",
    )


def _heap_dump_on_oom(run: JvmRun, options: JvmOptions, settings: AnalysisSettings) -> str | None:
    return _when(
        bool(options.raw) and options.heap_dump_on_out_of_memory_error is not True,
        "warn.heap.dump.on.oom.missing",
    )


RULES: tuple[Rule, ...] = (
    _gc_time_limit,
    _concurrent_mode_failure,
    _concurrent_mode_interrupted,
    _promotion_failed,
    _evacuation_failure,
    _g1_full_gc,
    _explicit_gc_serial,
    _explicit_gc_not_concurrent,
    _explicit_gc,
    _explicit_gc_disabled,
    _metaspace_threshold,
    _heap_dump_gc,
    _class_histogram,
    _gc_locker,
    _inverted_parallelism,
    _serial_gc,
    _cms_deprecated,
    _bottlenecks,
    _gc_stopped_ratio,
    _perm_gen,
    _unidentified,
    _out_of_order,
    _thread_dump,
    _z_allocation_stall,
    _shenandoah_degenerated,
    _shenandoah_full,
    _max_pause,
    _low_throughput,
    _concurrent_time_logged,
    _gc_details_missing,
    _heap_min_not_max,
    _cms_class_unloading,
    _stopped_time_missing,
    _heap_dump_on_oom,
)

_LEVEL_ORDER: tuple[AnalysisLevel, ...] = (
    AnalysisLevel.ERROR,
    AnalysisLevel.WARN,
    AnalysisLevel.INFO,
)

# ============================================================
# ENGINE
# ============================================================


def make_finding(key: str) -> Finding:
    """Finding for a key; the level is validated from the key prefix."""
    return Finding(level=AnalysisLevel.from_key(key), key=key, message=MESSAGES.get(key, key))


def group_findings(findings: Iterable[Finding]) -> dict[AnalysisLevel, list[Finding]]:
    """Findings by level, error first, each level in rule order."""
    grouped: dict[AnalysisLevel, list[Finding]] = {level: [] for level in _LEVEL_ORDER}
    for finding in findings:
        grouped[finding.level].append(finding)
    return grouped


def analyze_run(
    run: JvmRun,
    options: JvmOptions | None = None,
    settings: AnalysisSettings | None = None,
    rules: tuple[Rule, ...] = RULES,
) -> list[Finding]:
    """Evaluate every rule; the result is deduplicated and ordered by level."""
    options = options or JvmOptions()
    settings = settings or AnalysisSettings()
    seen: set[str] = set()
    findings: list[Finding] = []
    for rule in rules:
        key = rule(run, options, settings)
        if key is None or key in seen:
            continue
        seen.add(key)
        findings.append(make_finding(key))
    grouped = group_findings(findings)
    return [finding for level in _LEVEL_ORDER for finding in grouped[level]]
