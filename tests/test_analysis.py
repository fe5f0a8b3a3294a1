import pytest

from gc_inspect.analysis import MESSAGES, RULES, analyze_run, group_findings, make_finding
from gc_inspect.errors import InvalidAnalysisLevelError
from gc_inspect.jvm import parse_jvm_options
from gc_inspect.manager import analyze_lines
from gc_inspect.models import (
    AnalysisLevel,
    Bottleneck,
    CollectorFamily,
    EventType,
    JvmRun,
    LogEvent,
)
from gc_inspect.settings import AnalysisSettings
from gc_inspect.triggers import GcTrigger


def _keys(run, options=None, settings=None):
    return [finding.key for finding in analyze_run(run, options, settings)]


def _event(event_type, **fields):
    return LogEvent(event_type=event_type, log_entry=event_type.value, **fields)


def test_every_message_key_has_a_valid_level():
    for key in MESSAGES:
        assert make_finding(key).message == MESSAGES[key]


def test_invalid_level_is_rejected():
    with pytest.raises(InvalidAnalysisLevelError):
        make_finding("fatal.something")


def test_quiet_run_has_no_findings():
    assert analyze_run(JvmRun()) == []


def test_findings_are_deduplicated_and_ordered_by_level():
    rules = (
        lambda run, options, settings: "info.serial.gc",
        lambda run, options, settings: "error.gc.time.limit.exceeded",
        lambda run, options, settings: "info.serial.gc",
        lambda run, options, settings: None,
        lambda run, options, settings: "warn.thread.dump",
    )
    findings = analyze_run(JvmRun(), rules=rules)
    assert [finding.key for finding in findings] == [
        "error.gc.time.limit.exceeded",
        "warn.thread.dump",
        "info.serial.gc",
    ]
    assert [finding.level for finding in findings] == [
        AnalysisLevel.ERROR,
        AnalysisLevel.WARN,
        AnalysisLevel.INFO,
    ]


def test_group_findings_keeps_every_level():
    grouped = group_findings([make_finding("warn.thread.dump")])
    assert list(grouped) == [AnalysisLevel.ERROR, AnalysisLevel.WARN, AnalysisLevel.INFO]
    assert grouped[AnalysisLevel.ERROR] == []


def test_rules_are_unique():
    assert len(RULES) == len(set(RULES))


@pytest.mark.parametrize(
    ("trigger", "key"),
    [
        (GcTrigger.CMS_CONCURRENT_MODE_FAILURE, "error.cms.concurrent.mode.failure"),
        (GcTrigger.CMS_CONCURRENT_MODE_INTERRUPTED, "error.cms.concurrent.mode.interrupted"),
        (GcTrigger.PROMOTION_FAILED, "error.cms.promotion.failed"),
        (GcTrigger.METADATA_GC_THRESHOLD, "warn.metaspace.threshold"),
        (GcTrigger.HEAP_DUMP_INITIATED_GC, "warn.heap.dump.initiated.gc"),
        (GcTrigger.CLASS_HISTOGRAM, "warn.class.histogram"),
        (GcTrigger.GCLOCKER_INITIATED_GC, "warn.gc.locker"),
        (GcTrigger.SYSTEM_GC, "info.explicit.gc"),
    ],
)
def test_trigger_rules(trigger, key):
    assert key in _keys(JvmRun(trigger_counts={trigger: 1}))


@pytest.mark.parametrize(
    ("event_type", "key"),
    [
        (EventType.GC_OVERHEAD_LIMIT, "error.gc.time.limit.exceeded"),
        (EventType.GC_LOCKER, "warn.gc.locker"),
        (EventType.THREAD_DUMP, "warn.thread.dump"),
        (EventType.Z_ALLOCATION_STALL, "warn.z.allocation.stall"),
        (EventType.SHENANDOAH_DEGENERATED_GC, "warn.shenandoah.degenerated.gc"),
        (EventType.SHENANDOAH_FULL_GC, "warn.shenandoah.full.gc"),
        (EventType.APPLICATION_CONCURRENT_TIME, "info.application.concurrent.time"),
    ],
)
def test_event_type_rules(event_type, key):
    assert key in _keys(JvmRun(event_type_counts={event_type: 1}))


def test_evacuation_failure():
    assert "error.g1.evacuation.failure" in _keys(JvmRun(evacuation_failure_count=1))


def test_g1_full_gc_ignores_explicit_collections():
    explicit = _event(EventType.UNIFIED_G1_FULL_GC, trigger=GcTrigger.SYSTEM_GC)
    assert "warn.g1.full.gc" not in _keys(JvmRun(events=(explicit,)))
    forced = _event(EventType.UNIFIED_G1_FULL_GC, trigger=GcTrigger.G1_EVACUATION_PAUSE)
    assert "warn.g1.full.gc" in _keys(JvmRun(events=(forced,)))


def test_explicit_serial_full_gc():
    event = _event(EventType.PARALLEL_SERIAL_OLD, trigger=GcTrigger.SYSTEM_GC)
    assert "warn.explicit.gc.serial" in _keys(JvmRun(events=(event,)))


def test_explicit_cms_full_gc_unless_concurrent():
    event = _event(
        EventType.CMS_SERIAL_OLD, trigger=GcTrigger.SYSTEM_GC, family=CollectorFamily.CMS
    )
    run = JvmRun(events=(event,))
    assert "warn.explicit.gc.not.concurrent" in _keys(run)
    options = parse_jvm_options("-XX:+ExplicitGCInvokesConcurrent")
    assert "warn.explicit.gc.not.concurrent" not in _keys(run, options)


def test_collector_family_rules():
    assert "info.serial.gc" in _keys(JvmRun(collector_families=(CollectorFamily.SERIAL,)))
    assert "warn.cms.deprecated" in _keys(JvmRun(collector_families=(CollectorFamily.CMS,)))


def test_bottlenecks():
    prior = _event(EventType.UNIFIED_YOUNG, timestamp=1000, duration=400_000)
    event = _event(EventType.UNIFIED_YOUNG, timestamp=1500, duration=400_000)
    run = JvmRun(bottlenecks=(Bottleneck(prior=prior, event=event, throughput=11),))
    assert "warn.bottlenecks" in _keys(run)


def test_gc_stopped_ratio_threshold():
    assert "warn.gc.stopped.ratio" in _keys(JvmRun(gc_stopped_ratio=25))
    assert "warn.gc.stopped.ratio" not in _keys(JvmRun(gc_stopped_ratio=95))
    settings = AnalysisSettings(gc_stopped_ratio_threshold=20)
    assert "warn.gc.stopped.ratio" not in _keys(JvmRun(gc_stopped_ratio=25), settings=settings)


def test_run_health_rules():
    assert "warn.parallelism.inverted" in _keys(JvmRun(inverted_parallelism_count=1))
    assert "info.perm.gen" in _keys(JvmRun(perm_gen_seen=True))
    assert "warn.unidentified.lines" in _keys(JvmRun(unidentified_count=3))
    assert "warn.timestamp.out.of.order" in _keys(JvmRun(out_of_order_count=1))
    assert "warn.gc.throughput.low" in _keys(JvmRun(gc_throughput=80))
    assert "warn.gc.throughput.low" not in _keys(JvmRun(gc_throughput=None))


def test_max_pause_warning():
    assert "warn.pause.max" in _keys(JvmRun(gc_pause_max=6_000_000))
    assert "warn.pause.max" not in _keys(JvmRun(gc_pause_max=4_000_000))


def test_option_rules_need_options():
    keys = _keys(JvmRun())
    assert "warn.print.gc.details.missing" not in keys
    assert "warn.heap.dump.on.oom.missing" not in keys
    assert "info.print.gc.application.stopped.time.missing" not in keys


def test_option_rules():
    options = parse_jvm_options("-Xms1g -Xmx2g -XX:+DisableExplicitGC")
    keys = _keys(JvmRun(), options)
    assert "warn.print.gc.details.missing" in keys
    assert "warn.heap.dump.on.oom.missing" in keys
    assert "info.print.gc.application.stopped.time.missing" in keys
    assert "info.heap.min.not.equal.max" in keys
    assert "info.explicit.gc.disabled" in keys


def test_well_configured_options():
    options = parse_jvm_options(
        "-Xms2g -Xmx2g -XX:+PrintGCDetails -XX:+PrintGCApplicationStoppedTime "
        "-XX:+HeapDumpOnOutOfMemoryError"
    )
    assert _keys(JvmRun(), options) == []


def test_stopped_time_present_in_log():
    options = parse_jvm_options("-XX:+PrintGCDetails")
    keys = _keys(JvmRun(safepoint_count=1), options)
    assert "info.print.gc.application.stopped.time.missing" not in keys


def test_cms_class_unloading_disabled():
    options = parse_jvm_options("-XX:+UseConcMarkSweepGC -XX:-CMSClassUnloadingEnabled")
    assert "warn.cms.class.unloading.disabled" in _keys(JvmRun(), options)
    g1 = parse_jvm_options("-XX:+UseG1GC -XX:-CMSClassUnloadingEnabled")
    assert "warn.cms.class.unloading.disabled" not in _keys(JvmRun(), g1)


def test_analysis_is_deterministic(legacy_cms_log):
    result = analyze_lines(legacy_cms_log.splitlines())
    first = analyze_run(result.run, result.options)
    second = analyze_run(result.run, result.options)
    assert first == second
    assert [finding.key for finding in first] == [finding.key for finding in result.findings]
