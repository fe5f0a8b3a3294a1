from gc_inspect.manager import GcManager, analyze_file, analyze_lines
from gc_inspect.models import AnalysisLevel, CollectorFamily, EventType, Region
from gc_inspect.settings import AnalysisSettings
from gc_inspect.triggers import GcTrigger, SafepointTrigger


def test_unified_g1_log(unified_g1_log):
    result = analyze_lines(unified_g1_log.splitlines())
    run = result.run
    assert run.unidentified_count == 0
    assert run.collector_families == (CollectorFamily.G1,)
    assert run.jdk_version == "17.0.1+12"
    assert run.physical_memory_kb == 16 * 1024 * 1024
    assert run.blocking_count == 3
    assert run.concurrent_count == 2
    assert run.gc_pause_total == 5123 + 2000 + 1500
    assert run.gc_pause_max == 5123
    assert run.has_event(EventType.UNIFIED_G1_YOUNG_INITIAL_MARK)
    assert run.trigger_count(GcTrigger.G1_HUMONGOUS_ALLOCATION) == 1
    assert run.safepoint_summaries[0].trigger is SafepointTrigger.G1_COLLECT_FOR_ALLOCATION
    assert run.start_timestamp == 0
    assert run.end_timestamp == 400
    assert run.gc_throughput == 98
    assert run.maxima(Region.PERM).space == 1056768
    assert result.findings == ()


def test_legacy_cms_log(legacy_cms_log):
    result = analyze_lines(legacy_cms_log.splitlines())
    run = result.run
    assert run.unidentified_count == 0
    assert run.jdk_version == "1.8.0_252-b09"
    assert run.physical_memory_kb == 16266820
    assert run.collector_families == (CollectorFamily.CMS,)
    assert run.blocking_count == 4
    assert run.gc_pause_max == 35100
    assert result.options.print_gc_details is True
    assert [finding.key for finding in result.findings] == [
        "error.cms.promotion.failed",
        "warn.explicit.gc.not.concurrent",
        "warn.cms.deprecated",
        "warn.heap.dump.on.oom.missing",
        "info.explicit.gc",
        "info.heap.min.not.equal.max",
        "info.print.gc.application.stopped.time.missing",
    ]
    assert result.has_level(AnalysisLevel.ERROR)
    assert len(result.grouped[AnalysisLevel.WARN]) == 3


def test_caller_options_override_log_header(legacy_cms_log):
    result = analyze_lines(
        legacy_cms_log.splitlines(),
        jvm_options="-Xms2g -Xmx2g -XX:+PrintGCDetails -XX:+HeapDumpOnOutOfMemoryError",
    )
    keys = [finding.key for finding in result.findings]
    assert "info.heap.min.not.equal.max" not in keys
    assert "warn.heap.dump.on.oom.missing" not in keys
    assert result.options.max_heap_size_bytes == 2 * 1024**3


def test_legacy_g1_log(legacy_g1_log):
    run = GcManager().build_run(legacy_g1_log.splitlines())
    assert run.event_count == 1
    assert run.events[0].event_type is EventType.G1_YOUNG_PAUSE
    assert run.events[0].parallelism == 600
    assert run.collector_families == (CollectorFamily.G1,)


def test_unified_parallel_log(unified_parallel_log):
    run = GcManager().build_run(unified_parallel_log.splitlines())
    assert run.events[-1].event_type is EventType.UNIFIED_PARALLEL_SCAVENGE
    assert run.events[-1].timestamp == 1000
    assert run.maxima(Region.YOUNG).space == 76288
    assert run.maxima(Region.OLD).after_gc == 8
    assert run.new_ratio == 2


def test_shenandoah_log(shenandoah_log):
    result = analyze_lines(shenandoah_log.splitlines())
    assert result.run.unidentified_count == 0
    assert result.run.collector_families == (CollectorFamily.SHENANDOAH,)
    assert "warn.shenandoah.degenerated.gc" in [finding.key for finding in result.findings]


def test_unidentified_lines_are_reported():
    result = analyze_lines(["[0.004s][info][gc] Using G1", "garbage", "more garbage"])
    assert result.run.unidentified_lines == ("garbage", "more garbage")
    assert [finding.key for finding in result.findings] == ["warn.unidentified.lines"]


def test_incomplete_record_counts_as_unidentified():
    result = analyze_lines(
        ["[0.120s][info][gc,start] GC(0) Pause Young (Normal) (G1 Evacuation Pause)"]
    )
    assert result.run.unidentified_count == 1


def test_settings_are_applied():
    pause = "Pause Young (Normal) (G1 Evacuation Pause) 24M->4M(256M) 400.000ms"
    lines = [f"[1.000s][info][gc] GC(0) {pause}", f"[1.500s][info][gc] GC(1) {pause}"]
    assert analyze_lines(lines).run.bottlenecks
    relaxed = analyze_lines(lines, settings=AnalysisSettings(throughput_threshold=10))
    assert not relaxed.run.bottlenecks


def test_analyze_file(legacy_cms_log, write_log):
    path = write_log(legacy_cms_log)
    result = analyze_file(path)
    assert result.run.blocking_count == 4
    assert result.run.jvm_options.startswith("-XX:InitialHeapSize=1073741824")


def test_truncated_legacy_record_costs_one_unidentified_line():
    lines = ["1.000: [GC (Allocation Failure) 1.000: [ParNew"]
    for second in range(2, 12):
        lines.append(
            f"{second}.000: [GC (Allocation Failure) {second}.000: [ParNew: "
            "1006K->128K(1152K), 0.0045000 secs] 1006K->500K(3968K), 0.0046000 secs] "
            "[Times: user=0.01 sys=0.00, real=0.01 secs]"
        )
    run = analyze_lines(lines).run
    assert run.event_count == 10
    assert run.unidentified_count == 1
    assert run.unidentified_lines == ("1.000: [GC (Allocation Failure) 1.000: [ParNew",)


def test_remark_keeps_cpu_times_across_interleaved_line():
    run = analyze_lines(
        [
            "[0.002s][info][gc] Using G1",
            "[0.340s][info][gc,start] GC(3) Pause Remark",
            "[0.342s][info][gc] GC(3) Pause Remark 22M->22M(256M) 1.500ms",
            "[0.342s][info][gc,marking] GC(4) Concurrent Mark 42.000ms",
            "[0.343s][info][gc,cpu] GC(3) User=0.01s Sys=0.00s Real=0.01s",
        ]
    ).run
    assert run.unidentified_count == 0
    remark = next(event for event in run.events if event.event_type is EventType.UNIFIED_REMARK)
    assert remark.time_real == 1
    assert remark.time_user == 1
    assert [event.event_type for event in run.events][-1] is EventType.UNIFIED_CONCURRENT


def test_orphan_fragment_is_counted_unidentified():
    run = analyze_lines(
        [
            "[0.002s][info][gc] Using Concurrent Mark Sweep",
            "[0.125s][info][gc,heap] GC(3) ParNew: 1006K->128K(1152K)",
        ]
    ).run
    assert run.unidentified_count == 1
