from gc_inspect.aggregate import RunAggregator
from gc_inspect.catalogue import parse_line
from gc_inspect.models import CollectorFamily, EventType, LogEvent, Region
from gc_inspect.settings import AnalysisSettings
from gc_inspect.triggers import GcTrigger, SafepointTrigger


def _young(timestamp, duration, **fields):
    return LogEvent(
        event_type=EventType.UNIFIED_YOUNG,
        log_entry=f"young at {timestamp}",
        timestamp=timestamp,
        duration=duration,
        **fields,
    )


def _safepoint(trigger, duration, timestamp=100):
    return LogEvent(
        event_type=EventType.UNIFIED_SAFEPOINT,
        log_entry=f"safepoint {trigger.value}",
        timestamp=timestamp,
        duration=duration,
        safepoint_trigger=trigger,
    )


def _run(*events, settings=None):
    aggregator = RunAggregator(settings)
    for event in events:
        aggregator.add_event(event)
    return aggregator.finish()


def test_empty_run():
    run = RunAggregator().finish()
    assert run.event_count == 0
    assert run.gc_throughput is None
    assert run.run_duration is None
    assert run.stopped_throughput is None


def test_pause_totals_and_max():
    run = _run(_young(1000, 2000), _young(2000, 5000), _young(3000, 1000))
    assert run.blocking_count == 3
    assert run.gc_pause_total == 8000
    assert run.gc_pause_max == 5000
    assert run.gc_pause_max_event.timestamp == 2000


def test_run_starting_near_jvm_start_begins_at_zero():
    run = _run(_young(1000, 2000), _young(9000, 1000))
    assert run.start_timestamp == 0
    assert run.end_timestamp == 9001
    assert run.run_duration == 9001
    # 3000us paused over 9001ms
    assert run.gc_throughput == 100


def test_rotated_log_starts_at_first_event():
    run = _run(_young(120_000, 1000), _young(130_000, 1000))
    assert run.start_timestamp == 120_000
    assert run.run_duration == 10_001


def test_bottleneck_between_consecutive_pauses():
    run = _run(_young(1000, 400_000), _young(1500, 400_000))
    assert len(run.bottlenecks) == 1
    bottleneck = run.bottlenecks[0]
    assert bottleneck.prior.timestamp == 1000
    assert bottleneck.event.timestamp == 1500
    # 800ms paused over 900ms
    assert bottleneck.throughput == 11


def test_bottleneck_threshold_is_configurable():
    events = (_young(1000, 400_000), _young(1500, 400_000))
    assert not _run(*events, settings=AnalysisSettings(throughput_threshold=10)).bottlenecks
    assert _run(*events).throughput_threshold == 90


def test_out_of_order_blocking_events():
    run = _run(_young(2000, 1000), _young(1000, 1000), _young(3000, 1000))
    assert run.out_of_order_count == 1
    assert run.first_out_of_order_event.timestamp == 1000
    assert not run.bottlenecks


def test_concurrent_events_do_not_count_as_out_of_order():
    concurrent = LogEvent(
        event_type=EventType.UNIFIED_CONCURRENT, log_entry="c", timestamp=500, duration=10
    )
    run = _run(_young(2000, 1000), concurrent, _young(3000, 1000))
    assert run.out_of_order_count == 0
    assert run.concurrent_count == 1


def test_parallelism_counts():
    def par_new(user, real):
        return LogEvent(
            event_type=EventType.PAR_NEW,
            log_entry="p",
            timestamp=1000,
            duration=10,
            time_user=user,
            time_sys=0,
            time_real=real,
        )

    run = _run(par_new(2, 5), par_new(1, 5), par_new(4, 1), _young(2000, 10))
    assert run.parallel_count == 3
    assert run.inverted_parallelism_count == 2
    assert run.worst_inverted_parallelism == 20


def test_region_maxima():
    run = _run(
        LogEvent(
            event_type=EventType.SERIAL_OLD,
            log_entry="full",
            timestamp=1000,
            duration=10,
            young_begin=900,
            young_end=0,
            young_space=1000,
            old_begin=2000,
            old_end=2500,
            old_space=3000,
        ),
        LogEvent(
            event_type=EventType.SERIAL_NEW,
            log_entry="young",
            timestamp=2000,
            duration=10,
            young_begin=1000,
            young_end=50,
            young_space=1000,
        ),
    )
    young = run.maxima(Region.YOUNG)
    assert (young.space, young.occupancy, young.after_gc) == (1000, 1000, 50)
    assert run.maxima(Region.OLD).occupancy == 2000
    assert run.maxima(Region.PERM).space is None
    assert run.new_ratio == 3


def test_safepoint_summaries_sorted_by_total():
    run = _run(
        _safepoint(SafepointTrigger.REVOKE_BIAS, 100),
        _safepoint(SafepointTrigger.G1_COLLECT_FOR_ALLOCATION, 3000),
        _safepoint(SafepointTrigger.REVOKE_BIAS, 200),
    )
    assert run.safepoint_count == 3
    assert run.stopped_total == 3300
    assert run.stopped_max == 3000
    assert [s.trigger for s in run.safepoint_summaries] == [
        SafepointTrigger.G1_COLLECT_FOR_ALLOCATION,
        SafepointTrigger.REVOKE_BIAS,
    ]
    revoke = run.safepoint_summaries[1]
    assert (revoke.count, revoke.pause_total, revoke.pause_max) == (2, 300, 200)


def test_gc_share_of_stopped_time():
    run = _run(_young(1000, 1000), _safepoint(SafepointTrigger.REVOKE_BIAS, 4000, 2000))
    assert run.gc_stopped_ratio == 25


def test_non_reportable_events_are_counted_not_stored():
    blank = parse_line("[5.000s][info][gc] GC(9)")
    run = _run(blank, _young(1000, 10))
    assert run.event_type_counts[EventType.UNIFIED_BLANK_LINE] == 1
    assert run.event_count == 1
    assert run.has_event(EventType.UNIFIED_BLANK_LINE)


def test_families_and_triggers():
    banner = parse_line("[0.004s][info][gc] Using G1")
    young = parse_line(
        "[1.000s][info][gc] GC(0) Pause Young (Normal) (System.gc()) 24M->4M(256M) 5.123ms"
    )
    run = _run(banner, young)
    assert run.collector_families == (CollectorFamily.G1,)
    assert run.trigger_count(GcTrigger.SYSTEM_GC) == 1
    assert run.has_family(CollectorFamily.G1)


def test_evacuation_failures():
    exhausted = parse_line("[5.000s][info][gc] GC(9) To-space exhausted")
    failed = _young(1000, 10, trigger=GcTrigger.TO_SPACE_EXHAUSTED, to_space_exhausted=True)
    run = _run(exhausted, failed)
    assert run.evacuation_failure_count == 2


def test_unidentified_lines_are_capped():
    aggregator = RunAggregator(AnalysisSettings(unidentified_line_limit=2))
    for index in range(5):
        aggregator.add_unidentified(f"junk {index}")
    run = aggregator.finish()
    assert run.unidentified_count == 5
    assert run.unidentified_lines == ("junk 0", "junk 1")


def test_headers():
    run = _run(
        parse_line(
            "OpenJDK 64-Bit Server VM (25.252-b09) for linux-amd64 JRE (1.8.0_252-b09), "
            "built on Apr 22 2020 10:38:50"
        ),
        parse_line("Memory: 4k page, physical 16266820k(1000000k free), swap 0k(0k free)"),
        parse_line("CommandLine flags: -Xmx2g -XX:+UseG1GC"),
    )
    assert run.jdk_version == "1.8.0_252-b09"
    assert run.physical_memory_kb == 16266820
    assert run.jvm_options == "-Xmx2g -XX:+UseG1GC"
    assert run.blocking_count == 0


def test_perm_gen_seen():
    line = (
        "1.000: [Full GC (System) [PSYoungGen: 100K->0K(1000K)] [PSOldGen: 500K->400K(4000K)] "
        "600K->400K(5000K) [PSPermGen: 3000K->3000K(21248K)], 0.0500000 secs] "
        "[Times: user=0.05 sys=0.00, real=0.05 secs]"
    )
    event = parse_line(line)
    assert event.event_type is EventType.PARALLEL_SERIAL_OLD
    assert _run(event).perm_gen_seen


def test_events_keep_arrival_order_when_timestamps_go_backwards():
    run = _run(_young(3000, 1000), _young(1000, 1000), _young(2000, 1000))
    assert [event.timestamp for event in run.events] == [3000, 1000, 2000]
    assert run.first_event.timestamp == 3000
    assert run.last_event.timestamp == 2000
    assert run.out_of_order_count == 1


def test_default_unidentified_sample_size():
    aggregator = RunAggregator()
    for index in range(1005):
        aggregator.add_unidentified(f"junk {index}")
    run = aggregator.finish()
    assert run.unidentified_count == 1005
    assert len(run.unidentified_lines) == 1000
    assert run.unidentified_lines[-1] == "junk 999"
