import pytest

from gc_inspect.jvm import JvmOptions, parse_jvm_options, parse_jvm_size_to_bytes
from gc_inspect.models import CollectorFamily


@pytest.mark.parametrize(
    ("value", "unit", "expected"),
    [
        ("512", "m", 512 * 1024**2),
        ("2", "G", 2 * 1024**3),
        ("1073741824", None, 1073741824),
        ("64", "k", 64 * 1024),
    ],
)
def test_parse_jvm_size_to_bytes(value, unit, expected):
    assert parse_jvm_size_to_bytes(value, unit) == expected


def test_empty_options():
    options = parse_jvm_options(None)
    assert options == JvmOptions()
    assert options.collector is CollectorFamily.UNKNOWN
    assert options.heap_min_equals_max is None


def test_heap_sizing():
    options = parse_jvm_options("-Xms1g -Xmx2g -Xmn256m -XX:MetaspaceSize=128m -XX:NewRatio=3")
    assert options.initial_heap_size_bytes == 1024**3
    assert options.max_heap_size_bytes == 2 * 1024**3
    assert options.new_size_bytes == 256 * 1024**2
    assert options.metaspace_size_bytes == 128 * 1024**2
    assert options.new_ratio == 3
    assert options.heap_min_equals_max is False


def test_short_form_wins_over_xx_form():
    options = parse_jvm_options("-XX:MaxHeapSize=1073741824 -Xmx2g")
    assert options.max_heap_size_bytes == 2 * 1024**3


def test_boolean_flags_keep_sign_and_last_wins():
    options = parse_jvm_options(
        "-XX:-DisableExplicitGC -XX:+UseG1GC -XX:+DisableExplicitGC -XX:-CMSClassUnloadingEnabled"
    )
    assert options.disable_explicit_gc is True
    assert options.cms_class_unloading_enabled is False
    assert options.use_g1_gc is True
    assert options.explicit_gc_invokes_concurrent is None
    assert options.collector is CollectorFamily.G1


def test_flag_prefix_does_not_match_longer_flag():
    options = parse_jvm_options("-XX:+UseParallelOldGC")
    assert options.use_parallel_old_gc is True
    assert options.use_parallel_gc is None
    assert options.collector is CollectorFamily.PARALLEL


def test_logging_flags():
    jdk8 = parse_jvm_options("-XX:+PrintGCDetails -XX:+PrintGCApplicationStoppedTime")
    assert jdk8.logs_gc_details
    assert jdk8.logs_stopped_time
    assert not jdk8.logs_concurrent_time

    unified = parse_jvm_options("-Xlog:gc*:file=gc.log -Xlog:safepoint:file=sp.log")
    assert unified.unified_logging == ("gc*:file=gc.log", "safepoint:file=sp.log")
    assert unified.logs_gc_details
    assert unified.logs_stopped_time

    plain = parse_jvm_options("-Xlog:gc:file=gc.log")
    assert not plain.logs_gc_details


def test_format_size():
    options = JvmOptions()
    assert options.format_size(None) == "Not set"
    assert options.format_size(2 * 1024**3) == "2.0G"
    assert options.format_size(512) == "512B"
    assert options.format_size(1536) == "1.5K"
    assert options.format_size(256 * 1024**2) == "256.0M"
