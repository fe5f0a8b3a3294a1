import re

from gc_inspect.triggers import GcTrigger, SafepointTrigger, trigger_regex


def test_resolve_exact_literal():
    assert GcTrigger.resolve("System.gc()") is GcTrigger.SYSTEM_GC
    assert GcTrigger.resolve("G1 Evacuation Pause") is GcTrigger.G1_EVACUATION_PAUSE
    assert GcTrigger.resolve(" promotion failed ") is GcTrigger.PROMOTION_FAILED


def test_resolve_contained_literal_prefers_longest():
    assert GcTrigger.resolve("System.gc() via jcmd") is GcTrigger.SYSTEM_GC
    assert GcTrigger.resolve("CMS Final Remark") is GcTrigger.CMS_FINAL_REMARK


def test_resolve_unknown_never_fails():
    assert GcTrigger.resolve("Something New") is GcTrigger.UNKNOWN
    assert GcTrigger.resolve(None) is GcTrigger.UNKNOWN
    assert GcTrigger.resolve("") is GcTrigger.UNKNOWN


def test_literal_is_logged_text():
    assert GcTrigger.METADATA_GC_THRESHOLD.literal == "Metadata GC Threshold"


def test_explicit_triggers():
    assert GcTrigger.SYSTEM_GC.is_explicit
    assert GcTrigger.DIAGNOSTIC_COMMAND.is_explicit
    assert not GcTrigger.ALLOCATION_FAILURE.is_explicit


def test_trigger_regex_does_not_let_prefix_shadow():
    pattern = re.compile(rf"\((?P<trigger>{trigger_regex()})\)")
    match = pattern.search("[Full GC (System.gc()) ")
    assert match is not None
    assert match.group("trigger") == "System.gc()"


def test_trigger_regex_subset():
    pattern = re.compile(trigger_regex([GcTrigger.G1_EVACUATION_PAUSE]))
    assert pattern.fullmatch("G1 Evacuation Pause")
    assert not pattern.fullmatch("Allocation Failure")


def test_safepoint_trigger():
    assert SafepointTrigger.resolve("G1CollectForAllocation") is (
        SafepointTrigger.G1_COLLECT_FOR_ALLOCATION
    )
    assert SafepointTrigger.resolve("NoSuchOperation") is SafepointTrigger.UNKNOWN
    assert SafepointTrigger.G1_COLLECT_FOR_ALLOCATION.is_gc
    assert not SafepointTrigger.REVOKE_BIAS.is_gc
