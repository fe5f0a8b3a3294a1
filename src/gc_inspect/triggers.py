"""GC and safepoint trigger literals.

Each enum member's value is the literal text the JVM logs, so the enum is the
single table used both to build trigger regexes and to resolve matched text
back to a member.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum


class GcTrigger(str, Enum):
    """Cause reported for a collection."""

    ALLOCATION_FAILURE = "Allocation Failure"
    ALLOCATION_RATE = "Allocation Rate"
    ALLOCATION_STALL = "Allocation Stall"
    CLASS_HISTOGRAM = "Class Histogram"
    CMS_CONCURRENT_MODE_FAILURE = "concurrent mode failure"
    CMS_CONCURRENT_MODE_INTERRUPTED = "concurrent mode interrupted"
    CMS_FINAL_REMARK = "CMS Final Remark"
    CMS_INITIAL_MARK = "CMS Initial Mark"
    CODECACHE_GC_AGGRESSIVE = "CodeCache GC Aggressive"
    CODECACHE_GC_THRESHOLD = "CodeCache GC Threshold"
    DIAGNOSTIC_COMMAND = "Diagnostic Command"
    ERGONOMICS = "Ergonomics"
    G1_COMPACTION_PAUSE = "G1 Compaction Pause"
    G1_EVACUATION_PAUSE = "G1 Evacuation Pause"
    G1_HUMONGOUS_ALLOCATION = "G1 Humongous Allocation"
    G1_PERIODIC_COLLECTION = "G1 Periodic Collection"
    G1_PREVENTIVE_COLLECTION = "G1 Preventive Collection"
    GCLOCKER_INITIATED_GC = "GCLocker Initiated GC"
    HEAP_DUMP_INITIATED_GC = "Heap Dump Initiated GC"
    HEAP_INSPECTION_INITIATED_GC = "Heap Inspection Initiated GC"
    HIGH_USAGE = "High Usage"
    JVMTI_FORCE_GC = "JvmtiEnv ForceGarbageCollection"
    LAST_DITCH_COLLECTION = "Last ditch collection"
    METADATA_GC_CLEAR_SOFT_REFERENCES = "Metadata GC Clear Soft References"
    METADATA_GC_THRESHOLD = "Metadata GC Threshold"
    PROACTIVE = "Proactive"
    PROMOTION_FAILED = "promotion failed"
    SYSTEM = "System"
    SYSTEM_GC = "System.gc()"
    TIMER = "Timer"
    TO_SPACE_EXHAUSTED = "to-space exhausted"
    TO_SPACE_OVERFLOW = "to-space overflow"
    UPDATE_ALLOCATION_CONTEXT_STATS = "Update Allocation Context Stats"
    WARMUP = "Warmup"
    WHITEBOX_CONCURRENT_MARK = "WhiteBox Initiated Concurrent Mark"
    WHITEBOX_FULL_GC = "WhiteBox Initiated Full GC"
    WHITEBOX_YOUNG_GC = "WhiteBox Initiated Young GC"
    UNKNOWN = "Unknown"

    @property
    def literal(self) -> str:
        return self.value

    @property
    def is_explicit(self) -> bool:
        """Collections requested by application code or tooling."""
        return self in EXPLICIT_TRIGGERS

    @classmethod
    def resolve(cls, text: str | None) -> GcTrigger:
        """Map logged trigger text to a member; never fails.

        An exact literal wins; otherwise the longest literal contained in the
        text; otherwise UNKNOWN.
        """
        if not text:
            return cls.UNKNOWN
        text = text.strip()
        if text in _BY_LITERAL:
            return _BY_LITERAL[text]
        for trigger in _LONGEST_FIRST:
            if trigger.value in text:
                return trigger
        return cls.UNKNOWN


_BY_LITERAL: dict[str, GcTrigger] = {
    trigger.value: trigger for trigger in GcTrigger if trigger is not GcTrigger.UNKNOWN
}
_LONGEST_FIRST: tuple[GcTrigger, ...] = tuple(
    sorted(_BY_LITERAL.values(), key=lambda trigger: len(trigger.value), reverse=True)
)

EXPLICIT_TRIGGERS: frozenset[GcTrigger] = frozenset(
    {
        GcTrigger.SYSTEM,
        GcTrigger.SYSTEM_GC,
        GcTrigger.DIAGNOSTIC_COMMAND,
        GcTrigger.JVMTI_FORCE_GC,
    }
)

G1_TRIGGERS: tuple[GcTrigger, ...] = (
    GcTrigger.G1_COMPACTION_PAUSE,
    GcTrigger.G1_EVACUATION_PAUSE,
    GcTrigger.G1_HUMONGOUS_ALLOCATION,
    GcTrigger.G1_PERIODIC_COLLECTION,
    GcTrigger.G1_PREVENTIVE_COLLECTION,
)


def trigger_regex(triggers: Iterable[GcTrigger] | None = None) -> str:
    """Alternation of trigger literals, longest first so prefixes never shadow.

    ``System`` must not win over ``System.gc()``.
    """
    chosen = _LONGEST_FIRST if triggers is None else tuple(triggers)
    ordered = sorted(chosen, key=lambda trigger: len(trigger.value), reverse=True)
    return "|".join(re.escape(trigger.value) for trigger in ordered)


class SafepointTrigger(str, Enum):
    """VM operation named by a unified ``Safepoint "..."`` line."""

    BULK_REVOKE_BIAS = "BulkRevokeBias"
    CGC_OPERATION = "CGC_Operation"
    CLEAN_CLASS_LOADER_DATA_METASPACES = "CleanClassLoaderDataMetaspaces"
    CLEANUP = "Cleanup"
    CMS_FINAL_REMARK = "CMS_Final_Remark"
    CMS_INITIAL_MARK = "CMS_Initial_Mark"
    COLLECT_FOR_METADATA_ALLOCATION = "CollectForMetadataAllocation"
    DEOPTIMIZE = "Deoptimize"
    ENABLE_BIASED_LOCKING = "EnableBiasedLocking"
    EXIT = "Exit"
    FIND_DEADLOCKS = "FindDeadlocks"
    FORCE_SAFEPOINT = "ForceSafepoint"
    G1_COLLECT_FOR_ALLOCATION = "G1CollectForAllocation"
    G1_COLLECT_FULL = "G1CollectFull"
    G1_CONCURRENT = "G1Concurrent"
    G1_INC_COLLECTION_PAUSE = "G1IncCollectionPause"
    GC_HEAP_INSPECTION = "GC_HeapInspection"
    GEN_COLLECT_FOR_ALLOCATION = "GenCollectForAllocation"
    GEN_COLLECT_FULL_CONCURRENT = "GenCollectFullConcurrent"
    GET_ALL_STACK_TRACES = "GetAllStackTraces"
    GET_THREAD_LIST_STACK_TRACES = "GetThreadListStackTraces"
    HALT = "Halt"
    HANDSHAKE_FALLBACK = "HandshakeFallback"
    IC_BUFFER_FULL = "ICBufferFull"
    NO_VM_OPERATION = "no vm operation"
    PARALLEL_GC_FAILED_ALLOCATION = "ParallelGCFailedAllocation"
    PARALLEL_GC_SYSTEM_GC = "ParallelGCSystemGC"
    PRINT_JNI = "PrintJNI"
    PRINT_THREADS = "PrintThreads"
    REDEFINE_CLASSES = "RedefineClasses"
    REVOKE_BIAS = "RevokeBias"
    SHENANDOAH_DEGENERATED_GC = "ShenandoahDegeneratedGC"
    SHENANDOAH_FINAL_MARK_START_EVAC = "ShenandoahFinalMarkStartEvac"
    SHENANDOAH_FINAL_UPDATE_REFS = "ShenandoahFinalUpdateRefs"
    SHENANDOAH_INIT_MARK = "ShenandoahInitMark"
    SHENANDOAH_INIT_UPDATE_REFS = "ShenandoahInitUpdateRefs"
    THREAD_DUMP = "ThreadDump"
    Z_MARK_END = "ZMarkEnd"
    Z_MARK_START = "ZMarkStart"
    Z_RELOCATE_START = "ZRelocateStart"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def resolve(cls, text: str | None) -> SafepointTrigger:
        if not text:
            return cls.UNKNOWN
        try:
            return cls(text.strip())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_gc(self) -> bool:
        """Safepoints that exist to run a collection."""
        return self in _GC_SAFEPOINTS


_GC_SAFEPOINTS: frozenset[SafepointTrigger] = frozenset(
    {
        SafepointTrigger.CGC_OPERATION,
        SafepointTrigger.CMS_FINAL_REMARK,
        SafepointTrigger.CMS_INITIAL_MARK,
        SafepointTrigger.COLLECT_FOR_METADATA_ALLOCATION,
        SafepointTrigger.G1_COLLECT_FOR_ALLOCATION,
        SafepointTrigger.G1_COLLECT_FULL,
        SafepointTrigger.G1_CONCURRENT,
        SafepointTrigger.G1_INC_COLLECTION_PAUSE,
        SafepointTrigger.GEN_COLLECT_FOR_ALLOCATION,
        SafepointTrigger.GEN_COLLECT_FULL_CONCURRENT,
        SafepointTrigger.PARALLEL_GC_FAILED_ALLOCATION,
        SafepointTrigger.PARALLEL_GC_SYSTEM_GC,
        SafepointTrigger.SHENANDOAH_DEGENERATED_GC,
        SafepointTrigger.SHENANDOAH_FINAL_MARK_START_EVAC,
        SafepointTrigger.SHENANDOAH_FINAL_UPDATE_REFS,
        SafepointTrigger.SHENANDOAH_INIT_MARK,
        SafepointTrigger.SHENANDOAH_INIT_UPDATE_REFS,
        SafepointTrigger.Z_MARK_END,
        SafepointTrigger.Z_MARK_START,
        SafepointTrigger.Z_RELOCATE_START,
    }
)
