"""Data model: event types and their traits, events, findings and the run.

Every ``EventType`` declares its capabilities once in ``EVENT_TRAITS``; a
``LogEvent`` is validated against that declaration when it is built.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field, model_validator

from gc_inspect.errors import CatalogueError, InvalidAnalysisLevelError
from gc_inspect.triggers import GcTrigger, SafepointTrigger
from gc_inspect.util import calc_parallelism, is_inverted_parallelism, micros_to_millis

# ============================================================
# TYPE ALIASES
# ============================================================

KilobytesValue: TypeAlias = int
MillisValue: TypeAlias = int
MicrosValue: TypeAlias = int
CentisValue: TypeAlias = int

# ============================================================
# ENUMERATIONS
# ============================================================


class CollectorFamily(str, Enum):
    SERIAL = "Serial"
    PARALLEL = "Parallel"
    CMS = "CMS"
    G1 = "G1"
    SHENANDOAH = "Shenandoah"
    Z = "Z"
    UNKNOWN = "Unknown"


class EventKind(str, Enum):
    """Stop-the-world classification; exactly one per event type."""

    BLOCKING = "blocking"
    CONCURRENT = "concurrent"
    SAFEPOINT = "safepoint"
    INFO = "info"


class Region(str, Enum):
    YOUNG = "young"
    OLD = "old"
    COMBINED = "combined"
    PERM = "perm"


class EventType(str, Enum):
    # legacy Serial
    SERIAL_NEW = "SERIAL_NEW"
    SERIAL_OLD = "SERIAL_OLD"
    # legacy Parallel
    PARALLEL_SCAVENGE = "PARALLEL_SCAVENGE"
    PARALLEL_SERIAL_OLD = "PARALLEL_SERIAL_OLD"
    PARALLEL_COMPACTING_OLD = "PARALLEL_COMPACTING_OLD"
    # legacy CMS
    PAR_NEW = "PAR_NEW"
    CMS_SERIAL_OLD = "CMS_SERIAL_OLD"
    CMS_INITIAL_MARK = "CMS_INITIAL_MARK"
    CMS_REMARK = "CMS_REMARK"
    CMS_CONCURRENT = "CMS_CONCURRENT"
    # legacy G1
    G1_YOUNG_PAUSE = "G1_YOUNG_PAUSE"
    G1_YOUNG_INITIAL_MARK = "G1_YOUNG_INITIAL_MARK"
    G1_MIXED_PAUSE = "G1_MIXED_PAUSE"
    G1_REMARK = "G1_REMARK"
    G1_CLEANUP = "G1_CLEANUP"
    G1_FULL_GC_SERIAL = "G1_FULL_GC_SERIAL"
    G1_CONCURRENT = "G1_CONCURRENT"
    # unified Serial / Parallel / CMS
    UNIFIED_SERIAL_NEW = "UNIFIED_SERIAL_NEW"
    UNIFIED_SERIAL_OLD = "UNIFIED_SERIAL_OLD"
    UNIFIED_PARALLEL_SCAVENGE = "UNIFIED_PARALLEL_SCAVENGE"
    UNIFIED_PARALLEL_COMPACTING_OLD = "UNIFIED_PARALLEL_COMPACTING_OLD"
    UNIFIED_PAR_NEW = "UNIFIED_PAR_NEW"
    UNIFIED_CMS_INITIAL_MARK = "UNIFIED_CMS_INITIAL_MARK"
    UNIFIED_CMS_CONCURRENT = "UNIFIED_CMS_CONCURRENT"
    UNIFIED_REMARK = "UNIFIED_REMARK"
    # unified G1
    UNIFIED_G1_YOUNG_PAUSE = "UNIFIED_G1_YOUNG_PAUSE"
    UNIFIED_G1_YOUNG_INITIAL_MARK = "UNIFIED_G1_YOUNG_INITIAL_MARK"
    UNIFIED_G1_YOUNG_PREPARE_MIXED = "UNIFIED_G1_YOUNG_PREPARE_MIXED"
    UNIFIED_G1_MIXED_PAUSE = "UNIFIED_G1_MIXED_PAUSE"
    UNIFIED_G1_CLEANUP = "UNIFIED_G1_CLEANUP"
    UNIFIED_G1_FULL_GC = "UNIFIED_G1_FULL_GC"
    UNIFIED_G1_TO_SPACE_EXHAUSTED = "UNIFIED_G1_TO_SPACE_EXHAUSTED"
    UNIFIED_CONCURRENT = "UNIFIED_CONCURRENT"
    # unified, collector not evident from the line
    UNIFIED_YOUNG = "UNIFIED_YOUNG"
    UNIFIED_OLD = "UNIFIED_OLD"
    # Shenandoah
    SHENANDOAH_INIT_MARK = "SHENANDOAH_INIT_MARK"
    SHENANDOAH_FINAL_MARK = "SHENANDOAH_FINAL_MARK"
    SHENANDOAH_INIT_UPDATE = "SHENANDOAH_INIT_UPDATE"
    SHENANDOAH_FINAL_UPDATE = "SHENANDOAH_FINAL_UPDATE"
    SHENANDOAH_FINAL_EVAC = "SHENANDOAH_FINAL_EVAC"
    SHENANDOAH_FINAL_ROOTS = "SHENANDOAH_FINAL_ROOTS"
    SHENANDOAH_DEGENERATED_GC = "SHENANDOAH_DEGENERATED_GC"
    SHENANDOAH_FULL_GC = "SHENANDOAH_FULL_GC"
    SHENANDOAH_CONCURRENT = "SHENANDOAH_CONCURRENT"
    SHENANDOAH_TRIGGER = "SHENANDOAH_TRIGGER"
    SHENANDOAH_CANCELLING_GC = "SHENANDOAH_CANCELLING_GC"
    # Z
    Z_MARK_START = "Z_MARK_START"
    Z_MARK_END = "Z_MARK_END"
    Z_RELOCATE_START = "Z_RELOCATE_START"
    Z_MARK_START_OLD = "Z_MARK_START_OLD"
    Z_MARK_END_OLD = "Z_MARK_END_OLD"
    Z_RELOCATE_START_OLD = "Z_RELOCATE_START_OLD"
    Z_CONCURRENT = "Z_CONCURRENT"
    Z_GARBAGE_COLLECTION = "Z_GARBAGE_COLLECTION"
    Z_ALLOCATION_STALL = "Z_ALLOCATION_STALL"
    # safepoints and application time
    APPLICATION_STOPPED_TIME = "APPLICATION_STOPPED_TIME"
    UNIFIED_SAFEPOINT = "UNIFIED_SAFEPOINT"
    APPLICATION_CONCURRENT_TIME = "APPLICATION_CONCURRENT_TIME"
    # banners
    USING_SERIAL = "USING_SERIAL"
    USING_PARALLEL = "USING_PARALLEL"
    USING_CMS = "USING_CMS"
    USING_G1 = "USING_G1"
    USING_SHENANDOAH = "USING_SHENANDOAH"
    USING_Z = "USING_Z"
    # headers and informational lines
    HEADER_COMMAND_LINE_FLAGS = "HEADER_COMMAND_LINE_FLAGS"
    HEADER_MEMORY = "HEADER_MEMORY"
    HEADER_VERSION = "HEADER_VERSION"
    UNIFIED_HEADER = "UNIFIED_HEADER"
    UNIFIED_BLANK_LINE = "UNIFIED_BLANK_LINE"
    HEAP_AT_GC = "HEAP_AT_GC"
    TENURING_DISTRIBUTION = "TENURING_DISTRIBUTION"
    CLASS_UNLOADING = "CLASS_UNLOADING"
    GC_LOCKER = "GC_LOCKER"
    GC_OVERHEAD_LIMIT = "GC_OVERHEAD_LIMIT"
    THREAD_DUMP = "THREAD_DUMP"
    VM_WARNING = "VM_WARNING"
    UNKNOWN = "UNKNOWN"

    @property
    def traits(self) -> EventTraits:
        return EVENT_TRAITS[self]


# ============================================================
# EVENT TRAITS
# ============================================================


class EventTraits(BaseModel):
    """Capabilities an event type declares."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    family: CollectorFamily = CollectorFamily.UNKNOWN
    parallel: bool = False
    young: bool = False
    old: bool = False
    perm: bool = False
    regions: frozenset[Region] = frozenset()
    times: bool = False
    trigger: bool = False
    reportable: bool = True
    unified: bool = False


_Y = Region.YOUNG
_O = Region.OLD
_C = Region.COMBINED
_P = Region.PERM


def _blocking(
    family: CollectorFamily,
    *regions: Region,
    parallel: bool = False,
    young: bool = False,
    old: bool = False,
    unified: bool = False,
    trigger: bool = True,
    times: bool = True,
) -> EventTraits:
    return EventTraits(
        kind=EventKind.BLOCKING,
        family=family,
        parallel=parallel,
        young=young,
        old=old,
        perm=_P in regions and old,
        regions=frozenset(regions),
        times=times,
        trigger=trigger,
        unified=unified,
    )


def _concurrent(family: CollectorFamily, *regions: Region, unified: bool = False) -> EventTraits:
    return EventTraits(
        kind=EventKind.CONCURRENT,
        family=family,
        regions=frozenset(regions),
        times=True,
        unified=unified,
    )


def _info(
    family: CollectorFamily = CollectorFamily.UNKNOWN,
    *regions: Region,
    reportable: bool = True,
    trigger: bool = False,
    unified: bool = False,
) -> EventTraits:
    return EventTraits(
        kind=EventKind.INFO,
        family=family,
        regions=frozenset(regions),
        reportable=reportable,
        trigger=trigger,
        unified=unified,
    )


_SERIAL = CollectorFamily.SERIAL
_PARALLEL = CollectorFamily.PARALLEL
_CMS = CollectorFamily.CMS
_G1 = CollectorFamily.G1
_SHEN = CollectorFamily.SHENANDOAH
_ZGC = CollectorFamily.Z
_ANY = CollectorFamily.UNKNOWN

EVENT_TRAITS: dict[EventType, EventTraits] = {
    EventType.SERIAL_NEW: _blocking(_SERIAL, _Y, _C, young=True),
    EventType.SERIAL_OLD: _blocking(_SERIAL, _Y, _O, _C, _P, old=True),
    EventType.PARALLEL_SCAVENGE: _blocking(_PARALLEL, _Y, _C, parallel=True, young=True),
    EventType.PARALLEL_SERIAL_OLD: _blocking(_PARALLEL, _Y, _O, _C, _P, old=True),
    EventType.PARALLEL_COMPACTING_OLD: _blocking(
        _PARALLEL, _Y, _O, _C, _P, parallel=True, old=True
    ),
    EventType.PAR_NEW: _blocking(_CMS, _Y, _C, parallel=True, young=True),
    EventType.CMS_SERIAL_OLD: _blocking(_CMS, _Y, _O, _C, _P, old=True),
    EventType.CMS_INITIAL_MARK: _blocking(_CMS, _O, _C, parallel=True),
    EventType.CMS_REMARK: _blocking(_CMS, _Y, _O, _C, parallel=True),
    EventType.CMS_CONCURRENT: _concurrent(_CMS),
    EventType.G1_YOUNG_PAUSE: _blocking(_G1, _Y, _C, parallel=True, young=True),
    EventType.G1_YOUNG_INITIAL_MARK: _blocking(_G1, _Y, _C, parallel=True, young=True),
    EventType.G1_MIXED_PAUSE: _blocking(_G1, _Y, _C, parallel=True, young=True, old=True),
    EventType.G1_REMARK: _blocking(_G1, parallel=True, trigger=False),
    EventType.G1_CLEANUP: _blocking(_G1, _C, parallel=True, trigger=False),
    EventType.G1_FULL_GC_SERIAL: _blocking(_G1, _C, _P, old=True),
    EventType.G1_CONCURRENT: _concurrent(_G1),
    EventType.UNIFIED_SERIAL_NEW: _blocking(_SERIAL, _Y, _O, _C, _P, young=True, unified=True),
    EventType.UNIFIED_SERIAL_OLD: _blocking(_SERIAL, _Y, _O, _C, _P, old=True, unified=True),
    EventType.UNIFIED_PARALLEL_SCAVENGE: _blocking(
        _PARALLEL, _Y, _O, _C, _P, parallel=True, young=True, unified=True
    ),
    EventType.UNIFIED_PARALLEL_COMPACTING_OLD: _blocking(
        _PARALLEL, _Y, _O, _C, _P, parallel=True, old=True, unified=True
    ),
    EventType.UNIFIED_PAR_NEW: _blocking(
        _CMS, _Y, _O, _C, _P, parallel=True, young=True, unified=True
    ),
    EventType.UNIFIED_CMS_INITIAL_MARK: _blocking(
        _CMS, _C, parallel=True, trigger=False, unified=True
    ),
    EventType.UNIFIED_CMS_CONCURRENT: _concurrent(_CMS, unified=True),
    EventType.UNIFIED_REMARK: _blocking(_ANY, _C, parallel=True, trigger=False, unified=True),
    EventType.UNIFIED_G1_YOUNG_PAUSE: _blocking(
        _G1, _C, _P, parallel=True, young=True, unified=True
    ),
    EventType.UNIFIED_G1_YOUNG_INITIAL_MARK: _blocking(
        _G1, _C, _P, parallel=True, young=True, unified=True
    ),
    EventType.UNIFIED_G1_YOUNG_PREPARE_MIXED: _blocking(
        _G1, _C, _P, parallel=True, young=True, unified=True
    ),
    EventType.UNIFIED_G1_MIXED_PAUSE: _blocking(
        _G1, _C, _P, parallel=True, young=True, old=True, unified=True
    ),
    EventType.UNIFIED_G1_CLEANUP: _blocking(_G1, _C, parallel=True, trigger=False, unified=True),
    EventType.UNIFIED_G1_FULL_GC: _blocking(_G1, _C, _P, parallel=True, old=True, unified=True),
    EventType.UNIFIED_G1_TO_SPACE_EXHAUSTED: _info(_G1, unified=True),
    EventType.UNIFIED_CONCURRENT: _concurrent(_G1, unified=True),
    EventType.UNIFIED_YOUNG: _blocking(_ANY, _C, young=True, unified=True),
    EventType.UNIFIED_OLD: _blocking(_ANY, _Y, _O, _C, _P, old=True, unified=True),
    EventType.SHENANDOAH_INIT_MARK: _blocking(_SHEN, parallel=True, trigger=False, times=False),
    EventType.SHENANDOAH_FINAL_MARK: _blocking(_SHEN, parallel=True, trigger=False, times=False),
    EventType.SHENANDOAH_INIT_UPDATE: _blocking(
        _SHEN, parallel=True, trigger=False, times=False
    ),
    EventType.SHENANDOAH_FINAL_UPDATE: _blocking(
        _SHEN, _C, parallel=True, trigger=False, times=False
    ),
    EventType.SHENANDOAH_FINAL_EVAC: _blocking(_SHEN, parallel=True, trigger=False, times=False),
    EventType.SHENANDOAH_FINAL_ROOTS: _blocking(
        _SHEN, parallel=True, trigger=False, times=False, unified=True
    ),
    EventType.SHENANDOAH_DEGENERATED_GC: _blocking(
        _SHEN, _C, parallel=True, old=True, trigger=False, times=False
    ),
    EventType.SHENANDOAH_FULL_GC: _blocking(
        _SHEN, _C, parallel=True, old=True, trigger=False, times=False
    ),
    EventType.SHENANDOAH_CONCURRENT: _concurrent(_SHEN, _C),
    EventType.SHENANDOAH_TRIGGER: _info(_SHEN, reportable=False),
    EventType.SHENANDOAH_CANCELLING_GC: _info(_SHEN),
    EventType.Z_MARK_START: _blocking(
        _ZGC, parallel=True, young=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_MARK_END: _blocking(
        _ZGC, parallel=True, young=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_RELOCATE_START: _blocking(
        _ZGC, parallel=True, young=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_MARK_START_OLD: _blocking(
        _ZGC, parallel=True, old=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_MARK_END_OLD: _blocking(
        _ZGC, parallel=True, old=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_RELOCATE_START_OLD: _blocking(
        _ZGC, parallel=True, old=True, trigger=False, times=False, unified=True
    ),
    EventType.Z_CONCURRENT: _concurrent(_ZGC, unified=True),
    EventType.Z_GARBAGE_COLLECTION: _info(_ZGC, _C, trigger=True, unified=True),
    EventType.Z_ALLOCATION_STALL: _info(_ZGC, unified=True),
    EventType.APPLICATION_STOPPED_TIME: EventTraits(kind=EventKind.SAFEPOINT),
    EventType.UNIFIED_SAFEPOINT: EventTraits(kind=EventKind.SAFEPOINT, unified=True),
    EventType.APPLICATION_CONCURRENT_TIME: _info(reportable=False),
    EventType.USING_SERIAL: _info(_SERIAL, unified=True),
    EventType.USING_PARALLEL: _info(_PARALLEL, unified=True),
    EventType.USING_CMS: _info(_CMS, unified=True),
    EventType.USING_G1: _info(_G1, unified=True),
    EventType.USING_SHENANDOAH: _info(_SHEN, unified=True),
    EventType.USING_Z: _info(_ZGC, unified=True),
    EventType.HEADER_COMMAND_LINE_FLAGS: _info(),
    EventType.HEADER_MEMORY: _info(),
    EventType.HEADER_VERSION: _info(),
    EventType.UNIFIED_HEADER: _info(unified=True),
    EventType.UNIFIED_BLANK_LINE: _info(reportable=False, unified=True),
    EventType.HEAP_AT_GC: _info(reportable=False),
    EventType.TENURING_DISTRIBUTION: _info(reportable=False),
    EventType.CLASS_UNLOADING: _info(reportable=False),
    EventType.GC_LOCKER: _info(),
    EventType.GC_OVERHEAD_LIMIT: _info(),
    EventType.THREAD_DUMP: _info(),
    EventType.VM_WARNING: _info(),
    EventType.UNKNOWN: _info(reportable=False),
}

BANNER_FAMILIES: dict[EventType, CollectorFamily] = {
    EventType.USING_SERIAL: CollectorFamily.SERIAL,
    EventType.USING_PARALLEL: CollectorFamily.PARALLEL,
    EventType.USING_CMS: CollectorFamily.CMS,
    EventType.USING_G1: CollectorFamily.G1,
    EventType.USING_SHENANDOAH: CollectorFamily.SHENANDOAH,
    EventType.USING_Z: CollectorFamily.Z,
}

# ============================================================
# EVENTS
# ============================================================

_REGION_FIELDS: dict[Region, tuple[str, str, str]] = {
    region: (f"{region.value}_begin", f"{region.value}_end", f"{region.value}_space")
    for region in Region
}


class LogEvent(BaseModel):
    """One recognized log record. Timestamps are ms since JVM start."""

    model_config = ConfigDict(frozen=True)

    event_type: EventType
    log_entry: str
    timestamp: MillisValue | None = None
    # decorator datestamp as logged
    datestamp: str | None = None
    duration: MicrosValue | None = None
    family: CollectorFamily = CollectorFamily.UNKNOWN
    gc_id: int | None = None

    trigger: GcTrigger | None = None
    safepoint_trigger: SafepointTrigger | None = None

    young_begin: KilobytesValue | None = None
    young_end: KilobytesValue | None = None
    young_space: KilobytesValue | None = None
    old_begin: KilobytesValue | None = None
    old_end: KilobytesValue | None = None
    old_space: KilobytesValue | None = None
    combined_begin: KilobytesValue | None = None
    combined_end: KilobytesValue | None = None
    combined_space: KilobytesValue | None = None
    perm_begin: KilobytesValue | None = None
    perm_end: KilobytesValue | None = None
    perm_space: KilobytesValue | None = None

    time_user: CentisValue | None = None
    time_sys: CentisValue | None = None
    time_real: CentisValue | None = None

    other_time: MicrosValue | None = None
    to_space_exhausted: bool = False
    evacuation_failed: bool = False

    @model_validator(mode="after")
    def _check_traits(self) -> LogEvent:
        traits = self.event_type.traits
        for region, names in _REGION_FIELDS.items():
            if region in traits.regions:
                continue
            if any(getattr(self, name) is not None for name in names):
                raise CatalogueError(f"{self.event_type.value} does not carry {region.value} data")
        if not traits.times and (
            self.time_user is not None or self.time_sys is not None or self.time_real is not None
        ):
            raise CatalogueError(f"{self.event_type.value} does not carry CPU times")
        if not traits.trigger and self.trigger is not None:
            raise CatalogueError(f"{self.event_type.value} does not carry a trigger")
        return self

    @property
    def traits(self) -> EventTraits:
        return self.event_type.traits

    @property
    def name(self) -> str:
        return self.event_type.value

    @property
    def kind(self) -> EventKind:
        return self.event_type.traits.kind

    @property
    def is_blocking(self) -> bool:
        return self.kind is EventKind.BLOCKING

    @property
    def end_timestamp(self) -> MillisValue | None:
        if self.timestamp is None:
            return None
        if self.duration is None:
            return self.timestamp
        return self.timestamp + micros_to_millis(self.duration)

    @property
    def parallelism(self) -> int | None:
        return calc_parallelism(self.time_user, self.time_sys, self.time_real)

    @property
    def inverted_parallelism(self) -> bool:
        return is_inverted_parallelism(self.time_user, self.time_sys, self.time_real)

    def region_values(
        self, region: Region
    ) -> tuple[KilobytesValue | None, KilobytesValue | None, KilobytesValue | None]:
        """(occupancy before, occupancy after, capacity) for a region."""
        begin, end, space = _REGION_FIELDS[region]
        return getattr(self, begin), getattr(self, end), getattr(self, space)


class CanonicalLine(BaseModel):
    """A preprocessed line ready for matching."""

    model_config = ConfigDict(frozen=True)

    text: str
    family: CollectorFamily = CollectorFamily.UNKNOWN
    key: str | None = None
    # Set when a buffered record was never completed
    unidentified: bool = False


# ============================================================
# FINDINGS
# ============================================================


class AnalysisLevel(str, Enum):
    ERROR = "error"
    WARN = "warn"
    INFO = "info"

    @classmethod
    def from_key(cls, key: str) -> AnalysisLevel:
        prefix = key.split(".", 1)[0]
        try:
            return cls(prefix)
        except ValueError:
            raise InvalidAnalysisLevelError(
                f"Finding key '{key}' has invalid level '{prefix}'"
            ) from None


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: AnalysisLevel
    key: str
    message: str


# ============================================================
# RUN STATISTICS
# ============================================================


class RegionMaxima(BaseModel):
    """Largest observed values for one memory region; None means no data."""

    model_config = ConfigDict(frozen=True)

    space: KilobytesValue | None = None
    occupancy: KilobytesValue | None = None
    after_gc: KilobytesValue | None = None


class SafepointSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    trigger: SafepointTrigger
    count: int
    pause_total: MicrosValue
    pause_max: MicrosValue


class Bottleneck(BaseModel):
    """Two consecutive blocking events whose combined throughput is too low."""

    model_config = ConfigDict(frozen=True)

    prior: LogEvent
    event: LogEvent
    throughput: int


class JvmRun(BaseModel):
    """Aggregated, read-only view of one analyzed log."""

    model_config = ConfigDict(frozen=True)

    events: tuple[LogEvent, ...] = ()
    event_type_counts: dict[EventType, int] = Field(default_factory=dict)
    blocking_count: int = 0
    concurrent_count: int = 0
    safepoint_count: int = 0

    gc_pause_total: MicrosValue = 0
    gc_pause_max: MicrosValue | None = None
    gc_pause_max_event: LogEvent | None = None
    stopped_total: MicrosValue = 0
    stopped_max: MicrosValue | None = None
    safepoint_summaries: tuple[SafepointSummary, ...] = ()

    first_event: LogEvent | None = None
    last_event: LogEvent | None = None
    start_timestamp: MillisValue | None = None
    end_timestamp: MillisValue | None = None

    gc_throughput: int | None = None
    stopped_throughput: int | None = None
    gc_stopped_ratio: int | None = None

    parallel_count: int = 0
    inverted_parallelism_count: int = 0
    worst_inverted_parallelism_event: LogEvent | None = None

    blocking_maxima: dict[Region, RegionMaxima] = Field(default_factory=dict)
    non_blocking_maxima: dict[Region, RegionMaxima] = Field(default_factory=dict)
    new_ratio: int | None = None

    collector_families: tuple[CollectorFamily, ...] = ()
    trigger_counts: dict[GcTrigger, int] = Field(default_factory=dict)
    bottlenecks: tuple[Bottleneck, ...] = ()
    throughput_threshold: int = 90
    out_of_order_count: int = 0
    first_out_of_order_event: LogEvent | None = None
    evacuation_failure_count: int = 0
    perm_gen_seen: bool = False

    jdk_version: str | None = None
    physical_memory_kb: KilobytesValue | None = None
    jvm_options: str | None = None

    unidentified_lines: tuple[str, ...] = ()
    unidentified_count: int = 0

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def run_duration(self) -> MillisValue | None:
        if self.start_timestamp is None or self.end_timestamp is None:
            return None
        return self.end_timestamp - self.start_timestamp

    @property
    def worst_inverted_parallelism(self) -> int | None:
        if self.worst_inverted_parallelism_event is None:
            return None
        return self.worst_inverted_parallelism_event.parallelism

    def has_event(self, *event_types: EventType) -> bool:
        return any(self.event_type_counts.get(event_type, 0) for event_type in event_types)

    def trigger_count(self, *triggers: GcTrigger) -> int:
        return sum(self.trigger_counts.get(trigger, 0) for trigger in triggers)

    def has_family(self, family: CollectorFamily) -> bool:
        return family in self.collector_families

    def maxima(self, region: Region, *, blocking: bool = True) -> RegionMaxima:
        source = self.blocking_maxima if blocking else self.non_blocking_maxima
        return source.get(region, RegionMaxima())
