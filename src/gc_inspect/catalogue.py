"""Ordered catalogue of GC log line shapes.

The catalogue is built once at import time. Matching walks it in order and the
first shape whose pattern matches wins: several shapes are textual supersets of
later ones (``Pause Young (Mixed)`` before ``Pause Young``, collector specific
shapes before the generic unified fallbacks), so the order is part of the
contract.

Some unified lines are identical across collectors (``Pause Young
(Allocation Failure) 1M->0M(2M) 1.5ms`` is logged by Serial, Parallel and
CMS). Patterns for those carry a ``family`` and are only tried when the
preprocessor's collector hint agrees; otherwise the generic shape wins.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, ValidationError

from gc_inspect.errors import CatalogueError
from gc_inspect.models import CollectorFamily, EventType, LogEvent, Region
from gc_inspect.patterns import (
    DURATION_MS,
    DURATION_SECS,
    END,
    LEGACY_DECORATOR,
    LEGACY_STAMP,
    LEGACY_TIMES,
    METASPACE,
    REGION_NC,
    SECS_NC,
    SIZE,
    UNIFIED_DECORATOR,
    UNIFIED_PREFIX,
    UNIFIED_TIMES,
    millis,
    region,
    secs,
    size,
)
from gc_inspect.triggers import G1_TRIGGERS, GcTrigger, SafepointTrigger, trigger_regex
from gc_inspect.util import (
    millis_to_micros,
    nanos_to_micros,
    parse_size_to_kb,
    resolve_timestamp,
    seconds_to_centis,
    seconds_to_micros,
    start_from_end,
    to_int,
)

logger = logging.getLogger(__name__)

Groups: TypeAlias = Mapping[str, str | None]

TRIGGER = trigger_regex()
G1_TRIGGER = trigger_regex(G1_TRIGGERS)

# ============================================================
# SHAPE DEFINITIONS
# ============================================================


class ShapePattern(BaseModel):
    """One compiled alternative for a shape."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    regex: re.Pattern[str]
    # Unified lines logged on completion carry the end time in their decorator
    end_stamped: bool = False
    # Only tried when the collector hint equals this family
    family: CollectorFamily | None = None


class Shape(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event_type: EventType
    patterns: tuple[ShapePattern, ...]
    # Cheap substring test; the shape is skipped unless one of these is present
    guard: tuple[str, ...] = ()
    derive: Callable[[Groups], dict[str, Any]] | None = None

    def match(
        self, line: str, hint: CollectorFamily
    ) -> tuple[ShapePattern, re.Match[str]] | None:
        if self.guard and not any(token in line for token in self.guard):
            return None
        for pattern in self.patterns:
            if pattern.family is not None and pattern.family is not hint:
                continue
            if match := pattern.regex.match(line):
                return pattern, match
        return None


def _pattern(
    *parts: str, end_stamped: bool = False, family: CollectorFamily | None = None
) -> ShapePattern:
    return ShapePattern(
        regex=re.compile("".join(parts) + END), end_stamped=end_stamped, family=family
    )


def _shape(
    event_type: EventType,
    *patterns: ShapePattern,
    guard: tuple[str, ...] = (),
    derive: Callable[[Groups], dict[str, Any]] | None = None,
) -> Shape:
    return Shape(event_type=event_type, patterns=patterns, guard=guard, derive=derive)


# ============================================================
# DERIVED FIELDS
# ============================================================


def _kb(groups: Groups, name: str) -> int | None:
    value = groups.get(name)
    if value is None:
        return None
    return parse_size_to_kb(value, groups.get(f"{name}_unit") or "K")


def _sum(*values: int | None) -> int | None:
    if any(value is None for value in values):
        return None
    return sum(value for value in values if value is not None)


def _g1_legacy_young(groups: Groups) -> dict[str, Any]:
    """Young generation is eden plus survivors in legacy G1 detail lines."""
    if groups.get("eden_begin") is None:
        return {}
    survivors_after = _kb(groups, "surv_end")
    return {
        "young_begin": _sum(_kb(groups, "eden_begin"), _kb(groups, "surv_begin")),
        "young_end": _sum(_kb(groups, "eden_end"), survivors_after),
        "young_space": _sum(_kb(groups, "eden_space"), survivors_after),
    }


def _occupancy_only(groups: Groups) -> dict[str, Any]:
    """Marking pauses report one occupancy; it is both before and after."""
    derived: dict[str, Any] = {}
    for region_name in Region:
        begin = _kb(groups, f"{region_name.value}_begin")
        if begin is not None and groups.get(f"{region_name.value}_end") is None:
            derived[f"{region_name.value}_end"] = begin
    return derived


# ============================================================
# COMMON FRAGMENTS
# ============================================================

_D = LEGACY_DECORATOR
_S = LEGACY_STAMP
_U = UNIFIED_PREFIX

_EVACUATION_FAILURE = r"(?P<evacuation_failed> \(Evacuation Failure\))?"
_COMBINED_TAIL = rf"{region('combined')} {millis()}"
_OPTIONAL_TIMES = rf"(?:{UNIFIED_TIMES})?"
_METASPACE = rf"(?: Metaspace: {METASPACE})?"

_SERIAL_FRAGMENTS = rf"DefNew: {region('young')} Tenured: {region('old')}{_METASPACE}"
_PARALLEL_FRAGMENTS = (
    rf"PSYoungGen: {region('young')}(?: Eden: {REGION_NC} From: {REGION_NC})? "
    rf"(?:ParOldGen|PSOldGen): {region('old')}{_METASPACE}"
)
_CMS_FRAGMENTS = rf"ParNew: {region('young')} CMS: {region('old')}{_METASPACE}"
_CMS_FULL_FRAGMENTS = rf"(?:ParNew: {region('young')} )?CMS: {region('old')}{_METASPACE}"
_G1_FRAGMENTS = (
    rf"(?:Other: (?P<other_ms>{DURATION_MS})ms )?Humongous regions: \d{{1,10}}->\d{{1,10}}"
    rf"{_METASPACE}"
)


def _pause(
    head: str,
    fragments: str | None = None,
    *,
    plain: bool = True,
    family: CollectorFamily | None = None,
) -> tuple[ShapePattern, ...]:
    """Patterns for a unified pause.

    The preprocessed form splices heap fragments (and CPU times) after the
    head and is stamped with the start line's decorator. The plain form is
    logged on completion, so without CPU times its decorator is the end time.
    """
    patterns: list[ShapePattern] = []
    if fragments is not None:
        patterns.append(_pattern(_U, head, " ", fragments, " ", _COMBINED_TAIL, _OPTIONAL_TIMES))
    if plain:
        patterns.append(_pattern(_U, head, " ", _COMBINED_TAIL, UNIFIED_TIMES, family=family))
        patterns.append(_pattern(_U, head, " ", _COMBINED_TAIL, end_stamped=True, family=family))
    return tuple(patterns)


def _g1_legacy_pause(kind: str) -> tuple[ShapePattern, ...]:
    head = (
        rf"{_D}\[GC pause (?:\((?P<trigger>{TRIGGER})\) )?{kind}"
        r"(?: \((?P<trigger2>to-space exhausted|to-space overflow)\))?"
    )
    eden = (
        rf"\[Eden: {size('eden_begin')}\({SIZE}\)->{size('eden_end')}\({size('eden_space')}\) "
        rf"Survivors: {size('surv_begin')}->{size('surv_end')} Heap: {region('combined')}\]"
    )
    return (
        _pattern(head, rf", {secs()}\]", eden, LEGACY_TIMES),
        _pattern(head, rf" {region('combined')}, {secs()}\]", LEGACY_TIMES),
    )


_SHENANDOAH_OPTIONS = r"(?: \((?:process weakrefs|update refs|unload classes)\))*"
_SHENANDOAH_PHASES = (
    r"reset|marking|precleaning|evacuation|update references|update thread roots|cleanup"
    r"|uncommit|class unloading|weak roots|strong roots|thread roots|weak references"
    r"|mark roots|roots"
)
_DEGENERATED_POINT = r"\((?:Outside of Cycle|Mark|Evacuation|Update Refs|Roots)\)"


def _shenandoah_pause(name: str, memory: str = "") -> tuple[ShapePattern, ...]:
    return (
        _pattern(_U, name, memory, " ", millis(), end_stamped=True),
        _pattern(_D, r"\[", name, memory, ", ", millis(), r"\]"),
    )


_Z_MODE = r"(?: \((?:Major|Minor)\))?"
_Z_UNIQUE_PHASES = (
    r"Process Non-Strong(?: References)?|Reset Relocation Set|Select Relocation Set|Relocate"
    r"|Remap Roots(?: Colored| Uncolored)?|Remap Remembered|Mark Roots(?: Colored| Uncolored)?"
    r"|Mark Follow|Mark Continue|Mark Free|Destroy Detached Pages"
)

_CONCURRENT_TAIL = rf"(?: \({DURATION_SECS}s(?:, {DURATION_SECS}s)?\))?(?: {millis()})?"
_G1_CONCURRENT_PHASES = (
    r"Cycle|Undo Cycle|Clear Claimed Marks|Scan Root Regions|Mark From Roots|Mark Abort"
    r"|Mark Cycle|Mark|Preclean|Rebuild Remembered Sets(?: and Scrub Regions)?"
    r"|Cleanup for Next Mark|Create Live Data|Complete Cleanup|Clear Bitmap|Cleanup"
    r"|String Deduplication"
)

_VM = r"(?:OpenJDK|Java HotSpot\(TM\)) (?:64-Bit )?(?:Server|Client) VM"

_UNIFIED_HEADERS = (
    r"Version: .+|CPUs: \d+ total, \d+ available|Memory: \d+[KMG]"
    r"|Large Page Support: .+|NUMA Support: .+|Compressed Oops: .+|Heap Region Size: \d+[KMG]"
    r"|Heap (?:Min|Initial|Max) Capacity: \d+[KMG]|Pre-touch: .+|Parallel Workers: \d+"
    r"|Concurrent Workers: \d+|Concurrent Refinement Workers: \d+|Periodic GC: .+"
    r"|CardTable entry size: \d+|Card Set container configuration: .+|Alignments: .+"
    r"|Heap address: .+|Initialize mark stack with \d+ chunks, maximum \d+"
    r"|Humongous object threshold: .+|Max TLAB size: .+|(?:Soft )?Max Capacity: .+"
    r"|Min Capacity: .+|Initial Capacity: .+|Medium Page Size: .+|Address Space (?:Size|Type): .+"
    r"|Runtime Workers: .+|GC Workers(?: for \w+ Generation)?: .+|Heuristics: .+|Mode: .+"
    r"|Heuristics ergonomically sets .+|Regions: .+|Humongous object threshold: .+"
    r"|CDS archive\(s\) .+|Compressed class space .+|Narrow klass .+|Heap Backing .+"
    r"|Initializing The Z Garbage Collector|Safepointing mechanism: .+"
)

_HEAP_BODY = (
    r"\s*(?:\{?Heap(?: (?:before|after) (?:gc|GC) invocations=\d+(?: \(full \d+\))?:)?"
    r"|\}"
    r"|(?:PSYoungGen|ParOldGen|PSOldGen|PSPermGen|par new generation"
    r"|concurrent mark-sweep generation|concurrent-mark-sweep perm gen|def new generation"
    r"|tenured generation|compacting perm gen|garbage-first heap|Metaspace|class space"
    r"|eden space|from space|to +space|object space|the space|region size|Shenandoah Heap"
    r"|ZHeap|ro space|rw space)\b.*"
    r"|\d+ x \d+[KMG] regions|\d+[KMG] max, \d+[KMG] soft max, .+|Status: .+"
    r"|Reserved region:|Collection set:|- \[.+\]|- \w+ .+)"
)

# ============================================================
# THE CATALOGUE
# ============================================================

CATALOGUE: tuple[Shape, ...] = (
    # ---- headers and banners ----
    _shape(
        EventType.HEADER_COMMAND_LINE_FLAGS,
        _pattern(r"CommandLine flags: (?P<options>.+)"),
        guard=("CommandLine flags: ",),
    ),
    _shape(
        EventType.HEADER_MEMORY,
        _pattern(r"Memory: \d+k page, physical \d+k\(\d+k free\)(?:, swap \d+k\(\d+k free\))?"),
        guard=("Memory: ",),
    ),
    _shape(EventType.HEADER_VERSION, _pattern(_VM, r" \(.+\) for .+"), guard=(" VM (",)),
    _shape(EventType.VM_WARNING, _pattern(_D, _VM, r" warning: .+"), guard=("VM warning: ",)),
    _shape(EventType.THREAD_DUMP, _pattern(r"Full thread dump .+"), guard=("Full thread dump",)),
    _shape(EventType.USING_SERIAL, _pattern(_U, "Using Serial"), guard=("Using Serial",)),
    _shape(EventType.USING_PARALLEL, _pattern(_U, "Using Parallel"), guard=("Using Parallel",)),
    _shape(
        EventType.USING_CMS,
        _pattern(_U, "Using Concurrent Mark Sweep"),
        guard=("Using Concurrent Mark Sweep",),
    ),
    _shape(EventType.USING_G1, _pattern(_U, "Using G1"), guard=("Using G1",)),
    _shape(
        EventType.USING_SHENANDOAH, _pattern(_U, "Using Shenandoah"), guard=("Using Shenandoah",)
    ),
    _shape(
        EventType.USING_Z,
        _pattern(_U, r"Using The Z Garbage Collector(?: \(Generational\))?"),
        guard=("Using The Z Garbage Collector",),
    ),
    # ---- legacy Serial ----
    _shape(
        EventType.SERIAL_OLD,
        _pattern(
            _D,
            rf"\[(?:Full )?GC(?: \((?P<trigger>{TRIGGER})\))? ",
            _S,
            r"(?:\[DefNew(?: \((?P<trigger2>promotion failed)\))? ?: ",
            region("young"),
            rf", {SECS_NC}\]",
            _S,
            r")?\[Tenured: ",
            region("old"),
            rf", {SECS_NC}\] ",
            region("combined"),
            r", \[(?:Metaspace|Perm ?): ",
            region("perm"),
            rf"\], {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[Tenured",),
    ),
    _shape(
        EventType.SERIAL_NEW,
        _pattern(
            _D,
            rf"\[GC(?: \((?P<trigger>{TRIGGER})\))? ",
            _S,
            r"\[DefNew: ",
            region("young"),
            rf", {SECS_NC}\] ",
            region("combined"),
            rf", {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[DefNew",),
    ),
    # ---- legacy Parallel ----
    _shape(
        EventType.PARALLEL_COMPACTING_OLD,
        _pattern(
            _D,
            rf"\[Full GC(?: \((?P<trigger>{TRIGGER})\))? \[PSYoungGen: ",
            region("young"),
            r"\] \[ParOldGen: ",
            region("old"),
            r"\] ",
            region("combined"),
            r",? \[(?:PSPermGen|Metaspace): ",
            region("perm"),
            rf"\], {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[ParOldGen",),
    ),
    _shape(
        EventType.PARALLEL_SERIAL_OLD,
        _pattern(
            _D,
            rf"\[Full GC(?: \((?P<trigger>{TRIGGER})\))? \[PSYoungGen: ",
            region("young"),
            r"\] \[PSOldGen: ",
            region("old"),
            r"\] ",
            region("combined"),
            r",? \[(?:PSPermGen|Metaspace): ",
            region("perm"),
            rf"\], {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[PSOldGen",),
    ),
    _shape(
        EventType.PARALLEL_SCAVENGE,
        _pattern(
            _D,
            rf"\[GC(?:--)?(?: \((?P<trigger>{TRIGGER})\))? \[PSYoungGen: ",
            region("young"),
            r"\] ",
            region("combined"),
            rf", {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[PSYoungGen",),
    ),
    # ---- legacy CMS ----
    _shape(
        EventType.CMS_SERIAL_OLD,
        _pattern(
            _D,
            rf"\[(?:Full )?GC(?: \((?P<trigger>{TRIGGER})\))? ",
            _S,
            r"(?:\[ParNew(?: \((?P<trigger2>promotion failed)\))?: ",
            region("young"),
            rf", {SECS_NC}\]",
            _S,
            r")?\[CMS(?: \((?P<trigger3>concurrent mode (?:failure|interrupted))\))?: ",
            region("old"),
            rf", {SECS_NC}\] ",
            region("combined"),
            r", \[(?:Metaspace|CMS Perm ): ",
            region("perm"),
            rf"\], {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[CMS",),
    ),
    _shape(
        EventType.CMS_INITIAL_MARK,
        _pattern(
            _D,
            r"\[GC(?: \((?P<trigger>CMS Initial Mark)\))? \[1 CMS-initial-mark: ",
            r"(?P<old_begin>\d{1,10})K\((?P<old_space>\d{1,10})K\)\] ",
            r"(?P<combined_begin>\d{1,10})K\((?P<combined_space>\d{1,10})K\), ",
            secs(),
            r"\]",
            LEGACY_TIMES,
        ),
        guard=("CMS-initial-mark",),
        derive=_occupancy_only,
    ),
    _shape(
        EventType.CMS_REMARK,
        _pattern(
            _D,
            r"\[GC(?: \((?P<trigger>CMS Final Remark)\))? ",
            r"\[YG occupancy: (?P<young_begin>\d{1,10}) K \((?P<young_space>\d{1,10}) K\)\]",
            r".*\[1 CMS-remark: (?P<old_begin>\d{1,10})K\((?P<old_space>\d{1,10})K\)\] ",
            r"(?P<combined_begin>\d{1,10})K\((?P<combined_space>\d{1,10})K\), ",
            secs(),
            r"\]",
            LEGACY_TIMES,
        ),
        guard=("CMS-remark",),
        derive=_occupancy_only,
    ),
    _shape(
        EventType.PAR_NEW,
        _pattern(
            _D,
            rf"\[GC(?: \((?P<trigger>{TRIGGER})\))? ",
            _S,
            r"\[ParNew: ",
            region("young"),
            rf", {SECS_NC}\] ",
            region("combined"),
            rf", {secs()}\]",
            LEGACY_TIMES,
        ),
        guard=("[ParNew",),
    ),
    _shape(
        EventType.CMS_CONCURRENT,
        _pattern(
            _D,
            r"\[CMS-concurrent-(?:mark|preclean|abortable-preclean|sweep|reset)",
            rf"(?:-start\]|: {DURATION_SECS}/(?P<duration_secs>{DURATION_SECS}) secs\])",
            LEGACY_TIMES,
        ),
        _pattern(r"\s*CMS: abort preclean due to time.*"),
        guard=("CMS-concurrent", "abort preclean"),
    ),
    # ---- legacy G1 ----
    _shape(
        EventType.G1_YOUNG_INITIAL_MARK,
        *_g1_legacy_pause(r"\(young\) \(initial-mark\)"),
        guard=("(initial-mark)",),
        derive=_g1_legacy_young,
    ),
    _shape(
        EventType.G1_MIXED_PAUSE,
        *_g1_legacy_pause(r"\(mixed\)"),
        guard=("(mixed)",),
        derive=_g1_legacy_young,
    ),
    _shape(
        EventType.G1_YOUNG_PAUSE,
        *_g1_legacy_pause(r"\(young\)"),
        guard=("[GC pause",),
        derive=_g1_legacy_young,
    ),
    _shape(
        EventType.G1_REMARK,
        _pattern(_D, rf"\[GC remark(?: .*)?, {secs()}\]", LEGACY_TIMES),
        guard=("[GC remark",),
    ),
    _shape(
        EventType.G1_CLEANUP,
        _pattern(_D, rf"\[GC cleanup(?: {region('combined')})?, {secs()}\]", LEGACY_TIMES),
        guard=("[GC cleanup",),
    ),
    _shape(
        EventType.G1_CONCURRENT,
        _pattern(
            _D,
            r"\[GC concurrent-(?:root-region-scan|mark|cleanup|string-deduplication"
            r"|mark-reset-for-overflow)(?:-start|-end|-abort)?",
            rf"(?:, (?:[^\]]*, )?(?P<duration_secs>{DURATION_SECS}) secs|, [^\]]*)?\]",
            LEGACY_TIMES,
        ),
        guard=("[GC concurrent-",),
    ),
    _shape(
        EventType.G1_FULL_GC_SERIAL,
        _pattern(
            _D,
            rf"\[Full GC(?: \((?P<trigger>{TRIGGER})\))? {{1,2}}",
            region("combined"),
            rf", {secs()}\]",
            r"(?:\[Eden: [^\]]*\](?:, \[(?:Metaspace|Perm): ",
            region("perm"),
            r"\])?)?",
            LEGACY_TIMES,
        ),
        guard=("[Full GC",),
    ),
    # ---- unified G1 ----
    _shape(
        EventType.UNIFIED_G1_MIXED_PAUSE,
        *_pause(
            rf"Pause Young \(Mixed\) \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}",
            _G1_FRAGMENTS,
        ),
        *_pause(rf"Pause Mixed \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}", _G1_FRAGMENTS),
        guard=("Pause Young (Mixed)", "Pause Mixed"),
    ),
    _shape(
        EventType.UNIFIED_G1_YOUNG_PREPARE_MIXED,
        *_pause(
            rf"Pause Young \(Prepare Mixed\) \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}",
            _G1_FRAGMENTS,
        ),
        guard=("Pause Young (Prepare Mixed)",),
    ),
    _shape(
        EventType.UNIFIED_G1_YOUNG_INITIAL_MARK,
        *_pause(
            rf"Pause Young \(Concurrent Start\) \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}",
            _G1_FRAGMENTS,
        ),
        *_pause(
            rf"Pause Initial Mark \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}", _G1_FRAGMENTS
        ),
        guard=("Pause Young (Concurrent Start)", "Pause Initial Mark ("),
    ),
    _shape(
        EventType.UNIFIED_G1_YOUNG_PAUSE,
        *_pause(
            rf"Pause Young \(Normal\) \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}",
            _G1_FRAGMENTS,
        ),
        *_pause(rf"Pause Young \((?P<trigger>{G1_TRIGGER})\){_EVACUATION_FAILURE}"),
        *_pause(
            rf"Pause Young \((?P<trigger>{TRIGGER})\){_EVACUATION_FAILURE}",
            _G1_FRAGMENTS,
            family=CollectorFamily.G1,
        ),
        guard=("Pause Young",),
    ),
    _shape(
        EventType.UNIFIED_G1_FULL_GC,
        *_pause(rf"Pause Full \((?P<trigger>{TRIGGER})\)", _G1_FRAGMENTS, plain=False),
        *_pause(rf"Pause Full \((?P<trigger>{G1_TRIGGER})\)"),
        *_pause(rf"Pause Full \((?P<trigger>{TRIGGER})\)", family=CollectorFamily.G1),
        guard=("Pause Full",),
    ),
    _shape(EventType.UNIFIED_G1_CLEANUP, *_pause("Pause Cleanup"), guard=("Pause Cleanup",)),
    _shape(EventType.UNIFIED_REMARK, *_pause("Pause Remark"), guard=("Pause Remark",)),
    _shape(
        EventType.UNIFIED_CMS_INITIAL_MARK,
        *_pause("Pause Initial Mark"),
        guard=("Pause Initial Mark",),
    ),
    _shape(
        EventType.UNIFIED_G1_TO_SPACE_EXHAUSTED,
        _pattern(_U, "To-space exhausted"),
        guard=("To-space exhausted",),
    ),
    # ---- unified Serial / Parallel / CMS ----
    _shape(
        EventType.UNIFIED_SERIAL_NEW,
        *_pause(
            rf"Pause Young \((?P<trigger>{TRIGGER})\)",
            _SERIAL_FRAGMENTS,
            family=CollectorFamily.SERIAL,
        ),
        guard=("Pause Young",),
    ),
    _shape(
        EventType.UNIFIED_SERIAL_OLD,
        *_pause(
            rf"Pause Full \((?P<trigger>{TRIGGER})\)",
            _SERIAL_FRAGMENTS,
            family=CollectorFamily.SERIAL,
        ),
        guard=("Pause Full",),
    ),
    _shape(
        EventType.UNIFIED_PARALLEL_SCAVENGE,
        *_pause(
            rf"Pause Young \((?P<trigger>{TRIGGER})\)",
            _PARALLEL_FRAGMENTS,
            family=CollectorFamily.PARALLEL,
        ),
        guard=("Pause Young",),
    ),
    _shape(
        EventType.UNIFIED_PARALLEL_COMPACTING_OLD,
        *_pause(
            rf"Pause Full \((?P<trigger>{TRIGGER})\)",
            _PARALLEL_FRAGMENTS,
            family=CollectorFamily.PARALLEL,
        ),
        guard=("Pause Full",),
    ),
    _shape(
        EventType.UNIFIED_PAR_NEW,
        *_pause(
            rf"Pause Young \((?P<trigger>{TRIGGER})\)",
            _CMS_FRAGMENTS,
            family=CollectorFamily.CMS,
        ),
        guard=("Pause Young",),
    ),
    # ---- Shenandoah pauses ----
    _shape(
        EventType.SHENANDOAH_INIT_MARK,
        *_shenandoah_pause(rf"Pause Init Mark{_SHENANDOAH_OPTIONS}"),
        guard=("Pause Init Mark",),
    ),
    _shape(
        EventType.SHENANDOAH_FINAL_MARK,
        *_shenandoah_pause(rf"Pause Final Mark{_SHENANDOAH_OPTIONS}", rf"(?: {REGION_NC})?"),
        guard=("Pause Final Mark",),
    ),
    _shape(
        EventType.SHENANDOAH_INIT_UPDATE,
        *_shenandoah_pause("Pause Init Update Refs"),
        guard=("Pause Init Update Refs",),
    ),
    _shape(
        EventType.SHENANDOAH_FINAL_UPDATE,
        *_shenandoah_pause("Pause Final Update Refs", rf"(?: {region('combined')})?"),
        guard=("Pause Final Update Refs",),
    ),
    _shape(
        EventType.SHENANDOAH_FINAL_EVAC,
        *_shenandoah_pause("Pause Final Evac"),
        guard=("Pause Final Evac",),
    ),
    _shape(
        EventType.SHENANDOAH_FINAL_ROOTS,
        _pattern(_U, "Pause Final Roots ", millis(), end_stamped=True),
        guard=("Pause Final Roots",),
    ),
    _shape(
        EventType.SHENANDOAH_DEGENERATED_GC,
        *_shenandoah_pause(rf"Pause Degenerated GC {_DEGENERATED_POINT}", f" {region('combined')}"),
        guard=("Pause Degenerated GC",),
    ),
    _shape(
        EventType.SHENANDOAH_FULL_GC,
        *_shenandoah_pause("Pause Full", f" {region('combined')}"),
        guard=("Pause Full",),
    ),
    # ---- Z pauses ----
    _shape(
        EventType.Z_MARK_START_OLD,
        _pattern(_U, rf"O: Pause Mark Start{_Z_MODE} ", millis(), end_stamped=True),
        guard=("O: Pause Mark Start",),
    ),
    _shape(
        EventType.Z_MARK_END_OLD,
        _pattern(_U, rf"O: Pause Mark End{_Z_MODE} ", millis(), end_stamped=True),
        guard=("O: Pause Mark End",),
    ),
    _shape(
        EventType.Z_RELOCATE_START_OLD,
        _pattern(_U, rf"O: Pause Relocate Start{_Z_MODE} ", millis(), end_stamped=True),
        guard=("O: Pause Relocate Start",),
    ),
    _shape(
        EventType.Z_MARK_START,
        _pattern(_U, rf"(?:Y: )?Pause Mark Start{_Z_MODE} ", millis(), end_stamped=True),
        guard=("Pause Mark Start",),
    ),
    _shape(
        EventType.Z_MARK_END,
        _pattern(_U, rf"(?:Y: )?Pause Mark End{_Z_MODE} ", millis(), end_stamped=True),
        guard=("Pause Mark End",),
    ),
    _shape(
        EventType.Z_RELOCATE_START,
        _pattern(_U, rf"(?:Y: )?Pause Relocate Start{_Z_MODE} ", millis(), end_stamped=True),
        guard=("Pause Relocate Start",),
    ),
    _shape(
        EventType.Z_GARBAGE_COLLECTION,
        _pattern(
            _U,
            rf"(?:Garbage|Major|Minor) Collection \((?P<trigger>{TRIGGER})\) ",
            size("combined_begin"),
            r"\(\d{1,3}%\)->",
            size("combined_end"),
            r"\(\d{1,3}%\)",
            rf"(?: (?P<duration_secs>{DURATION_SECS})s)?",
        ),
        guard=("Collection (",),
    ),
    _shape(
        EventType.Z_ALLOCATION_STALL,
        _pattern(_U, r"Allocation Stall \([^)]+\) ", millis()),
        guard=("Allocation Stall (",),
    ),
    # ---- unified fallbacks when the collector is not known ----
    _shape(
        EventType.UNIFIED_YOUNG,
        *_pause(rf"Pause Young \((?P<trigger>{TRIGGER})\)"),
        guard=("Pause Young",),
    ),
    _shape(
        EventType.UNIFIED_OLD,
        *_pause(rf"Pause Full \((?P<trigger>{TRIGGER})\)", _CMS_FULL_FRAGMENTS),
        guard=("Pause Full",),
    ),
    # ---- concurrent phases ----
    _shape(
        EventType.SHENANDOAH_CONCURRENT,
        _pattern(
            _U,
            rf"Concurrent (?:{_SHENANDOAH_PHASES}){_SHENANDOAH_OPTIONS}",
            rf"(?: {region('combined')})? ",
            millis(),
        ),
        _pattern(
            _D,
            rf"\[Concurrent (?:{_SHENANDOAH_PHASES}){_SHENANDOAH_OPTIONS}",
            rf"(?: {region('combined')})?, ",
            millis(),
            r"\]",
        ),
        guard=("Concurrent ",),
    ),
    _shape(
        EventType.Z_CONCURRENT,
        _pattern(_U, rf"[YO]: Concurrent (?:{_Z_UNIQUE_PHASES}|Mark|Reset) ", millis()),
        _pattern(_U, rf"Concurrent (?:{_Z_UNIQUE_PHASES}) ", millis()),
        _pattern(_U, r"Concurrent (?:Mark|Reset) ", millis(), family=CollectorFamily.Z),
        guard=("Concurrent ",),
    ),
    _shape(
        EventType.UNIFIED_CMS_CONCURRENT,
        _pattern(_U, r"Concurrent (?:Abortable Preclean|Sweep|Reset)", _CONCURRENT_TAIL),
        _pattern(_U, r"Concurrent (?:Mark|Preclean)", _CONCURRENT_TAIL, family=CollectorFamily.CMS),
        guard=("Concurrent ",),
    ),
    _shape(
        EventType.UNIFIED_CONCURRENT,
        _pattern(_U, rf"Concurrent (?:{_G1_CONCURRENT_PHASES})", _CONCURRENT_TAIL),
        guard=("Concurrent ",),
    ),
    # ---- Shenandoah informational ----
    _shape(
        EventType.SHENANDOAH_TRIGGER,
        _pattern(_U, r"Trigger: .+"),
        _pattern(_D, r"Trigger: .+"),
        guard=("Trigger: ",),
    ),
    _shape(
        EventType.SHENANDOAH_CANCELLING_GC,
        _pattern(_U, r"Cancelling GC: .+"),
        _pattern(_D, r"Cancelling GC: .+"),
        guard=("Cancelling GC: ",),
    ),
    # ---- safepoints and application time ----
    _shape(
        EventType.UNIFIED_SAFEPOINT,
        _pattern(
            _U,
            r'Safepoint "(?P<safepoint>[^"]+)", Time since last: \d+ ns, ',
            r"Reaching safepoint: \d+ ns,(?: Cleanup: \d+ ns,)? At safepoint: \d+ ns, ",
            r"Total: (?P<duration_ns>\d+) ns",
            end_stamped=True,
        ),
        guard=('Safepoint "',),
    ),
    _shape(
        EventType.APPLICATION_STOPPED_TIME,
        _pattern(
            _D,
            r"Total time for which application threads were stopped: ",
            rf"(?P<duration_secs>{DURATION_SECS}) seconds",
            rf"(?:, Stopping threads took: {DURATION_SECS} seconds)?",
        ),
        _pattern(
            _U,
            r"Total time for which application threads were stopped: ",
            rf"(?P<duration_secs>{DURATION_SECS}) seconds",
            rf"(?:, Stopping threads took: {DURATION_SECS} seconds)?",
            end_stamped=True,
        ),
        guard=("Total time for which application threads were stopped",),
    ),
    _shape(
        EventType.APPLICATION_CONCURRENT_TIME,
        _pattern(_D, rf"Application time: {DURATION_SECS} seconds"),
        _pattern(_U, rf"Application time: {DURATION_SECS} seconds"),
        guard=("Application time: ",),
    ),
    # ---- informational ----
    _shape(
        EventType.GC_LOCKER,
        _pattern(_D, r"GC locker: Trying a full collection because scavenge failed"),
        guard=("GC locker: ",),
    ),
    _shape(
        EventType.GC_OVERHEAD_LIMIT,
        _pattern(r"\s*GC time (?:would exceed|is exceeding) GCTimeLimit of \d{1,3}%"),
        guard=("GCTimeLimit",),
    ),
    _shape(
        EventType.TENURING_DISTRIBUTION,
        _pattern(
            r"(?:Desired survivor size \d+ bytes, new threshold \d+ \(max(?: threshold)? \d+\)",
            r"|- age +\d+: +\d+ bytes, +\d+ total)",
        ),
        guard=("Desired survivor size", "- age "),
    ),
    _shape(
        EventType.CLASS_UNLOADING,
        _pattern(_D, r"\[Unloading class \S+(?: 0x[0-9a-f]+)?\]"),
        _pattern(_U, r"[Uu]nloading class .+"),
        guard=("nloading class",),
    ),
    _shape(EventType.UNIFIED_HEADER, _pattern(_U, rf"(?:{_UNIFIED_HEADERS})")),
    _shape(EventType.HEAP_AT_GC, _pattern(_D, _HEAP_BODY), _pattern(_U, _HEAP_BODY)),
    _shape(
        EventType.UNIFIED_BLANK_LINE,
        _pattern(UNIFIED_DECORATOR, r"(?: GC\(\d{1,10}\))?"),
    ),
)


def _check_catalogue(catalogue: tuple[Shape, ...]) -> None:
    seen: set[EventType] = set()
    for shape in catalogue:
        if shape.event_type in seen:
            raise CatalogueError(f"{shape.event_type.value} is catalogued twice")
        if shape.event_type is EventType.UNKNOWN:
            raise CatalogueError("UNKNOWN cannot be catalogued")
        seen.add(shape.event_type)
    missing = set(EventType) - seen - {EventType.UNKNOWN}
    if missing:
        names = ", ".join(sorted(event_type.value for event_type in missing))
        raise CatalogueError(f"Event types without a shape: {names}")


_check_catalogue(CATALOGUE)

# ============================================================
# MATCHING AND HYDRATION
# ============================================================

_SIZE_FIELDS: tuple[str, ...] = tuple(
    f"{region_name.value}_{part}" for region_name in Region for part in ("begin", "end", "space")
)

_TO_SPACE_TRIGGERS = frozenset({GcTrigger.TO_SPACE_EXHAUSTED, GcTrigger.TO_SPACE_OVERFLOW})


def match_line(
    line: str, hint: CollectorFamily = CollectorFamily.UNKNOWN
) -> tuple[Shape, ShapePattern, re.Match[str]] | None:
    """First shape in catalogue order that matches the line."""
    for shape in CATALOGUE:
        if found := shape.match(line, hint):
            pattern, match = found
            return shape, pattern, match
    return None


def identify(line: str, hint: CollectorFamily = CollectorFamily.UNKNOWN) -> EventType:
    if found := match_line(line, hint):
        return found[0].event_type
    return EventType.UNKNOWN


def _duration(groups: Groups) -> int | None:
    if (value := groups.get("duration_secs")) is not None:
        return seconds_to_micros(value)
    if (value := groups.get("duration_ms")) is not None:
        return millis_to_micros(value)
    if (value := groups.get("duration_ns")) is not None:
        return nanos_to_micros(value)
    return None


def hydrate(
    shape: Shape,
    pattern: ShapePattern,
    match: re.Match[str],
    hint: CollectorFamily = CollectorFamily.UNKNOWN,
    jvm_start: datetime | None = None,
) -> LogEvent:
    """Build the event for a matched line."""
    groups = match.groupdict()
    traits = shape.event_type.traits
    fields: dict[str, Any] = {}

    for name in _SIZE_FIELDS:
        if groups.get(name) is not None:
            fields[name] = _kb(groups, name)
    if shape.derive is not None:
        fields.update(shape.derive(groups))

    duration = _duration(groups)
    timestamp = resolve_timestamp(groups, jvm_start)
    if pattern.end_stamped:
        timestamp = start_from_end(timestamp, duration)

    trigger_text = groups.get("trigger3") or groups.get("trigger2") or groups.get("trigger")
    if trigger_text is not None:
        trigger = GcTrigger.resolve(trigger_text)
        fields["trigger"] = trigger
        fields["to_space_exhausted"] = trigger in _TO_SPACE_TRIGGERS

    if groups.get("real") is not None:
        fields["time_user"] = seconds_to_centis(groups.get("user"))
        fields["time_sys"] = seconds_to_centis(groups.get("sys"))
        fields["time_real"] = seconds_to_centis(groups.get("real"))

    if (safepoint := groups.get("safepoint")) is not None:
        fields["safepoint_trigger"] = SafepointTrigger.resolve(safepoint)
    if (other := groups.get("other_ms")) is not None:
        fields["other_time"] = millis_to_micros(other)
    if groups.get("evacuation_failed"):
        fields["evacuation_failed"] = True

    family = traits.family
    if family is CollectorFamily.UNKNOWN:
        family = hint

    return LogEvent(
        event_type=shape.event_type,
        log_entry=match.string,
        timestamp=timestamp,
        datestamp=groups.get("datestamp"),
        duration=duration,
        family=family,
        gc_id=to_int(groups.get("gcid")),
        **fields,
    )


def parse_line(
    line: str,
    hint: CollectorFamily = CollectorFamily.UNKNOWN,
    jvm_start: datetime | None = None,
) -> LogEvent | None:
    """Identify and hydrate one canonical line; None when nothing matches."""
    found = match_line(line, hint)
    if found is None:
        return None
    shape, pattern, match = found
    try:
        return hydrate(shape, pattern, match, hint, jvm_start)
    except ValidationError as e:
        logger.debug("Discarding %s line that failed validation: %s", shape.event_type.value, e)
        return None


__all__ = [
    "CATALOGUE",
    "Shape",
    "ShapePattern",
    "hydrate",
    "identify",
    "match_line",
    "parse_line",
]
