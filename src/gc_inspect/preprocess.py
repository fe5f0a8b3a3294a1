"""Turn raw log lines into canonical, one-record-per-line text.

Collectors log a single collection over many lines. Unified logging (JDK9+)
writes a ``gc,start`` marker, heap fragments, the pause summary and a CPU
line, all tagged ``GC(n)``; legacy logging (JDK8 and earlier) wraps records
across lines and interleaves detail. The preprocessor merges each record back
into the single line the catalogue knows how to match and discards the detail
it never reports on.

State lives in one ``process`` call, so a preprocessor can be reused.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Iterable, Iterator

from gc_inspect.models import CanonicalLine, CollectorFamily
from gc_inspect.patterns import (
    DATESTAMP,
    DURATION_MS,
    LEGACY_STAMP,
    REGION_NC,
    TIMES_VALUE,
    UNIFIED_DECORATOR,
    UPTIME,
)

logger = logging.getLogger(__name__)

LEGACY_KEY = "legacy"


class _Pending:
    """A record being assembled for one buffer key."""

    def __init__(self, key: str, start_line: str, prefix: str = "") -> None:
        self.key = key
        self.start_line = start_line
        self.prefix = prefix
        self.fragments: list[str] = []
        self.end_line: str | None = None
        self.end_head: str | None = None
        self.end_tail: str | None = None
        self.cpu: str | None = None
        self.family = CollectorFamily.UNKNOWN
        # no further line can join the record
        self.closed = False

    @property
    def complete(self) -> bool:
        return self.end_line is not None

    def spliced(self) -> str:
        """Single line for the record; the raw end line when nothing was added."""
        if not self.fragments and self.cpu is None:
            return self.end_line or self.start_line
        parts = [f"{self.prefix}{self.end_head}", *self.fragments, self.end_tail, self.cpu]
        return " ".join(part for part in parts if part)


class Preprocessor:
    """Single forward pass over raw lines producing ``CanonicalLine`` objects."""

    # ============================================================
    # UNIFIED LOGGING
    # ============================================================

    UNIFIED_GC_LINE: re.Pattern[str] = re.compile(
        rf"(?P<prefix>{UNIFIED_DECORATOR} GC\((?P<gcid>\d{{1,10}})\) )(?P<body>.*?)\s*$"
    )

    PAUSE_START: re.Pattern[str] = re.compile(
        r"Pause (?:Young|Full|Remark|Cleanup|Initial Mark)(?: \((?:[^()]|\(\))*\))*"
    )

    PAUSE_END: re.Pattern[str] = re.compile(
        rf"(?P<head>Pause .+?) (?P<tail>{REGION_NC} {DURATION_MS} ?ms)"
    )

    HEAP_FRAGMENT: re.Pattern[str] = re.compile(
        r"(?:(?:DefNew|Tenured|PSYoungGen|ParOldGen|PSOldGen|ParNew|CMS|Metaspace): \S+->.+"
        rf"|Humongous regions: \d{{1,10}}->\d{{1,10}}|Other: {DURATION_MS} ?ms)"
    )

    CPU_TIMES: re.Pattern[str] = re.compile(
        rf"User={TIMES_VALUE}s Sys={TIMES_VALUE}s Real={TIMES_VALUE}s"
    )

    # Per-collection detail that is never reported on
    DETAIL: re.Pattern[str] = re.compile(
        r"(?:"
        # G1 phases, regions and workers
        r"(?:Pre Evacuate|Merge Heap Roots|Evacuate|Post Evacuate) Collection Set: .*"
        r"|(?:Eden|Survivor|Old|Archive) regions: .*"
        r"|Using \d+ (?:workers )?of \d+(?: workers)? for .*"
        r"|Other: .*"
        r"|Clear Claimed Marks.*|Code Roots .*|Expand Heap After Collection.*"
        r"|(?:Reference|Weak) Processing.*|Choose Collection Set.*"
        r"|MMU target violated: .*"
        # full collection phases
        r"|Phase \d+: .*"
        r"|(?:Marking Phase|Summary Phase|Adjust Roots|Compaction Phase|Post Compact"
        r"|Pre Compact|Adjust Pointers)(?: .*)?"
        # heap sizing and tenuring
        r"|Expand the heap\..*|Attempt heap expansion.*|Heap expansion.*|Shrink the heap.*"
        r"|Desired survivor size .*|Age table with threshold .*|- age +\d+: .*"
        # Z statistics and generation banners
        r"|[YO]: (?:Young|Old) Generation.*"
        r"|(?:Load|MMU|Mark Stack Usage|NMethods|Soft|Weak|Final|Phantom|Forwarding Usage"
        r"|Relocation|Small Pages|Medium Pages|Large Pages|Age Table|Heap Statistics"
        r"|Metaspace): .*"
        r"|(?:Min|Max|Soft Max) Capacity: .*"
        r"|(?:[YO]: )?(?:Garbage|Major|Minor|Young|Old) Collection \([^)]*\)"
        r"|(?:Capacity|Used|Live|Allocated|Garbage|Reclaimed|Compacted|Promoted):.*"
        r"|Mark Start +Mark End.*"
        # Shenandoah pacing, ergonomics and phase start markers
        r"|Pacer for .*|Adaptive CSet Selection.*|Collectable Garbage: .*"
        r"|Immediate Garbage: .*|Evacuation Reserve: .*|Good progress for .*"
        r"|Free: .*|Cancelled"
        r"|Pause (?:Init Mark|Final Mark|Init Update Refs|Final Update Refs|Final Evac"
        r"|Final Roots|Degenerated GC)(?: \([^)]*\))*"
        r"|Concurrent [a-z][a-z ]*(?: \([a-z ]+\))*"
        r")"
    )

    # ============================================================
    # LEGACY LOGGING
    # ============================================================

    LEGACY_RECORD: re.Pattern[str] = re.compile(rf"{LEGACY_STAMP}\[(?:GC|Full GC)\b")

    EMBEDDED_CMS_CONCURRENT: re.Pattern[str] = re.compile(
        rf"(?:{DATESTAMP}: )?(?:{UPTIME}: )?\[CMS-concurrent-[a-z-]+"
        r"(?:-start\]|: [\d.,]+/[\d.,]+ secs\])(?: \[Times: [^\]]*\])?"
    )

    LEGACY_TIMES_LINE: re.Pattern[str] = re.compile(r"\s*\[Times: .*\]\s*")
    LEGACY_EDEN_LINE: re.Pattern[str] = re.compile(r"\s+\[Eden: .*\]\s*")
    LEGACY_DETAIL_LINE: re.Pattern[str] = re.compile(r"\s+\[.*")
    TENURING_LINE: re.Pattern[str] = re.compile(r"\s*(?:Desired survivor size |- age +\d+:).*")

    # Lines that can carry on a legacy record left open on the previous line
    LEGACY_CONTINUATION: re.Pattern[str] = re.compile(
        rf"[\s:,(]|(?:{DATESTAMP}: )?(?:{UPTIME}: )?\[(?:ParNew|CMS|1 CMS-|DefNew|Tenured"
        r"|PSYoungGen|ParOldGen|PSOldGen|PSPermGen|Perm|Metaspace|YG occupancy|Rescan"
        r"|weak refs processing|class unloading|scrub|G1Ergonomics)"
    )

    # ============================================================
    # FAMILY HINT
    # ============================================================

    BANNERS: tuple[tuple[str, CollectorFamily], ...] = (
        ("Using Serial", CollectorFamily.SERIAL),
        ("Using Parallel", CollectorFamily.PARALLEL),
        ("Using Concurrent Mark Sweep", CollectorFamily.CMS),
        ("Using G1", CollectorFamily.G1),
        ("Using Shenandoah", CollectorFamily.SHENANDOAH),
        ("Using The Z Garbage Collector", CollectorFamily.Z),
    )

    # Checked in order; the first marker found decides
    MARKERS: tuple[tuple[str, CollectorFamily], ...] = (
        ("-XX:+UseSerialGC", CollectorFamily.SERIAL),
        ("-XX:+UseParallelGC", CollectorFamily.PARALLEL),
        ("-XX:+UseParallelOldGC", CollectorFamily.PARALLEL),
        ("-XX:+UseConcMarkSweepGC", CollectorFamily.CMS),
        ("-XX:+UseG1GC", CollectorFamily.G1),
        ("-XX:+UseShenandoahGC", CollectorFamily.SHENANDOAH),
        ("-XX:+UseZGC", CollectorFamily.Z),
        ("DefNew", CollectorFamily.SERIAL),
        ("PSYoungGen", CollectorFamily.PARALLEL),
        ("ParNew", CollectorFamily.CMS),
        ("CMS-", CollectorFamily.CMS),
        ("[GC pause", CollectorFamily.G1),
        ("G1 Evacuation Pause", CollectorFamily.G1),
        ("Humongous regions", CollectorFamily.G1),
        ("Pause Init Mark", CollectorFamily.SHENANDOAH),
        ("Pause Final Mark", CollectorFamily.SHENANDOAH),
        ("Pause Mark Start", CollectorFamily.Z),
        ("Pause Relocate Start", CollectorFamily.Z),
    )

    def __init__(self) -> None:
        self.family = CollectorFamily.UNKNOWN

    def _update_family(self, line: str) -> None:
        if "Using " in line:
            for banner, family in self.BANNERS:
                if banner in line:
                    self.family = family
                    return
        if self.family is CollectorFamily.UNKNOWN:
            for marker, family in self.MARKERS:
                if marker in line:
                    logger.debug("Collector family %s inferred from '%s'", family.value, marker)
                    self.family = family
                    return

    def _canonical(
        self,
        text: str,
        key: str | None = None,
        unidentified: bool = False,
        family: CollectorFamily | None = None,
    ) -> CanonicalLine:
        return CanonicalLine(
            text=text.rstrip(),
            family=self.family if family is None else family,
            key=key,
            unidentified=unidentified,
        )

    # ============================================================
    # MAIN PASS
    # ============================================================

    def process(self, lines: Iterable[str]) -> Iterator[CanonicalLine]:
        """Yield canonical lines in arrival order.

        A unified record takes the place of its pause summary line, so lines
        logged while it waits for its CPU line follow it. Records still
        incomplete at end of input, and legacy records cut short by a line
        that cannot continue them, are yielded with ``unidentified=True``.
        """
        self.family = CollectorFamily.UNKNOWN
        buffers: dict[str, _Pending] = {}
        # Output in arrival order; a completed record holds back what follows
        # until its CPU line arrives or the record is closed
        queue: deque[CanonicalLine | _Pending] = deque()
        legacy: list[str] = []
        legacy_complete = False

        def release() -> Iterator[CanonicalLine]:
            while queue:
                item = queue[0]
                if isinstance(item, _Pending):
                    if not item.closed:
                        return
                    item = self._canonical(item.spliced(), item.key, family=item.family)
                queue.popleft()
                yield item

        def flush_legacy() -> Iterator[CanonicalLine]:
            nonlocal legacy_complete
            if legacy:
                if not legacy_complete:
                    logger.debug("Legacy record never completed: %s", legacy[0])
                yield self._canonical(
                    "".join(legacy), LEGACY_KEY, unidentified=not legacy_complete
                )
                legacy.clear()
            legacy_complete = False

        for raw in lines:
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            self._update_family(line)

            if match := self.UNIFIED_GC_LINE.match(line):
                self._unified(match, line, buffers, queue)
                yield from release()
                continue

            self._close(buffers)
            yield from release()

            # ---- legacy ----
            if legacy and legacy_complete:
                if self.LEGACY_TIMES_LINE.fullmatch(line):
                    legacy.append(" " + line.strip())
                    yield from flush_legacy()
                    continue
                if self.LEGACY_EDEN_LINE.fullmatch(line):
                    legacy.append(line.strip())
                    continue
                if self.LEGACY_DETAIL_LINE.match(line):
                    continue
                yield from flush_legacy()

            if "[CMS-concurrent-" in line and (
                embedded := self.EMBEDDED_CMS_CONCURRENT.search(line)
            ):
                remainder = line[: embedded.start()] + line[embedded.end() :]
                if remainder.strip():
                    yield self._canonical(embedded.group(0))
                    line = remainder

            if legacy:
                # Tenuring detail and whole concurrent records interleave with an open record
                if self.TENURING_LINE.fullmatch(line) or self.EMBEDDED_CMS_CONCURRENT.fullmatch(
                    line.strip()
                ):
                    yield self._canonical(line.strip())
                    continue
                if self.LEGACY_CONTINUATION.match(line):
                    legacy.append(line.strip() if line.lstrip().startswith(":") else line)
                    record = "".join(legacy)
                    if record.count("[") <= record.count("]"):
                        legacy_complete = True
                        if "[Times:" in record:
                            yield from flush_legacy()
                    continue
                # truncated record; the line starts over
                yield from flush_legacy()

            if self.LEGACY_RECORD.match(line):
                legacy.append(line)
                legacy_complete = line.count("[") <= line.count("]")
                if legacy_complete and "[Times:" in line:
                    yield from flush_legacy()
                continue

            yield self._canonical(line)

        yield from flush_legacy()
        self._close(buffers)
        for key, pending in buffers.items():
            logger.debug("GC(%s) never completed; treating its start as unidentified", key)
            queue.append(self._canonical(pending.start_line, key, unidentified=True))
        yield from release()

    @staticmethod
    def _close(buffers: dict[str, _Pending], key: str | None = None) -> None:
        """Close completed records, all of them or the one for ``key``."""
        for pending_key in [k for k, p in buffers.items() if p.complete and key in (None, k)]:
            buffers.pop(pending_key).closed = True

    def _unified(
        self,
        match: re.Match[str],
        line: str,
        buffers: dict[str, _Pending],
        queue: deque[CanonicalLine | _Pending],
    ) -> None:
        key = match.group("gcid")
        prefix = match.group("prefix")
        body = match.group("body").strip()
        pending = buffers.get(key)

        if self.CPU_TIMES.fullmatch(body):
            if pending is not None and pending.complete:
                pending.cpu = body
                self._close(buffers, key)
            else:
                logger.debug("GC(%s) CPU times without a record", key)
                queue.append(self._canonical(line, key))
            return

        if self.PAUSE_START.fullmatch(body):
            self._close(buffers)
            if (pending := buffers.get(key)) is not None:
                logger.debug("GC(%s) restarted before completing", key)
                queue.append(self._canonical(pending.start_line, key, unidentified=True))
            buffers[key] = _Pending(key, line, prefix)
            return

        if pending is not None and pending.complete:
            # a completed record only takes its CPU line
            if self.HEAP_FRAGMENT.fullmatch(body) or self.PAUSE_END.fullmatch(body):
                self._close(buffers, key)
            pending = None

        if self.HEAP_FRAGMENT.fullmatch(body):
            if pending is not None:
                pending.fragments.append(body)
            else:
                queue.append(self._canonical(line))
            return

        if pending is not None and (end := self.PAUSE_END.fullmatch(body)):
            pending.end_line = line
            pending.end_head = end.group("head")
            pending.end_tail = end.group("tail")
            pending.family = self.family
            queue.append(pending)
            return

        if self.DETAIL.fullmatch(body):
            return

        queue.append(self._canonical(line))


def preprocess(lines: Iterable[str]) -> Iterator[CanonicalLine]:
    """Canonical lines for ``lines`` using a fresh ``Preprocessor``."""
    return Preprocessor().process(lines)
