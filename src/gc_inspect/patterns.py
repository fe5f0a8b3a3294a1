"""Regex fragments shared by the preprocessor and the event catalogue.

Named groups follow a fixed vocabulary that the catalogue hydrates from:
``datestamp``/``uptime``/``uptimemillis``/``uptimenanos`` (decorator),
``gcid``, ``trigger``, ``<region>_begin``/``_end``/``_space`` (+ ``_unit``),
``duration_secs``/``duration_ms``/``duration_ns``, ``user``/``sys``/``real``.
"""

from __future__ import annotations

# ============================================================
# DECORATORS
# ============================================================

DATESTAMP = r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}[.,]\d{3}(?:[-+]\d{4}|Z)?"
UPTIME = r"\d{1,10}[.,]\d{3}"

# 2016-10-18T06:06:44.983+0000: 14.379:
LEGACY_DECORATOR = rf"(?:(?P<datestamp>{DATESTAMP}): )?(?:(?P<uptime>{UPTIME}): )?"

# Embedded stamps inside a legacy record, e.g. "[GC (T) 1.234: [ParNew: ..."
LEGACY_STAMP = rf"(?:{DATESTAMP}: )?(?:{UPTIME}: )?"

# [2021-03-13T03:37:40.051+0530][79853119ms][info][gc,start     ]
UNIFIED_DECORATOR = (
    r"(?=\[)"
    rf"(?:\[(?P<datestamp>{DATESTAMP})\])?"
    rf"(?:\[(?P<uptime>{UPTIME})s\])?"
    r"(?:\[(?P<uptimemillis>\d{1,13})ms\])?"
    r"(?:\[(?P<uptimenanos>\d{1,19})ns\])?"
    r"(?:\[(?:\d{1,10}|0x[0-9a-f]{1,16})\]){0,2}"
    r"(?:\[(?:trace|debug|info|warning|error) *\])?"
    r"(?:\[[a-z0-9_,+]+ *\])?"
)

UNIFIED_PREFIX = rf"{UNIFIED_DECORATOR} (?:GC\((?P<gcid>\d{{1,10}})\) )?"

# ============================================================
# SIZES AND DURATIONS
# ============================================================

SIZE_VALUE = r"\d{1,10}(?:[.,]\d{1,2})?"
SIZE_UNIT = r"[BbKkMmGg]"
SIZE = rf"{SIZE_VALUE}{SIZE_UNIT}"

DURATION_SECS = r"\d{1,7}[.,]\d{3,9}"
DURATION_MS = r"\d{1,9}[.,]\d{1,3}"

TIMES_VALUE = r"\d{1,5}[.,]\d{2}"


def size(name: str) -> str:
    """Capture a size as ``name`` plus ``name_unit``."""
    return rf"(?P<{name}>{SIZE_VALUE})(?P<{name}_unit>{SIZE_UNIT})"


def region(prefix: str) -> str:
    """``begin->end(space)``; JDK17 adds the capacity before: ``b(c)->e(s)``."""
    return (
        rf"{size(prefix + '_begin')}(?:\({SIZE}\))?->"
        rf"{size(prefix + '_end')}\({size(prefix + '_space')}\)"
    )


# Region transition that is matched but not captured
REGION_NC = rf"{SIZE}(?:\({SIZE}\))?->{SIZE}\({SIZE}\)"

# Metaspace, optionally followed by the JDK17 NonClass/Class breakdown
METASPACE = rf"{region('perm')}(?: NonClass: {REGION_NC} Class: {REGION_NC})?"


def secs(name: str = "duration_secs") -> str:
    return rf"(?P<{name}>{DURATION_SECS}) secs"


SECS_NC = rf"{DURATION_SECS} secs"


def millis(name: str = "duration_ms") -> str:
    return rf"(?P<{name}>{DURATION_MS}) ?ms"


# ============================================================
# CPU TIMES
# ============================================================

LEGACY_TIMES = (
    rf"(?: \[Times: user=(?P<user>{TIMES_VALUE}) sys=(?P<sys>{TIMES_VALUE}), "
    rf"real=(?P<real>{TIMES_VALUE}) secs\])?"
)

UNIFIED_TIMES = (
    rf" User=(?P<user>{TIMES_VALUE})s Sys=(?P<sys>{TIMES_VALUE})s Real=(?P<real>{TIMES_VALUE})s"
)

END = r"\s*$"
