"""JVM option parsing.

Options come either from the caller or from the ``CommandLine flags:`` header
a JDK8 log starts with. Unset flags stay ``None`` so rules can tell "not
specified" apart from an explicit ``-XX:-Flag``.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from gc_inspect.models import CollectorFamily
from gc_inspect.util import format_kb


class JvmOptions(BaseModel):
    """Heap sizing, collector selection, explicit GC, logging and tuning flags."""

    model_config = ConfigDict(frozen=True)

    raw: str = ""

    # Heap sizing
    initial_heap_size_bytes: int | None = None  # -Xms or -XX:InitialHeapSize
    max_heap_size_bytes: int | None = None  # -Xmx or -XX:MaxHeapSize
    new_size_bytes: int | None = None  # -Xmn or -XX:NewSize
    max_new_size_bytes: int | None = None  # -XX:MaxNewSize
    perm_size_bytes: int | None = None  # -XX:PermSize
    max_perm_size_bytes: int | None = None  # -XX:MaxPermSize
    metaspace_size_bytes: int | None = None  # -XX:MetaspaceSize
    max_metaspace_size_bytes: int | None = None  # -XX:MaxMetaspaceSize
    new_ratio: int | None = None  # -XX:NewRatio
    survivor_ratio: int | None = None  # -XX:SurvivorRatio
    max_tenuring_threshold: int | None = None  # -XX:MaxTenuringThreshold

    # Threads and goals
    parallel_gc_threads: int | None = None  # -XX:ParallelGCThreads
    conc_gc_threads: int | None = None  # -XX:ConcGCThreads
    max_gc_pause_millis: int | None = None  # -XX:MaxGCPauseMillis
    initiating_heap_occupancy_percent: int | None = None  # -XX:InitiatingHeapOccupancyPercent
    cms_initiating_occupancy_fraction: int | None = None  # -XX:CMSInitiatingOccupancyFraction

    # Collector selection
    use_serial_gc: bool | None = None
    use_parallel_gc: bool | None = None
    use_parallel_old_gc: bool | None = None
    use_conc_mark_sweep_gc: bool | None = None
    use_par_new_gc: bool | None = None
    use_g1_gc: bool | None = None
    use_shenandoah_gc: bool | None = None
    use_z_gc: bool | None = None

    # Explicit GC
    disable_explicit_gc: bool | None = None
    explicit_gc_invokes_concurrent: bool | None = None

    # Logging
    print_gc_details: bool | None = None
    print_gc_application_stopped_time: bool | None = None
    print_gc_application_concurrent_time: bool | None = None
    unified_logging: tuple[str, ...] = Field(default_factory=tuple)  # -Xlog:...

    # Other tuning
    cms_class_unloading_enabled: bool | None = None
    use_cms_initiating_occupancy_only: bool | None = None
    heap_dump_on_out_of_memory_error: bool | None = None
    always_pre_touch: bool | None = None

    @property
    def collector(self) -> CollectorFamily:
        """Collector chosen by the flags; UNKNOWN when none is selected."""
        if self.use_z_gc:
            return CollectorFamily.Z
        if self.use_shenandoah_gc:
            return CollectorFamily.SHENANDOAH
        if self.use_g1_gc:
            return CollectorFamily.G1
        if self.use_conc_mark_sweep_gc:
            return CollectorFamily.CMS
        if self.use_parallel_gc or self.use_parallel_old_gc:
            return CollectorFamily.PARALLEL
        if self.use_serial_gc:
            return CollectorFamily.SERIAL
        return CollectorFamily.UNKNOWN

    @property
    def logs_gc_details(self) -> bool:
        if self.print_gc_details:
            return True
        return any(
            selector.startswith(("gc*", "gc+heap")) or ",gc*" in selector
            for selector in self.unified_logging
        )

    @property
    def logs_stopped_time(self) -> bool:
        if self.print_gc_application_stopped_time:
            return True
        return any("safepoint" in selector for selector in self.unified_logging)

    @property
    def logs_concurrent_time(self) -> bool:
        return bool(self.print_gc_application_concurrent_time)

    @property
    def heap_min_equals_max(self) -> bool | None:
        if self.initial_heap_size_bytes is None or self.max_heap_size_bytes is None:
            return None
        return self.initial_heap_size_bytes == self.max_heap_size_bytes

    def format_size(self, size_bytes: int | None) -> str:
        """Render a command-line size, which is in bytes."""
        if size_bytes is None:
            return "Not set"
        if size_bytes < 1024:
            return f"{size_bytes}B"
        if size_bytes < 1024**2:
            return f"{size_bytes / 1024:.1f}K"
        return format_kb(size_bytes // 1024)


_SIZE = r"(\d+)([kmgtKMGT])?\b"

_SIZE_FLAGS: dict[str, re.Pattern[str]] = {
    "initial_heap_size_bytes": re.compile(rf"-XX:InitialHeapSize={_SIZE}"),
    "max_heap_size_bytes": re.compile(rf"-XX:MaxHeapSize={_SIZE}"),
    "new_size_bytes": re.compile(rf"-XX:NewSize={_SIZE}"),
    "max_new_size_bytes": re.compile(rf"-XX:MaxNewSize={_SIZE}"),
    "perm_size_bytes": re.compile(rf"-XX:PermSize={_SIZE}"),
    "max_perm_size_bytes": re.compile(rf"-XX:MaxPermSize={_SIZE}"),
    "metaspace_size_bytes": re.compile(rf"-XX:MetaspaceSize={_SIZE}"),
    "max_metaspace_size_bytes": re.compile(rf"-XX:MaxMetaspaceSize={_SIZE}"),
}

# Short forms win over the -XX: spelling when both are present
_SHORT_SIZE_FLAGS: dict[str, re.Pattern[str]] = {
    "initial_heap_size_bytes": re.compile(rf"-Xms{_SIZE}"),
    "max_heap_size_bytes": re.compile(rf"-Xmx{_SIZE}"),
    "new_size_bytes": re.compile(rf"-Xmn{_SIZE}"),
}

_INT_FLAGS: dict[str, re.Pattern[str]] = {
    "new_ratio": re.compile(r"-XX:NewRatio=(\d+)"),
    "survivor_ratio": re.compile(r"-XX:SurvivorRatio=(\d+)"),
    "max_tenuring_threshold": re.compile(r"-XX:MaxTenuringThreshold=(\d+)"),
    "parallel_gc_threads": re.compile(r"-XX:ParallelGCThreads=(\d+)"),
    "conc_gc_threads": re.compile(r"-XX:ConcGCThreads=(\d+)"),
    "max_gc_pause_millis": re.compile(r"-XX:MaxGCPauseMillis=(\d+)"),
    "initiating_heap_occupancy_percent": re.compile(
        r"-XX:InitiatingHeapOccupancyPercent=(\d+)"
    ),
    "cms_initiating_occupancy_fraction": re.compile(
        r"-XX:CMSInitiatingOccupancyFraction=(\d+)"
    ),
}

_BOOL_FLAGS: dict[str, str] = {
    "use_serial_gc": "UseSerialGC",
    "use_parallel_gc": "UseParallelGC",
    "use_parallel_old_gc": "UseParallelOldGC",
    "use_conc_mark_sweep_gc": "UseConcMarkSweepGC",
    "use_par_new_gc": "UseParNewGC",
    "use_g1_gc": "UseG1GC",
    "use_shenandoah_gc": "UseShenandoahGC",
    "use_z_gc": "UseZGC",
    "disable_explicit_gc": "DisableExplicitGC",
    "explicit_gc_invokes_concurrent": "ExplicitGCInvokesConcurrent",
    "print_gc_details": "PrintGCDetails",
    "print_gc_application_stopped_time": "PrintGCApplicationStoppedTime",
    "print_gc_application_concurrent_time": "PrintGCApplicationConcurrentTime",
    "cms_class_unloading_enabled": "CMSClassUnloadingEnabled",
    "use_cms_initiating_occupancy_only": "UseCMSInitiatingOccupancyOnly",
    "heap_dump_on_out_of_memory_error": "HeapDumpOnOutOfMemoryError",
    "always_pre_touch": "AlwaysPreTouch",
}

_BOOL_PATTERNS: dict[str, re.Pattern[str]] = {
    field: re.compile(rf"-XX:(?P<sign>[+-]){name}(?![\w=])") for field, name in _BOOL_FLAGS.items()
}

_UNIFIED_LOGGING = re.compile(r"-Xlog:(\S+)")

_UNITS = {"k": 1024, "m": 1024**2, "g": 1024**3, "t": 1024**4}


def parse_jvm_size_to_bytes(value: str, unit: str | None) -> int:
    """Convert JVM size notation (``512m``, ``2G``, ``1073741824``) to bytes."""
    num = int(value)
    if unit is None:
        return num
    return num * _UNITS.get(unit.lower(), 1)


def parse_jvm_options(text: str | None) -> JvmOptions:
    """Parse a JVM option string; an empty or missing string gives empty options."""
    if not text:
        return JvmOptions()

    config: dict[str, object] = {"raw": text.strip()}

    for field, pattern in _SIZE_FLAGS.items():
        if match := pattern.search(text):
            config[field] = parse_jvm_size_to_bytes(match.group(1), match.group(2))
    for field, pattern in _SHORT_SIZE_FLAGS.items():
        if match := pattern.search(text):
            config[field] = parse_jvm_size_to_bytes(match.group(1), match.group(2))

    for field, pattern in _INT_FLAGS.items():
        if match := pattern.search(text):
            config[field] = int(match.group(1))

    for field, pattern in _BOOL_PATTERNS.items():
        # The last occurrence of a flag wins, as on the java command line
        matches = pattern.findall(text)
        if matches:
            config[field] = matches[-1] == "+"

    if "-Xlog:" in text:
        config["unified_logging"] = tuple(_UNIFIED_LOGGING.findall(text))

    return JvmOptions.model_validate(config)
