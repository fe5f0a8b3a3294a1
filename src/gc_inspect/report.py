"""Terminal rendering and the plain-text report."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from gc_inspect.manager import AnalysisResult
from gc_inspect.models import AnalysisLevel, Finding, JvmRun, Region, RegionMaxima
from gc_inspect.util import format_kb, format_throughput

# ============================================================
# THEME
# ============================================================

# styles are keyed by finding level and by the role a cell plays in a stats table
GC_INSPECT_THEME = Theme(
    {
        "level.error": "bold red",
        "level.warn": "bold yellow",
        "level.info": "cyan",
        "clean": "bold green",
        "collector": "bold magenta",
        "stat.name": "dim white",
        "stat.value": "white",
    }
)

console = Console(theme=GC_INSPECT_THEME)

LEVEL_STYLES: dict[AnalysisLevel, tuple[str, str, str]] = {
    # level: (text style, border style, panel title)
    AnalysisLevel.ERROR: ("level.error", "red", "Errors"),
    AnalysisLevel.WARN: ("level.warn", "yellow", "Warnings"),
    AnalysisLevel.INFO: ("level.info", "cyan", "Information"),
}

_REGION_LABELS = {
    Region.YOUNG: "Young",
    Region.OLD: "Old",
    Region.COMBINED: "Heap",
    Region.PERM: "Perm/Metaspace",
}

# ============================================================
# FORMATTING
# ============================================================


def format_micros(micros: int | None) -> str:
    """Format a duration in microseconds as milliseconds."""
    if micros is None:
        return "n/a"
    return f"{micros / 1000:.3f} ms"


def format_uptime(millis: int | None) -> str:
    """Format JVM uptime for human-readable output."""
    if millis is None:
        return "n/a"
    seconds = millis / 1000
    if seconds > 60:
        return f"{seconds:.1f}s ({seconds / 60:.1f}m)"
    return f"{seconds:.3f}s"


# ============================================================
# ROW BUILDERS
# ============================================================


def build_jvm_rows(result: AnalysisResult) -> list[tuple[str, str]]:
    run = result.run
    rows: list[tuple[str, str]] = []
    if run.jdk_version:
        rows.append(("Version", run.jdk_version))
    if result.options.raw:
        rows.append(("Options", result.options.raw))
    if run.physical_memory_kb is not None:
        rows.append(("Memory", format_kb(run.physical_memory_kb)))
    if result.options.max_heap_size_bytes is not None:
        rows.append(("Max heap", result.options.format_size(result.options.max_heap_size_bytes)))
    return rows


def region_maxima(run: JvmRun, region: Region) -> RegionMaxima:
    """Blocking maxima, with space and occupancy taken from non-blocking events
    when no blocking event reported them (Z logs only report the latter)."""
    blocking = run.maxima(region)
    fallback = run.maxima(region, blocking=False)
    return RegionMaxima(
        space=blocking.space if blocking.space is not None else fallback.space,
        occupancy=blocking.occupancy if blocking.occupancy is not None else fallback.occupancy,
        after_gc=blocking.after_gc,
    )


def build_summary_rows(run: JvmRun) -> list[tuple[str, str]]:
    rows: list[tuple[str, str]] = [
        ("# GC Events", str(run.blocking_count)),
        ("Event Types", ", ".join(event_type.value for event_type in run.event_type_counts)),
    ]
    if run.collector_families:
        rows.append(("Collector", ", ".join(family.value for family in run.collector_families)))
    rows.append(("# Parallel Events", str(run.parallel_count)))
    rows.append(("# Inverted Parallelism", str(run.inverted_parallelism_count)))
    if run.worst_inverted_parallelism is not None:
        rows.append(("Inverted Parallelism Max", f"{run.worst_inverted_parallelism}%"))
    if run.new_ratio is not None:
        rows.append(("NewRatio", str(run.new_ratio)))

    for region, label in _REGION_LABELS.items():
        maxima = region_maxima(run, region)
        if maxima.space is None and maxima.occupancy is None:
            continue
        if maxima.space is not None:
            rows.append((f"{label} Space Max", format_kb(maxima.space)))
        if maxima.occupancy is not None:
            rows.append((f"{label} Occupancy Max", format_kb(maxima.occupancy)))
        if maxima.after_gc is not None:
            rows.append((f"{label} After GC Max", format_kb(maxima.after_gc)))

    rows.append(("GC Throughput", format_throughput(run.gc_throughput, run.blocking_count)))
    rows.append(("GC Pause Max", format_micros(run.gc_pause_max)))
    rows.append(("GC Pause Total", format_micros(run.gc_pause_total)))
    if run.safepoint_count:
        stopped = format_throughput(run.stopped_throughput, run.safepoint_count)
        rows.append(("Stopped Time Throughput", stopped))
        rows.append(("Stopped Time Max", format_micros(run.stopped_max)))
        rows.append(("Stopped Time Total", format_micros(run.stopped_total)))
        if run.gc_stopped_ratio is not None:
            rows.append(("GC/Stopped Ratio", f"{run.gc_stopped_ratio}%"))
    first, last = run.first_event, run.last_event
    if first is not None and first.datestamp:
        rows.append(("First Datestamp", first.datestamp))
    if first is not None and first.timestamp is not None:
        rows.append(("First Timestamp", format_uptime(first.timestamp)))
    if last is not None and last.datestamp:
        rows.append(("Last Datestamp", last.datestamp))
    if run.end_timestamp is not None:
        rows.append(("Last Timestamp", format_uptime(run.end_timestamp)))
    if run.run_duration is not None:
        rows.append(("Run Duration", format_uptime(run.run_duration)))
    return rows


def build_safepoint_rows(run: JvmRun) -> list[tuple[str, str, str, str]]:
    return [
        (
            summary.trigger.value,
            str(summary.count),
            format_micros(summary.pause_total),
            format_micros(summary.pause_max),
        )
        for summary in run.safepoint_summaries
    ]


# ============================================================
# RICH OUTPUT
# ============================================================


def create_stats_table(section: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=section, title_justify="left", show_header=False, box=None)
    table.add_column("Statistic", style="stat.name", no_wrap=True)
    table.add_column("Value", style="stat.value", justify="right", overflow="fold")
    for row in rows:
        table.add_row(*row)
    return table


def create_findings_panel(level: AnalysisLevel, findings: list[Finding]) -> Panel:
    style, border_style, title = LEVEL_STYLES[level]
    text = Text("\n").join(Text(f" {finding.message}", style=style) for finding in findings)
    return Panel(text, title=f"[{style}]{title}[/{style}]", border_style=border_style, expand=True)


def create_safepoint_table(run: JvmRun) -> Table:
    table = Table(title="Safepoints", header_style="collector")
    table.add_column("Trigger", style="stat.name")
    table.add_column("#", justify="right", style="stat.value")
    table.add_column("Total", justify="right", style="stat.value")
    table.add_column("Max", justify="right", style="stat.value")
    for row in build_safepoint_rows(run):
        table.add_row(*row)
    return table


def render_rich_output(result: AnalysisResult, out: Console | None = None) -> None:
    """Render the analysis using Rich components."""
    out = out or console
    run = result.run

    out.print()
    families = ", ".join(family.value for family in run.collector_families) or "Unknown"
    out.print(Panel(f"Collector: {families}", style="collector", expand=True))
    out.print()

    jvm_rows = build_jvm_rows(result)
    if jvm_rows:
        out.print(create_stats_table("JVM", jvm_rows))
        out.print()

    out.print(create_stats_table("Summary", build_summary_rows(run)))
    out.print()

    if run.safepoint_summaries:
        out.print(create_safepoint_table(run))
        out.print()

    if run.bottlenecks:
        out.print(
            f"[level.warn]{len(run.bottlenecks)} bottleneck(s) with throughput below "
            f"{run.throughput_threshold}%[/level.warn]"
        )
        out.print()

    grouped = result.grouped
    if not result.findings:
        out.print(
            Panel(Text(" No findings", style="clean"), title="Status", border_style="green")
        )
    for level, findings in grouped.items():
        if findings:
            out.print(create_findings_panel(level, findings))
    out.print()

    if run.unidentified_count:
        out.print(
            f"[level.warn]{run.unidentified_count} unidentified log line(s); "
            "see the text report for the sample[/level.warn]"
        )


# ============================================================
# TEXT REPORT
# ============================================================

_RULE = "=" * 40 + "\n"
_THIN_RULE = "-" * 40 + "\n"


def _section(title: str) -> list[str]:
    return [_RULE, f"{title}\n", _THIN_RULE]


def write_text_report(result: AnalysisResult, output_path: Path, log_name: str = "") -> None:
    """Write the plain-text report.

    Sections: bottlenecks, JVM, summary, analysis by level, unidentified lines.
    """
    run = result.run
    content: list[str] = []
    content.append(f"gc-inspect report for {log_name or 'GC log'}\n")
    content.append(f"Generated: {datetime.now().isoformat()}\n")

    if run.bottlenecks:
        content.extend(_section(f"Throughput less than {run.throughput_threshold}%"))
        for bottleneck in run.bottlenecks:
            content.append(f"{bottleneck.prior.log_entry}\n")
            content.append(f"{bottleneck.event.log_entry}\n")
            content.append(f"  throughput: {bottleneck.throughput}%\n")

    jvm_rows = build_jvm_rows(result)
    if jvm_rows:
        content.extend(_section("JVM:"))
        for label, value in jvm_rows:
            content.append(f"{label}: {value}\n")

    content.extend(_section("SUMMARY:"))
    for label, value in build_summary_rows(run):
        content.append(f"{label}: {value}\n")
    for trigger, count, total, maximum in build_safepoint_rows(run):
        content.append(f"Safepoint {trigger}: {count} (total {total}, max {maximum})\n")

    content.extend(_section("ANALYSIS:"))
    for level, findings in result.grouped.items():
        if not findings:
            continue
        content.append(f"{level.value}\n")
        for finding in findings:
            content.append(f"*{finding.message}\n")

    if run.unidentified_count:
        content.extend(_section(f"{run.unidentified_count} UNIDENTIFIED LOG LINE(S):"))
        for line in run.unidentified_lines:
            content.append(f"{line}\n")
        if run.unidentified_count > len(run.unidentified_lines):
            content.append(
                f"... {run.unidentified_count - len(run.unidentified_lines)} more not shown\n"
            )
    content.append(_RULE)

    output_path.write_text("".join(content), encoding="utf-8")
