"""gc-inspect command line.

Analyzes JVM garbage collection logs written by the Serial, Parallel, CMS, G1,
Shenandoah and Z collectors, in legacy (JDK8 and earlier) or unified (-Xlog)
format, and reports run statistics and leveled findings.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler

from gc_inspect import __version__
from gc_inspect.manager import GcManager
from gc_inspect.models import AnalysisLevel
from gc_inspect.report import console, render_rich_output, write_text_report
from gc_inspect.settings import AnalysisSettings
from gc_inspect.util import parse_start_date

app = typer.Typer(
    name="gc-inspect",
    help="JVM GC log analyzer for Serial, Parallel, CMS, G1, Shenandoah and Z collectors",
    add_completion=False,
    rich_markup_mode="rich",
)


def configure_logging(verbose: bool) -> None:
    """Route package logging through Rich on the analysis console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=verbose)],
        force=True,
    )


@app.command()
def analyze(
    log_file: Annotated[
        Path,
        typer.Argument(
            help="Path to GC log file to analyze",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    jvm_options: Annotated[
        str | None,
        typer.Option(
            "--jvm-options",
            "-j",
            help="JVM options the log was produced with (overrides CommandLine flags)",
        ),
    ] = None,
    start_date: Annotated[
        str | None,
        typer.Option(
            "--start-date",
            "-s",
            help="JVM start date, needed to place datestamp-only logs (e.g. 2021-03-13 03:24:00)",
        ),
    ] = None,
    threshold: Annotated[
        int,
        typer.Option(
            "--threshold",
            "-t",
            help="Throughput percentage below which consecutive pauses are a bottleneck",
            min=0,
            max=100,
        ),
    ] = 90,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the plain-text report to this file (e.g., report.txt)",
            file_okay=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with detailed parsing information",
        ),
    ] = False,
) -> None:
    """Analyze a JVM GC log file.

    Exit codes: 0 = clean, 1 = warnings, 2 = errors.
    """
    configure_logging(verbose)

    try:
        jvm_start = parse_start_date(start_date) if start_date else None
        settings = AnalysisSettings(throughput_threshold=threshold)

        result = GcManager(settings).analyze_file(
            log_file, jvm_start=jvm_start, jvm_options=jvm_options
        )

        if verbose:
            console.print(
                f"[level.info]Identified {result.run.event_count} events, "
                f"{result.run.unidentified_count} unidentified lines[/level.info]"
            )

        if not result.run.event_count:
            console.print("[level.error]ERROR: No GC events found in log file[/level.error]")
            sys.exit(1)

        render_rich_output(result, console)

        if output:
            write_text_report(result, output, log_file.name)
            console.print(f"\n[clean] Report written to {output}[/clean]")

        if result.has_level(AnalysisLevel.ERROR):
            sys.exit(2)
        elif result.has_level(AnalysisLevel.WARN):
            sys.exit(1)

    except ValueError as e:
        console.print(f"[level.error]ERROR: {e}[/level.error]")
        sys.exit(1)
    except OSError as e:
        console.print(f"[level.error]ERROR: {e}[/level.error]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@app.command()
def version() -> None:
    """Display version."""
    console.print(f"gc-inspect {__version__}")


if __name__ == "__main__":
    app()
