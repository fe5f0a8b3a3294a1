from typer.testing import CliRunner

from gc_inspect import __version__
from gc_inspect.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"gc-inspect {__version__}" in result.output


def test_clean_log_exits_zero(unified_g1_log, write_log):
    result = runner.invoke(app, ["analyze", str(write_log(unified_g1_log))])
    assert result.exit_code == 0
    assert "Collector: G1" in result.output
    assert "No findings" in result.output


def test_errors_exit_two(legacy_cms_log, write_log):
    result = runner.invoke(app, ["analyze", str(write_log(legacy_cms_log))])
    assert result.exit_code == 2
    assert "Errors" in result.output


def test_warnings_exit_one(shenandoah_log, write_log):
    result = runner.invoke(app, ["analyze", str(write_log(shenandoah_log))])
    assert result.exit_code == 1


def test_output_file(legacy_cms_log, write_log, tmp_path):
    output = tmp_path / "report.txt"
    result = runner.invoke(app, ["analyze", str(write_log(legacy_cms_log)), "-o", str(output)])
    assert result.exit_code == 2
    assert output.exists()
    assert "ANALYSIS:" in output.read_text(encoding="utf-8")


def test_jvm_options_override(legacy_cms_log, write_log):
    result = runner.invoke(
        app,
        [
            "analyze",
            str(write_log(legacy_cms_log)),
            "--jvm-options",
            "-Xms2g -Xmx2g -XX:+PrintGCDetails",
        ],
    )
    assert result.exit_code == 2
    assert "-Xms2g" in result.output


def test_log_without_events(write_log):
    result = runner.invoke(app, ["analyze", str(write_log("nothing to see here\n"))])
    assert result.exit_code == 1
    assert "No GC events found" in result.output


def test_bad_start_date(unified_g1_log, write_log):
    result = runner.invoke(
        app, ["analyze", str(write_log(unified_g1_log)), "--start-date", "yesterday-ish"]
    )
    assert result.exit_code == 1
    assert "Unrecognized JVM start date" in result.output


def test_threshold_out_of_range(unified_g1_log, write_log):
    result = runner.invoke(app, ["analyze", str(write_log(unified_g1_log)), "-t", "150"])
    assert result.exit_code == 2


def test_missing_file(tmp_path):
    result = runner.invoke(app, ["analyze", str(tmp_path / "missing.log")])
    assert result.exit_code == 2
