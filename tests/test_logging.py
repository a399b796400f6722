"""Tests for Rich progress reporter."""
import logging
import pytest
from io import StringIO
from pathlib import Path

from rich.console import Console

from mediatidy.core.models import FileState, ProgressEvent, RecordStatus, RunStats
from mediatidy.logging.rich_logger import (
    QuietProgressReporter,
    RichProgressReporter,
    describe_stats,
    format_bytes,
    setup_logging,
)


def make_console() -> Console:
    return Console(file=StringIO(), force_terminal=False, width=200)


def output(console: Console) -> str:
    return console.file.getvalue()


def placed_event(n: int = 1) -> ProgressEvent:
    return ProgressEvent(
        path=Path(f"/src/{n}.jpg"),
        state=FileState.FINALIZED,
        status=RecordStatus.COPIED,
        stats=RunStats(scanned=n, imported=n),
        dest_path=Path(f"/lib/photo/2021/2021-05/{n}.jpg"),
    )


def skipped_event() -> ProgressEvent:
    return ProgressEvent(
        path=Path("/src/dup.jpg"),
        state=FileState.FINALIZED,
        status=RecordStatus.SKIPPED,
        stats=RunStats(scanned=1, skipped=1),
    )


def failed_event() -> ProgressEvent:
    return ProgressEvent(
        path=Path("/src/bad.jpg"),
        state=FileState.FAILED,
        status=RecordStatus.FAILED,
        stats=RunStats(scanned=1, failed=1),
        error="disk full",
    )


class TestRichProgressReporter:
    """Tests for Rich progress reporter."""

    def test_create_default(self):
        reporter = RichProgressReporter()
        assert reporter._verbose is False
        assert reporter._quiet is False

    def test_consume_returns_last_stats(self):
        reporter = RichProgressReporter(console=make_console())

        stats = reporter.consume([placed_event(1), placed_event(2)])

        assert stats.scanned == 2
        assert reporter._progress is None

    def test_consume_empty(self):
        assert RichProgressReporter(console=make_console()).consume([]) is None

    def test_per_file_lines(self):
        console = make_console()
        reporter = RichProgressReporter(console=console)

        reporter.consume([placed_event(), failed_event()])

        text = output(console)
        assert "copied /src/1.jpg" in text
        assert "/src/bad.jpg: disk full" in text

    def test_skips_only_when_verbose(self):
        console = make_console()
        RichProgressReporter(console=console).print_event(skipped_event())
        assert output(console) == ""

        console = make_console()
        RichProgressReporter(verbose=True, console=console).print_event(skipped_event())
        assert "skipped /src/dup.jpg" in output(console)

    def test_quiet_suppresses_per_file_output(self):
        console = make_console()
        reporter = RichProgressReporter(quiet=True, console=console)

        reporter.consume([placed_event(), failed_event()])
        reporter.info("hello")
        reporter.print_header("header")

        assert output(console) == ""

    def test_quiet_still_prints_stats(self):
        console = make_console()
        reporter = RichProgressReporter(quiet=True, console=console)

        reporter.print_stats(RunStats(scanned=3, imported=2, skipped=1), elapsed_seconds=2.0)

        text = output(console)
        assert "Run Complete" in text
        assert "Imported" in text
        assert "Took" in text

    def test_errors_not_suppressed(self):
        console = make_console()
        RichProgressReporter(quiet=True, console=console).error("boom")

        assert "boom" in output(console)

    def test_print_summary(self):
        console = make_console()
        RichProgressReporter(console=console).print_summary("Rescan Complete", {"checked": 4, "added": 1})

        text = output(console)
        assert "Rescan Complete" in text
        assert "Checked" in text


class TestQuietProgressReporter:
    """Tests for the plain reporter."""

    def test_consume_returns_last_stats(self):
        assert QuietProgressReporter().consume([placed_event(1), placed_event(5)]).scanned == 5

    def test_print_stats(self, capsys):
        QuietProgressReporter().print_stats(RunStats(scanned=2, imported=1, failed=1), 1.0)

        out = capsys.readouterr().out
        assert "scanned=2" in out
        assert "imported=1" in out
        assert "failed=1" in out

    def test_error_goes_to_stderr(self, capsys):
        QuietProgressReporter().error("broken")

        assert "ERROR: broken" in capsys.readouterr().err


class TestHelpers:

    @pytest.mark.parametrize("size,expected", [
        (0, "0 B"),
        (512, "512 B"),
        (2048, "2.0 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
    ])
    def test_format_bytes(self, size, expected):
        assert format_bytes(size) == expected

    def test_describe_stats(self):
        text = describe_stats(RunStats(scanned=4, imported=2, skipped=1, failed=1))
        assert "scanned 4" in text
        assert "failed 1" in text


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    @pytest.mark.parametrize("verbose,quiet,level", [
        (False, False, logging.WARNING),
        (True, False, logging.DEBUG),
        (False, True, logging.ERROR),
        (True, True, logging.DEBUG),
    ])
    def test_levels(self, verbose, quiet, level):
        setup_logging(verbose=verbose, quiet=quiet, console=make_console())

        assert logging.getLogger().level == level

    def test_records_reach_console(self):
        console = make_console()
        setup_logging(console=console)

        logging.getLogger("mediatidy.test").warning("something odd")

        assert "something odd" in output(console)
