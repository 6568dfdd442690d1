"""Tests for the terminal progress printer."""

import io

from rich.console import Console

from cardart.vis.terminal import TerminalPrinter


def make_printer() -> tuple[TerminalPrinter, io.StringIO]:
    buf = io.StringIO()
    console = Console(file=buf, width=200, color_system=None)
    return TerminalPrinter(console=console, enable_color=False), buf


def test_ok_and_err_stages_render_marks():
    printer, buf = make_printer()

    printer.print_status("submit:ok", "job-1")
    printer.print_status("fetch:err", "out.png", level="error")

    lines = buf.getvalue().splitlines()
    assert lines == ["✓ submit: ok job-1", "✗ fetch: failed out.png"]


def test_plain_lines_use_dot_or_level_tag():
    printer, buf = make_printer()

    printer.print_status("", "waiting for server")
    printer.print_status("", "slow response", level="warning")

    lines = buf.getvalue().splitlines()
    assert lines == ["• waiting for server", "[WARNING] slow response"]


def test_bracketed_text_is_not_treated_as_markup():
    printer, buf = make_printer()

    printer.print_status("job:err", "node [5] failed", level="error")
    printer.print_poll(2, 10, "[pending]")

    output = buf.getvalue()
    assert "node [5] failed" in output
    assert "poll 2/10 [pending]" in output
