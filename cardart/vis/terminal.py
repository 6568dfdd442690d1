"""
Terminal status lines for a running art-generation job (uv-style, compact).

- Rich for styling; output goes to stderr so stdout stays pipeable.
- "<step>:ok" / "<step>:err" stages render as ✓ / ✗ lines.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape


def _isatty(stream) -> bool:
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


class TerminalPrinter:
    """Pretty printer for submit / poll / fetch progress."""

    # "<name>:<suffix>" where suffix ∈ {ok, err, error, fail, failed}
    _STEP_RE = re.compile(
        r"^\s*(?P<name>[^\s:]+):(?P<suffix>ok|err(?:or)?|fail(?:ed)?)\b(?:[:\s]*(?P<rest>.*))?$",
        re.IGNORECASE,
    )

    _LEVEL_STYLE = {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "red",
    }

    def __init__(self, console: Optional[Console] = None, enable_color: Optional[bool] = None):
        if enable_color is None:
            enable_color = _isatty(sys.stderr) and os.getenv("NO_COLOR") is None
        self.enable_color = enable_color
        self.console = console or Console(
            stderr=True, soft_wrap=False, highlight=False, no_color=not enable_color
        )

    def _mark(self, kind: str) -> str:
        if kind == "success":
            return "[green]✓[/]"
        if kind == "error":
            return "[red]✗[/]"
        if kind == "warning":
            return "[yellow]![/]"
        return "[cyan]•[/]"

    def _tag(self, level: str) -> str:
        level = (level or "info").lower()
        style = self._LEVEL_STYLE.get(level, "cyan")
        return f"[bold {style}][{level.upper()}][/bold {style}]"

    def print_status(self, stage: str, message: str = "", level: str = "info") -> None:
        """
        - "<name>:ok ..." -> ✓ line
        - "<name>:(err|error|fail|failed) ..." -> ✗ line
        - else -> "• message" for info, "[LEVEL] message" otherwise
        """
        text = (f"{stage} {message}".strip() if stage else message).strip()
        text = escape(text)

        m = self._STEP_RE.match(text)
        if m:
            name = m.group("name")
            suffix = m.group("suffix").lower()
            rest = (m.group("rest") or "").strip()
            note = f" {rest}" if rest else ""
            if suffix == "ok":
                self.console.print(f"{self._mark('success')} {name}: ok{note}")
            else:
                self.console.print(f"{self._mark('error')} {name}: failed{note}")
            return

        if (level or "info").lower() == "info":
            self.console.print(f"{self._mark('info')} {text}")
        else:
            self.console.print(f"{self._tag(level)} {text}")

    def print_poll(self, attempt: int, total: int, status: str) -> None:
        self.console.print(f"[bright_black]poll {attempt}/{total}[/] {escape(status)}")
