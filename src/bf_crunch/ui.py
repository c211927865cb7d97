import logging
import sys
from collections import deque
from typing import List, Optional

import structlog
from rich.console import Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bf_crunch.models.solution import Solution
from bf_crunch.progress import ProgressChannel, SearchSnapshot

LOG_BUFFER = deque(maxlen=5000)
LOG_LINES = 8
LOG_FORMAT = "%(asctime)s  %(levelname)s  %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LEVEL_STYLE = {
    logging.DEBUG: "dim",
    logging.INFO: "",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}


class UILogHandler(logging.Handler):
    def emit(self, record):
        msg = self.format(record)
        LOG_BUFFER.append((record.levelno, msg))


def get_ui_log_handler() -> UILogHandler:
    uih = UILogHandler()
    uih.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    return uih


def configure_logging(live_ui: bool, verbose: bool = False) -> None:
    """
    Route structlog through stdlib logging: into the log panel while the live
    display runs, to stderr otherwise.
    """
    if live_ui:
        handler: logging.Handler = get_ui_log_handler()
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )


def render_log_panel(title: str, max_lines: int) -> Panel:
    """Render exactly max_lines log entries (cropped to width, no wrap)."""
    items = list(LOG_BUFFER)[-max_lines:]
    if len(items) < max_lines:
        items = [("", "")] * (max_lines - len(items)) + items

    grid = Table.grid(padding=(0, 0))
    grid.add_column(no_wrap=True, overflow="crop")
    for lvl, msg in items:
        style = LEVEL_STYLE.get(lvl, "")
        grid.add_row(Text(msg, style=style))
    return Panel(grid, title=title, padding=(0, 1))


def format_solution(solution: Solution, full_program: bool = False) -> List[str]:
    """Report lines of one solution."""
    if full_program:
        program = solution.program()
        return [f"{len(program)}: {program}"]
    return [
        f"{solution.length}: {solution.prefix}",
        f"{solution.exit_pointer}, {solution.plan}",
        ", ".join(str(offset) for offset in solution.touched()),
    ]


def render(state: Optional[SearchSnapshot]):
    """Render the search progress snapshot."""
    if state is None:
        return Panel("Waiting for first update…", title="bf-crunch", border_style="dim")

    status = "done" if state.complete else "running"
    table = Table(title=f"Init length {state.length}  |  {status}  |  v{state.version}")
    table.add_column("Shapes", justify="right")
    table.add_column("Traces", justify="right")
    table.add_column("Bound", justify="right")
    table.add_column("Best", justify="right")
    table.add_column("Elapsed", justify="right")

    best = str(min(solution.length for solution in state.solutions)) if state.solutions else "-"
    table.add_row(
        str(state.shapes),
        str(state.traces),
        str(state.bound),
        best,
        f"{state.elapsed:.1f}s",
    )
    return Group(table, render_log_panel("Log", LOG_LINES))


def ui_loop(progress: ProgressChannel, full_program: bool = False) -> None:
    """Loop the UI, printing every new solution above the live panel."""
    printed = 0
    with Live(render(None), refresh_per_second=30, screen=False) as live:
        while True:
            state = progress.get()
            if state is None:
                break
            for solution in state.solutions[printed:]:
                for line in format_solution(solution, full_program):
                    live.console.print(line, markup=False, highlight=False)
            printed = len(state.solutions)
            live.update(render(state))
