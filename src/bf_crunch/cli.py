import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import click

from bf_crunch.config import ConfigError, SearchConfig, build_config
from bf_crunch.driver import SearchDriver
from bf_crunch.emulator import EmulatorError, Machine
from bf_crunch.models.solution import Solution
from bf_crunch.progress import ProgressChannel
from bf_crunch.ui import configure_logging, format_solution, ui_loop
from bf_crunch.utils import TextError, parse_goal


@click.group()
def cli():
    pass


def cruncher(config: SearchConfig, goal: bytes, cancel: threading.Event, full_program: bool) -> List[Solution]:
    """Run the search in a worker thread behind the live display."""
    progress = ProgressChannel()
    driver = SearchDriver(config, goal, cancel=cancel, progress=progress)

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(driver.run)

        try:
            ui_loop(progress, full_program)
        except KeyboardInterrupt:
            cancel.set()
            progress.close()

        return future.result()


def plain_cruncher(config: SearchConfig, goal: bytes, cancel: threading.Event, full_program: bool) -> List[Solution]:
    """Run the search in the foreground, echoing solutions as they are found."""

    def report(solution: Solution):
        for line in format_solution(solution, full_program):
            click.echo(line)

    driver = SearchDriver(config, goal, cancel=cancel, on_solution=report)
    try:
        return driver.run()
    except KeyboardInterrupt:
        cancel.set()
        return list(driver.solutions)


@cli.command()
@click.argument("text")
@click.argument("limit", required=False, type=int)
@click.option("--max-init", "-i", type=int, default=None, help="Maximum length of the initialization segment.")
@click.option("--min-init", "-I", type=int, default=14, show_default=True, help="Minimum length of the initialization segment.")
@click.option("--max-tape", "-t", type=int, default=1250, show_default=True, help="Maximum number of cells the loop may initialize.")
@click.option("--min-tape", "-T", type=int, default=1, show_default=True, help="Minimum number of cells the loop must initialize.")
@click.option("--max-node-cost", "-n", type=int, default=20, show_default=True, help="Maximum cost of emitting one character.")
@click.option("--max-loops", "-l", type=int, default=30_000, show_default=True, help="Maximum number of outer loop passes.")
@click.option("--max-slen", "-s", type=int, default=None, help="Maximum length of the s-segment.")
@click.option("--min-slen", "-S", type=int, default=1, show_default=True, help="Minimum length of the s-segment.")
@click.option("--max-clen", "-c", type=int, default=None, help="Maximum length of the c-segment.")
@click.option("--min-clen", "-C", type=int, default=1, show_default=True, help="Minimum length of the c-segment.")
@click.option("--rolling-limit", "-r", is_flag=True, help="Tighten the limit whenever a shorter program is found.")
@click.option("--unique-cells", "-u", is_flag=True, help="Never print from the same cell twice.")
@click.option("--workers", "-w", type=int, default=1, show_default=True, help="Shapes evaluated concurrently.")
@click.option("--time-limit", type=float, default=None, help="Stop searching after this many seconds.")
@click.option("--full-program", is_flag=True, help="Print the complete program instead of the prefix and path.")
@click.option("--no-ui", is_flag=True, help="Disable the live display and log to stderr.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages.")
def crunch(
    text: str,
    limit: Optional[int],
    max_init: Optional[int],
    min_init: int,
    max_tape: int,
    min_tape: int,
    max_node_cost: int,
    max_loops: int,
    max_slen: Optional[int],
    min_slen: int,
    max_clen: Optional[int],
    min_clen: int,
    rolling_limit: bool,
    unique_cells: bool,
    workers: int,
    time_limit: Optional[float],
    full_program: bool,
    no_ui: bool,
    verbose: bool,
):
    """Search for the shortest program that prints TEXT, at most LIMIT symbols long."""
    try:
        goal = parse_goal(text)
        config = build_config(
            limit=limit,
            max_init=max_init,
            min_init=min_init,
            max_tape=max_tape,
            min_tape=min_tape,
            max_node_cost=max_node_cost,
            max_loops=max_loops,
            max_slen=max_slen,
            min_slen=min_slen,
            max_clen=max_clen,
            min_clen=min_clen,
            rolling_limit=rolling_limit,
            unique_cells=unique_cells,
            workers=workers,
        )
    except (TextError, ConfigError) as e:
        raise click.UsageError(str(e))

    configure_logging(live_ui=not no_ui, verbose=verbose)

    cancel = threading.Event()
    timer = None
    if time_limit is not None:
        timer = threading.Timer(time_limit, cancel.set)
        timer.daemon = True
        timer.start()

    try:
        if no_ui:
            solutions = plain_cruncher(config, goal, cancel, full_program)
        else:
            solutions = cruncher(config, goal, cancel, full_program)
    finally:
        if timer is not None:
            timer.cancel()

    if not solutions:
        click.echo("No program found.", err=True)
        return
    best = min(solutions, key=lambda solution: solution.length)
    click.echo(f"Shortest: {best.length}: {best.program()}", err=True)


@cli.command()
@click.argument("program", required=False)
@click.option("--file", "-f", "path", type=click.Path(exists=True, dir_okay=False), help="Read the program from a file.")
@click.option("--max-steps", type=int, default=10_000_000, show_default=True, help="Abort after this many steps.")
def run(program: Optional[str], path: Optional[str], max_steps: int):
    """Execute PROGRAM on the reference machine and print its output."""
    if path is not None:
        with open(path, "r", encoding="latin-1") as f:
            program = f.read()
    if program is None:
        raise click.UsageError("Provide a PROGRAM or --file")

    try:
        output = Machine(max_steps=max_steps).run(program)
    except EmulatorError as e:
        raise click.ClickException(str(e))
    click.echo(output.decode("latin-1"), nl=False)


if __name__ == "__main__":
    cli()
