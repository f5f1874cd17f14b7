from __future__ import annotations

import logging
from typing import Callable, Optional

import click

from . import __version__
from .command import Command, is_hex_color, random_color
from .config import ConfigError, load_settings
from .dispatcher import Dispatcher, run_with_retries
from .transport import FlowControl, SerialTransport, TransportError

_logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s]: %(message)s"


def _configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("todo_threader").setLevel(level)


def _select_command(test: bool, raw: Optional[str], next_: bool, swap: bool,
                    following: Optional[str], add: Optional[str]) -> Command:
    selected = [
        cmd for cmd, present in (
            (Command.Test, test),
            (Command.Raw, raw is not None),
            (Command.Next, next_),
            (Command.Swap, swap),
            (Command.Follow, following is not None),
            (Command.Add, add is not None),
        ) if present
    ]
    if not selected:
        raise click.UsageError(
            "Choose an operation: --test, --raw, --next, --swap, --following or --add")
    if len(selected) > 1:
        names = ", ".join(cmd.name.lower() for cmd in selected)
        raise click.UsageError(f"Operations are mutually exclusive (got {names})")
    return selected[0]


def _resolve_color(command: Command, color: Optional[str], randomize: bool) -> Optional[str]:
    # Color is required exactly for the task creating commands
    if color is not None and randomize:
        raise click.UsageError("Use only one of --color or --random")
    if not command.takes_task:
        if color is not None or randomize:
            raise click.UsageError("--color/--random only apply to --following and --add")
        return None
    if randomize:
        color = random_color()
        _logger.info("Using random color %s", color)
    elif color is None:
        raise click.UsageError(f"--{'following' if command is Command.Follow else 'add'} "
                               "requires --color or --random")
    if not is_hex_color(color):
        _logger.warning("Color %r is not a 6 digit hex value; sending it as is", color)
    return color


def _operation(dispatcher: Dispatcher, command: Command, task: Optional[str],
               color: Optional[str]) -> Callable[[], bytes]:
    if command is Command.Next:
        return dispatcher.next
    if command is Command.Swap:
        return dispatcher.swap
    if command is Command.Follow:
        return lambda: dispatcher.following(task, color)
    return lambda: dispatcher.add(task, color)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version")
@click.argument("address")
@click.option("-B", "--baud-rate", "baudrate", type=click.IntRange(min=1), metavar="BAUD",
              help="Baud rate for communications  [default: 9600]")
@click.option("-T", "--timeout", "timeout_ms", type=click.IntRange(min=0), metavar="TIMEOUT",
              help="Timeout in milliseconds for communications  [default: 500]")
@click.option("--flow-control", type=click.Choice([f.value for f in FlowControl]),
              help="Serial flow control  [default: software]")
@click.option("--encoding", help="Text encoding for commands  [default: utf-8]")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="TOML config file (default: ./todo-threader.toml or $TODO_THREADER_CONFIG)")
@click.option("-d", "--debug", is_flag=True, help="Set log level to debug")
@click.option("-t", "--test", is_flag=True, help="Send a test to see if the device is available")
@click.option("-r", "--raw", metavar="PAYLOAD", help="Send a payload directly")
@click.option("-n", "--next", "next_", is_flag=True,
              help="Mark the current task as done")
@click.option("-s", "--swap", is_flag=True, help="Swap the current task with the next one")
@click.option("-f", "--following", metavar="TASK", help="Set a task and schedule it as the next one")
@click.option("-a", "--add", metavar="TASK", help="Set a task and schedule it at the end")
@click.option("-c", "--color", metavar="COLOR", help="Color for a new task in HTML notation, e.g. '#FF8800'")
@click.option("-R", "--random", "randomize", is_flag=True, help="Pick a random color for a new task")
def main(address: str, baudrate: Optional[int], timeout_ms: Optional[int],
         flow_control: Optional[str], encoding: Optional[str], config_path: Optional[str],
         debug: bool, test: bool, raw: Optional[str], next_: bool, swap: bool,
         following: Optional[str], add: Optional[str], color: Optional[str],
         randomize: bool) -> None:
    """Relay task commands to a display device on serial port ADDRESS.

    Examples:

      # Check that the device answers
      todo-threader /dev/ttyUSB0 --test

      # Add a task at the end of the list
      todo-threader /dev/ttyUSB0 --add "Write report" --color "#FF8800"

      # Schedule a task next with a random color, at 115200 baud
      todo-threader /dev/ttyUSB0 -B 115200 --following "Call Bob" --random

      # Done with the current task
      todo-threader COM3 --next
    """
    _configure_logging(debug)

    command = _select_command(test, raw, next_, swap, following, add)
    resolved_color = _resolve_color(command, color, randomize)

    try:
        settings = load_settings(config_path).merged(
            baudrate=baudrate, timeout_ms=timeout_ms,
            flow_control=flow_control, encoding=encoding,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    payload = b""
    if command is Command.Raw:
        try:
            payload = raw.encode(settings.encoding)
        except UnicodeEncodeError as e:
            raise click.ClickException(f"Cannot encode payload as {settings.encoding}: {e}")

    try:
        transport = SerialTransport(
            address,
            baudrate=settings.baudrate,
            timeout=settings.timeout,
            flow_control=settings.flow_control,
            deassert_lines=settings.deassert_lines,
        )
    except TransportError as e:
        raise click.ClickException(
            f"Failed to initialize communication with the Device! Reason: {e}")

    with transport:
        dispatcher = Dispatcher(transport, encoding=settings.encoding)
        if command is Command.Test:
            dispatcher.test()
        elif command is Command.Raw:
            dispatcher.raw(payload)
        elif command.mutating:
            task = following if command is Command.Follow else add
            try:
                run_with_retries(_operation(dispatcher, command, task, resolved_color))
            except ValueError as e:
                raise click.ClickException(str(e))

