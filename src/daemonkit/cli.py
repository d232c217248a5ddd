#!/usr/bin/env python3
# ABOUTME: Command-line control of a daemon class: start, stop, restart, status
# ABOUTME: Loads a BaseDaemon subclass from module:Class and drives it via the PID file

"""
daemonkit command-line tool

Usage:
    daemonkit start   myapp.daemons:Counter --runtime-dir /var/run/myapp
    daemonkit stop    myapp.daemons:Counter --runtime-dir /var/run/myapp
    daemonkit restart myapp.daemons:Counter --runtime-dir /var/run/myapp --pool-size 4
    daemonkit status  myapp.daemons:Counter --runtime-dir /var/run/myapp
"""

import argparse
import importlib
import logging
import sys
from typing import List, Optional

from rich.console import Console

from . import __version__
from .daemon import BaseDaemon
from .exceptions import DaemonError

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def load_daemon_class(target: str) -> type:
    """Import a BaseDaemon subclass given as ``module:ClassName``."""
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise ValueError(f"Target must look like module:ClassName, got {target!r}")

    module = importlib.import_module(module_name)
    cls = getattr(module, class_name, None)
    if not isinstance(cls, type) or not issubclass(cls, BaseDaemon):
        raise ValueError(f"{target} is not a BaseDaemon subclass")
    return cls


def build_daemon(args: argparse.Namespace) -> BaseDaemon:
    options = {"runtime_dir": args.runtime_dir}
    if args.name:
        options["name"] = args.name
    if args.pool_size is not None:
        options["pool_size"] = args.pool_size
    if args.foreground:
        options["daemonize"] = False
    return load_daemon_class(args.target)(options)


def cmd_start(daemon: BaseDaemon) -> int:
    console.print(f"[blue]Starting[/blue] {daemon.name}")
    daemon.start()
    return 0


def cmd_stop(daemon: BaseDaemon) -> int:
    daemon.stop()
    console.print(f"[bold green]Stopped[/bold green] {daemon.name}")
    return 0


def cmd_restart(daemon: BaseDaemon) -> int:
    console.print(f"[blue]Restarting[/blue] {daemon.name}")
    daemon.restart()
    return 0


def cmd_status(daemon: BaseDaemon) -> int:
    status = daemon.status()
    if status["running"]:
        console.print(f"{daemon.name}: [bold green]running[/bold green] (pid {status['pid']})")
    else:
        console.print(f"{daemon.name}: [yellow]not running[/yellow]")
    console.print(f"  pid file:  [dim]{daemon.pid_file}[/dim]")
    console.print(f"  error log: [dim]{daemon.error_log}[/dim]")
    return 0


COMMANDS = {
    "start": cmd_start,
    "stop": cmd_stop,
    "restart": cmd_restart,
    "status": cmd_status,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="daemonkit",
        description="Control a daemonkit daemon through its PID file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("command", choices=sorted(COMMANDS), help="Action to perform")
    parser.add_argument("target", help="Daemon class as module:ClassName")
    parser.add_argument("--runtime-dir", required=True, help="Directory for PID file and error log")
    parser.add_argument("--name", help="Daemon name (defaults to one derived from the class)")
    parser.add_argument("--pool-size", type=int, help="Maximum number of worker processes")
    parser.add_argument(
        "--foreground",
        action="store_true",
        help="Run process() once without detaching",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        daemon = build_daemon(args)
    except (ImportError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 2
    except DaemonError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    try:
        return COMMANDS[args.command](daemon)
    except DaemonError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
