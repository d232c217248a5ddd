# ABOUTME: Daemon configuration built from an option mapping
# ABOUTME: Validates option names, derives PID/error-log paths, creates the runtime dir

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from .exceptions import InvalidOptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaemonConfig:
    """Settings a daemon is constructed with.

    Attributes:
        runtime_dir: Directory holding the PID file and the error log
        name: Display name, also the stem of the PID and error-log files
        daemonize: Detach and loop forever; False runs process() once in the foreground
        dir_permissions: Mode used when the runtime directory has to be created
        pool_size: Maximum number of worker processes
        exit_status: Status every process of the daemon exits with
    """

    runtime_dir: Path
    name: str
    daemonize: bool = True
    dir_permissions: int = 0o775
    pool_size: int = 0
    exit_status: int = 0

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]], default_name: str) -> "DaemonConfig":
        """Build a config from user options.

        Args:
            options: Mapping of option name to value
            default_name: Name used when options carry none

        Raises:
            InvalidOptionError: Unknown option, missing runtime_dir, or a bad value
        """
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        for option in options:
            if option not in known:
                raise InvalidOptionError(f"option {option} is invalid")

        runtime_dir = options.pop("runtime_dir", None)
        if not runtime_dir:
            raise InvalidOptionError("option runtime_dir is invalid")
        runtime_dir = str(runtime_dir)
        runtime_dir = Path(runtime_dir.rstrip("/") or "/")

        pool_size = int(options.pop("pool_size", 0))
        if pool_size < 0:
            raise InvalidOptionError(f"option pool_size is invalid: {pool_size}")

        name = options.pop("name", None) or default_name

        return cls(
            runtime_dir=runtime_dir,
            name=name,
            pool_size=pool_size,
            daemonize=bool(options.pop("daemonize", True)),
            dir_permissions=int(options.pop("dir_permissions", 0o775)),
            exit_status=int(options.pop("exit_status", 0)),
        )

    @property
    def pid_file(self) -> Path:
        return self.runtime_dir / f"{self.name}.pid"

    @property
    def error_log(self) -> Path:
        return self.runtime_dir / f"{self.name}-error.log"


def default_daemon_name(cls: type) -> str:
    """Derive a daemon name from its class, innermost part first.

    ``myapp.daemons.Counter`` becomes ``Counter.daemons.myapp``.
    """
    dotted = f"{cls.__module__}.{cls.__qualname__}"
    return ".".join(reversed(dotted.split(".")))


def ensure_runtime_dir(config: DaemonConfig) -> None:
    """Create the runtime directory with the configured permissions if missing."""
    if config.runtime_dir.exists():
        return

    mask = os.umask(0)
    try:
        config.runtime_dir.mkdir(mode=config.dir_permissions, parents=True, exist_ok=True)
    finally:
        os.umask(mask)

    if not config.runtime_dir.is_dir():
        raise RuntimeError(f'Directory "{config.runtime_dir}" was not created')
    logger.debug(f"Created runtime directory {config.runtime_dir}")
