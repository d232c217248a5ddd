#!/usr/bin/env python3
# ABOUTME: Tests for DaemonConfig option parsing, derived paths and runtime dir creation
# ABOUTME: Verifies unknown options are rejected and defaults match the documented ones

import os
import stat
from dataclasses import FrozenInstanceError

import pytest


class TestFromOptions:
    """Tests for DaemonConfig.from_options."""

    def test_defaults(self, tmp_path):
        from daemonkit.config import DaemonConfig

        config = DaemonConfig.from_options({"runtime_dir": str(tmp_path)}, "Default.name")

        assert config.runtime_dir == tmp_path
        assert config.name == "Default.name"
        assert config.daemonize is True
        assert config.dir_permissions == 0o775
        assert config.pool_size == 0
        assert config.exit_status == 0

    def test_all_options(self, tmp_path):
        from daemonkit.config import DaemonConfig

        config = DaemonConfig.from_options(
            {
                "runtime_dir": tmp_path,
                "name": "mydaemon",
                "daemonize": False,
                "dir_permissions": 0o700,
                "pool_size": 4,
                "exit_status": 3,
            },
            "ignored",
        )

        assert config.name == "mydaemon"
        assert config.daemonize is False
        assert config.dir_permissions == 0o700
        assert config.pool_size == 4
        assert config.exit_status == 3

    def test_unknown_option_rejected(self, tmp_path):
        from daemonkit.config import DaemonConfig
        from daemonkit.exceptions import InvalidOptionError

        with pytest.raises(InvalidOptionError, match="option poolsize is invalid"):
            DaemonConfig.from_options({"runtime_dir": str(tmp_path), "poolsize": 2}, "d")

    @pytest.mark.parametrize("options", [None, {}, {"runtime_dir": ""}])
    def test_missing_runtime_dir_rejected(self, options):
        from daemonkit.config import DaemonConfig
        from daemonkit.exceptions import InvalidOptionError

        with pytest.raises(InvalidOptionError, match="runtime_dir"):
            DaemonConfig.from_options(options, "d")

    def test_negative_pool_size_rejected(self, tmp_path):
        from daemonkit.config import DaemonConfig
        from daemonkit.exceptions import InvalidOptionError

        with pytest.raises(InvalidOptionError):
            DaemonConfig.from_options({"runtime_dir": str(tmp_path), "pool_size": -1}, "d")

    def test_trailing_slash_stripped_and_paths_derived(self, tmp_path):
        from daemonkit.config import DaemonConfig

        config = DaemonConfig.from_options({"runtime_dir": f"{tmp_path}/", "name": "svc"}, "d")

        assert config.pid_file == tmp_path / "svc.pid"
        assert config.error_log == tmp_path / "svc-error.log"

    def test_config_is_immutable(self, tmp_path):
        from daemonkit.config import DaemonConfig

        config = DaemonConfig.from_options({"runtime_dir": str(tmp_path)}, "d")
        with pytest.raises(FrozenInstanceError):
            config.pool_size = 10


class TestDefaultName:
    """Tests for default_daemon_name."""

    def test_reverses_dotted_class_path(self):
        from daemonkit.config import default_daemon_name

        class Counter:
            pass

        Counter.__module__ = "myapp.daemons"
        Counter.__qualname__ = "Counter"

        assert default_daemon_name(Counter) == "Counter.daemons.myapp"


class TestEnsureRuntimeDir:
    """Tests for runtime directory creation."""

    def test_creates_nested_dir_with_permissions(self, tmp_path):
        from daemonkit.config import DaemonConfig, ensure_runtime_dir

        runtime_dir = tmp_path / "a" / "b"
        config = DaemonConfig(runtime_dir=runtime_dir, name="d", dir_permissions=0o750)

        ensure_runtime_dir(config)

        assert runtime_dir.is_dir()
        assert stat.S_IMODE(runtime_dir.stat().st_mode) == 0o750

    def test_umask_restored(self, tmp_path):
        from daemonkit.config import DaemonConfig, ensure_runtime_dir

        previous = os.umask(0o027)
        try:
            ensure_runtime_dir(DaemonConfig(runtime_dir=tmp_path / "x", name="d"))
            assert os.umask(0o027) == 0o027
        finally:
            os.umask(previous)

    def test_existing_dir_left_alone(self, tmp_path):
        from daemonkit.config import DaemonConfig, ensure_runtime_dir

        tmp_path.chmod(0o700)
        ensure_runtime_dir(DaemonConfig(runtime_dir=tmp_path, name="d", dir_permissions=0o777))

        assert stat.S_IMODE(tmp_path.stat().st_mode) == 0o700
