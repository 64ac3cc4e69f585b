"""Find a working Python interpreter and check it can run the server module."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, Mapping, Optional, Sequence

from lumina_desktop.exceptions import MissingDependencyError, NoInterpreterError
from lumina_desktop.models import CommandResult, LaunchMode

logger = logging.getLogger(__name__)

Executor = Callable[[Sequence[str], float, Optional[Mapping[str, str]]], CommandResult]


def clean_env(base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Return the environment without DYLD_* keys.

    A frozen macOS bundle points DYLD_LIBRARY_PATH / DYLD_FRAMEWORK_PATH at its
    own libraries; an external interpreter started with those loads the wrong
    dylibs.
    """
    base = os.environ if base is None else base
    return {k: v for k, v in base.items() if not k.startswith("DYLD_")}


def launch_env(mode: LaunchMode, base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Environment the service and interpreter checks run with in *mode*."""
    if mode is LaunchMode.PACKAGED_BUNDLE:
        return clean_env(base)
    return dict(os.environ if base is None else base)


def run_command(
    command: Sequence[str],
    timeout: float,
    env: Optional[Mapping[str, str]] = None,
) -> CommandResult:
    """Run *command* to completion within *timeout* seconds. Never raises."""
    cmd = tuple(command)
    try:
        r = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            timeout=timeout,
            env=dict(env) if env is not None else None,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(cmd, None, error=f"timed out after {timeout:g}s")
    except OSError as exc:
        # FileNotFoundError for an unknown command, PermissionError, ...
        return CommandResult(cmd, None, error=str(exc))
    return CommandResult(cmd, r.returncode, stdout=r.stdout or "", stderr=r.stderr or "")


class RuntimeDetector:
    """Probe candidate interpreter commands in priority order."""

    def __init__(
        self,
        executor: Executor = run_command,
        version_timeout: float = 5.0,
        module_timeout: float = 10.0,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.executor = executor
        self.version_timeout = version_timeout
        self.module_timeout = module_timeout
        self.env = env

    def probe_version(self, command: str) -> CommandResult:
        result = self.executor([command, "--version"], self.version_timeout, self.env)
        logger.debug(
            "probe %s --version -> rc=%s err=%s out=%r",
            command, result.returncode, result.error, result.version,
        )
        return result

    def detect_interpreter(self, candidates: Sequence[str]) -> str:
        """Return the first candidate whose version probe succeeds.

        Raises:
            NoInterpreterError: every candidate failed, timed out or is missing.
        """
        tried = []
        for command in candidates:
            if not command:
                continue
            tried.append(command)
            result = self.probe_version(command)
            if result.ok:
                logger.info("Using interpreter %s (%s)", command, result.version)
                return command
        logger.error("No working interpreter among %s", tried)
        raise NoInterpreterError(tried)

    def verify_module_available(self, command: str, module: str) -> bool:
        result = self.executor(
            [command, "-m", module, "--version"], self.module_timeout, self.env
        )
        if result.ok:
            logger.info("%s -m %s: %s", command, module, result.version)
            return True
        logger.warning(
            "%s -m %s unavailable (rc=%s, %s)",
            command, module, result.returncode,
            result.error or result.stderr.strip()[-200:],
        )
        return False

    def require_module(self, command: str, module: str) -> None:
        if not self.verify_module_available(command, module):
            raise MissingDependencyError(command, module)
