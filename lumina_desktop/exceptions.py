"""Custom exceptions for the Lumina desktop launcher."""

from __future__ import annotations

from typing import Optional, Sequence


class LauncherError(Exception):
    """Base exception for all launcher errors."""

    title = "Lumina could not start"


class ConfigError(LauncherError):
    """Configuration error."""

    title = "Invalid configuration"


class NotFoundError(LauncherError):
    """No candidate location holds the server entry file."""

    title = "Application files not found"

    def __init__(self, tried: Sequence[str]):
        self.tried = list(tried)
        listing = "\n".join(f"  - {p}" for p in self.tried) or "  (no candidates)"
        super().__init__(f"Server entry file not found. Tried:\n{listing}")


class NoInterpreterError(LauncherError):
    """None of the candidate interpreter commands could be run."""

    title = "Python not found"

    def __init__(self, tried: Sequence[str]):
        self.tried = list(tried)
        super().__init__(
            "No working Python interpreter found (tried: "
            f"{', '.join(self.tried) or 'nothing'}). Install Python 3.8+ from "
            "https://python.org"
        )


class MissingDependencyError(LauncherError):
    """The interpreter exists but cannot run the required module."""

    title = "Missing dependency"

    def __init__(self, interpreter: str, module: str):
        self.interpreter = interpreter
        self.module = module
        super().__init__(
            f"'{interpreter} -m {module}' is not available. "
            f"Install it with: {interpreter} -m pip install {module}"
        )


class SpawnError(LauncherError):
    """The OS refused to create the service process."""

    title = "Could not start the service"


class UnexpectedExit(LauncherError):
    """The service process terminated without being asked to."""

    title = "The service stopped unexpectedly"

    def __init__(self, returncode: Optional[int]):
        self.returncode = returncode
        if returncode is None:
            detail = "no exit code"
        elif returncode < 0:
            detail = f"killed by signal {-returncode}"
        else:
            detail = f"exit code {returncode}"
        super().__init__(f"Service process exited unexpectedly ({detail})")


class ReadinessTimeout(LauncherError):
    """The service never answered its readiness probe."""

    title = "The service did not respond"

    def __init__(self, url: str, attempts: int):
        self.url = url
        self.attempts = attempts
        super().__init__(f"No successful response from {url} after {attempts} attempts")
