"""Data models for the launcher: launch plans, process and readiness state."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional


class LaunchMode(str, Enum):
    SOURCE_CHECKOUT = "source"
    PACKAGED_BUNDLE = "packaged"


class ProcessState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    CRASHED_EXIT = "crashed_exit"


class ReadinessState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LaunchPaths:
    """Where the server entry file, its working directory and data live."""

    entry_file: Path
    data_dir: Path
    working_dir: Path
    tried: tuple[str, ...] = ()


@dataclass(frozen=True)
class LaunchPlan:
    """Validated, immutable description of how to start the service.

    Only built from an entry file that exists and an interpreter that has
    passed both the version probe and the module check.
    """

    entry_file: Path
    data_dir: Path
    working_dir: Path
    interpreter: str
    arguments: tuple[str, ...]
    env_overrides: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "arguments", tuple(self.arguments))
        object.__setattr__(
            self, "env_overrides", MappingProxyType(dict(self.env_overrides))
        )

    @property
    def command(self) -> list[str]:
        return [self.interpreter, *self.arguments]

    def build_env(self, base: Mapping[str, str]) -> dict[str, str]:
        """Host environment overlaid with the plan's overrides."""
        env = dict(base)
        env.update(self.env_overrides)
        return env

    def to_dict(self) -> dict:
        return {
            "entry_file": str(self.entry_file),
            "data_dir": str(self.data_dir),
            "working_dir": str(self.working_dir),
            "interpreter": self.interpreter,
            "arguments": list(self.arguments),
            "env_overrides": dict(self.env_overrides),
        }


@dataclass
class SupervisedProcess:
    """The live service process as seen by the supervisor."""

    pid: Optional[int]
    state: ProcessState = ProcessState.NOT_STARTED
    returncode: Optional[int] = None

    @property
    def alive(self) -> bool:
        return self.state in (ProcessState.RUNNING, ProcessState.STOPPING)


@dataclass(frozen=True)
class ReadinessResult:
    """Terminal outcome of a readiness probe."""

    state: ReadinessState
    url: str
    attempts: int
    reason: Optional[Exception] = None

    @property
    def ready(self) -> bool:
        return self.state is ReadinessState.READY


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a bounded-time command invocation."""

    command: tuple[str, ...]
    returncode: Optional[int]
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def version(self) -> str:
        # Python 2 and some launchers print the version on stderr
        text = self.stdout.strip() or self.stderr.strip()
        return text.splitlines()[0] if text else ""
