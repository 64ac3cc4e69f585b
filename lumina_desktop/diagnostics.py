"""Environment report for troubleshooting a launcher that will not start."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import httpx
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from lumina_desktop.config import Config
from lumina_desktop.models import CommandResult, LaunchMode
from lumina_desktop.paths import candidate_roots, detect_mode
from lumina_desktop.probe import HttpGet, http_status
from lumina_desktop.runtime import Executor, launch_env, run_command
from lumina_desktop.scaffold import CSV_SCHEMAS

logger = logging.getLogger(__name__)

REQUIRED_PACKAGES = ["streamlit", "pandas", "altair"]
RELEVANT_ENV_VARS = [
    "PATH",
    "PYTHONPATH",
    "STREAMLIT_SERVER_PORT",
    "STREAMLIT_SERVER_ADDRESS",
    "LUMINA_CONFIG",
]


@dataclass
class RootCheck:
    root: str
    exists: bool
    entry_file: str
    has_entry: bool
    has_data_dir: bool = False
    has_config: bool = False
    data_files: list[str] = field(default_factory=list)


@dataclass
class DiagnosticReport:
    mode: LaunchMode
    python: str
    platform: str
    cwd: str
    roots: list[RootCheck] = field(default_factory=list)
    interpreters: list[CommandResult] = field(default_factory=list)
    interpreter: Optional[str] = None
    module_version: Optional[str] = None
    packages: dict[str, Optional[str]] = field(default_factory=dict)
    port: int = 8501
    port_free: bool = True
    http_status: Optional[int] = None
    env: dict[str, Optional[str]] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def server_root(self) -> Optional[RootCheck]:
        return next((r for r in self.roots if r.has_entry), None)


def port_available(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            s.bind((host, port))
        except OSError:
            return False
    return True


def _check_root(root: str, config: Config) -> RootCheck:
    svc = config.service
    server_dir = Path(root) / svc.server_subdir
    entry = server_dir / svc.entry_file
    check = RootCheck(
        root=root,
        exists=os.path.isdir(root),
        entry_file=str(entry),
        has_entry=entry.is_file(),
    )
    if check.has_entry:
        data_dir = server_dir / svc.data_subdir
        check.has_data_dir = data_dir.is_dir()
        check.has_config = (server_dir / ".streamlit" / "config.toml").is_file()
        if check.has_data_dir:
            check.data_files = sorted(p.name for p in data_dir.iterdir())
    return check


def collect(
    config: Config,
    mode: Optional[LaunchMode] = None,
    executor: Executor = run_command,
    http_get: HttpGet = http_status,
    port_check: Callable[[str, int], bool] = port_available,
) -> DiagnosticReport:
    """Gather the report. Nothing here spawns the service or writes files."""
    mode = mode or detect_mode()
    svc = config.service
    rt = config.runtime
    env = launch_env(mode)
    report = DiagnosticReport(
        mode=mode,
        python=sys.version.split()[0],
        platform=f"{platform.system()} {platform.machine()}",
        cwd=os.getcwd(),
        port=svc.port,
    )

    report.roots = [_check_root(root, config) for root in candidate_roots(mode)]

    for command in rt.candidates:
        result = executor([command, "--version"], rt.version_timeout, env)
        report.interpreters.append(result)
        if result.ok and report.interpreter is None:
            report.interpreter = command

    if report.interpreter:
        module = executor(
            [report.interpreter, "-m", svc.module, "--version"], rt.module_timeout, env
        )
        report.module_version = module.version if module.ok else None
        for pkg in REQUIRED_PACKAGES:
            r = executor(
                [report.interpreter, "-c", f"import {pkg}; print({pkg}.__version__)"],
                rt.module_timeout,
                env,
            )
            report.packages[pkg] = r.version if r.ok else None

    report.port_free = port_check(svc.host, svc.port)
    if not report.port_free:
        try:
            report.http_status = http_get(
                svc.url, config.probe.timeout_seconds
            )
        except (httpx.HTTPError, OSError) as exc:
            logger.debug("Port %d busy but not answering HTTP: %s", svc.port, exc)

    report.env = {name: os.environ.get(name) for name in RELEVANT_ENV_VARS}

    _summarise(report, config)
    return report


def _summarise(report: DiagnosticReport, config: Config) -> None:
    svc = config.service
    if report.interpreter is None:
        report.issues.append("No working Python installation found")
        report.recommendations.append("Install Python 3.8+ from https://python.org")
    elif report.module_version is None:
        report.issues.append(f"'{svc.module}' is not installed for {report.interpreter}")
        report.recommendations.append(
            f"Run: {report.interpreter} -m pip install -r {svc.server_subdir}/requirements.txt"
        )
    missing = [name for name, version in report.packages.items() if version is None]
    if missing:
        report.issues.append(f"Missing Python packages: {', '.join(missing)}")
        report.recommendations.append(f"Run: pip install {' '.join(missing)}")

    root = report.server_root
    if root is None:
        report.issues.append(f"{svc.server_subdir}/{svc.entry_file} not found")
        report.recommendations.append(
            f"Ensure {svc.server_subdir} is included in the build"
        )
    else:
        missing_csv = [n for n in CSV_SCHEMAS if n not in root.data_files]
        if missing_csv:
            report.issues.append(f"Data files missing: {', '.join(missing_csv)}")
            report.recommendations.append("Run: python -m lumina_desktop init")

    if not report.port_free and report.http_status is None:
        report.issues.append(f"Port {report.port} is in use by something that is not answering HTTP")
        report.recommendations.append(f"Free port {report.port} or set LUMINA_SERVICE__PORT")


def _mark(flag: bool) -> str:
    return "[green]✓[/green]" if flag else "[red]✗[/red]"


def render(report: DiagnosticReport, console: Optional[Console] = None) -> None:
    console = console or Console()
    console.print(f"[bold]Lumina diagnostics[/bold] ({report.mode.value} mode)")
    console.print(f"Python {report.python} on {report.platform}, cwd {escape(report.cwd)}\n")

    table = RichTable(title="Candidate roots")
    table.add_column("#", style="cyan")
    table.add_column("Root")
    table.add_column("Exists")
    table.add_column("Entry file", overflow="fold")
    table.add_column("Data dir")
    table.add_column("config.toml")
    for i, r in enumerate(report.roots, 1):
        table.add_row(
            str(i), escape(r.root), _mark(r.exists),
            f"{_mark(r.has_entry)} {escape(r.entry_file)}",
            _mark(r.has_data_dir), _mark(r.has_config),
        )
    console.print(table)

    table = RichTable(title="Interpreters")
    table.add_column("Command", style="cyan")
    table.add_column("Result")
    for r in report.interpreters:
        table.add_row(r.command[0], escape(r.version) if r.ok else f"[red]{escape(r.error or 'rc=' + str(r.returncode))}[/red]")
    console.print(table)

    if report.interpreter:
        table = RichTable(title=f"Packages ({report.interpreter})")
        table.add_column("Package", style="cyan")
        table.add_column("Version")
        for name, version in report.packages.items():
            table.add_row(name, escape(version) if version else "[red]not installed[/red]")
        console.print(table)

    if report.port_free:
        console.print(f"Port {report.port}: [green]available[/green]")
    elif report.http_status is not None:
        console.print(f"Port {report.port}: [yellow]in use[/yellow], responding (status {report.http_status})")
    else:
        console.print(f"Port {report.port}: [red]in use, not responding[/red]")

    console.print("\n[bold]Environment[/bold]")
    for name, value in report.env.items():
        if value and len(value) > 100:
            value = value[:100] + "..."
        console.print(f"  {name}: {escape(value) if value else '[dim]not set[/dim]'}")

    console.print()
    if not report.issues:
        console.print("[bold green]No major issues detected![/bold green]")
        return
    console.print("[bold red]Issues found:[/bold red]")
    for i, issue in enumerate(report.issues, 1):
        console.print(f"  {i}. {escape(issue)}")
    console.print("[bold]Recommended fixes:[/bold]")
    for i, rec in enumerate(report.recommendations, 1):
        console.print(f"  {i}. {escape(rec)}")
