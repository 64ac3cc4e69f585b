"""CLI entry point for the Lumina desktop launcher."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from lumina_desktop.config import Config
from lumina_desktop.exceptions import LauncherError
from lumina_desktop.paths import detect_mode, resolve_launch_paths
from lumina_desktop.presenter import ConsolePresenter
from lumina_desktop.scaffold import seed_data_files, write_env_template, write_streamlit_config
from lumina_desktop.session import LaunchSession

console = Console()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    kwargs = {}
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        kwargs["filename"] = log_file
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        **kwargs,
    )


def _fail(exc: LauncherError):
    console.print(f"[red]{escape(exc.title)}:[/red] {escape(str(exc))}")
    sys.exit(1)


@click.group()
@click.option("--config", "-c", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx, config, verbose):
    """Lumina - desktop launcher for the Lumina Streamlit app."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = Config.load(config)
    except LauncherError as exc:
        _fail(exc)
    ctx.obj["verbose"] = verbose


def _level(ctx) -> str:
    return "DEBUG" if ctx.obj["verbose"] else ctx.obj["config"].app.log_level


@cli.command()
@click.option("--log-file", default=None, help="Log file (default: <log_dir>/launcher.log)")
@click.pass_context
def launch(ctx, log_file):
    """Open the desktop window and start the app."""
    from lumina_desktop.desktop import run_desktop  # noqa: PLC0415

    config = ctx.obj["config"]
    log_file = log_file or str(Path(config.app.log_dir).expanduser() / "launcher.log")
    setup_logging(_level(ctx), log_file)
    sys.exit(run_desktop(config, log_file=log_file))


@cli.command()
@click.pass_context
def serve(ctx):
    """Start the app without a window and wait until Ctrl+C."""
    config = ctx.obj["config"]
    setup_logging(_level(ctx))

    presenter = ConsolePresenter(console)
    session = LaunchSession(config, presenter)
    try:
        if session.launch() is not None:
            session.wait()
        if session.error is not None:
            sys.exit(1)
        console.print("Press Ctrl+C to stop.")
        while not session.supervisor.wait(1.0):
            pass
        if session.error is not None:
            sys.exit(1)
    except KeyboardInterrupt:
        console.print("\nStopping…")
    finally:
        session.shutdown()


@cli.command()
@click.pass_context
def check(ctx):
    """Build the launch plan without starting anything."""
    config = ctx.obj["config"]
    setup_logging(_level(ctx))

    session = LaunchSession(config, ConsolePresenter(console))
    try:
        plan = session.prepare()
    except LauncherError as exc:
        _fail(exc)

    table = RichTable(title=f"Launch plan ({session.mode.value} mode)")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Entry file", escape(str(plan.entry_file)))
    table.add_row("Working dir", escape(str(plan.working_dir)))
    table.add_row("Data dir", escape(str(plan.data_dir)))
    table.add_row("Command", escape(" ".join(plan.command)))
    table.add_row("URL", session.url)
    for key in sorted(plan.env_overrides):
        if key.startswith("STREAMLIT_"):
            table.add_row(key, escape(plan.env_overrides[key]))
    console.print(table)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite .streamlit/config.toml")
@click.pass_context
def init(ctx, force):
    """Create data files, Streamlit config and .env template."""
    config = ctx.obj["config"]
    setup_logging(_level(ctx))
    svc = config.service

    try:
        paths = resolve_launch_paths(
            detect_mode(),
            server_subdir=svc.server_subdir,
            entry_file=svc.entry_file,
            data_subdir=svc.data_subdir,
        )
    except LauncherError as exc:
        _fail(exc)

    created = seed_data_files(paths.data_dir)
    for path in created:
        console.print(f"  [green]created[/green] {escape(str(path))}")
    if write_streamlit_config(paths.working_dir, svc.host, svc.port, force=force):
        console.print("  [green]wrote[/green] .streamlit/config.toml")
    if write_env_template(paths.working_dir):
        console.print("  [green]created[/green] .env.template")
        console.print("  Copy .env.template to .env and add your Supabase credentials")
    console.print(f"[bold green]Ready[/bold green] in [blue]{escape(str(paths.working_dir))}[/blue]")


@cli.command()
@click.pass_context
def diagnose(ctx):
    """Print an environment report for troubleshooting."""
    from lumina_desktop.diagnostics import collect, render  # noqa: PLC0415

    config = ctx.obj["config"]
    setup_logging("DEBUG" if ctx.obj["verbose"] else "WARNING")
    render(collect(config), console)


if __name__ == "__main__":
    cli()
