"""
launchkit — CLI entrypoint.

Usage:
    launchkit              run the launch sequence
    launchkit status       show the cached environment
    launchkit locate       show which runtime discovery finds
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from launchkit import __version__
from launchkit.core.observability.logging_config import setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="launchkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--launcher-dir",
    type=click.Path(file_okay=False, path_type=Path),
    hidden=True,
    help="Directory holding the script (set by an elevated relaunch).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool, launcher_dir: Path | None) -> None:
    """Make sure Python and its packages are ready, then run the script.

    Run with no command to launch: that is all a user ever needs.
    The commands below only inspect the environment, and the
    options only change how much gets logged.
    """
    from launchkit.core import context
    from launchkit.core.config.loader import ConfigError, load_settings

    ctx.ensure_object(dict)

    if launcher_dir is not None:
        launcher_dir = launcher_dir.resolve()
    else:
        launcher_dir = context.get_launcher_dir() or context.detect_launcher_dir()
    context.set_launcher_dir(launcher_dir)
    name = context.launcher_name()

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = os.environ.get("LAUNCHKIT_LOG_LEVEL", "WARNING")

    log_path = setup_logging(
        level=level,
        log_file=launcher_dir / f"{name}.log",
        log_file_level=os.environ.get("LAUNCHKIT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    try:
        settings = load_settings(launcher_dir)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    ctx.obj.update(
        launcher_dir=launcher_dir,
        name=name,
        settings=settings,
        log_path=log_path,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(launch)


@cli.command(hidden=True)
@click.pass_context
def launch(ctx: click.Context) -> None:
    """Run the launch sequence (the default action)."""
    sequencer = _build_sequencer(ctx.obj["settings"], ctx.obj["launcher_dir"], ctx.obj["name"])
    result = sequencer.run()
    ctx.exit(result.exit_code)


def _build_sequencer(settings, launcher_dir: Path, name: str):
    """Wire the production collaborators."""
    from launchkit.adapters.privilege import SystemElevation
    from launchkit.core.observability.observer import ConsoleObserver
    from launchkit.core.persistence.config_cache import ConfigCache, default_cache_path
    from launchkit.core.services.dependency_installer import DependencyInstaller
    from launchkit.core.services.locator import EnvironmentLocator
    from launchkit.core.services.process_runner import ProcessRunner
    from launchkit.core.services.runtime_installer import InstallerOrchestrator
    from launchkit.core.use_cases.launch import LaunchSequencer

    cache = ConfigCache(default_cache_path(launcher_dir, name))
    mode = settings.run_mode(cache_exists=cache.exists())
    observer = ConsoleObserver(mode)
    if not mode.interactive:
        observer.hide()

    runner = ProcessRunner()
    elevation = SystemElevation()
    return LaunchSequencer(
        settings,
        launcher_dir,
        mode=mode,
        observer=observer,
        cache=cache,
        locator=EnvironmentLocator.from_settings(settings),
        installer=InstallerOrchestrator(
            runner, observer, settings, elevated=elevation.is_elevated()
        ),
        dependencies=DependencyInstaller(runner, observer, settings),
        runner=runner,
        elevation=elevation,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the cached environment and whether it is still valid."""
    from launchkit.core.use_cases.status import get_status

    result = get_status(ctx.obj["settings"], ctx.obj["launcher_dir"], ctx.obj["name"])

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    required = result.required
    click.secho(f"\n🚀 {required.target_script_name}", fg="cyan", bold=True)
    click.echo(f"   📁 {result.launcher_dir}")
    if result.script is None:
        click.secho("   Script not found", fg="yellow")
    click.echo(f"   Python {required.required_version}")
    click.echo(f"   Dependencies: {', '.join(required.required_dependencies) or '(none)'}")
    click.echo()

    record = result.record
    if record is None:
        click.secho("   No cached environment — next launch runs full setup", fg="yellow")
        return

    click.secho("   Cached environment:", fg="white", bold=True)
    click.echo(f"     Runtime:  {record.runtime_path}")
    click.echo(f"     Version:  {record.runtime_version}")
    click.echo(f"     Packages: {', '.join(record.installed_dependencies) or '(none)'}")
    click.echo(f"     Verified: {record.verified_at.isoformat()}")
    if result.valid:
        click.secho("   ✓ valid — next launch takes the fast path", fg="green")
    else:
        click.secho("   ✗ stale — next launch runs full setup", fg="yellow")
        if result.missing_dependencies:
            click.echo(f"     Missing: {', '.join(result.missing_dependencies)}")


@cli.command()
@click.pass_context
def locate(ctx: click.Context) -> None:
    """Show the Python runtime that discovery would pick."""
    from launchkit.core.use_cases.status import locate_runtime

    runtime = locate_runtime(ctx.obj["settings"])
    if runtime is None:
        click.secho("❌ No Python runtime found", fg="red")
        sys.exit(1)
    click.echo(runtime)


if __name__ == "__main__":
    cli()
