"""sbctool CLI - Main entry point."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from sbctool import __version__
from sbctool.config import ConfigError, DashboardSettings, load_settings
from sbctool.errors import AuthError, ResolutionError
from sbctool.remote.connect import open_transport, resolve_target
from sbctool.remote.target import TransportKind

console = Console()
logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
HELP_WORDS = ("help", "--help", "-h")


def configure_logging(verbose: bool = False, debug_log: str | None = None) -> None:
    """Send sbctool logs to stderr through rich, and optionally to a file."""
    package_logger = logging.getLogger("sbctool")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose or debug_log else logging.WARNING)

    console_handler = RichHandler(console=Console(stderr=True), show_path=False)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.addHandler(console_handler)

    if debug_log:
        file_handler = logging.FileHandler(debug_log)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        package_logger.addHandler(file_handler)


def session_options(func):
    """Options shared by every dashboard command."""
    func = click.option(
        "--debug-log",
        type=click.Path(dir_okay=False),
        default=None,
        help="Also write debug logs to this file",
    )(func)
    func = click.option("--verbose", is_flag=True, help="Show debug logs on stderr")(
        func
    )
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Settings YAML file",
    )(func)
    return func


def _load_settings(config_path: Path | None) -> DashboardSettings:
    try:
        return load_settings(config_path)
    except ConfigError as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise SystemExit(1) from None


def launch(kind: TransportKind, spec: str | None, settings: DashboardSettings) -> None:
    """Resolve, connect and run the dashboard for one target."""
    from sbctool.tui.dashboard import run_dashboard

    label = kind.value.upper()
    console.print(f"Connecting to {spec or 'default device'} via {label}...")
    try:
        target = resolve_target(kind, spec, settings)
        transport = open_transport(target, settings)
    except (ResolutionError, AuthError) as e:
        console.print(f"Error: {e}", style="red", markup=False)
        raise SystemExit(1) from None

    logger.info(f"Resolved {spec!r} to {target.display}")
    run_dashboard(target, transport, settings, android=kind == TransportKind.ADB)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="sbctool")
def cli():
    """sbctool - live diagnostics for single-board computers.

    Connects to a board over SSH or ADB and shows system information and
    recent logs in a terminal dashboard.
    """


@cli.command(context_settings=CONTEXT_SETTINGS)
@click.argument("target")
@click.option("--no-ssh-g", is_flag=True, help="Do not resolve aliases with 'ssh -G'")
@click.option(
    "--client", is_flag=True, help="Run each command through the ssh client"
)
@session_options
@click.pass_context
def ssh(ctx, target, no_ssh_g, client, config_path, verbose, debug_log):
    """Monitor a board over SSH.

    TARGET: user@host[:port] or an ssh config alias

    \b
    Examples:
      sbctool ssh user@192.168.1.4
      sbctool ssh khadas

    \b
    Notes:
      - Aliases are resolved using 'ssh -G' when available; falls back to
        ~/.ssh/config and /etc/ssh/ssh_config.
      - If user is omitted, tries ssh config, then $USER/LOGNAME.
      - Launches TUI interface for real-time monitoring.
    """
    if target in HELP_WORDS:
        click.echo(ctx.get_help())
        return

    configure_logging(verbose, debug_log)
    settings = _load_settings(config_path)
    if no_ssh_g:
        settings.ssh.resolve_with_ssh_g = False
    if client:
        settings.ssh.persistent = False
    launch(TransportKind.SSH, target, settings)


@cli.command(
    context_settings={**CONTEXT_SETTINGS, "ignore_unknown_options": True}
)
@click.option("-s", "serial", default=None, help="Device serial, ip or ip:port")
@click.argument("extra", nargs=-1, type=click.UNPROCESSED)
@session_options
@click.pass_context
def adb(ctx, serial, extra, config_path, verbose, debug_log):
    """Monitor an Android device over ADB.

    \b
    Examples:
      sbctool adb
      sbctool adb -s <usb-serial>
      sbctool adb -s <ip>
      sbctool adb -s <ip:port>

    \b
    Behavior:
      - No -s: if exactly one USB device -> use USB; else list devices (server).
      - -s ip:port: connect TCP direct to adbd.
      - -s ip: default port 5555.
      - -s usb-serial: use adb server to talk to that device.
      - Launches TUI interface for real-time monitoring.
    """
    if serial in HELP_WORDS or any(arg in HELP_WORDS for arg in extra):
        click.echo(ctx.get_help())
        return

    configure_logging(verbose, debug_log)
    if extra:
        logger.warning(f"Ignoring extra arguments: {' '.join(extra)}")
    settings = _load_settings(config_path)
    launch(TransportKind.ADB, serial, settings)
