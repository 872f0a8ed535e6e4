"""
Main CLI interface for spotcli

This module provides the command-line entry point. Running ``spotcli``
without a subcommand opens the interactive shell; the subcommands cover
the things that are handy from scripts or before the first session.

The CLI is built using Click framework and provides:
- Interactive shell (shell, or no subcommand)
- One-shot commands (run <command...>)
- Authentication handling (auth login, logout, status)
- Preference management (config show, set, reset)
- System diagnostics (doctor)
"""

import sys
import click
import functools

from . import __version__
from .commands import Dispatcher, create_context, create_shell
from .commands.handlers import preference_rows
from .config.auth import get_auth, reset_auth
from .config.credentials import has_credentials
from .config.preferences import PreferencesStore
from .config.settings import get_settings, reload_settings
from .exceptions import ConfigError, SpotCliError
from .utils.helpers import format_duration
from .utils.logger import configure_from_settings, get_logger, get_current_log_file


logger = get_logger(__name__)


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Ctrl-C exits with 130, any other failure prints a red message and
    exits with 1.

    Args:
        func: The CLI command function to wrap

    Returns:
        Wrapped function with error handling
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)  # Standard exit code for SIGINT
        except SpotCliError as e:
            logger.debug(f"Command failed: {e} {e.details}")
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            sys.exit(1)
        except Exception as e:
            logger.debug(f"Command failed: {e}", exc_info=True)
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def _preferences_store() -> PreferencesStore:
    return PreferencesStore(get_settings().get_preferences_path())


def _start_shell() -> int:
    ctx = create_context(interactive=True)
    try:
        return create_shell(ctx).run()
    finally:
        ctx.client.close()


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Write debug details to the log file')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Path to settings file')
@click.pass_context
@handle_error
def cli(ctx, version, verbose, config_path):
    """
    spotcli - control Spotify from your terminal

    Without a command, opens the interactive shell.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"spotcli {__version__}")
        return

    if config_path:
        reload_settings(config_path)
        reset_auth()

    prefs = _preferences_store().load()
    configure_from_settings(file_logging=prefs.logging, verbose=verbose)
    ctx.obj['verbose'] = verbose
    if verbose:
        logger.info("Verbose mode enabled")

    if ctx.invoked_subcommand is None:
        sys.exit(_start_shell())


@cli.command()
@handle_error
def shell():
    """Open the interactive shell"""
    sys.exit(_start_shell())


@cli.command(context_settings={'ignore_unknown_options': True})
@click.argument('command', nargs=-1, required=True, type=click.UNPROCESSED)
@handle_error
def run(command):
    """
    Run a single shell command and exit

    The browser login is not started automatically; use
    'spotcli auth login' first. Exit code is 0 when the command succeeded.

    Example: spotcli run search daft punk
    """
    ctx = create_context(interactive=False)
    Dispatcher().bind(ctx)
    try:
        ok = ctx.dispatcher.dispatch(ctx, list(command))
    finally:
        ctx.client.close()
    sys.exit(0 if ok else 1)


# Authentication commands group
@cli.group()
def auth():
    """Spotify login management"""
    pass


@auth.command()
@click.option('--force', is_flag=True, help='Log in again even if a valid login is stored')
@handle_error
def login(force):
    """
    Log in to Spotify

    Opens the browser on Spotify's consent page and waits for the redirect
    back to the local callback address.
    """
    manager = get_auth()
    if not force and manager.get_access_token().ok:
        click.echo("Already logged in (use --force to log in again)")
        return

    click.echo("Starting Spotify authentication...")
    result = manager.authorize()
    if not result.ok:
        click.echo(click.style(f"Authentication failed: {result.reason.description}", fg='red'), err=True)
        sys.exit(1)
    click.echo(click.style("Successfully logged in", fg='green'))


@auth.command()
@handle_error
def logout():
    """
    Remove stored authentication

    Deletes the local token file. The user will need to log in again
    before using any Spotify command.
    """
    manager = get_auth()
    removed = manager.revoke()
    reset_auth()
    click.echo("Successfully logged out" if removed else "No stored login found")


@auth.command()
@handle_error
def status():
    """Show whether a usable login is stored"""
    manager = get_auth()
    info = manager.describe()

    if not info['logged_in']:
        click.echo("Authentication Status: Not logged in")
        click.echo("   Run 'spotcli auth login' to authenticate")
        return

    click.echo("Authentication Status: Logged in")
    if info['fresh']:
        click.echo(f"   Access token valid for: {format_duration(info['seconds_left'])}")
    else:
        click.echo("   Access token expired (renewed automatically on next use)")
    click.echo(f"   Refresh token: {'yes' if info['has_refresh_token'] else 'no'}")
    if info['missing_scopes']:
        click.echo(click.style(f"   Missing permissions: {' '.join(info['missing_scopes'])}", fg='yellow'))
        click.echo("   Run 'spotcli auth login --force' to grant them")


# Preference commands group
@cli.group()
def config():
    """Show or change preferences"""
    pass


@config.command()
@click.option('--settings', 'show_settings', is_flag=True, help='Also show application settings')
@handle_error
def show(show_settings):
    """Show current preferences"""
    prefs = _preferences_store().load()
    click.echo("Preferences:")
    for key, value in preference_rows(prefs):
        click.echo(f"   {key}: {value}")

    if show_settings:
        click.echo("\nSettings:")
        for section, values in get_settings().to_dict().items():
            click.echo(f"   {section}:")
            for key, value in values.items():
                click.echo(f"      {key}: {value}")


@config.command(name='set')
@click.argument('key')
@click.argument('value', nargs=-1)
@handle_error
def set_preference(key, value):
    """
    Change one preference

    Examples: 'CompactMode on', 'color.accent magenta', 'alias.mix play-playlist 3'
    """
    store = _preferences_store()
    prefs = store.load()
    try:
        canonical = prefs.set_value(key, " ".join(value))
    except ConfigError as e:
        click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
        sys.exit(1)
    if not store.save(prefs):
        sys.exit(1)
    click.echo(f"Updated {canonical}")


@config.command()
@click.confirmation_option(prompt='Restore all preferences to their defaults?')
@handle_error
def reset():
    """Restore default preferences"""
    _preferences_store().reset()
    click.echo("Preferences restored to defaults")


# System diagnostic commands
@cli.command()
@handle_error
def doctor():
    """
    Run system diagnostics

    Checks credentials, settings, the stored login and file locations.
    """
    click.echo("Running diagnostics...\n")
    issues = []
    settings = get_settings()

    if has_credentials(settings):
        click.echo("Spotify credentials: OK")
    else:
        click.echo("Spotify credentials: Missing")
        issues.append("Set SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET (environment or .env)")

    for problem in settings.validate():
        if 'client_id' not in problem:
            issues.append(problem)

    click.echo(f"Redirect URL: {settings.spotify.redirect_url}")

    result = get_auth().get_access_token()
    if result.ok:
        click.echo("Spotify login: OK")
    else:
        click.echo(f"Spotify login: {result.reason.description}")
        issues.append("Run 'spotcli auth login' to authenticate")

    click.echo(f"Token file: {settings.get_token_storage_path()}")
    click.echo(f"Preferences file: {settings.get_preferences_path()}")

    current_log = get_current_log_file()
    click.echo(f"Logging: {current_log}" if current_log else "Logging: Console only")

    if issues:
        click.echo(f"\nFound {len(issues)} issues:")
        for issue in issues:
            click.echo(f"   • {issue}")
        sys.exit(1)
    click.echo("\nAll systems operational!")


# Entry point for module execution
if __name__ == '__main__':
    cli()
