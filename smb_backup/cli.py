"""Command-line interface for SMB backup."""

import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

import click

from .config.config_manager import ConfigManager
from .core.copier import CopyEngine, RsyncCopier
from .core.credentials import CredentialResolver
from .core.errors import MissingTool
from .core.models import BackupJob
from .core.mount import CifsMounter, ShareMount
from .core.runner import BackupRunner
from .core.system import check_required_tools, resolve_owner
from .reporters.email_reporter import EmailReporter
from .reporters.notifier import DesktopNotifier
from .utils.formatters import format_hints


def setup_logging(level: str, log_file: Optional[str] = None):
    """Set up logging configuration."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            log_file = os.path.expanduser(log_file)
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            click.echo(f"Warning: Could not set up file logging: {e}", err=True)


def create_runner(config: Dict[str, Any], interactive: bool,
                  now: Optional[datetime] = None) -> BackupRunner:
    """Wire the production stages for one run."""
    job = BackupJob.from_config(config, now or datetime.now(), interactive,
                                owner=resolve_owner())

    notifications = config.get('notifications', {})
    notifier = DesktopNotifier(
        enabled=notifications.get('desktop', True),
        log_file=os.path.expanduser(config.get('logging', {}).get('file') or '') or None
    )

    reporter = None
    email_config = config.get('email')
    if email_config:
        reporter = EmailReporter(
            smtp_server=email_config['smtp_server'],
            smtp_port=email_config.get('smtp_port', 587),
            smtp_user=email_config.get('smtp_user'),
            smtp_pass=email_config.get('smtp_pass'),
            from_address=email_config['from_address'],
            to_addresses=email_config['to_addresses'],
            use_tls=email_config.get('use_tls', True)
        )

    return BackupRunner(
        job,
        resolver=CredentialResolver(interactive),
        share_mount=ShareMount(CifsMounter(use_sudo=job.use_sudo)),
        copy_engine=CopyEngine(RsyncCopier()),
        notifier=notifier,
        reporter=reporter,
        tool_check=lambda: check_required_tools(use_sudo=job.use_sudo)
    )


@click.group()
@click.option('--config', '-c', 'config_path',
              help='Path to configuration file')
@click.option('--log-level', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level (default from config, else INFO)')
@click.option('--log-file',
              help='Log file path (default from config, automated runs only)')
@click.pass_context
def cli(ctx, config_path: Optional[str], log_level: Optional[str], log_file: Optional[str]):
    """SMB Backup - copy a local directory to a timestamped folder on an SMB share."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['log_level'] = log_level
    ctx.obj['log_file'] = log_file


def _load_config(ctx) -> Dict[str, Any]:
    try:
        return ConfigManager(ctx.obj.get('config_path')).load_config()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--interactive/--automated', default=None,
              help='Override terminal detection')
@click.option('--source', '-s', help='Override the configured source directory')
@click.pass_context
def run(ctx, interactive: Optional[bool], source: Optional[str]):
    """Run a backup now."""
    if interactive is None:
        interactive = sys.stdin.isatty()

    config = _load_config(ctx)
    if source:
        config['source'] = source

    logging_config = config.get('logging', {})
    log_file = ctx.obj.get('log_file')
    if not log_file and not interactive:
        log_file = logging_config.get('file')
    setup_logging(ctx.obj.get('log_level') or logging_config.get('level', 'INFO'), log_file)

    runner = create_runner(config, interactive)
    sys.exit(runner.run())


@cli.command()
@click.pass_context
def validate_config(ctx):
    """Validate configuration file."""
    config = _load_config(ctx)

    click.echo("✅ Configuration loaded successfully")
    click.echo(f"\n📊 Configuration Summary:")
    click.echo(f"   Source: {config['source']}")
    click.echo(f"   Share: //{config['share']['server']}/{config['share']['name']}")
    click.echo(f"   Credentials file: {config['credentials_file']}")
    click.echo(f"   Folder format: {config['folder_format']}")

    credentials_file = os.path.expanduser(config['credentials_file'])
    if not os.path.isfile(credentials_file):
        click.echo(f"   ⚠️  Credentials file not found; automated runs will fail")

    email_config = config.get('email')
    if email_config:
        reporter = EmailReporter(
            smtp_server=email_config.get('smtp_server'),
            smtp_port=email_config.get('smtp_port', 587),
            from_address=email_config.get('from_address'),
            to_addresses=email_config.get('to_addresses', [])
        )
        email_errors = reporter.validate_configuration()
        if email_errors:
            click.echo("\n⚠️  Email configuration issues:")
            for error in email_errors:
                click.echo(f"     • {error}")
        else:
            click.echo("\n✅ Email configuration valid")
    else:
        click.echo("   📧 Email: Not configured")


@cli.command()
@click.option('--no-sudo', is_flag=True, help='Do not require sudo')
def check_tools(no_sudo: bool):
    """Check that rsync, mount.cifs and sudo are installed."""
    try:
        tools = check_required_tools(use_sudo=not no_sudo)
    except MissingTool as e:
        click.echo(f"❌ Error: {e.message}", err=True)
        click.echo(format_hints(e.hints, bullet="   "), err=True)
        sys.exit(1)

    click.echo(f"✅ All required tools found: {', '.join(tools)}")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
