#!/usr/bin/env python3
"""
Photo Offload CLI

Copies photos from a camera card into date-organized archive folders, then
clears the card and removes orphaned edit sidecars from the archive.
"""

import sys
import logging
from dataclasses import replace
from pathlib import Path

import click
from colorama import init, Fore, Style

from photo_offloader import (
    Config,
    OffloadReporter,
    PhotoOffloader,
    SidecarCleaner,
)
from photo_offloader.errors import OffloadError

# Initialize colorama for cross-platform colored output
init()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'
MAX_ERRORS_SHOWN = 5

# Replaced on every setup_logging call
_console_handler = None
_file_handler = None


def setup_logging(level: str = 'INFO', log_dir: Path = None, log_name: str = 'photo_offload'):
    """Set up logging configuration."""
    global _console_handler
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    if _console_handler is not None:
        root_logger.removeHandler(_console_handler)
    _console_handler = console_handler
    root_logger.addHandler(console_handler)

    if log_dir:
        _setup_file_logging(Path(log_dir), formatter, root_logger, log_name)

    # Reduce noise from libraries
    logging.getLogger('exifread').setLevel(logging.WARNING)


def _setup_file_logging(log_dir: Path, formatter: logging.Formatter, root_logger: logging.Logger,
                        log_name: str = 'photo_offload'):
    """Add file handler to root logger."""
    global _file_handler
    log_dir.mkdir(parents=True, exist_ok=True)

    # Remove previous file handler if any
    if _file_handler is not None:
        root_logger.removeHandler(_file_handler)

    _file_handler = logging.FileHandler(log_dir / f'{log_name}.log')
    _file_handler.setFormatter(formatter)
    root_logger.addHandler(_file_handler)


def print_header(title: str):
    """Print a formatted header."""
    click.echo(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{title.center(60)}{Style.RESET_ALL}")
    click.echo(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")


def print_success(message: str):
    click.echo(f"{Fore.GREEN}OK: {message}{Style.RESET_ALL}")


def print_warning(message: str):
    click.echo(f"{Fore.YELLOW}WARN: {message}{Style.RESET_ALL}")


def print_error(message: str):
    click.echo(f"{Fore.RED}ERROR: {message}{Style.RESET_ALL}")


def print_info(message: str):
    click.echo(f"{Fore.BLUE}INFO: {message}{Style.RESET_ALL}")


def print_errors(errors):
    """Print the first few errors of a batch."""
    errors = list(errors)
    for error in errors[:MAX_ERRORS_SHOWN]:
        click.echo(f"  - {error}")
    if len(errors) > MAX_ERRORS_SHOWN:
        click.echo(f"  - ... and {len(errors) - MAX_ERRORS_SHOWN} more errors")


def _settings(ctx, require_source=True, **overrides):
    """Build validated run settings from config plus CLI overrides."""
    config = ctx.obj['config']
    settings = config.to_settings(**overrides)
    errors = config.validate_config(settings, require_source=require_source)
    if errors:
        print_error("Configuration validation failed:")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)
    return settings


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR']),
              help='Logging level (default: from config)')
@click.pass_context
def cli(ctx, config, log_level):
    """Photo Offload Tool - move card photos into a dated archive."""
    try:
        config_obj = Config(config)
    except Exception as e:
        print_error(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(
        log_level or config_obj.get_log_level(),
        config_obj.get_log_dir(),
        ctx.invoked_subcommand or 'photo_offload',
    )

    ctx.ensure_object(dict)
    ctx.obj['config'] = config_obj


@cli.command()
@click.option('--src', type=click.Path(path_type=Path), help='Source directory (override config)')
@click.option('--dst', type=click.Path(path_type=Path), help='Destination directory (override config)')
@click.option('--dst-previews', type=click.Path(path_type=Path),
              help='Destination directory for preview JPGs (override config)')
@click.option('--dry-run/--no-dry-run', default=None, help='Simulate without modifying files')
@click.option('--overwrite/--no-overwrite', default=None, help='Overwrite existing files in destination')
@click.option('--keep-previews/--no-keep-previews', default=None,
              help='Leave preview JPGs on the card instead of archiving them')
@click.option('--delete-zombie-sidecars/--keep-zombie-sidecars', default=None,
              help='Delete edit sidecars whose primary file is gone')
@click.option('--threshold-one-day', type=int, default=None,
              help='Photos on one day needed for a day folder')
@click.option('--threshold-consecutive-days', type=int, default=None,
              help='Photos per day needed to merge consecutive days into an event folder')
@click.option('--jobs', '-j', type=int, default=None, help='Parallel jobs')
@click.option('--progress', is_flag=True, help='Show progress bars')
@click.option('--report', '-r', help='Save JSON report to specific file')
@click.pass_context
def run(ctx, src, dst, dst_previews, dry_run, overwrite, keep_previews, delete_zombie_sidecars,
        threshold_one_day, threshold_consecutive_days, jobs, progress, report):
    """Copy photos into dated folders, then clean the card."""

    print_header("PHOTO OFFLOAD")

    config = ctx.obj['config']
    thresholds = config.get_thresholds()
    if threshold_one_day is not None:
        thresholds = replace(thresholds, single_day=threshold_one_day)
    if threshold_consecutive_days is not None:
        thresholds = replace(thresholds, consecutive_days=threshold_consecutive_days)
    settings = _settings(
        ctx,
        source=src,
        destination=dst,
        previews_destination=dst_previews,
        dry_run=dry_run,
        overwrite=overwrite,
        keep_previews=keep_previews,
        delete_zombie_sidecars=delete_zombie_sidecars,
        thresholds=thresholds,
        parallel_jobs=jobs,
        show_progress=progress,
    )

    try:
        summary = PhotoOffloader(settings).run()
    except OffloadError as e:
        print_error(f"Offload failed: {e}")
        sys.exit(1)

    results = summary.to_dict()
    reporter = OffloadReporter(config.get_report_dir())

    if summary.dry_run:
        print_info("DRY RUN completed - no files were actually copied or removed")

    click.echo("\n" + reporter.generate_summary_report(results))

    if report or config.get_report_dir():
        report_file = reporter.save_report(results, report)
        print_success(f"Report saved: {report_file}")

    if summary.errors:
        print_warning(f"Offload completed with {len(summary.errors)} errors:")
        print_errors(summary.errors)
        sys.exit(1)

    print_success(f"Files Copied: {summary.copied:,}")
    print_success(f"Files Removed: {summary.removed_total:,}")


@cli.command()
@click.option('--src', type=click.Path(path_type=Path), help='Source directory (override config)')
@click.option('--keep-previews/--no-keep-previews', default=None,
              help='Leave preview JPGs out of the plan')
@click.pass_context
def plan(ctx, src, keep_previews):
    """Show the folders a run would create, without touching any file."""

    print_header("OFFLOAD PLAN")

    settings = _settings(ctx, source=src, keep_previews=keep_previews, dry_run=True)

    try:
        plans = PhotoOffloader(settings).plan()
    except OffloadError as e:
        print_error(f"Planning failed: {e}")
        sys.exit(1)

    click.echo(OffloadReporter().generate_plan_report(plans))


@cli.command('clean-sidecars')
@click.option('--dir', 'directory', type=click.Path(path_type=Path),
              help='Directory to clean (default: configured destination)')
@click.option('--recursive/--no-recursive', default=None, help='Descend into subdirectories')
@click.pass_context
def clean_sidecars(ctx, directory, recursive):
    """Delete edit sidecars whose primary file is gone."""

    print_header("ZOMBIE SIDECAR CLEANUP")

    settings = _settings(
        ctx, require_source=False, destination=directory, recursive_sidecar_cleanup=recursive
    )
    cleaner = SidecarCleaner(settings.parallel_jobs)

    total = 0
    failed = []
    for sidecar_ext in settings.sidecar_extensions:
        try:
            count, error = cleaner.clean(
                settings.destination,
                sidecar_ext,
                settings.primary_extensions,
                settings.recursive_sidecar_cleanup,
            )
        except OffloadError as e:
            print_error(f"Cleanup failed: {e}")
            sys.exit(1)
        total += count
        if error:
            failed.extend(error)

    print_success(f"Removed {total:,} zombie edit files from {settings.destination}")
    if failed:
        print_warning(f"Cleanup completed with {len(failed)} errors:")
        print_errors(failed)
        sys.exit(1)


if __name__ == '__main__':
    cli()
