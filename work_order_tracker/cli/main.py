"""
Main CLI entry point for Work Order Tracker

Provides command-line access to time statistics, an end-to-end demo of the
timer lifecycle, and the effective configuration.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone

import click

from ..config import load_config
from ..core.exceptions import WorkOrderError
from ..core.tracker import WorkOrderTracker
from ..models.principal import Principal
from ..models.work_order import TimeEvent, WorkOrder
from ..services.time_stats import compute_stats, format_duration
from ..utils.clock import ManualClock
from ..utils.database import InMemoryDocumentStore
from ..utils.logger import setup_logger


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file path (YAML or JSON)')
@click.option('--log-level', '-l', default=None, help='Log level')
@click.option('--verbose', '-v', is_flag=True, help='Human-readable log lines instead of JSON')
@click.pass_context
def cli(ctx, config, log_level, verbose):
    """Work Order Tracker CLI"""

    ctx.ensure_object(dict)

    try:
        tracker_config = load_config(config)
    except WorkOrderError as e:
        raise click.ClickException(e.message)

    level = log_level or tracker_config.log_level
    ctx.obj['logger'] = setup_logger(
        "work_order_tracker", level=level, structured=tracker_config.structured_logging and not verbose
    )
    ctx.obj['config'] = tracker_config


@cli.command('stats')
@click.argument('events_file', type=click.File('r'))
@click.option('--json', 'as_json', is_flag=True, help='Print statistics as JSON')
def stats(events_file, as_json):
    """Compute time statistics from a JSON list of {action, timestamp} events"""
    try:
        raw_events = json.load(events_file)
        events = [TimeEvent.from_dict(item) for item in raw_events]
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid event log: {e}")

    result = compute_stats(events)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.echo(f"Effective time: {format_duration(result.effective_time)}")
    click.echo(f"Total time:     {format_duration(result.total_time)}")
    click.echo(f"Pauses:         {result.pause_count}")
    for index, duration in enumerate(result.pause_durations, start=1):
        click.echo(f"  #{index}: {format_duration(duration)}")
    click.echo(f"Average pause:  {format_duration(int(result.average_pause_duration))}")


@cli.command('demo')
@click.option('--work-seconds', type=int, default=10, help='Seconds worked before and after the pause')
@click.option('--pause-seconds', type=int, default=5, help='Length of the pause in seconds')
@click.pass_context
def demo(ctx, work_seconds, pause_seconds):
    """Run a start/pause/resume/stop scenario against an in-memory store"""

    async def _demo():
        clock = ManualClock(datetime.now(timezone.utc).replace(microsecond=0))
        tracker = WorkOrderTracker(InMemoryDocumentStore(), config=ctx.obj['config'], clock=clock)
        technician = Principal(id="demo-technician")

        order = await tracker.start_work_order(technician, WorkOrder(description="Demo work order"))
        clock.advance(seconds=work_seconds)
        order = await tracker.pause_work_order(technician, order.id, "coffee break")
        clock.advance(seconds=pause_seconds)
        order = await tracker.resume_work_order(technician, order.id)
        clock.advance(seconds=work_seconds)
        return await tracker.stop_work_order(technician, order.id)

    try:
        order = asyncio.run(_demo())
    except WorkOrderError as e:
        raise click.ClickException(e.message)

    click.echo(f"Work order #{order.sequence_number} ({order.id})")
    click.echo(f"Status:         {order.status.value}")
    click.echo(f"Effective time: {format_duration(order.time_stats.effective_time)}")
    click.echo(f"Total time:     {format_duration(order.time_stats.total_time)}")
    click.echo(f"Completed at:   {order.completed_at.isoformat()}")


@cli.group('config')
def config_group():
    """Configuration commands"""
    pass


@config_group.command('show')
@click.pass_context
def show_config(ctx):
    """Print the effective configuration"""
    click.echo(json.dumps(ctx.obj['config'].to_dict(), indent=2))


def main():
    """Main entry point for CLI"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)


if __name__ == '__main__':
    main()
