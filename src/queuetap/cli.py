from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from queuetap.config import QueueTapConfig, load_config
from queuetap.consumer import EventProcessor
from queuetap.engine import ReplacementEngine
from queuetap.errors import ConfigError, TemplateNotFoundError
from queuetap.io.readers import is_json_content, read_message, read_message_lines
from queuetap.io.writers import dump_json, dumps_json, write_events_jsonl
from queuetap.jmx import generate_test_plan
from queuetap.jsonpath import extract_json_paths
from queuetap.models import ConsumedEvent, ReplacementConfig
from queuetap.store import EventStore

app = typer.Typer(name="queuetap", help="Capture queue events, rewrite JSON values, and build load-test plans.")

console = Console(stderr=True)

_PREVIEW_CHARS = 50

_CONFIG_OPTION_HELP = "Settings file (default: ./appsettings.json if present)."


def _stderr(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        typer.echo(message, err=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )


def _load_config(config_file: Path | None) -> QueueTapConfig:
    try:
        return load_config(config_file)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_store(config: QueueTapConfig) -> EventStore:
    directory = config.history_dir if config.history_enabled else None
    return EventStore(maxlen=config.history_size, directory=directory)


def _preview(message: str) -> str:
    flat = " ".join(message.split())
    if len(flat) > _PREVIEW_CHARS:
        return flat[:_PREVIEW_CHARS] + "..."
    return flat


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def _print_event_line(index: int, event: ConsumedEvent, display: ReplacementConfig) -> None:
    status = "✅" if event.processed_successfully else "❌"
    kind = escape("[JSON]" if event.is_json else "[TEXT]")
    marker = " 🔄" if event.has_replacements else ""
    console.print(
        f"{status} #{index} {event.timestamp:%Y-%m-%d %H:%M:%S} "
        f"{escape(event.exchange)}/{escape(event.routing_key)} {kind}{marker}",
        highlight=False,
    )
    if display.show_original_message:
        console.print(f"     Original:  {escape(_preview(event.message))}", highlight=False)
    if display.show_processed_message and event.has_replacements and event.processed_message:
        console.print(f"     Processed: {escape(_preview(event.processed_message))}", highlight=False)
    for replacement in event.applied_replacements:
        console.print(f"     🔄 {escape(replacement)}", highlight=False)
    if not event.processed_successfully:
        console.print(f"     [red]Error: {escape(event.error_message or 'unknown')}[/red]")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log rule matching details to stderr."),
) -> None:
    """Capture queue events, rewrite JSON values, and build load-test plans."""
    _configure_logging(verbose)


@app.command()
def process(
    message_file: str = typer.Argument("-", help="Message file, or '-' for stdin."),
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    force_json: bool = typer.Option(False, "--force-json", help="Skip the JSON shape check."),
    enable: bool = typer.Option(False, "--enable", help="Apply rules even if replacements are disabled in settings."),
    pretty: bool = typer.Option(True, "--pretty/--compact", help="Indent rewritten JSON, or print it on one line."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress the applied-rule summary on stderr."),
) -> None:
    """Apply the configured replacement rules to one message."""
    config = _load_config(config_file)
    replacement_config = config.json_replacement
    if enable:
        replacement_config = replacement_config.model_copy(update={"enable_replacements": True})

    try:
        message = read_message(message_file, sys.stdin)
    except OSError as exc:
        raise typer.BadParameter(str(exc)) from exc

    is_json = force_json or is_json_content(message)
    result = ReplacementEngine(replacement_config).process(message, is_json)

    output = result.output_text
    if result.has_replacements:
        output = dumps_json(json.loads(output), pretty=pretty)
    sys.stdout.write(output)
    if not output.endswith("\n"):
        sys.stdout.write("\n")

    if not result.has_replacements:
        _stderr("No replacements applied", quiet=quiet)
        return
    _stderr(f"Applied {len(result.applied)} replacement{'s' if len(result.applied) != 1 else ''}:", quiet=quiet)
    for entry in result.applied:
        _stderr(f"  • {entry}", quiet=quiet)


@app.command()
def paths(
    message_file: str = typer.Argument("-", help="JSON file, or '-' for stdin."),
    as_json: bool = typer.Option(False, "--json", help="Print the paths as a JSON array."),
) -> None:
    """List every path in a JSON message, for writing replacement rules."""
    try:
        message = read_message(message_file, sys.stdin)
    except OSError as exc:
        raise typer.BadParameter(str(exc)) from exc

    found = extract_json_paths(message)
    if as_json:
        dump_json(found, sys.stdout)
        return
    if not found:
        _stderr("No JSON paths found (empty document or invalid JSON)")
        return
    for path in found:
        typer.echo(path)
    _stderr(f"{len(found)} path{'s' if len(found) != 1 else ''} found")


@app.command()
def rules(
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
) -> None:
    """Show the configured replacement rules."""
    config = _load_config(config_file)
    replacement = config.json_replacement
    active = len(replacement.enabled_rules())

    if replacement.enable_replacements:
        console.print(f"JSON replacements: [green]enabled[/green] ({active} active rules)")
    else:
        console.print("JSON replacements: [red]disabled[/red]")
    console.print(
        f"Show original message: {_yes_no(replacement.show_original_message)}, "
        f"show processed message: {_yes_no(replacement.show_processed_message)}"
    )
    broker = config.rabbitmq
    console.print(
        f"Broker: {escape(broker.username)}@{escape(broker.host_name)}:{broker.port}{escape(broker.virtual_host)} "
        f"queue {escape(broker.queue_name)} ({'enabled' if broker.enabled else 'disabled'})",
        highlight=False,
    )

    if not replacement.rules:
        console.print("No replacement rules configured.")
        return

    table = Table(title="Replacement Rules")
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Path")
    table.add_column("Placeholder")
    table.add_column("Description")
    for i, rule in enumerate(replacement.rules, start=1):
        table.add_row(
            str(i),
            "✅" if rule.enabled else "❌",
            escape(rule.json_path),
            escape(rule.placeholder),
            escape(rule.description),
        )
    console.print(table)


@app.command()
def capture(
    messages_file: str = typer.Argument("-", help="File with one message per line, or '-' for stdin."),
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    exchange: str | None = typer.Option(None, help="Exchange name recorded on each event."),
    routing_key: str | None = typer.Option(None, help="Routing key recorded on each event."),
    jsonl: bool = typer.Option(False, "--jsonl", help="Also write the captured events to stdout as JSONL."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress the capture summary on stderr."),
) -> None:
    """Run line-delimited messages through the consumer pipeline and store them."""
    config = _load_config(config_file)
    try:
        messages = read_message_lines(messages_file, sys.stdin)
    except OSError as exc:
        raise typer.BadParameter(str(exc)) from exc

    with _open_store(config) as store:
        processor = EventProcessor(ReplacementEngine(config.json_replacement), store)
        events = [
            processor.handle(message, exchange=exchange, routing_key=routing_key, delivery_tag=tag)
            for tag, message in enumerate(messages, start=1)
        ]
        stored = len(store)

    if jsonl:
        write_events_jsonl(events, sys.stdout)

    json_count = sum(1 for e in events if e.is_json)
    replaced = sum(1 for e in events if e.has_replacements)
    failed = sum(1 for e in events if not e.processed_successfully)
    _stderr(
        f"Captured {len(events)} event{'s' if len(events) != 1 else ''} "
        f"({json_count} JSON, {replaced} with replacements, {failed} failed); "
        f"{stored} in history",
        quiet=quiet,
    )


@app.command()
def history(
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    limit: int = typer.Option(10, help="Number of most recent events to show."),
    jsonl: bool = typer.Option(False, "--jsonl", help="Write the events to stdout as JSONL instead."),
) -> None:
    """Show the most recent captured events."""
    config = _load_config(config_file)
    with _open_store(config) as store:
        total = len(store)
        recent = store.recent(limit)

    if jsonl:
        write_events_jsonl(recent, sys.stdout)
        return
    if not recent:
        console.print("No events captured yet.")
        return

    console.print(f"[bold]Event history[/bold] (last {len(recent)} of {total})")
    first_index = total - len(recent) + 1
    for offset, event in enumerate(recent):
        _print_event_line(first_index + offset, event, config.json_replacement)
    if total > len(recent):
        console.print(f"... {total - len(recent)} older events not shown")


@app.command()
def stats(
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
) -> None:
    """Quick stats about the captured event history."""
    with _open_store(_load_config(config_file)) as store:
        s = store.stats()

    console.print(f"Total events:       {s.total}")
    if s.total == 0:
        return
    console.print(f"Successful:         {s.successful}")
    console.print(f"Failed:             {s.failed}")
    console.print(f"JSON events:        {s.json_events}")
    console.print(f"Text events:        {s.text_events}")
    console.print(f"With replacements:  {s.with_replacements}")
    console.print(f"First event:        {s.first_event:%Y-%m-%d %H:%M:%S}")
    console.print(f"Last event:         {s.last_event:%Y-%m-%d %H:%M:%S}")
    if s.events_per_second is not None:
        console.print(f"Events per second:  {s.events_per_second:.2f}")
    if s.content_types:
        console.print("Content types:")
        for content_type, count in s.content_types.items():
            console.print(f"  {count:>4}x  {escape(content_type)}")


@app.command()
def clear(
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
) -> None:
    """Clear the captured event history."""
    with _open_store(_load_config(config_file)) as store:
        removed = store.clear()
    console.print(f"Cleared {removed} event{'s' if removed != 1 else ''}.")


@app.command()
def jmx(
    config_file: Path | None = typer.Option(None, "--config", "-c", help=_CONFIG_OPTION_HELP),
    template: Path | None = typer.Option(None, help="JMeter plan template (default from settings)."),
    step_template: Path | None = typer.Option(None, help="Test step template (default from settings)."),
    output_dir: Path = typer.Option(Path("."), help="Directory for the generated plan."),
) -> None:
    """Generate a JMeter test plan from the captured event history."""
    config = _load_config(config_file)
    with _open_store(config) as store:
        events = store.snapshot()
    if not events:
        console.print("[yellow]No captured events found. Using template without test steps.[/yellow]")

    try:
        output_path = generate_test_plan(
            events,
            template or Path(config.jmx_template),
            step_template or Path(config.jmx_step_template),
            output_dir,
        )
    except TemplateNotFoundError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    console.print(f"JMeter plan generated: {escape(str(output_path))}")
    console.print(f"  {len(events)} test step{'s' if len(events) != 1 else ''} from captured events")
    console.print(f"  Size: {output_path.stat().st_size} bytes")


if __name__ == "__main__":  # pragma: no cover
    app()
