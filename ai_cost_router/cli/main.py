"""
CLI interface for AI Cost Router.

Provides command-line access to model selection and cost reporting.
"""

import sys
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from ai_cost_router.config.loader import RouterConfig, apply_env_overrides, load_router_config
from ai_cost_router.core.criteria import Channel, Complexity, CustomerTier, SelectionCriteria, Urgency
from ai_cost_router.core.selector import ModelSelector
from ai_cost_router.core.token_counter import estimate_tokens, split_tokens
from ai_cost_router.core.tracker import CostTracker
from ai_cost_router.logging_config import configure_logging
from ai_cost_router.storage.repository import get_repository, initialize_schema

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

ConfigOption = typer.Option(None, "--config", "-c", help="Path to YAML configuration file")


def _load_config(config_path: Optional[str]) -> RouterConfig:
    """Load configuration, apply environment overrides and set up logging."""
    try:
        config = load_router_config(config_path) if config_path else RouterConfig()
        config = apply_env_overrides(config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    configure_logging(config.log_level)
    return config


def _tracker(config: RouterConfig) -> CostTracker:
    return CostTracker(get_repository(config.db_path), alert_threshold=config.budget.alert_threshold)


def _format_currency(amount: float) -> str:
    """Format currency with sign, symbol and thousands separator."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _format_rate(amount: Decimal) -> str:
    """Format a per-1k price without losing sub-cent precision."""
    return f"${amount.normalize():f}"


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """AI Cost Router CLI."""
    if ctx.invoked_subcommand is None:
        console.print("AI Cost Router - Use --help to see available commands")


@app.command()
def init(config_path: Optional[str] = ConfigOption):
    """Initialize the usage ledger database."""
    config = _load_config(config_path)
    try:
        initialize_schema(config.db_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def models(config_path: Optional[str] = ConfigOption):
    """List the models in the catalog."""
    config = _load_config(config_path)
    try:
        catalog = config.build_catalog()
    except ValueError as e:
        console.print(f"[red]Catalog error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title="Model Catalog")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("Per 1k (blended)", justify="right")
    table.add_column("Context", justify="right")
    table.add_column("Capabilities")
    for model in catalog.list_models():
        table.add_row(
            model.name,
            model.provider.value,
            _format_rate(model.cost_per_1k),
            f"{model.context_window:,}",
            ", ".join(sorted(tag.value for tag in model.capabilities)),
        )
    console.print(table)


@app.command()
def select(
    complexity: Complexity = typer.Option(Complexity.SIMPLE.value, "--complexity", help="Interaction complexity"),
    urgency: Urgency = typer.Option(Urgency.NORMAL.value, "--urgency", help="Reply urgency"),
    channel: Channel = typer.Option(Channel.CHAT.value, "--channel", help="Customer channel"),
    tier: CustomerTier = typer.Option(CustomerTier.STANDARD.value, "--tier", help="Customer tier"),
    context_length: int = typer.Option(0, "--context-length", help="Conversation length so far, in tokens"),
    tokens: Optional[int] = typer.Option(None, "--tokens", "-t", help="Estimated total tokens"),
    text: Optional[str] = typer.Option(None, "--text", help="Message text to estimate tokens from"),
    config_path: Optional[str] = ConfigOption,
):
    """Show which model would be selected for an interaction."""
    config = _load_config(config_path)
    if tokens is None and text is None:
        console.print("[red]Error:[/] provide --tokens or --text")
        sys.exit(EXIT_CODE_FAIL)

    try:
        criteria = SelectionCriteria(
            complexity=complexity,
            urgency=urgency,
            context_length_tokens=context_length,
            channel=channel,
            customer_tier=tier,
        )
        estimated = tokens if tokens is not None else estimate_tokens(text)
        selector = ModelSelector(config.build_catalog(), config.selection)
        result = selector.select_model(criteria, estimated)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print(f"\n[bold]Selected model:[/bold] {result.model.name} ({result.model.model_id})")
    console.print(f"Estimated tokens: {estimated:,}")
    split = split_tokens(estimated, config.selection.input_ratio)
    console.print(f"Assumed split: {split.input_tokens:,} input / {split.output_tokens:,} output")
    console.print(f"Estimated cost: ${result.estimated_cost:.4f}")
    console.print(f"Reasoning: {result.reasoning}")
    if result.fallback:
        console.print("[yellow]No model matched every filter; cheapest fallback used[/]")


@app.command()
def summary(
    days: int = typer.Option(30, "--days", "-d", help="Number of days to summarize"),
    config_path: Optional[str] = ConfigOption,
):
    """Summarize spend over the last N days."""
    config = _load_config(config_path)
    tracker = _tracker(config)

    end = datetime.now()
    result = tracker.get_cost_summary(end - timedelta(days=days), end)

    if result.is_empty:
        console.print("\n[bold yellow]No AI usage data found for this period[/]")
        return

    console.print(f"\n[bold]AI Cost Summary (last {days} days)[/bold]")
    console.print("-" * 40)
    console.print(f"Total cost: {_format_currency(result.total_cost)}")
    console.print(f"Requests: {result.total_requests:,} ({result.failed_requests:,} failed)")
    console.print(f"Average cost/request: ${result.average_cost_per_request:,.4f}")
    console.print(f"Average response time: {result.average_response_time_ms:,.0f} ms")
    console.print(
        f"Estimated savings: {_format_currency(result.cost_savings)} "
        f"({result.cost_savings_percentage:.1f}%, heuristic)"
    )

    for title, breakdown in (
        ("Cost by model", result.cost_by_model),
        ("Cost by channel", result.cost_by_channel),
        ("Cost by complexity", result.cost_by_complexity),
    ):
        table = Table(title=title)
        table.add_column("Name")
        table.add_column("Cost", justify="right")
        for name, cost in sorted(breakdown.items(), key=lambda item: item[1], reverse=True):
            table.add_row(name, _format_currency(cost))
        console.print(table)


@app.command()
def today(config_path: Optional[str] = ConfigOption):
    """Show spend so far today and the top models by cost."""
    config = _load_config(config_path)
    metrics = _tracker(config).get_current_day_metrics()

    console.print("\n[bold]Today's AI Cost[/bold]")
    console.print(f"Total cost: {_format_currency(metrics.total_cost)}")
    console.print(f"Requests: {metrics.request_count:,}")

    if metrics.top_models:
        table = Table(title="Top models")
        table.add_column("Model")
        table.add_column("Cost", justify="right")
        table.add_column("Share", justify="right")
        for share in metrics.top_models:
            table.add_row(share.model, _format_currency(share.cost), f"{share.usage:.1f}%")
        console.print(table)


@app.command()
def trends(
    days: int = typer.Option(7, "--days", "-d", help="Number of days including today"),
    config_path: Optional[str] = ConfigOption,
):
    """Show per-day spend, oldest first."""
    config = _load_config(config_path)
    points = _tracker(config).get_cost_trends(days)

    table = Table(title="Daily AI Cost")
    table.add_column("Date")
    table.add_column("Cost", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Avg/request", justify="right")
    for point in points:
        table.add_row(
            point.date,
            _format_currency(point.total_cost),
            f"{point.request_count:,}",
            f"${point.average_cost:,.4f}",
        )
    console.print(table)


@app.command()
def budget(
    daily: Optional[float] = typer.Option(None, "--daily", help="Daily budget (defaults to configured budget)"),
    enforced: bool = typer.Option(False, "--enforced", "-e", help="Exit with error code when over budget"),
    config_path: Optional[str] = ConfigOption,
):
    """Check today's spend against the daily budget."""
    config = _load_config(config_path)
    daily_budget = daily if daily is not None else config.budget.daily
    if daily_budget is None:
        console.print("[red]Error:[/] no daily budget configured, pass --daily")
        sys.exit(EXIT_CODE_FAIL)

    try:
        status = _tracker(config).check_budget_alert(daily_budget)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    console.print("\n[bold]Daily Budget[/bold]")
    console.print(f"Spent: {_format_currency(status.current_spending)} of {_format_currency(daily_budget)}")
    console.print(f"Remaining: {_format_currency(status.budget_remaining)}")
    console.print(f"Used: {status.percentage_used:.1f}%")

    if not status.within_budget:
        console.print("[bold red]Verdict: OVER BUDGET[/]")
    elif status.alert_triggered:
        console.print("[bold yellow]Verdict: ALERT[/]")
    else:
        console.print("[green]Verdict: OK[/]")

    if enforced and not status.within_budget:
        sys.exit(EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def recommend(config_path: Optional[str] = ConfigOption):
    """Suggest routing changes based on the last 30 days."""
    config = _load_config(config_path)
    recommendations = _tracker(config).get_optimization_recommendations()

    if not recommendations:
        console.print("\n[dim]No optimization recommendations.[/]")
        return

    for rec in recommendations:
        console.print(f"\n[bold]{rec.type.value}[/bold]: {rec.description}")
        console.print(
            f"Potential savings: {_format_currency(rec.potential_savings)} "
            f"(confidence: {rec.confidence.value}, effort: {rec.implementation_effort.value})"
        )


@app.command()
def events(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Only show events for this model"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of events"),
    config_path: Optional[str] = ConfigOption,
):
    """List the most recent usage events with their ids."""
    config = _load_config(config_path)
    recent = _tracker(config).get_recent_events(model=model, limit=limit)

    if not recent:
        console.print("\n[dim]No usage events recorded.[/]")
        return

    table = Table(title="Recent usage events")
    table.add_column("Id")
    table.add_column("Time")
    table.add_column("Model")
    table.add_column("Channel")
    table.add_column("Tokens", justify="right")
    table.add_column("Estimated", justify="right")
    table.add_column("Actual", justify="right")
    for event in recent:
        table.add_row(
            event.id,
            event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            event.model_name,
            event.channel,
            f"{event.total_tokens:,}",
            f"${event.estimated_cost:,.4f}",
            "-" if event.actual_cost is None else f"${event.actual_cost:,.4f}",
        )
    console.print(table)


@app.command()
def reconcile(
    event_id: str = typer.Argument(..., help="Usage event id"),
    actual_cost: float = typer.Argument(..., help="Billed cost for the event"),
    config_path: Optional[str] = ConfigOption,
):
    """Record the billed cost of a usage event."""
    config = _load_config(config_path)
    try:
        updated = _tracker(config).update_actual_cost(event_id, actual_cost)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not updated:
        console.print(f"[red]No usage event updated for id {event_id}[/]")
        sys.exit(EXIT_CODE_FAIL)
    console.print(f"[green]✓[/] Actual cost recorded for {event_id}")


if __name__ == "__main__":
    app()
