"""Typer-based command line interface for lane simulations and quote decisions."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .. import config
from ..core.alternatives import AlternativeEvaluator
from ..core.errors import SimulationError
from ..core.quote_evaluator import QuoteEvaluator
from ..core.sampler import VariateSampler
from ..engine import FreightEngine
from ..models.lane import Lane
from ..models.results import AlternativeAnalysis, LaneAnalysis, QuoteEvaluation, StatisticsSummary
from ..models.simulation import ProgressEvent, RunState, SimulationRunResult
from ..runtime.simulation_runner import SimulationRunner
from ..utils.numbers import decimalize

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Freight rate and transit time Monte Carlo simulator")
console = Console()

DEMO_LANES: Dict[str, Dict[str, Any]] = {
    "asia-west-coast-us": {
        "origin": "Shanghai",
        "destination": "Los Angeles",
        "name": "Asia-West Coast US",
        "baseIndex": "SCFI",
        "indexValue": 1245.5,
        "laneRatio": 1.15,
        "historicalVolatility": 0.12,
        "segments": [
            {"name": "Ocean Transit", "baselineDays": 14.0, "distribution": "normal"},
            {"name": "Port Dwell", "baselineDays": 2.0, "distribution": "lognormal", "parameters": {"sigma": 0.2}},
        ],
        "factors": [
            {
                "name": "Carrier Premium",
                "type": "carrierPremium",
                "meanMultiplier": 1.05,
                "distribution": "normal",
                "parameters": {"stdDev": 0.02},
            },
            {
                "name": "Seasonality",
                "type": "seasonality",
                "meanMultiplier": 1.08,
                "distribution": "triangle",
                "parameters": {"min": 1.04, "mode": 1.08, "max": 1.14},
            },
            {
                "name": "Fuel Surcharge",
                "type": "fuelSurcharge",
                "meanMultiplier": 1.0,
                "distribution": "lognormal",
                "parameters": {"sigma": 0.05},
            },
        ],
    },
    "europe-east-coast-us": {
        "origin": "Rotterdam",
        "destination": "New York",
        "name": "Europe-East Coast US",
        "baseIndex": "WCI",
        "indexValue": 2890.3,
        "laneRatio": 0.95,
        "historicalVolatility": 0.10,
        "segments": [
            {"name": "Ocean Transit", "baselineDays": 10.0, "distribution": "normal"},
            {"name": "Port Dwell", "baselineDays": 1.0, "distribution": "lognormal", "parameters": {"sigma": 0.2}},
        ],
        "factors": [
            {
                "name": "Carrier Premium",
                "type": "carrierPremium",
                "meanMultiplier": 1.03,
                "distribution": "normal",
                "parameters": {"stdDev": 0.02},
            },
            {
                "name": "Seasonality",
                "type": "seasonality",
                "meanMultiplier": 1.05,
                "distribution": "triangle",
            },
        ],
    },
    "southeast-asia-australia": {
        "origin": "Singapore",
        "destination": "Sydney",
        "name": "Southeast Asia-Australia",
        "baseIndex": "SCFI",
        "indexValue": 1245.5,
        "laneRatio": 0.75,
        "historicalVolatility": 0.08,
        "segments": [
            {"name": "Ocean Transit", "baselineDays": 7.0, "distribution": "normal"},
            {"name": "Port Dwell", "baselineDays": 1.0, "distribution": "normal"},
        ],
        "factors": [
            {
                "name": "Capacity Utilization",
                "type": "capacityUtilization",
                "meanMultiplier": 1.02,
                "distribution": "normal",
                "parameters": {"stdDev": 0.03},
            },
        ],
    },
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _resolve_lane(lane_key: Optional[str], lane_file: Optional[Path]) -> Lane:
    """Load a lane from a JSON file or the built-in demo set."""
    if lane_file is not None:
        if not lane_file.exists():
            raise typer.BadParameter(f"File not found: {lane_file}")
        try:
            record = json.loads(lane_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"{lane_file} is not valid JSON: {exc.msg}") from exc
    else:
        key = (lane_key or "asia-west-coast-us").lower()
        if key not in DEMO_LANES:
            raise typer.BadParameter(
                f"Unknown lane {lane_key!r}. Choose from: {', '.join(sorted(DEMO_LANES))}"
            )
        record = DEMO_LANES[key]
    try:
        return Lane.from_record(record)
    except SimulationError as exc:
        raise typer.BadParameter(exc.message) from exc


def _fail(exc: SimulationError) -> typer.Exit:
    console.print(f"[red]{exc.kind.value}: {exc.message}[/red]")
    return typer.Exit(code=1)


def _format_currency(value: Optional[float]) -> str:
    return f"${value:,.2f}" if value is not None else "N/A"


def _run_with_progress(engine: FreightEngine, seed: Optional[int], batch_size: int) -> SimulationRunResult:
    """Execute the run on a background worker while rendering its progress."""
    runner = SimulationRunner(batch_size=batch_size)
    run = runner.start(engine.simulation_params(), seed=seed)
    columns = (
        TextColumn("[bold]Simulating"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("{task.completed:,.0f}/{task.total:,.0f}"),
        TimeElapsedColumn(),
    )
    try:
        with Progress(*columns, console=console, transient=True) as progress:
            task = progress.add_task("simulate", total=run.params.iterations)
            while True:
                for event in run.drain_events():
                    if isinstance(event, ProgressEvent):
                        progress.update(task, completed=event.completed)
                if run.done:
                    break
                time.sleep(0.05)
        return run.result()
    except KeyboardInterrupt:
        if not run.done:
            LOGGER.warning("Interrupted; cancelling run %s", run.run_id)
            run.control.cancel()
            console.print("[yellow]Cancelling simulation...[/yellow]")
        return run.result()
    finally:
        runner.shutdown(wait=True)


def _stats_table(title: str, summaries: Dict[str, StatisticsSummary]) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Statistic")
    for label in summaries:
        table.add_column(label, justify="right")
    rows = [
        ("Mean", "mean"),
        ("Median", "median"),
        ("Std Dev", "std_dev"),
        ("Min", "min"),
        ("P5", "p5"),
        ("P25", "p25"),
        ("P75", "p75"),
        ("P95", "p95"),
        ("Max", "max"),
        ("Skewness", "skewness"),
        ("Kurtosis", "kurtosis"),
    ]
    for label, attr in rows:
        table.add_row(label, *[f"{getattr(summary, attr):,.2f}" for summary in summaries.values()])
    return table


def _display_analysis(lane: Lane, analysis: LaneAnalysis) -> None:
    run = analysis.run
    console.print(
        f"\n[bold]{lane.name}[/bold] ({lane.origin} -> {lane.destination}), "
        f"baseline {_format_currency(lane.baseline_rate)}"
    )
    if run.state == RunState.CANCELLED:
        console.print(f"[yellow]Run cancelled after {run.completed:,} of {run.total:,} iterations.[/yellow]")
    if analysis.rate_stats is None:
        return
    console.print(
        _stats_table(
            "Simulated Outcomes",
            {
                "Rate ($)": analysis.rate_stats,
                "Transit (days)": analysis.transit_stats,
                "Landed Cost ($)": analysis.landed_cost_stats,
            },
        )
    )
    interval = analysis.rate_confidence_interval
    if interval is not None:
        console.print(
            f"{interval.confidence_level * 100:.0f}% CI for mean rate: "
            f"{_format_currency(interval.lower)} - {_format_currency(interval.upper)}"
        )
    if analysis.rate_outliers is not None:
        console.print(f"Rate outliers (IQR): {len(analysis.rate_outliers.outliers):,}")
    if analysis.validation.get("warnings"):
        console.print(f"[yellow]Validation warnings: {', '.join(analysis.validation['warnings'])}[/yellow]")


def _display_evaluation(quote_rate: float, evaluation: QuoteEvaluation) -> None:
    table = Table(title=f"Quote Evaluation ({_format_currency(quote_rate)})", show_lines=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Percentile", f"{evaluation.percentile:.1f}")
    table.add_row("Market variance", f"{evaluation.market_variance * 100:+.1f}%")
    table.add_row("Model variance", f"{evaluation.model_variance * 100:+.1f}%")
    table.add_row("Risk score", f"{evaluation.risk_score:.1f} ({evaluation.risk_band.value})")
    table.add_row("Confidence", f"{evaluation.confidence:.0f}%")
    table.add_row("Recommendation", f"[bold]{evaluation.recommendation.value}[/bold]")
    console.print(table)


def _display_alternatives(analysis: AlternativeAnalysis) -> None:
    table = Table(title="Booking Alternatives", show_lines=False)
    for column in ["Strategy", "Expected Cost", "P5", "P95", "Confidence", "Risk", "Decision"]:
        table.add_column(column, justify="left" if column in ("Strategy", "Risk", "Decision") else "right")
    for item in analysis.strategies:
        marker = " *" if analysis.recommended and item.strategy == analysis.recommended.strategy else ""
        table.add_row(
            f"{item.name}{marker}",
            _format_currency(item.expected_cost),
            _format_currency(item.cost_percentiles.get("p5")),
            _format_currency(item.cost_percentiles.get("p95")),
            f"{item.confidence:.0f}%",
            item.risk_level.value,
            item.time_to_decision,
        )
    console.print(table)
    if analysis.recommended is None:
        console.print(f"[yellow]No strategy clears the {analysis.confidence_floor:.0f}% confidence floor.[/yellow]")
    else:
        console.print(f"Recommended: [bold]{analysis.recommended.name}[/bold]")


@app.callback()
def _main(
    log_level: str = typer.Option("WARNING", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
) -> None:
    _configure_logging(log_level)


@app.command()
def lanes() -> None:
    """List the built-in demo lanes."""
    table = Table(title="Demo Lanes", show_lines=False)
    for column in ["Key", "Name", "Route", "Index", "Baseline", "Volatility"]:
        table.add_column(column)
    for key, record in DEMO_LANES.items():
        lane = Lane.from_record(record)
        table.add_row(
            key,
            lane.name,
            f"{lane.origin} -> {lane.destination}",
            f"{lane.base_index} {lane.index_value:,.1f}",
            _format_currency(lane.baseline_rate),
            f"{lane.historical_volatility * 100:.0f}%",
        )
    console.print(table)


@app.command()
def simulate(
    lane: Optional[str] = typer.Option(None, help="Demo lane key (see `lanes`)"),
    lane_file: Optional[Path] = typer.Option(None, help="JSON lane record to simulate instead of a demo lane"),
    iterations: int = typer.Option(config.DEFAULT_ITERATIONS, help="Number of Monte Carlo iterations"),
    seed: Optional[int] = typer.Option(config.RANDOM_SEED, help="Random seed for reproducible runs"),
    batch_size: int = typer.Option(config.BATCH_SIZE, help="Iterations per progress update"),
    quote: Optional[float] = typer.Option(None, help="Quote rate to evaluate against the simulated rates"),
    export: Optional[Path] = typer.Option(None, help="Write per-iteration outcomes to this CSV file"),
) -> None:
    """Simulate landed cost and transit time for a lane."""
    if iterations <= 0:
        raise typer.BadParameter("iterations must be positive")
    if batch_size <= 0:
        raise typer.BadParameter("batch_size must be positive")
    resolved = _resolve_lane(lane, lane_file)
    try:
        engine = FreightEngine(seed=seed, batch_size=batch_size)
        engine.load_lane(resolved)
        engine.set_iterations(iterations)
        result = _run_with_progress(engine, seed, batch_size)
        if result.state == RunState.FAILED:
            console.print(f"[red]Simulation failed: {result.error.message if result.error else 'unknown error'}[/red]")
            raise typer.Exit(code=1)
        analysis = engine.analyse(result)
        _display_analysis(resolved, analysis)
        if quote is not None and analysis.rate_stats is not None:
            evaluation = QuoteEvaluator().evaluate(quote, resolved.baseline_rate, result.rates(), analysis.rate_stats)
            _display_evaluation(quote, evaluation)
    except SimulationError as exc:
        raise _fail(exc) from exc

    if export is not None:
        export.parent.mkdir(parents=True, exist_ok=True)
        engine.outcomes_frame(result).to_csv(export, index=False)
        console.print(f"Outcomes exported to: {export}")


@app.command("evaluate-quote")
def evaluate_quote(
    rate: float = typer.Argument(..., help="Quoted rate to evaluate"),
    lane: Optional[str] = typer.Option(None, help="Demo lane key (see `lanes`)"),
    lane_file: Optional[Path] = typer.Option(None, help="JSON lane record"),
    iterations: int = typer.Option(config.DEFAULT_ITERATIONS, help="Number of Monte Carlo iterations"),
    seed: Optional[int] = typer.Option(config.RANDOM_SEED, help="Random seed for reproducible runs"),
) -> None:
    """Score a quote against the simulated rate distribution of a lane."""
    resolved = _resolve_lane(lane, lane_file)
    try:
        engine = FreightEngine(seed=seed)
        engine.load_lane(resolved)
        engine.set_iterations(iterations)
        engine.run_simulation()
        evaluation = engine.evaluate_quote({"rate": rate, "laneId": resolved.id})
    except SimulationError as exc:
        raise _fail(exc) from exc
    _display_evaluation(rate, evaluation)


@app.command()
def alternatives(
    rate: float = typer.Argument(..., help="Quoted rate to compare strategies for"),
    lane: Optional[str] = typer.Option(None, help="Demo lane key supplying historical volatility"),
    volatility: Optional[float] = typer.Option(
        None, help="Historical volatility (decimal or percent); overrides the lane's value"
    ),
    iterations: int = typer.Option(config.DEFAULT_ITERATIONS, help="Samples per strategy"),
    seed: Optional[int] = typer.Option(config.RANDOM_SEED, help="Random seed for reproducible runs"),
) -> None:
    """Compare book now, wait, split and reroute for a quote."""
    if volatility is not None:
        historical_volatility = decimalize(volatility)
    else:
        historical_volatility = _resolve_lane(lane, None).historical_volatility
    try:
        evaluator = AlternativeEvaluator(sampler=VariateSampler(seed=seed), iterations=iterations)
        analysis = evaluator.evaluate(rate, historical_volatility)
    except SimulationError as exc:
        raise _fail(exc) from exc
    _display_alternatives(analysis)


def main() -> None:
    """Entry point for CLI execution."""
    app()


if __name__ == "__main__":
    main()
