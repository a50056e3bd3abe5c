"""
CLI entrypoint for the LLM visibility engine.

Commands:
    run: Run a visibility analysis from a YAML config
    validate: Validate a config (and its credentials) without calling providers
    providers: List supported providers, default models and credential variables

Output modes (see utils.console):
    --format text (default): Rich progress bar and tables
    --format json: one JSON document on stdout
    --quiet: tab-separated totals only

Exit codes:
    0: Success, every task done
    1: Configuration error (invalid YAML, missing credentials, bad settings)
    3: Partial failure (some tasks failed)
    4: Complete failure (no task succeeded)

Examples:
    llm-visibility run --config visibility.config.yaml
    llm-visibility run --config visibility.config.yaml --format json
    llm-visibility run --config visibility.config.yaml --mock
    llm-visibility run --config visibility.config.yaml --mock --chaos-rate 0.3
    llm-visibility validate --config visibility.config.yaml

Security:
    Credentials are read from environment variables only and never printed.
"""

import asyncio
import json
from enum import Enum
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path

import typer
from rich.traceback import install as install_rich_traceback

from llm_visibility.config.constants import (
    DEFAULT_CREDENTIAL_ENV,
    DEFAULT_MODELS,
    MODEL_OPTIONS,
    PROVIDER_DISPLAY_NAMES,
    SUPPORTED_PROVIDERS,
)
from llm_visibility.config.loader import apply_default_models, load_config
from llm_visibility.config.schema import AnalysisConfig, Credentials
from llm_visibility.engine.aggregator import summarize_visibility
from llm_visibility.engine.scheduler import TaskScheduler
from llm_visibility.engine.tasks import TaskSnapshot
from llm_visibility.exceptions import (
    ConfigFileNotFoundError,
    ConfigurationError,
    CredentialMissingError,
)
from llm_visibility.providers.chaos_adapter import create_chaos_adapter
from llm_visibility.providers.mock_adapter import MockAdapter
from llm_visibility.utils.console import (
    console,
    create_progress_bar,
    error,
    info,
    output_mode,
    print_final_summary,
    print_summary_table,
    print_visibility_summary,
    spinner,
    success,
    warning,
)
from llm_visibility.utils.logging import register_secrets, setup_logging

install_rich_traceback(show_locals=False)

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_PARTIAL_FAILURE = 3
EXIT_COMPLETE_FAILURE = 4


class OutputFormat(str, Enum):
    text = "text"
    json = "json"

app = typer.Typer(
    name="llm-visibility",
    help="Measure how AI assistants talk about your brand vs competitors",
    add_completion=False,
)


def _read_version() -> str:
    try:
        return package_version("llm-visibility-engine")
    except PackageNotFoundError:
        return "0.1.0"


def _mock_credentials() -> Credentials:
    """Placeholder credentials so offline runs pass pre-run validation."""
    return Credentials(
        gemini="mock-key",
        openai="mock-key",
        perplexity="mock-key",
        copilot_key="mock-key",
        copilot_endpoint="https://mock.openai.azure.com",
    )


def _mock_answer(analysis: AnalysisConfig, prompt: str) -> str:
    """Canned answer for offline runs; judge prompts get a JSON verdict."""
    if prompt.startswith("Client brand:") and "Return a JSON object" in prompt:
        return json.dumps(
            {
                "sentiment": "positive",
                "follow_up_answers": [
                    f"{analysis.client_name} is described favourably."
                    for _ in analysis.follow_up_questions
                ],
                "ranking": [analysis.client_name, *analysis.competitors],
            }
        )

    lines = [f"Here are the top options for: {prompt}", ""]
    brands = [analysis.client_name, *analysis.competitors]
    for position, brand in enumerate(brands, start=1):
        lines.append(f"{position}. {brand} - a popular, reliable choice.")
    return "\n".join(lines)


def _mock_adapter_factory(analysis: AnalysisConfig):
    def factory(provider: str, model_name: str, credentials, **_kwargs) -> MockAdapter:
        return MockAdapter(
            provider=provider,
            model_name=model_name,
            respond=lambda prompt: _mock_answer(analysis, prompt),
            delay=0.05,
        )

    return factory


def _with_chaos(factory, failure_rate: float, seed: int | None):
    """Wrap every adapter `factory` builds in a ChaosAdapter."""

    def chaos_factory(provider: str, model_name: str, credentials, **kwargs):
        return create_chaos_adapter(
            factory(provider, model_name, credentials, **kwargs),
            failure_rate=failure_rate,
            seed=seed,
        )

    return chaos_factory


def _task_rows(snapshot: tuple[TaskSnapshot, ...]) -> list[dict]:
    rows = []
    for task in snapshot:
        extraction = task.extraction
        rows.append(
            {
                "task_id": task.task_id,
                "provider": task.provider,
                "model_name": task.model_name,
                "prompt_index": task.prompt_index,
                "status": task.status.value,
                "attempts": task.attempts,
                "brand_mentioned": extraction.brand_mentioned if extraction else None,
                "brand_rank": extraction.brand_rank if extraction else None,
                "sentiment": extraction.sentiment if extraction else None,
                "degraded": extraction.degraded if extraction else None,
                "error": task.error,
                "error_type": task.error_type,
            }
        )
    return rows


@app.command()
def run(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to YAML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.text,
        "--format",
        "-f",
        help="Output format: 'text' (human-friendly) or 'json' (machine-readable)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Minimal output (tab-separated values)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging",
    ),
    mock: bool = typer.Option(
        False,
        "--mock",
        help="Use canned offline answers instead of calling providers",
    ),
    chaos_rate: float = typer.Option(
        0.0,
        "--chaos-rate",
        min=0.0,
        max=1.0,
        help="With --mock, fail this fraction of adapter calls with injected errors",
    ),
    chaos_seed: int | None = typer.Option(
        None,
        "--chaos-seed",
        help="Seed for a reproducible --chaos-rate failure sequence",
    ),
    default_models: bool = typer.Option(
        False,
        "--default-models",
        help="Use the default model for selected providers that list none",
    ),
):
    """
    Run a visibility analysis.

    Every prompt is sent to every selected provider/model concurrently, and
    each answer is analyzed for brand mentions, ranking, sentiment and
    competitor co-mentions.

    Exit codes:
      0: All tasks done
      1: Configuration error
      3: Partial failure (some tasks failed)
      4: Complete failure (no task succeeded)
    """
    output_mode.format = format.value
    output_mode.quiet = quiet

    # JSON log lines would garble the Rich display
    setup_logging(verbose=verbose, quiet_logs=output_mode.is_human() and not verbose)

    try:
        with spinner("Loading configuration..."):
            runtime = load_config(config, resolve_secrets=not mock)
    except ConfigFileNotFoundError as e:
        error(f"Configuration file not found: {e}")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)
    except CredentialMissingError as e:
        error(f"Credentials missing: {e}")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)
    except ConfigurationError as e:
        error(str(e))
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)

    analysis = runtime.analysis
    if default_models:
        analysis = apply_default_models(analysis)
    success(
        f"Loaded {len(analysis.prompts)} prompt(s) for {analysis.client_name} "
        f"across {len(analysis.providers)} provider(s)"
    )

    credentials = runtime.credentials
    register_secrets(
        [credentials.gemini, credentials.openai, credentials.perplexity, credentials.copilot_key]
    )
    adapter_kwargs = {}
    if mock:
        warning("Mock mode: no provider is called, answers are canned")
        credentials = _mock_credentials()
        factory = _mock_adapter_factory(analysis)
        if chaos_rate > 0:
            warning(f"Chaos mode: {chaos_rate:.0%} of adapter calls fail")
            factory = _with_chaos(factory, chaos_rate, chaos_seed)
        adapter_kwargs["adapter_factory"] = factory
    elif chaos_rate > 0:
        error("--chaos-rate requires --mock")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)

    scheduler = TaskScheduler(analysis, credentials, runtime.settings, **adapter_kwargs)

    progress = create_progress_bar()
    with progress:
        bar = progress.add_task("Querying providers", total=None)

        def update_progress(snapshot: tuple[TaskSnapshot, ...]) -> None:
            finished = sum(1 for task in snapshot if task.is_terminal)
            progress.update(bar, total=len(snapshot), completed=finished)

        scheduler.subscribe(update_progress)

        try:
            results = asyncio.run(scheduler.run())
        except ConfigurationError as e:
            error(str(e))
            output_mode.flush_json()
            raise typer.Exit(EXIT_CONFIG_ERROR)
        except KeyboardInterrupt:
            scheduler.cancel()
            error("Run interrupted")
            raise typer.Exit(EXIT_COMPLETE_FAILURE)

    snapshot = scheduler.snapshot()
    total = len(snapshot)

    for task in snapshot:
        if task.error:
            warning(f"{task.label}: {task.error}")

    print_summary_table(_task_rows(snapshot))
    print_visibility_summary(
        [summary.to_dict() for summary in summarize_visibility(results, snapshot)]
    )
    if output_mode.is_agent():
        output_mode.add_json("results", [result.to_dict() for result in results])
    print_final_summary(scheduler.run_id, done=len(results), total=total)

    if not results:
        raise typer.Exit(EXIT_COMPLETE_FAILURE)
    if len(results) < total:
        raise typer.Exit(EXIT_PARTIAL_FAILURE)
    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def validate(
    config: Path = typer.Option(
        ...,
        "--config",
        "-c",
        help="Path to YAML configuration file",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.text,
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Skip credential checks",
    ),
):
    """
    Validate a configuration file without calling any provider.

    Checks YAML syntax, schema rules and (unless --offline) that every
    selected provider's credentials are set in the environment.

    Exit codes:
      0: Configuration is valid
      1: Configuration is invalid
    """
    output_mode.format = format.value

    try:
        with spinner("Validating configuration..."):
            runtime = load_config(config, resolve_secrets=not offline)
    except ConfigurationError as e:
        error(f"Validation failed: {e}")
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
            output_mode.add_json("error_type", type(e).__name__)
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)

    analysis = runtime.analysis
    task_count = sum(len(analysis.models_for(p)) for p in analysis.providers) * len(
        analysis.prompts
    )
    missing_models = [p for p in analysis.providers if not analysis.models_for(p)]

    if missing_models:
        error(
            "Providers without a model: "
            + ", ".join(missing_models)
            + " (set use_default_models: true or list models)"
        )
        if output_mode.is_agent():
            output_mode.add_json("valid", False)
            output_mode.add_json("error_type", "ConfigValidationError")
        output_mode.flush_json()
        raise typer.Exit(EXIT_CONFIG_ERROR)

    success("Configuration is valid")
    info(f"Client: {analysis.client_name}")
    info(f"Competitors: {len(analysis.competitors)}")
    info(f"Prompts: {len(analysis.prompts)}")
    info(f"Tasks per run: {task_count}")

    if output_mode.is_agent():
        output_mode.add_json("valid", True)
        output_mode.add_json("client_name", analysis.client_name)
        output_mode.add_json("providers", list(analysis.providers))
        output_mode.add_json("prompts_count", len(analysis.prompts))
        output_mode.add_json("tasks_count", task_count)
        output_mode.flush_json()

    raise typer.Exit(EXIT_SUCCESS)


@app.command()
def providers(
    format: OutputFormat = typer.Option(
        OutputFormat.text,
        "--format",
        "-f",
        help="Output format: 'text' or 'json'",
    ),
):
    """List supported providers, their default models and credential variables."""
    output_mode.format = format.value

    rows = []
    for provider in SUPPORTED_PROVIDERS:
        env_vars = (
            [DEFAULT_CREDENTIAL_ENV["copilot_key"], DEFAULT_CREDENTIAL_ENV["copilot_endpoint"]]
            if provider == "copilot"
            else [DEFAULT_CREDENTIAL_ENV[provider]]
        )
        rows.append(
            {
                "provider": provider,
                "display_name": PROVIDER_DISPLAY_NAMES[provider],
                "default_model": DEFAULT_MODELS[provider],
                "models": list(MODEL_OPTIONS[provider]),
                "credential_env": env_vars,
            }
        )

    if output_mode.is_agent():
        output_mode.add_json("providers", rows)
        output_mode.flush_json()
        raise typer.Exit(EXIT_SUCCESS)

    from rich import box
    from rich.table import Table

    table = Table(title="Supported Providers", box=box.ROUNDED)
    table.add_column("Provider", style="cyan", no_wrap=True)
    table.add_column("Default model", style="magenta")
    table.add_column("Other models")
    table.add_column("Environment", style="yellow")
    for row in rows:
        table.add_row(
            f"{row['display_name']} ({row['provider']})",
            row["default_model"],
            ", ".join(m for m in row["models"] if m != row["default_model"]),
            ", ".join(row["credential_env"]),
        )
    console.print(table)
    raise typer.Exit(EXIT_SUCCESS)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
    ),
):
    """
    LLM Visibility Engine - track your brand in AI assistant answers.

    Sends buyer-intent prompts to Gemini, OpenAI, Perplexity and Copilot and
    reports brand mentions, ranking and sentiment against competitors.
    """
    if version:
        console.print(f"[bold cyan]llm-visibility[/bold cyan] version {_read_version()}")
        raise typer.Exit(EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        console.print("[yellow]Use --help to see available commands[/yellow]")
        console.print()
        console.print("Quick start:")
        console.print("  llm-visibility run --config visibility.config.yaml --mock")


if __name__ == "__main__":
    app()
