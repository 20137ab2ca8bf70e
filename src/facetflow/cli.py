"""facetflow CLI for inspecting and resolving rule families - Tyro implementation."""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any, Literal

import attrs
import tyro
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from facetflow.config import FacetflowSettings, set_settings_instance
from facetflow.errors import ConfigurationLoadError, GuardViolationError, UndefinedSubjectError
from facetflow.loader import import_object, load_configuration
from facetflow.pipeline import Configuration, parse_overrides

logger = logging.getLogger(__name__)

OutputFormat = Literal["table", "json"]


@attrs.define
class Inspect:
    """Show the rules, facets, guards and defaults of a rule family."""

    target: Annotated[str, tyro.conf.Positional]
    """YAML rule family file or module:attribute path to a Configuration."""

    output: Annotated[OutputFormat, tyro.conf.arg(aliases=["-o"])] = "table"
    """Output format: table, json."""

    validate: Annotated[bool, tyro.conf.arg(aliases=["-v"])] = False
    """Validate the rule order and report any issues."""


@attrs.define
class Resolve:
    """Resolve a rule family against params and print the subject."""

    target: Annotated[str, tyro.conf.Positional]
    """YAML rule family file or module:attribute path to a Configuration."""

    params: Annotated[str | None, tyro.conf.arg(aliases=["-p"])] = None
    """Params as a JSON object."""

    presence: Annotated[str | None, tyro.conf.arg(aliases=["-k"])] = None
    """Comma-separated keys to mark present (+key) or absent (-key)."""


# Type alias for all subcommands
Command = Annotated[Inspect, tyro.conf.subcommand(name="inspect")] | Annotated[
    Resolve, tyro.conf.subcommand(name="resolve")
]


def setup_logging() -> None:
    """Configure logging with 100-character text width."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message).100s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_target(target: str) -> Configuration:
    """Load a configuration from a YAML file or an import path.

    Args:
        target: Path to a YAML rule family, or ``module:attribute``

    Returns:
        The configuration

    Raises:
        ConfigurationLoadError: If the target cannot be loaded
    """
    path = Path(target)
    if path.suffix in (".yaml", ".yml") or path.exists():
        return load_configuration(path)

    obj = import_object(target)
    if not isinstance(obj, Configuration):
        raise ConfigurationLoadError(f"'{target}' is not a Configuration (got {type(obj).__name__})")
    return obj


def _format_value(value: Any) -> str:
    try:
        return json.dumps(value, indent=2)
    except (TypeError, ValueError):
        return repr(value)


def handle_inspect(cmd: Inspect) -> None:
    """Handle inspect subcommand to show a rule family."""
    try:
        configuration = load_target(cmd.target)
    except ConfigurationLoadError as e:
        print(f"[red]Error loading {escape(cmd.target)}: {escape(str(e))}[/red]")
        sys.exit(1)

    plan = configuration.plan()

    if cmd.validate:
        warnings = plan.validate()
        if warnings:
            print("[yellow]Rule Validation Warnings:[/yellow]")
            for w in warnings:
                print(f"  • {escape(w)}")
        else:
            print("[green]Rule validation passed - no issues found[/green]")
        print()

    defaults = configuration.fetch_defaults()

    if cmd.output == "json":
        data = {
            "name": configuration.name,
            "raise_on_guard_violation": configuration.raise_on_guard_violation,
            "execution_order": plan.execution_order,
            "rules": [{"name": rule.name, "match": rule.match.describe()} for rule in plan.rules],
            "facets": [{"name": facet.name, "match": facet.match.describe()} for facet in configuration.facets],
            "guards": [guard.violation for guard in configuration.guards],
            "defaults": dict(defaults),
            "attributes": list(configuration.attribute_names),
        }
        sys.stdout.write(json.dumps(data, indent=2, default=repr) + "\n")
        return

    console = Console()

    console.print(Panel(f"[bold cyan]Rule Family: {configuration.name}[/bold cyan]", expand=False))

    mode = "raise" if configuration.raise_on_guard_violation else "record"
    console.print(f"\n[bold]Guard mode:[/bold] {mode}")

    console.print("\n[bold]Execution Order:[/bold]")
    console.print(escape(plan.to_ascii()) if plan.rules else "  [dim](no rules)[/dim]")

    if configuration.facets:
        console.print("\n[bold]Facets:[/bold]")
        table = Table(show_header=True, header_style="bold")
        table.add_column("Facet", style="cyan")
        table.add_column("Match", style="green")
        for facet in configuration.facets:
            table.add_row(escape(facet.name), escape(facet.match.describe()))
        console.print(table)

    if configuration.guards:
        console.print("\n[bold]Guards:[/bold]")
        for guard in configuration.guards:
            console.print(f"  • {escape(guard.violation)}")

    if defaults:
        console.print("\n[bold]Defaults:[/bold]")
        table = Table(show_header=True, header_style="bold")
        table.add_column("Param", style="cyan")
        table.add_column("Value", style="yellow")
        for key, value in defaults.items():
            table.add_row(escape(key), escape(repr(value)))
        console.print(table)

    if configuration.attribute_names:
        console.print(f"\n[bold]Attributes:[/bold] {', '.join(configuration.attribute_names)}")


def handle_resolve(cmd: Resolve) -> None:
    """Handle resolve subcommand to print the resolved subject."""
    try:
        configuration = load_target(cmd.target)
    except ConfigurationLoadError as e:
        print(f"[red]Error loading {escape(cmd.target)}: {escape(str(e))}[/red]")
        sys.exit(1)

    try:
        params = json.loads(cmd.params) if cmd.params else {}
    except json.JSONDecodeError as e:
        print(f"[red]Invalid --params JSON: {escape(str(e))}[/red]")
        sys.exit(1)
    if not isinstance(params, dict):
        print("[red]--params must be a JSON object[/red]")
        sys.exit(1)

    overrides = parse_overrides(cmd.presence)
    session = configuration.session(params)

    try:
        if overrides.overrides:
            subject = session.resolve(params=overrides.as_params())
        else:
            subject = session.resolve()
    except (GuardViolationError, UndefinedSubjectError) as e:
        print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if session.violation is not None:
        print(f"[red]{escape(session.violation)}[/red]")
        sys.exit(1)

    sys.stdout.write(_format_value(subject) + "\n")


def main(
    cmd: Annotated[Command, tyro.conf.arg(name="")],
    *,
    config_dir: Annotated[Path | None, tyro.conf.arg(help="Settings directory")] = None,
) -> None:
    """facetflow - declarative conditional transformation pipelines.

    Inspect rule families and resolve them against params from the shell.
    """
    # Setup logging with 100-character text width
    setup_logging()

    if config_dir is not None:
        settings = FacetflowSettings.from_yaml(config_dir / "facetflow.yaml")
        settings.apply_logging()
        set_settings_instance(settings)

    if isinstance(cmd, Inspect):
        handle_inspect(cmd)

    elif isinstance(cmd, Resolve):
        handle_resolve(cmd)


def entry_point() -> None:
    """Entry point for the facetflow command."""
    tyro.cli(main)


if __name__ == "__main__":
    entry_point()
