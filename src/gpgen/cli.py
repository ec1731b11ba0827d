"""Command-line interface for generating workflows."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gpgen.catalog import default_catalog
from gpgen.errors import GenerationError, ManifestError, TemplateNotFoundError
from gpgen.generator import WorkflowGenerator, environments_for, workflow_filename
from gpgen.manifest import ValidationMode, get_validation_mode, load_manifest_from_file
from gpgen.scaffold import default_pipeline_name, generate_manifest_template
from gpgen.settings import ENV_VARS, Settings, SettingsError, load_settings

app = typer.Typer(
    name="gpgen",
    help="Golden Path Pipeline Generator: GitHub Actions workflows from templates and manifests.",
    no_args_is_help=True,
)

console = Console()

DEFAULT_MANIFEST = "manifest.yaml"


def _load_settings() -> Settings:
    try:
        return load_settings()
    except SettingsError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None


def _configure_logging(settings: Settings, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level_number,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@app.command("init")
def init_cmd(
    template: str = typer.Option(
        "node-app",
        "--template",
        "-t",
        help="Template to use (node-app, go-service, python-app)",
    ),
    name: str | None = typer.Option(
        None,
        "--name",
        "-n",
        help="Name for the pipeline (defaults to current directory name)",
    ),
    output: str = typer.Option(
        DEFAULT_MANIFEST,
        "--output",
        "-o",
        help="Output file path",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing manifest file",
    ),
) -> None:
    """Initialize a new manifest for a template."""
    pipeline_name = name or default_pipeline_name()
    output_path = Path(output)

    if output_path.exists() and not force:
        console.print(f"[red]Error:[/red] manifest file {output_path} already exists. Use --force to overwrite")
        raise typer.Exit(code=1)

    try:
        content = generate_manifest_template(template, pipeline_name)
    except TemplateNotFoundError as e:
        console.print(f"[red]Error:[/red] failed to generate manifest: {escape(e.message)}")
        raise typer.Exit(code=1) from None

    output_path.write_text(content, encoding="utf-8")

    console.print(f"[green]✓ Initialized {template} manifest:[/green] {output_path}")
    console.print("Edit the manifest to customize your pipeline")
    console.print("Run [cyan]gpgen generate[/cyan] to create your GitHub Actions workflow")


@app.command("generate")
def generate_cmd(
    manifest_path: str = typer.Argument(DEFAULT_MANIFEST, help="Path to the manifest file"),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory for generated workflows (default: GPGEN_OUTPUT_DIR or .github/workflows)",
    ),
    environment: str | None = typer.Option(
        None,
        "--environment",
        "-e",
        help="Generate for a specific environment (default: all environments)",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-d",
        help="Show what would be generated without writing files",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        "-f",
        help="Overwrite existing workflow files",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Generate GitHub Actions workflows from a manifest.

    Every workflow is generated before any file is written, so a failure
    in one environment leaves the output directory untouched.

    Example:
        gpgen generate manifest.yaml -e production --dry-run
    """
    settings = _load_settings()
    _configure_logging(settings, verbose)

    catalog = default_catalog()
    try:
        manifest = load_manifest_from_file(manifest_path, catalog)
    except ManifestError as e:
        console.print(f"[red]Error:[/red] failed to load manifest: {escape(str(e))}")
        raise typer.Exit(code=1) from None

    console.print(f"[cyan]Manifest:[/cyan] {Path(manifest_path).resolve()}")
    console.print(f"[cyan]Template:[/cyan] {manifest.spec.template}")

    output_dir = Path(output or settings.output_dir)
    generator = WorkflowGenerator(catalog, settings)

    rendered: dict[Path, str] = {}
    for env in environments_for(manifest, environment):
        try:
            rendered[output_dir / workflow_filename(manifest, env)] = generator.render_workflow(manifest, env)
        except GenerationError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(code=1) from None

    if dry_run:
        for path, content in rendered.items():
            console.print(f"\n[yellow]Would generate:[/yellow] {path}")
            console.print(content, markup=False, highlight=False)
        console.print("Run without --dry-run to write the workflow files")
        return

    if not overwrite:
        existing = [path for path in rendered if path.exists()]
        if existing:
            console.print(
                f"[red]Error:[/red] workflow file {existing[0]} already exists. Use --overwrite to replace it"
            )
            raise typer.Exit(code=1)

    output_dir.mkdir(parents=True, exist_ok=True)
    for path, content in rendered.items():
        path.write_text(content, encoding="utf-8")
        console.print(f"[green]✓ Generated:[/green] {path}")

    console.print(f"\n[green]✓ Generated {len(rendered)} workflow file(s) in {output_dir}[/green]")


@app.command("validate")
def validate_cmd(
    manifest_path: str = typer.Argument(DEFAULT_MANIFEST, help="Path to the manifest file"),
    strict: bool = typer.Option(
        False,
        "--strict",
        "-s",
        help="Force strict validation for every environment",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only output errors, no success messages",
    ),
) -> None:
    """Validate a manifest.

    Strict environments also have their resolved inputs checked against
    the template's input definitions.
    """
    settings = _load_settings()
    _configure_logging(settings, verbose=False)

    catalog = default_catalog()
    try:
        manifest = load_manifest_from_file(manifest_path, catalog)
    except ManifestError as e:
        console.print(f"[red]Validation failed:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from None

    generator = WorkflowGenerator(catalog, settings)
    checked: list[str] = []
    for env in environments_for(manifest):
        if not strict and get_validation_mode(manifest, env) is ValidationMode.RELAXED:
            continue
        try:
            generator.validate_environment(manifest, env)
        except GenerationError as e:
            console.print(f"[red]Validation failed:[/red] {escape(str(e))}")
            raise typer.Exit(code=1) from None
        checked.append(env)

    if quiet:
        return

    mode = "strict (forced)" if strict else get_validation_mode(manifest).value
    console.print(f"[green]✓ Manifest '{manifest.pipeline_name}' is valid[/green]")
    console.print(f"[cyan]Template:[/cyan] {manifest.spec.template}")
    console.print(f"[cyan]Validation mode:[/cyan] {mode}")
    if manifest.spec.environments:
        console.print(f"[cyan]Environments:[/cyan] {', '.join(manifest.spec.environments)}")
    if manifest.spec.custom_steps:
        console.print(f"[cyan]Custom steps:[/cyan] {len(manifest.spec.custom_steps)}")
    if checked:
        console.print(f"[cyan]Inputs checked:[/cyan] {', '.join(checked)}")


@app.command("templates")
def templates_cmd() -> None:
    """List the built-in templates."""
    table = Table(title="Available Templates")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="yellow")
    table.add_column("Description", style="green")
    table.add_column("Tags", style="dim")

    for template in default_catalog().templates():
        table.add_row(template.name, template.version, template.description, ", ".join(template.tags))

    console.print(table)


@app.command("env")
def env_cmd() -> None:
    """Show the GPGEN_* environment variables and their current values."""
    defaults = Settings()

    table = Table(title="GPGEN Environment Variables")
    table.add_column("Variable", style="cyan", no_wrap=True)
    table.add_column("Default", style="yellow")
    table.add_column("Current Value", style="green")

    for field_name, env_var in sorted(ENV_VARS.items(), key=lambda x: x[1]):
        value = os.environ.get(env_var, "(not set)")
        table.add_row(env_var, str(getattr(defaults, field_name)), value)

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
