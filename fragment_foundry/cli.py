"""Fragment foundry CLI.

Thin, non-interactive commands over the directive engine: render the
directive document, promote inline items, extract items back out of a
rendered document, and validate references.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from fragment_foundry.aligner import align, backfill
from fragment_foundry.config.settings import FoundrySettings
from fragment_foundry.expander import UnpromotedBlocksError, render_document
from fragment_foundry.logging_config import setup_logging
from fragment_foundry.manipulate import (
    ReferenceExistsError,
    ReferenceNotFoundError,
    add_reference,
    remove_reference,
)
from fragment_foundry.parsers.directive_parser import DirectiveParseError, find_new_items
from fragment_foundry.promoter import BlockNotFoundError, promote_all, promote_one
from fragment_foundry.registry.item_store import DuplicateItemError, FileItemStore, InvalidItemNameError
from fragment_foundry.validator.reference_validator import validate_references

console = Console()


class Project:
    """Resolved paths and the registry handle shared by every command."""

    def __init__(self, settings: FoundrySettings, project_dir: Path):
        self.settings = settings
        self.directives_path = project_dir / settings.directives_file
        self.output_path = project_dir / settings.output_file
        self.store = FileItemStore(settings.registry_dir)

    def read_directives(self) -> str:
        if not self.directives_path.is_file():
            raise click.ClickException(f"{self.directives_path} not found")
        return self.directives_path.read_text(encoding="utf-8")

    def write_directives(self, text: str) -> None:
        self.directives_path.write_text(text, encoding="utf-8")


def split_ref(ref: str) -> tuple[str, str]:
    kind, sep, name = ref.partition(":")
    if not sep or not kind or not name:
        raise click.BadParameter(f"invalid format '{ref}'. Use 'kind:name' (e.g. 'rule:typescript')")
    return kind.lower(), name


@click.group()
@click.option("--project-dir", type=click.Path(file_okay=False, path_type=Path), default=".")
@click.option("--registry", "registry_path", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.pass_context
def cli(ctx: click.Context, project_dir: Path, registry_path: Path | None):
    """Maintain reusable fragments and render directive documents."""
    overrides = {"registry_path": registry_path} if registry_path else {}
    settings = FoundrySettings(**overrides)
    setup_logging(settings.log_level, settings.log_format)
    ctx.obj = Project(settings, project_dir)


@cli.command()
@click.pass_obj
def sync(project: Project):
    """Render the directive document into the output document."""
    text = project.read_directives()
    try:
        rendered = render_document(text, project.store, heading_level=project.settings.heading_level)
    except UnpromotedBlocksError as e:
        raise click.ClickException(f"{e}. Run 'promote --all' first.")
    except DirectiveParseError as e:
        raise click.ClickException(f"{project.directives_path}: {e}")

    project.output_path.write_text(rendered, encoding="utf-8")
    console.print(f"[green]✓[/green] Generated {project.output_path} from {project.directives_path}")


@cli.command()
@click.argument("ref", required=False)
@click.option("--all", "promote_every", is_flag=True, help="Promote every :::new block")
@click.pass_obj
def promote(project: Project, ref: str | None, promote_every: bool):
    """Promote :::new blocks into the registry."""
    text = project.read_directives()
    try:
        pending = find_new_items(text)
    except DirectiveParseError as e:
        raise click.ClickException(f"{project.directives_path}: {e}")

    if not pending:
        console.print("[green]✓[/green] No :::new blocks found")
        return

    if ref:
        kind, name = split_ref(ref)
        try:
            result = promote_one(text, kind, name, project.store)
        except (BlockNotFoundError, DuplicateItemError, InvalidItemNameError) as e:
            raise click.ClickException(str(e))
        project.write_directives(result.text)
        console.print(f"[green]✓[/green] Promoted {result.item.ref} to {result.item.source_path}")
        return

    if not promote_every:
        for kind, name in pending:
            console.print(f"  • {kind}:{name}")
        raise click.ClickException("Pass KIND:NAME or --all to choose what to promote")

    report = promote_all(text, project.store)
    for failure in report.skipped:
        console.print(f"[yellow]⚠[/yellow] Skipped {failure.ref}: {failure.reason}")
    if report.created:
        project.write_directives(report.text)
    console.print(f"[green]✓[/green] {len(report.created)} item(s) promoted, {len(report.skipped)} skipped")


@cli.command()
@click.option("--overwrite", is_flag=True, help="Overwrite items that already exist")
@click.pass_obj
def extract(project: Project, overwrite: bool):
    """Recover items from the rendered document into the registry."""
    if not project.output_path.is_file():
        raise click.ClickException(f"{project.output_path} not found")
    try:
        result = align(
            project.read_directives(),
            project.output_path.read_text(encoding="utf-8"),
            heading_level=project.settings.heading_level,
        )
    except DirectiveParseError as e:
        raise click.ClickException(f"{project.directives_path}: {e}")

    for warning in result.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")

    report = backfill(result, project.store, overwrite=overwrite)
    table = Table(title="Extracted items")
    table.add_column("Item", style="cyan")
    table.add_column("Status")
    for item in report.imported:
        table.add_row(item.ref, "[green]extracted[/green]")
    for item in report.overwritten:
        table.add_row(item.ref, "[yellow]overwritten[/yellow]")
    for item in report.skipped:
        table.add_row(item.ref, "[dim]skipped (exists)[/dim]")
    console.print(table)


@cli.command()
@click.pass_obj
def validate(project: Project):
    """Report references the registry cannot resolve."""
    try:
        report = validate_references(project.read_directives(), project.store)
    except DirectiveParseError as e:
        raise click.ClickException(f"{project.directives_path}: {e}")

    for ref in report.missing:
        console.print(f"[red]✗[/red] line {ref.line}: {ref.ref} (not in registry)")
    for kind, name in report.pending:
        console.print(f"[yellow]⚠[/yellow] {kind}:{name} is not promoted yet")
    if not report.ok:
        raise click.ClickException("validation found problems")
    console.print(f"[green]✓[/green] All {len(report.references)} reference(s) resolve")


@cli.command()
@click.argument("ref")
@click.pass_obj
def add(project: Project, ref: str):
    """Reference an item from the directive document."""
    kind, name = split_ref(ref)
    try:
        known = project.store.exists(kind, name)
    except InvalidItemNameError as e:
        raise click.ClickException(str(e))
    if not known:
        raise click.ClickException(f"{kind} '{name}' not found in registry")
    try:
        project.write_directives(add_reference(project.read_directives(), kind, name))
    except (ReferenceExistsError, DirectiveParseError) as e:
        raise click.ClickException(str(e))
    console.print(f"[green]✓[/green] Added {kind}:{name}")


@cli.command()
@click.argument("ref")
@click.pass_obj
def remove(project: Project, ref: str):
    """Drop an item reference from the directive document."""
    kind, name = split_ref(ref)
    try:
        project.write_directives(remove_reference(project.read_directives(), kind, name))
    except (ReferenceNotFoundError, DirectiveParseError) as e:
        raise click.ClickException(str(e))
    console.print(f"[green]✓[/green] Removed {kind}:{name}")


@cli.command(name="list")
@click.argument("kind", required=False)
@click.pass_obj
def list_items(project: Project, kind: str | None):
    """List registry items, optionally of one kind."""
    kinds = [kind] if kind else project.store.list_kinds()
    table = Table(title=f"Registry: {project.store.base}")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Description", style="dim")
    for k in kinds:
        for item in project.store.list_items(k):
            table.add_row(item.kind, item.name, item.description)
    console.print(table)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
