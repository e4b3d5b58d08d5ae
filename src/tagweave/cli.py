"""CLI entrypoint for tagweave."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
import networkx as nx
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tagweave.config import GraphConfig, load_config
from tagweave.graph import build_tag_graph, strongest_links, to_networkx
from tagweave.layout import LayoutSimulator
from tagweave.notes import ExportFormatError, Note, active_notes, load_notes, notes_for_tag
from tagweave.surface import CanvasSurface
from tagweave.view import PLACEHOLDER_TEXT, TagGraphView

console = Console()
logger = logging.getLogger("tagweave")

source_argument = click.argument("source", type=click.Path(exists=True))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _source_options(f):
    f = click.option("--user", default=None, help="Only include notes owned by this user id.")(f)
    f = click.option(
        "--include-archived", is_flag=True, help="Also include archived notes."
    )(f)
    return f


def _load(source: str, user: str | None, include_archived: bool) -> list[Note]:
    try:
        notes = load_notes(source)
    except (FileNotFoundError, ExportFormatError) as e:
        raise click.ClickException(str(e)) from e
    if include_archived:
        return [n for n in notes if user is None or n.user_id == user]
    return active_notes(notes, user_id=user)


def _config(ctx: click.Context, **overrides) -> GraphConfig:
    path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        cfg = load_config(path)
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            cfg = GraphConfig(**{**cfg.model_dump(), **overrides})
    except (FileNotFoundError, ValueError, ValidationError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e
    return cfg


def _print_notes(notes: list[Note], tag_name: str) -> None:
    plural = "" if len(notes) == 1 else "s"
    console.print(f"\n[bold]#{tag_name}[/bold]  {len(notes)} note{plural} with this tag")
    if not notes:
        console.print("[dim]No notes found with this tag yet.[/dim]")
        return
    for note in notes:
        title = note.title or "Untitled Note"
        snippet = (note.content or "No content").replace("\n", " ")
        if len(snippet) > 80:
            snippet = snippet[:77] + "..."
        console.print(f"  [cyan]{title}[/cyan]  [dim]{snippet}[/dim]")


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML config file (defaults to $TAGWEAVE_CONFIG).",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """tagweave — explore how your note tags travel together."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@main.command()
@source_argument
@_source_options
@click.option("--top-k", default=10, help="Number of strongest tag pairs to show.")
def stats(source: str, user: str | None, include_archived: bool, top_k: int):
    """Print statistics about tag co-occurrence."""
    notes = _load(source, user, include_archived)
    graph = build_tag_graph(notes)
    G = to_networkx(graph)

    console.print(f"Notes: {len(notes)}")
    console.print(f"Tags: {G.number_of_nodes()}")
    console.print(f"Co-occurring pairs: {G.number_of_edges()}")

    if graph.is_empty:
        console.print(f"[yellow]{PLACEHOLDER_TEXT}[/yellow]")
        return

    console.print(f"Connected components: {nx.number_connected_components(G)}")
    console.print(f"Isolated tags (never paired): {len(list(nx.isolates(G)))}")
    if G.number_of_nodes() > 1:
        console.print(f"Graph density: {nx.density(G):.4f}")

    links = strongest_links(graph, top_k=top_k)
    if not links:
        return

    names = {node.id: node.name for node in graph.nodes}
    table = Table(title="Strongest Tag Pairs")
    table.add_column("#", style="dim", width=4)
    table.add_column("Tag A", style="cyan")
    table.add_column("Tag B", style="cyan")
    table.add_column("Shared Notes", justify="right", style="bold green")
    for i, link in enumerate(links, 1):
        table.add_row(str(i), names[link.source], names[link.target], str(link.strength))
    console.print(table)


@main.command()
@source_argument
@_source_options
def tags(source: str, user: str | None, include_archived: bool):
    """List tags with the number of notes carrying each."""
    notes = _load(source, user, include_archived)
    graph = build_tag_graph(notes)
    if graph.is_empty:
        console.print(f"[yellow]{PLACEHOLDER_TEXT}[/yellow]")
        return

    table = Table(title="Tags")
    table.add_column("Tag", style="cyan")
    table.add_column("Notes", justify="right")
    for node in sorted(graph.nodes, key=lambda n: (-n.note_count, n.name)):
        table.add_row(node.name, str(node.note_count))
    console.print(table)


@main.command()
@source_argument
@click.argument("tag")
@_source_options
def notes(source: str, tag: str, user: str | None, include_archived: bool):
    """Show the notes carrying TAG."""
    _print_notes(notes_for_tag(_load(source, user, include_archived), tag), tag)


@main.command()
@source_argument
@_source_options
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False),
    default="tag-graph.png",
    show_default=True,
    help="Image file to write.",
)
@click.option("--frames", default=300, show_default=True, help="Simulation frames to run.")
@click.option("--seed", type=int, default=None, help="Seed for initial node positions.")
@click.option("--pixel-ratio", type=float, default=None, help="Device pixel ratio.")
@click.pass_context
def render(
    ctx: click.Context,
    source: str,
    user: str | None,
    include_archived: bool,
    output: str,
    frames: int,
    seed: int | None,
    pixel_ratio: float | None,
):
    """Lay out the tag graph headlessly and save the final frame."""
    cfg = _config(ctx, seed=seed, pixel_ratio=pixel_ratio)
    notes = _load(source, user, include_archived)

    simulator = LayoutSimulator(cfg)
    graph = simulator.rebuild(notes)
    if graph.is_empty:
        console.print(f"[yellow]{PLACEHOLDER_TEXT}[/yellow]")
        return

    with console.status(f"Simulating {frames} frames..."):
        for _ in range(frames):
            simulator.step()

    surface = CanvasSurface(cfg.width, cfg.height, cfg.pixel_ratio)
    simulator.render(surface)
    path = surface.save(Path(output))
    width, height = surface.backing_size
    console.print(
        f"Rendered [bold]{len(graph.nodes)}[/bold] tags, "
        f"[bold]{len(graph.links)}[/bold] links to {path} ({width}x{height})"
    )


@main.command()
@source_argument
@_source_options
@click.option("--seed", type=int, default=None, help="Seed for initial node positions.")
@click.pass_context
def show(
    ctx: click.Context,
    source: str,
    user: str | None,
    include_archived: bool,
    seed: int | None,
):
    """Open an interactive tag graph; click a tag to list its notes."""
    import matplotlib.pyplot as plt

    cfg = _config(ctx, seed=seed)
    notes = _load(source, user, include_archived)

    surface = CanvasSurface(
        cfg.width, cfg.height, cfg.pixel_ratio, interactive=True, title="tagweave"
    )
    view = TagGraphView(
        surface,
        on_node_click=lambda name: _print_notes(notes_for_tag(notes, name), name),
        config=cfg,
    )
    view.set_notes(notes)
    if view.showing_placeholder:
        console.print(f"[yellow]{PLACEHOLDER_TEXT}[/yellow]")
        surface.close()
        return

    surface.connect("click", view.on_click)
    surface.connect("move", view.on_move)
    plt.show(block=False)
    console.print("Close the window to exit.")
    asyncio.run(view.run())


if __name__ == "__main__":
    main()
