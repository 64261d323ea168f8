"""CLI entry point for meshexport.

Usage:
    meshexport export scene.glb out/model.obj         # Export to OBJ + MTL + Textures/
    meshexport export scene.glb out/model.gltf --gltf # glTF request, falls back to OBJ
    meshexport info scene.glb                         # Show renderables and materials
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from meshexport.core.logging import setup_logging

app = typer.Typer(name="meshexport", help="Merged mesh to OBJ/MTL exporter")
console = Console()

DEFAULT_CONFIG = Path("configs/export.yaml")


def _load_config(config: Optional[Path]):
    from meshexport.core.contracts import ExportConfig
    from meshexport.core.export_runner import load_export_config

    if config is None:
        return load_export_config(DEFAULT_CONFIG) if DEFAULT_CONFIG.exists() else ExportConfig()
    if not config.exists():
        console.print(f"[red]Config file not found: {config}[/red]")
        raise typer.Exit(1)
    return load_export_config(config)


@app.command()
def export(
    source: Path = typer.Argument(..., help="Mesh or scene file readable by trimesh"),
    output: Path = typer.Argument(..., help="Output .obj path"),
    config: Optional[Path] = typer.Option(None, help="Export config path"),
    gltf: bool = typer.Option(False, "--gltf", help="Request glTF (falls back to OBJ)"),
    up_axis: str = typer.Option("Y", "--up-axis", help="Up axis of the source scene: Y or Z"),
    log_level: Optional[str] = typer.Option(None, help="Override the configured log level"),
) -> None:
    """Merge every mesh of SOURCE and export it as OBJ + MTL + textures."""
    from meshexport.core.errors import ExportError
    from meshexport.core.export_runner import merge_and_export
    from meshexport.utils.scene_loader import (
        collect_renderables,
        concatenate_renderables,
        load_scene,
    )

    export_config = _load_config(config)
    if gltf:
        export_config.export_format = "gltf"
    setup_logging(log_level or export_config.log_level)

    if up_axis.upper() not in ("Y", "Z"):
        console.print(f"[red]Invalid up axis '{up_axis}', expected Y or Z[/red]")
        raise typer.Exit(1)

    try:
        scene = load_scene(source)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    renderables = collect_renderables(scene, source_up_axis=up_axis.upper())
    try:
        summary = merge_and_export(renderables, concatenate_renderables, output, config=export_config)
    except ExportError as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise typer.Exit(1)

    if summary is None:
        console.print("[yellow]Nothing to export: no triangle meshes in source[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Exported: {summary.obj_path}")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Material library", str(summary.mtl_path) if summary.mtl_path else "-")
    table.add_row("Vertices", str(summary.num_vertices))
    table.add_row("Vertex instances", str(summary.num_vertex_instances))
    table.add_row("Faces", str(summary.num_faces))
    table.add_row("Materials", str(summary.num_materials))
    table.add_row("Textures", str(summary.num_textures))
    console.print(table)


@app.command()
def info(
    source: Path = typer.Argument(..., help="Mesh or scene file readable by trimesh"),
    up_axis: str = typer.Option("Y", "--up-axis", help="Up axis of the source scene: Y or Z"),
) -> None:
    """Show the renderables, materials and textures found in SOURCE."""
    from meshexport.core.material import resolve_bound_texture
    from meshexport.utils.scene_loader import collect_renderables, load_scene

    try:
        scene = load_scene(source)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    renderables = collect_renderables(scene, source_up_axis=up_axis.upper())
    table = Table(title=f"Scene: {source.name}")
    table.add_column("#", style="dim")
    table.add_column("Renderable", style="cyan")
    table.add_column("Vertices", style="green")
    table.add_column("Triangles", style="green")
    table.add_column("Material", style="yellow")
    table.add_column("Texture", style="dim")

    for i, renderable in enumerate(renderables, 1):
        material = renderable.slots[0].material if renderable.slots else None
        bound = resolve_bound_texture(material) if material else None
        table.add_row(
            str(i),
            renderable.name,
            str(renderable.mesh.num_vertices),
            str(renderable.mesh.num_triangles),
            material.name if material else "-",
            bound[1].name if bound else "-",
        )
    console.print(table)


if __name__ == "__main__":
    app()
