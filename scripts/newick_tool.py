"""Newick tree utilities: leaf reordering, summaries and plots."""

import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
import typer

# Keep project import paths working when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent))

from phyloatlas.core.exceptions import PhyloAtlasError
from phyloatlas.core.newick import read_newick, write_newick
from phyloatlas.visualization.tree_plot import plot_tree

app = typer.Typer(help="Newick tree utilities")

console = Console()


def _load(path):
    try:
        return read_newick(path)
    except FileNotFoundError:
        console.print(f"[bold red]✗ Error:[/bold red] File not found: {path}")
        raise typer.Exit(code=1)
    except PhyloAtlasError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e.full_message}")
        raise typer.Exit(code=1)


@app.command()
def reorder(
    tree_path: str = typer.Argument(
        ...,
        help="Path to a Newick tree file"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output", "-o",
        help="Output Newick file (default: <input stem>.pretty.nwk)"
    ),
    precision: Optional[int] = typer.Option(
        None,
        "--precision", "-p",
        help="Significant digits for branch lengths (default: exact)"
    ),
) -> None:
    """Reorder leaves to avoid branch crossings and write a new Newick file."""
    tree = _load(tree_path)
    pretty = tree.pretty_order()

    out = Path(output) if output else Path(tree_path).with_suffix('.pretty.nwk')
    write_newick(pretty, out, precision=precision)
    console.print(f"[green]✓[/green] Reordered tree written to {out}")


@app.command()
def info(
    tree_path: str = typer.Argument(
        ...,
        help="Path to a Newick tree file"
    ),
    dump: bool = typer.Option(
        False,
        "--dump", "-d",
        help="Print every node with its layout coordinates"
    ),
) -> None:
    """Print a summary of a Newick tree."""
    tree = _load(tree_path)

    table = Table(title=f"Tree: {tree.name}")
    table.add_column("Property")
    table.add_column("Value", justify="right")
    table.add_row("Leaves", str(tree.num_leaves))
    table.add_row("Branches", str(tree.num_branches))
    table.add_row("Nodes", str(tree.num_nodes))
    table.add_row("Height", f"{tree.max_x:.6g}")
    table.add_row("Total length", f"{tree.total_length():.6g}")
    console.print(table)
    console.print("Leaves: " + ", ".join(tree.leaf_names))

    if dump:
        console.print(tree.dump(), markup=False)


@app.command()
def plot(
    tree_path: str = typer.Argument(
        ...,
        help="Path to a Newick tree file"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output", "-o",
        help="Output image (default: <input stem>.png)"
    ),
    pretty: bool = typer.Option(
        True,
        "--pretty/--no-pretty",
        help="Reorder leaves before drawing"
    ),
) -> None:
    """Draw a Newick tree as a rectangular phylogram."""
    tree = _load(tree_path)
    if pretty:
        tree = tree.pretty_order()

    out = Path(output) if output else Path(tree_path).with_suffix('.png')
    if plot_tree(tree, out) is None:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
