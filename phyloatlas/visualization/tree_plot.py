"""Rectangular phylogram drawing.

Uses the layout coordinates computed by Tree.validate(): x is the distance
from the root, y the leaf slot (branches sit midway between children).
"""

from pathlib import Path
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from rich.console import Console

console = Console()


def tree_segments(tree):
    """Line segments of a rectangular phylogram.

    Every branch contributes one vertical segment spanning its children and
    one horizontal segment per child, running from the branch to the child.

    Parameters:
        tree: Tree instance

    Returns:
        list of ((x0, y0), (x1, y1)) tuples
    """
    tree.validate()
    segments = []
    for branch in tree.branches:
        c1, c2 = tree[branch.child1], tree[branch.child2]
        segments.append(((branch.x, c1.y), (branch.x, c2.y)))
        segments.append(((branch.x, c1.y), (c1.x, c1.y)))
        segments.append(((branch.x, c2.y), (c2.x, c2.y)))
    return segments


def plot_tree(tree, outpath=None, title=None):
    """Draw a tree and save it as an image.

    Parameters:
        tree: Tree instance
        outpath: Output image path (default: '<tree name or tree>.png')
        title: Figure title (default: tree name)

    Returns:
        Path of the saved image, or None if plotting failed
    """
    try:
        outpath = Path(outpath or f"{tree.name or 'tree'}.png")
        tree.validate()

        height = max(4.0, 0.3 * tree.num_leaves)
        fig, ax = plt.subplots(figsize=(10, height))

        for (x0, y0), (x1, y1) in tree_segments(tree):
            ax.plot([x0, x1], [y0, y1], color='black', linewidth=1)

        pad = 0.01 * tree.max_x if tree.max_x > 0 else 0.01
        for leaf in tree.leaves:
            ax.text(leaf.x + pad, leaf.y, leaf.name, va='center', fontsize=8)

        ax.set_ylim(tree.max_y + 1, -1)
        ax.set_yticks([])
        ax.set_xlabel('Distance from root')
        for side in ('left', 'right', 'top'):
            ax.spines[side].set_visible(False)
        ax.set_title(title or tree.name or 'Phylogenetic tree')

        fig.tight_layout()
        fig.savefig(outpath, dpi=150, bbox_inches='tight')
        plt.close(fig)

        console.print(f'  ✓ Tree plot saved to {outpath}')
        return outpath

    except Exception as exc:  # pylint: disable=broad-except
        console.print(f'  [yellow]⚠[/yellow] Could not create tree plot: {exc}')
        return None


__all__ = ['tree_segments', 'plot_tree']
