"""PhyloAtlas Pipeline - Main Orchestrator

Six-step tree building pipeline:
1. Load & validate alignment
2. Pairwise distance matrix
3. Hierarchical clustering (linkage)
4. Tree construction + leaf ordering
5. Tree plot (optional)
6. Output summary
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any
import numpy as np
import pandas as pd
from rich.console import Console

from phyloatlas.config_utils import validate_config, print_config_summary
from phyloatlas.core.input import load_alignment, validate_alignment
from phyloatlas.core.distances import (
    DEFAULT_GAMMA_SHAPE,
    compute_distance_matrix,
    distance_frame,
)
from phyloatlas.core.newick import write_newick
from phyloatlas.core.tree import Tree
from phyloatlas.cluster.linkage import run_linkage_clustering
from phyloatlas.visualization.tree_plot import plot_tree

console = Console()


@dataclass
class TreeConfig:
    """Configuration for the tree pipeline."""

    # Required
    alignment: str
    outdir: str

    # Input
    alignment_format: str = 'fasta'  # any Bio.AlignIO format name

    # Distances
    distance_model: str = 'jukes-cantor'
    gamma_shape: float = DEFAULT_GAMMA_SHAPE
    pairwise_deletion: bool = True  # False: skip every column with a gap

    # Tree
    linkage_method: str = 'average'
    pretty_order: bool = True
    plot: bool = False
    tree_name: str = ''

    # General
    verbose: bool = True


class TreePipeline:
    """Main orchestrator for the 6-step tree pipeline."""

    def __init__(self, config: TreeConfig):
        self.config = config
        self.outdir = Path(config.outdir)
        self.outdir.mkdir(parents=True, exist_ok=True)

        self.results: Dict[str, Any] = {
            'step_1_input': {},
            'step_2_distances': {},
            'step_3_linkage': {},
            'step_4_tree': {},
            'step_5_plot': {},
            'step_6_summary': {},
        }

    def run(self):
        """Execute the full pipeline."""
        console.print("[bold cyan]═══════════════════════════════════════════════════════════[/bold cyan]")
        console.print("[bold cyan]PhyloAtlas Pipeline - Distance Tree Building[/bold cyan]")
        console.print("[bold cyan]═══════════════════════════════════════════════════════════[/bold cyan]\n")

        try:
            validate_config(self.config)
            if self.config.verbose:
                print_config_summary(self.config)

            self._step_1_load_alignment()
            self._step_2_distance_matrix()
            self._step_3_linkage()
            self._step_4_build_tree()
            if self.config.plot:
                self._step_5_plot_tree()
            self._step_6_summary()

            console.print("\n[bold green]✓[/bold green] Pipeline completed successfully!")
            console.print(f"[bold]Output directory:[/bold] {self.outdir}")

            return self.results

        except Exception as e:
            console.print(f"\n[bold red]✗[/bold red] Pipeline failed: {e}")
            raise

    def _step_1_load_alignment(self):
        """Step 1: Load and validate the aligned sequences."""
        console.print("\n[bold]STEP 1: Load Alignment[/bold]")
        console.print("─" * 60)

        records = load_alignment(self.config.alignment, self.config.alignment_format)
        validate_alignment(records, min_sequences=3)

        self.results['step_1_input'] = {
            'records': records,
            'names': [r.name for r in records],
            'alphabet': records[0].alphabet,
            'length': len(records[0]),
        }

    def _step_2_distance_matrix(self):
        """Step 2: Pairwise distances."""
        console.print("\n[bold]STEP 2: Distance Matrix[/bold]")
        console.print("─" * 60)

        records = self.results['step_1_input']['records']
        names = self.results['step_1_input']['names']
        console.print(f"  Computing {self.config.distance_model} distances "
                      f"({'pairwise deletion' if self.config.pairwise_deletion else 'strict gaps'})...")
        matrix = compute_distance_matrix(
            records,
            self.config.distance_model,
            gamma_shape=self.config.gamma_shape,
            pairwise_deletion=self.config.pairwise_deletion,
        )

        matrix_path = self.outdir / 'distance_matrix.csv.gz'
        distance_frame(matrix, names).to_csv(matrix_path, compression='gzip')
        console.print(f"  [green]✓[/green] Saved distance matrix to {matrix_path}")

        iu = np.triu_indices(len(names), 1)
        if not np.all(np.isfinite(matrix[iu])):
            console.print("  [yellow]⚠[/yellow] Some distances are infinite (sequences too divergent for the model)")

        self.results['step_2_distances'] = {
            'matrix': matrix,
            'matrix_path': str(matrix_path),
        }

    def _step_3_linkage(self):
        """Step 3: Hierarchical clustering."""
        console.print("\n[bold]STEP 3: Hierarchical Clustering[/bold]")
        console.print("─" * 60)

        names = self.results['step_1_input']['names']
        linkage_results = run_linkage_clustering(
            self.results['step_2_distances']['matrix'],
            names=names,
            method=self.config.linkage_method,
        )

        record = linkage_results['record']
        merges = pd.DataFrame({
            'left': record.pairs[:, 0],
            'right': record.pairs[:, 1],
            'height': record.heights,
            'size': record.cluster_sizes(),
        })
        merges_path = self.outdir / 'merges.tsv'
        merges.to_csv(merges_path, sep='\t', index=False)
        console.print(f"  [green]✓[/green] Saved merge table to {merges_path}")

        linkage_results['merges_path'] = str(merges_path)
        self.results['step_3_linkage'] = linkage_results

    def _step_4_build_tree(self):
        """Step 4: Tree construction and leaf ordering."""
        console.print("\n[bold]STEP 4: Tree Construction[/bold]")
        console.print("─" * 60)

        record = self.results['step_3_linkage']['record']
        names = self.results['step_1_input']['names']
        tree_name = self.config.tree_name or Path(self.config.alignment).stem
        tree = Tree(record.tree_pairs(), names, record.heights, name=tree_name)
        console.print(f"  Built tree: {tree.num_leaves} leaves, {tree.num_branches} branches")

        if self.config.pretty_order:
            tree = tree.pretty_order()
            console.print("  [green]✓[/green] Leaves reordered to avoid crossings")

        tree_path = write_newick(tree, self.outdir / 'tree.nwk')
        console.print(f"  [green]✓[/green] Saved Newick tree to {tree_path}")

        self.results['step_4_tree'] = {
            'tree': tree,
            'tree_path': str(tree_path),
        }

    def _step_5_plot_tree(self):
        """Step 5: Tree plot."""
        console.print("\n[bold]STEP 5: Tree Plot[/bold]")
        console.print("─" * 60)

        plot_path = plot_tree(self.results['step_4_tree']['tree'], self.outdir / 'tree.png')
        self.results['step_5_plot'] = {
            'plot_path': str(plot_path) if plot_path else None,
        }

    def _step_6_summary(self):
        """Step 6: Generate summary."""
        console.print("\n[bold]STEP 6: Output Summary[/bold]")
        console.print("─" * 60)

        tree = self.results['step_4_tree']['tree']
        analysis = self.results['step_3_linkage']['analysis']
        summary = {
            'config': self.config,
            'outdir': str(self.outdir),
            'n_sequences': tree.num_leaves,
            'alignment_length': self.results['step_1_input']['length'],
            'alphabet': self.results['step_1_input']['alphabet'].value,
            'distance_model': self.config.distance_model,
            'linkage_method': self.config.linkage_method,
            'tree_height': float(tree.max_x),
            'total_length': tree.total_length(),
            'max_merge_height': analysis['max_height'],
        }

        console.print("\n[bold]Pipeline Summary:[/bold]")
        console.print(f"  Sequences: {summary['n_sequences']} x {summary['alignment_length']} ({summary['alphabet']})")
        console.print(f"  Distance model: {summary['distance_model']}")
        console.print(f"  Linkage: {summary['linkage_method']}")
        console.print(f"  Tree height: {summary['tree_height']:.4f}")
        console.print(f"  Total branch length: {summary['total_length']:.4f}")

        self.results['step_6_summary'] = summary


def run_pipeline(config: TreeConfig) -> Dict[str, Any]:
    """Run the complete tree pipeline.

    Parameters:
        config: TreeConfig object with pipeline settings

    Returns:
        dict: Results from all steps
    """
    pipeline = TreePipeline(config)
    return pipeline.run()


__all__ = [
    'TreeConfig',
    'TreePipeline',
    'run_pipeline',
]
