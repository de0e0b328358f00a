#!/usr/bin/env python3
"""PhyloAtlas: Distance trees from aligned sequences.

Simple CLI entry point that orchestrates the full tree pipeline.
"""

import argparse
import sys

from rich.console import Console
from phyloatlas.main import run_pipeline, TreeConfig
from phyloatlas.core.distances import DistanceModel
from phyloatlas.cluster.linkage import LinkageMethod

console = Console()


def build_parser():
    parser = argparse.ArgumentParser(
        description="PhyloAtlas: distance-based phylogenetic trees",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python phyloatlas.py alignment.fasta output_dir/
  python phyloatlas.py alignment.fasta output/ --distance p-distance --linkage single
  python phyloatlas.py alignment.fasta output/ --distance gamma --gamma 1.5 --plot
        """,
    )

    parser.add_argument(
        "input",
        type=str,
        help="Aligned sequence file (FASTA unless --format is given)",
    )
    parser.add_argument(
        "output",
        type=str,
        help="Output directory for results",
    )

    parser.add_argument(
        "--format",
        type=str,
        default="fasta",
        help="Alignment format understood by Biopython AlignIO (default: fasta)",
    )
    parser.add_argument(
        "--distance",
        type=str,
        default=DistanceModel.JUKES_CANTOR.value,
        choices=[m.value for m in DistanceModel],
        help="Distance model (default: jukes-cantor)",
    )
    parser.add_argument(
        "--linkage",
        type=str,
        default=LinkageMethod.AVERAGE.value,
        choices=[m.value for m in LinkageMethod],
        help="Linkage method (default: average)",
    )
    parser.add_argument(
        "--gamma",
        type=float,
        default=2.0,
        help="Shape parameter of the gamma distance (default: 2.0)",
    )
    parser.add_argument(
        "--strict-gaps",
        action="store_true",
        help="Skip every column where either sequence has a gap",
    )
    parser.add_argument(
        "--no-pretty",
        action="store_true",
        help="Keep the linkage leaf order instead of reordering leaves",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Save a tree plot (tree.png)",
    )
    parser.add_argument(
        "--name",
        type=str,
        default="",
        help="Tree name (default: input file stem)",
    )
    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Create config
    config = TreeConfig(
        alignment=args.input,
        outdir=args.output,
        alignment_format=args.format,
        distance_model=args.distance,
        linkage_method=args.linkage,
        gamma_shape=args.gamma,
        pairwise_deletion=not args.strict_gaps,
        pretty_order=not args.no_pretty,
        plot=args.plot,
        tree_name=args.name,
    )

    # Run pipeline
    try:
        run_pipeline(config)
        console.print("\n✓ Pipeline finished successfully!")
        return 0
    except Exception as e:
        console.print(f"\n✗ Pipeline failed: {e}", style="bold red")
        return 1


if __name__ == "__main__":
    sys.exit(main())
