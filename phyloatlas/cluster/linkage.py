"""Agglomerative hierarchical clustering over a distance matrix.

The working distances live in a condensed vector (upper triangle, row-major)
that shrinks by one row/column per merge. Cluster positions inside that
vector keep moving as rows are removed, so a remap table tracks which
original cluster id sits at each current position.

Ids follow the dendrogram convention: 1..n are the input points and
n+1..2n-1 are internal nodes in creation order.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from scipy.cluster.hierarchy import fcluster
from rich.console import Console

from phyloatlas.core.distances import DistanceModel, compute_distance_matrix, condensed
from phyloatlas.core.exceptions import InvalidInputError, MethodNotImplementedError
from phyloatlas.core.tree import Tree

console = Console()


class LinkageMethod(str, Enum):
    """Rule used to recompute inter-cluster distances after a merge."""

    SINGLE = 'single'
    COMPLETE = 'complete'
    AVERAGE = 'average'
    WEIGHTED = 'weighted'
    CENTROID = 'centroid'
    MEDIAN = 'median'
    WARD = 'ward'


IMPLEMENTED_METHODS = (
    LinkageMethod.SINGLE,
    LinkageMethod.COMPLETE,
    LinkageMethod.AVERAGE,
    LinkageMethod.WEIGHTED,
)


def resolve_method(method):
    """Turn a method name into an implemented LinkageMethod."""
    try:
        method = LinkageMethod(method)
    except ValueError:
        raise InvalidInputError(
            f"Unknown linkage method: {method}",
            suggestion=f"Valid methods: {', '.join(m.value for m in LinkageMethod)}",
        ) from None
    if method not in IMPLEMENTED_METHODS:
        raise MethodNotImplementedError(
            'Linkage method', method.value, [m.value for m in IMPLEMENTED_METHODS]
        )
    return method


@dataclass(frozen=True)
class MergeRecord:
    """Merge order produced by compute_linkage.

    Attributes:
        pairs: int array (n-1, 2) of 1-based ids, in creation order
        heights: float array (n-1,) with the height of each new internal node
        method: linkage rule that produced the record
    """

    pairs: np.ndarray
    heights: np.ndarray
    method: LinkageMethod = LinkageMethod.AVERAGE
    names: list = field(default_factory=list)

    @property
    def n_leaves(self):
        return len(self.heights) + 1

    def tree_pairs(self):
        """0-based node ids with the smaller id first in every row."""
        return np.sort(self.pairs, axis=1) - 1

    def cluster_sizes(self):
        """Number of original points below each internal node."""
        n = self.n_leaves
        sizes = np.ones(2 * n - 1, dtype=int)
        for s, (a, b) in enumerate(self.pairs):
            sizes[n + s] = sizes[a - 1] + sizes[b - 1]
        return sizes[n:]

    def to_scipy(self):
        """Linkage matrix in scipy.cluster.hierarchy layout (0-based ids, sizes)."""
        pairs = self.tree_pairs().astype(float)
        return np.column_stack([pairs, self.heights, self.cluster_sizes().astype(float)])


def condensed_index(i, j, m):
    """1-based slot of pair (i, j), 1 <= i < j <= m, in an m-point condensed vector."""
    return (i - 1) * m - i * (i - 1) // 2 + (j - i)


def invert_condensed_index(k, m):
    """Recover the 1-based (row, column) pair stored at condensed slot k."""
    i = int(math.floor(m + 0.5 - math.sqrt(m * m - m + 0.25 - 2.0 * (k - 1))))
    j = k - (i - 1) * m + i * (i - 1) // 2 + i
    return i, j


def _combine(method, a, b):
    if method == LinkageMethod.SINGLE:
        return np.minimum(a, b)
    if method == LinkageMethod.COMPLETE:
        return np.maximum(a, b)
    if method == LinkageMethod.AVERAGE:
        # unnormalised sum; divided by the size product at selection time
        return a + b
    # a + b/2, not the WPGMA mean (a + b) / 2
    return a + b / 2


def compute_linkage(distance_matrix, method=LinkageMethod.AVERAGE, names=None):
    """Cluster points bottom-up from their pairwise distances.

    Parameters:
        distance_matrix: Square (M x M) matrix; only the upper triangle is read
        method: One of LinkageMethod (single, complete, average, weighted)
        names: Optional point names carried on the record

    Returns:
        MergeRecord: M-1 merges with their heights

    Raises:
        InvalidInputError: Matrix is not square or has fewer than 2 points
        MethodNotImplementedError: centroid, median or ward
    """
    method = resolve_method(method)
    matrix = np.asarray(distance_matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise InvalidInputError(f"Distance matrix must be square, got shape {matrix.shape}")
    n = matrix.shape[0]
    if n < 2:
        raise InvalidInputError(f"Need at least 2 points to cluster, got {n}")

    Y = condensed(matrix).copy()
    size = np.zeros(2 * n - 1, dtype=int)
    size[:n] = 1
    remap = list(range(1, n + 1))
    m = n

    pairs = np.zeros((n - 1, 2), dtype=int)
    heights = np.zeros(n - 1, dtype=float)

    for s in range(1, n):
        if method == LinkageMethod.AVERAGE:
            rows, cols = np.triu_indices(m, 1)
            current = np.asarray(remap[:m])
            weight = size[current[rows] - 1] * size[current[cols] - 1]
            scaled = Y / weight
            k = int(np.argmin(scaled)) + 1
            v = scaled[k - 1]
        else:
            k = int(np.argmin(Y)) + 1
            v = Y[k - 1]

        i, j = invert_condensed_index(k, m)
        pairs[s - 1] = (remap[i - 1], remap[j - 1])
        heights[s - 1] = v

        others = [u for u in range(1, m + 1) if u != i and u != j]
        I = np.array([condensed_index(min(u, i), max(u, i), m) - 1 for u in others], dtype=int)
        J = np.array([condensed_index(min(u, j), max(u, j), m) - 1 for u in others], dtype=int)
        Y[I] = _combine(method, Y[I], Y[J])

        # cluster j is gone, so are all of its slots
        Y = np.delete(Y, np.append(J, condensed_index(i, j, m) - 1))

        m -= 1
        new_id = n + s
        size[new_id - 1] = size[remap[i - 1] - 1] + size[remap[j - 1] - 1]
        remap[i - 1] = new_id
        del remap[j - 1]

    return MergeRecord(pairs, heights, method, list(names) if names is not None else [])


def analyze_merges(record):
    """Summary statistics of merge heights."""
    heights = record.heights
    return {
        'n_leaves': record.n_leaves,
        'n_merges': len(heights),
        'min_height': float(heights.min()),
        'max_height': float(heights.max()),
        'mean_height': float(heights.mean()),
        'median_height': float(np.median(heights)),
    }


def get_clusters_at_height(record, height):
    """Flat cluster labels obtained by cutting the dendrogram at `height`."""
    return fcluster(record.to_scipy(), height, criterion='distance')


def run_linkage_clustering(distance_matrix, names=None, method=LinkageMethod.AVERAGE):
    """Linkage clustering workflow with progress output.

    Returns:
        dict: 'record' (MergeRecord) and 'analysis' (analyze_merges output)
    """
    method = resolve_method(method)
    console.print(f"Computing {method.value}-linkage hierarchical clustering...")
    record = compute_linkage(distance_matrix, method, names=names)
    analysis = analyze_merges(record)
    console.print(f"  [green]✓[/green] {analysis['n_merges']} merges for {analysis['n_leaves']} sequences")
    console.print(f"  Height range: {analysis['min_height']:.4f} - {analysis['max_height']:.4f}")
    return {'record': record, 'analysis': analysis}


def build_tree(records, linkage=LinkageMethod.AVERAGE, distance=DistanceModel.JUKES_CANTOR, **distance_options):
    """Build an ultrametric tree straight from aligned sequences.

    Parameters:
        records (list[AlignedSequence]): Aligned sequences (M >= 3)
        linkage: Linkage rule (default average / UPGMA)
        distance: Distance model (default Jukes-Cantor)
        **distance_options: gamma_shape, pairwise_deletion

    Returns:
        Tree: Leaves named after the sequences
    """
    matrix = compute_distance_matrix(records, distance, **distance_options)
    names = [r.name for r in records]
    record = compute_linkage(matrix, linkage, names=names)
    return Tree(record.tree_pairs(), names, record.heights)


__all__ = [
    'LinkageMethod',
    'IMPLEMENTED_METHODS',
    'resolve_method',
    'MergeRecord',
    'condensed_index',
    'invert_condensed_index',
    'compute_linkage',
    'analyze_merges',
    'get_clusters_at_height',
    'run_linkage_clustering',
    'build_tree',
]
