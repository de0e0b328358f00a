"""Leaf reordering that avoids branch crossings in a drawn tree."""

import numpy as np

from phyloatlas.core.tree import Tree


def leaf_counts(tree):
    """Number of leaves below every node (1 for a leaf)."""
    counts = np.ones(tree.num_nodes, dtype=int)
    for b, branch in enumerate(tree.branches):
        counts[tree.num_leaves + b] = counts[branch.child1] + counts[branch.child2]
    return counts


def root_depths(tree):
    """Cumulative distance from the root to every node."""
    depth = np.zeros(tree.num_nodes, dtype=float)
    for b in range(tree.num_branches - 1, -1, -1):
        branch = tree[tree.num_leaves + b]
        for c in branch.children:
            depth[c] = tree[c].distance + depth[tree.num_leaves + b]
    return depth


def leaf_slots(tree):
    """
    New 0-based position of every leaf.

    Each node owns a half-open interval [lo, hi) of leaf slots, starting with
    [0, n_leaves) at the root. A branch hands the top of its interval to one
    child and the bottom to the other; the child reaching deeper is pushed
    to the far end.

    Returns:
        np.ndarray: slot[i] is the new position of leaf i
    """
    counts = leaf_counts(tree)
    depth = root_depths(tree)
    lo = np.zeros(tree.num_nodes, dtype=int)
    hi = np.zeros(tree.num_nodes, dtype=int)
    hi[tree.root] = tree.num_leaves

    for b in range(tree.num_branches - 1, -1, -1):
        idx = tree.num_leaves + b
        c1, c2 = tree[idx].children
        lo[c1] = lo[c2] = lo[idx]
        hi[c1] = hi[c2] = hi[idx]
        if depth[c2] >= depth[c1]:
            hi[c1] = lo[c1] + counts[c1]
            lo[c2] = hi[c2] - counts[c2]
        else:
            hi[c2] = lo[c2] + counts[c2]
            lo[c1] = hi[c1] - counts[c1]

    return hi[:tree.num_leaves] - 1


def pretty_order(tree):
    """Return a new tree with leaves permuted to avoid branch crossings.

    Topology, branch names and every distance are kept; only the leaf
    indices change. The input tree is not modified.

    Parameters:
        tree (Tree): Tree to reorder

    Returns:
        Tree: Reordered copy
    """
    n_leaves = tree.num_leaves
    slot = leaf_slots(tree)

    names = [node.name for node in tree]
    distances = tree.distances
    new_names = list(names)
    new_distances = distances.copy()
    for i in range(n_leaves):
        new_names[slot[i]] = names[i]
        new_distances[slot[i]] = distances[i]

    node_map = np.arange(tree.num_nodes)
    node_map[:n_leaves] = slot
    pairs = node_map[tree.merge_pairs]

    return Tree(pairs, new_names, new_distances, name=tree.name)


__all__ = ['leaf_counts', 'root_depths', 'leaf_slots', 'pretty_order']
