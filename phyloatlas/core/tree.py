"""Binary phylogenetic tree stored as a node arena.

Leaves occupy indices 0..n_leaves-1 and branches n_leaves..n_nodes-1, in
creation order. A branch always has a larger index than both of its
children, so the last branch is the root and any forward pass over the
branches visits children before parents.

Branches hold child indices into the owning tree, never node objects.
"""

import re

import numpy as np

from phyloatlas.core.exceptions import InvalidInputError

# characters that cannot appear in an unquoted Newick label
NEWICK_RESERVED = re.compile(r'[(),:;\[\]]')


class Node:
    """Common part of leaves and branches.

    `distance` is the length of the edge to the parent node. `x` and `y`
    are layout coordinates filled in by Tree.validate().
    """

    is_leaf = True

    def __init__(self, name='', distance=0.0):
        self.name = name
        self.distance = distance
        self.x = 0.0
        self.y = 0.0

    def __repr__(self):
        return f"{type(self).__name__}: {self.name} (X: {self.x}, Y: {self.y}, dist: {self.distance})"


class Leaf(Node):
    pass


class Branch(Node):
    is_leaf = False

    def __init__(self, child1, child2, name='', distance=0.0):
        super().__init__(name, distance)
        self.child1 = int(child1)
        self.child2 = int(child2)

    @property
    def children(self):
        return (self.child1, self.child2)


class Tree:
    """Phylogenetic tree built from a merge table.

    Parameters:
        pairs: int array (n_branches, 2). Row b holds the two children of
            branch b as 0-based node indices; every child must already
            exist (a leaf or an earlier branch)
        names: Optional node names, applied positionally wherever the entry
            is non-empty. Leaves default to "0".."n-1", branches to ""
        distances: Either one value per node (distance to parent, negative
            entries are ignored) or one merge height per branch (ultrametric
            form). When omitted, distances follow the topological level
            of each node
        name: Name of the tree
    """

    def __init__(self, pairs, names=None, distances=None, name=''):
        self.name = name or ''
        self.needs_layout = True

        pairs = np.asarray(pairs, dtype=int)
        if pairs.size == 0:
            pairs = pairs.reshape(0, 2)
        if pairs.ndim != 2 or pairs.shape[1] != 2:
            raise InvalidInputError(
                f"Merge pairs must have shape (n_branches, 2), got {pairs.shape}"
            )

        self._create_nodes(pairs)
        self._topological_distances()
        if names is not None:
            self._apply_names(names)
        if distances is not None:
            self._apply_distances(np.asarray(distances, dtype=float))
        self.validate()

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------
    def _create_nodes(self, pairs):
        n_branches = pairs.shape[0]
        n_leaves = n_branches + 1
        self._leaves = [Leaf(str(i)) for i in range(n_leaves)]
        self._branches = []
        seen = set()
        for b, (c1, c2) in enumerate(pairs):
            # only leaves and earlier branches exist at this point
            limit = n_leaves + b
            if not (0 <= c1 < limit and 0 <= c2 < limit):
                raise InvalidInputError(
                    f"Incorrect element in merge pairs at row {b}: ({c1}, {c2})",
                    suggestion=f"Children of branch {b} must be node indices below {limit}.",
                )
            # each node has exactly one parent, so no node is left unattached
            for c in (c1, c2):
                if c in seen:
                    raise InvalidInputError(
                        f"Node {c} is merged more than once (row {b}: ({c1}, {c2}))",
                        suggestion="Every leaf and non-root branch must appear in exactly one merge pair.",
                    )
                seen.add(c)
            self._branches.append(Branch(c1, c2))

    def _topological_distances(self):
        n_leaves = self.num_leaves
        levels = np.zeros(self.num_nodes, dtype=int)
        parent = np.full(self.num_nodes, self.num_nodes - 1, dtype=int)
        for b, branch in enumerate(self._branches):
            levels[n_leaves + b] = max(levels[branch.child1], levels[branch.child2]) + 1
            parent[branch.child1] = n_leaves + b
            parent[branch.child2] = n_leaves + b
        for i, node in enumerate(self):
            node.distance = float(levels[parent[i]] - levels[i])

    def _apply_names(self, names):
        if len(names) > self.num_nodes:
            raise InvalidInputError(
                f"Got {len(names)} names for a tree with {self.num_nodes} nodes"
            )
        for i, name in enumerate(names):
            if name is not None and len(str(name)) > 0:
                self[i].name = str(name)

    def _apply_distances(self, dist):
        if len(dist) == self.num_nodes:
            for i, d in enumerate(dist):
                if d >= 0.0:
                    self[i].distance = float(d)
        elif len(dist) == self.num_branches:
            for leaf in self._leaves:
                leaf.distance = 0.0
            for branch, d in zip(self._branches, dist):
                if d >= 0.0:
                    branch.distance = float(d)
            # children hold absolute heights until their parent turns them
            # into edge lengths; creation order guarantees children come first
            for branch, d in zip(self._branches, dist):
                for c in branch.children:
                    self[c].distance = float(d) - self[c].distance
            if self._branches:
                self._branches[-1].distance = 0.0
        else:
            raise InvalidInputError(
                f"Length of distances ({len(dist)}) must equal the number of nodes "
                f"({self.num_nodes}) or branches ({self.num_branches})"
            )

    @classmethod
    def from_merges(cls, pairs, names=None, distances=None, name=''):
        return cls(pairs, names, distances, name=name)

    @classmethod
    def from_newick(cls, text):
        from phyloatlas.core.newick import parse_newick
        return parse_newick(text)

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------
    @property
    def num_leaves(self):
        return len(self._leaves)

    @property
    def num_branches(self):
        return len(self._branches)

    @property
    def num_nodes(self):
        return len(self._leaves) + len(self._branches)

    @property
    def root(self):
        """Index of the root node."""
        return self.num_nodes - 1

    @property
    def leaves(self):
        return list(self._leaves)

    @property
    def branches(self):
        return list(self._branches)

    @property
    def leaf_names(self):
        return [leaf.name for leaf in self._leaves]

    @property
    def names(self):
        return [node.name for node in self]

    @property
    def distances(self):
        """Distance to parent of every node, in index order."""
        return np.array([node.distance for node in self], dtype=float)

    @property
    def merge_pairs(self):
        """Children of every branch as an int array (n_branches, 2)."""
        return np.array([b.children for b in self._branches], dtype=int).reshape(-1, 2)

    def __len__(self):
        return self.num_nodes

    def __iter__(self):
        yield from self._leaves
        yield from self._branches

    def __getitem__(self, i):
        if not 0 <= i < self.num_nodes:
            raise InvalidInputError(f"Node index {i} out of range for a tree with {self.num_nodes} nodes")
        if i < self.num_leaves:
            return self._leaves[i]
        return self._branches[i - self.num_leaves]

    def index_of(self, node):
        if node.is_leaf:
            for i, leaf in enumerate(self._leaves):
                if leaf is node:
                    return i
        else:
            for b, branch in enumerate(self._branches):
                if branch is node:
                    return self.num_leaves + b
        raise InvalidInputError(f"{node!r} does not belong to this tree")

    def parent(self, i):
        """Index of the branch holding node `i` as a child.

        The root branch has no parent and is returned itself. Returns None
        only for the root of a single-leaf tree.
        """
        node = self[i]
        for b, branch in enumerate(self._branches):
            if i in branch.children:
                return self.num_leaves + b
        if node.is_leaf:
            return None
        return i

    def children(self, i):
        node = self[i]
        return () if node.is_leaf else node.children

    def total_length(self):
        return float(self.distances.sum())

    # ------------------------------------------------------------------
    # layout
    # ------------------------------------------------------------------
    def invalidate(self):
        """Mark layout coordinates stale after editing node distances."""
        self.needs_layout = True

    def validate(self):
        """Compute drawing coordinates if they are stale.

        x is the cumulative distance from the root, leaves sit at y equal to
        their index and every branch sits midway between its children.
        """
        if not self.needs_layout:
            return

        for node in self:
            node.x = node.distance
        for i, leaf in enumerate(self._leaves):
            leaf.y = float(i)
        for branch in self._branches:
            branch.y = 0.0

        for branch in reversed(self._branches):
            self[branch.child1].x += branch.x
            self[branch.child2].x += branch.x
        for branch in self._branches:
            branch.y = (self[branch.child1].y + self[branch.child2].y) / 2

        self.needs_layout = False

    @property
    def max_x(self):
        self.validate()
        return max(leaf.x for leaf in self._leaves)

    @property
    def max_y(self):
        self.validate()
        return max(leaf.y for leaf in self._leaves)

    # ------------------------------------------------------------------
    # output
    # ------------------------------------------------------------------
    def pretty_order(self):
        """New tree with leaves reordered to avoid branch crossings."""
        from phyloatlas.core.reorder import pretty_order
        return pretty_order(self)

    def dump(self):
        lines = [f"Phylogenetic tree: {self.name}"]
        lines.extend(f"{i}. {node!r}" for i, node in enumerate(self))
        return '\n'.join(lines)

    def to_newick(self, precision=None):
        """Serialise to Newick text.

        Every node but the root is written as name:distance. Reserved
        characters in names are replaced by underscores.

        The child holding the smaller leaf index is written first. When
        every subtree covers a contiguous run of leaf indices, as after
        pretty_order() or parsing, the leaves appear in index order and
        parsing the text gives back the same leaf order.

        Parameters:
            precision (int, optional): Significant digits for distances.
                By default distances are written exactly (repr)
        """
        def label(i):
            text = NEWICK_RESERVED.sub('_', self[i].name)
            if i == self.root:
                return text
            d = float(self[i].distance)
            return f"{text}:{repr(d) if precision is None else format(d, f'.{precision}g')}"

        first_leaf = np.arange(self.num_nodes)
        parts = {i: label(i) for i in range(self.num_leaves)}
        for b, branch in enumerate(self._branches):
            idx = self.num_leaves + b
            c1, c2 = branch.children
            if first_leaf[c2] < first_leaf[c1]:
                c1, c2 = c2, c1
            first_leaf[idx] = first_leaf[c1]
            parts[idx] = f"({parts.pop(c1)},{parts.pop(c2)}){label(idx)}"
        return parts[self.root] + ';'

    def __str__(self):
        return self.to_newick()


__all__ = ['Node', 'Leaf', 'Branch', 'Tree']
