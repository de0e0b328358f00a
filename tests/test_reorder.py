from collections import Counter

import numpy as np
import pytest

from phyloatlas.cluster.linkage import build_tree
from phyloatlas.core.input import make_alignment
from phyloatlas.core.newick import parse_newick
from phyloatlas.core.reorder import leaf_counts, leaf_slots, pretty_order, root_depths


def test_leaf_counts_and_depths():
    tree = parse_newick('((A:1,B:3):1,C:5);')
    assert leaf_counts(tree).tolist() == [1, 1, 1, 2, 3]
    assert root_depths(tree).tolist() == [2.0, 4.0, 5.0, 1.0, 0.0]


def test_deeper_child_goes_to_the_far_end():
    tree = parse_newick('(C:5,(A:1,B:3):1);')
    assert tree.leaf_names == ['C', 'A', 'B']
    assert leaf_slots(tree).tolist() == [2, 0, 1]

    pretty = pretty_order(tree)
    assert pretty.leaf_names == ['A', 'B', 'C']
    assert pretty.distances.tolist() == [1.0, 3.0, 5.0, 1.0, 0.0]
    assert pretty.merge_pairs.tolist() == [[0, 1], [2, 3]]
    # written text keeps the new order
    assert pretty.to_newick() == '((A:1.0,B:3.0):1.0,C:5.0);'
    assert parse_newick(pretty.to_newick()).leaf_names == ['A', 'B', 'C']


def test_already_ordered_tree_is_unchanged():
    tree = parse_newick('((A:1,B:3):1,C:1);')
    pretty = tree.pretty_order()
    assert pretty.leaf_names == tree.leaf_names
    assert pretty.merge_pairs.tolist() == tree.merge_pairs.tolist()


def test_keeps_branch_names_and_tree_name():
    tree = parse_newick('(C:5,(A:1,B:3)AB:1)top;', name='named')
    pretty = pretty_order(tree)
    assert pretty.name == 'named'
    assert pretty[3].name == 'AB'
    assert pretty[4].name == 'top'


def test_is_a_permutation():
    seqs = ["ACGTACGTAA", "ACGTACGTTA", "TCGTACGAAA", "TCGAACGTTT",
            "ACCTACGTAA", "GCGTTCGTAA", "ACGTACCCAA"]
    tree = build_tree(make_alignment(seqs), distance='p-distance')
    before = tree.to_newick()
    pretty = pretty_order(tree)

    assert Counter(pretty.leaf_names) == Counter(tree.leaf_names)
    assert pretty.total_length() == pytest.approx(tree.total_length())
    assert sorted(leaf_slots(tree).tolist()) == list(range(tree.num_leaves))
    assert pretty.num_nodes == tree.num_nodes
    # input is untouched
    assert tree.to_newick() == before


def test_leaf_positions_follow_slots():
    tree = parse_newick('(C:5,(A:1,B:3):1);')
    pretty = tree.pretty_order()
    ys = {leaf.name: leaf.y for leaf in pretty.leaves}
    assert ys == {'A': 0.0, 'B': 1.0, 'C': 2.0}
    assert np.isclose(pretty[3].y, 0.5)
