import numpy as np
import pytest

from phyloatlas.cluster.linkage import compute_linkage
from phyloatlas.core.exceptions import NewickFormatError
from phyloatlas.core.newick import clean_newick, parse_newick, read_newick, write_newick
from phyloatlas.core.tree import Tree


def test_two_leaves():
    tree = parse_newick('(A:1,B:2):0;')
    assert tree.num_leaves == 2
    assert tree.leaf_names == ['A', 'B']
    assert tree[0].distance == 1.0
    assert tree[1].distance == 2.0
    assert tree[tree.root].distance == 0.0


def test_nested_with_internal_labels():
    tree = parse_newick('((A:1,B:1)AB:2,C:3)root;')
    assert tree.leaf_names == ['A', 'B', 'C']
    assert tree.merge_pairs.tolist() == [[0, 1], [3, 2]]
    assert tree[3].name == 'AB'
    assert tree[3].distance == 2.0
    assert tree[4].name == 'root'
    assert tree.to_newick() == '((A:1.0,B:1.0)AB:2.0,C:3.0)root;'


def test_without_distances_uses_topology():
    tree = parse_newick('((A,B),C);')
    assert tree.distances.tolist() == [1.0, 1.0, 2.0, 1.0, 0.0]


def test_polytomy_becomes_binary_cascade():
    tree = parse_newick('(A:1,B:2,C:3);')
    assert tree.num_leaves == 3
    assert tree.num_branches == 2
    # phantom branch joins the last two members with zero length
    assert tree.merge_pairs.tolist() == [[1, 2], [0, 3]]
    assert tree[3].name == ''
    assert tree[3].distance == 0.0
    assert tree.to_newick() == '(A:1.0,(B:2.0,C:3.0):0.0);'


def test_large_polytomy():
    tree = parse_newick('(A,B,C,D,E);')
    assert tree.num_leaves == 5
    assert tree.num_branches == 4
    assert tree.merge_pairs.tolist() == [[3, 4], [2, 5], [1, 6], [0, 7]]


def test_redundant_parentheses():
    tree = parse_newick('((A:1),B:2);')
    assert tree.num_leaves == 2
    assert tree.leaf_names == ['A', 'B']
    assert tree.distances.tolist() == [1.0, 2.0, 0.0]


def test_line_breaks_comments_and_whitespace():
    text = '(A:1,\r\nB:2)[&R]:0;\r\n'
    assert clean_newick(text) == '(A:1,B:2):0;'
    tree = parse_newick(' ( A : 1 , B : 2 ) ;\n')
    assert tree.leaf_names == ['A', 'B']
    assert tree.distances.tolist() == [1.0, 2.0, 0.0]


def test_names_with_spaces_and_colons():
    tree = parse_newick('(Homo sapiens:0.5,ns:sub:0.25);')
    assert tree.leaf_names == ['Homo sapiens', 'ns:sub']
    assert tree[1].distance == 0.25


@pytest.mark.parametrize('text', [
    'A;',
    '(A,B;',
    '(A,B));',
    ')A,B(;',
    '((),A,B);',
    '(A,B),(C,D);',
    '(A:x,B:1);',
    '(A(B,C));',
])
def test_malformed(text):
    with pytest.raises(NewickFormatError):
        parse_newick(text)


def test_format_error_is_value_error():
    with pytest.raises(ValueError) as excinfo:
        parse_newick('A;')
    assert 'comma' in excinfo.value.message
    assert excinfo.value.suggestion


def clades(tree):
    """Leaf-name set below every branch."""
    sets = {i: frozenset([tree[i].name]) for i in range(tree.num_leaves)}
    for b, branch in enumerate(tree.branches):
        sets[tree.num_leaves + b] = sets[branch.child1] | sets[branch.child2]
    return {sets[i] for i in range(tree.num_leaves, tree.num_nodes)}


def test_round_trip_from_linkage():
    rng = np.random.default_rng(7)
    points = rng.normal(size=(10, 2))
    matrix = np.sqrt(((points[:, None, :] - points[None, :, :]) ** 2).sum(-1))
    record = compute_linkage(matrix, 'average')
    names = [f's{i}' for i in range(10)]
    tree = Tree(record.tree_pairs(), names, record.heights).pretty_order()

    parsed = parse_newick(tree.to_newick())
    assert parsed.leaf_names == tree.leaf_names
    assert clades(parsed) == clades(tree)
    assert parsed.total_length() == pytest.approx(tree.total_length())
    assert parsed.max_x == pytest.approx(tree.max_x)

    # a parsed tree comes back with identical indices
    again = parse_newick(parsed.to_newick())
    assert again.leaf_names == parsed.leaf_names
    assert again.merge_pairs.tolist() == parsed.merge_pairs.tolist()
    assert again.distances.tolist() == parsed.distances.tolist()


def test_from_newick_classmethod():
    tree = Tree.from_newick('(A:1,B:2);')
    assert tree.leaf_names == ['A', 'B']


def test_read_write(tmp_path):
    p = tmp_path / 'example.nwk'
    p.write_text('((A:0.1,B:0.2):0.05,C:0.3);\n')
    tree = read_newick(p)
    assert tree.name == 'example'
    assert tree.num_leaves == 3

    out = write_newick(tree, tmp_path / 'copy.nwk')
    assert out.read_text() == tree.to_newick() + '\n'
    assert read_newick(out).distances.tolist() == tree.distances.tolist()
