import pytest
from typer.testing import CliRunner

from phyloatlas.core.newick import read_newick
from scripts.newick_tool import app

runner = CliRunner()


@pytest.fixture
def tree_file(tmp_path):
    p = tmp_path / 'tree.nwk'
    p.write_text('(C:5,(A:1,B:3):1);\n')
    return p


def test_reorder(tree_file):
    result = runner.invoke(app, ['reorder', str(tree_file)])
    assert result.exit_code == 0
    out = tree_file.with_name('tree.pretty.nwk')
    assert out.exists()
    assert read_newick(out).leaf_names == ['A', 'B', 'C']


def test_reorder_with_output_and_precision(tree_file, tmp_path):
    out = tmp_path / 'ordered.nwk'
    result = runner.invoke(app, ['reorder', str(tree_file), '-o', str(out), '-p', '3'])
    assert result.exit_code == 0
    assert out.read_text().strip() == '((A:1,B:3):1,C:5);'


def test_info(tree_file):
    result = runner.invoke(app, ['info', str(tree_file), '--dump'])
    assert result.exit_code == 0
    assert 'Leaves' in result.output
    assert 'C, A, B' in result.output
    assert 'Phylogenetic tree: tree' in result.output


def test_plot(tree_file, tmp_path):
    out = tmp_path / 'tree.png'
    result = runner.invoke(app, ['plot', str(tree_file), '-o', str(out)])
    assert result.exit_code == 0
    assert out.exists()


def test_missing_file(tmp_path):
    result = runner.invoke(app, ['info', str(tmp_path / 'missing.nwk')])
    assert result.exit_code == 1


def test_malformed_file(tmp_path):
    p = tmp_path / 'bad.nwk'
    p.write_text('(A,B;')
    result = runner.invoke(app, ['reorder', str(p)])
    assert result.exit_code == 1
