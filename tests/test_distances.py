import numpy as np
import pandas as pd
import pytest

from phyloatlas.core.distances import (
    DistanceModel,
    compute_distance_matrix,
    condensed,
    distance_frame,
    transform_p_distance,
)
from phyloatlas.core.exceptions import InvalidInputError, MethodNotImplementedError
from phyloatlas.core.input import Alphabet, make_alignment


SEQS = ["ACGTA", "ACGTT", "TCGTT", "TCGAA"]


def test_p_distance_hand_computed():
    records = make_alignment(SEQS)
    d = compute_distance_matrix(records, 'p-distance')
    expected = np.array([
        [0.0, 0.2, 0.4, 0.4],
        [0.2, 0.0, 0.2, 0.6],
        [0.4, 0.2, 0.0, 0.4],
        [0.4, 0.6, 0.4, 0.0],
    ])
    assert np.allclose(d, expected)


@pytest.mark.parametrize('model', ['p-distance', 'jukes-cantor', 'poisson', 'gamma'])
def test_matrix_properties(model):
    records = make_alignment(SEQS + ["ACCTA", "GCGTA"])
    d = compute_distance_matrix(records, model)
    assert d.shape == (6, 6)
    assert np.all(np.diag(d) == 0)
    assert np.all(d >= 0)
    assert np.allclose(d, d.T)


@pytest.mark.parametrize('model', ['p-distance', 'jukes-cantor', 'poisson', 'gamma'])
def test_identical_sequences_have_zero_distance(model):
    records = make_alignment(["ACGTACGT"] * 3)
    d = compute_distance_matrix(records, model)
    assert np.all(d == 0)


def test_matrix_is_read_only():
    d = compute_distance_matrix(make_alignment(SEQS))
    with pytest.raises(ValueError):
        d[0, 1] = 1.0


def test_gap_policies():
    records = make_alignment(["AC-T", "A--T", "ACGT"])
    # pairwise deletion: only the double gap column is skipped, C vs - counts
    d = compute_distance_matrix(records, 'p-distance', pairwise_deletion=True)
    assert d[0, 1] == pytest.approx(1 / 3)
    # strict: every column with a gap is skipped
    d = compute_distance_matrix(records, 'p-distance', pairwise_deletion=False)
    assert d[0, 1] == pytest.approx(0.0)
    assert d[0, 2] == pytest.approx(0.0)


def test_pair_without_comparable_sites():
    records = make_alignment(["----", "----", "ACGT"], alphabet='dna')
    with pytest.raises(InvalidInputError):
        compute_distance_matrix(records)


def test_jukes_cantor_values():
    p = np.array([0.1, 0.3])
    d = transform_p_distance(p, DistanceModel.JUKES_CANTOR, Alphabet.DNA)
    assert np.allclose(d, -0.75 * np.log(1 - 4 * p / 3))

    d = transform_p_distance(p, DistanceModel.JUKES_CANTOR, Alphabet.PROTEIN)
    assert np.allclose(d, -19 / 20 * np.log(1 - 20 * p / 19))


def test_jukes_cantor_saturation_stays_finite():
    d = transform_p_distance(np.array([0.75, 0.9]), DistanceModel.JUKES_CANTOR, Alphabet.DNA)
    assert np.all(np.isfinite(d))
    assert np.all(d > 500)


def test_poisson_and_gamma_values():
    p = np.array([0.2])
    assert transform_p_distance(p, DistanceModel.POISSON)[0] == pytest.approx(-np.log(0.8))
    assert transform_p_distance(p, DistanceModel.GAMMA, gamma_shape=2.0)[0] == pytest.approx(
        2.0 * (0.8 ** -0.5 - 1.0)
    )
    assert np.isinf(transform_p_distance(np.array([1.0]), DistanceModel.POISSON)[0])


@pytest.mark.parametrize('model', ['alignment-score', 'kimura', 'hasegawa',
                                   'tajima-nei', 'tamura', 'tamura-nei'])
def test_stubbed_models_fail_explicitly(model):
    with pytest.raises(MethodNotImplementedError) as excinfo:
        compute_distance_matrix(make_alignment(SEQS), model)
    assert isinstance(excinfo.value, NotImplementedError)
    assert excinfo.value.method == model


def test_unknown_model():
    with pytest.raises(InvalidInputError):
        compute_distance_matrix(make_alignment(SEQS), 'hamming')


def test_too_few_or_unaligned_sequences():
    with pytest.raises(InvalidInputError):
        compute_distance_matrix(make_alignment(["ACGT", "ACGA"]))
    with pytest.raises(InvalidInputError):
        compute_distance_matrix(make_alignment(["ACGT", "ACGA", "ACG"]))


def test_condensed_and_frame():
    d = compute_distance_matrix(make_alignment(SEQS), 'p-distance')
    assert np.allclose(condensed(d), [0.2, 0.4, 0.4, 0.2, 0.6, 0.4])

    df = distance_frame(d, ['a', 'b', 'c', 'd'])
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ['a', 'b', 'c', 'd']
    assert df.loc['b', 'd'] == pytest.approx(0.6)


@pytest.mark.parametrize('shape', [0.0, -1.5])
def test_gamma_shape_must_be_positive(shape):
    with pytest.raises(InvalidInputError):
        compute_distance_matrix(make_alignment(SEQS), 'gamma', gamma_shape=shape)
    with pytest.raises(InvalidInputError):
        transform_p_distance(np.array([0.2]), DistanceModel.GAMMA, gamma_shape=shape)


def test_gamma_shape_ignored_by_other_models():
    d = compute_distance_matrix(make_alignment(SEQS), 'p-distance', gamma_shape=0.0)
    assert d[0, 1] == pytest.approx(0.2)


def test_non_ascii_residues_are_rejected():
    records = make_alignment(["ACGTA", "ACGTÅ", "ACGTÄ"], alphabet='dna')
    with pytest.raises(InvalidInputError) as excinfo:
        compute_distance_matrix(records)
    assert 'non-ASCII' in excinfo.value.message
