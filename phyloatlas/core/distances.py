"""Pairwise evolutionary distances between aligned sequences.

Every model starts from the p-distance: the fraction of compared columns
where the two residues differ. Which columns are compared depends on the
gap policy:
- pairwise deletion (default): skip only columns where both rows are gaps
- strict: skip any column where either row has a gap
"""

from enum import Enum

import numpy as np
import numba as nb
import pandas as pd
from numba import prange
from scipy.spatial.distance import squareform

from phyloatlas.core.exceptions import InvalidInputError, MethodNotImplementedError
from phyloatlas.core.input import GAP_CHAR, Alphabet, validate_alignment

DEFAULT_GAMMA_SHAPE = 2.0

# Smallest positive double; keeps the Jukes-Cantor log argument above zero
LOG_FLOOR = np.nextafter(0.0, 1.0)


class DistanceModel(str, Enum):
    """Substitution model used to correct the p-distance."""

    P_DISTANCE = 'p-distance'
    JUKES_CANTOR = 'jukes-cantor'
    ALIGNMENT_SCORE = 'alignment-score'
    TAJIMA_NEI = 'tajima-nei'
    KIMURA = 'kimura'
    TAMURA = 'tamura'
    HASEGAWA = 'hasegawa'
    TAMURA_NEI = 'tamura-nei'
    POISSON = 'poisson'
    GAMMA = 'gamma'


IMPLEMENTED_MODELS = (
    DistanceModel.P_DISTANCE,
    DistanceModel.JUKES_CANTOR,
    DistanceModel.POISSON,
    DistanceModel.GAMMA,
)


def resolve_model(model):
    """Turn a model name into an implemented DistanceModel.

    Raises:
        InvalidInputError: Unknown model name
        MethodNotImplementedError: Known but unimplemented model
    """
    try:
        model = DistanceModel(model)
    except ValueError:
        raise InvalidInputError(
            f"Unknown distance model: {model}",
            suggestion=f"Valid models: {', '.join(m.value for m in DistanceModel)}",
        ) from None
    if model not in IMPLEMENTED_MODELS:
        raise MethodNotImplementedError(
            'Distance model', model.value, [m.value for m in IMPLEMENTED_MODELS]
        )
    return model


def encode_sequences(records):
    """Stack aligned sequences into a (M x L) uint8 matrix of character codes."""
    rows = []
    for r in records:
        try:
            rows.append(np.frombuffer(r.sequence.encode('ascii'), dtype=np.uint8))
        except UnicodeEncodeError as e:
            raise InvalidInputError(
                f"Sequence '{r.name}' holds a non-ASCII residue at column {e.start + 1}",
                suggestion="Residues must be single ASCII characters.",
            ) from None
    return np.vstack(rows)


@nb.njit(parallel=True, cache=True)
def pair_counts(codes, gap, pairwise_deletion):
    """
    Count mismatching and compared columns for every pair i < j.

    Parameters:
        codes: uint8 array (M x L) of character codes
        gap: character code of the gap symbol
        pairwise_deletion: if True only double-gap columns are skipped,
            otherwise any column holding a gap is skipped

    Returns:
        (mismatches, valid): int64 arrays (M x M), upper triangle filled
    """
    M = codes.shape[0]
    L = codes.shape[1]
    mismatches = np.zeros((M, M), dtype=np.int64)
    valid = np.zeros((M, M), dtype=np.int64)

    for i in prange(M - 1):
        for j in range(i + 1, M):
            nd = 0
            nv = 0
            for k in range(L):
                gi = codes[i, k] == gap
                gj = codes[j, k] == gap
                if pairwise_deletion:
                    scored = not (gi and gj)
                else:
                    scored = (not gi) and (not gj)
                if scored:
                    nv += 1
                    if codes[i, k] != codes[j, k]:
                        nd += 1
            mismatches[i, j] = nd
            valid[i, j] = nv

    return mismatches, valid


def check_gamma_shape(gamma_shape):
    if not gamma_shape > 0:
        raise InvalidInputError(
            f"Gamma shape must be positive, got {gamma_shape}",
            suggestion=f"The default shape is {DEFAULT_GAMMA_SHAPE}.",
        )
    return float(gamma_shape)


def transform_p_distance(p, model, alphabet=Alphabet.DNA, gamma_shape=DEFAULT_GAMMA_SHAPE):
    """Apply a substitution model to an array of p-distances."""
    p = np.asarray(p, dtype=float)
    with np.errstate(divide='ignore'):
        if model == DistanceModel.P_DISTANCE:
            return p.copy()
        if model == DistanceModel.POISSON:
            return -np.log(1.0 - p)
        if model == DistanceModel.GAMMA:
            a = check_gamma_shape(gamma_shape)
            return a * (np.power(1.0 - p, -1.0 / a) - 1.0)
        if model == DistanceModel.JUKES_CANTOR:
            if alphabet == Alphabet.PROTEIN:
                return -19.0 / 20.0 * np.log(np.maximum(LOG_FLOOR, 1.0 - 20.0 * p / 19.0))
            return -3.0 / 4.0 * np.log(np.maximum(LOG_FLOOR, 1.0 - 4.0 * p / 3.0))
    raise MethodNotImplementedError(
        'Distance model', DistanceModel(model).value, [m.value for m in IMPLEMENTED_MODELS]
    )


def compute_distance_matrix(records, model=DistanceModel.P_DISTANCE,
                            gamma_shape=DEFAULT_GAMMA_SHAPE, pairwise_deletion=True):
    """Compute the pairwise distance matrix of an alignment.

    Parameters:
        records (list[AlignedSequence]): At least 3 aligned sequences
        model (DistanceModel or str): Distance model (default p-distance)
        gamma_shape (float): Shape parameter `a` of the Gamma model
        pairwise_deletion (bool): Gap policy, see module docstring

    Returns:
        np.ndarray: Read-only symmetric (M x M) float matrix with zero diagonal,
            rows and columns in input order

    Raises:
        InvalidInputError: Too few sequences, unequal lengths, a non-ASCII
            residue, a non-positive Gamma shape, or a pair with
            no comparable columns
        MethodNotImplementedError: Model listed in DistanceModel but not available
    """
    model = resolve_model(model)
    if model == DistanceModel.GAMMA:
        check_gamma_shape(gamma_shape)
    validate_alignment(records, min_sequences=3)

    codes = encode_sequences(records)
    gap = np.uint8(ord(GAP_CHAR))
    mismatches, valid = pair_counts(codes, gap, bool(pairwise_deletion))

    n = len(records)
    iu = np.triu_indices(n, 1)
    empty = np.flatnonzero(valid[iu] == 0)
    if empty.size:
        i, j = iu[0][empty[0]], iu[1][empty[0]]
        raise InvalidInputError(
            f"No comparable sites between '{records[i].name}' and '{records[j].name}'",
            suggestion="Use pairwise deletion or remove sequences that are entirely gaps.",
        )

    p = mismatches[iu] / valid[iu]
    d = transform_p_distance(p, model, records[0].alphabet, gamma_shape)

    upper = np.zeros((n, n), dtype=float)
    upper[iu] = d
    matrix = upper + upper.T
    matrix.flags.writeable = False
    return matrix


def condensed(matrix):
    """Flatten the upper triangle of a square matrix (row-major, i < j)."""
    return squareform(np.asarray(matrix, dtype=float), checks=False)


def distance_frame(matrix, names):
    """Label a distance matrix with sequence names for export."""
    return pd.DataFrame(np.asarray(matrix), index=list(names), columns=list(names))


__all__ = [
    'DistanceModel',
    'IMPLEMENTED_MODELS',
    'resolve_model',
    'encode_sequences',
    'pair_counts',
    'check_gamma_shape',
    'transform_p_distance',
    'compute_distance_matrix',
    'condensed',
    'distance_frame',
]
