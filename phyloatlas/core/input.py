"""Aligned sequence loading and validation.

Supports any multiple alignment format understood by Biopython's AlignIO
(FASTA by default). Records are normalised so that:
- residues are upper case
- '.' gaps become '-', the single gap character used by the distance code
"""

from dataclasses import dataclass
from enum import Enum

from Bio import AlignIO
from rich.console import Console

from phyloatlas.core.exceptions import InvalidInputError

console = Console()

GAP_CHAR = '-'
GAP_CHARS = '-.'

# Alphabet guessing looks at this many non-gap residues
GUESS_CHAR_COUNT = 100
GUESS_MIN_NUCLEO_PCT = 95


class Alphabet(str, Enum):
    """Residue alphabet of an aligned sequence."""

    DNA = 'dna'
    RNA = 'rna'
    PROTEIN = 'protein'


@dataclass(frozen=True)
class AlignedSequence:
    """One row of a multiple alignment."""

    name: str
    sequence: str
    alphabet: Alphabet = Alphabet.DNA

    def __len__(self):
        return len(self.sequence)

    @property
    def is_nucleotide(self):
        return self.alphabet in (Alphabet.DNA, Alphabet.RNA)


def guess_alphabet(sequence):
    """Guess the alphabet of a sequence from its first residues.

    If at least 95% of the first 100 non-gap letters are nucleotides the
    sequence is nucleic (RNA is tested before DNA), otherwise protein.

    Parameters:
        sequence (str): Raw or aligned sequence

    Returns:
        Alphabet: Guessed alphabet
    """
    dna_chars = set('AGCTNagctn')
    rna_chars = set('AGCUNagcun')
    n_dna = n_rna = total = 0
    for c in sequence:
        if c in GAP_CHARS:
            continue
        if c in dna_chars:
            n_dna += 1
        if c in rna_chars:
            n_rna += 1
        total += 1
        if total >= GUESS_CHAR_COUNT:
            break

    if total and (n_rna * 100) // total >= GUESS_MIN_NUCLEO_PCT:
        return Alphabet.RNA
    if total and (n_dna * 100) // total >= GUESS_MIN_NUCLEO_PCT:
        return Alphabet.DNA
    return Alphabet.PROTEIN


def normalize_sequence(sequence):
    """Upper-case residues and map every gap symbol to GAP_CHAR."""
    return str(sequence).upper().replace('.', GAP_CHAR)


def make_alignment(sequences, names=None, alphabet=None):
    """Build AlignedSequence records from plain strings.

    Parameters:
        sequences (list[str]): Aligned sequences (gap-padded, equal length)
        names (list[str], optional): Display names. Defaults to seq1..seqM
        alphabet (Alphabet or str, optional): Shared alphabet. Guessed from
            the first sequence when omitted

    Returns:
        list[AlignedSequence]
    """
    sequences = list(sequences)
    if names is None:
        names = [f'seq{i + 1}' for i in range(len(sequences))]
    elif len(names) != len(sequences):
        raise InvalidInputError(
            f"Got {len(names)} names for {len(sequences)} sequences"
        )

    if alphabet is None:
        alphabet = guess_alphabet(sequences[0]) if sequences else Alphabet.DNA
    alphabet = Alphabet(alphabet)

    return [AlignedSequence(str(n), s, alphabet) for n, s in zip(names, sequences)]


def validate_alignment(records, min_sequences=3):
    """Check that records form a usable alignment.

    Raises:
        InvalidInputError: If there are fewer than `min_sequences` records
            or the sequences are not all the same length
    """
    if len(records) < min_sequences:
        raise InvalidInputError(
            f"There must be at least {min_sequences} sequences (got {len(records)})",
            suggestion="Add more sequences to the alignment.",
        )

    lengths = {len(r) for r in records}
    if len(lengths) > 1:
        raise InvalidInputError(
            f"Input sequences must be aligned; found lengths {sorted(lengths)}",
            suggestion="Run a multiple sequence aligner first so all rows are gap-padded to one length.",
        )


def load_alignment(path, fmt='fasta'):
    """Read an aligned sequence file.

    Parameters:
        path (str or Path): Alignment file
        fmt (str): Any format name accepted by Bio.AlignIO (default 'fasta')

    Returns:
        list[AlignedSequence]: Normalised records in file order

    Raises:
        InvalidInputError: If the file cannot be read as an alignment
    """
    try:
        alignment = AlignIO.read(str(path), fmt)
    except ValueError as e:
        raise InvalidInputError(
            f"Unable to parse alignment file {path} as {fmt}: {e}",
            suggestion="Sequences must be aligned (equal length) and in the given format.",
        ) from e

    sequences = [normalize_sequence(rec.seq) for rec in alignment]
    names = [rec.id for rec in alignment]
    records = make_alignment(sequences, names=names)
    console.print(f"  Loaded {len(records)} sequences of length {alignment.get_alignment_length()}"
                  f" ({records[0].alphabet.value if records else 'empty'})")
    return records


__all__ = [
    'GAP_CHAR',
    'Alphabet',
    'AlignedSequence',
    'guess_alphabet',
    'normalize_sequence',
    'make_alignment',
    'validate_alignment',
    'load_alignment',
]
