import pytest

from phyloatlas.core.exceptions import InvalidInputError
from phyloatlas.core.input import (
    Alphabet,
    guess_alphabet,
    load_alignment,
    make_alignment,
    validate_alignment,
)


def test_guess_alphabet():
    assert guess_alphabet("ACGT" * 10) == Alphabet.DNA
    assert guess_alphabet("--acgt..ACGTN") == Alphabet.DNA
    assert guess_alphabet("ACGU" * 10) == Alphabet.RNA
    assert guess_alphabet("MKVLAAGIVGLLLA") == Alphabet.PROTEIN
    # all-N is nucleic under both tests; RNA is checked first
    assert guess_alphabet("NNNN") == Alphabet.RNA
    assert guess_alphabet("") == Alphabet.PROTEIN


def test_guess_alphabet_only_reads_first_residues():
    # 100 nucleotides followed by protein residues
    assert guess_alphabet("ACGT" * 25 + "MKVLWWWW" * 20) == Alphabet.DNA


def test_make_alignment_defaults():
    records = make_alignment(["ACGT", "ACGA", "ACGG"])
    assert [r.name for r in records] == ['seq1', 'seq2', 'seq3']
    assert all(r.alphabet == Alphabet.DNA for r in records)
    assert len(records[0]) == 4
    assert records[0].is_nucleotide


def test_make_alignment_name_mismatch():
    with pytest.raises(InvalidInputError):
        make_alignment(["ACGT", "ACGA"], names=["a"])


def test_validate_alignment():
    validate_alignment(make_alignment(["AC", "AG", "AT"]))
    with pytest.raises(InvalidInputError):
        validate_alignment(make_alignment(["AC", "AG"]))
    with pytest.raises(InvalidInputError):
        validate_alignment(make_alignment(["AC", "AG", "A"]))


def test_load_fasta(tmp_path):
    p = tmp_path / "aln.fasta"
    p.write_text(">s1\nAC.T\n>s2\nacgt\n>s3\nACGA\n")
    records = load_alignment(p)
    assert [r.name for r in records] == ['s1', 's2', 's3']
    # residues upper-cased, '.' gaps mapped to '-'
    assert [r.sequence for r in records] == ['AC-T', 'ACGT', 'ACGA']
    assert records[0].alphabet == Alphabet.DNA


def test_load_unaligned_fasta(tmp_path):
    p = tmp_path / "bad.fasta"
    p.write_text(">s1\nACGT\n>s2\nACG\n>s3\nACGA\n")
    with pytest.raises(InvalidInputError):
        load_alignment(p)


def test_load_empty_file(tmp_path):
    p = tmp_path / "empty.fasta"
    p.write_text("")
    with pytest.raises(InvalidInputError):
        load_alignment(p)
