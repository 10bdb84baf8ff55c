import logging
from pathlib import Path

import pytest

from snpcore.consensus import count_called_bases, load_consensus, locate_consensus
from snpcore.reference import load_reference, read_fasta
from snpcore.samples import resolve_samples
from snpcore.toy_data import toy_reference, write_sample
from snpcore.utils import sample_id_from_dir
from snpcore.validation import ConfigurationError, InputFormatError


def write_fasta(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_read_fasta_uppercases_and_keeps_order(tmp_path: Path) -> None:
    fa = write_fasta(tmp_path / "x.fa", ">b desc\nacgt\nNN\n>a\nTT-A\n")
    seqs = read_fasta(fa)
    assert list(seqs) == ["b", "a"]
    assert seqs["b"] == "ACGTNN"
    assert seqs["a"] == "TT-A"


def test_read_fasta_duplicate_names(tmp_path: Path) -> None:
    fa = write_fasta(tmp_path / "x.fa", ">a\nAC\n>a\nGT\n")
    with pytest.raises(InputFormatError, match="duplicate"):
        read_fasta(fa)


def test_load_reference(tmp_path: Path) -> None:
    fa = write_fasta(tmp_path / "ref.fa", ">chr1\nACGTACGTAC\n>chr2\nGGG\n")
    ref = load_reference(fa)
    assert ref.lengths == {"chr1": 10, "chr2": 3}
    assert ref.total_length == 13
    assert ref.base("chr1", 5) == "A"


def test_missing_reference_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_reference(tmp_path / "ref.fa")


def test_locate_default_consensus(tmp_path: Path) -> None:
    write_fasta(tmp_path / "snps.aligned.fa", ">chr1\nA\n")
    write_fasta(tmp_path / "other.aligned.fa", ">chr1\nA\n")
    path, fallback = locate_consensus(tmp_path, "snps")
    assert path.name == "snps.aligned.fa"
    assert not fallback


def test_locate_fallback_is_lexicographic_and_logged(tmp_path: Path, caplog) -> None:
    write_fasta(tmp_path / "zeta.aligned.fa", ">chr1\nA\n")
    write_fasta(tmp_path / "alpha.aligned.fa", ">chr1\nA\n")
    with caplog.at_level(logging.WARNING):
        path, fallback = locate_consensus(tmp_path, "snps")
    assert path.name == "alpha.aligned.fa"
    assert fallback
    assert "alpha.aligned.fa" in caplog.text


def test_locate_missing_consensus_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="No masked consensus"):
        locate_consensus(tmp_path, "snps")


def test_consensus_must_match_reference(tmp_path: Path) -> None:
    fa = write_fasta(tmp_path / "snps.aligned.fa", ">chr1\nACGTN\n")
    assert load_consensus(fa, sample_id="A", reference_lengths={"chr1": 5}) == {"chr1": "ACGTN"}

    with pytest.raises(ConfigurationError, match="lengths"):
        load_consensus(fa, sample_id="A", reference_lengths={"chr1": 6})
    with pytest.raises(ConfigurationError, match="missing"):
        load_consensus(fa, sample_id="A", reference_lengths={"chr1": 5, "chr2": 3})
    with pytest.raises(ConfigurationError, match="unexpected"):
        load_consensus(fa, sample_id="A", reference_lengths={"chr9": 5})


def test_count_called_bases() -> None:
    assert count_called_bases({"chr1": "ACGTN-", "chr2": "NN--A"}) == 5


def test_duplicate_sample_ids_are_fatal(tmp_path: Path) -> None:
    ref = toy_reference()
    a = write_sample(tmp_path / "run1" / "iso", reference=ref, variants=[])
    b = write_sample(tmp_path / "run2" / "iso", reference=ref, variants=[])
    with pytest.raises(ConfigurationError, match="Duplicate sample ID 'iso'"):
        resolve_samples([a, b], input_prefix="snps")


def test_reserved_sample_id_is_fatal(tmp_path: Path) -> None:
    d = write_sample(tmp_path / "Reference", reference=toy_reference(), variants=[])
    with pytest.raises(ConfigurationError, match="reserved"):
        resolve_samples([d], input_prefix="snps")


def test_resolve_samples_sorted_by_id(tmp_path: Path) -> None:
    ref = toy_reference()
    dirs = [write_sample(tmp_path / name, reference=ref, variants=[]) for name in ("zed", "Alpha", "mid")]
    samples = resolve_samples([str(d) + "/" for d in dirs], input_prefix="snps")
    assert [s.sample_id for s in samples] == ["Alpha", "mid", "zed"]
    assert samples[0].reference_fa == dirs[1] / "reference" / "ref.fa"


def test_sample_id_of_relative_parent_path(tmp_path: Path) -> None:
    d = write_sample(tmp_path / "iso7", reference=toy_reference(), variants=[])
    (d / "sub").mkdir()
    assert sample_id_from_dir(d / "sub" / "..") == "iso7"
    assert sample_id_from_dir(str(d) + "/.") == "iso7"
    samples = resolve_samples([str(d / "sub" / "..")], input_prefix="snps")
    assert samples[0].sample_id == "iso7"
