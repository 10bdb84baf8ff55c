from pathlib import Path

import pytest

from snpcore.classify import classify_sites, genotype_alleles, is_core
from snpcore.matrix import VariantMatrixBuilder
from snpcore.models import REFERENCE_ID, Annotation
from snpcore.patcher import patch_alignment
from snpcore.reference import ReferenceGenome
from snpcore.utils import column_order

REF_SEQ = "ACGTGACGTA"  # position 5 is G


def make_reference() -> ReferenceGenome:
    return ReferenceGenome(path=Path("ref.fa"), sequences={"chr1": REF_SEQ})


def two_sample_matrix(include_reference: bool = True):
    builder = VariantMatrixBuilder(include_reference=include_reference)
    builder.add_sample("B")
    builder.add_call("chr1", 5, "A", "T")
    builder.add_reference_call("chr1", 5, REFERENCE_ID, "G")
    builder.set_annotation("chr1", 5, Annotation(locus_tag="L1", gene="g", product="p"))
    return builder.finalize()


def run(matrix, consensus, include_reference=True):
    ids = column_order(["A", "B"], REFERENCE_ID if include_reference else None)
    patched = patch_alignment(matrix, make_reference(), consensus, ids)
    return ids, patched, classify_sites(matrix, patched.resolved, ids)


def test_consensus_fills_non_variant_sample():
    matrix = two_sample_matrix()
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": REF_SEQ}}
    ids, patched, result = run(matrix, consensus)

    assert ids == ["Reference", "A", "B"]
    assert patched.resolved["chr1"][5] == {"Reference": "G", "A": "T", "B": "G"}
    assert result.n_core == 1
    assert result.core_rows[0].alleles == ("G", "T", "G")
    assert result.core_alignment == {"Reference": "G", "A": "T", "B": "G"}


def test_low_confidence_consensus_leaves_site_unresolved():
    matrix = two_sample_matrix()
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": "ACGTNACGTA"}}
    _, patched, result = run(matrix, consensus)

    assert len(patched.resolved["chr1"][5]) == 2
    assert result.n_core == 0
    assert result.n_sites == 1
    assert result.nway_rows[0].alleles == ("G", "T", None)
    assert result.vcf_records == []


def test_absent_consensus_leaves_site_unresolved():
    matrix = two_sample_matrix()
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": "ACGT-ACGTA"}}
    _, _, result = run(matrix, consensus)
    assert result.n_core == 0


def test_explicit_call_is_patched_into_consensus():
    matrix = two_sample_matrix()
    # consensus for A does not carry the variant; the explicit call wins
    consensus = {"A": {"chr1": "ACGTNACGTA"}, "B": {"chr1": REF_SEQ}}
    _, patched, result = run(matrix, consensus)

    assert patched.alignment["A"]["chr1"] == "ACGTTACGTA"
    assert patched.alignment["B"]["chr1"] == REF_SEQ
    assert patched.alignment["Reference"]["chr1"] == REF_SEQ
    assert result.n_core == 1


def test_monomorphic_full_site_is_not_core():
    builder = VariantMatrixBuilder()
    builder.add_call("chr1", 5, "A", "T")
    builder.add_call("chr1", 5, "B", "T")
    matrix = builder.finalize()
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": "ACGTTACGTA"}}
    ids = ["A", "B"]
    patched = patch_alignment(matrix, make_reference(), consensus, ids)
    result = classify_sites(matrix, patched.resolved, ids)

    assert len(patched.resolved["chr1"][5]) == 2
    assert result.n_core == 0
    assert result.core_alignment == {"A": "", "B": ""}


def test_reference_excluded_columns():
    matrix = two_sample_matrix(include_reference=False)
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": REF_SEQ}}
    ids, patched, result = run(matrix, consensus, include_reference=False)

    assert ids == ["A", "B"]
    assert REFERENCE_ID not in patched.alignment
    assert result.core_rows[0].alleles == ("T", "G")


def test_sites_are_ordered_by_chrom_then_numeric_position():
    builder = VariantMatrixBuilder(include_reference=False)
    for chrom, pos in [("chr2", 3), ("chr1", 10), ("chr1", 2), ("chr10", 1)]:
        builder.add_call(chrom, pos, "A", "T")
    matrix = builder.finalize()
    assert list(matrix.sites()) == [("chr1", 2), ("chr1", 10), ("chr10", 1), ("chr2", 3)]


def test_builder_rejects_additions_after_finalize():
    builder = VariantMatrixBuilder()
    builder.add_call("chr1", 1, "A", "C")
    builder.finalize()
    with pytest.raises(RuntimeError):
        builder.add_call("chr1", 2, "A", "C")


def test_annotation_last_writer_wins():
    builder = VariantMatrixBuilder()
    builder.set_annotation("chr1", 5, Annotation(locus_tag="FIRST"))
    builder.set_annotation("chr1", 5, Annotation(locus_tag="SECOND"))
    matrix = builder.finalize()
    assert matrix.annotation("chr1", 5).locus_tag == "SECOND"
    assert matrix.annotation("chr1", 6) == Annotation()


def test_is_core():
    assert is_core(["G", "T", "G"])
    assert not is_core(["G", "G", "G"])
    assert not is_core(["G", "T", None])


def test_vcf_genotype_encoding():
    alleles, genotypes = genotype_alleles(["G", "T", "T", "G"])
    assert alleles == ["G", "T"]
    assert genotypes == [0, 1, 1, 0]


def test_vcf_record_uses_first_allele_as_ref():
    builder = VariantMatrixBuilder(include_reference=False)
    builder.add_call("chr1", 5, "A", "T")
    builder.add_call("chr1", 5, "B", "C")
    matrix = builder.finalize()
    consensus = {"A": {"chr1": "ACGTTACGTA"}, "B": {"chr1": "ACGTCACGTA"}}
    patched = patch_alignment(matrix, make_reference(), consensus, ["A", "B"])
    result = classify_sites(matrix, patched.resolved, ["A", "B"])

    rec = result.vcf_records[0]
    assert (rec.ref, rec.alts, rec.genotypes) == ("T", ("C",), (0, 1))
