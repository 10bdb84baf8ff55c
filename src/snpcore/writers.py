"""Output serializers.

Alignment files are written through Biopython's ``Bio.AlignIO``; tables and the
VCF are plain text written line by line.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

from Bio import AlignIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from . import __version__
from .models import MISSING_ALLELE, CoverageStat, SiteRow, VcfRecord
from .utils import write_tsv
from .validation import SnpCoreError

logger = logging.getLogger(__name__)

ALIGNMENT_FORMATS = ("fasta", "clustal", "phylip-relaxed", "nexus", "stockholm")
# Biopython writes zero-length records only for FASTA
EMPTY_ALIGNMENT_FORMATS = ("fasta",)

COVERAGE_HEADER = ("ID", "Aligned Bases", "Reference bases", "% Aligned Bases")
ANNOTATION_HEADER = ("LOCUS_TAG", "GENE", "PRODUCT")
VCF_VERSION = "VCFv4.1"


def concatenate(sequences: Mapping[str, str]) -> str:
    """Join per-sequence strings in ascending sequence-name order."""
    return "".join(sequences[name] for name in sorted(sequences))


def check_alignment_format(fmt: str, length: int) -> None:
    """Raise before anything is written if ``fmt`` cannot hold an alignment of ``length`` columns."""
    if fmt not in ALIGNMENT_FORMATS:
        raise ValueError(f"Unsupported alignment format '{fmt}'. Choose from: {', '.join(ALIGNMENT_FORMATS)}")
    if length == 0 and fmt not in EMPTY_ALIGNMENT_FORMATS:
        raise SnpCoreError(
            f"Alignment has no columns and cannot be written as '{fmt}'. "
            f"Use --aformat {' or '.join(EMPTY_ALIGNMENT_FORMATS)} to write empty sequences."
        )


def write_alignment(
    path: str | Path,
    sequences: Mapping[str, str],
    sample_ids: Sequence[str],
    *,
    fmt: str = "fasta",
) -> Path:
    """Write one sequence per sample, in ``sample_ids`` order, as an alignment file."""
    check_alignment_format(fmt, min((len(sequences[sid]) for sid in sample_ids), default=0))
    records = [
        SeqRecord(
            Seq(sequences[sid]),
            id=sid,
            name=sid,
            description="",
            annotations={"molecule_type": "DNA"},
        )
        for sid in sample_ids
    ]
    out = Path(path)
    with open(out, "wt", encoding="utf-8") as fh:
        AlignIO.write(MultipleSeqAlignment(records), fh, fmt)
    return out


def write_full_alignment(
    path: str | Path,
    patched: Mapping[str, Mapping[str, str]],
    sample_ids: Sequence[str],
    *,
    fmt: str = "fasta",
) -> Path:
    full = {sid: concatenate(patched[sid]) for sid in sample_ids}
    return write_alignment(path, full, sample_ids, fmt=fmt)


def write_coverage_table(path: str | Path, stats: Iterable[CoverageStat]) -> int:
    rows = (
        (s.sample_id, s.aligned_bases, s.reference_bases, f"{s.percent_aligned:.2f}")
        for s in stats
    )
    return write_tsv(path, COVERAGE_HEADER, rows)


def site_table_header(sample_ids: Sequence[str], *, with_effect: bool) -> List[str]:
    header = ["CHR", "POS", *sample_ids, *ANNOTATION_HEADER]
    if with_effect:
        header.append("EFFECT")
    return header


def _site_row(row: SiteRow, *, with_effect: bool) -> List[object]:
    out: List[object] = [row.chrom, row.pos]
    out.extend(a if a is not None else MISSING_ALLELE for a in row.alleles)
    ann = row.annotation
    out.extend([ann.locus_tag, ann.gene, ann.product])
    if with_effect:
        out.append(ann.effect)
    return out


def write_site_table(
    path: str | Path,
    rows: Iterable[SiteRow],
    sample_ids: Sequence[str],
    *,
    with_effect: bool = False,
) -> int:
    """Write a core or n-way table; unresolved alleles are rendered as ``-``."""
    return write_tsv(
        path,
        site_table_header(sample_ids, with_effect=with_effect),
        (_site_row(r, with_effect=with_effect) for r in rows),
    )


def write_vcf(
    path: str | Path,
    records: Iterable[VcfRecord],
    sample_ids: Sequence[str],
    contig_lengths: Mapping[str, int],
) -> int:
    """Write core sites as a multi-sample haploid VCF (version 4.1)."""
    n = 0
    with open(path, "wt", encoding="utf-8", newline="\n") as fh:
        fh.write(f"##fileformat={VCF_VERSION}\n")
        fh.write(f"##source=snpcore-{__version__}\n")
        for name in sorted(contig_lengths):
            fh.write(f"##contig=<ID={name},length={contig_lengths[name]}>\n")
        fh.write('##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n')
        fh.write("\t".join(["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO", "FORMAT", *sample_ids]) + "\n")
        for rec in records:
            alt = ",".join(rec.alts) if rec.alts else "."
            fields = [rec.chrom, str(rec.pos), ".", rec.ref, alt, ".", "PASS", ".", "GT"]
            fields.extend(str(g) for g in rec.genotypes)
            fh.write("\t".join(fields) + "\n")
            n += 1
    return n


def output_paths(outdir: str | Path, prefix: str) -> Dict[str, Path]:
    """Fixed ``<prefix>.<suffix>`` output names."""
    base = Path(outdir)
    return {
        "coverage": base / f"{prefix}.txt",
        "full_alignment": base / f"{prefix}.full.aln",
        "core_table": base / f"{prefix}.tab",
        "nway_table": base / f"{prefix}.nway.tab",
        "vcf": base / f"{prefix}.vcf",
        "core_alignment": base / f"{prefix}.aln",
        "summary": base / f"{prefix}.summary.json",
    }
