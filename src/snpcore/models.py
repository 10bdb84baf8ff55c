from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

REFERENCE_ID = "Reference"

LOW_CONFIDENCE = "N"
ABSENT = "-"
UNRESOLVED_MARKERS = frozenset({LOW_CONFIDENCE, ABSENT})

# Rendered in the n-way table for samples without a resolved allele.
MISSING_ALLELE = "-"

# (sequence name, 1-based position)
Site = Tuple[str, int]


@dataclass(frozen=True)
class SampleInput:
    """Resolved input files for one sample directory.

    Attributes
    ----------
    sample_id:
        Basename of the sample directory.
    directory:
        The sample directory itself.
    reference_fa:
        The sample's copy of the reference (``reference/ref.fa``).
    variants_tab:
        Tab-separated variant report (``<input_prefix>.tab``).
    consensus_fa:
        Masked consensus aligned to the reference (``<input_prefix>.aligned.fa``).
    consensus_fallback:
        True when ``consensus_fa`` was found by suffix search rather than by name.
    """

    sample_id: str
    directory: Path
    reference_fa: Path
    variants_tab: Path
    consensus_fa: Path
    consensus_fallback: bool = False


@dataclass(frozen=True)
class Annotation:
    """Feature annotation for a varied site, taken from the sample that reported it."""

    locus_tag: str = ""
    gene: str = ""
    product: str = ""
    effect: str = ""


@dataclass(frozen=True)
class SiteRow:
    """One row of the core or n-way table.

    ``alleles`` is aligned with the run's sample column order; ``None`` marks
    a sample that did not resolve a base at this site.
    """

    chrom: str
    pos: int
    alleles: Tuple[Optional[str], ...]
    annotation: Annotation


@dataclass(frozen=True)
class VcfRecord:
    """Multi-sample VCF record for a core site (haploid genotype indices)."""

    chrom: str
    pos: int
    ref: str
    alts: Tuple[str, ...]
    genotypes: Tuple[int, ...]


@dataclass(frozen=True)
class CoverageStat:
    sample_id: str
    aligned_bases: int
    reference_bases: int

    @property
    def percent_aligned(self) -> float:
        if self.reference_bases == 0:
            return 0.0
        return round(self.aligned_bases * 100.0 / self.reference_bases, 2)


@dataclass
class VariantTableStats:
    """Per-sample counters collected while loading a variant report."""

    sample_id: str
    rows_total: int = 0
    variants_kept: int = 0
    bases_affected: int = 0
    skipped_length_mismatch: int = 0
    skipped_type: int = 0
    has_effect_column: bool = False
    types: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class ClassificationResult:
    """Everything the serializers need from the classifier."""

    sample_ids: Tuple[str, ...]
    nway_rows: List[SiteRow]
    core_rows: List[SiteRow]
    core_alignment: Dict[str, str]
    vcf_records: List[VcfRecord]

    @property
    def n_sites(self) -> int:
        return len(self.nway_rows)

    @property
    def n_core(self) -> int:
        return len(self.core_rows)
