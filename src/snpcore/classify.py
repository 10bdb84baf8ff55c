from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .matrix import VariantMatrix
from .models import ClassificationResult, SiteRow, VcfRecord

logger = logging.getLogger(__name__)


def is_core(alleles: Sequence[Optional[str]]) -> bool:
    """A site is core iff every sample resolved a base and the bases are not all identical."""
    if any(a is None for a in alleles):
        return False
    return len(set(alleles)) > 1


def genotype_alleles(alleles: Sequence[str]) -> Tuple[List[str], List[int]]:
    """Distinct alleles in first-occurrence order, and each sample's index into them.

    >>> genotype_alleles(["G", "T", "T", "G"])
    (['G', 'T'], [0, 1, 1, 0])
    """
    distinct: List[str] = []
    index: Dict[str, int] = {}
    genotypes: List[int] = []
    for a in alleles:
        if a not in index:
            index[a] = len(distinct)
            distinct.append(a)
        genotypes.append(index[a])
    return distinct, genotypes


def classify_sites(
    matrix: VariantMatrix,
    resolved: Mapping[str, Mapping[int, Mapping[str, str]]],
    sample_ids: Sequence[str],
) -> ClassificationResult:
    """Split patched sites into the n-way table, the core table, core alignment and VCF records.

    Parameters
    ----------
    matrix:
        Finalized variant matrix; provides site order and annotations.
    resolved:
        Per-site resolved alleles from :func:`snpcore.patcher.patch_alignment`.
    sample_ids:
        Column order (reference first unless excluded, then sorted sample IDs).
    """
    ids = tuple(sample_ids)
    nway_rows: List[SiteRow] = []
    core_rows: List[SiteRow] = []
    vcf_records: List[VcfRecord] = []
    core_bases: Dict[str, List[str]] = {sid: [] for sid in ids}

    for chrom, pos in matrix.sites():
        site = resolved.get(chrom, {}).get(pos, {})
        alleles = tuple(site.get(sid) for sid in ids)
        row = SiteRow(chrom=chrom, pos=pos, alleles=alleles, annotation=matrix.annotation(chrom, pos))
        nway_rows.append(row)

        if not is_core(alleles):
            continue

        core_rows.append(row)
        for sid, allele in zip(ids, alleles):
            core_bases[sid].append(allele)  # type: ignore[arg-type]

        distinct, genotypes = genotype_alleles(alleles)  # type: ignore[arg-type]
        vcf_records.append(
            VcfRecord(
                chrom=chrom,
                pos=pos,
                ref=distinct[0],
                alts=tuple(distinct[1:]),
                genotypes=tuple(genotypes),
            )
        )

    logger.info("Classified %d site(s): %d core, %d non-core", len(nway_rows), len(core_rows), len(nway_rows) - len(core_rows))
    return ClassificationResult(
        sample_ids=ids,
        nway_rows=nway_rows,
        core_rows=core_rows,
        core_alignment={sid: "".join(bases) for sid, bases in core_bases.items()},
        vcf_records=vcf_records,
    )
