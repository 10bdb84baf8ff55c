from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Mapping, Sequence

from .matrix import VariantMatrix
from .models import REFERENCE_ID, UNRESOLVED_MARKERS
from .reference import ReferenceGenome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchResult:
    """Output of :func:`patch_alignment`.

    Attributes
    ----------
    alignment:
        sample_id -> chrom -> full-length patched sequence.
    resolved:
        chrom -> pos -> sample_id -> base, for every site in the variant matrix.
        A sample is absent at a site when it has no explicit call and its
        consensus base there is ``N`` or ``-``.
    """

    alignment: Dict[str, Dict[str, str]]
    resolved: Dict[str, Dict[int, Dict[str, str]]]


def patch_alignment(
    matrix: VariantMatrix,
    reference: ReferenceGenome,
    consensus: Mapping[str, Mapping[str, str]],
    sample_ids: Sequence[str],
) -> PatchResult:
    """Overlay explicit variant calls on each sample's masked consensus.

    Sites are visited in ascending (chrom, pos) order. For each sample an explicit
    call wins and is written into the patched sequence; otherwise a confident
    consensus base is taken as the sample's implicit call. The reference column
    reads from, and is patched as, the reference itself.
    """
    buffers: Dict[str, Dict[str, bytearray]] = {}
    for sid in sample_ids:
        if sid == REFERENCE_ID:
            continue
        buffers[sid] = {chrom: bytearray(seq, "ascii") for chrom, seq in consensus[sid].items()}

    resolved: Dict[str, Dict[int, Dict[str, str]]] = {}
    n_filled = 0
    n_unresolved = 0

    for chrom, pos in matrix.sites():
        site: Dict[str, str] = {}
        for sid in sample_ids:
            allele = matrix.allele(chrom, pos, sid)
            if allele is not None:
                site[sid] = allele
                if sid != REFERENCE_ID:
                    buffers[sid][chrom][pos - 1] = ord(allele)
                continue

            if sid == REFERENCE_ID:
                base = reference.base(chrom, pos)
            else:
                base = consensus[sid][chrom][pos - 1]
            if base in UNRESOLVED_MARKERS:
                n_unresolved += 1
                continue
            site[sid] = base
            n_filled += 1
        resolved.setdefault(chrom, {})[pos] = site

    alignment: Dict[str, Dict[str, str]] = {}
    for sid in sample_ids:
        if sid == REFERENCE_ID:
            alignment[sid] = dict(reference.sequences)
        else:
            alignment[sid] = {chrom: buf.decode("ascii") for chrom, buf in buffers[sid].items()}

    logger.info(
        "Patched %d sample(s) over %d site(s): %d implicit call(s) from consensus, %d unresolved",
        len(sample_ids),
        len(matrix),
        n_filled,
        n_unresolved,
    )
    return PatchResult(alignment=alignment, resolved=resolved)
