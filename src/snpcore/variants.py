from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .matrix import VariantMatrixBuilder
from .models import REFERENCE_ID, Annotation, VariantTableStats
from .utils import open_textmaybe_gzip
from .validation import InputFormatError, check_required_file, check_site_in_reference

logger = logging.getLogger(__name__)

HEADER_MARKER = "CHROM"
REQUIRED_COLUMNS = ("CHROM", "POS", "TYPE", "REF", "ALT")
ANNOTATION_COLUMNS = ("LOCUS_TAG", "GENE", "PRODUCT")
EFFECT_COLUMN = "EFFECT"
SUBSTITUTION_TYPES = frozenset({"snp", "mnp"})


def _column_index(header: List[str], path: Path) -> Dict[str, int]:
    index = {name: i for i, name in enumerate(header)}
    missing = [c for c in REQUIRED_COLUMNS if c not in index]
    if missing:
        raise InputFormatError(f"{path}: variant report is missing required column(s): {', '.join(missing)}")
    return index


def _field(fields: List[str], index: Mapping[str, int], name: str) -> str:
    i = index.get(name)
    if i is None or i >= len(fields):
        return ""
    return fields[i]


def load_variant_table(
    path: str | Path,
    *,
    sample_id: str,
    builder: VariantMatrixBuilder,
    reference_lengths: Mapping[str, int],
    substitutions_only: bool = False,
    reference_id: str = REFERENCE_ID,
) -> VariantTableStats:
    """Load one sample's variant report into the shared matrix builder.

    Parameters
    ----------
    path:
        Tab-separated report whose header starts with ``CHROM``. Columns are located
        by name: ``CHROM POS TYPE REF ALT`` are required, ``LOCUS_TAG GENE PRODUCT``
        and ``EFFECT`` are optional.
    sample_id:
        Column the sample's alleles are recorded under.
    builder:
        Shared builder; receives one call per substituted base, plus the
        reference allele unless the builder excludes the reference.
    reference_lengths:
        Sequence name -> length, used to reject calls outside the reference.
    substitutions_only:
        If True, also skip rows whose TYPE is not ``snp`` or ``mnp`` even when
        REF and ALT have equal length (e.g. length-preserving ``complex`` calls).

    Returns
    -------
    VariantTableStats
        Counters for kept and skipped rows.
    """
    p = check_required_file(path, f"variant report for sample '{sample_id}'")
    stats = VariantTableStats(sample_id=sample_id)
    builder.add_sample(sample_id)

    with open_textmaybe_gzip(p, "rt") as fh:
        header_line = fh.readline().rstrip("\r\n")
        if not header_line.startswith(HEADER_MARKER):
            raise InputFormatError(
                f"{p}: variant report header must start with '{HEADER_MARKER}', got: {header_line[:60]!r}"
            )
        header = header_line.split("\t")
        index = _column_index(header, p)
        if EFFECT_COLUMN in index:
            stats.has_effect_column = True
            builder.mark_effect_column()

        for lineno, line in enumerate(fh, start=2):
            line = line.rstrip("\r\n")
            if not line:
                continue
            fields = line.split("\t")
            stats.rows_total += 1

            chrom = _field(fields, index, "CHROM")
            vtype = _field(fields, index, "TYPE")
            ref = _field(fields, index, "REF").upper()
            alt = _field(fields, index, "ALT").upper()
            stats.types[vtype] = stats.types.get(vtype, 0) + 1

            try:
                pos = int(_field(fields, index, "POS"))
            except ValueError:
                raise InputFormatError(f"{p}:{lineno}: POS is not an integer") from None

            parts = decompose(pos, ref, alt)
            if parts is None:
                stats.skipped_length_mismatch += 1
                logger.debug("%s:%d skipping %s %s>%s (length mismatch)", p.name, lineno, vtype, ref, alt)
                continue
            if substitutions_only and vtype.lower() not in SUBSTITUTION_TYPES:
                stats.skipped_type += 1
                logger.debug("%s:%d skipping %s %s>%s (not a substitution)", p.name, lineno, vtype, ref, alt)
                continue
            check_site_in_reference(chrom, pos, len(alt), reference_lengths, source=f"{p}:{lineno}")

            annotation = Annotation(
                locus_tag=_field(fields, index, "LOCUS_TAG"),
                gene=_field(fields, index, "GENE"),
                product=_field(fields, index, "PRODUCT"),
                effect=_field(fields, index, EFFECT_COLUMN),
            )
            for site_pos, ref_base, alt_base in parts:
                builder.add_call(chrom, site_pos, sample_id, alt_base)
                builder.add_reference_call(chrom, site_pos, reference_id, ref_base)
                builder.set_annotation(chrom, site_pos, annotation)

            stats.variants_kept += 1
            stats.bases_affected += len(alt)

    logger.info(
        "Sample %s: %d variant(s) affecting %d base(s) (%d row(s) read, %d skipped)",
        sample_id,
        stats.variants_kept,
        stats.bases_affected,
        stats.rows_total,
        stats.skipped_length_mismatch + stats.skipped_type,
    )
    return stats


def decompose(pos: int, ref: str, alt: str) -> Optional[List[Tuple[int, str, str]]]:
    """Split an equal-length substitution into ``(pos, ref_base, alt_base)`` per offset.

    Returns None when REF and ALT differ in length (indels, complex events).
    """
    if len(ref) != len(alt) or not alt:
        return None
    return [(pos + i, r, a) for i, (r, a) in enumerate(zip(ref, alt))]
