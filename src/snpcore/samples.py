from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from .consensus import locate_consensus
from .models import SampleInput
from .utils import sample_id_from_dir
from .validation import check_required_file, check_sample_dir, check_unique_sample_ids

logger = logging.getLogger(__name__)

REFERENCE_RELPATH = Path("reference") / "ref.fa"


def resolve_sample(directory: str | Path, *, input_prefix: str) -> SampleInput:
    """Locate one sample's reference copy, variant report and masked consensus."""
    d = check_sample_dir(directory)
    sample_id = sample_id_from_dir(directory)
    variants_tab = check_required_file(d / f"{input_prefix}.tab", f"variant report for sample '{sample_id}'")
    consensus_fa, fallback = locate_consensus(d, input_prefix)
    return SampleInput(
        sample_id=sample_id,
        directory=d,
        reference_fa=d / REFERENCE_RELPATH,
        variants_tab=variants_tab,
        consensus_fa=consensus_fa,
        consensus_fallback=fallback,
    )


def resolve_samples(directories: Sequence[str | Path], *, input_prefix: str) -> List[SampleInput]:
    """Resolve all sample directories, sorted by sample ID.

    Duplicate or reserved IDs are rejected before any file is opened.
    """
    if not directories:
        raise ValueError("At least one sample directory is required")
    check_unique_sample_ids([(str(d), sample_id_from_dir(d)) for d in directories])

    samples = [resolve_sample(d, input_prefix=input_prefix) for d in directories]
    samples.sort(key=lambda s: s.sample_id)
    logger.info("Resolved %d sample director(ies)", len(samples))
    return samples
