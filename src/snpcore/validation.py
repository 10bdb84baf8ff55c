from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Tuple

from .models import REFERENCE_ID

logger = logging.getLogger(__name__)


class SnpCoreError(Exception):
    """Base class for fatal snpcore errors."""


class ConfigurationError(SnpCoreError):
    """Raised for unusable run configuration (duplicate IDs, missing inputs, mismatched references)."""


class InputFormatError(SnpCoreError):
    """Raised when an input file is present but malformed."""


def check_sample_dir(path: str | Path) -> Path:
    """Ensure a sample directory exists; raise ConfigurationError otherwise."""
    p = Path(path)
    if not p.is_dir():
        raise ConfigurationError(f"Sample directory does not exist: {p}")
    return p


def check_required_file(path: str | Path, what: str) -> Path:
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Missing {what}: {p}")
    return p


def check_unique_sample_ids(ids_by_dir: Iterable[Tuple[str, str]]) -> None:
    """Ensure no two directories resolve to the same sample ID.

    Parameters
    ----------
    ids_by_dir:
        ``(directory, sample_id)`` pairs in command-line order.
    """
    seen: Dict[str, str] = {}
    for directory, sample_id in ids_by_dir:
        if sample_id == REFERENCE_ID:
            raise ConfigurationError(
                f"Sample ID '{REFERENCE_ID}' (from {directory}) is reserved for the reference column. "
                "Rename the sample directory."
            )
        if sample_id in seen:
            raise ConfigurationError(
                f"Duplicate sample ID '{sample_id}': {seen[sample_id]} and {directory}. "
                "Each sample directory must have a unique name."
            )
        seen[sample_id] = directory


def check_consensus_matches_reference(
    sample_id: str,
    consensus: Mapping[str, str],
    reference_lengths: Mapping[str, int],
) -> None:
    """Fail fast unless a consensus has exactly the reference's sequence names and lengths."""
    missing = [name for name in reference_lengths if name not in consensus]
    extra = [name for name in consensus if name not in reference_lengths]
    if missing or extra:
        raise ConfigurationError(
            f"Consensus for sample '{sample_id}' does not match the reference sequences "
            f"(missing: {missing or 'none'}, unexpected: {extra or 'none'}). "
            "All samples must be called against the same reference."
        )
    wrong: List[str] = []
    for name, length in reference_lengths.items():
        if len(consensus[name]) != length:
            wrong.append(f"{name} ({len(consensus[name])} != {length})")
    if wrong:
        raise ConfigurationError(
            f"Consensus for sample '{sample_id}' has sequence lengths differing from the reference: "
            + ", ".join(wrong)
        )


def check_site_in_reference(
    chrom: str,
    pos: int,
    length: int,
    reference_lengths: Mapping[str, int],
    *,
    source: str,
) -> None:
    """Ensure ``[pos, pos+length)`` (1-based) lies inside a known reference sequence."""
    if chrom not in reference_lengths:
        raise InputFormatError(f"{source}: unknown reference sequence '{chrom}'")
    if pos < 1 or pos + length - 1 > reference_lengths[chrom]:
        raise InputFormatError(
            f"{source}: position {chrom}:{pos} (length {length}) lies outside the reference "
            f"(length {reference_lengths[chrom]})"
        )


def summarize_ids(ids: Iterable[str], limit: int = 5) -> str:
    items = list(ids)
    if len(items) <= limit:
        return ", ".join(items)
    return ", ".join(items[:limit]) + f", ... ({len(items)} total)"
