"""Masked-consensus lookup and loading.

A masked consensus is the caller's per-sample sequence aligned 1:1 with the
reference, where ``N`` marks low-confidence positions and ``-`` marks
positions with no aligned reads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Mapping, Tuple

from .models import UNRESOLVED_MARKERS
from .reference import read_fasta
from .validation import ConfigurationError, check_consensus_matches_reference, check_required_file

logger = logging.getLogger(__name__)

CONSENSUS_SUFFIX = ".aligned.fa"


def locate_consensus(sample_dir: str | Path, input_prefix: str) -> Tuple[Path, bool]:
    """Find a sample's masked consensus.

    Returns ``(path, used_fallback)``. The default is ``<input_prefix>.aligned.fa``;
    otherwise the lexicographically first ``*.aligned.fa`` in the directory is used.
    """
    d = Path(sample_dir)
    default = d / f"{input_prefix}{CONSENSUS_SUFFIX}"
    if default.is_file():
        return default, False

    candidates = sorted(p for p in d.glob(f"*{CONSENSUS_SUFFIX}") if p.is_file())
    if not candidates:
        raise ConfigurationError(
            f"No masked consensus found in {d}: expected {default.name} or any *{CONSENSUS_SUFFIX}"
        )
    chosen = candidates[0]
    logger.warning(
        "%s not found in %s; using %s (first of %d *%s candidate(s))",
        default.name,
        d,
        chosen.name,
        len(candidates),
        CONSENSUS_SUFFIX,
    )
    return chosen, True


def load_consensus(
    path: str | Path,
    *,
    sample_id: str,
    reference_lengths: Mapping[str, int],
) -> Dict[str, str]:
    """Load a masked consensus and check it against the reference coordinate system."""
    p = check_required_file(path, f"masked consensus for sample '{sample_id}'")
    consensus = read_fasta(p)
    check_consensus_matches_reference(sample_id, consensus, reference_lengths)
    return consensus


def count_called_bases(sequences: Mapping[str, str]) -> int:
    """Bases that are neither low-confidence nor absent."""
    total = 0
    for seq in sequences.values():
        masked = sum(seq.count(marker) for marker in UNRESOLVED_MARKERS)
        total += len(seq) - masked
    return total
