from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

import pysam

from .validation import InputFormatError, check_required_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceGenome:
    """Reference sequences; establishes the coordinate system for the whole run.

    Attributes
    ----------
    path:
        FASTA the reference was read from.
    sequences:
        Sequence name -> uppercase bases, in file order.
    """

    path: Path
    sequences: Dict[str, str]

    @property
    def names(self) -> List[str]:
        return list(self.sequences)

    @property
    def lengths(self) -> Dict[str, int]:
        return {name: len(seq) for name, seq in self.sequences.items()}

    @property
    def total_length(self) -> int:
        return sum(len(seq) for seq in self.sequences.values())

    def base(self, chrom: str, pos: int) -> str:
        """Reference base at a 1-based position."""
        return self.sequences[chrom][pos - 1]


def read_fasta(path: str | Path) -> Dict[str, str]:
    """Read a (optionally gzipped) FASTA into an ordered name -> uppercase sequence dict."""
    p = Path(path)
    out: Dict[str, str] = {}
    with pysam.FastxFile(str(p)) as fh:
        for entry in fh:
            name = entry.name
            if name in out:
                raise InputFormatError(f"{p}: duplicate sequence name '{name}'")
            out[name] = (entry.sequence or "").upper()
    if not out:
        raise InputFormatError(f"{p}: no sequences found")
    return out


def load_reference(path: str | Path) -> ReferenceGenome:
    """Load the reference genome once for the whole run."""
    p = check_required_file(path, "reference FASTA")
    sequences = read_fasta(p)
    ref = ReferenceGenome(path=p, sequences=sequences)
    logger.info(
        "Loaded reference %s: %d sequence(s), %d bp",
        p,
        len(sequences),
        ref.total_length,
    )
    return ref
