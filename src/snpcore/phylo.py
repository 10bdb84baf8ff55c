"""Optional tree building from the finished core alignment.

Distances use the Kimura two-parameter model over sites where both samples
carry an unambiguous base; the tree itself is built by Biopython's
neighbor-joining constructor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Sequence

import numpy as np
from Bio import Phylo
from Bio.Phylo.BaseTree import Tree
from Bio.Phylo.TreeConstruction import DistanceMatrix, DistanceTreeConstructor

logger = logging.getLogger(__name__)

TREE_FORMATS = ("newick", "nexus", "phyloxml")
MIN_TAXA = 3

# Distance reported when the K2P log terms are undefined (saturated pairs).
_MAX_DISTANCE = 10.0

_BASE_CODES = {"A": 0, "G": 1, "C": 2, "T": 3}
_UNKNOWN = -1


def _encode(seq: str) -> np.ndarray:
    return np.array([_BASE_CODES.get(b, _UNKNOWN) for b in seq.upper()], dtype=np.int8)


def kimura_distance(a: np.ndarray, b: np.ndarray) -> float:
    """K2P distance between two encoded sequences of equal length.

    Codes 0/1 are purines (A/G) and 2/3 pyrimidines (C/T), so a transition is a
    mismatch within the same class.
    """
    valid = (a >= 0) & (b >= 0)
    n = int(valid.sum())
    if n == 0:
        return 0.0
    x = a[valid]
    y = b[valid]
    diff = x != y
    same_class = (x // 2) == (y // 2)
    p = float(np.count_nonzero(diff & same_class)) / n
    q = float(np.count_nonzero(diff & ~same_class)) / n
    t1 = 1.0 - 2.0 * p - q
    t2 = 1.0 - 2.0 * q
    if t1 <= 0.0 or t2 <= 0.0:
        return _MAX_DISTANCE
    return float(-0.5 * np.log(t1) - 0.25 * np.log(t2))


def kimura_distance_matrix(alignment: Mapping[str, str], sample_ids: Sequence[str]) -> DistanceMatrix:
    """Lower-triangular Biopython DistanceMatrix in ``sample_ids`` order."""
    encoded = [_encode(alignment[sid]) for sid in sample_ids]
    matrix: List[List[float]] = []
    for i in range(len(sample_ids)):
        row = [kimura_distance(encoded[i], encoded[j]) for j in range(i)]
        row.append(0.0)
        matrix.append(row)
    return DistanceMatrix(names=list(sample_ids), matrix=matrix)


def build_nj_tree(alignment: Mapping[str, str], sample_ids: Sequence[str]) -> Tree:
    if len(sample_ids) < MIN_TAXA:
        raise ValueError(f"Tree building needs at least {MIN_TAXA} sequences, got {len(sample_ids)}")
    dm = kimura_distance_matrix(alignment, sample_ids)
    tree = DistanceTreeConstructor().nj(dm)
    tree.ladderize()
    logger.info("Neighbor-joining tree built for %d taxa", len(sample_ids))
    return tree


def write_tree(tree: Tree, path: str | Path, *, fmt: str = "newick") -> Path:
    if fmt not in TREE_FORMATS:
        raise ValueError(f"Unsupported tree format '{fmt}'. Choose from: {', '.join(TREE_FORMATS)}")
    out = Path(path)
    Phylo.write(tree, str(out), fmt)
    return out
