from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, TextIO

logger = logging.getLogger(__name__)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def write_tsv(path: str | Path, header: Iterable[str], rows: Iterable[Iterable[object]]) -> int:
    """Write a plain TSV with a header line; return the number of data rows."""
    n = 0
    with open(path, "wt", encoding="utf-8", newline="\n") as fh:
        fh.write("\t".join(header) + "\n")
        for row in rows:
            fh.write("\t".join(str(x) for x in row) + "\n")
            n += 1
    return n


def sample_id_from_dir(path: str | Path) -> str:
    """Sample ID is the basename of the directory; trailing separators are ignored."""
    name = Path(str(path).rstrip("/\\")).name
    if name in ("", ".", ".."):
        # e.g. ".", "/" or "toy/sampleA/.." name the directory they resolve to
        name = Path(path).resolve().name
    return name


def column_order(sample_ids: Iterable[str], reference_id: str | None) -> List[str]:
    """Lexicographic sample IDs, reference pseudo-sample first when present."""
    ids = sorted(set(sample_ids))
    if reference_id is not None:
        return [reference_id] + ids
    return ids
