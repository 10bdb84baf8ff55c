from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Set

from .models import Annotation, Site

logger = logging.getLogger(__name__)


class VariantMatrix:
    """Read-only multi-sample allele matrix produced by :class:`VariantMatrixBuilder`.

    Layout is ``chrom -> pos (1-based) -> sample_id -> allele``. Only sites where at
    least one real sample reported a variant are present.
    """

    def __init__(
        self,
        calls: Dict[str, Dict[int, Dict[str, str]]],
        annotations: Dict[Site, Annotation],
        sample_ids: List[str],
        *,
        include_reference: bool,
        has_effect: bool,
    ) -> None:
        self._calls = MappingProxyType(
            {
                chrom: MappingProxyType({pos: MappingProxyType(dict(alleles)) for pos, alleles in by_pos.items()})
                for chrom, by_pos in calls.items()
            }
        )
        self._annotations = MappingProxyType(dict(annotations))
        self.sample_ids = tuple(sample_ids)
        self.include_reference = include_reference
        self.has_effect = has_effect

    def sites(self) -> Iterator[Site]:
        """All sites in ascending (sequence name, position) order."""
        for chrom in sorted(self._calls):
            for pos in sorted(self._calls[chrom]):
                yield chrom, pos

    def allele(self, chrom: str, pos: int, sample_id: str) -> Optional[str]:
        return self._calls.get(chrom, {}).get(pos, {}).get(sample_id)

    def annotation(self, chrom: str, pos: int) -> Annotation:
        return self._annotations.get((chrom, pos), Annotation())

    def __len__(self) -> int:
        return sum(len(by_pos) for by_pos in self._calls.values())


class VariantMatrixBuilder:
    """Accumulates variant calls and annotations across samples.

    The builder is owned by the loading phase. :meth:`finalize` hands back an
    immutable :class:`VariantMatrix`; further additions raise ``RuntimeError``.
    """

    def __init__(self, *, include_reference: bool = True) -> None:
        self.include_reference = include_reference
        self._calls: Dict[str, Dict[int, Dict[str, str]]] = {}
        self._annotations: Dict[Site, Annotation] = {}
        self._samples: Set[str] = set()
        self._has_effect = False
        self._finalized = False

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("VariantMatrixBuilder has been finalized; no further calls can be added")

    def add_sample(self, sample_id: str) -> None:
        """Register a sample even if it ends up contributing no variants."""
        self._check_open()
        self._samples.add(sample_id)

    def add_call(self, chrom: str, pos: int, sample_id: str, allele: str) -> None:
        self._check_open()
        self._samples.add(sample_id)
        self._calls.setdefault(chrom, {}).setdefault(pos, {})[sample_id] = allele

    def add_reference_call(self, chrom: str, pos: int, reference_id: str, allele: str) -> None:
        """Record the reference allele; no-op when the reference column is excluded."""
        self._check_open()
        if not self.include_reference:
            return
        self._calls.setdefault(chrom, {}).setdefault(pos, {})[reference_id] = allele

    def set_annotation(self, chrom: str, pos: int, annotation: Annotation) -> None:
        """Last writer wins when several samples vary the same site."""
        self._check_open()
        if annotation.effect:
            self._has_effect = True
        self._annotations[(chrom, pos)] = annotation

    def mark_effect_column(self) -> None:
        self._check_open()
        self._has_effect = True

    def finalize(self) -> VariantMatrix:
        self._check_open()
        self._finalized = True
        matrix = VariantMatrix(
            self._calls,
            self._annotations,
            sorted(self._samples),
            include_reference=self.include_reference,
            has_effect=self._has_effect,
        )
        logger.info("Variant matrix finalized: %d site(s) across %d sample(s)", len(matrix), len(self._samples))
        return matrix
