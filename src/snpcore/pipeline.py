from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from tqdm import tqdm

from . import __version__
from .classify import classify_sites
from .consensus import count_called_bases, load_consensus
from .matrix import VariantMatrixBuilder
from .models import REFERENCE_ID, CoverageStat, SampleInput, VariantTableStats
from .patcher import patch_alignment
from .phylo import MIN_TAXA, build_nj_tree, write_tree
from .plotting import draw_tree, plot_coverage
from .reference import load_reference
from .report import render_report
from .samples import resolve_samples
from .utils import column_order, ensure_outdir, write_json
from .validation import SnpCoreError, summarize_ids
from .variants import load_variant_table
from .writers import (
    EMPTY_ALIGNMENT_FORMATS,
    output_paths,
    write_alignment,
    write_coverage_table,
    write_full_alignment,
    write_site_table,
    write_vcf,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoreConfig:
    """Run options for :func:`run_core`; mirrors the ``snpcore merge`` flags."""

    sample_dirs: Sequence[str]
    outdir: str = "."
    prefix: str = "core"
    input_prefix: str = "snps"
    reference: Optional[str] = None
    include_reference: bool = True
    aln_format: str = "fasta"
    substitutions_only: bool = False
    tree: bool = False
    tree_format: str = "newick"
    tree_diagram: str = "png"
    html_report: bool = False
    progress: bool = True

    @property
    def reference_id(self) -> Optional[str]:
        return REFERENCE_ID if self.include_reference else None


def planned_outputs(config: CoreConfig) -> Dict[str, Path]:
    paths = output_paths(config.outdir, config.prefix)
    base = Path(config.outdir)
    if config.tree:
        paths["tree"] = base / f"{config.prefix}.tree"
        paths["tree_diagram"] = base / f"{config.prefix}.tree.{config.tree_diagram}"
    if config.html_report:
        paths["report"] = base / f"{config.prefix}.report.html"
        paths["coverage_plot"] = base / f"{config.prefix}.coverage.png"
    return paths


def plan_run(config: CoreConfig) -> Dict[str, Any]:
    """Resolve inputs and list outputs without reading sequence data (``--dry-run``)."""
    samples = resolve_samples(config.sample_dirs, input_prefix=config.input_prefix)
    reference = Path(config.reference) if config.reference else samples[0].reference_fa
    return {
        "samples": [
            {
                "id": s.sample_id,
                "variants": str(s.variants_tab),
                "consensus": str(s.consensus_fa),
                "consensus_fallback": s.consensus_fallback,
            }
            for s in samples
        ],
        "reference": str(reference),
        "reference_exists": reference.is_file(),
        "outputs": {k: str(v) for k, v in planned_outputs(config).items()},
    }


def _coverage(
    sample_ids: Sequence[str],
    reference_sequences: Dict[str, str],
    consensus: Dict[str, Dict[str, str]],
    reference_length: int,
) -> List[CoverageStat]:
    stats: List[CoverageStat] = []
    for sid in sample_ids:
        seqs = reference_sequences if sid == REFERENCE_ID else consensus[sid]
        stats.append(
            CoverageStat(
                sample_id=sid,
                aligned_bases=count_called_bases(seqs),
                reference_bases=reference_length,
            )
        )
    return stats


def run_core(config: CoreConfig) -> Dict[str, Any]:
    """Run the full merge and write every output; returns the run summary."""
    t0 = time.time()
    samples: List[SampleInput] = resolve_samples(config.sample_dirs, input_prefix=config.input_prefix)
    logger.info("Samples: %s", summarize_ids(s.sample_id for s in samples))

    reference_fa = config.reference or samples[0].reference_fa
    reference = load_reference(reference_fa)
    reference_lengths = reference.lengths

    builder = VariantMatrixBuilder(include_reference=config.include_reference)
    load_stats: Dict[str, VariantTableStats] = {}
    consensus: Dict[str, Dict[str, str]] = {}

    it = tqdm(samples, unit="sample", desc="Loading samples", disable=not config.progress)
    for sample in it:
        load_stats[sample.sample_id] = load_variant_table(
            sample.variants_tab,
            sample_id=sample.sample_id,
            builder=builder,
            reference_lengths=reference_lengths,
            substitutions_only=config.substitutions_only,
        )
        consensus[sample.sample_id] = load_consensus(
            sample.consensus_fa,
            sample_id=sample.sample_id,
            reference_lengths=reference_lengths,
        )

    matrix = builder.finalize()
    sample_ids = column_order((s.sample_id for s in samples), config.reference_id)

    patched = patch_alignment(matrix, reference, consensus, sample_ids)
    coverage = _coverage(sample_ids, reference.sequences, consensus, reference.total_length)
    result = classify_sites(matrix, patched.resolved, sample_ids)
    if result.n_core == 0:
        if config.aln_format not in EMPTY_ALIGNMENT_FORMATS:
            raise SnpCoreError(
                f"No core SNPs found across {len(samples)} sample(s); an empty core alignment "
                f"cannot be written as '{config.aln_format}'. Re-run with --aformat fasta."
            )
        logger.warning("No core SNPs found; core alignment sequences will be empty")

    ensure_outdir(config.outdir)
    paths = planned_outputs(config)

    write_coverage_table(paths["coverage"], coverage)
    write_full_alignment(paths["full_alignment"], patched.alignment, sample_ids, fmt=config.aln_format)
    write_site_table(paths["core_table"], result.core_rows, sample_ids, with_effect=matrix.has_effect)
    write_site_table(paths["nway_table"], result.nway_rows, sample_ids, with_effect=matrix.has_effect)
    write_vcf(paths["vcf"], result.vcf_records, sample_ids, reference_lengths)
    write_alignment(paths["core_alignment"], result.core_alignment, sample_ids, fmt=config.aln_format)

    written = [
        "coverage",
        "full_alignment",
        "core_table",
        "nway_table",
        "vcf",
        "core_alignment",
        "summary",
    ]

    if config.tree:
        if result.n_core == 0 or len(sample_ids) < MIN_TAXA:
            logger.warning(
                "Skipping tree: need >= %d sequences and >= 1 core SNP (have %d and %d)",
                MIN_TAXA,
                len(sample_ids),
                result.n_core,
            )
        else:
            tree = build_nj_tree(result.core_alignment, sample_ids)
            write_tree(tree, paths["tree"], fmt=config.tree_format)
            draw_tree(tree=tree, out_path=paths["tree_diagram"])
            written += ["tree", "tree_diagram"]

    coverage_by_id = {c.sample_id: c for c in coverage}
    summary: Dict[str, Any] = {
        "version": __version__,
        "reference": str(reference.path),
        "reference_length": reference.total_length,
        "include_reference": config.include_reference,
        "sample_ids": list(sample_ids),
        "samples": [
            {
                "id": s.sample_id,
                "variants": load_stats[s.sample_id].variants_kept,
                "bases_affected": load_stats[s.sample_id].bases_affected,
                "rows_total": load_stats[s.sample_id].rows_total,
                "skipped": load_stats[s.sample_id].skipped_length_mismatch + load_stats[s.sample_id].skipped_type,
                "types": dict(sorted(load_stats[s.sample_id].types.items())),
                "aligned_bases": coverage_by_id[s.sample_id].aligned_bases,
                "percent_aligned": coverage_by_id[s.sample_id].percent_aligned,
                "consensus": str(s.consensus_fa),
                "consensus_fallback": s.consensus_fallback,
            }
            for s in samples
        ],
        "sites": {"total": result.n_sites, "core": result.n_core},
        "runtime_seconds": float(time.time() - t0),
    }

    if config.html_report:
        plot_coverage(stats=coverage, out_png=paths["coverage_plot"])
        plots = {"coverage": paths["coverage_plot"].name}
        if "tree_diagram" in written and config.tree_diagram != "pdf":
            plots["tree"] = paths["tree_diagram"].name
        written += ["coverage_plot", "report"]
        summary["outputs"] = {k: str(paths[k]) for k in written}
        render_report(out_path=paths["report"], version=__version__, summary=summary, plots=plots)
    else:
        summary["outputs"] = {k: str(paths[k]) for k in written}

    write_json(paths["summary"], summary)
    logger.info(
        "Done: %d core SNP(s) out of %d variant site(s) across %d sample(s)",
        result.n_core,
        result.n_sites,
        len(samples),
    )
    return summary
