from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import matplotlib.pyplot as plt
from Bio import Phylo
from Bio.Phylo.BaseTree import Tree

from .models import CoverageStat

logger = logging.getLogger(__name__)

DIAGRAM_FORMATS = ("png", "svg", "pdf")


def plot_coverage(
    *,
    stats: Iterable[CoverageStat],
    out_png: str | Path,
    title: str = "Aligned bases per sample",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    stats = list(stats)
    labels = [s.sample_id for s in stats]
    values = [s.percent_aligned for s in stats]

    plt.figure(figsize=(max(4.0, 0.5 * len(labels) + 2.0), 4.0))
    plt.bar(labels, values)
    plt.ylim(0, 100)
    plt.ylabel("% aligned bases")
    plt.title(title)
    plt.xticks(rotation=45, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def draw_tree(
    *,
    tree: Tree,
    out_path: str | Path,
    title: str = "Core SNP neighbor-joining tree",
) -> None:
    """Render a tree diagram; the file extension selects png, svg or pdf."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    n_tips = len(tree.get_terminals())
    fig = plt.figure(figsize=(8.0, max(3.0, 0.35 * n_tips + 1.5)))
    ax = fig.add_subplot(1, 1, 1)
    Phylo.draw(tree, axes=ax, do_show=False, label_func=lambda c: c.name if c.is_terminal() else None)
    ax.set_title(title)
    fig.tight_layout()
    fig.savefig(out_path, dpi=160)
    plt.close(fig)
