from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .phylo import TREE_FORMATS
from .pipeline import CoreConfig, plan_run, run_core
from .plotting import DIAGRAM_FORMATS
from .toy_data import make_toy_data
from .validation import SnpCoreError
from .writers import ALIGNMENT_FORMATS

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _setup_logging(verbosity: int, *, quiet: bool = False, logfile: Optional[Path] = None) -> None:
    level = logging.INFO
    if quiet:
        level = logging.WARNING
    elif verbosity >= 1:
        level = logging.DEBUG

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, SnpCoreError):
        msg = str(err)
    else:
        msg = f"{err.__class__.__name__}: {err}"

    logger = logging.getLogger("snpcore")
    logger.error(msg)
    if log_path is not None and log_path.exists():
        logger.error("See log: %s", log_path)
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snpcore",
        description=(
            "snpcore: merge per-sample variant calls and masked consensus sequences "
            "into a core-genome SNP alignment, core/n-way SNP tables and a multi-sample VCF."
        ),
    )
    p.add_argument("--version", action="version", version=f"snpcore {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and three sample directories for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # merge
    # -----------------
    m = sub.add_parser(
        "merge",
        help="Build the core SNP alignment and tables from per-sample caller directories.",
    )
    m.add_argument(
        "sample_dirs",
        nargs="+",
        type=_path_exists,
        help="Per-sample directories; the directory name is the sample ID.",
    )
    m.add_argument("--outdir", default=".", help="Output directory (default: current directory).")
    m.add_argument("--prefix", default="core", help="Output file prefix (default: core).")
    m.add_argument(
        "--input-prefix",
        default="snps",
        help="Prefix of per-sample input files: <prefix>.tab and <prefix>.aligned.fa (default: snps).",
    )
    m.add_argument(
        "--reference",
        default=None,
        type=_path_exists,
        help="Reference FASTA (default: reference/ref.fa of the first sample).",
    )
    m.add_argument(
        "--no-ref",
        action="store_true",
        help="Exclude the Reference column from all outputs.",
    )
    m.add_argument(
        "--aformat",
        choices=list(ALIGNMENT_FORMATS),
        default="fasta",
        help="Alignment output format for .aln and .full.aln (default: fasta).",
    )
    m.add_argument(
        "--substitutions-only",
        action="store_true",
        help="Only use report rows typed snp/mnp (skip length-preserving complex calls).",
    )

    # Tree
    m.add_argument("--tree", action="store_true", help="Build a neighbor-joining tree from the core alignment.")
    m.add_argument(
        "--tree-format",
        choices=list(TREE_FORMATS),
        default="newick",
        help="Tree text format (default: newick).",
    )
    m.add_argument(
        "--tree-diagram",
        choices=list(DIAGRAM_FORMATS),
        default="png",
        help="Rendered tree diagram format (default: png).",
    )

    # Outputs
    m.add_argument("--html-report", action="store_true", help="Write <prefix>.report.html with a coverage plot.")
    m.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")

    m.add_argument("-q", "--quiet", action="store_true", help="Only report warnings and errors.")
    m.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "snpcore quickstart (copy/paste):",
        "",
        "1) Core SNPs from caller output directories:",
        "   snpcore merge sampleA/ sampleB/ sampleC/ \\",
        "     --prefix core \\",
        "     --outdir results/",
        "   Outputs: results/core.aln, core.full.aln, core.tab, core.nway.tab, core.vcf, core.txt",
        "",
        "2) Core SNPs plus a neighbor-joining tree and HTML report:",
        "   snpcore merge samples/* \\",
        "     --tree --html-report \\",
        "     --outdir results/",
        "   Outputs: results/core.tree, results/core.tree.png, results/core.report.html",
        "",
        "3) Samples only (no Reference column), PHYLIP output:",
        "   snpcore merge samples/* --no-ref --aformat phylip-relaxed",
        "",
        "Tip: use --dry-run to validate inputs and list the files that will be written.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _config_from_args(args: argparse.Namespace) -> CoreConfig:
    return CoreConfig(
        sample_dirs=list(args.sample_dirs),
        outdir=str(Path(args.outdir).expanduser().resolve()),
        prefix=str(args.prefix),
        input_prefix=str(args.input_prefix),
        reference=args.reference,
        include_reference=not bool(args.no_ref),
        aln_format=str(args.aformat),
        substitutions_only=bool(args.substitutions_only),
        tree=bool(args.tree),
        tree_format=str(args.tree_format),
        tree_diagram=str(args.tree_diagram),
        html_report=bool(args.html_report),
        progress=not bool(args.quiet),
    )


def cmd_merge(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "merge.log")
    _setup_logging(args.verbose, quiet=bool(args.quiet), logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("snpcore")
    logger.info("snpcore %s", __version__)

    try:
        config = _config_from_args(args)

        if args.dry_run:
            plan = plan_run(config)
            print("Dry-run: inputs look OK.")
            print(f"Reference: {plan['reference']}" + ("" if plan["reference_exists"] else " (MISSING)"))
            print("Samples:")
            for s in plan["samples"]:
                note = " (fallback)" if s["consensus_fallback"] else ""
                print(f"  {s['id']}: {s['variants']}, {s['consensus']}{note}")
            print("Planned outputs:")
            for name, path in plan["outputs"].items():
                print(f"  {name} -> {path}")
            return 0 if plan["reference_exists"] else 2

        summary = run_core(config)
        print(summary["outputs"]["core_alignment"])
        return 0
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "merge":
        return cmd_merge(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
