from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

from .utils import ensure_outdir, write_json

TAB_HEADER = [
    "CHROM",
    "POS",
    "TYPE",
    "REF",
    "ALT",
    "EVIDENCE",
    "FTYPE",
    "STRAND",
    "NT_POS",
    "AA_POS",
    "EFFECT",
    "LOCUS_TAG",
    "GENE",
    "PRODUCT",
]


def _write_fasta(path: Path, records: Mapping[str, str]) -> None:
    lines: List[str] = []
    for name, seq in records.items():
        lines.append(f">{name}")
        for i in range(0, len(seq), 60):
            lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base:
            return alt
    return "A"


def toy_reference() -> Dict[str, str]:
    return {
        "chr1": ("ACGT" * 30)[:120],
        "plasmid": ("GATTACA" * 9)[:60],
    }


def _substitution(ref: Mapping[str, str], chrom: str, pos: int, length: int = 1) -> Tuple[str, str]:
    ref_allele = ref[chrom][pos - 1 : pos - 1 + length]
    alt_allele = "".join(_mutate_base(b) for b in ref_allele)
    return ref_allele, alt_allele


def write_sample(
    sample_dir: str | Path,
    *,
    reference: Mapping[str, str],
    variants: Sequence[Tuple[str, int, str, str, str]],
    masked: Sequence[Tuple[str, int, str]] = (),
    input_prefix: str = "snps",
    annotate: bool = True,
) -> Path:
    """Write one caller-style sample directory.

    Parameters
    ----------
    variants:
        ``(chrom, pos, type, ref, alt)`` rows for the report. Equal-length rows are
        also applied to the consensus.
    masked:
        ``(chrom, pos, marker)`` positions set to ``N`` or ``-`` in the consensus.
    """
    d = ensure_outdir(sample_dir)
    ref_dir = ensure_outdir(d / "reference")
    _write_fasta(ref_dir / "ref.fa", reference)

    consensus = {name: list(seq) for name, seq in reference.items()}
    rows: List[str] = ["\t".join(TAB_HEADER)]
    for i, (chrom, pos, vtype, ref_allele, alt_allele) in enumerate(variants, start=1):
        if len(ref_allele) == len(alt_allele):
            for offset, base in enumerate(alt_allele):
                consensus[chrom][pos - 1 + offset] = base
        fields = [chrom, str(pos), vtype, ref_allele, alt_allele, f"{alt_allele}:30 {ref_allele}:0"]
        fields += ["CDS", "+", f"{pos}/1000", f"{(pos + 2) // 3}/333"]
        if annotate:
            fields += [f"missense_variant c.{pos}{ref_allele}>{alt_allele}", f"TOY_{i:05d}", f"gene{i}", "hypothetical protein"]
        else:
            fields += ["", "", "", ""]
        rows.append("\t".join(fields))
    (d / f"{input_prefix}.tab").write_text("\n".join(rows) + "\n", encoding="utf-8")

    for chrom, pos, marker in masked:
        consensus[chrom][pos - 1] = marker
    _write_fasta(d / f"{input_prefix}.aligned.fa", {k: "".join(v) for k, v in consensus.items()})
    return d


def make_toy_data(*, outdir: str | Path) -> Dict[str, object]:
    """Create a tiny reference and three sample directories for quick demos/tests.

    The samples share one SNP (core), carry private SNPs and an MNP, and one
    sample has a low-confidence position over another sample's variant
    (non-core). An insertion row exercises the length-mismatch skip.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    ref = toy_reference()
    _write_fasta(outdir_p / "toy_ref.fa", ref)

    shared = ("chr1", 11, "snp", *_substitution(ref, "chr1", 11))
    mnp = ("chr1", 31, "mnp", *_substitution(ref, "chr1", 31, length=2))
    private_b = ("chr1", 51, "snp", *_substitution(ref, "chr1", 51))
    plasmid = ("plasmid", 6, "snp", *_substitution(ref, "plasmid", 6))
    insertion = ("chr1", 80, "ins", ref["chr1"][79], ref["chr1"][79] + "GG")

    sample_dirs = [
        write_sample(outdir_p / "sampleA", reference=ref, variants=[shared, mnp, plasmid, insertion]),
        write_sample(
            outdir_p / "sampleB",
            reference=ref,
            variants=[shared, private_b],
            masked=[("chr1", 31, "N"), ("chr1", 100, "-")],
        ),
        write_sample(outdir_p / "sampleC", reference=ref, variants=[plasmid], masked=[("chr1", 51, "N")]),
    ]

    summary: Dict[str, object] = {
        "ref_fa": str(outdir_p / "toy_ref.fa"),
        "sample_dirs": [str(d) for d in sample_dirs],
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
