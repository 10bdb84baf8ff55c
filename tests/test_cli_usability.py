import subprocess
import sys
from pathlib import Path

from snpcore.toy_data import make_toy_data, toy_reference, write_sample


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "snpcore"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "snpcore merge" in cp.stdout
    assert "--tree" in cp.stdout


def test_make_toy_data_and_merge(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "merge",
            str(toy_dir / "sampleA"),
            str(toy_dir / "sampleB"),
            str(toy_dir / "sampleC"),
            "--outdir",
            str(outdir),
            "--prefix",
            "run1",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    for suffix in ["txt", "full.aln", "tab", "nway.tab", "vcf", "aln", "summary.json"]:
        assert (outdir / f"run1.{suffix}").exists(), suffix
    assert (outdir / "logs" / "merge.log").exists()
    assert "Done: 3 core SNP(s)" in cp.stderr


def test_quiet_suppresses_progress(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["merge", *toy["sample_dirs"], "--outdir", str(tmp_path / "out"), "--quiet"])
    assert cp.returncode == 0
    assert "[INFO]" not in cp.stderr


def test_merge_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(["merge", *toy["sample_dirs"], "--outdir", str(outdir), "--tree", "--dry-run"])
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert "core.tree" in cp.stdout
    assert not outdir.exists()


def test_duplicate_sample_id_exits_nonzero(tmp_path: Path) -> None:
    ref = toy_reference()
    a = write_sample(tmp_path / "x" / "iso", reference=ref, variants=[])
    b = write_sample(tmp_path / "y" / "iso", reference=ref, variants=[])
    cp = _run_cli(["merge", str(a), str(b), "--outdir", str(tmp_path / "out")])
    assert cp.returncode == 2
    assert "[ERROR]" in cp.stderr
    assert "Duplicate sample ID" in cp.stderr
    assert not (tmp_path / "out" / "core.tab").exists()


def test_bad_report_header_exits_nonzero(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    (Path(toy["sample_dirs"][1]) / "snps.tab").write_text("#bad header\n", encoding="utf-8")
    cp = _run_cli(["merge", *toy["sample_dirs"], "--outdir", str(tmp_path / "out")])
    assert cp.returncode == 2
    assert "must start with 'CHROM'" in cp.stderr


def test_missing_sample_dir_is_usage_error(tmp_path: Path) -> None:
    cp = _run_cli(["merge", str(tmp_path / "nope")])
    assert cp.returncode == 2
    assert "Path does not exist" in cp.stderr
