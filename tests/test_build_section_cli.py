from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPT = REPO_ROOT / "scripts" / "build_section.py"


def _write_model(tmp_path: Path, model) -> Path:
    path = tmp_path / "model.json"
    path.write_text(json.dumps(model), encoding="utf-8")
    return path


def test_build_section_cli_emits_artifacts(wall_model, tmp_path: Path):
    model_path = _write_model(tmp_path, wall_model)
    runs_dir = tmp_path / "runs"
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--model",
        str(model_path),
        "--name",
        "brick veneer wall",
        "--runs-dir",
        str(runs_dir),
        "--no-origin-marker",
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    assert "Run ID:" in proc.stdout
    assert "Layers: 4" in proc.stdout

    run_dirs = sorted(
        [path for path in runs_dir.iterdir() if path.is_dir() and path.name != "latest"]
    )
    assert len(run_dirs) == 1
    run_dir = run_dirs[0]
    assert run_dir.name.endswith("brick-veneer-wall")

    assert (run_dir / "input" / "model.json").exists()
    assert (run_dir / "artifacts" / "section.glb").stat().st_size > 0

    metrics = json.loads((run_dir / "metrics.json").read_text(encoding="utf-8"))
    assert [layer["name"] for layer in metrics["layers"]] == [
        "gypsum",
        "layer name",
        "air gap",
        "brick",
    ]
    assert abs(metrics["total_thickness"] - 217.7) < 1e-6

    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["options"]["assembly_width"] == 500
    summary = (run_dir / "summary.md").read_text(encoding="utf-8")
    assert "| 3 | brick |" in summary


def test_build_section_cli_options_file(scenario_model, tmp_path: Path):
    model_path = _write_model(tmp_path, scenario_model)
    options_path = tmp_path / "options.json"
    options_path.write_text(json.dumps({"minThickness": 15}), encoding="utf-8")
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--model",
        str(model_path),
        "--options",
        str(options_path),
        "--runs-dir",
        str(tmp_path / "runs"),
        "--no-bounding-boxes",
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    # 15 + 20 + 15
    assert "Total thickness: 50.00" in proc.stdout


def test_build_section_cli_rejects_malformed_model(tmp_path: Path):
    model_path = _write_model(tmp_path, {"layers": [{"type": "membrane"}]})
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--model",
        str(model_path),
        "--runs-dir",
        str(tmp_path / "runs"),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 2
    assert "Malformed model" in proc.stderr


def test_build_section_cli_rejects_non_string_type(tmp_path: Path):
    model_path = _write_model(tmp_path, {"layers": [{"type": ["sheet"], "offset": 5}]})
    cmd = [sys.executable, str(SCRIPT), "--model", str(model_path), "--runs-dir", str(tmp_path / "runs")]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 2
    assert "Malformed model" in proc.stderr
    assert "Traceback" not in proc.stderr


def test_build_section_cli_requires_positive_min_thickness(scenario_model, tmp_path: Path):
    model_path = _write_model(tmp_path, scenario_model)
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--model",
        str(model_path),
        "--runs-dir",
        str(tmp_path / "runs"),
        "--min-thickness",
        "0",
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 2
    assert "must be positive" in proc.stderr
    assert not (tmp_path / "runs").exists()
