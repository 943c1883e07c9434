"""
Run folders for section builds.

Each build gets ``<runs>/<UTC stamp>_<slug>/`` holding the model it was built
from and everything it produced::

    input/<model>.json
    artifacts/section.glb
    metrics.json      per-layer report plus timing
    summary.md        human-readable layer table
    manifest.json     options snapshot and artifact paths

``<runs>/latest`` points at the newest completed run.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union

from assembly_section.contracts import SectionOptions

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def run_slug(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "section"


@dataclass
class SectionRun:
    """One build's folder. ``start`` creates it; ``record`` fills it in."""

    runs_root: Path
    run_id: str
    name: str
    model_path: Path
    started: float

    @classmethod
    def start(cls, runs_root: PathLike, name: str, model: PathLike) -> "SectionRun":
        """Create the run folder and snapshot the input model into it."""
        runs_root = Path(runs_root)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        run_id = f"{stamp}_{run_slug(name)}"
        run = cls(
            runs_root=runs_root,
            run_id=run_id,
            name=name,
            model_path=runs_root / run_id / "input" / Path(model).name,
            started=time.perf_counter(),
        )
        run.model_path.parent.mkdir(parents=True, exist_ok=True)
        run.artifacts_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(model, run.model_path)
        logger.debug("Started run %s", run.run_dir)
        return run

    @property
    def run_dir(self) -> Path:
        return self.runs_root / self.run_id

    @property
    def artifacts_dir(self) -> Path:
        return self.run_dir / "artifacts"

    @property
    def section_path(self) -> Path:
        return self.artifacts_dir / "section.glb"

    @property
    def metrics_path(self) -> Path:
        return self.run_dir / "metrics.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    def load_model(self) -> Any:
        return read_json(self.model_path)

    def record(self, options: SectionOptions, report: Dict[str, Any]) -> float:
        """Write metrics, summary and manifest, then move ``latest`` here.

        Returns the elapsed build time in seconds.
        """
        elapsed = time.perf_counter() - self.started
        _write_json(self.metrics_path, {"run_id": self.run_id, "elapsed_s": round(elapsed, 3), **report})
        self.summary_path.write_text(render_summary(self.run_id, elapsed, report), encoding="utf-8")
        _write_json(
            self.manifest_path,
            {
                "run_id": self.run_id,
                "name": self.name,
                "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
                "input_model": str(self.model_path),
                "options": {
                    "min_thickness": options.min_thickness,
                    "assembly_width": options.assembly_width,
                    "assembly_height": options.assembly_height,
                    "max_layer_thickness": options.max_layer_thickness,
                },
                "artifacts": {
                    "section_glb": str(self.section_path),
                    "metrics": str(self.metrics_path),
                    "summary": str(self.summary_path),
                },
            },
        )
        self._point_latest()
        logger.info("Recorded run %s (%.2fs)", self.run_id, elapsed)
        return elapsed

    def _point_latest(self) -> None:
        latest = self.runs_root / "latest"
        if latest.is_symlink() or latest.is_file():
            latest.unlink()
        elif latest.exists():
            shutil.rmtree(latest)
        try:
            latest.symlink_to(os.path.relpath(self.run_dir, self.runs_root))
        except OSError:
            # No symlink support: leave the run id in a marker file.
            latest.mkdir(parents=True, exist_ok=True)
            (latest / "latest_run.txt").write_text(self.run_id, encoding="utf-8")


def render_summary(run_id: str, elapsed_s: float, report: Dict[str, Any]) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Layers: {len(report['layers'])}",
        f"- Total thickness: {report['total_thickness']:.2f}",
        "",
        "| # | Layer | Thickness | z | Coverage |",
        "| --- | --- | --- | --- | --- |",
    ]
    for layer in report["layers"]:
        lines.append(
            f"| {layer['index']} | {layer['name']} | {layer['thickness']:.2f} "
            f"| {layer['z_min']:.2f}-{layer['z_max']:.2f} | {layer['coverage']:.0%} |"
        )
    lines.append("")
    return "\n".join(lines)


def read_json(path: PathLike) -> Any:
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
