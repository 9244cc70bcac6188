from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import yaml

from pcgeo.config import load_config
from pcgeo.core.errors import IndexOutOfRangeError
from pcgeo.examples.synthetic import generate_cloud
from pcgeo.runtime.buffers import load_cloud_npz, save_cloud_npz
from pcgeo.sdk import process_from_config


def _write_input(path: Path) -> None:
    save_cloud_npz(generate_cloud("plane", n=400, size=10.0, with_colors=True), path)


def _write_config(path: Path, input_name: str, output_name: str, steps: list) -> None:
    config = {
        "input": {"path": input_name},
        "steps": steps,
        "output": {"path": output_name},
    }
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config, f)


STEPS = [
    {"kind": "transform", "xyz": [0.0, 0.0, 2.0]},
    {"kind": "uniform_down_sample", "every_k_points": 2},
    {"kind": "estimate_normals", "search": {"kind": "knn", "knn": 8}},
    {"kind": "orient_normals", "direction": [0.0, 0.0, -1.0]},
]


def test_process_from_config_path(tmp_path: Path) -> None:
    _write_input(tmp_path / "plane.npz")
    cfg_path = tmp_path / "job.yaml"
    _write_config(cfg_path, "plane.npz", "processed.npz", STEPS)

    result = process_from_config(cfg_path)

    assert result.output_path.exists()
    assert str(result.output_path).endswith("processed.npz")
    cloud = load_cloud_npz(result.output_path)
    assert len(cloud) == 200
    np.testing.assert_allclose(cloud.points[:, 2], 2.0)
    np.testing.assert_allclose(cloud.normals[:, 2], -1.0, atol=1e-9)
    assert cloud.has_colors()
    assert result.stats["points_in"] == 400
    assert result.stats["points_out"] == 200
    assert result.stats["steps"] == ["transform", "uniform_down_sample", "estimate_normals", "orient_normals"]


def test_process_from_config_object_override(tmp_path: Path) -> None:
    _write_input(tmp_path / "plane.npz")
    cfg_path = tmp_path / "job.yaml"
    _write_config(cfg_path, "plane.npz", "first.npz", STEPS[:2])

    cfg = load_config(cfg_path)
    override_path = tmp_path / "override.npz"
    result = process_from_config(cfg, output=override_path)

    assert result.output_path == override_path.resolve()
    assert result.output_path.exists()
    assert not (tmp_path / "first.npz").exists()
    # The caller's config object is not modified.
    assert cfg.output.path == (tmp_path / "first.npz").resolve()
    assert result.config.output.path == override_path.resolve()


def test_process_from_config_input_override(tmp_path: Path) -> None:
    other = tmp_path / "other.npz"
    save_cloud_npz(generate_cloud("cube", n=30), other)
    cfg_path = tmp_path / "job.yaml"
    _write_config(cfg_path, "missing.npz", "out.npz", [])

    result = process_from_config(cfg_path, input_path=other)
    assert result.stats["points_out"] == 30


def test_process_from_config_rejects_bad_output(tmp_path: Path) -> None:
    cfg_path = tmp_path / "job.yaml"
    _write_config(cfg_path, "plane.npz", "out.npz", [])
    with pytest.raises(ValueError):
        process_from_config(cfg_path, output=tmp_path / "out.ply")


def test_process_from_config_propagates_engine_errors(tmp_path: Path) -> None:
    _write_input(tmp_path / "plane.npz")
    cfg_path = tmp_path / "job.yaml"
    _write_config(cfg_path, "plane.npz", "out.npz", [{"kind": "select_by_index", "indices": [0, 5000]}])
    with pytest.raises(IndexOutOfRangeError):
        process_from_config(cfg_path)
    assert not (tmp_path / "out.npz").exists()
