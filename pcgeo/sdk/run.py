from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..config import ProcessingConfig, load_config
from ..runtime.buffers import load_cloud_npz, save_cloud_npz
from ..runtime.builders import build_pipeline


@dataclass(frozen=True)
class ConfigRunResult:
    """Summary of a processing run driven by a configuration file."""

    stats: Dict[str, Any]
    output_path: Path
    config: ProcessingConfig


def process_from_config(
    config: Union[str, Path, ProcessingConfig],
    *,
    input_path: Optional[Path] = None,
    output: Optional[Path] = None,
) -> ConfigRunResult:
    """Run the processing steps described by a configuration file or object.

    Parameters
    ----------
    config:
        Path to a YAML file or a pre-loaded :class:`~pcgeo.config.schema.ProcessingConfig`.
    input_path:
        Optional override for the ``.npz`` archive holding the input buffers.
    output:
        Optional override for the ``.npz`` archive written at the end.

    Returns
    -------
    ConfigRunResult
        Includes run statistics (point counts, step names), the resolved output
        path, and the resolved configuration object used for the run.
    """

    cfg = load_config(config) if not isinstance(config, ProcessingConfig) else config.model_copy(deep=True)

    if input_path is not None:
        cfg.input.path = Path(input_path).resolve()
    if output is not None:
        out_path = Path(output).resolve()
        if out_path.suffix.lower() != ".npz":
            raise ValueError(f"Unsupported output extension '{out_path.suffix}'")
        cfg.output.path = out_path

    # Build every step before touching any file so bad parameters fail early.
    pipeline = build_pipeline(cfg)
    cloud = load_cloud_npz(
        cfg.input.path,
        points_key=cfg.input.points_key,
        normals_key=cfg.input.normals_key,
        colors_key=cfg.input.colors_key,
    )
    result = pipeline.run(cloud)
    save_cloud_npz(result.cloud, cfg.output.path, compress=cfg.output.compress)

    return ConfigRunResult(stats=result.stats(), output_path=Path(cfg.output.path), config=cfg)
