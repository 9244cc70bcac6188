from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import typer

from ..core.errors import PointCloudError
from ..examples.synthetic import generate_cloud
from ..runtime.buffers import load_cloud_npz, save_cloud_npz
from ..sdk import process_from_config

app = typer.Typer(help="pcgeo point-cloud geometry utilities")


def _configure_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format="[%(levelname)s] %(message)s")
    logging.getLogger("pcgeo").setLevel(numeric)


def _execute_process(
    config: Path,
    input_override: Optional[Path],
    output_override: Optional[Path],
    log_level: str,
) -> None:
    _configure_logging(log_level)
    if output_override is not None and output_override.suffix.lower() != ".npz":
        raise typer.BadParameter(f"Unsupported output extension '{output_override.suffix}'", param_hint="--output")
    try:
        result = process_from_config(config, input_path=input_override, output=output_override)
    except PointCloudError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc
    stats = result.stats
    typer.echo(f"Completed {len(stats['steps'])} steps: {stats['points_in']} → {stats['points_out']} points → {result.output_path}")


@app.command("process")
def process(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    input_path: Optional[Path] = typer.Option(None, "--input", "-i", help="Override input .npz archive."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output .npz archive."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Run the processing steps specified by a YAML config."""

    _execute_process(config, input_path, output, log_level)


@app.command("run")
def run(
    config: Path = typer.Argument(..., exists=True, readable=True, help="Path to YAML configuration file."),
    input_path: Optional[Path] = typer.Option(None, "--input", "-i", help="Override input .npz archive."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Override output .npz archive."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level (e.g. INFO, DEBUG)."),
) -> None:
    """Alias for `process`"""

    _execute_process(config, input_path, output, log_level)


@app.command("generate")
def generate(
    output: Path = typer.Argument(..., help="Output .npz archive."),
    preset: str = typer.Option("cube", "--preset", help="Synthetic cloud preset (cube, plane, sphere)."),
    n: int = typer.Option(1000, "--points", "-n", help="Number of points."),
    size: float = typer.Option(10.0, "--size", help="Scene extent scaling factor."),
    noise: float = typer.Option(0.0, "--noise", help="Gaussian noise applied by plane/sphere presets."),
    colors: bool = typer.Option(False, "--colors/--no-colors", help="Attach position-derived colors."),
    seed: int = typer.Option(0, "--seed", help="Random seed."),
) -> None:
    """Generate a synthetic point cloud useful for demos."""

    if n <= 0:
        raise typer.BadParameter("Number of points must be positive.", param_hint="--points")
    if output.suffix.lower() != ".npz":
        raise typer.BadParameter("Output must end with .npz", param_hint="output")
    try:
        cloud = generate_cloud(preset, n=n, size=size, seed=seed, noise=noise, with_colors=colors)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--preset") from exc
    out = save_cloud_npz(cloud, output.resolve())
    typer.echo(f"Wrote {len(cloud)} points to {out}")


@app.command("info")
def info(
    path: Path = typer.Argument(..., exists=True, readable=True, help="Input .npz archive."),
) -> None:
    """Print point count, attributes and bounds of a stored cloud."""

    cloud = load_cloud_npz(path)
    lo = np.array2string(cloud.get_min_bound(), precision=4)
    hi = np.array2string(cloud.get_max_bound(), precision=4)
    typer.echo(f"points: {len(cloud)}")
    typer.echo(f"normals: {cloud.has_normals()}  colors: {cloud.has_colors()}")
    typer.echo(f"bounds: {lo} .. {hi}")


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
