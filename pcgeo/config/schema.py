from __future__ import annotations

from pathlib import Path
from typing import Annotated, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, model_validator


class InputConfig(BaseModel):
    path: Path
    points_key: str = "points"
    normals_key: str = "normals"
    colors_key: str = "colors"


class KnnSearchConfig(BaseModel):
    kind: Literal["knn"]
    knn: PositiveInt = 30


class RadiusSearchConfig(BaseModel):
    kind: Literal["radius"]
    radius: PositiveFloat


class HybridSearchConfig(BaseModel):
    kind: Literal["hybrid"]
    radius: PositiveFloat
    max_nn: PositiveInt = 30


SearchConfig = Annotated[
    Union[KnnSearchConfig, RadiusSearchConfig, HybridSearchConfig],
    Field(discriminator="kind"),
]


class TransformStepConfig(BaseModel):
    kind: Literal["transform"]
    matrix: Optional[List[List[float]]] = None
    xyz: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @model_validator(mode="after")
    def _validate_matrix(self) -> "TransformStepConfig":
        if self.matrix is not None:
            if len(self.matrix) != 4 or any(len(row) != 4 for row in self.matrix):
                raise ValueError("transform matrix must be 4x4")
        return self


class UniformDownSampleStepConfig(BaseModel):
    kind: Literal["uniform_down_sample"]
    every_k_points: PositiveInt


class VoxelDownSampleStepConfig(BaseModel):
    kind: Literal["voxel_down_sample"]
    voxel_size: PositiveFloat


class SelectByIndexStepConfig(BaseModel):
    kind: Literal["select_by_index"]
    indices: List[int]
    invert: bool = False


class CropStepConfig(BaseModel):
    kind: Literal["crop"]
    min_bound: tuple[float, float, float]
    max_bound: tuple[float, float, float]

    @model_validator(mode="after")
    def _validate_bounds(self) -> "CropStepConfig":
        if any(lo > hi for lo, hi in zip(self.min_bound, self.max_bound)):
            raise ValueError("crop min_bound must not exceed max_bound")
        return self


class RemoveNonFiniteStepConfig(BaseModel):
    kind: Literal["remove_non_finite"]


class RadiusOutlierStepConfig(BaseModel):
    kind: Literal["remove_radius_outliers"]
    nb_points: PositiveInt
    radius: PositiveFloat


class StatisticalOutlierStepConfig(BaseModel):
    kind: Literal["remove_statistical_outliers"]
    nb_neighbors: PositiveInt = 20
    std_ratio: PositiveFloat = 2.0


class EstimateNormalsStepConfig(BaseModel):
    kind: Literal["estimate_normals"]
    search: SearchConfig = KnnSearchConfig(kind="knn")


class NormalizeNormalsStepConfig(BaseModel):
    kind: Literal["normalize_normals"]


class OrientNormalsStepConfig(BaseModel):
    kind: Literal["orient_normals"]
    direction: Optional[tuple[float, float, float]] = None
    camera_location: Optional[tuple[float, float, float]] = None

    @model_validator(mode="after")
    def _validate_reference(self) -> "OrientNormalsStepConfig":
        if self.direction is not None and self.camera_location is not None:
            raise ValueError("orient_normals takes either direction or camera_location, not both")
        if self.direction is not None and not any(self.direction):
            raise ValueError("orient_normals direction must be non-zero")
        return self


StepConfig = Annotated[
    Union[
        TransformStepConfig,
        UniformDownSampleStepConfig,
        VoxelDownSampleStepConfig,
        SelectByIndexStepConfig,
        CropStepConfig,
        RemoveNonFiniteStepConfig,
        RadiusOutlierStepConfig,
        StatisticalOutlierStepConfig,
        EstimateNormalsStepConfig,
        NormalizeNormalsStepConfig,
        OrientNormalsStepConfig,
    ],
    Field(discriminator="kind"),
]


class OutputConfig(BaseModel):
    path: Path
    compress: bool = False


class ProcessingConfig(BaseModel):
    input: InputConfig
    steps: List[StepConfig] = Field(default_factory=list)
    output: OutputConfig

    @model_validator(mode="after")
    def _validate_paths(self) -> "ProcessingConfig":
        if self.output.path.suffix.lower() != ".npz":
            raise ValueError("output path must end with .npz")
        return self


def load_config(path: str | Path) -> ProcessingConfig:
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration root must be a mapping.")
    cfg = ProcessingConfig.model_validate(data)
    if not cfg.output.path.is_absolute():
        cfg.output.path = (path.parent / cfg.output.path).resolve()
    if not cfg.input.path.is_absolute():
        cfg.input.path = (path.parent / cfg.input.path).resolve()
    return cfg
