"""pcgeo – point-cloud geometry engine.

Core components:
- PointCloud & AxisAlignedBoundingBox (core.pointcloud, core.boundingvolume)
- KDTree and its search parameters (core.kdtree, core.search)
- Transforms (core.transform), voxel/uniform downsampling (core.downsample)
- Index selection, cropping and outlier removal (core.selection)
- PCA normal estimation and orientation (core.normals)
- Operation/Pipeline chaining used by the config-driven SDK and CLI

The core works on in-memory NumPy buffers only; ``runtime.buffers`` is the
``.npz`` hand-off used by the SDK and CLI.
"""

from .core.errors import PointCloudError, InvalidArgumentError, IndexOutOfRangeError
from .core.boundingvolume import AxisAlignedBoundingBox
from .core.pointcloud import PointCloud
from .core.search import KDTreeSearchParamKNN, KDTreeSearchParamRadius, KDTreeSearchParamHybrid
from .core.kdtree import KDTree, NeighborResult
from .core.transform import transform, translate, scale, rotate, rotation_matrix_from_rpy
from .core.downsample import uniform_down_sample, voxel_down_sample
from .core.selection import (
    select_by_index, crop, remove_non_finite_points, remove_radius_outliers,
    remove_statistical_outliers, compute_nearest_neighbor_distance,
)
from .core.normals import (
    estimate_normals, normalize_normals, orient_normals_to_align_with_direction,
    orient_normals_towards_camera_location,
)
from .core.operations import (
    Operation, TransformOp, UniformDownSampleOp, VoxelDownSampleOp, SelectByIndexOp, CropOp,
    RemoveNonFiniteOp, RadiusOutlierOp, StatisticalOutlierOp, EstimateNormalsOp,
    NormalizeNormalsOp, OrientNormalsOp,
)
from .core.pipeline import Pipeline, PipelineResult
