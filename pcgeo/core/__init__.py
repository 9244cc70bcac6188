from .errors import PointCloudError, InvalidArgumentError, IndexOutOfRangeError
from .boundingvolume import AxisAlignedBoundingBox
from .pointcloud import PointCloud
from .search import KDTreeSearchParamKNN, KDTreeSearchParamRadius, KDTreeSearchParamHybrid, SearchParam
from .kdtree import KDTree, NeighborResult
from .pipeline import Pipeline, PipelineResult
