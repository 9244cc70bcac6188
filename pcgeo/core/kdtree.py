from __future__ import annotations
from dataclasses import dataclass
from typing import List, Sequence, Tuple
import numpy as np

from .errors import InvalidArgumentError
from .search import (
    KDTreeSearchParamHybrid, KDTreeSearchParamKNN, KDTreeSearchParamRadius, SearchParam,
    _check_count, _check_radius,
)
from .utils import as_vector3, as_vector3_array, get_logger

_log = get_logger()

DEFAULT_CHUNK_SIZE = 4096


@dataclass
class NeighborResult:
    """Padded neighbor lists for a batch of queries.

    Row ``i`` holds ``counts[i]`` valid entries sorted by (distance, index);
    the rest is padding (index ``-1``, distance ``inf``).
    """
    indices: np.ndarray       # (M, K) int64
    distances2: np.ndarray    # (M, K) float64, squared distances
    counts: np.ndarray        # (M,) int64

    def neighbors(self, i: int) -> np.ndarray:
        return self.indices[i, : self.counts[i]]


def _group_rank(query_ids: np.ndarray) -> np.ndarray:
    # Position of each entry inside its run of equal (sorted) query ids.
    first = np.searchsorted(query_ids, query_ids, side="left")
    return np.arange(len(query_ids), dtype=np.int64) - first


class KDTree:
    """Static k-d tree over a snapshot of 3D points.

    Nodes live in flat arrays (``left``/``right`` hold node ids, ``-1`` for
    leaves); every node covers the contiguous slice ``order[start:end]`` and
    keeps the bounding box of those points. Splits are at the median along the
    axis of widest extent.

    Queries are answered for a whole batch at once: a frontier of
    ``(query, node)`` pairs descends level by level, pairs whose box lies
    beyond the query's bound are dropped, and leaves are expanded into
    candidate points with array operations only. Single-point queries go
    through the same path with a batch of one.

    Results are sorted by squared distance, ties by ascending point index, so
    queries are reproducible regardless of tree shape.
    """

    def __init__(self, points: np.ndarray, leaf_size: int = 16) -> None:
        self.leaf_size = _check_count("leaf_size", leaf_size)
        self._points = as_vector3_array(points, "points")
        self._order = np.arange(len(self._points), dtype=np.int64)
        self._build()
        _log.debug("Built KDTree over %d points (%d nodes)", len(self._points), len(self._left))

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        return self._points

    # -- construction --
    def _build(self) -> None:
        pts = self._points
        left: List[int] = []
        right: List[int] = []
        start: List[int] = []
        end: List[int] = []
        split_dim: List[int] = []
        split_val: List[float] = []
        lo: List[np.ndarray] = []
        hi: List[np.ndarray] = []

        def new_node(s: int, e: int) -> int:
            sub = pts[self._order[s:e]]
            left.append(-1)
            right.append(-1)
            start.append(s)
            end.append(e)
            split_dim.append(-1)
            split_val.append(0.0)
            lo.append(sub.min(axis=0))
            hi.append(sub.max(axis=0))
            return len(left) - 1

        if len(pts) > 0:
            stack = [new_node(0, len(pts))]
            while stack:
                nid = stack.pop()
                s, e = start[nid], end[nid]
                if e - s <= self.leaf_size:
                    continue
                extent = hi[nid] - lo[nid]
                dim = int(np.argmax(extent))
                if extent[dim] <= 0.0:
                    # All points coincide; keep as an oversized leaf.
                    continue
                mid = s + (e - s) // 2
                seg = self._order[s:e]
                part = np.argpartition(pts[seg, dim], mid - s, kind="introselect")
                self._order[s:e] = seg[part]
                split_dim[nid] = dim
                split_val[nid] = float(pts[self._order[mid], dim])
                lchild = new_node(s, mid)
                rchild = new_node(mid, e)
                left[nid] = lchild
                right[nid] = rchild
                stack.append(lchild)
                stack.append(rchild)

        self._left = np.asarray(left, dtype=np.int64)
        self._right = np.asarray(right, dtype=np.int64)
        self._start = np.asarray(start, dtype=np.int64)
        self._end = np.asarray(end, dtype=np.int64)
        self._split_dim = np.asarray(split_dim, dtype=np.int64)
        self._split_val = np.asarray(split_val, dtype=np.float64)
        self._lo = np.asarray(lo, dtype=np.float64).reshape(-1, 3)
        self._hi = np.asarray(hi, dtype=np.float64).reshape(-1, 3)

    # -- batched traversal --
    def _expand(self, pair_q: np.ndarray, pair_node: np.ndarray, qs: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Every point under each ``(query, node)`` pair, with its squared distance."""
        starts = self._start[pair_node]
        lens = self._end[pair_node] - starts
        total = int(lens.sum())
        rep_q = np.repeat(pair_q, lens)
        offsets = np.arange(total, dtype=np.int64) - np.repeat(np.cumsum(lens) - lens, lens)
        idx = self._order[np.repeat(starts, lens) + offsets]
        diff = self._points[idx] - qs[rep_q]
        return rep_q, idx, np.einsum("ij,ij->i", diff, diff)

    def _knn_bound(self, qs: np.ndarray, k: int) -> np.ndarray:
        """Upper bound on each query's k-th nearest squared distance.

        Each query descends towards its own region while the child still holds
        at least ``k`` points; the k-th closest point of that subtree bounds
        the true k-th neighbor distance.
        """
        m = len(qs)
        if len(self._points) < k:
            return np.full(m, np.inf)
        node = np.zeros(m, dtype=np.int64)
        sizes = self._end - self._start
        active = np.arange(m, dtype=np.int64)
        while len(active):
            active = active[self._left[node[active]] >= 0]
            if not len(active):
                break
            n = node[active]
            go_left = qs[active, self._split_dim[n]] < self._split_val[n]
            child = np.where(go_left, self._left[n], self._right[n])
            ok = sizes[child] >= k
            node[active[ok]] = child[ok]
            active = active[ok]
        rep_q, _, d2 = self._expand(np.arange(m, dtype=np.int64), node, qs)
        order = np.lexsort((d2, rep_q))
        first = np.cumsum(sizes[node]) - sizes[node]
        return d2[order][first + k - 1]

    def _collect(self, qs: np.ndarray, bound2: np.ndarray, cap: int = 0) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """All points with squared distance <= ``bound2[q]``, sorted by (query, d2, index).

        With ``cap > 0`` only the first ``cap`` entries per query are kept.
        """
        found_q: List[np.ndarray] = []
        found_i: List[np.ndarray] = []
        found_d: List[np.ndarray] = []
        pair_q = np.arange(len(qs), dtype=np.int64)
        pair_node = np.zeros(len(qs), dtype=np.int64)
        while len(pair_q):
            q = qs[pair_q]
            gap = np.maximum(np.maximum(self._lo[pair_node] - q, q - self._hi[pair_node]), 0.0)
            # Equal distances are kept so ties resolve by index.
            near = np.einsum("ij,ij->i", gap, gap) <= bound2[pair_q]
            pair_q, pair_node = pair_q[near], pair_node[near]
            leaf = self._left[pair_node] < 0
            if np.any(leaf):
                rep_q, idx, d2 = self._expand(pair_q[leaf], pair_node[leaf], qs)
                hit = d2 <= bound2[rep_q]
                found_q.append(rep_q[hit])
                found_i.append(idx[hit])
                found_d.append(d2[hit])
            inner_q, inner_n = pair_q[~leaf], pair_node[~leaf]
            pair_q = np.concatenate([inner_q, inner_q])
            pair_node = np.concatenate([self._left[inner_n], self._right[inner_n]])

        if not found_q:
            return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.float64)
        query_ids = np.concatenate(found_q)
        indices = np.concatenate(found_i)
        distances2 = np.concatenate(found_d)
        order = np.lexsort((indices, distances2, query_ids))
        query_ids, indices, distances2 = query_ids[order], indices[order], distances2[order]
        if cap > 0:
            keep = _group_rank(query_ids) < cap
            query_ids, indices, distances2 = query_ids[keep], indices[keep], distances2[keep]
        return query_ids, indices, distances2

    def _search_block(self, qs: np.ndarray, param: SearchParam) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        if isinstance(param, KDTreeSearchParamKNN):
            return self._collect(qs, self._knn_bound(qs, param.knn), cap=param.knn)
        if isinstance(param, KDTreeSearchParamRadius):
            return self._collect(qs, np.full(len(qs), param.radius ** 2))
        if isinstance(param, KDTreeSearchParamHybrid):
            # The max_nn closest inside the radius are among the max_nn closest overall.
            bound2 = np.minimum(param.radius ** 2, self._knn_bound(qs, param.max_nn))
            return self._collect(qs, bound2, cap=param.max_nn)
        raise InvalidArgumentError(f"Unsupported search parameter: {param!r}")

    def search_batch_pairs(
        self, queries: np.ndarray, param: SearchParam, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Neighbors of every query as flat ``(query_ids, indices, distances2)``.

        Entries are grouped by query id and sorted by (distance, index) within
        each group. Queries are processed ``chunk_size`` at a time so the
        traversal frontier stays bounded.
        """
        if not isinstance(param, (KDTreeSearchParamKNN, KDTreeSearchParamRadius, KDTreeSearchParamHybrid)):
            raise InvalidArgumentError(f"Unsupported search parameter: {param!r}")
        chunk = _check_count("chunk_size", chunk_size)
        qs = as_vector3_array(queries, "queries")
        if not np.all(np.isfinite(qs)):
            raise InvalidArgumentError("queries must be finite")
        empty = (np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.float64))
        if len(qs) == 0 or len(self._points) == 0:
            return empty
        parts = []
        for begin in range(0, len(qs), chunk):
            query_ids, indices, distances2 = self._search_block(qs[begin:begin + chunk], param)
            parts.append((query_ids + begin, indices, distances2))
        if len(parts) == 1:
            return parts[0]
        return tuple(np.concatenate(cols) for cols in zip(*parts))

    def search_batch(
        self, queries: np.ndarray, param: SearchParam, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> NeighborResult:
        """Run ``param`` for every row of ``queries`` and pad the results."""
        m = len(as_vector3_array(queries, "queries"))
        query_ids, indices, distances2 = self.search_batch_pairs(queries, param, chunk_size)
        counts = np.bincount(query_ids, minlength=m).astype(np.int64)
        width = int(counts.max()) if m else 0
        padded_idx = np.full((m, width), -1, dtype=np.int64)
        padded_d2 = np.full((m, width), np.inf, dtype=np.float64)
        cols = _group_rank(query_ids)
        padded_idx[query_ids, cols] = indices
        padded_d2[query_ids, cols] = distances2
        return NeighborResult(indices=padded_idx, distances2=padded_d2, counts=counts)

    # -- single queries --
    def search(self, query: Sequence[float], param: SearchParam) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(indices, squared_distances)`` for one query point."""
        q = as_vector3(query, "query")
        _, indices, distances2 = self.search_batch_pairs(q[None, :], param)
        return indices, distances2

    def search_knn(self, query: Sequence[float], knn: int) -> Tuple[np.ndarray, np.ndarray]:
        """The ``knn`` nearest points.

        A query that coincides with a stored point returns that point first.
        Fewer than ``knn`` results are returned when the tree is smaller.
        """
        return self.search(query, KDTreeSearchParamKNN(knn))

    def search_radius(self, query: Sequence[float], radius: float) -> Tuple[np.ndarray, np.ndarray]:
        """All points within ``radius`` (inclusive)."""
        return self.search(query, KDTreeSearchParamRadius(radius))

    def search_hybrid(self, query: Sequence[float], radius: float, max_nn: int) -> Tuple[np.ndarray, np.ndarray]:
        """Radius search limited to the ``max_nn`` closest points."""
        return self.search(query, KDTreeSearchParamHybrid(radius, max_nn))
