"""
Quadrilateral helpers shared by edge detection and perspective correction.
"""

import math
from typing import Iterable, List, Sequence, Union

import numpy as np

from docscan.models import BoundingRect, Point

PointLike = Union[Point, Sequence[float]]


def to_point(p: PointLike) -> Point:
    if isinstance(p, Point):
        return p
    return Point(float(p[0]), float(p[1]))


def to_points(points: Iterable[PointLike]) -> List[Point]:
    return [to_point(p) for p in points]


def order_corners(points: Iterable[PointLike]) -> List[Point]:
    """
    Order 4 points as [top-left, top-right, bottom-right, bottom-left].

    Coordinate-sum heuristic: smallest x+y is top-left, largest is
    bottom-right; of the remaining two the larger x-y is top-right.
    Sorting is stable, so ties keep input order. Correct for any
    non-self-intersecting quad that is not rotated close to 45 degrees;
    it is not a convex-hull orientation test.

    Anything other than exactly 4 points is returned as-is.
    """
    pts = to_points(points)
    if len(pts) != 4:
        return pts

    by_sum = sorted(pts, key=lambda p: p.x + p.y)
    top_left, bottom_right = by_sum[0], by_sum[3]
    bottom_left, top_right = sorted(by_sum[1:3], key=lambda p: p.x - p.y)
    return [top_left, top_right, bottom_right, bottom_left]


def distance(a: PointLike, b: PointLike) -> float:
    a, b = to_point(a), to_point(b)
    return math.hypot(b.x - a.x, b.y - a.y)


def is_convex(points: Iterable[PointLike]) -> bool:
    """True if consecutive edge cross products all share one strict sign."""
    pts = to_points(points)
    n = len(pts)
    if n < 3:
        return False
    signs = set()
    for i in range(n):
        p1, p2, p3 = pts[i], pts[(i + 1) % n], pts[(i + 2) % n]
        cross = (p2.x - p1.x) * (p3.y - p2.y) - (p2.y - p1.y) * (p3.x - p2.x)
        if cross == 0:
            return False
        signs.add(cross > 0)
    return len(signs) == 1


def bounding_rect(points: Iterable[PointLike]) -> BoundingRect:
    pts = to_points(points)
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    return BoundingRect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def full_image_quad(width: int, height: int) -> List[Point]:
    """Default quad covering the whole frame, used when detection finds nothing."""
    return [
        Point(0.0, 0.0),
        Point(float(width), 0.0),
        Point(float(width), float(height)),
        Point(0.0, float(height)),
    ]


def points_to_array(points: Iterable[PointLike]) -> np.ndarray:
    """(N, 2) float32 array, the layout cv2 geometry calls expect."""
    return np.array([p.as_tuple() for p in to_points(points)], dtype=np.float32)
