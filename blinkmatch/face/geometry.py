from __future__ import annotations
import math
import numpy as np

def distance(a, b) -> float:
    """Euclidean distance between two points, using x and y only."""
    return math.hypot(float(a[0]) - float(b[0]), float(a[1]) - float(b[1]))

def l2_normalize(v) -> np.ndarray:
    v = np.asarray(v, dtype=np.float32)
    n = float(np.sqrt(np.sum(v ** 2)))
    if n == 0.0: return v
    return v / n

def split_eye(eye_pts):
    """
    Lower lid = first floor(n/2) points, upper lid = points from ceil(n/2) on.
    For odd n the midpoint belongs to neither half.
    """
    n = len(eye_pts)
    return eye_pts[:n // 2], eye_pts[math.ceil(n / 2):]

def middle(points):
    return points[len(points) // 2]
