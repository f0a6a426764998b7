from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Protocol, Any
import numpy as np
from pydantic import BaseModel

class BoundingBox(BaseModel):
    x_min: float; y_min: float; x_max: float; y_max: float
    width: float; height: float

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "BoundingBox":
        return cls(x_min=float(x0), y_min=float(y0), x_max=float(x1), y_max=float(y1),
                   width=float(x1 - x0), height=float(y1 - y0))

@dataclass
class Face:
    box: BoundingBox
    keypoints: np.ndarray  # (N,3) pixel coords
    score: float = 0.0

class EstimationConfig(BaseModel):
    flip_horizontal: bool = False
    static_image_mode: bool = False

class LandmarkDetector(Protocol):
    async def estimate_faces(self, image: Any, config: Optional[EstimationConfig] = None) -> List[Face]: ...

class Encoder(Protocol):
    def predict(self, tensor: np.ndarray) -> np.ndarray: ...
