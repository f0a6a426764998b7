from __future__ import annotations
import logging
from typing import List, Optional
import mediapipe as mp
import numpy as np
import cv2
from .types import BoundingBox, EstimationConfig, Face

log = logging.getLogger(__name__)

class FaceLandmarks:
    """
    MediaPipe FaceMesh as a landmark detector. Keypoints come back in pixel
    coordinates of the input image (z scaled by width, as MediaPipe defines it).
    """
    def __init__(self, max_num_faces: int = 1, refine_landmarks: bool = True):
        self.max_num_faces = max_num_faces
        self.refine_landmarks = refine_landmarks
        self.mesh = self._make_mesh(static_image_mode=False)
        self._static_mesh = None

    def _make_mesh(self, static_image_mode: bool):
        return mp.solutions.face_mesh.FaceMesh(static_image_mode=static_image_mode,
                                               refine_landmarks=self.refine_landmarks,
                                               max_num_faces=self.max_num_faces)

    def _mesh_for(self, cfg: EstimationConfig):
        if not cfg.static_image_mode: return self.mesh
        # reference photos get their own mesh so video tracking is left alone
        if self._static_mesh is None:
            self._static_mesh = self._make_mesh(static_image_mode=True)
        return self._static_mesh

    def __call__(self, frame_bgr, config: Optional[EstimationConfig] = None) -> List[Face]:
        cfg = config or EstimationConfig()
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        res = self._mesh_for(cfg).process(rgb)
        if not res.multi_face_landmarks: return []
        faces=[]
        h,w = frame_bgr.shape[:2]
        for lms in res.multi_face_landmarks:
            pts = np.array([(lm.x*w, lm.y*h, lm.z*w) for lm in lms.landmark], dtype=np.float32)
            if cfg.flip_horizontal:
                pts[:,0] = w - pts[:,0]
            xs = pts[:,0]; ys = pts[:,1]
            box = BoundingBox.from_corners(xs.min(), ys.min(), xs.max(), ys.max())
            faces.append(Face(box=box, keypoints=pts, score=float(box.width*box.height)))
        # largest area (closest face) first
        faces.sort(key=lambda f: f.score, reverse=True)
        return faces

    async def estimate_faces(self, image, config: Optional[EstimationConfig] = None) -> List[Face]:
        return self(image, config)

    def close(self):
        self.mesh.close()
        if self._static_mesh is not None:
            self._static_mesh.close(); self._static_mesh = None
        log.debug("face mesh released")
