from __future__ import annotations
from typing import List
import cv2, numpy as np
from ..face.contours import keypoints_by_contour
from ..face.types import Face

RED = (53, 44, 255)     # #FF2C35 in BGR
GREEN = (219, 238, 50)  # #32EEDB in BGR

def draw_overlay(frame: np.ndarray, faces: List[Face], bounding_box: bool=True, face_oval: bool=False, mirror: bool=True) -> np.ndarray:
    """Preview image with face boxes / silhouettes, mirrored like a selfie view."""
    out = frame.copy()
    for face in faces:
        if bounding_box:
            b = face.box
            corners = np.array([[b.x_min,b.y_min],[b.x_max,b.y_min],[b.x_max,b.y_max],[b.x_min,b.y_max]], dtype=np.int32)
            cv2.polylines(out, [corners], True, RED, 1)
        if face_oval:
            sil = keypoints_by_contour("faceOval", face.keypoints)[:, :2].astype(np.int32)
            for x,y in sil:
                cv2.circle(out, (int(x),int(y)), 1, GREEN, -1)
            cv2.polylines(out, [sil], True, GREEN, 1)
    if mirror:
        out = cv2.flip(out, 1)
    return out
