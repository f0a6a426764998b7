from __future__ import annotations
import logging
from pathlib import Path
from typing import Sequence
import cv2, numpy as np

log = logging.getLogger(__name__)

class DnnEncoder:
    """
    Embedding model backed by an OpenCV DNN network (ONNX, TensorFlow .pb, ...).
    Takes an NHWC float tensor and returns one flat vector per image.
    """
    def __init__(self, model: str|Path, scale: float=1.0, mean: Sequence[float]=(0.0,0.0,0.0), swap_rb: bool=False):
        if not Path(model).exists():
            raise FileNotFoundError(f"encoder model not found: {model}")
        self.net = cv2.dnn.readNet(str(model))
        self.scale = scale
        self.mean = np.asarray(mean, dtype=np.float32).reshape(1,1,1,3)
        self.swap_rb = swap_rb
        log.info("encoder loaded from %s", model)

    def predict(self, tensor: np.ndarray) -> np.ndarray:
        x = np.asarray(tensor, dtype=np.float32)
        if self.swap_rb: x = x[..., ::-1]
        x = (x - self.mean) * self.scale
        blob = np.ascontiguousarray(x.transpose(0,3,1,2))  # NHWC -> NCHW
        self.net.setInput(blob)
        out = self.net.forward()
        return out.reshape(out.shape[0], -1)
