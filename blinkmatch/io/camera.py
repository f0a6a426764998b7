from __future__ import annotations
import cv2, time
from typing import Iterator, Dict, Any
from ..errors import CameraAccessError

def frames(camera: int|str=0, width: int=1280, height: int=720) -> Iterator[Dict[str,Any]]:
    cap = cv2.VideoCapture(camera)
    if width:  cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    if height: cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    if not cap.isOpened():
        cap.release()
        raise CameraAccessError(f"Cannot open camera {camera!r}. Camera access is required to use this application.")
    try:
        i = 0
        while True:
            ok, frame = cap.read()
            if not ok: break
            yield {"image": frame, "meta": {"ts": time.time(), "index": i}}
            i += 1
    finally:
        cap.release()
