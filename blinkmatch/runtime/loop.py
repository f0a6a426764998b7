from __future__ import annotations
import asyncio, logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set
import numpy as np
from ..eye.blink import BlinkDetector
from ..face.types import BoundingBox, EstimationConfig, LandmarkDetector
from ..match.matcher import FaceMatcher
from .events import Event
from .overlay import draw_overlay

log = logging.getLogger(__name__)

MATCH_DELAY_S = 0.3  # average time for eyes to reopen after a blink

class OverlayOptions:
    def __init__(self, bounding_box: bool=True, face_oval: bool=False, mirror: bool=True):
        self.bounding_box=bounding_box; self.face_oval=face_oval; self.mirror=mirror

class RenderLoop:
    """
    One detection + draw pass per frame. A blink schedules a delayed face match
    as a separate task; the loop never waits for it.
    """
    def __init__(self, detector: LandmarkDetector, blink: BlinkDetector, matcher: Optional[FaceMatcher]=None,
                 reference: Optional[np.ndarray]=None, *, config: Optional[EstimationConfig]=None,
                 overlay: Optional[OverlayOptions]=None, match_delay: float=MATCH_DELAY_S,
                 on_event: Optional[Callable[[Event],Any]]=None,
                 on_frame: Optional[Callable[[np.ndarray],Any]]=None):
        self.detector = detector
        self.blink = blink
        self.matcher = matcher
        self.reference = reference
        self.config = config or EstimationConfig()
        self.overlay = overlay or OverlayOptions()
        self.match_delay = match_delay
        self.on_event = on_event
        self.on_frame = on_frame
        self.last_frame: Optional[np.ndarray] = None
        self.pending: Set[asyncio.Task] = set()
        self._stopped = False

    def stop(self):
        self._stopped = True

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _emit(self, ev: Event):
        if self.on_event: self.on_event(ev)

    async def tick(self, frame: np.ndarray) -> List[Event]:
        self.last_frame = frame
        try:
            faces = await self.detector.estimate_faces(frame, self.config)
            ev = self.blink.update(faces)
        except Exception:
            # transient; the next frame tries again
            log.debug("frame dropped", exc_info=True)
            return []
        # blink state has already moved on, so the event goes out before drawing
        if ev is not None:
            self._emit(ev)
            if ev.type == "blink":
                self._schedule_match(ev.bbox)
        if self.on_frame:
            try:
                o = self.overlay
                self.on_frame(draw_overlay(frame, faces, o.bounding_box, o.face_oval, o.mirror))
            except Exception:
                log.debug("overlay failed", exc_info=True)
        return [ev] if ev is not None else []

    def _schedule_match(self, bbox: BoundingBox):
        if self.matcher is None or self.reference is None:
            return
        log.info("waiting for %d milliseconds", int(self.match_delay*1000))
        task = asyncio.create_task(self.delayed_match(bbox))
        self.pending.add(task)
        task.add_done_callback(self._match_done)

    def _match_done(self, task: asyncio.Task):
        self.pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("face match failed", exc_info=task.exception())

    async def delayed_match(self, bbox: BoundingBox) -> bool:
        await asyncio.sleep(self.match_delay)
        # the freshest frame, taken once the eyes should be open again
        return await self.match_now(self.last_frame, bbox)

    async def match_now(self, frame: np.ndarray, bbox: BoundingBox) -> bool:
        matched = await self.matcher.match(frame, bbox, self.reference)
        self._emit(Event(type="match", matched=matched, bbox=bbox))
        return matched

    async def run(self, frames: Iterable[Dict[str,Any]]):
        for f in frames:
            if self._stopped: break
            await self.tick(f["image"])
            await asyncio.sleep(0)  # let pending matches progress
