from __future__ import annotations
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, List, Optional, Tuple
from ..face.contours import keypoints_by_contour
from ..face.geometry import distance, middle, split_eye
from ..face.types import Face
from ..runtime.events import Event, EyeState

log = logging.getLogger(__name__)

HISTORY_LEN = 10
CLOSED_MARGIN = 5.0  # px at detector resolution

class EyeGapHistory:
    """Newest-first gap readings, bounded, never empty."""
    def __init__(self, values: Iterable[float] = (0.0,), maxlen: int = HISTORY_LEN):
        self.values: Deque[float] = deque(maxlen=maxlen)
        self.values.extend(float(v) for v in values)
        if not self.values:
            raise ValueError("history needs at least one reading")

    def mean(self) -> float:
        return sum(self.values) / len(self.values)

    def push(self, gap: float):
        self.values.appendleft(float(gap))  # oldest drops off the right

    def __len__(self): return len(self.values)
    def __iter__(self): return iter(self.values)

@dataclass
class BlinkState:
    eye_state: EyeState = "open"
    left: EyeGapHistory = field(default_factory=EyeGapHistory)
    right: EyeGapHistory = field(default_factory=EyeGapHistory)

def eye_gap(eye_pts) -> float:
    lower, upper = split_eye(eye_pts)
    return distance(middle(lower), middle(upper))

def eye_gaps(face: Face) -> Tuple[float,float]:
    left = keypoints_by_contour("leftEye", face.keypoints)
    right = keypoints_by_contour("rightEye", face.keypoints)
    return eye_gap(left), eye_gap(right)

class BlinkDetector:
    """
    Edge-triggered blink detection: a frame counts as closed when both eye gaps
    fall more than `margin` below their recent average, and an event fires only
    on the open -> closed transition.
    """
    def __init__(self, margin: float = CLOSED_MARGIN, history: int = HISTORY_LEN, state: Optional[BlinkState] = None):
        self.margin = margin
        self.history = history
        self.state = state or self.initial_state()

    def initial_state(self) -> BlinkState:
        return BlinkState(left=EyeGapHistory(maxlen=self.history), right=EyeGapHistory(maxlen=self.history))

    def reset(self):
        self.state = self.initial_state()

    def update(self, faces: List[Face]) -> Optional[Event]:
        if len(faces) > 1:
            return Event(type="multiple_faces")
        if not faces:
            return Event(type="no_face")
        return self.process_face(faces[0])

    def process_face(self, face: Face) -> Optional[Event]:
        st = self.state
        left_gap, right_gap = eye_gaps(face)
        left_diff = st.left.mean() - left_gap
        right_diff = st.right.mean() - right_gap
        current: EyeState = "closed" if left_diff > self.margin and right_diff > self.margin else "open"
        ev = None
        if current == "closed" and current != st.eye_state:
            log.debug("blink: diffs %.2f / %.2f", left_diff, right_diff)
            ev = Event(type="blink", eye_state=current, bbox=face.box)
        st.left.push(left_gap); st.right.push(right_gap)
        st.eye_state = current
        return ev
