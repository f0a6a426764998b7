import asyncio
import numpy as np
from blinkmatch.eye.blink import BlinkDetector, BlinkState, EyeGapHistory
from blinkmatch.face.types import BoundingBox, Face
from blinkmatch.runtime.loop import RenderLoop

def fake_face(gap=10.0):
    pts = np.zeros((478,3), dtype=np.float32)
    pts[374,:2] = [60,50]; pts[385,:2] = [60,50-gap]
    pts[145,:2] = [30,50]; pts[158,:2] = [30,50-gap]
    return Face(box=BoundingBox.from_corners(10,10,90,90), keypoints=pts)

class ScriptedDetector:
    def __init__(self, script): self.script = list(script)
    async def estimate_faces(self, image, config=None):
        faces = self.script.pop(0)
        if isinstance(faces, Exception): raise faces
        return faces

class RecordingMatcher:
    def __init__(self, result=True): self.result = result; self.frames = []
    async def match(self, frame, bbox, reference):
        self.frames.append(frame)
        return self.result

def primed_blink():
    return BlinkDetector(state=BlinkState(left=EyeGapHistory([10]*10), right=EyeGapHistory([10]*10)))

def frame(v):
    return np.full((100,100,3), v, np.uint8)

def test_tick_reports_no_face_and_multiple_faces():
    events = []
    loop = RenderLoop(ScriptedDetector([[], [fake_face(), fake_face()]]), BlinkDetector(), on_event=events.append)
    asyncio.run(loop.tick(frame(0)))
    asyncio.run(loop.tick(frame(0)))
    assert [e.type for e in events] == ["no_face", "multiple_faces"]

def test_detection_failure_is_swallowed():
    blink = primed_blink()
    loop = RenderLoop(ScriptedDetector([RuntimeError("boom"), [fake_face(2)]]), blink)
    assert asyncio.run(loop.tick(frame(0))) == []
    assert list(blink.state.left) == [10.0]*10
    assert asyncio.run(loop.tick(frame(0)))[0].type == "blink"

def test_blink_triggers_delayed_match_on_latest_frame():
    events = []
    matcher = RecordingMatcher()
    loop = RenderLoop(ScriptedDetector([[fake_face(2)], [fake_face(10)]]), primed_blink(), matcher,
                      reference=frame(9), match_delay=0.0, on_event=events.append)
    async def go():
        await loop.tick(frame(1))
        assert len(loop.pending) == 1
        await loop.tick(frame(2))
        await asyncio.gather(*list(loop.pending))
    asyncio.run(go())
    assert [e.type for e in events] == ["blink", "match"]
    assert events[1].matched is True
    assert matcher.frames[0][0,0,0] == 2

def test_no_match_without_reference():
    matcher = RecordingMatcher()
    loop = RenderLoop(ScriptedDetector([[fake_face(2)]]), primed_blink(), matcher, reference=None)
    async def go():
        evs = await loop.tick(frame(1))
        return evs, len(loop.pending)
    evs, pending = asyncio.run(go())
    assert evs[0].type == "blink" and pending == 0

def test_match_now():
    events = []
    loop = RenderLoop(ScriptedDetector([]), BlinkDetector(), RecordingMatcher(False), reference=frame(9), on_event=events.append)
    assert asyncio.run(loop.match_now(frame(3), BoundingBox.from_corners(0,0,5,5))) is False
    assert events[0].type == "match" and events[0].matched is False

def test_run_draws_frames_and_stops():
    shown = []
    det = ScriptedDetector([[fake_face()]]*5)
    loop = RenderLoop(det, BlinkDetector())
    def on_frame(img):
        shown.append(img.shape)
        if len(shown) == 2: loop.stop()
    loop.on_frame = on_frame
    asyncio.run(loop.run({"image": frame(0), "meta": {}} for _ in range(5)))
    assert shown == [(100,100,3)]*2 and loop.stopped

def test_blink_survives_preview_failure():
    events = []
    blink = primed_blink()
    loop = RenderLoop(ScriptedDetector([[fake_face(2)], [fake_face(2)]]), blink, on_event=events.append)
    def on_frame(img): raise RuntimeError("display gone")
    loop.on_frame = on_frame
    first = asyncio.run(loop.tick(frame(0)))
    second = asyncio.run(loop.tick(frame(0)))
    assert [e.type for e in first] == ["blink"] and second == []
    assert [e.type for e in events] == ["blink"]
    assert blink.state.eye_state == "closed"
