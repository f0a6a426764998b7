import asyncio
import numpy as np
import pytest
from blinkmatch.errors import CapabilityUnavailable, NoFaceDetected
from blinkmatch.face.types import BoundingBox, Face
from blinkmatch.match.matcher import FaceMatcher, crop_face, to_tensor

class ChannelMeanEncoder:
    def __init__(self): self.calls = 0
    def predict(self, tensor):
        self.calls += 1
        return tensor.mean(axis=(1,2))

class FakeDetector:
    def __init__(self, faces): self.faces = faces; self.configs = []
    async def estimate_faces(self, image, config=None):
        self.configs.append(config)
        return self.faces

BOX = BoundingBox.from_corners(10, 10, 90, 90)

def solid(bgr):
    img = np.zeros((100,100,3), np.uint8); img[:] = bgr
    return img

def ref_detector():
    return FakeDetector([Face(box=BOX, keypoints=np.zeros((478,3)))])

def test_crop_shape_and_mirror():
    img = np.zeros((100,200,3), np.uint8); img[:, :100] = 255
    face = crop_face(img, BoundingBox.from_corners(0,0,200,100))
    assert face.shape == (224,224,3) and face.dtype == np.uint8
    assert face[:, :100].max() == 0 and face[:, -100:].min() == 255
    plain = crop_face(img, BoundingBox.from_corners(0,0,200,100), mirror=False)
    assert plain[:, :100].min() == 255

def test_crop_converts_to_rgb():
    face = crop_face(solid((0,0,255)), BOX, size=32)
    assert tuple(face[0,0]) == (255,0,0)

def test_crop_clips_and_rejects_empty():
    assert crop_face(solid((1,2,3)), BoundingBox.from_corners(-20,-20,50,50), size=16).shape == (16,16,3)
    with pytest.raises(NoFaceDetected):
        crop_face(solid((1,2,3)), BoundingBox.from_corners(150,150,180,180))

def test_to_tensor():
    t = to_tensor(np.zeros((224,224,3), np.uint8))
    assert t.shape == (1,224,224,3) and t.dtype == np.float32

def test_embedding_is_normalized():
    m = FaceMatcher(ChannelMeanEncoder(), ref_detector())
    v = m.embed(solid((30,60,90)), BOX)
    assert np.isclose(np.linalg.norm(v), 1.0, atol=1e-6)

def test_far_apart_faces_count_as_match():
    m = FaceMatcher(ChannelMeanEncoder(), ref_detector())
    dist = asyncio.run(m.distance(solid((0,0,255)), BOX, solid((255,0,0))))
    assert np.isclose(dist, np.sqrt(2), atol=1e-5)
    assert asyncio.run(m.match(solid((0,0,255)), BOX, solid((255,0,0)))) is True

def test_identical_faces_do_not_match():
    m = FaceMatcher(ChannelMeanEncoder(), ref_detector())
    assert asyncio.run(m.match(solid((40,80,120)), BOX, solid((40,80,120)))) is False

def test_threshold_boundary():
    m = FaceMatcher(ChannelMeanEncoder(), ref_detector(), threshold=0.5)
    assert m.is_match(0.5) and not m.is_match(0.49)

def test_reference_uses_static_image_mode():
    det = ref_detector()
    asyncio.run(FaceMatcher(ChannelMeanEncoder(), det).match(solid((1,1,1)), BOX, solid((1,1,1))))
    assert det.configs[0].static_image_mode is True

def test_reference_without_face_aborts_early():
    enc = ChannelMeanEncoder()
    m = FaceMatcher(enc, FakeDetector([]))
    with pytest.raises(NoFaceDetected):
        asyncio.run(m.distance(solid((0,0,255)), BOX, solid((255,0,0))))
    assert asyncio.run(m.match(solid((0,0,255)), BOX, solid((255,0,0)))) is False
    assert enc.calls == 0

def test_missing_capabilities():
    with pytest.raises(CapabilityUnavailable):
        asyncio.run(FaceMatcher(None, ref_detector()).distance(solid((1,1,1)), BOX, solid((1,1,1))))
    assert asyncio.run(FaceMatcher(None, ref_detector()).match(solid((1,1,1)), BOX, solid((1,1,1)))) is False
    assert asyncio.run(FaceMatcher(ChannelMeanEncoder(), None).match(solid((1,1,1)), BOX, solid((1,1,1)))) is False
