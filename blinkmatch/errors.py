from __future__ import annotations

class BlinkMatchError(Exception):
    """Base class for blinkmatch failures."""

class CapabilityUnavailable(BlinkMatchError):
    """Encoder or landmark detector not loaded yet."""

class NoFaceDetected(BlinkMatchError):
    pass

class CameraAccessError(BlinkMatchError):
    pass

class ConfigError(BlinkMatchError):
    pass
