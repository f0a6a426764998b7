from __future__ import annotations
import yaml
from pathlib import Path
from typing import Optional, Tuple
from pydantic import BaseModel, Field, ValidationError
from .errors import ConfigError

class CameraCfg(BaseModel):
    index: int|str = 0
    width: int = 1280
    height: int = 720

class DetectorCfg(BaseModel):
    max_faces: int = Field(2, ge=1)
    refine_landmarks: bool = True
    flip_horizontal: bool = False
    static_image_mode: bool = False

class BlinkCfg(BaseModel):
    margin: float = 5.0
    history: int = Field(10, ge=1)

class MatcherCfg(BaseModel):
    threshold: float = 0.7
    size: int = Field(224, gt=0)
    mirror: bool = True
    delay_ms: int = Field(300, ge=0)
    model: Optional[str] = None
    scale: float = 1.0
    mean: Tuple[float,float,float] = (0.0, 0.0, 0.0)
    swap_rb: bool = False

class OverlayCfg(BaseModel):
    bounding_box: bool = True
    face_oval: bool = False
    mirror: bool = True
    show: bool = True

class Settings(BaseModel):
    camera: CameraCfg = Field(default_factory=CameraCfg)
    detector: DetectorCfg = Field(default_factory=DetectorCfg)
    blink: BlinkCfg = Field(default_factory=BlinkCfg)
    matcher: MatcherCfg = Field(default_factory=MatcherCfg)
    overlay: OverlayCfg = Field(default_factory=OverlayCfg)
    reference: Optional[str] = None

def load_config(path: str|Path|None) -> Settings:
    """Read a YAML config; a missing path gives the defaults."""
    if path is None or not Path(path).exists():
        return Settings()
    with open(path,"r") as f: cfg=yaml.safe_load(f) or {}
    try:
        return Settings.model_validate(cfg)
    except ValidationError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e
