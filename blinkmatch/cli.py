from __future__ import annotations
import typer, asyncio, logging, cv2
from rich import print
from rich.logging import RichHandler
from rich.table import Table
from typing import Optional
from .config import Settings, load_config
from .errors import BlinkMatchError, CameraAccessError, ConfigError, NoFaceDetected
from .face.contours import CONTOUR_INDICES
from .face.types import EstimationConfig
from .eye.blink import BlinkDetector
from .match.matcher import FaceMatcher
from .runtime.events import Event, ws_broadcast
from .runtime.loop import OverlayOptions, RenderLoop

app = typer.Typer(add_completion=False, help="blinkmatch CLI: blink liveness check + face match")
log = logging.getLogger("blinkmatch")

def _setup_logging(verbose: bool):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s",
                        datefmt="[%X]", handlers=[RichHandler(rich_tracebacks=True)])

def _load_encoder(cfg: Settings):
    if not cfg.matcher.model:
        log.warning("no encoder model configured; matches will be rejected")
        return None
    from .match.encoder import DnnEncoder
    m = cfg.matcher
    try:
        return DnnEncoder(m.model, scale=m.scale, mean=m.mean, swap_rb=m.swap_rb)
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e

def _camera_source(camera: str) -> int|str:
    return int(camera) if camera.isdigit() else camera

def _fail(e: BlinkMatchError):
    print(f"[red]{e}[/red]")
    raise typer.Exit(1)

def _read_image(path: str):
    img = cv2.imread(path)
    if img is None:
        raise typer.BadParameter(f"cannot read image {path}")
    return img

@app.command()
def run(config: Optional[str]=typer.Option("examples/config.yaml", help="YAML settings"),
        reference: Optional[str]=typer.Option(None, help="profile picture to match against"),
        ws: bool=typer.Option(False, help="broadcast events over WebSocket"),
        host: str="0.0.0.0", port: int=8765,
        camera: Optional[str]=typer.Option(None, help="device index, device path or video file"),
        verbose: bool=False):
    """
    Live camera loop: detect blinks and, after each blink, match the face against the profile picture.
    """
    _setup_logging(verbose)
    try:
        cfg = load_config(config)
        encoder = _load_encoder(cfg)
    except BlinkMatchError as e:
        _fail(e)
    if camera is not None: cfg.camera.index = _camera_source(camera)
    ref_path = reference or cfg.reference
    ref = _read_image(ref_path) if ref_path else None
    if ref is None: log.warning("no reference image; blinks will not trigger a match")

    from .face.landmarks import FaceLandmarks
    from .io.camera import frames
    d = cfg.detector
    faces = FaceLandmarks(max_num_faces=d.max_faces, refine_landmarks=d.refine_landmarks)
    matcher = FaceMatcher(encoder, faces, threshold=cfg.matcher.threshold,
                          size=cfg.matcher.size, mirror=cfg.matcher.mirror)
    queue: "asyncio.Queue[str]" = asyncio.Queue()

    def on_event(ev: Event):
        line = ev.model_dump_json()
        typer.echo(line)
        if ws: queue.put_nowait(line)

    loop: RenderLoop

    def on_frame(img):
        cv2.imshow("blinkmatch", img)
        if cv2.waitKey(1) & 0xFF == ord('q'):
            loop.stop()

    loop = RenderLoop(faces, BlinkDetector(margin=cfg.blink.margin, history=cfg.blink.history), matcher, ref,
                      config=EstimationConfig(flip_horizontal=d.flip_horizontal, static_image_mode=d.static_image_mode),
                      overlay=OverlayOptions(cfg.overlay.bounding_box, cfg.overlay.face_oval, cfg.overlay.mirror),
                      match_delay=cfg.matcher.delay_ms/1000.0, on_event=on_event,
                      on_frame=on_frame if cfg.overlay.show else None)

    async def main():
        producer = loop.run(frames(cfg.camera.index, cfg.camera.width, cfg.camera.height))
        if ws:
            bcast = asyncio.create_task(ws_broadcast(queue, host, port))
            try:
                await producer
            finally:
                bcast.cancel()
        else:
            await producer

    try:
        asyncio.run(main())
    except CameraAccessError as e:
        _fail(e)
    except KeyboardInterrupt:
        pass
    finally:
        faces.close()
        if cfg.overlay.show: cv2.destroyAllWindows()

@app.command()
def match(live: str=typer.Argument(..., help="image with the face to check"),
          reference: str=typer.Argument(..., help="profile picture"),
          config: Optional[str]=typer.Option("examples/config.yaml"),
          model: Optional[str]=typer.Option(None, help="encoder model file (overrides config)"),
          verbose: bool=False):
    """
    Compare the face in LIVE with the face in REFERENCE.
    """
    _setup_logging(verbose)
    try:
        cfg = load_config(config)
        if model: cfg.matcher.model = model
        encoder = _load_encoder(cfg)
    except BlinkMatchError as e:
        _fail(e)
    from .face.landmarks import FaceLandmarks
    faces = FaceLandmarks(max_num_faces=1, refine_landmarks=cfg.detector.refine_landmarks)
    matcher = FaceMatcher(encoder, faces, threshold=cfg.matcher.threshold,
                          size=cfg.matcher.size, mirror=cfg.matcher.mirror)
    live_img, ref_img = _read_image(live), _read_image(reference)

    async def main():
        found = await faces.estimate_faces(live_img, EstimationConfig(static_image_mode=True))
        if not found: raise NoFaceDetected(f"no face detected in {live}")
        return await matcher.distance(live_img, found[0].box, ref_img)

    try:
        dist = asyncio.run(main())
    except BlinkMatchError as e:
        _fail(e)
    finally:
        faces.close()
    ok = matcher.is_match(dist)
    print(f"distance={dist:.4f} threshold={matcher.threshold} ->", "[green]match[/green]" if ok else "[yellow]no match[/yellow]")

@app.command()
def contours():
    """Print the FaceMesh contour index table."""
    t = Table("contour", "count", "indices")
    for name, idx in CONTOUR_INDICES.items():
        t.add_row(name, str(len(idx)), " ".join(map(str, idx)))
    print(t)

if __name__ == "__main__":
    app()
