from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, Literal
import asyncio, logging, time, websockets
from ..face.types import BoundingBox

log = logging.getLogger(__name__)

EyeState = Literal["open","closed"]

class Event(BaseModel):
    ts: float = Field(default_factory=lambda: time.time())
    type: Literal["blink","no_face","multiple_faces","match"]
    eye_state: Optional[EyeState]=None
    bbox: Optional[BoundingBox]=None
    matched: Optional[bool]=None

async def ws_broadcast(queue: "asyncio.Queue[str]", host="0.0.0.0", port=8765):
    """Send every queued event line to all connected clients."""
    clients=set()
    async def fanout():
        while True:
            msg = await queue.get()
            if clients:
                await asyncio.gather(*[c.send(msg) for c in list(clients)], return_exceptions=True)
    async def handler(websocket):
        clients.add(websocket)
        log.info("client connected (%d total)", len(clients))
        try:
            await websocket.wait_closed()
        finally:
            clients.discard(websocket)
    async with websockets.serve(handler, host, port):
        await fanout()
