"""fastapi server for the whiteboard agent.

exposes command interpretation and canvas state as REST endpoints.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..core.config import AgentSettings
from ..core.models import AIResponse, Shape
from ..core.router import TierRouter, build_router
from ..core.store import ShapeStore
from ..core.sync import (
    InMemoryChannel,
    JsonFileBackend,
    PersistenceBackend,
    restore_shapes,
    store_subscriber,
)
from ..core.templates import LayoutTemplate, get_template, list_templates
from ..core.tools import TOOL_MANIFEST


logger = logging.getLogger(__name__)

# unconfirmed actions kept per room; the oldest is dropped past this
MAX_PENDING = 20


# --- pydantic models for api ---

class InterpretRequest(BaseModel):
    """request to interpret a command."""
    text: str
    locale: str = "en"


class SelectionRequest(BaseModel):
    """request to replace the selection."""
    ids: list[str]


class ShapeResponse(BaseModel):
    """shape in api response."""
    id: str
    type: str
    x: float
    y: float
    w: float
    h: float
    rotation: float
    color: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = None
    text: Optional[str] = None
    font_size: Optional[int] = None
    group_id: Optional[str] = None
    updated_at: int
    updated_by: str
    selected: bool = False

    @classmethod
    def from_shape(cls, shape: Shape, selected: bool = False) -> ShapeResponse:
        return cls(**shape.to_dict(), selected=selected)


class ToolCallResponse(BaseModel):
    name: str
    args: dict[str, Any]


class InterpretResponse(BaseModel):
    """response envelope; confirm_token is set when confirmation is required."""
    type: str
    message: str
    result: Optional[list[ToolCallResponse]] = None
    suggestions: list[str] = []
    requires_confirmation: bool = False
    confirm_token: Optional[str] = None

    @classmethod
    def from_response(cls, response: AIResponse, token: Optional[str] = None) -> InterpretResponse:
        data = response.to_dict()
        return cls(**data, confirm_token=token)


class StatusResponse(BaseModel):
    room: str
    shape_count: int
    selected_ids: list[str]
    tiers: list[str]
    history_size: int
    mock: bool


# --- app state ---

class AppState:
    """shared application state: one room, one store, one router."""

    def __init__(
        self,
        settings: Optional[AgentSettings] = None,
        persistence: Optional[PersistenceBackend] = None,
    ):
        self.settings = settings or AgentSettings.from_env()
        self.store = ShapeStore(actor=self.settings.actor)
        self.channel = InMemoryChannel(topic=self.settings.channel_topic)
        self.channel.subscribe(store_subscriber(self.store))
        self.persistence = persistence
        self.pending: dict[str, AIResponse] = {}
        self._router: Optional[TierRouter] = None

    def get_persistence(self) -> PersistenceBackend:
        if self.persistence is None:
            self.persistence = JsonFileBackend(self.settings.persistence_path)
        return self.persistence

    @property
    def router(self) -> TierRouter:
        if self._router is None:
            self._router = build_router(
                self.store,
                settings=self.settings,
                channel=self.channel,
                persistence=self.get_persistence(),
            )
        return self._router

    def load_persisted(self) -> int:
        """load shapes saved by earlier sessions; returns how many."""
        return restore_shapes(self.store, self.get_persistence())

    def hold(self, response: AIResponse) -> Optional[str]:
        """park a deferred action; returns its token."""
        if not response.requires_confirmation:
            return None
        token = uuid.uuid4().hex
        self.pending[token] = response
        while len(self.pending) > MAX_PENDING:
            expired = next(iter(self.pending))
            del self.pending[expired]
            logger.info(f"dropped unconfirmed action {expired}")
        return token


state = AppState()


# --- lifespan ---

@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup: restore shapes from persistence
    count = state.load_persisted()
    logger.info(f"loaded {count} shapes for {state.settings.room}")
    yield


# --- app ---

app = FastAPI(
    title="whiteboard agent api",
    description="REST API for natural-language whiteboard commands",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/status", response_model=StatusResponse)
async def get_status():
    return StatusResponse(
        room=state.settings.room,
        shape_count=len(state.store),
        selected_ids=list(state.store.selected_ids),
        tiers=state.router.tier_names,
        history_size=state.store.history_size,
        mock=state.settings.mock,
    )


@app.get("/shapes", response_model=list[ShapeResponse])
async def list_shapes():
    selected = set(state.store.selected_ids)
    return [ShapeResponse.from_shape(s, s.id in selected) for s in state.store.all()]


@app.post("/selection")
async def set_selection(req: SelectionRequest):
    unknown = [sid for sid in req.ids if sid not in state.store]
    if unknown:
        raise HTTPException(status_code=404, detail=f"unknown shape ids: {', '.join(unknown)}")
    state.store.select(req.ids)
    return {"selected_ids": list(state.store.selected_ids)}


@app.post("/interpret", response_model=InterpretResponse)
async def interpret(req: InterpretRequest):
    response = await state.router.interpret_with_fallback(req.text, req.locale)
    token = state.hold(response)
    return InterpretResponse.from_response(response, token)


@app.post("/confirm/{token}", response_model=InterpretResponse)
async def confirm(token: str):
    pending = state.pending.pop(token, None)
    if pending is None or pending.confirm_action is None:
        raise HTTPException(status_code=404, detail="no pending action for that token")
    return InterpretResponse.from_response(pending.confirm_action())


@app.delete("/confirm/{token}")
async def cancel(token: str):
    if state.pending.pop(token, None) is None:
        raise HTTPException(status_code=404, detail="no pending action for that token")
    return {"cancelled": token}


@app.post("/undo")
async def undo():
    if not state.store.undo():
        raise HTTPException(status_code=400, detail="nothing to undo")
    return {"shape_count": len(state.store)}


@app.post("/redo")
async def redo():
    if not state.store.redo():
        raise HTTPException(status_code=400, detail="nothing to redo")
    return {"shape_count": len(state.store)}


@app.get("/templates")
async def get_templates():
    return [_template_summary(key, t) for key, t in list_templates()]


@app.get("/templates/{key}")
async def get_template_detail(key: str):
    """one template with its footprint and elements."""
    template = get_template(key)
    if template is None:
        raise HTTPException(status_code=404, detail=f"unknown template: {key}")
    width, height = template.footprint()
    return {
        **_template_summary(key, template),
        "width": width,
        "height": height,
        "elements": [
            {"kind": el.kind, "dx": el.dx, "dy": el.dy, "w": el.w, "h": el.h, "type": el.type, "text": el.text}
            for el in template.elements
        ],
    }


def _template_summary(key: str, template: LayoutTemplate) -> dict:
    return {"key": key, "name": template.name, "description": template.description, "shapes": len(template.elements)}


@app.get("/tools")
async def get_tools():
    return [
        {"name": spec.name, "description": spec.description,
         "required": list(spec.required), "optional": list(spec.optional)}
        for spec in TOOL_MANIFEST.values()
    ]


def main():
    """run the api server."""
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="whiteboard agent api server")
    parser.add_argument("--host", default="0.0.0.0", help="host to bind")
    parser.add_argument("--port", "-p", type=int, default=8000, help="port to bind")
    parser.add_argument("--room", "-r", help="room id (default: $WHITEBOARD_ROOM)")
    parser.add_argument("--mock", "-m", action="store_true", help="use mock generative backend")
    parser.add_argument("--reload", action="store_true", help="enable auto-reload")
    parser.add_argument("--debug", action="store_true", help="debug logging")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)

    # configure state
    global state
    settings = AgentSettings.from_env()
    if args.room:
        settings.room = args.room
    settings.mock = args.mock
    state = AppState(settings=settings)

    uvicorn.run(
        "whiteboard_agent.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
