# -*- coding: utf-8 -*-
"""
Nudge routes
------------
- GET  /users/{user_id}/nudges                          : active (non-expired) nudges
- POST /users/{user_id}/nudges/{nudge_id}/{interaction} : viewed | actioned | dismissed | feedback

app.py calls ``register_nudge_routes(app)``. The NudgeStore is owned by the
app (``app.state.nudge_store``) and reaches the routes through
``get_nudge_store``; tests can swap it with ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from .nudge_store import INTERACTIONS, NudgeStore
from .observability import log_event

logger = logging.getLogger("api_nudges")


def get_nudge_store(request: Request) -> NudgeStore:
    return request.app.state.nudge_store


class NudgeListResponse(BaseModel):
    nudges: List[Dict[str, Any]]


class NudgeInteractionRequest(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5, description="feedback rating (feedback only)")


class NudgeInteractionResponse(BaseModel):
    status: str = "ok"
    nudge: Dict[str, Any]


def register_nudge_routes(app: FastAPI) -> None:
    """Register the nudge endpoints and attach a NudgeStore to the app."""
    if getattr(app.state, "nudge_store", None) is None:
        app.state.nudge_store = NudgeStore()

    @app.get("/users/{user_id}/nudges", response_model=NudgeListResponse)
    def list_nudges(user_id: str, store: NudgeStore = Depends(get_nudge_store)) -> NudgeListResponse:
        store.purge_expired()
        return NudgeListResponse(nudges=[n.to_dict() for n in store.get_active(user_id)])

    @app.post("/users/{user_id}/nudges/{nudge_id}/{interaction}", response_model=NudgeInteractionResponse)
    def track_interaction(
        user_id: str,
        nudge_id: str,
        interaction: str,
        payload: Optional[NudgeInteractionRequest] = None,
        store: NudgeStore = Depends(get_nudge_store),
    ) -> NudgeInteractionResponse:
        if interaction not in INTERACTIONS:
            raise HTTPException(status_code=422, detail=f"interaction must be one of {', '.join(INTERACTIONS)}")
        rating = payload.rating if payload else None
        if interaction == "feedback" and rating is None:
            raise HTTPException(status_code=422, detail="feedback requires a rating")

        nudge = store.update(user_id, nudge_id, interaction, rating=rating)
        if nudge is None:
            raise HTTPException(status_code=404, detail="Nudge not found or expired")

        log_event(logger, "nudge_interaction", nudge_id=nudge_id, interaction=interaction, type=nudge.type.value)
        return NudgeInteractionResponse(nudge=nudge.to_dict())
