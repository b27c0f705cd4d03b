"""
api/routes/startups.py -- Pitch submission and browsing.

Routes (mounted under /api/startups, registration order avoids path capture):
  POST /          -- founder submits a pitch
  GET  /          -- list every pitch, newest first
  GET  /mine      -- the calling founder's own pitches
  GET  /{id}      -- one pitch; 404 when missing
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from api.models import PitchCreate, PitchEnvelope, PitchListEnvelope, PitchResponse
from auth.dependencies import get_current_user, require_founder
from auth.models import User
from auth.store import UserStore
from market.models import Pitch
from market.store import PitchStore

logger = logging.getLogger("pitchmatch.api.startups")

# Auth policy:
# - POST /api/startups:        founder only (require_founder)
# - GET  /api/startups/mine:   founder only (require_founder)
# - GET  /api/startups[/{id}]: any authenticated role
router = APIRouter()

# Pitch IDs are SQLite INTEGER primary keys; larger values are rejected with 400
# before they reach the store.
PitchId = Annotated[int, Path(ge=1, le=2**63 - 1)]


def with_founders(user_store: UserStore, pitches: list[Pitch]) -> list[PitchResponse]:
    """Attach founder summaries to pitches with a single user lookup."""
    founders = user_store.get_many([p.founder_id for p in pitches])
    return [PitchResponse.from_pitch(p, founders.get(p.founder_id)) for p in pitches]


@router.post("", response_model=PitchEnvelope, status_code=201)
def create_pitch(
    request: Request,
    body: PitchCreate,
    current_user: User = Depends(require_founder),
) -> PitchEnvelope:
    """Submit a new pitch owned by the calling founder."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitch_id = pitch_store.create_pitch(
        Pitch(
            name=body.name,
            description=body.description,
            industry=body.industry,
            stage=body.stage.value,
            founder_id=current_user.id,
        )
    )
    logger.info("Founder id=%s submitted pitch id=%s", current_user.id, pitch_id)
    created = pitch_store.get_pitch(pitch_id)
    return PitchEnvelope(message="Pitch submitted successfully", data=PitchResponse.from_pitch(created, current_user))


@router.get("", response_model=PitchListEnvelope)
def list_pitches(request: Request, current_user: User = Depends(get_current_user)) -> PitchListEnvelope:
    """Return every pitch, newest first. Open to any signed-in role."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitches = pitch_store.list_pitches()
    return PitchListEnvelope(
        message=f"{len(pitches)} pitches",
        data=with_founders(request.app.state.user_store, pitches),
    )


@router.get("/mine", response_model=PitchListEnvelope)
def my_pitches(request: Request, current_user: User = Depends(require_founder)) -> PitchListEnvelope:
    """Return the calling founder's own pitches."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitches = pitch_store.list_pitches_by_founder(current_user.id)
    return PitchListEnvelope(
        message=f"{len(pitches)} pitches",
        data=[PitchResponse.from_pitch(p, current_user) for p in pitches],
    )


@router.get("/{pitch_id}", response_model=PitchEnvelope)
def get_pitch(
    request: Request,
    pitch_id: PitchId,
    current_user: User = Depends(get_current_user),
) -> PitchEnvelope:
    """Return one pitch with its founder summary; 404 when missing."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitch = pitch_store.get_pitch(pitch_id)
    if pitch is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Pitch not found."})
    user_store: UserStore = request.app.state.user_store
    return PitchEnvelope(message="Pitch", data=PitchResponse.from_pitch(pitch, user_store.get_by_id(pitch.founder_id)))
