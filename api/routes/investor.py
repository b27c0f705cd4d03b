"""
api/routes/investor.py -- Investor browsing and interest bookkeeping.

Routes (mounted under /api/investor):
  GET  /pitches              -- all pitches with founder summaries
  POST /interest/{pitch_id}  -- mark interest; idempotent
  GET  /interests            -- the caller's interested pitches

Every route requires the investor role. Founders and community members get
403 before any handler runs.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.models import InterestData, InterestEnvelope, PitchListEnvelope
from api.routes.startups import PitchId, with_founders
from auth.dependencies import require_investor
from auth.models import User
from market.store import PitchStore

logger = logging.getLogger("pitchmatch.api.investor")

# Router-level dependency applies the investor gate to every route; handlers
# that need the account also declare it, and FastAPI resolves it once.
router = APIRouter(dependencies=[Depends(require_investor)])


@router.get("/pitches", response_model=PitchListEnvelope)
def browse_pitches(request: Request) -> PitchListEnvelope:
    """Return every pitch, newest first."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitches = pitch_store.list_pitches()
    return PitchListEnvelope(
        message=f"{len(pitches)} pitches",
        data=with_founders(request.app.state.user_store, pitches),
    )


@router.post("/interest/{pitch_id}", response_model=InterestEnvelope)
def mark_interest(
    request: Request,
    pitch_id: PitchId,
    current_user: User = Depends(require_investor),
) -> InterestEnvelope:
    """Add a pitch to the caller's interest list if it is not already there."""
    pitch_store: PitchStore = request.app.state.pitch_store
    if pitch_store.get_pitch(pitch_id) is None:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "Pitch not found."})

    added = pitch_store.mark_interest(current_user.id, pitch_id)
    if added:
        logger.info("Investor id=%s marked interest in pitch id=%s", current_user.id, pitch_id)
        message = "Interest recorded successfully"
    else:
        message = "Already marked interest in this pitch"
    return InterestEnvelope(
        message=message,
        data=InterestData(
            pitch_id=pitch_id,
            added=added,
            interested_pitches=pitch_store.get_interested_pitch_ids(current_user.id),
        ),
    )


@router.get("/interests", response_model=PitchListEnvelope)
def list_interests(request: Request, current_user: User = Depends(require_investor)) -> PitchListEnvelope:
    """Return the pitches the caller marked, in the order they were marked."""
    pitch_store: PitchStore = request.app.state.pitch_store
    pitches = pitch_store.list_interested_pitches(current_user.id)
    return PitchListEnvelope(
        message=f"{len(pitches)} interested pitches",
        data=with_founders(request.app.state.user_store, pitches),
    )
