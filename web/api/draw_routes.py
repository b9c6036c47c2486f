"""Draw routes: propose, publish, view and withdraw a round's draw."""
from __future__ import annotations

import random
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import TabroomError
from tabroom.models import Adjudicator, Room, Team
from tabroom.services.draw import (
    PairingDraft,
    generate_draw,
    get_draw,
    name_lookup,
    publish_draw,
    withdraw_draw,
)

from web.api.utils import get_session, http_error

router = APIRouter(prefix="/api/rounds", tags=["draw"])


class PairingBody(BaseModel):
    government_team_id: Optional[int] = None
    opposition_team_id: Optional[int] = None
    room_id: Optional[int] = None
    motion: str = ""
    adjudicator_id: Optional[int] = None


class GenerateBody(BaseModel):
    seed: Optional[int] = None


class PublishBody(BaseModel):
    pairings: list[PairingBody]
    confirm_replace: bool = False
    confirm_unchaired: bool = False


def _draft_dict(d: PairingDraft) -> dict:
    return {
        "government_team_id": d.government_team_id,
        "opposition_team_id": d.opposition_team_id,
        "room_id": d.room_id,
        "motion": d.motion,
        "adjudicator_id": d.adjudicator_id,
    }


@router.post("/{round_id}/draw/generate")
async def generate(round_id: int, body: Optional[GenerateBody] = None, session: AsyncSession = Depends(get_session)):
    """Propose pairings for review. Nothing is saved until the draw is published."""
    rng = random.Random(body.seed) if body and body.seed is not None else None
    try:
        proposal = await generate_draw(session, round_id, rng)
    except TabroomError as e:
        raise http_error(e)
    pairings = proposal.pairings
    teams = await name_lookup(
        session, Team, [d.government_team_id for d in pairings] + [d.opposition_team_id for d in pairings]
    )
    teams.update(await name_lookup(session, Team, proposal.unpaired_team_ids))
    rooms = await name_lookup(session, Room, [d.room_id for d in pairings])
    adjs = await name_lookup(session, Adjudicator, [d.adjudicator_id for d in pairings])
    return {
        "round_id": proposal.round_id,
        "pairings": [
            {
                **_draft_dict(d),
                "government_team_name": teams.get(d.government_team_id),
                "opposition_team_name": teams.get(d.opposition_team_id),
                "room_name": rooms.get(d.room_id),
                "adjudicator_name": adjs.get(d.adjudicator_id),
            }
            for d in pairings
        ],
        "unpaired_teams": [{"id": tid, "name": teams.get(tid)} for tid in proposal.unpaired_team_ids],
        "warnings": proposal.warnings,
    }


@router.post("/{round_id}/draw/publish")
async def publish(round_id: int, body: PublishBody, session: AsyncSession = Depends(get_session)):
    """Replace the round's draw with the submitted pairings.

    Answers 409 with the flag to set when the draw would replace existing
    debates or leave debates without a chair.
    """
    drafts = [PairingDraft(**p.model_dump()) for p in body.pairings]
    try:
        result = await publish_draw(
            session,
            round_id,
            drafts,
            confirm_replace=body.confirm_replace,
            confirm_unchaired=body.confirm_unchaired,
        )
    except TabroomError as e:
        raise http_error(e)
    return {
        "round_id": result.round_id,
        "debate_ids": result.debate_ids,
        "created": len(result.debate_ids),
        "replaced": result.replaced,
        "unchaired": result.unchaired,
        "skipped": [_draft_dict(d) for d in result.skipped],
    }


@router.get("/{round_id}/draw")
async def view_draw(round_id: int, session: AsyncSession = Depends(get_session)):
    """Published draw for a round, with team, room and adjudicator names."""
    try:
        return await get_draw(session, round_id)
    except TabroomError as e:
        raise http_error(e)


@router.delete("/{round_id}/draw")
async def withdraw(round_id: int, session: AsyncSession = Depends(get_session)):
    try:
        removed = await withdraw_draw(session, round_id)
    except TabroomError as e:
        raise http_error(e)
    return {"ok": True, "removed": removed}
