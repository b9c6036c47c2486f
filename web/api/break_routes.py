"""Elimination routes: break preview, semi-finals and the grand final."""
from __future__ import annotations

import random
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import TabroomError
from tabroom.services.breaks import (
    SemiFinalSetup,
    elimination_status,
    generate_breaks,
    generate_finals,
    select_break,
    suggest_semi_finals,
)

from web.api.utils import get_session, http_error

router = APIRouter(prefix="/api/tournaments", tags=["breaks"])


class SemiFinalBody(BaseModel):
    government_team_id: int
    opposition_team_id: int
    room_id: int
    adjudicator_id: Optional[int] = None
    motions: list[str] = Field(default_factory=list, max_length=3)


class BreaksBody(BaseModel):
    semi_finals: list[SemiFinalBody]
    seed: Optional[int] = None


class FinalsBody(BaseModel):
    motions: list[str] = Field(default_factory=list, max_length=3)


def _round_dict(r) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "round_number": r.round_number,
        "status": r.status,
        "break_stage": r.break_stage,
        "motions": r.motions,
    }


@router.get("/{tournament_id}/breaks/preview")
async def preview_break(tournament_id: int, session: AsyncSession = Depends(get_session)):
    """Top four teams and the suggested 1v4 / 2v3 semi-finals."""
    try:
        broken = await select_break(session, tournament_id)
        pairs = suggest_semi_finals(broken)
    except TabroomError as e:
        raise http_error(e)
    await session.commit()
    return {
        "breaking_teams": [
            {
                "seed": i,
                "team_id": t.id,
                "name": t.name,
                "total_points": t.total_points,
                "total_speaks": round(t.total_speaks, 2),
            }
            for i, t in enumerate(broken, start=1)
        ],
        "suggested_semi_finals": [
            {"government_team_id": gov.id, "opposition_team_id": opp.id} for gov, opp in pairs
        ],
    }


@router.post("/{tournament_id}/breaks")
async def create_breaks(tournament_id: int, body: BreaksBody, session: AsyncSession = Depends(get_session)):
    rng = random.Random(body.seed) if body.seed is not None else None
    setups = [SemiFinalSetup(**sf.model_dump()) for sf in body.semi_finals]
    try:
        rounds = await generate_breaks(session, tournament_id, setups, rng)
    except TabroomError as e:
        raise http_error(e)
    return {"semi_finals": [_round_dict(r) for r in rounds]}


@router.get("/{tournament_id}/elimination")
async def get_elimination(tournament_id: int, session: AsyncSession = Depends(get_session)):
    """Where the tournament stands in the elimination track."""
    try:
        status = await elimination_status(session, tournament_id)
    except TabroomError as e:
        raise http_error(e)
    return asdict(status)


@router.post("/{tournament_id}/finals")
async def create_finals(
    tournament_id: int, body: Optional[FinalsBody] = None, session: AsyncSession = Depends(get_session)
):
    """Seed the grand final with both semi-final winners.

    Answers 409 naming the semi-final that is not yet resolved.
    """
    try:
        final = await generate_finals(session, tournament_id, body.motions if body else ())
    except TabroomError as e:
        raise http_error(e)
    return _round_dict(final)
