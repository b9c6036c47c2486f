"""Ballot entry and tab (standings) routes."""
from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import TabroomError
from tabroom.services.breaks import get_tournament
from tabroom.services.results import submit_ballot
from tabroom.services.standings import adjudicator_tab, speaker_tab, team_tab

from web.api.utils import get_session, http_error

router = APIRouter(prefix="/api", tags=["tab"])


class BallotBody(BaseModel):
    winner: Literal["government", "opposition"]
    government_scores: list[float] = Field(default_factory=list)
    opposition_scores: list[float] = Field(default_factory=list)


@router.post("/debates/{debate_id}/ballot")
async def enter_ballot(debate_id: int, body: BallotBody, session: AsyncSession = Depends(get_session)):
    """Record the winner and speaker scores for a debate."""
    try:
        debate = await submit_ballot(
            session,
            debate_id,
            body.winner,
            {"government": body.government_scores, "opposition": body.opposition_scores},
        )
    except TabroomError as e:
        raise http_error(e)
    return {"ok": True, "debate_id": debate.id, "status": debate.status}


async def _check_tournament(session: AsyncSession, tournament_id: int) -> None:
    try:
        await get_tournament(session, tournament_id)
    except TabroomError as e:
        raise http_error(e)


@router.get("/tournaments/{tournament_id}/standings/teams")
async def team_standings(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _check_tournament(session, tournament_id)
    rows = await team_tab(session, tournament_id)
    await session.commit()
    return rows


@router.get("/tournaments/{tournament_id}/standings/speakers")
async def speaker_standings(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _check_tournament(session, tournament_id)
    return await speaker_tab(session, tournament_id)


@router.get("/tournaments/{tournament_id}/standings/adjudicators")
async def adjudicator_standings(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _check_tournament(session, tournament_id)
    return await adjudicator_tab(session, tournament_id)
