"""API routes for tournament setup: tournaments, institutions, pools and rounds."""
from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import TabroomError
from tabroom.models import (
    Adjudicator,
    BreakingTeam,
    Debate,
    DebateAdjudicator,
    DebateTeam,
    Institution,
    Room,
    Round,
    Team,
    Tournament,
)
from tabroom.services.draw import adjudicator_debates, clear_draw

from web.api.utils import get_session, http_error

router = APIRouter(prefix="/api", tags=["tournaments"])


# --- Pydantic schemas ---


class TournamentCreate(BaseModel):
    name: str
    format: Literal["AP", "BP"] = "AP"
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    format: Optional[Literal["AP", "BP"]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[Literal["setup", "ongoing", "completed"]] = None


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    format: str
    start_date: Optional[date]
    end_date: Optional[date]
    status: str


class InstitutionCreate(BaseModel):
    name: str
    code: Optional[str] = None


class InstitutionUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None


class InstitutionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: Optional[str]


def _clean_speakers(v):
    if v is None:
        return v
    names = [n.strip() for n in v if n and n.strip()]
    if not 2 <= len(names) <= 3:
        raise ValueError("A team needs 2 or 3 speakers")
    return names


class TeamCreate(BaseModel):
    name: str
    institution_id: Optional[int] = None
    speaker_names: list[str]

    @field_validator("speaker_names")
    @classmethod
    def check_speakers(cls, v):
        return _clean_speakers(v)


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    institution_id: Optional[int] = None
    speaker_names: Optional[list[str]] = None

    @field_validator("speaker_names")
    @classmethod
    def check_speakers(cls, v):
        return _clean_speakers(v)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    institution_id: Optional[int]
    speaker_names: list[str]
    total_points: int
    total_speaks: float
    rounds_count: int


class AdjudicatorCreate(BaseModel):
    name: str
    institution_id: Optional[int] = None
    strength: float = Field(5.0, ge=0, le=10)
    email: Optional[str] = None
    phone: Optional[str] = None
    conflicts: list[int] = []


class AdjudicatorUpdate(BaseModel):
    name: Optional[str] = None
    institution_id: Optional[int] = None
    strength: Optional[float] = Field(None, ge=0, le=10)
    email: Optional[str] = None
    phone: Optional[str] = None
    conflicts: Optional[list[int]] = None


class AdjudicatorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    institution_id: Optional[int]
    strength: float
    email: Optional[str]
    phone: Optional[str]
    conflicts: list[int]


class RoomCreate(BaseModel):
    name: str
    capacity: int = Field(30, ge=1)


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    capacity: int


class RoundCreate(BaseModel):
    round_number: int = Field(..., ge=1)
    name: str
    motion_1: Optional[str] = None
    motion_2: Optional[str] = None
    motion_3: Optional[str] = None
    info_slide: Optional[str] = None
    round_type: Literal["inround", "outround"] = "inround"


class RoundUpdate(BaseModel):
    round_number: Optional[int] = Field(None, ge=1)
    name: Optional[str] = None
    motion: Optional[str] = None
    motion_1: Optional[str] = None
    motion_2: Optional[str] = None
    motion_3: Optional[str] = None
    info_slide: Optional[str] = None
    status: Optional[Literal["setup", "ongoing", "completed"]] = None


class RoundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    round_number: int
    name: str
    motion: Optional[str]
    motion_1: Optional[str]
    motion_2: Optional[str]
    motion_3: Optional[str]
    info_slide: Optional[str]
    status: str
    round_type: str
    break_stage: Optional[str]


async def _tournament_or_404(session: AsyncSession, tournament_id: int) -> Tournament:
    t = await session.get(Tournament, tournament_id)
    if not t:
        raise HTTPException(404, "Tournament not found")
    return t


async def _get_or_404(session: AsyncSession, model, item_id: int, label: str):
    item = await session.get(model, item_id)
    if not item:
        raise HTTPException(404, f"{label} not found")
    return item


async def _check_institution(session: AsyncSession, institution_id: Optional[int]) -> None:
    if institution_id is not None and not await session.get(Institution, institution_id):
        raise HTTPException(400, f"Institution {institution_id} does not exist")


async def _delete_round_records(session: AsyncSession, round_id: int) -> None:
    await clear_draw(session, round_id)
    await session.execute(delete(BreakingTeam).where(BreakingTeam.round_id == round_id))


# --- Tournaments ---


@router.post("/tournaments", response_model=TournamentResponse)
async def create_tournament(body: TournamentCreate, session: AsyncSession = Depends(get_session)):
    t = Tournament(**body.model_dump(), status="setup")
    session.add(t)
    await session.commit()
    await session.refresh(t)
    return t


@router.get("/tournaments", response_model=list[TournamentResponse])
async def list_tournaments(session: AsyncSession = Depends(get_session)):
    """List tournaments, newest first."""
    result = await session.execute(select(Tournament).order_by(Tournament.id.desc()))
    return result.scalars().all()


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
async def get_tournament(tournament_id: int, session: AsyncSession = Depends(get_session)):
    return await _tournament_or_404(session, tournament_id)


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
async def update_tournament(tournament_id: int, body: TournamentUpdate, session: AsyncSession = Depends(get_session)):
    t = await _tournament_or_404(session, tournament_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(t, key, value)
    await session.commit()
    await session.refresh(t)
    return t


@router.delete("/tournaments/{tournament_id}")
async def delete_tournament(tournament_id: int, session: AsyncSession = Depends(get_session)):
    """Delete a tournament with its rounds, draws and pools."""
    t = await _tournament_or_404(session, tournament_id)
    round_ids = (await session.execute(select(Round.id).where(Round.tournament_id == tournament_id))).scalars().all()
    for round_id in round_ids:
        await _delete_round_records(session, round_id)
    name = t.name
    await session.delete(t)
    await session.commit()
    return {"ok": True, "deleted": name}


# --- Institutions ---


@router.post("/institutions", response_model=InstitutionResponse)
async def create_institution(body: InstitutionCreate, session: AsyncSession = Depends(get_session)):
    inst = Institution(name=body.name.strip(), code=body.code)
    session.add(inst)
    await session.commit()
    await session.refresh(inst)
    return inst


@router.get("/institutions", response_model=list[InstitutionResponse])
async def list_institutions(session: AsyncSession = Depends(get_session)):
    result = await session.execute(select(Institution).order_by(Institution.name))
    return result.scalars().all()


@router.patch("/institutions/{institution_id}", response_model=InstitutionResponse)
async def update_institution(institution_id: int, body: InstitutionUpdate, session: AsyncSession = Depends(get_session)):
    inst = await _get_or_404(session, Institution, institution_id, "Institution")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(inst, key, value)
    await session.commit()
    await session.refresh(inst)
    return inst


@router.delete("/institutions/{institution_id}")
async def delete_institution(institution_id: int, session: AsyncSession = Depends(get_session)):
    inst = await _get_or_404(session, Institution, institution_id, "Institution")
    for model in (Team, Adjudicator):
        in_use = (
            await session.execute(select(func.count(model.id)).where(model.institution_id == institution_id))
        ).scalar_one()
        if in_use:
            raise HTTPException(400, f"{inst.name} still has teams or adjudicators")
    await session.delete(inst)
    await session.commit()
    return {"ok": True}


# --- Teams ---


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse)
async def create_team(tournament_id: int, body: TeamCreate, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    await _check_institution(session, body.institution_id)
    team = Team(tournament_id=tournament_id, **body.model_dump())
    session.add(team)
    await session.commit()
    await session.refresh(team)
    return team


@router.get("/tournaments/{tournament_id}/teams", response_model=list[TeamResponse])
async def list_teams(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    result = await session.execute(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.name))
    return result.scalars().all()


@router.patch("/teams/{team_id}", response_model=TeamResponse)
async def update_team(team_id: int, body: TeamUpdate, session: AsyncSession = Depends(get_session)):
    team = await _get_or_404(session, Team, team_id, "Team")
    updates = body.model_dump(exclude_unset=True)
    if "institution_id" in updates:
        await _check_institution(session, updates["institution_id"])
    for key, value in updates.items():
        setattr(team, key, value)
    await session.commit()
    await session.refresh(team)
    return team


@router.delete("/teams/{team_id}")
async def delete_team(team_id: int, session: AsyncSession = Depends(get_session)):
    """Delete a team that has not been drawn into any debate."""
    team = await _get_or_404(session, Team, team_id, "Team")
    drawn = (
        await session.execute(select(func.count(DebateTeam.id)).where(DebateTeam.team_id == team_id))
    ).scalar_one()
    if drawn:
        raise HTTPException(400, f"{team.name} appears in {drawn} debate(s); withdraw those draws first")
    await session.execute(delete(BreakingTeam).where(BreakingTeam.team_id == team_id))
    await session.delete(team)
    await session.commit()
    return {"ok": True}


# --- Adjudicators ---


@router.post("/tournaments/{tournament_id}/adjudicators", response_model=AdjudicatorResponse)
async def create_adjudicator(tournament_id: int, body: AdjudicatorCreate, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    await _check_institution(session, body.institution_id)
    adj = Adjudicator(tournament_id=tournament_id, **body.model_dump())
    session.add(adj)
    await session.commit()
    await session.refresh(adj)
    return adj


@router.get("/tournaments/{tournament_id}/adjudicators", response_model=list[AdjudicatorResponse])
async def list_adjudicators(tournament_id: int, session: AsyncSession = Depends(get_session)):
    """List adjudicators, strongest first."""
    await _tournament_or_404(session, tournament_id)
    result = await session.execute(
        select(Adjudicator)
        .where(Adjudicator.tournament_id == tournament_id)
        .order_by(Adjudicator.strength.desc(), Adjudicator.name)
    )
    return result.scalars().all()


@router.patch("/adjudicators/{adjudicator_id}", response_model=AdjudicatorResponse)
async def update_adjudicator(adjudicator_id: int, body: AdjudicatorUpdate, session: AsyncSession = Depends(get_session)):
    adj = await _get_or_404(session, Adjudicator, adjudicator_id, "Adjudicator")
    updates = body.model_dump(exclude_unset=True)
    if "institution_id" in updates:
        await _check_institution(session, updates["institution_id"])
    for key, value in updates.items():
        setattr(adj, key, value)
    await session.commit()
    await session.refresh(adj)
    return adj


@router.get("/adjudicators/{adjudicator_id}/debates")
async def list_adjudicator_debates(adjudicator_id: int, session: AsyncSession = Depends(get_session)):
    """Debates this adjudicator is on in rounds past setup, with speakers and scores for the ballot."""
    try:
        return await adjudicator_debates(session, adjudicator_id)
    except TabroomError as e:
        raise http_error(e)


@router.delete("/adjudicators/{adjudicator_id}")
async def delete_adjudicator(adjudicator_id: int, session: AsyncSession = Depends(get_session)):
    adj = await _get_or_404(session, Adjudicator, adjudicator_id, "Adjudicator")
    assigned = (
        await session.execute(
            select(func.count(DebateAdjudicator.id)).where(DebateAdjudicator.adjudicator_id == adjudicator_id)
        )
    ).scalar_one()
    if assigned:
        raise HTTPException(400, f"{adj.name} is assigned to {assigned} debate(s); withdraw those draws first")
    await session.delete(adj)
    await session.commit()
    return {"ok": True}


# --- Rooms ---


@router.post("/tournaments/{tournament_id}/rooms", response_model=RoomResponse)
async def create_room(tournament_id: int, body: RoomCreate, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    room = Room(tournament_id=tournament_id, **body.model_dump())
    session.add(room)
    await session.commit()
    await session.refresh(room)
    return room


@router.get("/tournaments/{tournament_id}/rooms", response_model=list[RoomResponse])
async def list_rooms(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    result = await session.execute(
        select(Room).where(Room.tournament_id == tournament_id).order_by(Room.name, Room.id)
    )
    return result.scalars().all()


@router.patch("/rooms/{room_id}", response_model=RoomResponse)
async def update_room(room_id: int, body: RoomUpdate, session: AsyncSession = Depends(get_session)):
    room = await _get_or_404(session, Room, room_id, "Room")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(room, key, value)
    await session.commit()
    await session.refresh(room)
    return room


@router.delete("/rooms/{room_id}")
async def delete_room(room_id: int, session: AsyncSession = Depends(get_session)):
    room = await _get_or_404(session, Room, room_id, "Room")
    used = (await session.execute(select(func.count(Debate.id)).where(Debate.room_id == room_id))).scalar_one()
    if used:
        raise HTTPException(400, f"{room.name} hosts {used} debate(s); withdraw those draws first")
    await session.delete(room)
    await session.commit()
    return {"ok": True}


# --- Rounds ---


@router.post("/tournaments/{tournament_id}/rounds", response_model=RoundResponse)
async def create_round(tournament_id: int, body: RoundCreate, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    round_ = Round(tournament_id=tournament_id, status="setup", **body.model_dump())
    session.add(round_)
    await session.commit()
    await session.refresh(round_)
    return round_


@router.get("/tournaments/{tournament_id}/rounds", response_model=list[RoundResponse])
async def list_rounds(tournament_id: int, session: AsyncSession = Depends(get_session)):
    await _tournament_or_404(session, tournament_id)
    result = await session.execute(
        select(Round).where(Round.tournament_id == tournament_id).order_by(Round.round_number, Round.id)
    )
    return result.scalars().all()


@router.get("/rounds/{round_id}", response_model=RoundResponse)
async def get_round(round_id: int, session: AsyncSession = Depends(get_session)):
    return await _get_or_404(session, Round, round_id, "Round")


@router.patch("/rounds/{round_id}", response_model=RoundResponse)
async def update_round(round_id: int, body: RoundUpdate, session: AsyncSession = Depends(get_session)):
    """Edit round details, motions or status (e.g. mark a round completed)."""
    round_ = await _get_or_404(session, Round, round_id, "Round")
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(round_, key, value)
    await session.commit()
    await session.refresh(round_)
    return round_


@router.delete("/rounds/{round_id}")
async def delete_round(round_id: int, session: AsyncSession = Depends(get_session)):
    """Delete a round with its debates, results and break records."""
    round_ = await _get_or_404(session, Round, round_id, "Round")
    await _delete_round_records(session, round_id)
    await session.delete(round_)
    await session.commit()
    return {"ok": True}
