"""Team, speaker and adjudicator tabs. All totals are derived from debate records."""
from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.models import (
    Adjudicator,
    Debate,
    DebateAdjudicator,
    DebateTeam,
    Institution,
    Round,
    SpeakerScore,
    Team,
)
from tabroom.services.draw import rank_teams


async def recompute_team_standings(
    session: AsyncSession, tournament_id: int, team_ids: Optional[Iterable[int]] = None
) -> List[Team]:
    """Rebuild total_points, total_speaks and rounds_count from participations. Flushes, does not commit."""
    query = select(Team).where(Team.tournament_id == tournament_id)
    if team_ids is not None:
        query = query.where(Team.id.in_(list(team_ids)))
    teams = list((await session.execute(query)).scalars().all())
    if not teams:
        return []
    result = await session.execute(
        select(
            DebateTeam.team_id,
            func.coalesce(func.sum(DebateTeam.points), 0),
            func.coalesce(func.sum(DebateTeam.total_speaks), 0.0),
            func.count(DebateTeam.id),
        )
        .where(DebateTeam.team_id.in_([t.id for t in teams]))
        .group_by(DebateTeam.team_id)
    )
    totals = {row[0]: (int(row[1]), float(row[2]), int(row[3])) for row in result.all()}
    for team in teams:
        team.total_points, team.total_speaks, team.rounds_count = totals.get(team.id, (0, 0.0, 0))
    await session.flush()
    return teams


async def _institution_names(session: AsyncSession) -> dict[int, str]:
    result = await session.execute(select(Institution.id, Institution.name))
    return {row[0]: row[1] for row in result.all()}


async def team_tab(session: AsyncSession, tournament_id: int) -> List[dict]:
    """Team standings, ranked like the draw: points, then speaks."""
    teams = await recompute_team_standings(session, tournament_id)
    institutions = await _institution_names(session)
    return [
        {
            "rank": i,
            "team_id": t.id,
            "name": t.name,
            "institution": institutions.get(t.institution_id) if t.institution_id else None,
            "total_points": t.total_points,
            "total_speaks": round(t.total_speaks, 2),
            "rounds_count": t.rounds_count,
        }
        for i, t in enumerate(rank_teams(teams), start=1)
    ]


async def speaker_tab(session: AsyncSession, tournament_id: int) -> List[dict]:
    """Speaker standings by average score. Rounds still in setup are not counted."""
    result = await session.execute(
        select(SpeakerScore.speaker_name, SpeakerScore.score, Team.id, Team.name)
        .join(DebateTeam, SpeakerScore.debate_team_id == DebateTeam.id)
        .join(Team, DebateTeam.team_id == Team.id)
        .join(Debate, DebateTeam.debate_id == Debate.id)
        .join(Round, Debate.round_id == Round.id)
        .where(Round.tournament_id == tournament_id, Round.status != "setup")
    )
    speakers: dict[tuple[int, str], dict] = {}
    for name, score, team_id, team_name in result.all():
        row = speakers.setdefault(
            (team_id, name),
            {"name": name, "team_id": team_id, "team_name": team_name, "total_speaks": 0.0, "speeches": 0},
        )
        row["total_speaks"] += score
        row["speeches"] += 1
    rows = list(speakers.values())
    for row in rows:
        row["average_speaks"] = round(row["total_speaks"] / row["speeches"], 2)
        row["total_speaks"] = round(row["total_speaks"], 2)
    rows.sort(key=lambda r: (-r["average_speaks"], -r["total_speaks"], r["name"].lower()))
    return rows


async def adjudicator_tab(session: AsyncSession, tournament_id: int) -> List[dict]:
    """Debates chaired and debates on panel (chair or panelist) per adjudicator."""
    adjudicators = (
        await session.execute(select(Adjudicator).where(Adjudicator.tournament_id == tournament_id))
    ).scalars().all()
    result = await session.execute(
        select(DebateAdjudicator.adjudicator_id, DebateAdjudicator.role, func.count(DebateAdjudicator.id))
        .where(DebateAdjudicator.adjudicator_id.in_([a.id for a in adjudicators]))
        .group_by(DebateAdjudicator.adjudicator_id, DebateAdjudicator.role)
    )
    counts: dict[tuple[int, str], int] = {(row[0], row[1]): row[2] for row in result.all()}
    institutions = await _institution_names(session)
    rows = []
    for a in adjudicators:
        chaired = counts.get((a.id, "chair"), 0)
        rows.append({
            "adjudicator_id": a.id,
            "name": a.name,
            "institution": institutions.get(a.institution_id) if a.institution_id else None,
            "strength": a.strength,
            "debates_chaired": chaired,
            "debates_paneled": chaired + counts.get((a.id, "panelist"), 0),
        })
    rows.sort(key=lambda r: (-r["debates_chaired"], r["name"].lower()))
    return rows
