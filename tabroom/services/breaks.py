"""Elimination track: break to semi-finals, then seed the final from the semi winners.

State machine per tournament:

    no_break -> semis_scheduled -> semis_complete -> finals_seeded
             -> finals_scheduled -> finals_complete

Only generate_breaks and generate_finals move the state forward; the other
transitions follow from ballots and the draw publisher.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import DraftValidationError, InsufficientInputError, NotFoundError, ProgressionError
from tabroom.models import BreakingTeam, Debate, DebateTeam, Round, Team, Tournament
from tabroom.services.draw import (
    PairingDraft,
    choose_motion,
    rank_teams,
    validate_pairings,
    write_draw,
)
from tabroom.services.standings import recompute_team_standings

logger = logging.getLogger("tabroom.breaks")

SEMI_FINAL_BREAK = 4
SEMI_FINAL_NAMES = ("Semi-Final A", "Semi-Final B")
FINAL_NAME = "Grand Final"

NO_BREAK = "no_break"
SEMIS_SCHEDULED = "semis_scheduled"
SEMIS_COMPLETE = "semis_complete"
FINALS_SEEDED = "finals_seeded"
FINALS_SCHEDULED = "finals_scheduled"
FINALS_COMPLETE = "finals_complete"


@dataclass
class SemiFinalSetup:
    """Operator's choice for one semi-final."""

    government_team_id: int
    opposition_team_id: int
    room_id: int
    adjudicator_id: Optional[int] = None
    motions: List[str] = field(default_factory=list)


@dataclass
class StageRound:
    round_id: int
    name: str
    status: str
    team_ids: List[int]
    debate_count: int
    winner_team_id: Optional[int] = None
    blocking: Optional[str] = None


@dataclass
class EliminationStatus:
    state: str
    semi_finals: List[StageRound]
    final: Optional[StageRound] = None


async def get_tournament(session: AsyncSession, tournament_id: int) -> Tournament:
    t = await session.get(Tournament, tournament_id)
    if not t:
        raise NotFoundError(f"Tournament {tournament_id} not found")
    return t


async def elimination_rounds(session: AsyncSession, tournament_id: int) -> Tuple[List[Round], Optional[Round]]:
    """(semi-final rounds in creation order, final round or None)."""
    result = await session.execute(
        select(Round)
        .where(Round.tournament_id == tournament_id, Round.break_stage.is_not(None))
        .order_by(Round.id)
    )
    rounds = result.scalars().all()
    semis = [r for r in rounds if r.break_stage == "semifinal"]
    final = next((r for r in rounds if r.break_stage == "final"), None)
    return semis, final


async def _next_round_number(session: AsyncSession, tournament_id: int) -> int:
    current = (
        await session.execute(select(func.max(Round.round_number)).where(Round.tournament_id == tournament_id))
    ).scalar_one()
    return (current or 0) + 1


def _motion_columns(motions: Sequence[str]) -> dict:
    cleaned = [m.strip() for m in motions if m and m.strip()][:3]
    cleaned += [None] * (3 - len(cleaned))
    return {"motion_1": cleaned[0], "motion_2": cleaned[1], "motion_3": cleaned[2]}


async def recorded_break(session: AsyncSession, semis: Sequence[Round]) -> List[Team]:
    """Teams seeded into the semi-finals, in seed order."""
    result = await session.execute(
        select(Team)
        .join(BreakingTeam, BreakingTeam.team_id == Team.id)
        .where(BreakingTeam.round_id.in_([s.id for s in semis]))
        .order_by(BreakingTeam.break_rank)
    )
    return list(result.scalars().all())


async def select_break(session: AsyncSession, tournament_id: int, size: int = SEMI_FINAL_BREAK) -> List[Team]:
    """Top `size` teams by points, then speaks. Standings are recomputed first.

    Once the semi-finals exist the recorded seeds are returned instead, so
    later results never reorder the break.
    """
    await get_tournament(session, tournament_id)
    semis, _ = await elimination_rounds(session, tournament_id)
    if semis:
        return await recorded_break(session, semis)
    teams = await recompute_team_standings(session, tournament_id)
    if len(teams) < size:
        raise InsufficientInputError(f"A break of {size} needs at least {size} teams; the tournament has {len(teams)}.")
    return rank_teams(teams)[:size]


def suggest_semi_finals(broken: Sequence[Team]) -> List[Tuple[Team, Team]]:
    """Standard seeding: 1 v 4 and 2 v 3."""
    if len(broken) != SEMI_FINAL_BREAK:
        raise InsufficientInputError(f"Semi-finals need exactly {SEMI_FINAL_BREAK} breaking teams.")
    return [(broken[0], broken[3]), (broken[1], broken[2])]


async def semi_final_winner(session: AsyncSession, round_: Round) -> int:
    """Team id ranked first in the round. Raises ProgressionError naming the round otherwise."""
    if round_.status != "completed":
        raise ProgressionError(
            f"{round_.name} is not completed (status: {round_.status}). Enter its result first.",
            round_id=round_.id,
            round_name=round_.name,
        )
    result = await session.execute(
        select(DebateTeam.team_id)
        .join(Debate, DebateTeam.debate_id == Debate.id)
        .where(Debate.round_id == round_.id, DebateTeam.rank == 1)
    )
    winners = result.scalars().all()
    if len(winners) != 1:
        raise ProgressionError(
            f"{round_.name} has {len(winners)} team(s) ranked first; exactly one is required.",
            round_id=round_.id,
            round_name=round_.name,
        )
    return winners[0]


async def _stage_round(session: AsyncSession, round_: Round) -> StageRound:
    debates = (
        await session.execute(select(func.count(Debate.id)).where(Debate.round_id == round_.id))
    ).scalar_one()
    stage = StageRound(
        round_id=round_.id,
        name=round_.name,
        status=round_.status,
        team_ids=[],
        debate_count=debates,
    )
    result = await session.execute(
        select(BreakingTeam.team_id).where(BreakingTeam.round_id == round_.id).order_by(BreakingTeam.break_rank)
    )
    stage.team_ids = list(result.scalars().all())
    try:
        stage.winner_team_id = await semi_final_winner(session, round_)
    except ProgressionError as e:
        stage.blocking = str(e)
    return stage


async def elimination_status(session: AsyncSession, tournament_id: int) -> EliminationStatus:
    await get_tournament(session, tournament_id)
    semis, final = await elimination_rounds(session, tournament_id)
    semi_stages = [await _stage_round(session, r) for r in semis]
    if not semis:
        return EliminationStatus(state=NO_BREAK, semi_finals=[])
    if final is None:
        resolved = all(s.winner_team_id for s in semi_stages)
        return EliminationStatus(state=SEMIS_COMPLETE if resolved else SEMIS_SCHEDULED, semi_finals=semi_stages)
    final_stage = await _stage_round(session, final)
    if final.status == "completed":
        state = FINALS_COMPLETE
    elif final_stage.debate_count:
        state = FINALS_SCHEDULED
    else:
        state = FINALS_SEEDED
    return EliminationStatus(state=state, semi_finals=semi_stages, final=final_stage)


async def generate_breaks(
    session: AsyncSession,
    tournament_id: int,
    semi_finals: Sequence[SemiFinalSetup],
    rng: Optional[random.Random] = None,
) -> List[Round]:
    """Break the top four into two semi-finals and publish both draws in one transaction."""
    rng = rng or random.Random()
    tournament = await get_tournament(session, tournament_id)
    semis, final = await elimination_rounds(session, tournament_id)
    if semis or final:
        raise ProgressionError(f"Breaks have already been generated for {tournament.name}.")
    if len(semi_finals) != len(SEMI_FINAL_NAMES):
        raise DraftValidationError(f"Exactly {len(SEMI_FINAL_NAMES)} semi-final pairings are required.")

    broken = await select_break(session, tournament_id)
    seeds = {team.id: rank for rank, team in enumerate(broken, start=1)}
    drawn = [x for sf in semi_finals for x in (sf.government_team_id, sf.opposition_team_id)]
    if sorted(drawn) != sorted(seeds):
        names = ", ".join(f"{rank}. {t.name}" for rank, t in enumerate(broken, start=1))
        raise DraftValidationError(f"Semi-finals must use each breaking team exactly once: {names}.")
    if semi_finals[0].room_id == semi_finals[1].room_id:
        raise DraftValidationError("Both semi-finals are assigned the same room.")
    chairs = [sf.adjudicator_id for sf in semi_finals if sf.adjudicator_id]
    if len(chairs) != len(set(chairs)):
        raise DraftValidationError("Both semi-finals are assigned the same adjudicator.")

    round_number = await _next_round_number(session, tournament_id)
    created = []
    try:
        for name, setup in zip(SEMI_FINAL_NAMES, semi_finals):
            round_ = Round(
                tournament_id=tournament_id,
                round_number=round_number,
                name=name,
                round_type="outround",
                break_stage="semifinal",
                status="setup",
                **_motion_columns(setup.motions),
            )
            session.add(round_)
            await session.flush()
            for team_id in (setup.government_team_id, setup.opposition_team_id):
                session.add(BreakingTeam(team_id=team_id, round_id=round_.id, break_rank=seeds[team_id]))
            await session.flush()
            draft = PairingDraft(
                government_team_id=setup.government_team_id,
                opposition_team_id=setup.opposition_team_id,
                room_id=setup.room_id,
                motion=choose_motion(round_.motions, rng),
                adjudicator_id=setup.adjudicator_id,
            )
            await validate_pairings(session, round_, [draft])
            await write_draw(session, round_, [draft])
            round_.status = "ongoing"
            created.append(round_)
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info(
        "Break generated for %s: %s",
        tournament.name, ", ".join(f"{seeds[t.id]}. {t.name}" for t in broken),
    )
    return created


async def generate_finals(
    session: AsyncSession, tournament_id: int, motions: Sequence[str] = ()
) -> Round:
    """Create the final seeded with the two semi-final winners.

    Both semi-finals must be completed with exactly one rank-1 team each;
    otherwise nothing is written and the error names the blocking round(s).
    """
    tournament = await get_tournament(session, tournament_id)
    semis, final = await elimination_rounds(session, tournament_id)
    if not semis:
        raise ProgressionError(f"Breaks have not been generated for {tournament.name}.")
    if final is not None:
        raise ProgressionError(f"{final.name} already exists for {tournament.name}.", final.id, final.name)

    winners = []
    problems: List[ProgressionError] = []
    for semi in semis:
        try:
            winners.append(await semi_final_winner(session, semi))
        except ProgressionError as e:
            problems.append(e)
    if problems:
        raise ProgressionError(
            " ".join(str(p) for p in problems),
            round_id=problems[0].round_id,
            round_name=problems[0].round_name,
        )

    seeds = dict(
        (
            await session.execute(
                select(BreakingTeam.team_id, BreakingTeam.break_rank).where(
                    BreakingTeam.round_id.in_([s.id for s in semis]),
                    BreakingTeam.team_id.in_(winners),
                )
            )
        ).all()
    )
    try:
        final = Round(
            tournament_id=tournament_id,
            round_number=await _next_round_number(session, tournament_id),
            name=FINAL_NAME,
            round_type="outround",
            break_stage="final",
            status="setup",
            **_motion_columns(motions),
        )
        session.add(final)
        await session.flush()
        for team_id in winners:
            session.add(BreakingTeam(team_id=team_id, round_id=final.id, break_rank=seeds.get(team_id, 0)))
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("Seeded %s for %s with teams %s", final.name, tournament.name, winners)
    return final
