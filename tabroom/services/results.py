"""Ballot entry for two-team debates."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

import config
from tabroom.exceptions import DraftValidationError, NotFoundError
from tabroom.models import Debate, DebateTeam, Round, SpeakerScore, Team
from tabroom.services.standings import recompute_team_standings

logger = logging.getLogger("tabroom.results")

MIN_SPEAKERS = 2
MAX_SPEAKERS = 3


def _check_scores(team_name: str, scores: Sequence[float]) -> None:
    if not MIN_SPEAKERS <= len(scores) <= MAX_SPEAKERS:
        raise DraftValidationError(
            f"{team_name}: {MIN_SPEAKERS} to {MAX_SPEAKERS} speaker scores are required, got {len(scores)}."
        )
    for pos, score in enumerate(scores, start=1):
        if not config.SPEAKER_SCORE_MIN <= score <= config.SPEAKER_SCORE_MAX:
            raise DraftValidationError(
                f"{team_name} speaker {pos}: score {score} is outside "
                f"{config.SPEAKER_SCORE_MIN:g}-{config.SPEAKER_SCORE_MAX:g}."
            )


async def _save_speaker_scores(
    session: AsyncSession, debate_team: DebateTeam, team: Team, scores: Sequence[float]
) -> None:
    """Upsert one row per speaker position; drop positions no longer on the ballot."""
    existing = {
        s.position: s
        for s in (
            await session.execute(select(SpeakerScore).where(SpeakerScore.debate_team_id == debate_team.id))
        ).scalars().all()
    }
    names = team.speaker_names or []
    for pos, score in enumerate(scores, start=1):
        name = names[pos - 1] if pos - 1 < len(names) else f"Speaker {pos}"
        row = existing.pop(pos, None)
        if row:
            row.speaker_name = name
            row.score = score
        else:
            session.add(SpeakerScore(debate_team_id=debate_team.id, speaker_name=name, score=score, position=pos))
    for stale in existing.values():
        await session.delete(stale)


async def submit_ballot(
    session: AsyncSession,
    debate_id: int,
    winner_position: str,
    speaker_scores: Mapping[str, Sequence[float]],
) -> Debate:
    """Record the winner (points 1, rank 1) and speaks for both sides and complete the debate.

    speaker_scores maps a position ("government"/"opposition") to scores in
    speaking order. The round is completed once all its debates are.
    """
    debate = await session.get(Debate, debate_id)
    if not debate:
        raise NotFoundError(f"Debate {debate_id} not found")
    sides = list(
        (await session.execute(select(DebateTeam).where(DebateTeam.debate_id == debate_id))).scalars().all()
    )
    if len(sides) != 2:
        raise DraftValidationError(f"Debate {debate_id} has {len(sides)} team(s); a ballot needs two.")
    positions = {dt.position for dt in sides}
    if winner_position not in positions:
        raise DraftValidationError(f"Winner must be one of: {', '.join(sorted(positions))}.")
    unknown = set(speaker_scores) - positions
    if unknown:
        raise DraftValidationError(f"Unknown position(s) on ballot: {', '.join(sorted(unknown))}.")

    teams = {}
    for dt in sides:
        team = await session.get(Team, dt.team_id)
        teams[dt.id] = team
        _check_scores(team.name if team else f"Team {dt.team_id}", speaker_scores.get(dt.position, []))

    for dt in sides:
        scores = list(speaker_scores.get(dt.position, []))
        won = dt.position == winner_position
        dt.points = 1 if won else 0
        dt.rank = 1 if won else 2
        dt.total_speaks = float(sum(scores))
        await _save_speaker_scores(session, dt, teams[dt.id], scores)
    debate.status = "completed"
    await session.flush()

    round_ = await session.get(Round, debate.round_id)
    pending = (
        await session.execute(
            select(func.count(Debate.id)).where(Debate.round_id == round_.id, Debate.status != "completed")
        )
    ).scalar_one()
    if pending == 0:
        round_.status = "completed"
    await recompute_team_standings(session, round_.tournament_id, [dt.team_id for dt in sides])
    await session.commit()
    logger.info(
        "Ballot for debate %s in %s: %s won%s",
        debate_id, round_.name, winner_position, "; round completed" if pending == 0 else "",
    )
    return debate
