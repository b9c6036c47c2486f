"""Draw generation: pool loading, pairing, adjudicator allocation and publishing."""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tabroom.exceptions import (
    ConfirmationRequired,
    DraftValidationError,
    InsufficientInputError,
    NotFoundError,
)
from tabroom.models import (
    Adjudicator,
    BreakingTeam,
    Debate,
    DebateAdjudicator,
    DebateTeam,
    Room,
    Round,
    SpeakerScore,
    Team,
)

logger = logging.getLogger("tabroom.draw")

GOVERNMENT = "government"
OPPOSITION = "opposition"


@dataclass
class PairingDraft:
    """One debate-to-be. Operators may hand-edit drafts before publishing."""

    government_team_id: Optional[int]
    opposition_team_id: Optional[int]
    room_id: Optional[int]
    motion: str = ""
    adjudicator_id: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.government_team_id and self.opposition_team_id and self.room_id)


@dataclass
class Pool:
    round: Round
    teams: List[Team]
    rooms: List[Room]
    adjudicators: List[Adjudicator]


@dataclass
class Allocation:
    pairings: List[PairingDraft]
    unchaired: int


@dataclass
class DrawProposal:
    round_id: int
    pairings: List[PairingDraft]
    unpaired_team_ids: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class PublishResult:
    round_id: int
    debate_ids: List[int]
    skipped: List[PairingDraft]
    unchaired: int
    replaced: int


# --- Pairing engine (pure) ---


def rank_teams(teams: Iterable[Team]) -> List[Team]:
    """Sort by total_points, then total_speaks, both descending. Team id settles exact ties."""
    return sorted(
        teams,
        key=lambda t: (-(t.total_points or 0), -(t.total_speaks or 0.0), t.id),
    )


def choose_motion(motions: Sequence[Optional[str]], rng: random.Random) -> str:
    """Pick one candidate motion uniformly at random; empty string when there are none."""
    candidates = [m.strip() for m in motions if m and m.strip()]
    if not candidates:
        return ""
    return rng.choice(candidates)


def pair_teams(
    teams: Sequence[Team],
    rooms: Sequence[Room],
    motions: Sequence[Optional[str]],
    rng: Optional[random.Random] = None,
) -> List[PairingDraft]:
    """Pair ranked teams 1v2, 3v4, ... into rooms in pool order.

    At most ceil(N/2) slots are filled, capped by the room count. A slot whose
    second team would be past the end of the pool (odd N) is dropped, so the
    lowest-ranked team sits out.
    """
    rng = rng or random.Random()
    ranked = rank_teams(teams)
    slots = min(math.ceil(len(ranked) / 2), len(rooms))
    drafts: List[PairingDraft] = []
    for i in range(slots):
        if 2 * i + 1 >= len(ranked):
            break
        drafts.append(
            PairingDraft(
                government_team_id=ranked[2 * i].id,
                opposition_team_id=ranked[2 * i + 1].id,
                room_id=rooms[i].id,
                motion=choose_motion(motions, rng),
            )
        )
    return drafts


# --- Adjudicator allocation (pure) ---


def allocate_adjudicators(
    pairings: Sequence[PairingDraft],
    adjudicators: Sequence[Adjudicator],
    rng: Optional[random.Random] = None,
) -> Allocation:
    """Give each pairing one chair from a shuffled pool, never reusing an adjudicator.

    Strength is not considered. Pairings beyond the pool size get no chair.
    """
    rng = rng or random.Random()
    shuffled = list(adjudicators)
    rng.shuffle(shuffled)
    allocated = []
    for i, draft in enumerate(pairings):
        chair = shuffled[i].id if i < len(shuffled) else None
        allocated.append(replace(draft, adjudicator_id=chair))
    unchaired = sum(1 for d in allocated if d.adjudicator_id is None)
    return Allocation(pairings=allocated, unchaired=unchaired)


# --- Pool loading ---


async def get_round(session: AsyncSession, round_id: int) -> Round:
    round_ = await session.get(Round, round_id)
    if not round_:
        raise NotFoundError(f"Round {round_id} not found")
    return round_


async def breaking_team_ids(session: AsyncSession, round_id: int) -> List[int]:
    result = await session.execute(
        select(BreakingTeam.team_id)
        .where(BreakingTeam.round_id == round_id)
        .order_by(BreakingTeam.break_rank)
    )
    return list(result.scalars().all())


async def load_pool(session: AsyncSession, round_: Round) -> Pool:
    """Teams, rooms and adjudicators of the round's tournament.

    Outrounds only see teams with a breaking-team record for that round.
    """
    team_query = select(Team).where(Team.tournament_id == round_.tournament_id)
    if round_.is_outround:
        eligible = await breaking_team_ids(session, round_.id)
        if not eligible:
            raise InsufficientInputError(
                f"No breaking teams are recorded for {round_.name}. Generate the break first."
            )
        team_query = team_query.where(Team.id.in_(eligible))
    teams = (await session.execute(team_query.order_by(Team.id))).scalars().all()
    rooms = (
        await session.execute(
            select(Room)
            .where(Room.tournament_id == round_.tournament_id)
            .order_by(Room.name, Room.id)
        )
    ).scalars().all()
    adjudicators = (
        await session.execute(
            select(Adjudicator)
            .where(Adjudicator.tournament_id == round_.tournament_id)
            .order_by(Adjudicator.strength.desc(), Adjudicator.id)
        )
    ).scalars().all()
    return Pool(round=round_, teams=list(teams), rooms=list(rooms), adjudicators=list(adjudicators))


async def generate_draw(
    session: AsyncSession, round_id: int, rng: Optional[random.Random] = None
) -> DrawProposal:
    """Propose a draw for the round. Nothing is written."""
    rng = rng or random.Random()
    round_ = await get_round(session, round_id)
    pool = await load_pool(session, round_)
    if not pool.rooms:
        raise InsufficientInputError("No rooms available. Add rooms before generating a draw.")
    if len(pool.teams) < 2:
        raise InsufficientInputError(
            f"{round_.name} needs at least two eligible teams, found {len(pool.teams)}."
        )

    pairings = pair_teams(pool.teams, pool.rooms, round_.motions, rng)
    allocation = allocate_adjudicators(pairings, pool.adjudicators, rng)

    paired = {d.government_team_id for d in pairings} | {d.opposition_team_id for d in pairings}
    unpaired = [t for t in rank_teams(pool.teams) if t.id not in paired]
    warnings = []
    if allocation.unchaired:
        warnings.append(
            f"{len(pool.adjudicators)} adjudicators for {len(pairings)} debates: "
            f"{allocation.unchaired} debate(s) will have no chair."
        )
    if unpaired:
        names = ", ".join(t.name for t in unpaired)
        warnings.append(f"{len(unpaired)} team(s) left without a debate: {names}.")
    if not round_.motions:
        warnings.append(f"{round_.name} has no motions set.")
    return DrawProposal(
        round_id=round_.id,
        pairings=allocation.pairings,
        unpaired_team_ids=[t.id for t in unpaired],
        warnings=warnings,
    )


# --- Publishing ---


async def debate_ids_for_round(session: AsyncSession, round_id: int) -> List[int]:
    result = await session.execute(select(Debate.id).where(Debate.round_id == round_id))
    return list(result.scalars().all())


async def clear_draw(session: AsyncSession, round_id: int) -> int:
    """Delete a round's debates and everything hanging off them. Does not commit.

    Order: speaker scores, team and adjudicator participations, debates.
    """
    debate_ids = await debate_ids_for_round(session, round_id)
    if not debate_ids:
        return 0
    debate_team_ids = (
        await session.execute(select(DebateTeam.id).where(DebateTeam.debate_id.in_(debate_ids)))
    ).scalars().all()
    if debate_team_ids:
        await session.execute(delete(SpeakerScore).where(SpeakerScore.debate_team_id.in_(debate_team_ids)))
    await session.execute(delete(DebateTeam).where(DebateTeam.debate_id.in_(debate_ids)))
    await session.execute(delete(DebateAdjudicator).where(DebateAdjudicator.debate_id.in_(debate_ids)))
    await session.execute(delete(Debate).where(Debate.id.in_(debate_ids)))
    return len(debate_ids)


async def validate_pairings(
    session: AsyncSession, round_: Round, pairings: Sequence[PairingDraft]
) -> None:
    """Reject drafts that reuse a team, room or chair, or reference another tournament's pool."""
    team_ids: List[int] = []
    room_ids: List[int] = []
    chair_ids: List[int] = []
    for d in pairings:
        if d.government_team_id == d.opposition_team_id:
            raise DraftValidationError(f"Team {d.government_team_id} cannot debate itself.")
        team_ids += [d.government_team_id, d.opposition_team_id]
        room_ids.append(d.room_id)
        if d.adjudicator_id:
            chair_ids.append(d.adjudicator_id)
    for label, ids in (("Team", team_ids), ("Room", room_ids), ("Adjudicator", chair_ids)):
        seen = set()
        for x in ids:
            if x in seen:
                raise DraftValidationError(f"{label} {x} is assigned to more than one debate.")
            seen.add(x)

    tid = round_.tournament_id
    for model, ids, label in (
        (Team, team_ids, "Team"),
        (Room, room_ids, "Room"),
        (Adjudicator, chair_ids, "Adjudicator"),
    ):
        if not ids:
            continue
        found = set(
            (
                await session.execute(
                    select(model.id).where(model.id.in_(ids), model.tournament_id == tid)
                )
            ).scalars().all()
        )
        missing = [x for x in ids if x not in found]
        if missing:
            raise DraftValidationError(f"{label} {missing[0]} is not part of this tournament.")

    if round_.is_outround:
        eligible = set(await breaking_team_ids(session, round_.id))
        for x in team_ids:
            if x not in eligible:
                team = await session.get(Team, x)
                raise DraftValidationError(
                    f"{team.name if team else x} has not broken into {round_.name}."
                )


async def write_draw(
    session: AsyncSession, round_: Round, pairings: Sequence[PairingDraft]
) -> List[int]:
    """Insert debates with both sides and an optional chair. Does not commit."""
    debate_ids = []
    for d in pairings:
        debate = Debate(round_id=round_.id, room_id=d.room_id, motion_used=d.motion or None, status="pending")
        session.add(debate)
        await session.flush()
        session.add(DebateTeam(debate_id=debate.id, team_id=d.government_team_id, position=GOVERNMENT))
        session.add(DebateTeam(debate_id=debate.id, team_id=d.opposition_team_id, position=OPPOSITION))
        if d.adjudicator_id:
            session.add(DebateAdjudicator(debate_id=debate.id, adjudicator_id=d.adjudicator_id, role="chair"))
        debate_ids.append(debate.id)
    await session.flush()
    return debate_ids


async def publish_draw(
    session: AsyncSession,
    round_id: int,
    pairings: Sequence[PairingDraft],
    confirm_replace: bool = False,
    confirm_unchaired: bool = False,
) -> PublishResult:
    """Replace the round's draw with the given drafts and open the round.

    Runs as one transaction: either the old draw is gone and every complete
    draft is written, or nothing changes. Drafts missing a team or room are
    skipped and reported.
    """
    round_ = await get_round(session, round_id)
    complete = [d for d in pairings if d.is_complete]
    skipped = [d for d in pairings if not d.is_complete]
    await validate_pairings(session, round_, complete)

    existing = await debate_ids_for_round(session, round_id)
    if existing and not confirm_replace:
        raise ConfirmationRequired(
            f"{round_.name} already has {len(existing)} debate(s). "
            "Publishing replaces them and deletes their results.",
            flag="confirm_replace",
        )
    unchaired = sum(1 for d in complete if not d.adjudicator_id)
    if unchaired and not confirm_unchaired:
        raise ConfirmationRequired(
            f"{unchaired} of {len(complete)} debate(s) have no chair adjudicator.",
            flag="confirm_unchaired",
        )

    round_name = round_.name
    try:
        replaced = await clear_draw(session, round_id)
        debate_ids = await write_draw(session, round_, complete)
        round_.status = "ongoing"
        await session.commit()
    except Exception:
        await session.rollback()
        logger.exception("Publishing draw for %s failed; no changes were kept", round_name)
        raise

    for d in skipped:
        logger.warning(
            "Skipped incomplete draft for %s: government=%s opposition=%s room=%s",
            round_.name, d.government_team_id, d.opposition_team_id, d.room_id,
        )
    logger.info(
        "Published %d debate(s) for %s (replaced %d, unchaired %d)",
        len(debate_ids), round_.name, replaced, unchaired,
    )
    return PublishResult(
        round_id=round_.id,
        debate_ids=debate_ids,
        skipped=skipped,
        unchaired=unchaired,
        replaced=replaced,
    )


async def withdraw_draw(session: AsyncSession, round_id: int) -> int:
    """Remove the published draw and return the round to setup."""
    round_ = await get_round(session, round_id)
    removed = await clear_draw(session, round_id)
    round_.status = "setup"
    await session.commit()
    logger.info("Withdrew %d debate(s) from %s", removed, round_.name)
    return removed


# --- Display ---


async def name_lookup(session: AsyncSession, model, ids) -> dict:
    ids = [x for x in ids if x]
    if not ids:
        return {}
    result = await session.execute(select(model.id, model.name).where(model.id.in_(ids)))
    return {row[0]: row[1] for row in result.all()}


async def _debate_rows(session: AsyncSession, debates: Sequence[Debate], with_scores: bool = False) -> List[dict]:
    """Debates with team, room and adjudicator names; optionally each side's speakers and scores."""
    debate_ids = [d.id for d in debates]
    if not debate_ids:
        return []
    sides = (
        await session.execute(
            select(DebateTeam).where(DebateTeam.debate_id.in_(debate_ids)).order_by(DebateTeam.id)
        )
    ).scalars().all()
    panels = (
        await session.execute(
            select(DebateAdjudicator)
            .where(DebateAdjudicator.debate_id.in_(debate_ids))
            .order_by(DebateAdjudicator.id)
        )
    ).scalars().all()
    teams = await name_lookup(session, Team, [s.team_id for s in sides])
    rooms = await name_lookup(session, Room, [d.room_id for d in debates])
    adjs = await name_lookup(session, Adjudicator, [p.adjudicator_id for p in panels])

    speakers: dict = {}
    if with_scores:
        roster = dict(
            (
                await session.execute(
                    select(Team.id, Team.speaker_names).where(Team.id.in_([s.team_id for s in sides]))
                )
            ).all()
        )
        scores: dict = {}
        for row in (
            await session.execute(
                select(SpeakerScore)
                .where(SpeakerScore.debate_team_id.in_([s.id for s in sides]))
                .order_by(SpeakerScore.position)
            )
        ).scalars():
            scores.setdefault(row.debate_team_id, []).append(
                {"position": row.position, "speaker_name": row.speaker_name, "score": row.score}
            )
        for s in sides:
            speakers[s.id] = {"speaker_names": roster.get(s.team_id) or [], "scores": scores.get(s.id, [])}

    rows = []
    for d in debates:
        row = {
            "debate_id": d.id,
            "room_id": d.room_id,
            "room_name": rooms.get(d.room_id),
            "motion": d.motion_used,
            "status": d.status,
            "teams": [],
            "adjudicators": [
                {"adjudicator_id": p.adjudicator_id, "name": adjs.get(p.adjudicator_id), "role": p.role}
                for p in panels
                if p.debate_id == d.id
            ],
        }
        for s in sides:
            if s.debate_id != d.id:
                continue
            side = {
                "team_id": s.team_id,
                "name": teams.get(s.team_id),
                "position": s.position,
                "points": s.points,
                "total_speaks": s.total_speaks,
                "rank": s.rank,
            }
            side.update(speakers.get(s.id, {}))
            row["teams"].append(side)
        rows.append(row)
    return rows


def _round_summary(round_: Round) -> dict:
    return {"id": round_.id, "name": round_.name, "status": round_.status, "motions": round_.motions}


async def get_draw(session: AsyncSession, round_id: int) -> dict:
    """Published draw for a round, with team, room and adjudicator names."""
    round_ = await get_round(session, round_id)
    debates = (
        await session.execute(select(Debate).where(Debate.round_id == round_id).order_by(Debate.id))
    ).scalars().all()
    return {"round": _round_summary(round_), "debates": await _debate_rows(session, debates)}


async def adjudicator_debates(session: AsyncSession, adjudicator_id: int) -> dict:
    """Debates an adjudicator sits on in rounds past setup, most recent first.

    Each side carries its speaker names and any scores already entered, so a
    ballot can be filled in from this view.
    """
    adjudicator = await session.get(Adjudicator, adjudicator_id)
    if not adjudicator:
        raise NotFoundError(f"Adjudicator {adjudicator_id} not found")
    result = await session.execute(
        select(Debate, Round, DebateAdjudicator.role)
        .join(DebateAdjudicator, DebateAdjudicator.debate_id == Debate.id)
        .join(Round, Debate.round_id == Round.id)
        .where(DebateAdjudicator.adjudicator_id == adjudicator_id, Round.status != "setup")
        .order_by(Debate.id.desc())
    )
    found = result.all()
    rows = await _debate_rows(session, [debate for debate, _, _ in found], with_scores=True)
    for row, (_, round_, role) in zip(rows, found):
        row["round"] = _round_summary(round_)
        row["role"] = role
    return {
        "adjudicator": {"id": adjudicator.id, "name": adjudicator.name},
        "debates": rows,
    }
