"""Debate (pairing) and participation models."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabroom.models.base import Base

DEBATE_STATUSES = ("pending", "completed")
# Two-team (AP) sides first, then BP sides
POSITIONS = ("government", "opposition", "OG", "OO", "CG", "CO")
ADJUDICATOR_ROLES = ("chair", "panelist", "trainee")


class Debate(Base):
    """One head-to-head contest in a round."""

    __tablename__ = "debates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    round_id: Mapped[int] = mapped_column(ForeignKey("rounds.id"), nullable=False, index=True)
    room_id: Mapped[Optional[int]] = mapped_column(ForeignKey("rooms.id"), nullable=True)
    motion_used: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")  # pending, completed
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    round = relationship("Round", back_populates="debates")
    teams = relationship("DebateTeam", back_populates="debate", cascade="all, delete-orphan")
    adjudicators = relationship("DebateAdjudicator", back_populates="debate", cascade="all, delete-orphan")


class DebateTeam(Base):
    """A team's side, result and speaks in one debate."""

    __tablename__ = "debate_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    debate_id: Mapped[int] = mapped_column(ForeignKey("debates.id"), nullable=False, index=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    position: Mapped[str] = mapped_column(String(16), nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0)  # win=1, loss=0
    total_speaks: Mapped[float] = mapped_column(Float, default=0.0)
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    debate = relationship("Debate", back_populates="teams")
    speaker_scores = relationship("SpeakerScore", back_populates="debate_team", cascade="all, delete-orphan")


class DebateAdjudicator(Base):
    """Adjudicator assignment. At most one chair per debate."""

    __tablename__ = "debate_adjudicators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    debate_id: Mapped[int] = mapped_column(ForeignKey("debates.id"), nullable=False, index=True)
    adjudicator_id: Mapped[int] = mapped_column(ForeignKey("adjudicators.id"), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(16), default="chair")  # chair, panelist, trainee

    debate = relationship("Debate", back_populates="adjudicators")


class SpeakerScore(Base):
    """Score for one speaker position of a debate team."""

    __tablename__ = "speaker_scores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    debate_team_id: Mapped[int] = mapped_column(ForeignKey("debate_teams.id"), nullable=False, index=True)
    speaker_name: Mapped[str] = mapped_column(String(128), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..3

    debate_team = relationship("DebateTeam", back_populates="speaker_scores")
