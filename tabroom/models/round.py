"""Round and break models."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabroom.models.base import Base

ROUND_STATUSES = ("setup", "ongoing", "completed")
ROUND_TYPES = ("inround", "outround")
BREAK_STAGES = ("semifinal", "final")


class Round(Base):
    """Round of a tournament with up to three candidate motions."""

    __tablename__ = "rounds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tournament_id: Mapped[int] = mapped_column(ForeignKey("tournaments.id"), nullable=False, index=True)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    motion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    motion_1: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    motion_2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    motion_3: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    info_slide: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="setup")  # setup, ongoing, completed
    round_type: Mapped[str] = mapped_column(String(16), default="inround")  # inround, outround
    break_stage: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # semifinal, final
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    tournament: Mapped["Tournament"] = relationship("Tournament", back_populates="rounds")
    debates = relationship("Debate", back_populates="round", cascade="all, delete-orphan")
    breaking_teams = relationship("BreakingTeam", back_populates="round", cascade="all, delete-orphan")

    @property
    def motions(self) -> list[str]:
        """Candidate motions, blanks dropped."""
        return [m.strip() for m in (self.motion_1, self.motion_2, self.motion_3) if m and m.strip()]

    @property
    def is_outround(self) -> bool:
        return self.round_type == "outround"


class BreakingTeam(Base):
    """Team that broke into an elimination round."""

    __tablename__ = "breaking_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False)
    round_id: Mapped[int] = mapped_column(ForeignKey("rounds.id"), nullable=False, index=True)
    break_rank: Mapped[int] = mapped_column(Integer, nullable=False)

    round = relationship("Round", back_populates="breaking_teams")
