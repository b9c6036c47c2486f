"""Tournament and institution models."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabroom.models.base import Base

# AP: two teams per debate (government, opposition). BP: four teams (OG, OO, CG, CO).
TOURNAMENT_FORMATS = ("AP", "BP")
TOURNAMENT_STATUSES = ("setup", "ongoing", "completed")


class Tournament(Base):
    """Tournament owning its team, adjudicator and room pools and its rounds."""

    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    format: Mapped[str] = mapped_column(String(8), default="AP")
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="setup")  # setup, ongoing, completed
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    teams = relationship("Team", back_populates="tournament", cascade="all, delete-orphan")
    adjudicators = relationship("Adjudicator", back_populates="tournament", cascade="all, delete-orphan")
    rooms = relationship("Room", back_populates="tournament", cascade="all, delete-orphan")
    rounds = relationship("Round", back_populates="tournament", cascade="all, delete-orphan")


class Institution(Base):
    """School or society that teams and adjudicators represent."""

    __tablename__ = "institutions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
