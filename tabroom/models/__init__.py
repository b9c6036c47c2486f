"""Database models."""
from tabroom.models.base import Base, create_engine, create_session_factory, init_db
from tabroom.models.tournament import Institution, Tournament
from tabroom.models.team import Team
from tabroom.models.adjudicator import Adjudicator, Room
from tabroom.models.round import BreakingTeam, Round
from tabroom.models.debate import Debate, DebateAdjudicator, DebateTeam, SpeakerScore

__all__ = [
    "Base",
    "Tournament",
    "Institution",
    "Team",
    "Adjudicator",
    "Room",
    "Round",
    "BreakingTeam",
    "Debate",
    "DebateTeam",
    "DebateAdjudicator",
    "SpeakerScore",
    "create_engine",
    "create_session_factory",
    "init_db",
]
