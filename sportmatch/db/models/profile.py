"""
Profile models: one row per user in exactly one of athlete, agent or team.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr
from sportmatch.db.base import Base, utcnow


class ProfileKind(str, enum.Enum):
    """Profile categories a user can register as."""
    ATHLETE = "athlete"
    AGENT = "agent"
    TEAM = "team"


class ProfileColumns:
    """Columns shared by the three profile tables."""
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    sport_id = Column(Integer, nullable=False, index=True)
    location_id = Column(Integer, nullable=True, index=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)


class Athlete(ProfileColumns, Base):
    __tablename__ = "athlete"

    last_name = Column(String, nullable=True)
    position = Column(String, nullable=True)


class Agent(ProfileColumns, Base):
    __tablename__ = "agent"

    last_name = Column(String, nullable=True)
    agency = Column(String, nullable=True)


class Team(ProfileColumns, Base):
    __tablename__ = "team"

    website = Column(String, nullable=True)
