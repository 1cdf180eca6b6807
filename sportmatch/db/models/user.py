from sqlalchemy import Column, Integer, String, DateTime
from sportmatch.db.base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, default="user", nullable=False)  # user | admin
    created_at = Column(DateTime, default=utcnow, nullable=False)
