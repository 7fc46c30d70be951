"""SQLAlchemy ORM models for database tables."""

from sqlalchemy import CHAR, Column, DateTime, Integer, String, Text

from .db import Base


class Snippet(Base):
    """Snippet model mapped to 'snippets' table."""

    __tablename__ = "snippets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    created = Column(DateTime(timezone=True), nullable=False, index=True)
    expires = Column(DateTime(timezone=True), nullable=False)


class User(Base):
    """User model mapped to 'users' table."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    hashed_password = Column(CHAR(60), nullable=False)
    created = Column(DateTime(timezone=True), nullable=False)


class SessionRecord(Base):
    """Server-side session state mapped to 'sessions' table."""

    __tablename__ = "sessions"

    token = Column(CHAR(43), primary_key=True)
    data = Column(Text, nullable=False)
    expiry = Column(DateTime(timezone=True), nullable=False, index=True)
