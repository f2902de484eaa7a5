"""SQLAlchemy ORM models backing the relational catalog store."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Content(Base):
    """A movie or series row."""

    __tablename__ = "contents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    type: Mapped[str] = mapped_column(String(16))
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    maturity_rating: Mapped[str | None] = mapped_column(String(16), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(32), nullable=True)
    poster_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    backdrop_image: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    trailer_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_480p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_720p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_1080p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_4k: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    featured_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    genre_links: Mapped[list["ContentGenre"]] = relationship(
        back_populates="content", cascade="all, delete-orphan", passive_deletes=True
    )
    cast_links: Mapped[list["ContentCast"]] = relationship(
        back_populates="content", cascade="all, delete-orphan", passive_deletes=True
    )
    series: Mapped[list["Series"]] = relationship(
        back_populates="content",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Series.created_at",
    )


class Genre(Base):
    """Genre vocabulary entry."""

    __tablename__ = "genres"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(64), unique=True)


class ContentGenre(Base):
    """Many-to-many link between contents and genres."""

    __tablename__ = "content_genres"

    content_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True
    )
    genre_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True
    )

    content: Mapped[Content] = relationship(back_populates="genre_links")
    genre: Mapped[Genre] = relationship(lazy="joined")


class CastMember(Base):
    """A person who can appear in several contents."""

    __tablename__ = "cast_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255))
    photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)


class ContentCast(Base):
    """Cast link carrying the role and the explicit display order."""

    __tablename__ = "content_cast"

    content_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contents.id", ondelete="CASCADE"), primary_key=True
    )
    cast_member_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cast_members.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0)

    content: Mapped[Content] = relationship(back_populates="cast_links")
    cast_member: Mapped[CastMember] = relationship(lazy="joined")


class Series(Base):
    """Series metadata record grouping the seasons of a series content."""

    __tablename__ = "series"
    __table_args__ = (UniqueConstraint("content_id", name="uq_series_content"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    content_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contents.id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    content: Mapped[Content] = relationship(back_populates="series")
    seasons: Mapped[list["Season"]] = relationship(
        back_populates="series",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Season.season_number",
    )


class Season(Base):
    """A season of a series."""

    __tablename__ = "seasons"
    __table_args__ = (
        UniqueConstraint("series_id", "season_number", name="uq_season_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    series_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("series.id", ondelete="CASCADE")
    )
    season_number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    series: Mapped[Series] = relationship(back_populates="seasons")
    episodes: Mapped[list["Episode"]] = relationship(
        back_populates="season",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Episode.episode_number",
    )


class Episode(Base):
    """An episode within a season."""

    __tablename__ = "episodes"
    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episode_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    season_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("seasons.id", ondelete="CASCADE")
    )
    episode_number: Mapped[int] = mapped_column(Integer)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    duration: Mapped[str] = mapped_column(String(32), default="")
    thumbnail: Mapped[str] = mapped_column(String(1024), default="")
    video_url_480p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_720p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_1080p: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    video_url_4k: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    season: Mapped[Season] = relationship(back_populates="episodes")


class WatchHistory(Base):
    """Viewing progress of one profile on one content."""

    __tablename__ = "watch_history"
    __table_args__ = (
        UniqueConstraint("profile_id", "content_id", name="uq_watch_profile_content"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    profile_id: Mapped[str] = mapped_column(String(64), index=True)
    content_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("contents.id", ondelete="CASCADE")
    )
    watch_time: Mapped[int] = mapped_column(Integer, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_watched: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
