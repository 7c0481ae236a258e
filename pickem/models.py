from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from .db import Base


class Game(Base):
    __tablename__ = "games"

    # ESPN event id; stable across refetches and used as the merge key
    id = Column(String, primary_key=True)
    week = Column(Integer, nullable=False, default=0, index=True)
    start_time_utc = Column(DateTime(timezone=True), nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    status_text = Column(String, nullable=False, default="TBD")

    home_team_id = Column(String, nullable=False, default="")
    home_team_name = Column(String, nullable=False, default="")
    home_team_abbrev = Column(String, nullable=False, default="")
    home_score = Column(String, nullable=True)   # raw feed value, NULL when absent
    away_team_id = Column(String, nullable=False, default="")
    away_team_name = Column(String, nullable=False, default="")
    away_team_abbrev = Column(String, nullable=False, default="")
    away_score = Column(String, nullable=True)

    raw_json = Column(Text, nullable=False, default="")
    created_at_utc = Column(DateTime(timezone=True), server_default=func.now())
    updated_at_utc = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class Player(Base):
    __tablename__ = "players"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="Player")
    nickname = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    initials = Column(String, nullable=False, default="P")
    color = Column(String, nullable=False, default="#22c55e")
    profile_image_url = Column(String, nullable=True)
    role = Column(String, nullable=False, default="player")  # admin | player
    created_at_utc = Column(DateTime(timezone=True), server_default=func.now())
    updated_at_utc = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class PredictionSet(Base):
    __tablename__ = "prediction_sets"

    game_id = Column(String, primary_key=True)
    week = Column(Integer, nullable=True)
    updated_at_utc = Column(DateTime(timezone=True), nullable=True)

    picks = relationship("Pick", back_populates="prediction_set")


class Pick(Base):
    __tablename__ = "picks"
    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_picks_game_player"),
    )

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(String, ForeignKey("prediction_sets.game_id"), nullable=False, index=True)
    player_id = Column(String, nullable=False)
    team_id = Column(String, nullable=False, default="")  # "" means no pick
    created_at_utc = Column(DateTime(timezone=True), server_default=func.now())
    updated_at_utc = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    prediction_set = relationship("PredictionSet", back_populates="picks")


class AppSettings(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    season_year = Column(Integer, nullable=False)
    season_type = Column(Integer, nullable=False, default=2)
    admin_email = Column(String, nullable=True)
    auto_refresh_enabled = Column(Boolean, nullable=False, default=True)
    auto_refresh_minutes = Column(Integer, nullable=False, default=15)
    hide_unpicked_default = Column(Boolean, nullable=False, default=False)
    updated_at_utc = Column(DateTime(timezone=True), server_default=func.now())
