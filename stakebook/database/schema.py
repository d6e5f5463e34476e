"""
SQLAlchemy ORM models for database tables.

Defines the database schema using SQLAlchemy 2.0 style.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from stakebook.models.market import OptionStatus, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserRecord(Base):
    """Registered users and their credit balance."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    credits: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)

    stakes: Mapped[list["StakeRecord"]] = relationship(back_populates="user")

    __table_args__ = (CheckConstraint("credits >= 0", name="ck_users_credits"),)


class BetRecord(Base):
    """Propositions open for staking."""

    __tablename__ = "bets"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiration_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_by: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    fee: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False)
    loss_cap: Mapped[int] = mapped_column(Integer, nullable=False)

    options: Mapped[list["OptionRecord"]] = relationship(
        back_populates="bet", order_by="OptionRecord.position"
    )

    __table_args__ = (
        CheckConstraint("loss_cap > 0", name="ck_bets_loss_cap"),
        Index("idx_bets_created_by", "created_by"),
    )


class OptionRecord(Base):
    """Mutually exclusive outcomes of a bet, with their live price."""

    __tablename__ = "bet_options"

    id: Mapped[str] = mapped_column(String(255), primary_key=True, default=new_id)
    bet_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("bets.id"), nullable=False
    )
    label: Mapped[str] = mapped_column(String(32), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=OptionStatus.OPEN.value
    )
    current_odds: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)

    bet: Mapped["BetRecord"] = relationship(back_populates="options")
    stakes: Mapped[list["StakeRecord"]] = relationship(back_populates="option")

    __table_args__ = (Index("idx_bet_options_bet", "bet_id"),)


class StakeRecord(Base):
    """Placed stakes. One per (user, option)."""

    __tablename__ = "stakes"

    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id"), primary_key=True
    )
    option_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("bet_options.id"), primary_key=True
    )
    staked: Mapped[int] = mapped_column(Integer, nullable=False)
    odds: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    user: Mapped["UserRecord"] = relationship(back_populates="stakes")
    option: Mapped["OptionRecord"] = relationship(back_populates="stakes")

    __table_args__ = (
        CheckConstraint("staked > 0", name="ck_stakes_staked"),
        Index("idx_stakes_user", "user_id"),
        Index("idx_stakes_option", "option_id"),
    )
