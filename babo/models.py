"""Database tables for accounts and users."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class AccountData(Base):
    __tablename__ = "account_data"

    account: Mapped[str] = mapped_column(String(191), primary_key=True, comment="account name")
    uid: Mapped[int] = mapped_column(BigInteger, unique=True, default=0, comment="user uuid")


class UserData(Base):
    __tablename__ = "user_data"

    uid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False, comment="uuid")
    account: Mapped[str] = mapped_column(String(191), unique=True, default="", comment="account name")