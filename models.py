import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Date,
    DateTime,
    ForeignKey,
    Index,
    case,
    func,
    text,
)
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import select

from config import USING_SQLITE
from database import Base

TRANSACTION_TYPES = ("income", "expense")

MIN_AMOUNT = 0.01
MAX_AMOUNT = 999999.99
CATEGORY_MAX_LENGTH = 30
DESCRIPTION_MAX_LENGTH = 200

PERIOD_FORMATS = {
    "daily": ("%Y-%m-%d", "day", "YYYY-MM-DD"),
    "monthly": ("%Y-%m", "month", "YYYY-MM"),
    "yearly": ("%Y", "year", "YYYY"),
}


class UserModel(Base):
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    transactions = relationship("TransactionModel", back_populates="user", cascade="all, delete-orphan")


class TransactionModel(Base):
    __tablename__ = "transactions"
    __mapper_args__ = {"eager_defaults": True}
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(10), nullable=False)  # income | expense
    amount = Column(Float, nullable=False)
    category = Column(String(CATEGORY_MAX_LENGTH), nullable=False)
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=False)
    date = Column(Date, nullable=False, default=datetime.date.today)
    receipt_url = Column(String(500), nullable=True, default=None)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=func.now(),
    )

    user = relationship("UserModel", back_populates="transactions")

    # ------------------------------------------------------------------
    # Field validation
    # ------------------------------------------------------------------
    @validates("type")
    def _validate_type(self, key, value):
        if not value:
            raise ValueError("Transaction type is required")
        if value not in TRANSACTION_TYPES:
            raise ValueError(f"'{value}' is not a valid transaction type")
        return value

    @validates("amount")
    def _validate_amount(self, key, value):
        if value is None:
            raise ValueError("Amount is required")
        value = float(value)
        if value < MIN_AMOUNT:
            raise ValueError("Amount must be greater than 0")
        if value > MAX_AMOUNT:
            raise ValueError("Amount too large")
        return value

    @validates("category")
    def _validate_category(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Category is required")
        if len(value) > CATEGORY_MAX_LENGTH:
            raise ValueError("Category name too long")
        return value

    @validates("description")
    def _validate_description(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Description is required")
        if len(value) > DESCRIPTION_MAX_LENGTH:
            raise ValueError("Description too long")
        return value

    @validates("date")
    def _validate_date(self, key, value):
        if value is None:
            raise ValueError("Date is required")
        return value

    @property
    def formatted_amount(self) -> str:
        return f"{self.amount:.2f}"

    # ------------------------------------------------------------------
    # Aggregations
    # ------------------------------------------------------------------
    @classmethod
    async def get_categories(
        cls, db: AsyncSession, user_id: int, ttype: Optional[str] = None
    ) -> list[str]:
        """Distinct category names used by a user, sorted alphabetically."""
        query = select(cls.category).where(cls.user_id == user_id)
        if ttype:
            query = query.where(cls.type == ttype)
        query = query.group_by(cls.category).order_by(cls.category)
        result = await db.execute(query)
        return list(result.scalars().all())

    @classmethod
    async def get_summary(
        cls, db: AsyncSession, user_id: int, start_date: datetime.date, end_date: datetime.date
    ) -> dict[str, dict]:
        """Total and count per transaction type within an inclusive date range.

        Types without transactions in the range are absent from the result.
        """
        query = (
            select(
                cls.type,
                func.sum(cls.amount).label("total"),
                func.count(cls.id).label("tx_count"),
            )
            .where(
                cls.user_id == user_id,
                cls.date >= start_date,
                cls.date <= end_date,
            )
            .group_by(cls.type)
        )
        result = await db.execute(query)
        return {
            row.type: {"total": float(row.total or 0), "count": row.tx_count}
            for row in result
        }

    @classmethod
    async def get_category_breakdown(
        cls,
        db: AsyncSession,
        user_id: int,
        ttype: str,
        start_date: datetime.date,
        end_date: datetime.date,
    ) -> list[dict]:
        """Per-category totals for one transaction type, largest total first."""
        total = func.sum(cls.amount).label("total")
        query = (
            select(cls.category, total, func.count(cls.id).label("tx_count"))
            .where(
                cls.user_id == user_id,
                cls.type == ttype,
                cls.date >= start_date,
                cls.date <= end_date,
            )
            .group_by(cls.category)
            .order_by(total.desc(), cls.category)
        )
        result = await db.execute(query)
        return [
            {"category": row.category, "total": float(row.total or 0), "count": row.tx_count}
            for row in result
        ]

    @classmethod
    async def get_period_report(
        cls,
        db: AsyncSession,
        user_id: int,
        period: str = "monthly",
        from_date: Optional[datetime.date] = None,
        to_date: Optional[datetime.date] = None,
    ) -> list[dict]:
        """Income, expense and balance grouped by day, month or year."""
        fmt, unit, pg_fmt = PERIOD_FORMATS[period]
        if USING_SQLITE:
            label = func.strftime(fmt, cls.date)
        else:
            label = func.to_char(func.date_trunc(unit, cls.date), pg_fmt)
        label = label.label("label")

        query = select(
            label,
            func.sum(case((cls.type == "income", cls.amount), else_=0)).label("income"),
            func.sum(case((cls.type == "expense", cls.amount), else_=0)).label("expense"),
        ).where(cls.user_id == user_id)
        if from_date:
            query = query.where(cls.date >= from_date)
        if to_date:
            query = query.where(cls.date <= to_date)
        query = query.group_by(label).order_by(label)

        result = await db.execute(query)
        data = []
        for r in result:
            income = float(r.income or 0)
            expense = float(r.expense or 0)
            data.append({"label": r.label, "income": income, "expense": expense, "balance": income - expense})
        return data


# Indexes for the common per-user lookups
Index("ix_transactions_user_date", TransactionModel.user_id, TransactionModel.date.desc())
Index("ix_transactions_user_category", TransactionModel.user_id, TransactionModel.category)
Index("ix_transactions_user_type", TransactionModel.user_id, TransactionModel.type)
