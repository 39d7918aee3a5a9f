import logging
import os
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Optional, List, Literal

from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

import auth
import uploads
from auth import get_current_user
from config import LOG_LEVEL, UPLOAD_DIR, USING_SQLITE
from database import engine, get_db, init_models
from models import TransactionModel, UserModel
from schemas import (
    CategoryTotal,
    ReportItem,
    TotalsOut,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
    TypeTotal,
)

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Database ready (%s)", "sqlite" if USING_SQLITE else "postgres")
    yield
    await engine.dispose()


# ----------------------------------------------------------------------------
# App setup
# ----------------------------------------------------------------------------
app = FastAPI(title="Personal Finance API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(uploads.router)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")

# ----------------------------------------------------------------------------
# Health & test
# ----------------------------------------------------------------------------
@app.get("/")
async def read_root():
    return {"message": "Personal Finance Backend is running"}

@app.get("/test")
async def test_database():
    info = {
        "backend": "✅ Running",
        "using_sqlite": USING_SQLITE,
        "upload_dir": str(UPLOAD_DIR),
        "connection_status": "Not Connected",
        "database": "❌ Not Available",
    }
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            info["database"] = "✅ Available"
            info["connection_status"] = "Connected"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        info["database"] = f"❌ Error: {str(e)[:160]}"
    return info

# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------

def resolve_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[date, date]:
    """Fill in a missing range bound with the current calendar month."""
    today = date.today()
    month_start = today.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    start = start_date or month_start
    end = end_date or (next_month - timedelta(days=1))
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    return start, end

async def get_user_transaction(db: AsyncSession, user: UserModel, transaction_id: int) -> TransactionModel:
    result = await db.execute(
        select(TransactionModel).where(
            TransactionModel.id == transaction_id,
            TransactionModel.user_id == user.id,
        )
    )
    tx = result.scalar_one_or_none()
    if tx is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return tx

# ----------------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------------
@app.post("/transactions", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(payload: TransactionIn, db: AsyncSession = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    try:
        tx = TransactionModel(user_id=current_user.id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.add(tx)
    await db.commit()
    await db.refresh(tx)
    return tx

@app.get("/transactions", response_model=List[TransactionOut])
async def list_transactions(
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    ttype: Optional[Literal["income", "expense"]] = None,
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    query = select(TransactionModel).where(TransactionModel.user_id == current_user.id)
    if from_date:
        query = query.where(TransactionModel.date >= from_date)
    if to_date:
        query = query.where(TransactionModel.date <= to_date)
    if ttype:
        query = query.where(TransactionModel.type == ttype)
    if category:
        query = query.where(TransactionModel.category == category.strip())
    query = query.order_by(TransactionModel.date.desc(), TransactionModel.id.desc())

    result = await db.execute(query)
    return result.scalars().all()

@app.get("/transactions/categories", response_model=List[str])
async def list_categories(
    ttype: Optional[Literal["income", "expense"]] = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    return await TransactionModel.get_categories(db, current_user.id, ttype)

@app.get("/transactions/{transaction_id}", response_model=TransactionOut)
async def get_transaction(transaction_id: int, db: AsyncSession = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    return await get_user_transaction(db, current_user, transaction_id)

@app.put("/transactions/{transaction_id}", response_model=TransactionOut)
async def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    tx = await get_user_transaction(db, current_user, transaction_id)
    try:
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(tx, field, value)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    await db.commit()
    await db.refresh(tx)
    return tx

@app.delete("/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(transaction_id: int, db: AsyncSession = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    tx = await get_user_transaction(db, current_user, transaction_id)
    await db.delete(tx)
    await db.commit()

# ----------------------------------------------------------------------------
# Reports
# ----------------------------------------------------------------------------
@app.get("/reports/totals", response_model=TotalsOut)
async def reports_totals(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    start, end = resolve_range(start_date, end_date)
    summary = await TransactionModel.get_summary(db, current_user.id, start, end)
    income = TypeTotal(**summary.get("income", {}))
    expense = TypeTotal(**summary.get("expense", {}))
    return TotalsOut(
        start_date=start,
        end_date=end,
        income=income,
        expense=expense,
        balance=income.total - expense.total,
    )

@app.get("/reports/categories", response_model=List[CategoryTotal])
async def reports_categories(
    ttype: Literal["income", "expense"] = "expense",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    start, end = resolve_range(start_date, end_date)
    return await TransactionModel.get_category_breakdown(db, current_user.id, ttype, start, end)

@app.get("/reports/summary", response_model=List[ReportItem])
async def reports_summary(
    period: Literal["daily", "monthly", "yearly"] = "monthly",
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    if from_date and to_date and from_date > to_date:
        raise HTTPException(status_code=400, detail="from_date must be on or before to_date")
    return await TransactionModel.get_period_report(db, current_user.id, period, from_date, to_date)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
