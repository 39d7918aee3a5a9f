"""
App Schemas

Request and response models for the API, validated with Pydantic.
Field limits mirror the column validation on the ORM models.
- User -> UserRegister / UserOut
- Transaction -> TransactionIn / TransactionUpdate / TransactionOut
- Reports -> TotalsOut / CategoryTotal / ReportItem
- Uploads -> ExtractedData / ReceiptUploadOut / BulkUploadOut
"""

import datetime as dt
from typing import Optional, Literal, List

from pydantic import BaseModel, Field, EmailStr, constr

TransactionType = Literal["income", "expense"]
CategoryStr = constr(strip_whitespace=True, min_length=1, max_length=30)
DescriptionStr = constr(strip_whitespace=True, min_length=1, max_length=200)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRegister(BaseModel):
    name: constr(strip_whitespace=True, min_length=1) = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6)


class UserOut(BaseModel):
    id: int
    name: str
    email: EmailStr

    class Config:
        from_attributes = True


class TransactionIn(BaseModel):
    """
    A transaction as submitted by the client.
    `date` defaults to today when omitted.
    """
    type: TransactionType = Field(..., description="Income or expense")
    amount: float = Field(..., ge=0.01, le=999999.99, description="Positive amount")
    category: CategoryStr = Field(..., description="Category such as salary, food, rent")
    description: DescriptionStr = Field(..., description="What the transaction was for")
    date: dt.date = Field(default_factory=dt.date.today, description="Transaction date")
    receipt_url: Optional[str] = Field(None, description="URL of an uploaded receipt")


class TransactionUpdate(BaseModel):
    type: Optional[TransactionType] = None
    amount: Optional[float] = Field(None, ge=0.01, le=999999.99)
    category: Optional[CategoryStr] = None
    description: Optional[DescriptionStr] = None
    date: Optional[dt.date] = None
    receipt_url: Optional[str] = None


class TransactionOut(BaseModel):
    id: int
    type: TransactionType
    amount: float
    formatted_amount: str
    category: str
    description: str
    date: dt.date
    receipt_url: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class TypeTotal(BaseModel):
    total: float = 0.0
    count: int = 0


class TotalsOut(BaseModel):
    start_date: dt.date
    end_date: dt.date
    income: TypeTotal
    expense: TypeTotal
    balance: float


class CategoryTotal(BaseModel):
    category: str
    total: float
    count: int


class ReportItem(BaseModel):
    label: str
    income: float
    expense: float
    balance: float


class ExtractedData(BaseModel):
    """Transaction fields read off a receipt; any of them may be missing."""
    amount: Optional[float] = None
    description: Optional[str] = None
    category: str = "Other"
    date: Optional[str] = None
    type: TransactionType = "expense"


class ReceiptUploadOut(BaseModel):
    message: str
    file_url: str
    extracted_data: ExtractedData
    filename: str
    processing_error: Optional[str] = None


class BulkUploadOut(BaseModel):
    message: str
    transaction_count: int
    transactions: List[TransactionOut]
