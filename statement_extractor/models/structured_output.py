from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StructuredAccountInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    account_number: Optional[Any] = None
    account_holder: Optional[Any] = None
    bank_name: Optional[Any] = None


class StructuredDateRange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start_date: Optional[str] = None
    end_date: Optional[str] = None


class StructuredTransaction(BaseModel):
    # Values are cleaned row by row after validation, so keep them loose here
    model_config = ConfigDict(extra="ignore")

    date: Optional[Any] = None
    description: Optional[Any] = None
    amount: Optional[Any] = None
    balance: Optional[Any] = None
    type: Optional[Any] = None


class StructuredStatement(BaseModel):
    """Shape the structuring model is instructed to return"""
    model_config = ConfigDict(extra="ignore")

    account_info: StructuredAccountInfo = Field(default_factory=StructuredAccountInfo)
    date_range: Optional[StructuredDateRange] = None
    transactions: List[StructuredTransaction] = Field(min_length=1)
