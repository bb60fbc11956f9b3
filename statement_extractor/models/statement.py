"""
Statement data models
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, Iterable, Tuple

from .quality_report import QualityReport


PDF_MAGIC = b"%PDF"


class TextProvenance(str, Enum):
    """Which extraction strategy produced a block of text"""
    DIGITAL = 'digital'
    OCR = 'ocr'
    RAW_SCAN = 'raw-scan'


class Direction(str, Enum):
    """Signed effect of a transaction on the balance"""
    CREDIT = 'credit'
    DEBIT = 'debit'


@dataclass(frozen=True)
class Document:
    """Uploaded document bytes, owned by a single extraction request"""
    content: bytes
    filename: str = "upload.pdf"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_pdf(self) -> bool:
        return self.content[:4] == PDF_MAGIC or self.filename.lower().endswith('.pdf')

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.content).hexdigest()


@dataclass(frozen=True)
class ExtractedText:
    """Text produced by exactly one extraction strategy"""
    text: str
    provenance: TextProvenance

    @property
    def length(self) -> int:
        return len(self.text)

    def is_sufficient(self, min_length: int) -> bool:
        return self.length > min_length


@dataclass
class TransactionCandidate:
    """Single parsed transaction; balance is filled in by BalanceReconstructor"""
    date: str
    description: str
    amount: Decimal
    direction: Direction
    balance: Optional[Decimal] = None

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Transaction amount must be non-negative, got {self.amount}")

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == Direction.CREDIT else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'description': self.description,
            'amount': _money(self.amount),
            'balance': _money(self.balance) if self.balance is not None else None,
            'type': self.direction.value,
        }


@dataclass
class AccountInfo:
    """Best-effort header fields; placeholders when absent"""
    account_number: str = "****"
    holder_name: str = "Account Holder"
    bank_name: str = "Bank Statement"

    def to_dict(self) -> Dict[str, str]:
        return {
            'account_number': self.account_number,
            'account_holder': self.holder_name,
            'bank_name': self.bank_name,
        }


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @classmethod
    def from_dates(cls, dates: Iterable[Optional[date]], today: Optional[date] = None,
                   default_days: int = 30) -> 'DateRange':
        """Min/max over valid dates, or a trailing window ending today"""
        valid = [d for d in dates if d is not None]
        if valid:
            return cls(start=min(valid), end=max(valid))
        today = today or date.today()
        return cls(start=today - timedelta(days=default_days), end=today)

    def to_dict(self) -> Dict[str, str]:
        return {
            'start_date': self.start.isoformat(),
            'end_date': self.end.isoformat(),
        }


@dataclass(frozen=True)
class StatementSummary:
    total_credits: Decimal
    total_debits: Decimal
    transaction_count: int

    @classmethod
    def from_transactions(cls, transactions: Iterable[TransactionCandidate]) -> 'StatementSummary':
        credits = Decimal('0')
        debits = Decimal('0')
        count = 0
        for txn in transactions:
            count += 1
            if txn.direction == Direction.CREDIT:
                credits += txn.amount
            else:
                debits += txn.amount
        return cls(total_credits=credits, total_debits=debits, transaction_count=count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_credits': _money(self.total_credits),
            'total_debits': _money(self.total_debits),
            'transaction_count': self.transaction_count,
        }


@dataclass(frozen=True)
class StatementResult:
    """Terminal aggregate returned to callers"""
    account_info: AccountInfo
    date_range: DateRange
    transactions: Tuple[TransactionCandidate, ...]
    summary: StatementSummary
    quality: QualityReport = field(default_factory=QualityReport)
    file_name: str = ""
    file_hash: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the output schema consumed by downstream insight generators"""
        return {
            'account_info': self.account_info.to_dict(),
            'date_range': self.date_range.to_dict(),
            'transactions': [t.to_dict() for t in self.transactions],
            'summary': self.summary.to_dict(),
            'quality': self.quality.to_dict(),
            'metadata': {
                'file_name': self.file_name,
                'file_hash': self.file_hash,
            },
        }


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal('0.01')))

