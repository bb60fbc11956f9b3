"""
Heuristic statement text parser
Turns a flat block of extracted text into ordered transaction candidates
"""

import logging
import random
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from ..models.statement import AccountInfo, Direction, TransactionCandidate
from ..utils.parsing import normalize_date, parse_amount

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 100
SYNTHETIC_COUNT = 5

# Priority order: the first pattern that matches a line wins
DATE_PATTERNS: Tuple[Tuple[str, re.Pattern], ...] = (
    ('slash', re.compile(r'(?<!\d)\d{1,2}/\d{1,2}/\d{4}(?!\d)')),
    ('iso', re.compile(r'(?<!\d)\d{4}-\d{2}-\d{2}(?!\d)')),
    ('dash', re.compile(r'(?<!\d)\d{1,2}-\d{1,2}-\d{4}(?!\d)')),
    ('dot', re.compile(r'(?<!\d)\d{1,2}\.\d{1,2}\.\d{4}(?!\d)')),
)

# Optional sign and currency symbol, then a decimal with exactly two fractional digits.
# The integer part is at most 15 digits.
AMOUNT_PATTERN = re.compile(
    r'(?<![\d.,])(?P<sign>[-+]?)\s?(?P<currency>[$€£¥₹]?)\s?(?P<inner_sign>[-+]?)'
    r'(?P<number>(?:\d{1,3}(?:,\d{3}){1,4}|\d{1,15})\.\d{2})(?!\d)'
)

ACCOUNT_PATTERN = re.compile(
    r'\b(?:account|acct|a/c)\b(?:\s*(?:number|no\.?|#))?[\s:#.]*(?P<number>[*xX•]+[\s-]?\d{4}|\d{4,})',
    re.IGNORECASE,
)
BANK_PATTERN = re.compile(r'\b([A-Z][A-Za-z]+\s+(?:Bank|Credit\s+Union))\b')
HOLDER_PATTERN = re.compile(
    r'^\s*(?:account\s+holder|account\s+name|customer(?:\s+name)?|name)\s*:\s*(?P<name>\S.*?)\s*$',
    re.IGNORECASE,
)


@dataclass
class ParseResult:
    """Parser output before balance reconstruction"""
    transactions: List[TransactionCandidate] = field(default_factory=list)
    account_info: AccountInfo = field(default_factory=AccountInfo)
    synthetic: bool = False

    @property
    def parsed_count(self) -> int:
        """Rows genuinely recognised in the text"""
        return 0 if self.synthetic else len(self.transactions)


class StatementParser:
    """
    Pattern-driven parser for statement text of any provenance

    Each line holding both a date and an amount becomes one candidate. When no
    line qualifies, sample rows are synthesised and the result is flagged.
    """

    def __init__(self, clock: Callable[[], date] = date.today, rng: Optional[random.Random] = None):
        self.clock = clock
        self.rng = rng or random.Random()

    def parse(self, text: str) -> ParseResult:
        lines = [line for line in (text or "").splitlines() if line.strip()]
        transactions: List[TransactionCandidate] = []

        for idx, line in enumerate(lines):
            candidate = self.parse_line(line, lines[idx + 1] if idx + 1 < len(lines) else None,
                                        len(transactions) + 1)
            if candidate is not None:
                transactions.append(candidate)

        account_info = self.extract_account_info(lines)

        if not transactions:
            logger.warning("No transactions recognised, generating sample data")
            return ParseResult(
                transactions=self.synthesize(),
                account_info=account_info,
                synthetic=True,
            )

        logger.info(f"Parsed {len(transactions)} transactions from {len(lines)} lines")
        return ParseResult(transactions=transactions, account_info=account_info)

    def parse_line(self, line: str, next_line: Optional[str], index: int) -> Optional[TransactionCandidate]:
        """Build a candidate from one line, or None when date or amount is missing"""
        date_match = self.match_date(line)
        if date_match is None:
            return None

        amount_match = AMOUNT_PATTERN.search(line, date_match.end())
        if amount_match is not None:
            description = line[date_match.end():amount_match.start()]
        else:
            # Amount printed ahead of the date
            amount_match = AMOUNT_PATTERN.search(line, 0, date_match.start())
            if amount_match is None:
                return None
            description = line[date_match.end():]

        amount = self.amount_value(amount_match)
        if amount is None:
            return None

        description = description.strip()
        if not description and next_line is not None:
            description = next_line.strip()
        if not description:
            description = f"Transaction {index}"

        return TransactionCandidate(
            date=normalize_date(date_match.group(0)),
            description=description[:MAX_DESCRIPTION_CHARS],
            amount=abs(amount),
            direction=Direction.CREDIT if amount >= 0 else Direction.DEBIT,
        )

    @staticmethod
    def match_date(line: str) -> Optional[re.Match]:
        for _name, pattern in DATE_PATTERNS:
            match = pattern.search(line)
            if match:
                return match
        return None

    @staticmethod
    def amount_value(match: re.Match) -> Optional[Decimal]:
        value = parse_amount(match.group('number'))
        if value is None:
            return None
        if '-' in (match.group('sign'), match.group('inner_sign')):
            value = -value
        return value

    @staticmethod
    def extract_account_info(lines: List[str]) -> AccountInfo:
        """Best-effort header fields; placeholders stay when nothing matches"""
        info = AccountInfo()
        account_found = bank_found = holder_found = False

        for line in lines:
            if not account_found:
                match = ACCOUNT_PATTERN.search(line)
                if match:
                    digits = re.sub(r'\D', '', match.group('number'))
                    info.account_number = f"****{digits[-4:]}"
                    account_found = True
            if not bank_found:
                match = BANK_PATTERN.search(line)
                if match:
                    info.bank_name = re.sub(r'\s+', ' ', match.group(1))
                    bank_found = True
            if not holder_found:
                match = HOLDER_PATTERN.match(line)
                if match:
                    info.holder_name = match.group('name')[:MAX_DESCRIPTION_CHARS]
                    holder_found = True
            if account_found and bank_found and holder_found:
                break

        return info

    def synthesize(self) -> List[TransactionCandidate]:
        """Weekly sample rows ending today, newest first"""
        today = self.clock()
        rows = []
        for i in range(SYNTHETIC_COUNT):
            cents = self.rng.randint(1, 99999)
            rows.append(TransactionCandidate(
                date=(today - timedelta(days=7 * i)).isoformat(),
                description=f"Sample Transaction {i + 1}",
                amount=Decimal(cents) / Decimal(100),
                direction=Direction.CREDIT if i % 2 == 0 else Direction.DEBIT,
            ))
        return rows
