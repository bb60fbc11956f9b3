"""
Language-model structuring fallback
Used when the heuristic parser recognises too few transactions
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, List, Optional

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from .config import LLMConfig
from .errors import ConfigurationError, SchemaViolation, StageTimeoutError, TransportError
from ..models.statement import Direction, TransactionCandidate
from ..models.structured_output import StructuredAccountInfo, StructuredStatement, StructuredTransaction
from ..utils.parsing import MAX_ABS_AMOUNT, find_json_object, parse_amount, parse_date

logger = logging.getLogger(__name__)

SERVICE_NAME = "llm"
MAX_DESCRIPTION_CHARS = 100

SYSTEM_PROMPT = (
    "You are a bank statement analysis expert. "
    "Respond with exactly one valid JSON object and nothing else: no markdown, no explanations."
)

USER_PROMPT_TEMPLATE = """Extract ALL transactions from this bank statement text.

Return a JSON object with this exact structure:
{{
  "account_info": {{"account_number": "****1234", "account_holder": "name", "bank_name": "bank"}},
  "date_range": {{"start_date": "YYYY-MM-DD", "end_date": "YYYY-MM-DD"}},
  "transactions": [
    {{"date": "YYYY-MM-DD", "description": "clean description", "amount": 123.45, "balance": 678.90, "type": "debit"}}
  ],
  "summary": {{"total_credits": 0.0, "total_debits": 0.0, "transaction_count": 0}}
}}

Rules:
- amount is always positive; type is "credit" for deposits/income and "debit" for withdrawals/payments
- Convert all dates to YYYY-MM-DD
- Include balance only if it is printed on the statement, otherwise null
- Combine multi-line descriptions into one

Bank Statement Text:
{text}"""


@dataclass
class StructuredExtraction:
    """Cleaned rows recovered by the language model"""
    transactions: List[TransactionCandidate] = field(default_factory=list)
    account_info: StructuredAccountInfo = field(default_factory=StructuredAccountInfo)

    @property
    def has_balances(self) -> bool:
        return all(t.balance is not None for t in self.transactions)


class StructuringFallback:
    """
    Delegates whole-document structuring to a chat-completion model.

    Model output is untrusted: the first balanced JSON object is pulled out of
    the reply and validated before any row is accepted.
    """

    def __init__(self, config: LLMConfig, client: Optional[AsyncOpenAI] = None, max_chars: int = 12000,
                 clock: Callable[[], date] = date.today):
        self.config = config
        if not self.config.is_configured:
            raise ConfigurationError("LLM API key is not configured")

        self.max_chars = max_chars
        self.clock = clock
        self.client = client or AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    def build_messages(self, text: str) -> List[dict]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT_TEMPLATE.format(text=text[:self.max_chars])},
        ]

    async def restructure(self, text: str) -> StructuredExtraction:
        """
        Raises:
            TransportError: the completion endpoint failed
            StageTimeoutError: the completion endpoint timed out
            SchemaViolation: the reply holds no usable statement JSON
        """
        logger.info(f"Requesting structured extraction ({min(len(text), self.max_chars)} characters)")

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=self.build_messages(text),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except openai.APITimeoutError as e:
            raise StageTimeoutError(f"LLM request timed out after {self.config.timeout}s",
                                    service=SERVICE_NAME) from e
        except openai.APIStatusError as e:
            raise TransportError(f"LLM error {e.status_code}", status_code=e.status_code,
                                 service=SERVICE_NAME) from e
        except openai.APIConnectionError as e:
            raise TransportError(f"LLM request failed: {e}", service=SERVICE_NAME) from e
        except openai.OpenAIError as e:
            raise TransportError(f"LLM client error: {e}", service=SERVICE_NAME) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        logger.info(f"Structured content received, length: {len(content)}")
        return self.parse_response(content)

    def parse_response(self, content: str) -> StructuredExtraction:
        span = find_json_object(content)
        if span is None:
            logger.warning(f"No JSON object in model output: {content[:500]!r}")
            raise SchemaViolation("Model output contains no JSON object")

        try:
            data = json.loads(span)
        except json.JSONDecodeError as e:
            raise SchemaViolation(f"Model output is not valid JSON: {e}") from e

        try:
            statement = StructuredStatement.model_validate(data)
        except ValidationError as e:
            raise SchemaViolation(f"Model output does not match the statement schema: {e}") from e

        transactions = [self.clean_row(row, idx) for idx, row in enumerate(statement.transactions)]
        logger.info(f"Model returned {len(transactions)} transactions")
        return StructuredExtraction(transactions=transactions, account_info=statement.account_info)

    def clean_row(self, row: StructuredTransaction, index: int) -> TransactionCandidate:
        """Coerce one model row into a candidate, substituting safe defaults"""
        parsed_date = parse_date(str(row.date)) if row.date is not None else None
        txn_date = (parsed_date or self.clock()).isoformat()

        amount = _to_decimal(row.amount)
        if amount is None:
            amount = Decimal('0')

        row_type = str(row.type or "").strip().lower()
        if row_type in (Direction.CREDIT.value, Direction.DEBIT.value):
            direction = Direction(row_type)
        else:
            direction = Direction.DEBIT if amount < 0 else Direction.CREDIT

        description = str(row.description or "").strip()[:MAX_DESCRIPTION_CHARS]
        if not description:
            description = f"Transaction {index + 1}"

        return TransactionCandidate(
            date=txn_date,
            description=description,
            amount=abs(amount),
            direction=direction,
            balance=_to_decimal(row.balance),
        )


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        if not result.is_finite() or abs(result) >= MAX_ABS_AMOUNT:
            return None
        return result
    return parse_amount(str(value))
