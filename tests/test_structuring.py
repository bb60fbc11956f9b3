"""
Unit tests for StructuringFallback.
"""
import json
from datetime import date
from decimal import Decimal

import httpx
import openai
import pytest

from statement_extractor.core import (
    ConfigurationError,
    LLMConfig,
    SchemaViolation,
    StageTimeoutError,
    StructuringFallback,
    TransportError,
)
from statement_extractor.models import Direction
from statement_extractor.models.structured_output import StructuredTransaction

from conftest import TODAY, fake_openai_client


MODEL_REPLY = {
    "account_info": {"account_number": "****9876", "account_holder": "Jane Doe", "bank_name": "Acme Bank"},
    "date_range": {"start_date": "2024-01-01", "end_date": "2024-01-31"},
    "transactions": [
        {"date": "2024-01-05", "description": "Refund {order 12}", "amount": 20.0, "balance": None, "type": "credit"},
        {"date": "01/07/2024", "description": "Rent", "amount": "-800.00", "balance": None, "type": None},
    ],
    "summary": {"total_credits": 20.0, "total_debits": 800.0, "transaction_count": 2},
}


def _fallback(client, **kwargs) -> StructuringFallback:
    return StructuringFallback(LLMConfig(api_key="test-key", model="test-model"), client=client,
                               clock=lambda: TODAY, **kwargs)


class TestStructuringFallback:
    """Tests for StructuringFallback class."""

    def test_missing_key_raises(self):
        with pytest.raises(ConfigurationError):
            StructuringFallback(LLMConfig(api_key=None))

    async def test_reply_wrapped_in_prose(self):
        content = "Sure! Here is the data:\n```json\n" + json.dumps(MODEL_REPLY) + "\n```\nLet me know."
        client = fake_openai_client(content)
        extraction = await _fallback(client).restructure("statement text")

        assert [t.description for t in extraction.transactions] == ["Refund {order 12}", "Rent"]
        refund, rent = extraction.transactions
        assert refund.direction == Direction.CREDIT
        assert refund.amount == Decimal("20.0")
        assert rent.date == "2024-01-07"
        assert rent.amount == Decimal("800.00")
        assert rent.direction == Direction.DEBIT
        assert extraction.has_balances is False
        assert extraction.account_info.bank_name == "Acme Bank"

    async def test_request_parameters(self):
        client = fake_openai_client(json.dumps(MODEL_REPLY))
        await _fallback(client, max_chars=10).restructure("0123456789abcdef")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1]["content"].endswith("0123456789")

    @pytest.mark.parametrize("content", [
        "I could not find any transactions.",
        "{not: valid json}",
        json.dumps({"transactions": []}),
        json.dumps({"account_info": {}}),
        "",
        None,
    ])
    async def test_malformed_output_raises_schema_violation(self, content):
        with pytest.raises(SchemaViolation):
            await _fallback(fake_openai_client(content)).restructure("statement text")

    async def test_timeout_maps_to_stage_timeout(self):
        request = httpx.Request("POST", "https://llm.test/v1/chat/completions")
        client = fake_openai_client(side_effect=openai.APITimeoutError(request=request))
        with pytest.raises(StageTimeoutError):
            await _fallback(client).restructure("statement text")

    async def test_connection_error_maps_to_transport_error(self):
        request = httpx.Request("POST", "https://llm.test/v1/chat/completions")
        client = fake_openai_client(side_effect=openai.APIConnectionError(request=request))
        with pytest.raises(TransportError):
            await _fallback(client).restructure("statement text")

    async def test_other_client_errors_map_to_transport_error(self):
        client = fake_openai_client(side_effect=openai.OpenAIError("unexpected"))
        with pytest.raises(TransportError) as exc_info:
            await _fallback(client).restructure("statement text")
        assert exc_info.value.service == "llm"


class TestCleanRow:
    """Tests for row coercion."""

    @pytest.fixture
    def fallback(self) -> StructuringFallback:
        return _fallback(fake_openai_client("{}"))

    def test_defaults_for_missing_fields(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(), 2)
        assert row.date == TODAY.isoformat()
        assert row.amount == Decimal("0")
        assert row.direction == Direction.CREDIT
        assert row.description == "Transaction 3"
        assert row.balance is None

    def test_invalid_date_uses_today(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(date="yesterday", amount=5), 0)
        assert row.date == date(2024, 3, 1).isoformat()

    def test_type_wins_over_sign(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(amount=-10, type="Credit"), 0)
        assert row.direction == Direction.CREDIT
        assert row.amount == Decimal("10")

    def test_balance_kept(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(amount="1,200.50", balance="$3,000.00"), 0)
        assert row.amount == Decimal("1200.50")
        assert row.balance == Decimal("3000.00")

    def test_description_capped(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(description="d" * 300, amount=1), 0)
        assert len(row.description) == 100

    def test_oversized_amount_treated_as_missing(self, fallback: StructuringFallback):
        row = fallback.clean_row(StructuredTransaction(amount=1e30, balance="9" * 30 + ".00"), 0)
        assert row.amount == Decimal("0")
        assert row.balance is None
