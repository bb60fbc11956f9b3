"""
Pipeline configuration
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional


@dataclass
class OCRConfig:
    """Configuration for the document OCR service"""
    api_key: Optional[str] = None
    endpoint: str = "https://api.mistral.ai/v1/ocr"
    model: str = "mistral-ocr-latest"
    timeout: float = 60.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class LLMConfig:
    """Configuration for the chat-completion structuring service"""
    api_key: Optional[str] = None
    base_url: Optional[str] = "https://api.mistral.ai/v1"
    model: str = "mistral-large-latest"
    timeout: float = 60.0
    temperature: float = 0.1
    max_tokens: int = 4000

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class PipelineConfig:
    """Pipeline configuration"""
    ocr_config: OCRConfig = field(default_factory=OCRConfig)
    llm_config: LLMConfig = field(default_factory=LLMConfig)

    # Quality gates (text must be strictly longer than these)
    min_digital_chars: int = 50
    min_ocr_chars: int = 50
    min_structuring_chars: int = 200

    # Structuring fallback runs when fewer than this many rows were parsed
    min_parsed_transactions: int = 3
    structuring_max_chars: int = 12000

    anchor_balance: Decimal = Decimal('5000.00')
    prefer_statement_anchor: bool = True
