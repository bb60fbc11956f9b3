"""
Main extraction pipeline
Sequences the extraction stages as an explicit state machine
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

from .balance import BalanceReconstructor
from .config import PipelineConfig
from .digital_text import DigitalTextExtractor
from .errors import SchemaViolation, StageTimeoutError, TransportError
from .ocr_client import OpticalRecognitionClient
from .raw_scanner import RawByteTextScanner
from .statement_parser import ParseResult, StatementParser
from .structuring import StructuringFallback
from ..models.quality_report import QualityReport
from ..models.structured_output import StructuredAccountInfo
from ..models.statement import (
    AccountInfo,
    DateRange,
    Document,
    ExtractedText,
    StatementResult,
    StatementSummary,
    TransactionCandidate,
)
from ..utils.parsing import parse_date
from ..validators import ConfidenceScorer, ConsistencyValidator

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class PipelineState(str, Enum):
    DIGITAL_ATTEMPT = 'digital_attempt'
    OCR_ATTEMPT = 'ocr_attempt'
    RAW_SCAN = 'raw_scan'
    PARSE = 'parse'
    BALANCE_RECONSTRUCT = 'balance_reconstruct'
    STRUCTURING_FALLBACK = 'structuring_fallback'
    ASSEMBLE = 'assemble'
    DONE = 'done'


_PROGRESS = {
    PipelineState.DIGITAL_ATTEMPT: (10, "Extracting embedded text..."),
    PipelineState.OCR_ATTEMPT: (30, "Running OCR..."),
    PipelineState.RAW_SCAN: (50, "Scanning raw document bytes..."),
    PipelineState.PARSE: (60, "Parsing transactions..."),
    PipelineState.BALANCE_RECONSTRUCT: (70, "Reconstructing balances..."),
    PipelineState.STRUCTURING_FALLBACK: (80, "Structuring with language model..."),
    PipelineState.ASSEMBLE: (95, "Finalizing results..."),
    PipelineState.DONE: (100, "Processing complete"),
}


@dataclass
class ExtractionContext:
    """Per-request state threaded through the stage handlers"""
    document: Document
    quality: QualityReport = field(default_factory=QualityReport)
    text: Optional[ExtractedText] = None
    parse_result: Optional[ParseResult] = None
    transactions: List[TransactionCandidate] = field(default_factory=list)
    account_info: AccountInfo = field(default_factory=AccountInfo)
    anchor: Optional[Decimal] = None
    result: Optional[StatementResult] = None


class ExtractionOrchestrator:
    """
    Main extraction pipeline

    digital -> (gate) -> OCR -> (failure) -> raw scan -> parse ->
    balance reconstruction -> (gate) -> structuring fallback -> assemble

    Input-quality problems only lower the confidence of the result; every
    request that reaches extract() returns a StatementResult.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        digital_extractor: Optional[DigitalTextExtractor] = None,
        ocr_client: Optional[OpticalRecognitionClient] = None,
        raw_scanner: Optional[RawByteTextScanner] = None,
        parser: Optional[StatementParser] = None,
        structuring: Optional[StructuringFallback] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.config = config or PipelineConfig()
        self.clock = clock

        self.digital_extractor = digital_extractor or DigitalTextExtractor()
        self.raw_scanner = raw_scanner or RawByteTextScanner()
        self.parser = parser or StatementParser(clock=clock)
        self.reconstructor = BalanceReconstructor(
            default_anchor=self.config.anchor_balance,
            prefer_statement_anchor=self.config.prefer_statement_anchor,
        )
        self.validator = ConsistencyValidator()
        self.scorer = ConfidenceScorer(target_rows=self.config.min_parsed_transactions)

        # Initialize remote clients
        self.ocr_client = ocr_client
        if self.ocr_client is None and self.config.ocr_config.is_configured:
            self.ocr_client = OpticalRecognitionClient(self.config.ocr_config)
        if self.ocr_client is None:
            logger.warning("OCR not configured; scanned documents fall back to raw byte scanning")

        self.structuring = structuring
        if self.structuring is None and self.config.llm_config.is_configured:
            self.structuring = StructuringFallback(
                self.config.llm_config,
                max_chars=self.config.structuring_max_chars,
                clock=clock,
            )
        if self.structuring is None:
            logger.warning("LLM not configured; structuring fallback disabled")

        self._handlers: Dict[PipelineState, Callable[[ExtractionContext], Awaitable[PipelineState]]] = {
            PipelineState.DIGITAL_ATTEMPT: self._digital_attempt,
            PipelineState.OCR_ATTEMPT: self._ocr_attempt,
            PipelineState.RAW_SCAN: self._raw_scan,
            PipelineState.PARSE: self._parse,
            PipelineState.BALANCE_RECONSTRUCT: self._balance_reconstruct,
            PipelineState.STRUCTURING_FALLBACK: self._structuring_fallback,
            PipelineState.ASSEMBLE: self._assemble,
        }

        logger.info("Pipeline initialized")

    async def extract(self, document: Document, progress: Optional[ProgressCallback] = None) -> StatementResult:
        """
        Run every stage for one document

        Returns:
            StatementResult (always; never None)
        """
        logger.info(f"Processing: {document.filename} ({document.size} bytes)")
        ctx = ExtractionContext(document=document)

        state = PipelineState.DIGITAL_ATTEMPT
        while state != PipelineState.DONE:
            self._report(progress, state)
            state = await self.step(state, ctx)
        self._report(progress, state)

        logger.info(
            f"Processing complete: {len(ctx.result.transactions)} transactions "
            f"from {ctx.quality.source} (confidence {ctx.quality.confidence_label})"
        )
        return ctx.result

    async def step(self, state: PipelineState, ctx: ExtractionContext) -> PipelineState:
        """Run the handler for one state and return the next state"""
        logger.info("=" * 60)
        logger.info(f"STAGE: {state.value}")
        logger.info("=" * 60)
        return await self._handlers[state](ctx)

    async def extract_many(self, documents: List[Document]) -> List[StatementResult]:
        """
        Process documents concurrently

        Returns:
            Results for documents that did not raise
        """
        logger.info(f"Batch processing {len(documents)} documents")

        tasks = [self.extract(document) for document in documents]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        successful = [r for r in results if not isinstance(r, BaseException)]
        failed = [r for r in results if isinstance(r, BaseException)]
        for error in failed:
            logger.error(f"Batch item failed: {error!r}")

        logger.info(f"Batch complete: {len(successful)} successful, {len(failed)} failed")
        return successful

    # ------------------------------------------------------------------
    # Stage handlers
    # ------------------------------------------------------------------

    async def _digital_attempt(self, ctx: ExtractionContext) -> PipelineState:
        if not ctx.document.is_pdf:
            ctx.quality.record(PipelineState.DIGITAL_ATTEMPT.value, 'skipped', 'not a PDF')
            return PipelineState.OCR_ATTEMPT

        text = await self.digital_extractor.extract(ctx.document)
        if text.is_sufficient(self.config.min_digital_chars):
            ctx.text = text
            ctx.quality.record(PipelineState.DIGITAL_ATTEMPT.value, 'success', f'{text.length} characters')
            return PipelineState.PARSE

        ctx.quality.record(PipelineState.DIGITAL_ATTEMPT.value, 'insufficient', f'{text.length} characters')
        logger.info(f"Digital text insufficient ({text.length} characters), trying OCR")
        return PipelineState.OCR_ATTEMPT

    async def _ocr_attempt(self, ctx: ExtractionContext) -> PipelineState:
        if self.ocr_client is None:
            ctx.quality.record(PipelineState.OCR_ATTEMPT.value, 'skipped', 'OCR credential not configured')
            return PipelineState.RAW_SCAN

        try:
            text = await self.ocr_client.process_document(ctx.document)
        except StageTimeoutError as e:
            logger.warning(f"OCR timed out: {e}")
            ctx.quality.record(PipelineState.OCR_ATTEMPT.value, 'insufficient', str(e))
            return PipelineState.RAW_SCAN
        except TransportError as e:
            logger.error(f"OCR failed (status {e.status_code}): {e}")
            ctx.quality.record(PipelineState.OCR_ATTEMPT.value, 'failed', str(e))
            return PipelineState.RAW_SCAN

        if text.is_sufficient(self.config.min_ocr_chars):
            ctx.text = text
            ctx.quality.record(PipelineState.OCR_ATTEMPT.value, 'success', f'{text.length} characters')
            return PipelineState.PARSE

        ctx.quality.record(PipelineState.OCR_ATTEMPT.value, 'insufficient', f'{text.length} characters')
        logger.warning(f"OCR text insufficient ({text.length} characters), falling back to raw scan")
        return PipelineState.RAW_SCAN

    async def _raw_scan(self, ctx: ExtractionContext) -> PipelineState:
        ctx.text = self.raw_scanner.scan(ctx.document)
        ctx.quality.record(PipelineState.RAW_SCAN.value, 'success', f'{ctx.text.length} characters')
        return PipelineState.PARSE

    async def _parse(self, ctx: ExtractionContext) -> PipelineState:
        parse_result = self.parser.parse(ctx.text.text)
        ctx.parse_result = parse_result
        ctx.transactions = parse_result.transactions
        ctx.account_info = parse_result.account_info

        ctx.quality.source = ctx.text.provenance.value
        ctx.quality.text_provenance = ctx.text.provenance.value
        ctx.quality.text_length = ctx.text.length
        ctx.quality.synthetic = parse_result.synthetic

        outcome = 'insufficient' if parse_result.synthetic else 'success'
        ctx.quality.record(PipelineState.PARSE.value, outcome, f'{parse_result.parsed_count} transactions recognised')
        return PipelineState.BALANCE_RECONSTRUCT

    async def _balance_reconstruct(self, ctx: ExtractionContext) -> PipelineState:
        anchor, anchor_source = self.reconstructor.choose_anchor(ctx.text.text)
        ctx.anchor = anchor
        ctx.quality.anchor_source = anchor_source
        ctx.quality.anchor_balance = float(anchor)

        self.reconstructor.reconstruct(ctx.transactions, anchor)
        ctx.quality.record(PipelineState.BALANCE_RECONSTRUCT.value, 'success', f'anchor {anchor} ({anchor_source})')

        if self.should_structure(ctx):
            return PipelineState.STRUCTURING_FALLBACK
        return PipelineState.ASSEMBLE

    def should_structure(self, ctx: ExtractionContext) -> bool:
        """Quality gate between heuristic parsing and the language-model fallback"""
        stage = PipelineState.STRUCTURING_FALLBACK.value
        if ctx.parse_result.parsed_count >= self.config.min_parsed_transactions:
            ctx.quality.record(stage, 'skipped', 'parser yield sufficient')
            return False
        if self.structuring is None:
            ctx.quality.record(stage, 'skipped', 'LLM credential not configured')
            return False
        if not ctx.text.is_sufficient(self.config.min_structuring_chars):
            ctx.quality.record(stage, 'skipped', f'text too short ({ctx.text.length} characters)')
            return False
        return True

    async def _structuring_fallback(self, ctx: ExtractionContext) -> PipelineState:
        ctx.quality.structuring_attempted = True
        stage = PipelineState.STRUCTURING_FALLBACK.value

        try:
            extraction = await self.structuring.restructure(ctx.text.text)
        except SchemaViolation as e:
            logger.warning(f"Structuring output rejected, keeping heuristic result: {e}")
            ctx.quality.record(stage, 'failed', str(e))
            return PipelineState.ASSEMBLE
        except TransportError as e:
            logger.error(f"Structuring request failed, keeping heuristic result: {e}")
            ctx.quality.record(stage, 'failed', str(e))
            return PipelineState.ASSEMBLE

        transactions = extraction.transactions
        if not extraction.has_balances:
            for txn in transactions:
                txn.balance = None
            self.reconstructor.reconstruct(transactions, ctx.anchor)

        ctx.transactions = transactions
        ctx.account_info = self._merge_account_info(ctx.account_info, extraction.account_info)
        ctx.quality.source = 'llm'
        ctx.quality.synthetic = False
        ctx.quality.structuring_applied = True
        ctx.quality.record(stage, 'success', f'{len(transactions)} transactions')
        return PipelineState.ASSEMBLE

    async def _assemble(self, ctx: ExtractionContext) -> PipelineState:
        transactions = tuple(ctx.transactions)
        summary = StatementSummary.from_transactions(transactions)
        today = self.clock()
        date_range = DateRange.from_dates((parse_date(t.date) for t in transactions), today=today)

        ctx.quality.violations = self.validator.validate(transactions, summary, today=today)
        confidence = self.scorer.assess(
            ctx.quality,
            transaction_count=0 if ctx.quality.synthetic else len(transactions),
            total_checks=self.validator.count_checks(transactions),
        )
        ctx.quality.confidence = confidence['score']
        ctx.quality.confidence_label = confidence['label']
        ctx.quality.confidence_components = confidence['components']
        ctx.quality.record(PipelineState.ASSEMBLE.value, 'success', f'{len(transactions)} transactions')

        ctx.result = StatementResult(
            account_info=ctx.account_info,
            date_range=date_range,
            transactions=transactions,
            summary=summary,
            quality=ctx.quality,
            file_name=ctx.document.filename,
            file_hash=ctx.document.sha256,
        )
        return PipelineState.DONE

    # ------------------------------------------------------------------

    @staticmethod
    def _merge_account_info(heuristic: AccountInfo, structured: StructuredAccountInfo) -> AccountInfo:
        return AccountInfo(
            account_number=str(structured.account_number or "").strip() or heuristic.account_number,
            holder_name=str(structured.account_holder or "").strip() or heuristic.holder_name,
            bank_name=str(structured.bank_name or "").strip() or heuristic.bank_name,
        )

    @staticmethod
    def _report(progress: Optional[ProgressCallback], state: PipelineState):
        if progress is None:
            return
        percent, message = _PROGRESS[state]
        progress(percent, message)

