"""
Report Generator
Generates CSV/JSON output and spreadsheet-ready sheet data
"""

import logging
import json
import csv
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime

from ..models.statement import StatementResult

logger = logging.getLogger(__name__)

SHEET_HEADERS = ['Date', 'Description', 'Amount', 'Balance', 'Type', 'Category', 'Notes']


class ReportGenerator:
    """
    Report Generator: Creates output files

    Outputs:
    1. CSV with transaction data and summary rows
    2. JSON with the full statement result
    """

    def __init__(self, output_dir: str = './output'):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def _default_name(self, result: StatementResult, suffix: str) -> str:
        stem = (result.file_hash[:12] or Path(result.file_name).stem or 'statement')
        return f"{stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.{suffix}"

    def generate_csv(self, result: StatementResult, filename: Optional[str] = None) -> str:
        """
        Generate CSV file from a statement result

        Returns:
            Path to generated CSV file
        """
        if filename is None:
            filename = self._default_name(result, 'csv')

        output_path = self.output_dir / filename

        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)

            writer.writerow(SHEET_HEADERS[:5])
            for row in self.sheet_rows(result):
                writer.writerow(row[:5])

            summary = result.summary.to_dict()
            writer.writerow([])
            writer.writerow(['Summary'])
            writer.writerow(['Total Credits', '', summary['total_credits']])
            writer.writerow(['Total Debits', '', summary['total_debits']])
            writer.writerow(['Transaction Count', '', summary['transaction_count']])
            if result.quality.synthetic:
                writer.writerow(['Note', 'Sample data: no transactions were recognised in the document'])

        logger.info(f"CSV file generated: {output_path}")
        return str(output_path)

    def generate_json(self, result: StatementResult, filename: Optional[str] = None) -> str:
        """
        Generate JSON file holding the full result

        Returns:
            Path to generated JSON file
        """
        if filename is None:
            filename = self._default_name(result, 'json')

        output_path = self.output_dir / filename
        payload = result.to_dict()
        payload['generated_at'] = datetime.now().isoformat()

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

        logger.info(f"JSON report generated: {output_path}")
        return str(output_path)

    @staticmethod
    def sheet_rows(result: StatementResult) -> List[List[Any]]:
        rows = []
        for txn in result.transactions:
            data = txn.to_dict()
            rows.append([
                data['date'],
                data['description'],
                data['amount'],
                data['balance'] if data['balance'] is not None else '',
                data['type'],
                '',  # Category is filled in during analysis
                ''   # Notes for the user
            ])
        return rows

    @staticmethod
    def build_sheets(result: StatementResult) -> Dict[str, Any]:
        """Spreadsheet structure consumed by the export UI"""
        account = result.account_info.to_dict()
        return {
            'sheets': [{
                'name': 'Transactions',
                'headers': list(SHEET_HEADERS),
                'data': ReportGenerator.sheet_rows(result),
            }],
            'metadata': {
                'totalTransactions': result.summary.transaction_count,
                'dateRange': {
                    'start': result.date_range.start.isoformat(),
                    'end': result.date_range.end.isoformat(),
                },
                'accountInfo': {
                    'accountNumber': account['account_number'],
                    'accountHolder': account['account_holder'],
                    'bankName': account['bank_name'],
                },
                'synthetic': result.quality.synthetic,
            },
        }

    def generate_summary_report(self, result: StatementResult) -> str:
        """
        Generate human-readable summary report

        Returns:
            Formatted text report
        """
        quality = result.quality
        lines = []
        lines.append("=" * 80)
        lines.append("BANK STATEMENT EXTRACTION REPORT")
        lines.append("=" * 80)
        lines.append(f"File: {result.file_name}")
        lines.append(f"Source: {quality.source}")
        lines.append(
            f"Confidence Score: {quality.confidence:.1%} ({quality.confidence_label})"
        )
        if quality.synthetic:
            lines.append("WARNING: no transactions recognised; rows are sample data")
        lines.append("")

        lines.append("STAGES")
        lines.append("-" * 80)
        for stage in quality.stages:
            detail = f" - {stage.detail}" if stage.detail else ""
            lines.append(f"  {stage.stage}: {stage.outcome}{detail}")
        lines.append("")

        summary = result.summary.to_dict()
        lines.append("STATISTICS")
        lines.append("-" * 80)
        lines.append(f"Total Transactions: {summary['transaction_count']}")
        lines.append(f"Total Credits: {summary['total_credits']:.2f}")
        lines.append(f"Total Debits: {summary['total_debits']:.2f}")
        lines.append(f"Anchor Balance: {quality.anchor_balance} ({quality.anchor_source})")
        lines.append("")

        if quality.violations:
            lines.append("RULE VIOLATIONS")
            lines.append("-" * 80)
            for violation in quality.violations[:10]:  # Limit to 10
                lines.append(f"  [{violation.severity}] Row {violation.row}: {violation.message}")
            if len(quality.violations) > 10:
                lines.append(f"  ... and {len(quality.violations) - 10} more violations")
            lines.append("")

        lines.append("=" * 80)

        return '\n'.join(lines)
