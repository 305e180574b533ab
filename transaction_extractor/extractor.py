"""Document extraction orchestrator.

Runs OCR text through the pipeline: lines, pattern tokens, segmentation,
field reconstruction and aggregation for bank statements; provider routing
for payment receipts.
"""
import logging
from typing import Any, Dict, Optional, Tuple, Union

from .analysis import calculate_summary
from .config import ExtractionSettings, get_keyword_tables
from .models import PaymentReceiptRecord, StatementResult
from .parsers.detect import BANK_STATEMENT, MOBILE_PAYMENT, detect_document_type
from .parsers.router import ReceiptParserRouter
from .patterns import PatternExtractor
from .reconstruction import AmountPolicy, TransactionBuilder, extract_account_info
from .segmentation import SegmentationStrategy, get_segmenter
from .utils import split_lines

logger = logging.getLogger(__name__)

DOCUMENT_TYPE_ALIASES = {
    "statement": BANK_STATEMENT,
    BANK_STATEMENT: BANK_STATEMENT,
    "receipt": MOBILE_PAYMENT,
    MOBILE_PAYMENT: MOBILE_PAYMENT,
}


class DocumentExtractor:
    """Extracts structured records from one OCR document at a time.

    Instances hold configuration only; no per-document state is kept between
    calls, so one instance can serve several threads.
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None, debug: bool = False):
        self.settings = settings or ExtractionSettings()
        self.debug = debug
        self.tables = get_keyword_tables(self.settings)
        self.policy = AmountPolicy(self.settings.thresholds)
        self.pattern_extractor = PatternExtractor(self.tables, debug=debug)
        self.builder = TransactionBuilder(self.policy, self.settings.segmentation, debug=debug)
        self.router = ReceiptParserRouter(self.tables, self.settings, debug=debug)

    @property
    def segmenter(self) -> SegmentationStrategy:
        return get_segmenter(
            self.settings.segmentation.strategy,
            policy=self.policy,
            settings=self.settings.segmentation,
            tables=self.tables,
            debug=self.debug,
        )

    def extract_bank_statement(self, text: Optional[str]) -> StatementResult:
        text = text or ""
        lines = split_lines(text)
        tokens = self.pattern_extractor.extract(lines)
        boundaries = self.segmenter.segment(lines, tokens)

        transactions = []
        for boundary in boundaries:
            txn = self.builder.build(boundary, lines)
            if txn is not None:
                transactions.append(txn)

        account_info = extract_account_info(
            lines, tokens, self.tables, self.settings.segmentation,
            default_currency=self.settings.default_currency, debug=self.debug,
        )
        summary = calculate_summary(transactions, debug=self.debug)

        if self.debug:
            logger.info(f"Statement: {len(lines)} lines, {len(boundaries)} boundaries, "
                        f"{len(transactions)} transactions")
        return StatementResult(account_info=account_info, transactions=transactions,
                               summary=summary, raw_text=text)

    def extract_payment_receipt_detailed(self, text: Optional[str]
                                         ) -> Tuple[PaymentReceiptRecord, Dict[str, Any]]:
        """
        Extract a payment receipt together with the router's diagnostics.

        Returns:
            Tuple of (record, parsing_info)
        """
        record, parsing_info = self.router.parse(split_lines(text))
        if parsing_info["errors"]:
            logger.warning(f"Receipt parsed with errors: {parsing_info['errors']}")
        return record, parsing_info

    def extract_payment_receipt(self, text: Optional[str]) -> PaymentReceiptRecord:
        record, _ = self.extract_payment_receipt_detailed(text)
        return record

    def extract(self, text: Optional[str], document_type: str = "auto"
                ) -> Tuple[str, Union[StatementResult, PaymentReceiptRecord]]:
        """Extract either document type; 'auto' classifies the text first."""
        if document_type == "auto":
            doc_type = detect_document_type(text or "", self.tables)
        else:
            try:
                doc_type = DOCUMENT_TYPE_ALIASES[document_type]
            except KeyError:
                raise ValueError(f"Unknown document type: {document_type!r}") from None

        if self.debug:
            logger.info(f"Extracting as {doc_type}")
        if doc_type == MOBILE_PAYMENT:
            return doc_type, self.extract_payment_receipt(text)
        return doc_type, self.extract_bank_statement(text)


def parse_bank_statement(text: Optional[str], settings: Optional[ExtractionSettings] = None,
                         debug: bool = False) -> Dict[str, Any]:
    """``{accountInfo, transactions, summary, rawText}`` for statement OCR text."""
    return DocumentExtractor(settings, debug=debug).extract_bank_statement(text).to_dict()


def parse_payment_receipt(text: Optional[str], settings: Optional[ExtractionSettings] = None,
                          debug: bool = False) -> Dict[str, Any]:
    """Flat PaymentReceiptRecord dict for receipt OCR text."""
    return DocumentExtractor(settings, debug=debug).extract_payment_receipt(text).to_dict()


def parse_document(text: Optional[str], document_type: str = "auto",
                   settings: Optional[ExtractionSettings] = None, debug: bool = False) -> Dict[str, Any]:
    doc_type, result = DocumentExtractor(settings, debug=debug).extract(text, document_type)
    return {"documentType": doc_type, "data": result.to_dict()}
