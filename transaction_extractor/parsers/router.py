"""Receipt parser router.

Classifies the issuing provider, fills the provider-independent fields, then
hands the record to the provider's extractor. Unknown providers, transfer
schemes without a dedicated extractor, and extractors that fail all end up
in the generic position-based extractor.
"""
import logging
from functools import partial
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..config import ExtractionSettings, KeywordTables, get_keyword_tables
from ..models import Line, PaymentReceiptRecord
from ..utils import join_lines
from .alfalah import parse_alfalah
from .detect import ProviderDetector, UNKNOWN_PROVIDER
from .easypaisa import parse_easypaisa
from .fields import extract_common_fields, find_total
from .generic import parse_generic_receipt
from .jazzcash import parse_jazzcash
from .meezan import parse_meezan

logger = logging.getLogger(__name__)

GENERIC_PARSER = "generic"

ReceiptParser = Callable[..., PaymentReceiptRecord]


class ReceiptParserRouter:
    """Select and run the best receipt extractor for a document."""

    def __init__(self, tables: Optional[KeywordTables] = None,
                 settings: Optional[ExtractionSettings] = None, debug: bool = False):
        self.settings = settings or ExtractionSettings()
        self.tables = tables or get_keyword_tables(self.settings)
        self.debug = debug
        self.detector = ProviderDetector(self.tables, debug=debug)
        self.parser_registry: Dict[str, ReceiptParser] = {
            "JazzCash": parse_jazzcash,
            "EasyPaisa": parse_easypaisa,
            "Meezan Bank": parse_meezan,
            "Alfalah Bank": parse_alfalah,
            GENERIC_PARSER: partial(parse_generic_receipt, tables=self.tables),
        }

    def parse(self, lines: Sequence[Line]) -> Tuple[PaymentReceiptRecord, Dict[str, Any]]:
        """
        Extract a payment receipt.

        Returns:
            Tuple of (record, parsing_info)
        """
        lines = list(lines or [])
        parsing_info: Dict[str, Any] = {
            "provider_detected": None,
            "parser_used": None,
            "confidence": 0.0,
            "fallback_used": False,
            "errors": [],
        }

        try:
            provider = self.detector.detect_detailed(lines)
            parsing_info["provider_detected"] = provider.label
            parsing_info["confidence"] = provider.confidence
            service = provider.label
        except Exception as e:
            logger.exception("Provider detection failed")
            parsing_info["errors"].append(f"Provider detection failed: {str(e)}")
            service = UNKNOWN_PROVIDER

        parser_name = service if service in self.parser_registry else GENERIC_PARSER
        if self.debug:
            logger.info(f"Routing {service!r} receipt to parser {parser_name!r}")

        record = self._run(parser_name, service, lines, parsing_info)
        if record is None and parser_name != GENERIC_PARSER:
            parsing_info["fallback_used"] = True
            record = self._run(GENERIC_PARSER, service, lines, parsing_info)
        if record is None:
            # even the generic extractor failed: return the bare common fields
            record = self._common_record(service, lines, parsing_info)
            parsing_info["parser_used"] = "common_fields_only"
        return record, parsing_info

    def _common_record(self, service: str, lines: Sequence[Line],
                       parsing_info: Dict[str, Any]) -> PaymentReceiptRecord:
        record = PaymentReceiptRecord(service=service, currency=self.settings.default_currency)
        try:
            extract_common_fields(lines, record, self.tables, self.settings.default_currency)
        except Exception as e:
            logger.exception("Common field extraction failed")
            parsing_info["errors"].append(f"Common field extraction failed: {str(e)}")
        return record

    def _run(self, parser_name: str, service: str, lines: Sequence[Line],
             parsing_info: Dict[str, Any]) -> Optional[PaymentReceiptRecord]:
        record = self._common_record(service, lines, parsing_info)
        try:
            record = self.parser_registry[parser_name](lines, record, debug=self.debug)
            record.total_amount = find_total(join_lines(lines), record.amount, record.fee)
        except Exception as e:
            logger.exception(f"Receipt parser {parser_name} failed")
            parsing_info["errors"].append(f"Parser {parser_name} failed: {str(e)}")
            return None
        parsing_info["parser_used"] = parser_name
        return record


def parse_receipt_lines(lines: Sequence[Line], tables: Optional[KeywordTables] = None,
                        debug: bool = False) -> Tuple[PaymentReceiptRecord, Dict[str, Any]]:
    """Convenience wrapper around ``ReceiptParserRouter``."""
    router = ReceiptParserRouter(tables=tables, debug=debug)
    return router.parse(lines)
