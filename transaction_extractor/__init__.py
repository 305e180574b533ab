"""Adaptive transaction extraction from OCR text.

This package provides:
- DocumentExtractor: pipeline orchestrator for statements and receipts
- patterns: regex token extraction with fixed confidence scores
- segmentation: boundary, proximity and receipt-section strategies
- reconstruction: per-boundary field selection and account repair
- parsers: payment receipt provider detection and extractors
- analysis: summary aggregation
"""

__all__ = [
    "DocumentExtractor",
    "parse_bank_statement",
    "parse_payment_receipt",
    "parse_document",
    "ExtractionSettings",
]

from .config import ExtractionSettings
from .extractor import DocumentExtractor, parse_bank_statement, parse_document, parse_payment_receipt
