"""Command line entry point: OCR text file in, JSON out."""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from .config import SEGMENTATION_STRATEGIES, ExtractionSettings, SegmentationSettings
from .extractor import parse_document

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_HANDLER_MARK = "_transaction_extractor_console"


def setup_logging(debug: bool = False, log_file: Optional[str] = None) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    log_formatter = logging.Formatter(LOG_FORMAT)

    # repeated in-process calls reuse the handlers installed earlier
    console_handler = next(
        (h for h in root_logger.handlers if getattr(h, CONSOLE_HANDLER_MARK, False)), None)
    if console_handler is None:
        console_handler = logging.StreamHandler()
        setattr(console_handler, CONSOLE_HANDLER_MARK, True)
        console_handler.setFormatter(log_formatter)
        root_logger.addHandler(console_handler)
    else:
        console_handler.setStream(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)

    if log_file:
        path = os.path.abspath(log_file)
        attached = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == path for h in root_logger.handlers)
        if not attached:
            file_handler = logging.FileHandler(log_file, mode='a')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(log_formatter)
            root_logger.addHandler(file_handler)


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Extract transactions from OCR text of bank statements and payment receipts")
    p.add_argument("input", help="Input text file (OCR output)")
    p.add_argument("-o", "--output", help="Output JSON file (default: stdout)", default=None)
    p.add_argument("--type", dest="document_type", choices=["auto", "statement", "receipt"], default="auto",
                   help="Document type (default: detect from text)")
    p.add_argument("--strategy", choices=list(SEGMENTATION_STRATEGIES), default=None,
                   help="Statement segmentation strategy")
    p.add_argument("--debug", action="store_true", help="Verbose pipeline logging")
    p.add_argument("--log-file", default=None, help="Also write DEBUG logs to this file")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.debug, args.log_file)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        sys.exit(2)

    try:
        with open(args.input, "r", encoding="utf-8") as fh:
            text = fh.read()
    except UnicodeDecodeError as e:
        logger.error(f"Input file is not UTF-8 text: {e}")
        sys.exit(3)

    settings = ExtractionSettings()
    if args.strategy:
        settings.segmentation = SegmentationSettings(strategy=args.strategy)

    result = parse_document(text, args.document_type, settings=settings, debug=args.debug)
    payload = json.dumps(result, indent=2, ensure_ascii=False)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(payload)
        logger.info(f"Wrote {result['documentType']} result to {args.output}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
