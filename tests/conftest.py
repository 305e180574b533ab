import os
import sys

import pytest

# Make the package importable without installation
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from transaction_extractor.config import (  # noqa: E402
    AmountThresholds,
    ExtractionSettings,
    SegmentationSettings,
    load_keyword_tables,
)
from transaction_extractor.patterns import PatternExtractor  # noqa: E402
from transaction_extractor.utils import split_lines  # noqa: E402


STATEMENT_TEXT = """\
MEEZAN BANK LIMITED
Account Statement
Account Title: ALI KHAN
Account No: PK36MEZN0001234567890123
Currency: PKR
From Date: 01-Sep-2025
To Date: 30-Sep-2025
Txn. Date Value Date Txn. Type Withdrawal Deposit Balance
03-Sep-2025
03-Sep-2025
RAAST Incoming Transfer
Ref:90011
63,024.00
0.00
1,263,024.00
12-Sep-2025
12-Sep-2025
IBFT
FT25091XYZ
4,400.00
0
1,267,424.00
PKS4BAHLO109
182200624801
"""

JAZZCASH_TEXT = """\
JazzCash
Money has been sent
Rs. 1,500
To
SARA BUTT
03011234567
From
ALI KHAN
03217654321
On September 27, 2025 at 10:45 PM
TID: 123456789
Fee Rs. 0.00
Total Amount Rs. 1,500
"""

EASYPAISA_TEXT = """\
easypaisa
Transaction Successful
ID#987654321
Amount
2500.00
Sent to
ZAIN ALI
03451234567
Sent by
HINA RAZA
PK*****1234
27/09/2025 11:30
"""

MEEZAN_TEXT = """\
Meezan Bank
Transferred Successfully
PKR 10,000
TA
USMAN TARIQ
02010101234567
Current Account
02040103793896
AYESHA NOOR
"""

ALFALAH_TEXT = """\
Bank Alfalah
Best Bank
Transaction Successful
Ref#556677
30-Sep-2025 07:43 PM
PKR 7,250
Transaction type
FATIMA SHAH
***1234
Others
FATIMA SHAH
****5678
BILAL AHMED
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TXN_WITHDRAWAL_CEILING", "TXN_DEPOSIT_FLOOR", "TXN_BALANCE_FLOOR",
                 "TXN_SEGMENTATION", "TXN_MIN_SEPARATION", "TXN_CLUSTER_RADIUS",
                 "TXN_START_CONFIDENCE", "TXN_KEYWORDS_FILE", "TXN_DEFAULT_CURRENCY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tables():
    return load_keyword_tables()


@pytest.fixture
def thresholds():
    return AmountThresholds(withdrawal_ceiling=0.0, deposit_floor=1000.0, balance_floor=1_000_000.0)


@pytest.fixture
def settings(thresholds):
    return ExtractionSettings(thresholds=thresholds, segmentation=SegmentationSettings(strategy="boundary"))


@pytest.fixture
def pattern_extractor(tables):
    return PatternExtractor(tables)


@pytest.fixture
def statement_lines():
    return split_lines(STATEMENT_TEXT)


@pytest.fixture
def statement_tokens(pattern_extractor, statement_lines):
    return pattern_extractor.extract(statement_lines)
