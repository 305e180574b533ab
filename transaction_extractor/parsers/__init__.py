"""Payment receipt parsing: provider detection, routing and extractors.

- detect: provider and document-type classification
- router: ReceiptParserRouter (provider extractor with generic fallback)
- jazzcash, easypaisa, meezan, alfalah: provider-specific extractors
- generic: position-based fallback extractor
- roles: from/to role-assignment policy
- fields: provider-independent field scanners
"""

__all__ = [
    "ReceiptParserRouter",
    "ProviderDetector",
    "detect_document_type",
]

from .detect import ProviderDetector, detect_document_type
from .router import ReceiptParserRouter
