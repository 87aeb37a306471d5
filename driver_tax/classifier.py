"""Score raw document text against every registered document type."""

import logging
import re
from typing import Dict, Optional

from .models import ClassificationResult, DocumentType, DocumentTypePattern
from .patterns import PatternRegistry, default_registry

logger = logging.getLogger(__name__)

# Weight added when the file name names the document type
FILENAME_HINT_WEIGHT = 1


def confidence_score(matched_weight: int, total_weight: int) -> int:
    """Convert matched/total matcher weight into a 0-100 confidence."""
    if total_weight <= 0 or matched_weight <= 0:
        return 0
    score = round(100 * matched_weight / total_weight)
    return max(0, min(100, score))


def _hint_names(document_type: DocumentType):
    name = document_type.value.lower()
    return {name.replace('-', '_'), name.replace('-', '').replace('_', '')}


def filename_hint(filename: str, document_type: DocumentType) -> bool:
    """True when the file name mentions the type, e.g. 'uber_summary_2024.pdf'."""
    if not filename:
        return False
    lowered = filename.lower().replace('-', '_')
    for name in _hint_names(document_type):
        if re.search(r"(?<![a-z0-9])" + re.escape(name) + r"(?![a-z0-9])", lowered):
            return True
    return False


def matched_weight(text: str, pattern: DocumentTypePattern) -> int:
    """Sum the weights of the type's phrases present in the text."""
    return sum(m.weight for m in pattern.matchers if m.regex.search(text))


def score_all(text: str, registry: Optional[PatternRegistry] = None,
              filename: str = "") -> Dict[DocumentType, int]:
    """Confidence for every registered type, in registration order."""
    if not isinstance(text, str):
        raise TypeError(f"Document text must be a string, got {type(text).__name__}")
    registry = registry or default_registry()
    scores = {}
    if not text.strip():
        return {p.document_type: 0 for p in registry}
    for pattern in registry:
        weight = matched_weight(text, pattern)
        if filename_hint(filename, pattern.document_type):
            weight += FILENAME_HINT_WEIGHT
        scores[pattern.document_type] = confidence_score(weight, pattern.total_weight)
    return scores


def classify(text: str, registry: Optional[PatternRegistry] = None,
             filename: str = "") -> ClassificationResult:
    """Return the best-scoring document type, or UNKNOWN with confidence 0.

    Ties go to the type registered first.
    """
    scores = score_all(text, registry, filename)
    best_type, best_score = DocumentType.UNKNOWN, 0
    for document_type, score in scores.items():
        if score > best_score:
            best_type, best_score = document_type, score
    logger.debug("Classification scores: %s",
                 {t.value: s for t, s in scores.items() if s})
    return ClassificationResult(best_type, best_score)
