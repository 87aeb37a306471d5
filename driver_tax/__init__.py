"""Classification and field extraction for Canadian rideshare/taxi driver tax documents.

Text goes through four stages: classify -> extract -> validate -> categorize.
DocumentProcessor runs them together; the stages are also usable one by one.
"""

from .categorizer import categorize
from .classifier import classify, confidence_score, score_all
from .document_processor import DocumentProcessor
from .extractor import coerce, extract
from .models import (
    CategorizedRecord, ClassificationResult, DocumentType, ExtractionResult,
    FieldKind, ProcessingResult, RecordType, ValidationReport,
)
from .patterns import PatternRegistry, build_default_registry
from .validator import is_duplicate, validate

__version__ = "0.1.0"
