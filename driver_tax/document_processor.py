"""Run documents through classification, extraction, validation and categorization."""

import logging
import os
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .categorizer import categorize
from .classifier import classify
from .config_loader import EngineConfig
from .document_parser import DocumentParser
from .extractor import extract
from .models import DocumentType, ProcessingResult, ValidationReport
from .patterns import PatternRegistry, build_default_registry
from .validator import is_duplicate, validate

logger = logging.getLogger(__name__)

BatchItem = Union[str, Tuple[str, str]]  # text, or (text, filename)


class DocumentProcessor:
    """Classify, extract, validate and categorize tax documents."""

    def __init__(self, registry: Optional[PatternRegistry] = None,
                 config: Optional[EngineConfig] = None,
                 parser: Optional[DocumentParser] = None):
        """
        Initialize the processor.

        Args:
            registry: Pattern registry; the default one is built when omitted
            config: Thresholds and business-use overrides
            parser: File parser used by process_file
        """
        self.registry = registry or build_default_registry()
        self.config = config or EngineConfig()
        self._parser = parser

    @property
    def parser(self) -> DocumentParser:
        if self._parser is None:
            self._parser = DocumentParser()
        return self._parser

    def process_text(self, text: str, document_type: Optional[DocumentType] = None,
                     filename: str = "") -> ProcessingResult:
        """
        Process one document's text.

        Args:
            text: Raw or OCR'd document text
            document_type: Known type; skips classification when given
            filename: Original file name, used as a classification hint

        Returns:
            ProcessingResult; success is False for unrecognized or invalid documents
        """
        if not isinstance(text, str):
            raise TypeError(f"Document text must be a string, got {type(text).__name__}")

        if not text.strip():
            return ProcessingResult(
                success=False,
                document_type=DocumentType.UNKNOWN,
                error="Could not classify document: no text found",
                source_file=filename,
            )

        if document_type is None:
            classification = classify(text, self.registry, filename)
            document_type = classification.document_type
            confidence = classification.confidence
            if confidence <= self.config.min_confidence:
                document_type = DocumentType.UNKNOWN
        else:
            confidence = 100

        if document_type is DocumentType.UNKNOWN:
            return ProcessingResult(
                success=False,
                document_type=DocumentType.UNKNOWN,
                confidence=0,
                error="Could not classify document. Please ensure it is a supported tax slip, "
                      "platform summary or receipt.",
                source_file=filename,
            )

        extraction = extract(text, document_type, self.registry)
        field_confidence = 0
        if extraction.total_fields:
            field_confidence = round(100 * extraction.fields_found / extraction.total_fields)

        validation = validate(extraction.fields, document_type, self.config, self.registry)
        result = ProcessingResult(
            success=validation.is_valid,
            document_type=document_type,
            confidence=confidence,
            fields=extraction.fields,
            field_confidence=field_confidence,
            validation=validation,
            source_file=filename,
        )
        if not validation.is_valid:
            result.error = "; ".join(validation.errors)
            return result

        result.category = categorize(document_type, extraction.fields, config=self.config)
        logger.debug("%s: %s (%d%%), %d fields", filename or "<text>",
                     document_type.value, confidence, extraction.fields_found)
        return result

    def process_file(self, file_path: str) -> ProcessingResult:
        """Parse a file from disk and process its text."""
        parsed = self.parser.parse(file_path)
        return self.process_text(parsed.text_content, filename=os.path.basename(file_path))

    def _failure(self, error: Exception, filename: str) -> ProcessingResult:
        return ProcessingResult(
            success=False,
            document_type=DocumentType.UNKNOWN,
            validation=ValidationReport(errors=[str(error)]),
            error=f"Processing error: {error}",
            source_file=filename,
        )

    def _flag_duplicates(self, results: Sequence[ProcessingResult]) -> None:
        seen = {}
        for result in results:
            if not result.success:
                continue
            earlier = seen.setdefault(result.document_type, [])
            if is_duplicate(result.fields, earlier, result.document_type):
                result.validation.warn("Possible duplicate of an earlier document", 10)
            earlier.append(result.fields)

    def process_batch(self, items: Iterable[BatchItem]) -> List[ProcessingResult]:
        """
        Process several documents; one failing document does not stop the rest.

        Args:
            items: Document texts, or (text, filename) pairs

        Returns:
            One ProcessingResult per item, in input order
        """
        results = []
        for item in items:
            filename = ""
            try:
                text, filename = (item, "") if isinstance(item, str) else item
                results.append(self.process_text(text, filename=filename))
            except (TypeError, ValueError) as e:
                print(f"Could not process {filename or 'document'}: {e}")
                results.append(self._failure(e, filename))
        self._flag_duplicates(results)
        return results

    def process_files(self, file_paths: Iterable[str]) -> List[ProcessingResult]:
        """Process files from disk, isolating failures per file."""
        results = []
        for file_path in file_paths:
            filename = os.path.basename(file_path)
            try:
                result = self.process_file(file_path)
            except (OSError, TypeError, ValueError) as e:
                print(f"Could not process {filename}: {e}")
                result = self._failure(e, filename)
            else:
                if result.success:
                    print(f"Extracted {result.document_type.value} from {filename}")
                else:
                    print(f"Could not extract data from {filename}: {result.error}")
            results.append(result)
        self._flag_duplicates(results)
        return results
