"""Pull typed field values out of classified document text."""

import logging
import re
from typing import Optional

from .models import (
    DocumentType, DocumentTypePattern, ExtractedFields, ExtractionResult,
    ExtractionRule, FieldKind, FieldValue,
)
from .patterns import PatternRegistry, default_registry

logger = logging.getLogger(__name__)

# Currency markers stripped before parsing: "CA$", "CAD $", "$"
_CURRENCY = re.compile(r"(?:\b[A-Z]{2,3}\s?)?\$", re.IGNORECASE)
_YEAR_LIKE = re.compile(r"^\d{4}$")

# Platform summaries whose delivery section is folded into gross fares
SECONDARY_INCOME_FIELDS = {
    DocumentType.UBER_SUMMARY: ('gross_fares', 'uber_eats_fares'),
}


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace (OCR line breaks, tabs) to single spaces."""
    return re.sub(r"\s+", " ", text).strip()


def coerce(raw: Optional[str], kind: FieldKind) -> Optional[FieldValue]:
    """
    Convert a captured group to its field value.

    Args:
        raw: Captured text, possibly with currency markers and commas
        kind: Declared coercion for the field

    Returns:
        A float rounded to 2 decimals for numbers, the trimmed text for
        strings and years, or None when the capture is empty or not a number.
    """
    if raw is None:
        return None
    value = raw.strip()
    if not value:
        return None
    if kind is FieldKind.YEAR:
        if _YEAR_LIKE.match(value) and not 1900 <= int(value) <= 2100:
            return None
        return value
    if kind is FieldKind.STRING:
        return value

    clean = _CURRENCY.sub('', value).replace(',', '').strip()
    try:
        return round(float(clean), 2)
    except ValueError:
        return None


def apply_rule(text: str, rule: ExtractionRule) -> Optional[FieldValue]:
    """Value of the first non-empty group of the rule's first match, if any."""
    match = rule.pattern.search(text)
    if not match:
        return None
    for index in rule.groups_to_try():
        value = coerce(match.group(index), rule.kind)
        if value is not None:
            return value
    return None


def _without_section(text: str, pattern: DocumentTypePattern, field_name: str) -> str:
    """Text with the span matched by the field's first matching rule cut out."""
    for rule in pattern.rules_for(field_name):
        match = rule.pattern.search(text)
        if match:
            return text[:match.start()] + " " + text[match.end():]
    return text


def extract_with_pattern(text: str, pattern: DocumentTypePattern) -> ExtractionResult:
    """Run every field rule of one document type against the text.

    For platforms with a secondary income section, the primary field is
    read with that section removed, then the secondary amount is added.
    """
    text = normalize_whitespace(text)
    secondary = SECONDARY_INCOME_FIELDS.get(pattern.document_type)
    primary_text = text
    if secondary:
        primary_text = _without_section(text, pattern, secondary[1])

    fields: ExtractedFields = {}
    for name in pattern.field_names:
        source = primary_text if secondary and name == secondary[0] else text
        for rule in pattern.rules_for(name):
            value = apply_rule(source, rule)
            if value is not None:
                fields[name] = value
                break

    if secondary:
        primary_name, secondary_name = secondary
        if secondary_name in fields:
            primary = fields.get(primary_name, 0.0)
            fields[primary_name] = round(float(primary) + float(fields[secondary_name]), 2)

    logger.debug("Extracted %d of %d fields for %s", len(fields),
                 len(pattern.field_names), pattern.document_type.value)
    return ExtractionResult(pattern.document_type, fields, len(pattern.field_names))


def extract(text: str, document_type: DocumentType,
            registry: Optional[PatternRegistry] = None) -> ExtractionResult:
    """
    Extract the fields registered for a document type.

    Missing fields are left out of the map. UNKNOWN yields an empty map.
    """
    if not isinstance(text, str):
        raise TypeError(f"Document text must be a string, got {type(text).__name__}")
    if not isinstance(document_type, DocumentType):
        raise TypeError(f"Expected a DocumentType, got {document_type!r}")
    registry = registry or default_registry()
    pattern = registry.get(document_type)
    if pattern is None:
        return ExtractionResult(document_type)
    return extract_with_pattern(text, pattern)
