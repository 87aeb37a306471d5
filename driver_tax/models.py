"""Data models for tax document classification and extraction."""

import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, List, Optional, Tuple, Union
from enum import Enum


class DocumentType(Enum):
    """Document kinds the engine can recognize."""
    T4 = "T4"
    T4A = "T4A"
    RL1 = "RL-1"
    RL2 = "RL-2"
    UBER_SUMMARY = "UBER_SUMMARY"
    LYFT_SUMMARY = "LYFT_SUMMARY"
    TAXI_STATEMENT = "TAXI_STATEMENT"
    GAS_RECEIPT = "GAS_RECEIPT"
    MAINTENANCE_RECEIPT = "MAINTENANCE_RECEIPT"
    INSURANCE_RECEIPT = "INSURANCE_RECEIPT"
    PARKING_RECEIPT = "PARKING_RECEIPT"
    PHONE_BILL = "PHONE_BILL"
    MEAL_RECEIPT = "MEAL_RECEIPT"
    UNKNOWN = "UNKNOWN"


class FieldKind(Enum):
    """How a captured group is coerced."""
    NUMBER = "number"
    STRING = "string"
    YEAR = "year"


class RecordType(Enum):
    """Bucket a categorized document falls into."""
    INCOME = "income"
    EXPENSE = "expense"


# Extracted values are numbers (money, distance, counts) or strings
# (vendor, dates, 4-digit years).
FieldValue = Union[float, str]
ExtractedFields = Dict[str, FieldValue]


@dataclass(frozen=True)
class Matcher:
    """A case-insensitive classification phrase and its weight."""
    phrase: str
    weight: int = 1

    @cached_property
    def regex(self) -> "re.Pattern":
        # Whole-word match so that "t4" does not fire on "t4a"
        return re.compile(r"(?<!\w)" + re.escape(self.phrase) + r"(?!\w)", re.IGNORECASE)


@dataclass(frozen=True)
class ExtractionRule:
    """One phrasing of a field: a pattern plus the groups to try, in order."""
    field: str
    pattern: "re.Pattern"
    kind: FieldKind = FieldKind.NUMBER
    group_priority: Tuple[int, ...] = ()  # empty => all groups in order
    monetary: bool = False

    def groups_to_try(self) -> Tuple[int, ...]:
        if self.group_priority:
            return self.group_priority
        return tuple(range(1, self.pattern.groups + 1))


@dataclass(frozen=True)
class DocumentTypePattern:
    """Classification phrases and extraction rules for one document type."""
    document_type: DocumentType
    label: str
    matchers: Tuple[Matcher, ...]
    rules: Tuple[ExtractionRule, ...]

    @property
    def total_weight(self) -> int:
        return sum(m.weight for m in self.matchers)

    @property
    def field_names(self) -> Tuple[str, ...]:
        """Distinct field names in declaration order."""
        seen = []
        for rule in self.rules:
            if rule.field not in seen:
                seen.append(rule.field)
        return tuple(seen)

    @property
    def monetary_fields(self) -> Tuple[str, ...]:
        return tuple(
            name for name in self.field_names
            if any(r.monetary for r in self.rules if r.field == name)
        )

    def rules_for(self, field_name: str) -> Tuple[ExtractionRule, ...]:
        return tuple(r for r in self.rules if r.field == field_name)


@dataclass(frozen=True)
class ClassificationResult:
    """Best-matching document type and its confidence (0-100)."""
    document_type: DocumentType
    confidence: int = 0

    @property
    def is_unknown(self) -> bool:
        return self.document_type is DocumentType.UNKNOWN


@dataclass
class ExtractionResult:
    """Fields pulled out of a document."""
    document_type: DocumentType
    fields: ExtractedFields = field(default_factory=dict)
    total_fields: int = 0  # Distinct field names attempted

    @property
    def fields_found(self) -> int:
        return len(self.fields)


@dataclass
class ValidationReport:
    """Structural errors block use of a document; warnings are advisory."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    confidence: int = 100  # Lowered by each finding, never below 0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def fail(self, message: str, penalty: int = 0) -> None:
        self.errors.append(message)
        self.confidence = max(0, self.confidence - penalty)

    def warn(self, message: str, penalty: int = 0) -> None:
        self.warnings.append(message)
        self.confidence = max(0, self.confidence - penalty)


@dataclass
class CategorizedRecord:
    """An income or expense line derived from one document."""
    type: RecordType
    category: str
    amount: float = 0.0
    business_use_percent: float = 100.0
    deductible_amount: float = 0.0
    description: str = ""
    source: Optional[str] = None  # Platform or payer, e.g. "Uber"
    details: Dict[str, float] = field(default_factory=dict)
    document_type: Optional[DocumentType] = None
    issuer: str = ""  # Employer, vendor or provider named on the document

    @property
    def is_income(self) -> bool:
        return self.type is RecordType.INCOME


@dataclass
class ProcessingResult:
    """Outcome of running one document through the whole pipeline."""
    success: bool
    document_type: DocumentType
    confidence: int = 0
    fields: ExtractedFields = field(default_factory=dict)
    field_confidence: int = 0  # Share of attempted fields that were found
    validation: ValidationReport = field(default_factory=ValidationReport)
    category: Optional[CategorizedRecord] = None
    error: Optional[str] = None
    source_file: str = ""

    @property
    def warnings(self) -> List[str]:
        return self.validation.warnings
