"""Sanity checks on extracted fields.

Errors mark a field map as unusable (negative money, a T4 or RL-1 without
employment income). Everything else that looks odd but can legitimately
happen in OCR output, such as a zero-activity week or a year outside the
expected window, is reported as a warning.
"""

import re
from collections.abc import Mapping
from typing import Optional

from .config_loader import EngineConfig
from .models import DocumentType, ExtractedFields, ValidationReport
from .patterns import PatternRegistry, default_registry

SLIP_TYPES = {DocumentType.T4, DocumentType.T4A, DocumentType.RL1, DocumentType.RL2}
PLATFORM_TYPES = {DocumentType.UBER_SUMMARY, DocumentType.LYFT_SUMMARY, DocumentType.TAXI_STATEMENT}
RECEIPT_TYPES = {
    DocumentType.GAS_RECEIPT, DocumentType.MAINTENANCE_RECEIPT, DocumentType.INSURANCE_RECEIPT,
    DocumentType.PARKING_RECEIPT, DocumentType.PHONE_BILL, DocumentType.MEAL_RECEIPT,
}

# Income fields looked at for the zero-activity warning
GROSS_FIELDS = ('gross_fares', 'gross_income')
SECONDARY_FIELDS = ('uber_eats_fares',)
NET_FIELDS = ('net_earnings', 'net_income')
ACTIVITY_FIELDS = GROSS_FIELDS + SECONDARY_FIELDS + NET_FIELDS + ('tips',)
YEAR_FIELDS = ('year', 'period')
SLIP_DEDUCTIONS = ('cpp', 'qpp', 'ei', 'income_tax', 'ppip')
FEE_FIELDS = ('service_fees', 'dispatch_fees')

# Slips that cannot be used without their employment income box
REQUIRED_INCOME_BOX = {
    DocumentType.T4: "Box 14",
    DocumentType.RL1: "Box A",
}
MAX_EMPLOYMENT_INCOME = 500_000.0

# 2025 maximum employee contributions (CPP/QPP include the second additional contribution)
CONTRIBUTION_MAXIMUMS = {
    'cpp': (4_430.10, "CPP contribution seems high"),
    'qpp': (4_735.20, "QPP contribution seems high"),
    'ei': (1_077.48, "EI premium seems high"),
    'ppip': (484.12, "PPIP premium seems high"),
}

RECEIPT_DATE_FIELDS = ('date', 'billing_period', 'effective_date')
VENDOR_FIELDS = ('vendor', 'provider', 'location')

# Expense category per receipt type, for the ceiling lookup
RECEIPT_CATEGORY = {
    DocumentType.GAS_RECEIPT: 'vehicle_fuel',
    DocumentType.MAINTENANCE_RECEIPT: 'vehicle_maintenance',
    DocumentType.INSURANCE_RECEIPT: 'vehicle_insurance',
    DocumentType.PARKING_RECEIPT: 'parking',
    DocumentType.PHONE_BILL: 'communication',
    DocumentType.MEAL_RECEIPT: 'meals_entertainment',
}

ZERO_ACTIVITY_WARNING = "All fields are zero - this might be an inactive period or incomplete document"


def _number(fields: ExtractedFields, name: str) -> Optional[float]:
    value = fields.get(name)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def _first_number(fields: ExtractedFields, names) -> Optional[float]:
    for name in names:
        value = _number(fields, name)
        if value is not None:
            return value
    return None


def _is_annual(fields: ExtractedFields) -> bool:
    """Annual tax summaries report their period as a bare year."""
    return bool(re.fullmatch(r"\d{4}", str(fields.get('period', ''))))


def _check_year(fields: ExtractedFields, config: EngineConfig, report: ValidationReport):
    low, high = config.year_window
    for name in YEAR_FIELDS:
        if name not in fields:
            continue
        match = re.search(r"\d{4}", str(fields[name]))
        if not match:
            continue
        year = int(match.group(0))
        if year < low or year > high:
            report.warn(f"Year {year} seems outside reasonable range ({low}-{high})", 15)
        return


def _check_platform(fields: ExtractedFields, config: EngineConfig, report: ValidationReport):
    gross = _first_number(fields, GROSS_FIELDS)
    net = _first_number(fields, NET_FIELDS)
    distance = _number(fields, 'distance') or 0.0
    annual = _is_annual(fields)

    present = [_number(fields, name) for name in ACTIVITY_FIELDS if name in fields]
    if present and all(v == 0 for v in present if v is not None) \
            and distance <= config.inactive_distance_km:
        report.warn(ZERO_ACTIVITY_WARNING, 30)
    elif gross and gross > config.max_period_earnings and not annual:
        report.warn("Weekly/monthly earnings seem unusually high", 10)

    if gross and gross > 0 and net is not None and net > gross:
        report.warn(f"Net amount {net:.2f} exceeds gross amount {gross:.2f}", 30)

    if distance > config.max_period_distance_km and not annual:
        report.warn("Distance seems unreasonable for a weekly/monthly period", 10)

    fees = _first_number(fields, FEE_FIELDS)
    earnings = (gross or 0.0) + (_number(fields, 'tips') or 0.0) + (_number(fields, 'tolls') or 0.0)
    if fees and fees > earnings:
        report.warn(f"Platform fees {fees:.2f} exceed earnings {earnings:.2f}", 10)


def _check_slip(fields: ExtractedFields, document_type: DocumentType, report: ValidationReport):
    box = REQUIRED_INCOME_BOX.get(document_type)
    income = _first_number(fields, ('employment_income', 'pension', 'qpp_benefits'))
    if box is not None:
        income = _number(fields, 'employment_income')
        if not income or income <= 0:
            report.fail(f"Employment income ({box}) is required and must be positive", 50)
        elif income > MAX_EMPLOYMENT_INCOME:
            report.warn("Employment income seems unusually high", 10)
    if not income:
        return

    deductions = sum(_number(fields, name) or 0.0 for name in SLIP_DEDUCTIONS)
    if deductions > income * 0.5:
        report.warn("Total deductions exceed 50% of employment income", 15)

    for name, (limit, message) in CONTRIBUTION_MAXIMUMS.items():
        value = _number(fields, name)
        if value and value > limit:
            report.warn(message, 5)


def _check_receipt(fields: ExtractedFields, document_type: DocumentType,
                   config: EngineConfig, report: ValidationReport):
    amount = _number(fields, 'amount')
    if amount is None:
        report.warn("No amount found", 50)
    else:
        category = RECEIPT_CATEGORY[document_type]
        ceiling = config.expense_ceilings.get(category)
        if ceiling is not None and amount > ceiling:
            report.warn(f"Large expense: ${amount:,.2f} exceeds the usual ${ceiling:,.2f} for {category}", 10)

    if not any(fields.get(name) for name in RECEIPT_DATE_FIELDS):
        report.warn("No date found on receipt", 20)
    if not any(fields.get(name) for name in VENDOR_FIELDS):
        report.warn("No vendor information found", 10)


def validate(fields: ExtractedFields, document_type: DocumentType,
             config: Optional[EngineConfig] = None,
             registry: Optional[PatternRegistry] = None) -> ValidationReport:
    """
    Check an extracted field map for its document type.

    Args:
        fields: Field map produced by the extractor
        document_type: Type the fields were extracted for
        config: Thresholds (year window, inactive distance, expense ceilings)
        registry: Registry used to find which fields are monetary

    Returns:
        ValidationReport. Negative money and a T4/RL-1 without employment
        income are errors, the rest are warnings. Each finding lowers the
        report's confidence from 100.

    Raises:
        TypeError: if fields is not a mapping.
    """
    if not isinstance(fields, Mapping):
        raise TypeError(f"Extracted fields must be a mapping, got {type(fields).__name__}")
    config = config or EngineConfig()
    registry = registry or default_registry()
    report = ValidationReport()

    pattern = registry.get(document_type)
    monetary = set(pattern.monetary_fields) if pattern else set()
    for name in sorted(monetary):
        value = _number(fields, name)
        if value is not None and value < 0:
            report.fail(f"{name} cannot be negative ({value:.2f})", 50)

    _check_year(fields, config, report)
    if document_type in PLATFORM_TYPES:
        _check_platform(fields, config, report)
    elif document_type in SLIP_TYPES:
        _check_slip(fields, document_type, report)
    elif document_type in RECEIPT_TYPES:
        _check_receipt(fields, document_type, config, report)
    return report


def _same(a: Mapping, b: Mapping, name: str) -> bool:
    return name in a and name in b and a[name] == b[name]


def is_duplicate(fields: ExtractedFields, existing: list, document_type: DocumentType) -> bool:
    """
    True when an already-recorded entry has the same key fields.

    Slips match on employer, year and income; platform summaries on period,
    or on start/end dates plus gross fares; receipts on date, amount and vendor.

    Raises:
        TypeError: if existing is not a list.
    """
    if not isinstance(existing, list):
        raise TypeError(f"Existing entries must be a list, got {type(existing).__name__}")
    if not isinstance(fields, Mapping):
        raise TypeError(f"Extracted fields must be a mapping, got {type(fields).__name__}")

    for entry in existing:
        if document_type in SLIP_TYPES:
            income = 'employment_income' if 'employment_income' in fields else 'pension'
            if all(_same(entry, fields, n) for n in (income, 'year')) \
                    and entry.get('employer_name') == fields.get('employer_name'):
                return True
        elif document_type in (DocumentType.UBER_SUMMARY, DocumentType.LYFT_SUMMARY):
            if _same(entry, fields, 'period'):
                return True
            if all(_same(entry, fields, n) for n in ('start_date', 'end_date', 'gross_fares')):
                return True
        else:
            if _same(entry, fields, 'date') and _same(entry, fields, 'amount') \
                    and entry.get('vendor') == fields.get('vendor'):
                return True
    return False
