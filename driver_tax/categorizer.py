"""Map validated document fields to an income or expense record."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config_loader import EngineConfig
from .models import CategorizedRecord, DocumentType, ExtractedFields, RecordType


@dataclass(frozen=True)
class CategoryRule:
    """Bucket, tag and deduction parameters for one document type."""
    type: RecordType
    category: str
    business_use_percent: float = 100.0
    deduction_rate: float = 1.0
    amount_fields: Tuple[str, ...] = ('amount',)  # Summed to form the record amount
    source: Optional[str] = None
    label: str = ""


CATEGORY_RULES: Dict[DocumentType, CategoryRule] = {
    DocumentType.T4: CategoryRule(RecordType.INCOME, 'employment_income',
                                  amount_fields=('employment_income',), label="Employment income"),
    DocumentType.RL1: CategoryRule(RecordType.INCOME, 'employment_income',
                                   amount_fields=('employment_income',), label="Employment income (RL-1)"),
    DocumentType.T4A: CategoryRule(RecordType.INCOME, 'other_income',
                                   amount_fields=('pension', 'lump_sum', 'self_employment_commissions'),
                                   label="Pension and other income"),
    DocumentType.RL2: CategoryRule(RecordType.INCOME, 'other_income',
                                   amount_fields=('qpp_benefits', 'old_age_security'),
                                   label="Retirement benefits (RL-2)"),
    DocumentType.UBER_SUMMARY: CategoryRule(RecordType.INCOME, 'rideshare_income',
                                            amount_fields=('gross_fares',), source="Uber",
                                            label="Uber earnings"),
    DocumentType.LYFT_SUMMARY: CategoryRule(RecordType.INCOME, 'rideshare_income',
                                            amount_fields=('gross_fares',), source="Lyft",
                                            label="Lyft earnings"),
    DocumentType.TAXI_STATEMENT: CategoryRule(RecordType.INCOME, 'taxi_income',
                                              amount_fields=('gross_income',), source="Taxi",
                                              label="Taxi income"),
    DocumentType.GAS_RECEIPT: CategoryRule(RecordType.EXPENSE, 'vehicle_fuel', 80.0, label="Fuel"),
    DocumentType.MAINTENANCE_RECEIPT: CategoryRule(RecordType.EXPENSE, 'vehicle_maintenance',
                                                   label="Vehicle maintenance"),
    DocumentType.INSURANCE_RECEIPT: CategoryRule(RecordType.EXPENSE, 'vehicle_insurance', 80.0,
                                                 label="Vehicle insurance"),
    DocumentType.PARKING_RECEIPT: CategoryRule(RecordType.EXPENSE, 'parking', label="Parking"),
    DocumentType.PHONE_BILL: CategoryRule(RecordType.EXPENSE, 'communication', 30.0,
                                          label="Mobile phone"),
    DocumentType.MEAL_RECEIPT: CategoryRule(RecordType.EXPENSE, 'meals_entertainment',
                                            deduction_rate=0.5, label="Meals"),
}

RIDESHARE_TYPES = (DocumentType.UBER_SUMMARY, DocumentType.LYFT_SUMMARY)
RIDESHARE_INPUTS = ('gross_fares', 'tips', 'tolls', 'service_fees')
VEHICLE_CATEGORIES = {'vehicle_fuel', 'vehicle_maintenance', 'vehicle_insurance'}

# Fields copied to the record details, when present
DETAIL_FIELDS = (
    'income_tax', 'cpp', 'qpp', 'ei', 'ppip', 'union_dues',
    'dispatch_fees', 'net_income', 'tax', 'tip', 'liters', 'distance', 'trips',
    'gst_collected', 'qst_collected', 'uber_eats_fares',
)
# Fields appended to the record description, in order of preference
DESCRIPTION_FIELDS = ('employer_name', 'payer_name', 'vendor', 'provider', 'service_type', 'location')
# Fields naming who issued the document
ISSUER_FIELDS = ('employer_name', 'payer_name', 'vendor', 'provider')


def _money(fields: ExtractedFields, name: str) -> float:
    value = fields.get(name, 0.0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _describe(rule: CategoryRule, fields: ExtractedFields) -> str:
    for name in DESCRIPTION_FIELDS:
        value = fields.get(name)
        if isinstance(value, str) and value:
            return f"{rule.label} - {value}"
    return rule.label


def _issuer(fields: ExtractedFields) -> str:
    for name in ISSUER_FIELDS:
        value = fields.get(name)
        if isinstance(value, str) and value:
            return value
    return ""


def business_use_percentage(business_km: float, total_km: float) -> float:
    """Share of driving done for the business, as a percentage clamped to 0-100."""
    if not business_km or business_km <= 0 or not total_km or total_km <= 0:
        return 0.0
    return min(100.0, max(0.0, round(business_km / total_km * 100, 2)))


def resolve_business_use(rule: CategoryRule, fields: ExtractedFields,
                         business_use: Optional[float] = None,
                         config: Optional[EngineConfig] = None) -> float:
    """Explicit argument, then a business_use field, then config, then the default.

    From the config, a per-category percentage wins over the mileage log,
    which only applies to vehicle categories.
    """
    if business_use is None and isinstance(fields.get('business_use'), (int, float)):
        business_use = float(fields['business_use'])
    if business_use is None and config is not None:
        business_use = config.business_use.get(rule.category)
        if business_use is None and config.vehicle_km and rule.category in VEHICLE_CATEGORIES:
            business_use = business_use_percentage(*config.vehicle_km)
    if business_use is None:
        business_use = rule.business_use_percent
    if not 0 <= business_use <= 100:
        raise ValueError(f"Business use must be between 0 and 100, got {business_use}")
    return float(business_use)


def _check_inputs(fields: ExtractedFields, names: Tuple[str, ...]) -> None:
    for name in names:
        value = _money(fields, name)
        if value < 0:
            raise ValueError(f"{name} cannot be negative: {value:.2f}")


def _rideshare_record(rule: CategoryRule, fields: ExtractedFields) -> CategorizedRecord:
    _check_inputs(fields, RIDESHARE_INPUTS)
    gross = _money(fields, 'gross_fares')
    tips = _money(fields, 'tips')
    tolls = _money(fields, 'tolls')
    fees = _money(fields, 'service_fees')
    gross_income = round(gross + tips + tolls, 2)
    # Negative when fees exceed earnings: a loss for the period
    net_income = round(gross_income - fees, 2)
    details = {
        'gross_fares': round(gross, 2),
        'tips': round(tips, 2),
        'tolls': round(tolls, 2),
        'service_fees': round(fees, 2),
        'gross_income': gross_income,
        'net_income': net_income,
    }
    return CategorizedRecord(
        type=rule.type,
        category=rule.category,
        amount=net_income,
        description=_describe(rule, fields),
        source=rule.source,
        details=details,
    )


def categorize(document_type: DocumentType, fields: ExtractedFields,
               business_use: Optional[float] = None,
               config: Optional[EngineConfig] = None) -> CategorizedRecord:
    """
    Build the income or expense record for a document.

    Args:
        document_type: Classified document type
        fields: Validated field map
        business_use: Business-use percentage overriding every other source
        config: Profile with per-category business-use overrides

    Returns:
        CategorizedRecord with amounts rounded to 2 decimals. A rideshare
        summary whose fees exceed its earnings gets a negative amount.

    Raises:
        ValueError: for UNKNOWN documents, negative input amounts or an
            out-of-range business-use percentage.
    """
    rule = CATEGORY_RULES.get(document_type)
    if rule is None:
        raise ValueError(f"Cannot categorize document type: {document_type.value}")

    if document_type in RIDESHARE_TYPES:
        record = _rideshare_record(rule, fields)
    else:
        _check_inputs(fields, rule.amount_fields)
        amount = round(sum(_money(fields, name) for name in rule.amount_fields), 2)
        record = CategorizedRecord(
            type=rule.type,
            category=rule.category,
            amount=amount,
            description=_describe(rule, fields),
            source=rule.source,
            details={name: round(_money(fields, name), 2)
                     for name in DETAIL_FIELDS if name in fields and _money(fields, name)},
        )
    record.document_type = document_type
    record.issuer = _issuer(fields)

    if record.type is RecordType.EXPENSE:
        percent = resolve_business_use(rule, fields, business_use, config)
        record.business_use_percent = percent
        record.deductible_amount = round(record.amount * percent / 100 * rule.deduction_rate, 2)
    return record
