"""Registry of document-type definitions: classification phrases and field rules.

Each document type carries a weighted phrase list (used by the classifier)
and an ordered list of extraction rules (used by the extractor).  Rules that
share a field name are alternate phrasings of the same box/line; they are
tried in declaration order and the first non-empty capture wins.

The registry is built once with build_default_registry() and passed to the
classifier, extractor and validator.  It is never mutated afterwards.
"""

import re
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from .models import (
    DocumentType, DocumentTypePattern, ExtractionRule, FieldKind, Matcher,
)


# Amount with an optional currency marker: "$12.50", "CA$12.50", "CAD $12.50"
MONEY = r"(?:(?:[A-Z]{2,3}\s?)?\$)?\s*(\d[\d,]*(?:\.\d+)?)"
# Plain quantity (distance, litres, counts)
QUANTITY = r"(\d[\d,]*(?:\.\d+)?)"
DATE = r"(\d{4}-\d{2}-\d{2}|\d{1,2}[-/]\d{1,2}[-/]\d{2,4})"

_FLAGS = re.IGNORECASE


def _box(label: str) -> str:
    """Label for a numbered slip box: 'Box 14' / 'Case 14' (Quebec: 'Case A')."""
    return r"(?:Box|Case)\s*" + label + r"(?![\w.])"


def _after(label: str, gap: int = 40) -> str:
    """An amount following a label, allowing a short run of descriptive text."""
    return label + r"[^\d$]{0,%d}?" % gap + MONEY


def money(field: str, pattern: str, *groups: int) -> ExtractionRule:
    return ExtractionRule(field, re.compile(pattern, _FLAGS), FieldKind.NUMBER,
                          tuple(groups), monetary=True)


def number(field: str, pattern: str, *groups: int) -> ExtractionRule:
    return ExtractionRule(field, re.compile(pattern, _FLAGS), FieldKind.NUMBER, tuple(groups))


def text(field: str, pattern: str, *groups: int) -> ExtractionRule:
    return ExtractionRule(field, re.compile(pattern, _FLAGS), FieldKind.STRING, tuple(groups))


def year(field: str, pattern: str, *groups: int) -> ExtractionRule:
    return ExtractionRule(field, re.compile(pattern, _FLAGS), FieldKind.YEAR, tuple(groups))


def phrases(*pairs: Tuple[str, int]) -> Tuple[Matcher, ...]:
    return tuple(Matcher(p, w) for p, w in pairs)


SLIP_YEAR = r"(?:Tax\s+Year|Year|Ann[ée]e)[\s:]*(\d{4})"
EMPLOYER = r"(?:Employer|Employeur)(?:'s\s+name)?[\s:]+([A-Za-z0-9&.,' -]+?)(?=\s+(?:Box|Case)\b|$)"


# --- Employment and benefit slips -------------------------------------------

T4 = DocumentTypePattern(
    document_type=DocumentType.T4,
    label="T4 - Statement of Remuneration Paid",
    matchers=phrases(
        ("t4", 2),
        ("statement of remuneration paid", 3),
        ("employment income", 1),
        ("box 14", 2),
    ),
    rules=(
        money("employment_income", _after(_box("14"))),
        money("employment_income", r"Employment\s+income[\s:]*" + MONEY),
        money("cpp", _after(_box("16"))),
        money("qpp", _after(_box("17"))),
        money("ei", _after(_box("18"))),
        money("income_tax", _after(_box("22"))),
        money("income_tax", r"Income\s+tax\s+deducted[\s:]*" + MONEY),
        money("union_dues", _after(_box("44"))),
        money("ppip", _after(_box("55"))),
        text("employer_name", EMPLOYER),
        year("year", SLIP_YEAR + r"|\bT4\s*[-–]?\s*((?:19|20)\d{2})\b"),
    ),
)

T4A = DocumentTypePattern(
    document_type=DocumentType.T4A,
    label="T4A - Statement of Pension, Retirement, Annuity and Other Income",
    matchers=phrases(
        ("t4a", 3),
        ("statement of pension", 3),
        ("other income", 1),
        ("box 16", 1),
        ("box 20", 1),
    ),
    rules=(
        money("pension", _after(_box("16"))),
        money("lump_sum", _after(_box("18"))),
        money("self_employment_commissions", _after(_box("20"))),
        money("income_tax", _after(_box("22"))),
        text("payer_name", r"(?:Payer|Payeur)(?:'s\s+name)?[\s:]+([A-Za-z0-9&.,' -]+?)(?=\s+(?:Box|Case)\b|$)"),
        year("year", SLIP_YEAR + r"|\bT4A\s*[-–]?\s*((?:19|20)\d{2})\b"),
    ),
)

RL1 = DocumentTypePattern(
    document_type=DocumentType.RL1,
    label="RL-1 - Employment and Other Income (Quebec)",
    matchers=phrases(
        ("rl-1", 3),
        ("relevé 1", 3),
        ("case a", 2),
        ("box a", 1),
        ("revenu d'emploi", 2),
    ),
    rules=(
        money("employment_income", _after(_box("A"))),
        money("qpp", _after(_box(r"B\.A"))),
        money("ei", _after(_box("C"))),
        money("income_tax", _after(_box("E"))),
        money("union_dues", _after(_box("F"))),
        money("ppip", _after(_box("H"))),
        text("employer_name", EMPLOYER),
        year("year", SLIP_YEAR),
    ),
)

RL2 = DocumentTypePattern(
    document_type=DocumentType.RL2,
    label="RL-2 - Retirement and Annuity Benefits (Quebec)",
    matchers=phrases(
        ("rl-2", 3),
        ("relevé 2", 3),
        ("rentes", 1),
        ("pension", 1),
    ),
    rules=(
        money("qpp_benefits", _after(_box("A"))),
        money("old_age_security", _after(_box("C"))),
        money("income_tax", _after(_box("D"))),
        year("year", SLIP_YEAR),
    ),
)

# --- Platform and taxi income -----------------------------------------------

UBER_SUMMARY = DocumentTypePattern(
    document_type=DocumentType.UBER_SUMMARY,
    label="Uber driver summary",
    matchers=phrases(
        ("uber", 1),
        ("uber.com", 2),
        ("uber rides", 2),
        ("uber eats", 2),
        ("driver partner", 2),
        ("weekly summary", 1),
        ("trip earnings", 1),
        ("gross fares", 2),
        ("gross fares breakdown", 3),
        ("fees breakdown", 2),
        ("tax summary for the period", 3),
        ("online mileage", 2),
    ),
    rules=(
        # Annual tax summary: the rides section total
        money("gross_fares",
              r"UBER\s+RIDES\W+GROSS\s+FARES\s+BREAKDOWN.{0,500}?\bTotal\b[\s:]*(?:GROSS\s+FARES[\s:]*)?" + MONEY),
        money("gross_fares",
              r"(?:Gross\s+Fares?|Total\s+Fares?|Gross\s+Earnings?|Revenue)[\s:]*" + MONEY),
        # Secondary delivery section; summed into gross_fares by the extractor
        money("uber_eats_fares",
              r"UBER\s+EATS\W+GROSS\s+FARES\s+BREAKDOWN.{0,300}?\bTotal\b[\s:]*" + MONEY),
        money("tips", r"\bTips?\b[\s:]*" + MONEY),
        money("tolls", r"\bTolls?\b[\s:]*" + MONEY),
        money("service_fees",
              r"\bFEES\s+BREAKDOWN.{0,300}?\bTotal\b[\s:]*" + MONEY
              + r"|(?:Service\s+Fee|Uber\s+Fee)s?[\s:]*" + MONEY),
        money("net_earnings", r"(?:Net\s+Earnings?|Total\s+Payout)[\s:]*" + MONEY),
        money("gst_collected", r"GST\s+you\s+collected.{0,60}?" + MONEY),
        money("qst_collected", r"QST\s+you\s+collected.{0,60}?" + MONEY),
        number("distance",
               r"(?:Online\s+Mileage|Total\s+Distance|Distance(?:\s+driven)?|Kilomet(?:re|er)s?)[\s:]*"
               + QUANTITY),
        number("trips",
               r"Trip\s+count[\s:]*(\d+)"
               r"|(?:Total\s+)?\b(?:Trips?|Rides?)\b[\s:]+(\d+)"
               r"|(\d+)\s+(?:trips?|rides?)\b"),
        text("period",
             r"(?:Tax\s+summary\s+for\s+the\s+period|\bPeriod|\bWeek)\b[\s:]*"
             r"((?:19|20)\d{2}|[A-Za-z]+\s+\d+\s*-\s*[A-Za-z]+\s+\d+,?\s*\d{4})"),
        text("start_date", r"\b(?:From|Start)[\s:]*" + DATE),
        text("end_date", r"\b(?:To|End)[\s:]+" + DATE),
    ),
)

LYFT_SUMMARY = DocumentTypePattern(
    document_type=DocumentType.LYFT_SUMMARY,
    label="Lyft driver summary",
    matchers=phrases(
        ("lyft", 3),
        ("lyft.com", 2),
        ("driver earnings", 2),
        ("ride earnings", 2),
        ("weekly summary", 1),
        ("driver dashboard", 2),
        ("total payout", 1),
    ),
    rules=(
        money("gross_fares",
              r"(?:Gross|Driver|Ride|Total)\s+Earnings?[\s:]*" + MONEY),
        money("tips", r"\bTips?\b[\s:]*" + MONEY),
        money("service_fees", r"(?:Platform|Lyft|Service)\s+Fees?[\s:]*" + MONEY),
        money("net_earnings", r"(?:Net\s+Earnings?|Total\s+Payout)[\s:]*" + MONEY),
        number("distance",
               r"(?:Total\s+)?(?:Distance(?:\s+driven)?|Miles?)[\s:]*" + QUANTITY),
        number("trips",
               r"(?:Total\s+)?\bRides?\b[\s:]+(\d+)|(\d+)\s+rides?\b"),
        text("period",
             r"(?:\bPeriod|\bWeek)\b[\s:]*([A-Za-z]+\s+\d+\s*-\s*[A-Za-z]+\s+\d+,?\s*\d{4}|(?:19|20)\d{2})"),
    ),
)

TAXI_STATEMENT = DocumentTypePattern(
    document_type=DocumentType.TAXI_STATEMENT,
    label="Taxi company statement",
    matchers=phrases(
        ("taxi", 3),
        ("cab", 1),
        ("dispatch", 2),
        ("gross income", 1),
        ("commission", 1),
        ("lease fee", 2),
        ("driver payment", 1),
    ),
    rules=(
        money("gross_income", r"(?:Gross\s+Income|Total\s+Fares?|Revenue)[\s:]*" + MONEY),
        money("tips", r"\bTips?\b[\s:]*" + MONEY),
        money("dispatch_fees", r"(?:Dispatch\s+Fee|Lease\s+Fee|Commission)s?[\s:]*" + MONEY),
        money("net_income", r"(?:Net\s+Income|Take\s+Home|Driver\s+Payment)[\s:]*" + MONEY),
        text("period", r"\b(?:Period|Month)[\s:]*([A-Za-z]+\s+\d{4})"),
    ),
)

# --- Vehicle and business expenses ------------------------------------------

GAS_RECEIPT = DocumentTypePattern(
    document_type=DocumentType.GAS_RECEIPT,
    label="Fuel receipt",
    matchers=phrases(
        ("shell", 2),
        ("esso", 2),
        ("petro-canada", 2),
        ("ultramar", 2),
        ("irving", 2),
        ("costco", 1),
        ("gas", 1),
        ("gasoline", 2),
        ("fuel", 1),
        ("essence", 1),
        ("litres", 1),
        ("liters", 1),
    ),
    rules=(
        text("vendor", r"\b(Esso|Petro-Canada|Shell|Ultramar|Irving|Costco)\b"),
        money("amount", r"\b(?:Total|Montant|Amount)\b[\s:]*" + MONEY),
        number("liters", r"(\d+\.\d{1,3})\s*(?:L|Litres?|Liters?)\b"),
        money("price_per_liter", r"(?:Price\s+per\s+L(?:itre|iter)?|PPL)[\s:]*" + MONEY),
        number("odometer", r"(?:Odom[èe]tre|Odometer)[\s:]*(\d[\d,]*)"),
        text("date", DATE),
    ),
)

MAINTENANCE_RECEIPT = DocumentTypePattern(
    document_type=DocumentType.MAINTENANCE_RECEIPT,
    label="Vehicle maintenance receipt",
    matchers=phrases(
        ("oil change", 3),
        ("vidange", 2),
        ("brake service", 2),
        ("tire rotation", 2),
        ("alignment", 1),
        ("inspection", 1),
        ("freins", 1),
        ("pneus", 1),
        ("repair", 1),
        ("réparation", 1),
        ("labour", 1),
        ("labor", 1),
        ("parts", 1),
        ("pièces", 1),
        ("midas", 2),
        ("mr. lube", 2),
        ("jiffy lube", 2),
        ("canadian tire", 1),
        ("garage", 1),
    ),
    rules=(
        text("vendor", r"\b(Canadian\s+Tire|Midas|Mr\.\s*Lube|Jiffy\s+Lube|Garage\s+[A-Z][\w'-]*)"),
        text("service_type",
             r"\b(Oil\s+Change|Tire\s+Rotation|Brake\s+Service|Inspection|Alignment|Vidange|Freins?)\b"),
        money("parts", r"\b(?:Parts|Pi[èe]ces)\b[\s:]*" + MONEY),
        money("labour", r"\b(?:Labou?r|Main-d'[œo]e?uvre)\b[\s:]*" + MONEY),
        money("subtotal", r"\bSub-?total\b[\s:]*" + MONEY),
        money("tax", r"\b(?:GST|QST|HST|Tax)\b[\s:]*" + MONEY),
        money("amount", r"\b(?:Grand\s+Total|Montant\s+Total|Total)\b[\s:]*" + MONEY),
        text("date", r"\bDate[\s:]*" + DATE),
    ),
)

INSURANCE_RECEIPT = DocumentTypePattern(
    document_type=DocumentType.INSURANCE_RECEIPT,
    label="Vehicle insurance",
    matchers=phrases(
        ("intact", 2),
        ("desjardins", 2),
        ("bélairdirect", 2),
        ("td insurance", 2),
        ("aviva", 2),
        ("la capitale", 2),
        ("insurance", 1),
        ("assurance", 1),
        ("premium", 1),
        ("coverage period", 2),
        ("policy number", 2),
    ),
    rules=(
        text("provider", r"\b(Intact|Desjardins|B[ée]lairdirect|TD\s+Insurance|Aviva|La\s+Capitale)\b"),
        money("amount", r"\b(?:Annual\s+Premium|Premium|Prime|Monthly\s+Payment)\b[\s:]*" + MONEY),
        money("amount", r"\bTotal\b[\s:]*" + MONEY),
        text("policy_number", r"Policy\s+(?:Number|#)[\s:]*([\w-]+)"),
        text("effective_date", r"(?:Effective|Start)\s+Date[\s:]*" + DATE),
        text("expiry_date", r"(?:Expiry|End)\s+Date[\s:]*" + DATE),
        year("vehicle_year", r"\b((?:19|20)\d{2})\s+(?:Honda|Toyota|Ford|Chevrolet|Nissan|Mazda|Hyundai|Kia|Tesla)\b"),
        number("business_use", r"Business\s+use[\s:]*(\d{1,3}(?:\.\d+)?)\s*%"),
    ),
)

PARKING_RECEIPT = DocumentTypePattern(
    document_type=DocumentType.PARKING_RECEIPT,
    label="Parking receipt",
    matchers=phrases(
        ("parking", 2),
        ("stationnement", 2),
        ("impark", 2),
        ("green p", 2),
        ("duration", 1),
        ("zone", 1),
    ),
    rules=(
        money("amount", r"\b(?:Amount|Total)\b[\s:]*" + MONEY),
        text("date", r"\bDate[\s:]*" + DATE),
        text("location", r"\b(?:Location|Zone)[\s:]*([A-Za-z0-9 ,-]+?)(?=\s+(?:Date|Amount|Total|Duration)\b|$)"),
        number("duration_hours", r"\b(?:Duration|Hours?)[\s:]*(\d+(?:\.\d+)?)"),
    ),
)

PHONE_BILL = DocumentTypePattern(
    document_type=DocumentType.PHONE_BILL,
    label="Mobile phone bill",
    matchers=phrases(
        ("wireless", 1),
        ("mobile", 1),
        ("rogers", 2),
        ("bell", 1),
        ("telus", 2),
        ("fido", 2),
        ("videotron", 2),
        ("billing period", 2),
        ("data usage", 2),
    ),
    rules=(
        text("provider", r"\b(Rogers|Bell|TELUS|Fido|Vid[ée]otron|Koodo|Freedom\s+Mobile)\b"),
        money("amount", r"\b(?:Total\s+Amount\s+Due|Amount\s+Due|Balance\s+Due|Total)\b[\s:]*" + MONEY),
        money("plan_cost", r"\b(?:Monthly\s+Plan|Plan)\b[\s:]*" + MONEY),
        number("data_usage_gb", r"Data\s+Usage[\s:]*(\d+(?:\.\d+)?)\s*GB"),
        text("billing_period",
             r"Billing\s+Period[\s:]*([A-Za-z]+\s+\d+\s*-\s*[A-Za-z]+\s+\d+,?\s*\d{4})"),
        text("account_number", r"Account\s+(?:Number|#)[\s:]*([\w-]+)"),
    ),
)

MEAL_RECEIPT = DocumentTypePattern(
    document_type=DocumentType.MEAL_RECEIPT,
    label="Meal receipt",
    matchers=phrases(
        ("restaurant", 2),
        ("café", 1),
        ("coffee", 1),
        ("tim hortons", 2),
        ("mcdonald's", 2),
        ("subtotal", 1),
        ("gratuity", 1),
        ("tip", 1),
    ),
    rules=(
        text("vendor", r"\b(Tim\s+Hortons|McDonald'?s|Starbucks|Subway|A&W)"),
        money("subtotal", r"\bSub-?total\b[\s:]*" + MONEY),
        money("tip", r"\b(?:Tip|Gratuity)\b[\s:]*" + MONEY),
        money("tax", r"\b(?:GST|QST|HST|Tax)\b[\s:]*" + MONEY),
        money("amount", r"\b(?:Total|Amount)\b[\s:]*" + MONEY),
        text("date", r"\bDate[\s:]*" + DATE),
    ),
)


DEFAULT_PATTERNS: Tuple[DocumentTypePattern, ...] = (
    T4, T4A, RL1, RL2,
    UBER_SUMMARY, LYFT_SUMMARY, TAXI_STATEMENT,
    GAS_RECEIPT, MAINTENANCE_RECEIPT, INSURANCE_RECEIPT,
    PARKING_RECEIPT, PHONE_BILL, MEAL_RECEIPT,
)


class PatternRegistry:
    """Read-only, ordered collection of document-type patterns.

    Declaration order matters: the classifier breaks score ties in favour
    of the type registered first.
    """

    def __init__(self, patterns: Iterable[DocumentTypePattern]):
        ordered = tuple(patterns)
        by_type = {}
        for pattern in ordered:
            if pattern.document_type is DocumentType.UNKNOWN:
                raise ValueError("UNKNOWN cannot be registered as a document type")
            if pattern.document_type in by_type:
                raise ValueError(f"Duplicate document type: {pattern.document_type.value}")
            by_type[pattern.document_type] = pattern
        self._patterns = ordered
        self._by_type: Mapping[DocumentType, DocumentTypePattern] = MappingProxyType(by_type)

    def __iter__(self):
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, document_type: DocumentType) -> bool:
        return document_type in self._by_type

    @property
    def patterns(self) -> Tuple[DocumentTypePattern, ...]:
        return self._patterns

    @property
    def document_types(self) -> Tuple[DocumentType, ...]:
        return tuple(p.document_type for p in self._patterns)

    def get(self, document_type: DocumentType) -> Optional[DocumentTypePattern]:
        return self._by_type.get(document_type)

    def __getitem__(self, document_type: DocumentType) -> DocumentTypePattern:
        return self._by_type[document_type]

    def with_pattern(self, pattern: DocumentTypePattern) -> "PatternRegistry":
        """Return a new registry with one more type appended."""
        return PatternRegistry(self._patterns + (pattern,))


def build_default_registry() -> PatternRegistry:
    """Build the registry of every supported document type."""
    return PatternRegistry(DEFAULT_PATTERNS)


@lru_cache(maxsize=1)
def default_registry() -> PatternRegistry:
    """Shared default registry, built on first use."""
    return build_default_registry()
