"""Assemble categorized records into a T2125 / TP-80-V filing summary.

Income records from platform summaries and taxi statements become business
income; expense records become T2125 expense lines at their deductible
amount; slips feed employment income and tax withheld. The package is
written out as CSV (one row per line item) and as a plain-text report.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .config_loader import EngineConfig
from .credits import DonationCredit, calculate_donation_credit
from .income_tax import FederalTaxCalculator, IncomeTaxResult, QuebecTaxCalculator
from .models import CategorizedRecord, DocumentType, RecordType

BUSINESS_CODE_RIDESHARE = '485310'

# T2125 expense line per expense category
T2125_LINE_CODES = {
    'advertising': '8521',
    'meals_entertainment': '8523',
    'vehicle_insurance': '8690',
    'licenses': '8760',
    'office': '8810',
    'supplies': '8811',
    'vehicle_maintenance': '8960',
    'communication': '9220',
    'vehicle_fuel': '9281',
    'parking': '9281',
    'cca': '9936',
}

T2125_LINE_LABELS = {
    '8521': "Advertising",
    '8523': "Meals and entertainment (50%)",
    '8690': "Insurance",
    '8760': "Business taxes, licences and memberships",
    '8810': "Office expenses",
    '8811': "Office stationery and supplies",
    '8960': "Maintenance and repairs",
    '9220': "Telephone and utilities",
    '9281': "Motor vehicle expenses (fuel, parking)",
    '9936': "Capital cost allowance",
}

BUSINESS_INCOME_CATEGORIES = {'rideshare_income', 'taxi_income'}
SLIP_INCOME_CATEGORIES = {'employment_income', 'other_income'}


@dataclass
class TaxPackage:
    """Everything needed to fill the business statement and estimate tax."""
    tax_year: int
    taxpayer_name: str = ""
    province: str = "QC"
    business_code: str = BUSINESS_CODE_RIDESHARE
    gross_fares: float = 0.0
    commissions: float = 0.0  # Platform service fees, reported as a negative
    expense_lines: Dict[str, float] = field(default_factory=dict)  # line code -> amount
    employment_income: float = 0.0
    tax_withheld: float = 0.0
    income_by_source: Dict[str, float] = field(default_factory=dict)
    donations: Optional[DonationCredit] = None
    federal: Optional[IncomeTaxResult] = None
    quebec: Optional[IncomeTaxResult] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def gross_business_income(self) -> float:
        return round(self.gross_fares + self.commissions, 2)

    @property
    def total_expenses(self) -> float:
        return round(sum(self.expense_lines.values()), 2)

    @property
    def net_business_income(self) -> float:
        return round(self.gross_business_income - self.total_expenses, 2)

    @property
    def taxable_income(self) -> float:
        return round(max(0.0, self.net_business_income + self.employment_income), 2)

    @property
    def total_tax(self) -> float:
        total = 0.0
        for result in (self.federal, self.quebec):
            if result is not None:
                total += result.tax_after_credits
        return round(total, 2)

    @property
    def balance_due(self) -> float:
        """Positive means owed, negative means refund."""
        return round(self.total_tax - self.tax_withheld, 2)


def _employer_key(record: CategorizedRecord) -> str:
    return " ".join(record.issuer.lower().split())


def slip_income(records: List[CategorizedRecord]) -> float:
    """
    Total income from employment and benefit slips.

    Quebec employers issue a T4 and an RL-1 for the same job. An RL-1 is
    only counted when no T4 names the same employer; a slip without an
    employer name matches any employer.
    """
    t4_employers = [_employer_key(r) for r in records if r.document_type is DocumentType.T4]
    total = 0.0
    for record in records:
        if record.document_type is DocumentType.RL1:
            key = _employer_key(record)
            if any(not key or not other or key == other for other in t4_employers):
                continue
        total += record.amount
    return total


def assemble_package(records: Iterable[CategorizedRecord],
                     config: Optional[EngineConfig] = None,
                     donations: float = 0.0) -> TaxPackage:
    """
    Aggregate categorized records into a filing package and estimate tax.

    Args:
        records: Categorized income and expense records
        config: Driver profile (tax year, name, province)
        donations: Total charitable donations for the year

    Returns:
        TaxPackage with federal (and, for Quebec residents, provincial) tax
    """
    config = config or EngineConfig()
    package = TaxPackage(
        tax_year=config.tax_year,
        taxpayer_name=config.taxpayer_name,
        province=config.province,
    )
    lines = defaultdict(float)
    by_source = defaultdict(float)
    slips = []

    for record in records:
        if not isinstance(record, CategorizedRecord):
            raise TypeError(f"Expected CategorizedRecord, got {type(record).__name__}")
        if record.type is RecordType.INCOME:
            if record.category in BUSINESS_INCOME_CATEGORIES:
                gross = record.details.get('gross_income', record.amount)
                package.gross_fares += gross
                fees = record.details.get('service_fees', record.details.get('dispatch_fees', 0.0))
                package.commissions -= fees
                by_source[record.source or "Other"] += round(gross - fees, 2)
            elif record.category in SLIP_INCOME_CATEGORIES:
                slips.append(record)
                package.tax_withheld += record.details.get('income_tax', 0.0)
            continue

        line = T2125_LINE_CODES.get(record.category)
        if line is None:
            package.warnings.append(f"No T2125 line for expense category '{record.category}'")
            continue
        lines[line] += record.deductible_amount

    package.gross_fares = round(package.gross_fares, 2)
    package.commissions = round(package.commissions, 2)
    package.employment_income = round(slip_income(slips), 2)
    package.tax_withheld = round(package.tax_withheld, 2)
    package.expense_lines = {code: round(lines[code], 2) for code in sorted(lines)}
    package.income_by_source = {k: round(v, 2) for k, v in by_source.items()}

    federal_donation_credit = quebec_donation_credit = 0.0
    if donations:
        package.donations = calculate_donation_credit(donations)
        federal_donation_credit = package.donations.federal_credit
        quebec_donation_credit = package.donations.quebec_credit

    package.federal = FederalTaxCalculator().calculate(package.taxable_income, federal_donation_credit)
    if config.is_quebec_resident:
        package.quebec = QuebecTaxCalculator().calculate(package.taxable_income, quebec_donation_credit)
    return package


def package_to_dataframe(package: TaxPackage) -> pd.DataFrame:
    """One row per reported line: section, line code, description, amount."""
    rows = [
        ("T2125", "", "Business code", package.business_code),
        ("T2125", "8000", "Gross fares", package.gross_fares),
        ("T2125", "8000", "Platform commissions", package.commissions),
        ("T2125", "8299", "Gross business income", package.gross_business_income),
    ]
    for code, amount in package.expense_lines.items():
        rows.append(("T2125", code, T2125_LINE_LABELS.get(code, code), amount))
    rows += [
        ("T2125", "9368", "Total expenses", package.total_expenses),
        ("T2125", "9369", "Net business income", package.net_business_income),
        ("T1", "10100", "Employment income", package.employment_income),
        ("T1", "43700", "Income tax deducted", package.tax_withheld),
        ("Summary", "", "Taxable income", package.taxable_income),
    ]
    if package.donations is not None:
        rows.append(("Schedule 9", "34900", "Donation credit (federal)", package.donations.federal_credit))
    for result in (package.federal, package.quebec):
        if result is not None:
            rows.append(("Summary", "", f"{result.jurisdiction} tax", result.tax_after_credits))
    rows.append(("Summary", "", "Balance due (refund)", package.balance_due))
    return pd.DataFrame(rows, columns=["section", "line", "description", "amount"])


def export_csv(package: TaxPackage, path: str) -> None:
    package_to_dataframe(package).to_csv(path, index=False)


def fmt(amount: float) -> str:
    """Format amount as currency."""
    if amount < 0:
        return f"-${abs(amount):,.2f}"
    return f"${amount:,.2f}"


def _sep(char: str = "=", length: int = 72) -> str:
    return char * length


def _line(label: str, amount, width: int = 55) -> str:
    """Format a single line item."""
    return f"  {label:<{width}} {fmt(amount) if isinstance(amount, (int, float)) else amount:>15}"


def generate_text_report(package: TaxPackage) -> str:
    """Plain-text T2125 / TP-80-V style summary."""
    lines = []
    lines.append(_sep("=", 72))
    lines.append(f"  T2125 / TP-80-V - Statement of Business Activities (Tax Year {package.tax_year})")
    lines.append(f"  {package.taxpayer_name} - Business code {package.business_code} (taxi and rideshare)")
    lines.append(_sep("=", 72))

    lines.append("")
    lines.append("  BUSINESS INCOME")
    lines.append("  " + "-" * 68)
    for source, amount in sorted(package.income_by_source.items()):
        lines.append(_line(f"  {source} (net of platform fees)", amount))
    lines.append(_line("Gross fares", package.gross_fares))
    lines.append(_line("Platform commissions", package.commissions))
    lines.append(_line("Gross business income", package.gross_business_income))

    lines.append("")
    lines.append("  EXPENSES (business-use portion)")
    lines.append("  " + "-" * 68)
    if not package.expense_lines:
        lines.append("  (none)")
    for code, amount in package.expense_lines.items():
        lines.append(_line(f"Line {code}  {T2125_LINE_LABELS.get(code, '')}", amount))
    lines.append("  " + "-" * 68)
    lines.append(_line("Total expenses", package.total_expenses))
    lines.append(_line("NET BUSINESS INCOME", package.net_business_income))

    lines.append("")
    lines.append("  TAX ESTIMATE")
    lines.append("  " + "-" * 68)
    if package.employment_income:
        lines.append(_line("Employment income (T4 / RL-1)", package.employment_income))
    lines.append(_line("Taxable income", package.taxable_income))
    if package.donations is not None:
        lines.append(_line("Donation credit (federal + Quebec)", package.donations.total_credit))
    for result in (package.federal, package.quebec):
        if result is None:
            continue
        lines.append(_line(f"{result.jurisdiction} tax before credits", result.tax_before_credits))
        lines.append(_line(f"{result.jurisdiction} basic personal credit", -result.basic_personal_credit))
        lines.append(_line(f"{result.jurisdiction} tax", result.tax_after_credits))
    lines.append(_line("Income tax deducted at source", package.tax_withheld))
    lines.append("  " + "-" * 68)
    if package.balance_due >= 0:
        lines.append(_line(">>> BALANCE OWING", package.balance_due))
    else:
        lines.append(_line(">>> REFUND", -package.balance_due))

    if package.warnings:
        lines.append("")
        for warning in package.warnings:
            lines.append(f"  WARNING: {warning}")
    lines.append(_sep("=", 72))
    return "\n".join(lines)
