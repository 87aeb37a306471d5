"""Federal and Quebec income tax for the 2026 tax year."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Tuple


# Format: (upper_limit, rate)
FEDERAL_TAX_BRACKETS_2026 = [
    (58_523, 0.14),
    (117_045, 0.205),
    (181_440, 0.26),
    (258_482, 0.29),
    (float('inf'), 0.33),
]

QUEBEC_TAX_BRACKETS_2026 = [
    (54_345, 0.14),
    (108_680, 0.19),
    (132_245, 0.24),
    (float('inf'), 0.2575),
]

# Federal basic personal amount is reduced between these incomes
FEDERAL_BPA_MAX_2026 = 16_452
FEDERAL_BPA_MIN_2026 = 14_829
FEDERAL_BPA_PHASE_OUT_START = 181_440
FEDERAL_BPA_PHASE_OUT_END = 251_440
FEDERAL_CREDIT_RATE = 0.14

QUEBEC_BPA_2026 = 18_952
QUEBEC_CREDIT_RATE = 0.14


@dataclass
class IncomeTaxResult:
    """Tax for one jurisdiction."""
    jurisdiction: str
    taxable_income: float = 0.0
    tax_before_credits: float = 0.0
    basic_personal_credit: float = 0.0
    other_credits: float = 0.0
    tax_after_credits: float = 0.0
    marginal_rate: float = 0.0
    breakdown: List[dict] = field(default_factory=list)

    @property
    def effective_rate(self) -> float:
        if self.taxable_income <= 0:
            return 0.0
        return self.tax_after_credits / self.taxable_income


class BracketTaxCalculator(ABC):
    """Progressive bracket tax with a basic personal amount credit."""

    jurisdiction = ""
    brackets: List[Tuple[float, float]] = []
    credit_rate = 0.14

    @abstractmethod
    def basic_personal_amount(self, taxable_income: float) -> float:
        """Basic personal amount for the given income."""

    def calculate_progressive_tax(self, taxable_income: float) -> Tuple[float, list]:
        """
        Calculate tax using progressive brackets.

        Args:
            taxable_income: Income after deductions

        Returns:
            Tuple of (total tax, breakdown by bracket)
        """
        if taxable_income <= 0:
            return 0.0, []

        total_tax = 0.0
        breakdown = []
        previous_limit = 0

        for upper_limit, rate in self.brackets:
            if taxable_income <= previous_limit:
                break

            bracket_income = min(taxable_income, upper_limit) - previous_limit
            if bracket_income > 0:
                bracket_tax = bracket_income * rate
                total_tax += bracket_tax
                breakdown.append({
                    'bracket': f"${previous_limit:,.0f} - ${upper_limit:,.0f}" if upper_limit != float('inf') else f"${previous_limit:,.0f}+",
                    'rate': rate,
                    'income': round(bracket_income, 2),
                    'tax': round(bracket_tax, 2),
                })

            previous_limit = upper_limit

        return round(total_tax, 2), breakdown

    def calculate_marginal_rate(self, taxable_income: float) -> float:
        """Rate of the bracket the given income falls into."""
        for upper_limit, rate in self.brackets:
            if taxable_income <= upper_limit:
                return rate
        return self.brackets[-1][1]

    def calculate(self, taxable_income: float, other_credits: float = 0.0) -> IncomeTaxResult:
        """
        Tax owed after the basic personal amount and any other credits.

        Args:
            taxable_income: Income after deductions
            other_credits: Non-refundable credits already converted to tax (e.g. donations)

        Returns:
            IncomeTaxResult; tax after credits never goes below zero
        """
        if taxable_income < 0:
            raise ValueError(f"Taxable income cannot be negative: {taxable_income}")
        tax, breakdown = self.calculate_progressive_tax(taxable_income)
        bpa_credit = round(self.basic_personal_amount(taxable_income) * self.credit_rate, 2)
        return IncomeTaxResult(
            jurisdiction=self.jurisdiction,
            taxable_income=round(taxable_income, 2),
            tax_before_credits=tax,
            basic_personal_credit=bpa_credit,
            other_credits=round(other_credits, 2),
            tax_after_credits=round(max(0.0, tax - bpa_credit - other_credits), 2),
            marginal_rate=self.calculate_marginal_rate(taxable_income),
            breakdown=breakdown,
        )


class FederalTaxCalculator(BracketTaxCalculator):
    """Federal income tax for tax year 2026."""

    jurisdiction = "Federal"
    brackets = FEDERAL_TAX_BRACKETS_2026
    credit_rate = FEDERAL_CREDIT_RATE

    def basic_personal_amount(self, taxable_income: float) -> float:
        """Full amount up to the phase-out start, minimum amount past its end."""
        if taxable_income <= FEDERAL_BPA_PHASE_OUT_START:
            return FEDERAL_BPA_MAX_2026
        if taxable_income >= FEDERAL_BPA_PHASE_OUT_END:
            return FEDERAL_BPA_MIN_2026
        span = FEDERAL_BPA_PHASE_OUT_END - FEDERAL_BPA_PHASE_OUT_START
        reduction = (FEDERAL_BPA_MAX_2026 - FEDERAL_BPA_MIN_2026) * (
            (taxable_income - FEDERAL_BPA_PHASE_OUT_START) / span)
        return round(FEDERAL_BPA_MAX_2026 - reduction, 2)


class QuebecTaxCalculator(BracketTaxCalculator):
    """Quebec provincial income tax for tax year 2026."""

    jurisdiction = "Quebec"
    brackets = QUEBEC_TAX_BRACKETS_2026
    credit_rate = QUEBEC_CREDIT_RATE

    def basic_personal_amount(self, taxable_income: float) -> float:
        return QUEBEC_BPA_2026


def combined_marginal_rate(taxable_income: float) -> float:
    """Federal plus Quebec marginal rate."""
    return round(FederalTaxCalculator().calculate_marginal_rate(taxable_income)
                 + QuebecTaxCalculator().calculate_marginal_rate(taxable_income), 4)
