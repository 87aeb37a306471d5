"""Charitable donation credits (federal and Quebec)."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Federal: 15% on the first $200, 29% on the remainder. Quebec: flat 25%.
DONATION_FIRST_TIER_LIMIT = 200.0
FEDERAL_FIRST_TIER_RATE = 0.15
FEDERAL_SECOND_TIER_RATE = 0.29
QUEBEC_DONATION_RATE = 0.25

# 9-digit business number + RR program identifier + 4-digit reference
CHARITY_REGISTRATION_PATTERN = re.compile(r"^(\d{9})(RR)(\d{4})$")


@dataclass
class DonationCredit:
    """Donation credits for one year."""
    total_donations: float = 0.0
    federal_credit: float = 0.0
    quebec_credit: float = 0.0
    first_tier_amount: float = 0.0
    second_tier_amount: float = 0.0

    @property
    def total_credit(self) -> float:
        return round(self.federal_credit + self.quebec_credit, 2)

    @property
    def effective_rate(self) -> float:
        """Total credit as a percentage of donations."""
        if self.total_donations <= 0:
            return 0.0
        return round(self.total_credit / self.total_donations * 100, 2)

    @property
    def net_cost(self) -> float:
        return round(self.total_donations - self.total_credit, 2)


@dataclass
class CharityRegistration:
    business_number: str
    program: str
    reference: str

    @property
    def formatted(self) -> str:
        return f"{self.business_number}-{self.program}-{self.reference}"


@dataclass
class CharityTotal:
    """Donations made to one charity."""
    charity_name: str
    registration_number: str = ""
    donations: List[dict] = field(default_factory=list)
    total: float = 0.0


def calculate_donation_credit(total_donations: float) -> DonationCredit:
    """
    Federal and Quebec credit for a year's donations.

    Args:
        total_donations: Sum of eligible donations

    Returns:
        DonationCredit with every amount rounded to 2 decimals

    Raises:
        ValueError: if total_donations is negative
    """
    if total_donations < 0:
        raise ValueError(f"Donation amount cannot be negative: {total_donations}")
    if total_donations == 0:
        return DonationCredit()

    first_tier = min(total_donations, DONATION_FIRST_TIER_LIMIT)
    second_tier = max(0.0, total_donations - DONATION_FIRST_TIER_LIMIT)
    federal = first_tier * FEDERAL_FIRST_TIER_RATE + second_tier * FEDERAL_SECOND_TIER_RATE
    quebec = total_donations * QUEBEC_DONATION_RATE

    return DonationCredit(
        total_donations=round(total_donations, 2),
        federal_credit=round(federal, 2),
        quebec_credit=round(quebec, 2),
        first_tier_amount=round(first_tier, 2),
        second_tier_amount=round(second_tier, 2),
    )


def verify_charity_registration(registration_number: str) -> Optional[CharityRegistration]:
    """Parse a registration number like 123456789RR0001; None when malformed."""
    if not registration_number or not registration_number.strip():
        return None
    cleaned = re.sub(r"[\s-]", "", registration_number).upper()
    match = CHARITY_REGISTRATION_PATTERN.match(cleaned)
    if not match:
        return None
    return CharityRegistration(*match.groups())


def validate_donation(amount: float, charity_name: str,
                      registration_number: str = "") -> List[str]:
    """Problems with one donation entry; an empty list means it is usable."""
    errors = []
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        errors.append("Amount must be a positive number")
    if not charity_name or not charity_name.strip():
        errors.append("Charity name is required")
    if registration_number and registration_number.strip() \
            and verify_charity_registration(registration_number) is None:
        errors.append("Invalid registration number format. Expected: 123456789RR0001")
    return errors


def track_donations_by_charity(donations: list) -> Dict[str, CharityTotal]:
    """
    Group donation entries by charity name.

    Args:
        donations: List of dicts with charity_name, amount and optionally
            registration_number, date, receipt_number

    Returns:
        Mapping of charity name to its CharityTotal

    Raises:
        TypeError: if donations is not a list
    """
    if not isinstance(donations, list):
        raise TypeError(f"Donations must be a list, got {type(donations).__name__}")

    charities: Dict[str, CharityTotal] = {}
    for donation in donations:
        name = donation.get('charity_name') or 'Unknown'
        if name not in charities:
            charities[name] = CharityTotal(name, donation.get('registration_number', ''))
        entry = charities[name]
        entry.donations.append({
            'amount': donation['amount'],
            'date': donation.get('date'),
            'receipt_number': donation.get('receipt_number'),
        })
        entry.total = round(entry.total + donation['amount'], 2)
    return charities
