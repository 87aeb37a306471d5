"""Load the driver profile and engine thresholds from a YAML configuration file."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import yaml

# Provinces and territories accepted in the profile (code, display_name)
PROVINCES = [
    ("AB", "Alberta"),
    ("BC", "British Columbia"),
    ("MB", "Manitoba"),
    ("NB", "New Brunswick"),
    ("NL", "Newfoundland and Labrador"),
    ("NS", "Nova Scotia"),
    ("NT", "Northwest Territories"),
    ("NU", "Nunavut"),
    ("ON", "Ontario"),
    ("PE", "Prince Edward Island"),
    ("QC", "Quebec"),
    ("SK", "Saskatchewan"),
    ("YT", "Yukon"),
]

# Plausible upper bound for a single receipt, by expense category
DEFAULT_EXPENSE_CEILINGS: Dict[str, float] = {
    "vehicle_fuel": 500.0,
    "vehicle_maintenance": 5_000.0,
    "vehicle_insurance": 10_000.0,
    "parking": 100.0,
    "communication": 300.0,
    "meals_entertainment": 100.0,
}


@dataclass
class EngineConfig:
    """Driver profile loaded from YAML."""
    tax_year: int = 2025
    taxpayer_name: str = "Driver"
    province: str = "QC"
    year_window: Tuple[int, int] = (2020, 2030)  # Inclusive
    min_confidence: int = 0  # Classifier scores at or below this are UNKNOWN
    inactive_distance_km: float = 10.0  # Zero-income summaries up to this distance are flagged
    max_period_earnings: float = 50_000.0  # Gross above this on a weekly/monthly summary is flagged
    max_period_distance_km: float = 10_000.0
    vehicle_km: Optional[Tuple[float, float]] = None  # (business km, total km) from the mileage log
    business_use: Dict[str, float] = field(default_factory=dict)  # category -> percent
    expense_ceilings: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_EXPENSE_CEILINGS))
    document_folder: Optional[str] = None

    @property
    def is_quebec_resident(self) -> bool:
        return self.province == "QC"


def _parse_year_window(value) -> Tuple[int, int]:
    if isinstance(value, dict):
        return int(value.get("min", 2020)), int(value.get("max", 2030))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return int(value[0]), int(value[1])
    return 2020, 2030


def _parse_vehicle_km(value) -> Optional[Tuple[float, float]]:
    """Read `vehicle: {business_km: ..., total_km: ...}` from the mileage log section."""
    if not isinstance(value, dict) or "total_km" not in value:
        return None
    return float(value.get("business_km", 0)), float(value["total_km"])


def config_from_dict(raw: dict) -> EngineConfig:
    """Build an EngineConfig from an already-parsed mapping."""
    driver = raw.get("driver", {}) or {}

    province = str(raw.get("province") or driver.get("province") or "QC").strip().upper()
    if province not in {code for code, _ in PROVINCES}:
        print(f"Unknown province '{province}', using QC")
        province = "QC"

    business_use = {}
    for category, percent in (raw.get("business_use", {}) or {}).items():
        percent = float(percent)
        if not 0 <= percent <= 100:
            raise ValueError(f"Business use for {category} must be between 0 and 100, got {percent}")
        business_use[str(category)] = percent

    ceilings = dict(DEFAULT_EXPENSE_CEILINGS)
    for category, limit in (raw.get("expense_ceilings", {}) or {}).items():
        ceilings[str(category)] = float(limit)

    return EngineConfig(
        tax_year=int(raw.get("tax_year", 2025)),
        taxpayer_name=driver.get("name", "Driver"),
        province=province,
        year_window=_parse_year_window(raw.get("year_window")),
        min_confidence=int(raw.get("min_confidence", 0)),
        inactive_distance_km=float(raw.get("inactive_distance_km", 10.0)),
        max_period_earnings=float(raw.get("max_period_earnings", 50_000.0)),
        max_period_distance_km=float(raw.get("max_period_distance_km", 10_000.0)),
        vehicle_km=_parse_vehicle_km(raw.get("vehicle")),
        business_use=business_use,
        expense_ceilings=ceilings,
        document_folder=raw.get("document_folder"),
    )


def load_config(path: str) -> Optional[EngineConfig]:
    """
    Load a driver profile from a YAML file.

    Args:
        path: Path to the YAML config file.

    Returns:
        EngineConfig if successful, None otherwise.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        print(f"Config file not found: {path}")
        return None
    except yaml.YAMLError as e:
        print(f"Error reading config file: {e}")
        return None

    if not raw:
        return None
    return config_from_dict(raw)
