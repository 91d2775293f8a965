"""
DOMAIN MODELS — POVERTY POLICY

Immutable, versioned policy tables loaded from configuration.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Tuple

from .entities import AreaType, PovertyLevel


@dataclass(frozen=True)
class AreaPolicy:
    """Per-area income thresholds"""
    area_type: AreaType
    self_sufficiency_income: Decimal
    thresholds: Dict[PovertyLevel, Decimal]

    def descending(self) -> Tuple[Tuple[Decimal, PovertyLevel], ...]:
        """Thresholds ordered highest first"""
        return tuple(
            sorted(
                ((amount, level) for level, amount in self.thresholds.items()),
                key=lambda pair: pair[0],
                reverse=True,
            )
        )


@dataclass(frozen=True)
class StatusBand:
    """Self-sufficiency status band keyed on the income ratio"""
    min_ratio: Decimal
    label: str


@dataclass(frozen=True)
class PovertyPolicy:
    """Versioned poverty classification and support-cap schedule"""
    version: str
    currency: str
    default_area: AreaType
    areas: Dict[AreaType, AreaPolicy]
    support_caps: Dict[PovertyLevel, Decimal]
    status_bands: Tuple[StatusBand, ...]
    fallback_status: str

    def area(self, area_type: AreaType) -> AreaPolicy:
        return self.areas.get(area_type) or self.areas[self.default_area]
