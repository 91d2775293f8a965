"""
POLICY CONFIG ENGINE
Load, validate, and expose the poverty policy

RESPONSIBILITIES:
- Load the YAML poverty policy file
- Validate thresholds, caps and status bands
- Expose a read-only PovertyPolicy

RULES:
❌ No defaults if config missing
❌ No thresholds hardcoded in code
✅ Fail fast on invalid config
✅ Deterministic output
"""

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from fdp_support.domain.models import (
    AreaPolicy,
    AreaType,
    PovertyLevel,
    PovertyPolicy,
    StatusBand,
)

logger = logging.getLogger(__name__)


def _amount(value: Any, where: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{where}: '{value}' is not a number")
    if amount < 0:
        raise ValueError(f"{where}: amount cannot be negative ({amount})")
    return amount


def _level(label: Any, where: str) -> PovertyLevel:
    try:
        return PovertyLevel(str(label))
    except ValueError:
        raise ValueError(f"{where}: unknown poverty level '{label}'")


def _area(label: Any, where: str) -> AreaType:
    try:
        return AreaType(str(label))
    except ValueError:
        raise ValueError(f"{where}: unknown area type '{label}'")


class PolicyConfigEngine:
    """
    Policy Configuration Engine
    Single source of truth for poverty thresholds and support caps
    """

    def __init__(self, config_dir: Path, filename: str = "poverty_policy.yml"):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self.filename = filename
        self._policy: Optional[PovertyPolicy] = None

    @property
    def policy(self) -> PovertyPolicy:
        if self._policy is None:
            raise RuntimeError("Poverty policy not loaded; call load_all() first")
        return self._policy

    @property
    def policy_version(self) -> str:
        return self.policy.version

    def load_all(self) -> PovertyPolicy:
        """Load and validate the policy file"""
        policy_file = self.config_dir / self.filename
        if not policy_file.exists():
            raise FileNotFoundError(f"Poverty policy not found: {policy_file}")

        with open(policy_file, "r") as f:
            data = yaml.safe_load(f) or {}

        self._policy = self.parse(data)
        logger.info(
            "Loaded poverty policy %s (%d areas, %d capped levels)",
            self._policy.version,
            len(self._policy.areas),
            len(self._policy.support_caps),
        )
        return self._policy

    @staticmethod
    def parse(data: Dict[str, Any]) -> PovertyPolicy:
        """Build a PovertyPolicy from already-loaded YAML data"""
        version = data.get("version")
        if not version:
            raise ValueError("Poverty policy must declare a version")

        areas: Dict[AreaType, AreaPolicy] = {}
        for area_label, area_data in (data.get("areas") or {}).items():
            area = _area(area_label, "areas")
            where = f"areas.{area_label}"
            thresholds = {
                _level(level, f"{where}.thresholds"): _amount(amount, f"{where}.thresholds.{level}")
                for level, amount in (area_data.get("thresholds") or {}).items()
            }
            missing = [lvl.value for lvl in PovertyLevel if lvl not in thresholds]
            if missing:
                raise ValueError(f"{where}: missing thresholds for {', '.join(missing)}")

            # Thresholds must rise with the level, otherwise a band is unreachable
            ordered = [thresholds[lvl] for lvl in PovertyLevel]
            if any(lo >= hi for lo, hi in zip(ordered, ordered[1:])):
                raise ValueError(f"{where}: thresholds must strictly increase from Level -4 to Level +1")

            areas[area] = AreaPolicy(
                area_type=area,
                self_sufficiency_income=_amount(
                    area_data.get("self_sufficiency_income"), f"{where}.self_sufficiency_income"
                ),
                thresholds=thresholds,
            )

        default_area = _area(data.get("default_area", AreaType.RURAL.value), "default_area")
        if default_area not in areas:
            raise ValueError(f"default_area '{default_area.value}' has no thresholds")

        support_caps = {
            _level(level, "support_caps"): _amount(amount, f"support_caps.{level}")
            for level, amount in (data.get("support_caps") or {}).items()
        }
        for ineligible in (PovertyLevel.LEVEL_0, PovertyLevel.LEVEL_PLUS_1):
            if support_caps.get(ineligible):
                raise ValueError(f"support_caps: {ineligible.value} is at or above self-sufficiency and must not be capped")

        status = data.get("self_sufficiency_status") or {}
        bands = tuple(
            sorted(
                (
                    StatusBand(min_ratio=_amount(b["min_ratio"], "self_sufficiency_status"), label=str(b["label"]))
                    for b in status.get("bands", [])
                ),
                key=lambda b: b.min_ratio,
                reverse=True,
            )
        )
        fallback = status.get("fallback")
        if not fallback:
            raise ValueError("self_sufficiency_status.fallback is required")

        return PovertyPolicy(
            version=str(version),
            currency=str(data.get("currency", "PKR")),
            default_area=default_area,
            areas=areas,
            support_caps=support_caps,
            status_bands=bands,
            fallback_status=str(fallback),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for the config API"""
        policy = self.policy
        return {
            "version": policy.version,
            "currency": policy.currency,
            "default_area": policy.default_area.value,
            "areas": {
                area.value: {
                    "self_sufficiency_income": float(ap.self_sufficiency_income),
                    "thresholds": {lvl.value: float(ap.thresholds[lvl]) for lvl in PovertyLevel},
                }
                for area, ap in policy.areas.items()
            },
            "support_caps": {lvl.value: float(amount) for lvl, amount in policy.support_caps.items()},
            "self_sufficiency_status": {
                "bands": [{"min_ratio": float(b.min_ratio), "label": b.label} for b in policy.status_bands],
                "fallback": policy.fallback_status,
            },
        }
