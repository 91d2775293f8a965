"""
Configuration API Routes
Expose the active poverty policy
"""

from fastapi import APIRouter, Depends

from fdp_support.api.deps import get_policy_engine
from fdp_support.domain.models import CATEGORIES
from fdp_support.domain.services.policy_config_engine import PolicyConfigEngine

router = APIRouter()


@router.get("/policy")
async def get_policy(policy_engine: PolicyConfigEngine = Depends(get_policy_engine)):
    """Thresholds, support caps and self-sufficiency bands"""
    return policy_engine.to_dict()


@router.get("/categories")
async def get_categories():
    """Cost lines per support category"""
    return {
        category.value: {
            "label": descriptor.label,
            "requires_beneficiary": descriptor.requires_beneficiary,
            "cost_lines": [
                {"name": line.name, "label": line.label, "recurring": line.recurring}
                for line in descriptor.lines
            ],
        }
        for category, descriptor in CATEGORIES.items()
    }
