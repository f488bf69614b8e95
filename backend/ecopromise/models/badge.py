# FILE: backend/ecopromise/models/badge.py
# Display catalogue for badges; the award rules live in the gamification service.

from enum import Enum
from pydantic import BaseModel
from typing import Any, Dict, List

class BadgeTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"

class BadgeOut(BaseModel):
    key: str
    name: str
    tier: BadgeTier
    description: str = ""

BADGE_CATALOG: Dict[str, BadgeOut] = {
    badge.key: badge for badge in [
        BadgeOut(key="first_commitment", name="First Promise", tier=BadgeTier.BRONZE,
                 description="Made your first commitment"),
        BadgeOut(key="committed_5", name="Habit Builder", tier=BadgeTier.SILVER,
                 description="Made 5 commitments"),
        BadgeOut(key="committed_20", name="Eco Champion", tier=BadgeTier.GOLD,
                 description="Made 20 commitments"),
        BadgeOut(key="carbon_10kg", name="Seedling", tier=BadgeTier.BRONZE,
                 description="Saved 10 kg of CO2"),
        BadgeOut(key="carbon_100kg", name="Tree Hugger", tier=BadgeTier.SILVER,
                 description="Saved 100 kg of CO2"),
        BadgeOut(key="carbon_1000kg", name="Forest Guardian", tier=BadgeTier.GOLD,
                 description="Saved 1 tonne of CO2"),
        BadgeOut(key="first_milestone", name="Milestone Maker", tier=BadgeTier.BRONZE,
                 description="Completed your first milestone"),
        BadgeOut(key="milestones_10", name="Goal Getter", tier=BadgeTier.SILVER,
                 description="Completed 10 milestones"),
    ]
}

def describe_badges(badges: List[Any]) -> List[BadgeOut]:
    """Expands stored badge keys; keys no longer in the catalogue keep a bronze placeholder."""
    out = []
    for badge in badges or []:
        if not isinstance(badge, str):
            out.append(BadgeOut.model_validate(badge))
            continue
        out.append(BADGE_CATALOG.get(badge) or BadgeOut(key=badge, name=badge, tier=BadgeTier.BRONZE))
    return out
