from __future__ import annotations

from enum import IntEnum
from typing import Dict, List


class MembershipLevel(IntEnum):
    """Subscription tiers; each tier includes every report of the tiers below."""
    BASIC = 1
    STANDARD = 2
    PREMIUM = 3
    ENTERPRISE = 4


REPORT_REQUIREMENTS: Dict[str, MembershipLevel] = {
    "inventory": MembershipLevel.BASIC,
    "low-stock": MembershipLevel.STANDARD,
    "aging-inventory": MembershipLevel.PREMIUM,
    "financial-warehouse": MembershipLevel.PREMIUM,
    "locations": MembershipLevel.PREMIUM,
    "performance": MembershipLevel.ENTERPRISE,
}


def can_access_report(level: MembershipLevel, report_name: str) -> bool:
    required = REPORT_REQUIREMENTS.get(report_name)
    if required is None:
        return False
    return level >= required


def available_reports(level: MembershipLevel) -> List[str]:
    return [name for name, required in REPORT_REQUIREMENTS.items() if level >= required]


def required_membership_level(report_name: str) -> MembershipLevel:
    """Unknown reports require the top tier."""
    return REPORT_REQUIREMENTS.get(report_name, MembershipLevel.ENTERPRISE)
