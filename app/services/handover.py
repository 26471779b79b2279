"""
Safe meeting points for a physical handover.

Points in the item's own area rank first, then points in the same district.
ID, wallet and phone handovers lean towards official venues.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from app.services.geo import resolve_district


class HandoverPointType(str, Enum):
    COOPERATIVE_OFFICE = "COOPERATIVE_OFFICE"
    SECTOR_OFFICE = "SECTOR_OFFICE"
    POLICE_POST = "POLICE_POST"
    TRANSIT_HUB = "TRANSIT_HUB"


class HandoverPoint(BaseModel):
    name: str
    type: HandoverPointType
    address: str
    area: str
    operating_hours: str
    safety_rating: int  # 1-5


SAME_AREA_SCORE = 10
SAME_DISTRICT_SCORE = 5
MAX_RECOMMENDATIONS = 5

SENSITIVE_CATEGORIES = frozenset({"ID", "WALLET", "PHONE"})
OFFICIAL_VENUE_BONUS = {
    HandoverPointType.COOPERATIVE_OFFICE: 3,
    HandoverPointType.SECTOR_OFFICE: 3,
    HandoverPointType.POLICE_POST: 2,
}

SAFE_HANDOVER_POINTS: List[HandoverPoint] = [
    # Cooperative offices
    HandoverPoint(name="RFTC Nyabugogo Office", type=HandoverPointType.COOPERATIVE_OFFICE,
                  address="Nyabugogo Bus Terminal", area="Nyabugogo", operating_hours="06:00-20:00", safety_rating=5),
    HandoverPoint(name="Kigali Bus Services Kimironko", type=HandoverPointType.COOPERATIVE_OFFICE,
                  address="Kimironko Bus Stop", area="Kimironko", operating_hours="06:00-20:00", safety_rating=5),
    HandoverPoint(name="Royal Express Remera", type=HandoverPointType.COOPERATIVE_OFFICE,
                  address="Remera Bus Station", area="Remera", operating_hours="06:00-19:00", safety_rating=4),
    HandoverPoint(name="Volcano Express Downtown", type=HandoverPointType.COOPERATIVE_OFFICE,
                  address="KN 4 Ave, City Center", area="Nyarugenge", operating_hours="07:00-18:00", safety_rating=5),

    # Sector offices
    HandoverPoint(name="Kimironko Sector Office", type=HandoverPointType.SECTOR_OFFICE,
                  address="Kimironko, Gasabo District", area="Kimironko", operating_hours="07:00-17:00 Mon-Fri", safety_rating=5),
    HandoverPoint(name="Remera Sector Office", type=HandoverPointType.SECTOR_OFFICE,
                  address="Remera, Gasabo District", area="Remera", operating_hours="07:00-17:00 Mon-Fri", safety_rating=5),
    HandoverPoint(name="Nyamirambo Sector Office", type=HandoverPointType.SECTOR_OFFICE,
                  address="Nyamirambo, Nyarugenge District", area="Nyamirambo", operating_hours="07:00-17:00 Mon-Fri", safety_rating=5),
    HandoverPoint(name="Kicukiro Sector Office", type=HandoverPointType.SECTOR_OFFICE,
                  address="Kicukiro Center", area="Kicukiro", operating_hours="07:00-17:00 Mon-Fri", safety_rating=5),

    # Police posts
    HandoverPoint(name="Remera Police Station", type=HandoverPointType.POLICE_POST,
                  address="KG 11 Ave, Remera", area="Remera", operating_hours="24/7", safety_rating=5),
    HandoverPoint(name="Kacyiru Police Station", type=HandoverPointType.POLICE_POST,
                  address="Kacyiru, Gasabo District", area="Kacyiru", operating_hours="24/7", safety_rating=5),
    HandoverPoint(name="Nyarugenge Police Station", type=HandoverPointType.POLICE_POST,
                  address="City Center", area="Nyarugenge", operating_hours="24/7", safety_rating=5),

    # Transit hubs
    HandoverPoint(name="Nyabugogo Bus Terminal", type=HandoverPointType.TRANSIT_HUB,
                  address="Nyabugogo Main Terminal", area="Nyabugogo", operating_hours="05:00-21:00", safety_rating=4),
    HandoverPoint(name="Kigali Bus Terminal (Downtown)", type=HandoverPointType.TRANSIT_HUB,
                  address="KN 2 Ave, Nyarugenge", area="Nyarugenge", operating_hours="05:30-20:30", safety_rating=4),
    HandoverPoint(name="Kimironko Market Area", type=HandoverPointType.TRANSIT_HUB,
                  address="Kimironko Commercial Center", area="Kimironko", operating_hours="06:00-19:00", safety_rating=3),
]


def score_handover_point(point: HandoverPoint, area: Optional[str], category: Optional[str]) -> int:
    score = point.safety_rating

    area_key = " ".join((area or "").split()).lower()
    district = resolve_district(area)

    if area_key and point.area.lower() == area_key:
        score += SAME_AREA_SCORE
    elif district and resolve_district(point.area) == district:
        score += SAME_DISTRICT_SCORE

    if (category or "").upper() in SENSITIVE_CATEGORIES:
        score += OFFICIAL_VENUE_BONUS.get(point.type, 0)

    return score


def recommend_handover_locations(area: Optional[str], category: Optional[str]) -> List[HandoverPoint]:
    """Best meeting points for an item found in ``area``; ties keep table order."""
    ranked = sorted(
        SAFE_HANDOVER_POINTS,
        key=lambda point: score_handover_point(point, area, category),
        reverse=True,
    )
    return ranked[:MAX_RECOMMENDATIONS]
