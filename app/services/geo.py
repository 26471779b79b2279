from typing import Dict, List, Optional

# District -> known neighbourhoods. District names also resolve to themselves.
KIGALI_DISTRICTS: Dict[str, List[str]] = {
    "Nyarugenge": ["Gitega", "Nyarugenge", "Nyamirambo", "Muhima", "Rwezamenyo", "Kimisagara", "Nyabugogo"],
    "Gasabo": ["Kimironko", "Remera", "Kacyiru", "Gisozi", "Kimihurura", "Nyarutarama", "Kibagabaga", "Kinyinya", "Jabana"],
    "Kicukiro": ["Gikondo", "Kagarama", "Kicukiro", "Kanombe", "Niboye", "Masaka", "Nyarugunga"],
}

_AREA_INDEX: Dict[str, str] = {
    area.lower(): district
    for district, areas in KIGALI_DISTRICTS.items()
    for area in areas
}
_AREA_INDEX.update({district.lower(): district for district in KIGALI_DISTRICTS})


def resolve_district(area_name: Optional[str]) -> Optional[str]:
    """Map a free-text area to its district, or None when it is not known."""
    if not area_name:
        return None

    return _AREA_INDEX.get(" ".join(area_name.split()).lower())
