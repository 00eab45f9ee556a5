"""
Buildout property type and subtype catalog.
Maps the numeric ids used by Buildout to display labels and URL slugs.
"""
from typing import Optional

# =============================================================================
# Property types
# =============================================================================

PROPERTY_TYPES = {
    "1": "Office",
    "2": "Retail",
    "3": "Industrial",
    "5": "Land",
    "6": "Multifamily",
    "7": "Special Purpose",
    "8": "Hospitality",
}

# URL slug <-> type id, used by the ?ptype= parameter and legacy #fragments
PROPERTY_TYPE_SLUGS = {
    "office": "1",
    "retail": "2",
    "industrial": "3",
    "land": "5",
    "multifamily": "6",
    "special-purpose": "7",
    "hospitality": "8",
}

# Land listings are sized in acres when no lease-space SF is available
LAND_TYPE_ID = "5"
SQFT_PER_ACRE = 43560

# =============================================================================
# Property subtypes
# =============================================================================

PROPERTY_SUBTYPES = {
    "101": "Office Building",
    "102": "Creative/Loft",
    "103": "Executive Suites",
    "104": "Medical",
    "105": "Institutional/Governmental",
    "106": "Office Warehouse",
    "107": "Office Condo",
    "108": "Coworking",
    "109": "Lab",
    "201": "Street Retail",
    "202": "Strip Center",
    "203": "Free Standing Building",
    "204": "Regional Mall",
    "205": "Retail Pad",
    "206": "Vehicle Related",
    "207": "Outlet Center",
    "208": "Power Center",
    "209": "Neighborhood Center",
    "210": "Community Center",
    "211": "Specialty Center",
    "212": "Theme/Festival Center",
    "213": "Restaurant",
    "214": "Post Office",
    "215": "Retail Condo",
    "216": "Lifestyle Center",
    "301": "Manufacturing",
    "302": "Warehouse/Distribution",
    "303": "Flex Space",
    "304": "Research & Development",
    "305": "Refrigerated/Cold Storage",
    "306": "Office Showroom",
    "307": "Truck Terminal/Hub/Transit",
    "308": "Self Storage",
    "309": "Industrial Condo",
    "310": "Data Center",
    "501": "Office",
    "502": "Retail",
    "503": "Retail-Pad",
    "504": "Industrial",
    "505": "Residential",
    "506": "Multifamily",
    "507": "Other",
    "601": "High-Rise",
    "602": "Mid-Rise",
    "603": "Low-Rise/Garden",
    "604": "Government Subsidized",
    "605": "Mobile Home Park",
    "606": "Senior Living",
    "607": "Skilled Nursing",
    "608": "Single Family Rental Portfolio",
    "701": "School",
    "702": "Marina",
    "703": "Other",
    "704": "Golf Course",
    "705": "Church",
    "801": "Full Service",
    "802": "Limited Service",
    "803": "Select Service",
    "804": "Resort",
    "805": "Economy",
    "806": "Extended Stay",
    "807": "Casino",
    "1001": "Single Family",
    "1002": "Townhouse / Row House",
    "1003": "Condo / Co-op",
    "1004": "Manufactured / Mobile Home",
    "1005": "Vacation / Timeshare",
    "1006": "Other Residential",
}


def get_type_label(type_id) -> str:
    return PROPERTY_TYPES.get(str(type_id), "") if type_id is not None else ""


def get_subtype_label(subtype_id) -> str:
    return PROPERTY_SUBTYPES.get(str(subtype_id), "") if subtype_id is not None else ""


def type_id_from_slug(value: Optional[str]) -> str:
    """Resolve a ?ptype= value (slug or numeric id) to a type id, "" if unknown."""
    if not value:
        return ""
    value = str(value).strip().lower()
    if value.isdigit():
        return value
    return PROPERTY_TYPE_SLUGS.get(value, "")


def slug_for_type_id(type_id) -> str:
    """Slug for a type id; unknown ids fall back to the id itself."""
    type_id = str(type_id or "")
    for slug, tid in PROPERTY_TYPE_SLUGS.items():
        if tid == type_id:
            return slug
    return type_id
