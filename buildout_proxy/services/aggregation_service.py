"""
Aggregation Service - joins Buildout listings with brokers and lease spaces.

Produces the working set for the listings table: one EnrichedListing per
active listing, with broker chips, the summed available SF of its active lease
spaces and the display fields the table shows.

Buildout records are loose: the parent property id, the space size and the
activity status can each live under several field names. Each is resolved by
an ordered accessor chain below; the first accessor yielding a value wins.
"""
import html
import logging
import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from buildout_proxy.models import (
    BrokerChip,
    EnrichedListing,
    Highlight,
    SizeDebug,
    SizeUnit,
)
from buildout_proxy.property_config import LAND_TYPE_ID, SQFT_PER_ACRE, get_subtype_label

logger = logging.getLogger(__name__)

Accessor = Callable[[dict], object]

UNKNOWN_SIZE = "—"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/300x200"
NO_DESCRIPTION = "No description available."

ACTIVE_STATUS_CODE = 1
ACTIVE_STATUS_TEXT = "active"


def field_accessor(*path: str) -> Accessor:
    """Accessor reading a (possibly nested) key, None when any step is missing."""
    def accessor(record: dict):
        value = record
        for key in path:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        return value

    accessor.__name__ = ".".join(path)
    return accessor


# Parent property id on a lease space
PROPERTY_ID_ACCESSORS: Sequence[Accessor] = (
    field_accessor("property_id"),
    field_accessor("property", "id"),
    field_accessor("propertyId"),
    field_accessor("listing_id"),
    field_accessor("property_listing_id"),
)

# A listing's join key: same chain, then its own id
LISTING_KEY_ACCESSORS: Sequence[Accessor] = tuple(PROPERTY_ID_ACCESSORS) + (field_accessor("id"),)

SIZE_ACCESSORS: Sequence[Accessor] = (
    field_accessor("size_sf"),
    field_accessor("available_sf"),
    field_accessor("space_size_sf"),
    field_accessor("square_feet"),
    field_accessor("size"),
)

STATUS_ACCESSORS: Sequence[Accessor] = (
    field_accessor("deal_status_id"),
    field_accessor("deal_status"),
    field_accessor("status_id"),
    field_accessor("status"),
    field_accessor("listing_status"),
)

_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)")


def first_value(record: dict, accessors: Iterable[Accessor]):
    """First non-null, non-empty value produced by the accessor chain."""
    for accessor in accessors:
        value = accessor(record)
        if value is None or value == "":
            continue
        return value
    return None


def resolve_key(record: dict, accessors: Iterable[Accessor]) -> Optional[str]:
    value = first_value(record, accessors)
    return str(value) if value is not None else None


def is_active(record: dict) -> bool:
    """
    Active = status code 1 or the string "active" (any case).
    A record with no status field at all counts as active.
    """
    status = first_value(record, STATUS_ACCESSORS)
    if status is None:
        return True
    if isinstance(status, (int, float)):
        return status == ACTIVE_STATUS_CODE
    text = str(status).strip().lower()
    return text == ACTIVE_STATUS_TEXT or text == str(ACTIVE_STATUS_CODE)


def parse_size(value) -> Optional[float]:
    """
    Loose square-footage parser: 12500, "12,500", "12,500 SF" -> 12500.0.
    Returns None unless the value is a positive number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    match = _LEADING_NUMBER.match(str(value).replace(",", ""))
    if not match:
        return None
    number = float(match.group(1))
    return number if number > 0 else None


def get_space_size(space: dict) -> float:
    """Size of a lease space from the first size field that parses positive, else 0."""
    for accessor in SIZE_ACCESSORS:
        size = parse_size(accessor(space))
        if size is not None:
            return size
    return 0.0


def index_brokers(brokers: Iterable[dict]) -> Dict[str, dict]:
    return {str(b["id"]): b for b in brokers or [] if isinstance(b, dict) and b.get("id") is not None}


def group_active_spaces(lease_spaces: Iterable[dict]) -> Dict[str, List[dict]]:
    """Active spaces bucketed by parent property id; orphans are dropped."""
    buckets: Dict[str, List[dict]] = {}
    for space in lease_spaces or []:
        if not isinstance(space, dict) or not is_active(space):
            continue
        parent_id = resolve_key(space, PROPERTY_ID_ACCESSORS)
        if parent_id is None:
            continue
        buckets.setdefault(parent_id, []).append(space)
    return buckets


# ── Display helpers ──────────────────────────────────────────────────────

def _text(value) -> str:
    return "" if value is None else str(value)


def format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_feet(value) -> Optional[str]:
    """32 -> 32′, "32" -> 32′, "32 ft" stays as is."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{format_number(value)}′"
    text = str(value).strip()
    if re.search(r"ft|′|’", text, re.IGNORECASE):
        return text
    try:
        float(text)
    except ValueError:
        return text
    return f"{text}′"


def type_label(lease: bool, sale: bool) -> str:
    if lease and sale:
        return "For Sale & Lease"
    if lease:
        return "For Lease"
    return "For Sale"


def pill_class(lease: bool, sale: bool) -> str:
    if lease and sale:
        return "both"
    if lease:
        return "lease"
    return "sale"


def format_location(address: str, city: str, state: str, zip_code: str) -> str:
    region = " ".join(p for p in (state, zip_code) if p)
    return ", ".join(p for p in (address, city, region) if p)


def build_broker_chips(listing: dict, broker_index: Dict[str, dict]) -> List[BrokerChip]:
    chips = []
    for key in ("broker_id", "second_broker_id"):
        broker_id = listing.get(key)
        if broker_id is None:
            continue
        broker = broker_index.get(str(broker_id))
        if not broker:
            continue
        name = f"{_text(broker.get('first_name'))} {_text(broker.get('last_name'))}".strip()
        chips.append(BrokerChip(id=str(broker_id), name=html.escape(name), email=broker.get("email")))
    return chips


def size_display(total_available_sf: float, building_size_sf: Optional[float], property_type_id: str):
    """
    (value, unit, text) shown in the Size column.

    Available SF wins over building SF. Land without available SF is shown in
    acres. Nothing known -> the UNKNOWN_SIZE marker, never 0.
    """
    if total_available_sf > 0:
        return total_available_sf, SizeUnit.SF, f"{format_number(total_available_sf)} SF"
    if building_size_sf:
        if property_type_id == LAND_TYPE_ID:
            acres = round(building_size_sf / SQFT_PER_ACRE, 2)
            return acres, SizeUnit.AC, f"{acres:.2f} AC"
        return building_size_sf, SizeUnit.SF, f"{format_number(building_size_sf)} SF"
    return None, SizeUnit.UNKNOWN, UNKNOWN_SIZE


def _brochure_url(listing: dict, lease: bool, sale: bool) -> Optional[str]:
    if sale and not lease:
        return listing.get("sale_pdf_url") or None
    if lease and not sale:
        return listing.get("lease_pdf_url") or None
    return listing.get("sale_pdf_url") or listing.get("lease_pdf_url") or None


def _image_url(listing: dict) -> str:
    photos = listing.get("photos") or []
    if photos and isinstance(photos[0], dict) and photos[0].get("url"):
        return photos[0]["url"]
    return PLACEHOLDER_IMAGE


def _description(listing: dict, lease: bool, sale: bool) -> str:
    if lease and listing.get("lease_description"):
        return listing["lease_description"]
    if sale and listing.get("sale_description"):
        return listing["sale_description"]
    return NO_DESCRIPTION


def _highlights(listing: dict) -> List[Highlight]:
    candidates = [
        ("Ceiling Height", format_feet(listing.get("ceiling_height_f"))),
        ("Dock Doors", listing.get("dock_high_doors")),
        ("Year Built", listing.get("year_built")),
        ("Zoning", listing.get("zoning")),
    ]
    return [Highlight(label=label, value=str(value)) for label, value in candidates if value not in (None, "")]


# ── Working set ──────────────────────────────────────────────────────────

def enrich_listing(
    listing: dict,
    broker_index: Dict[str, dict],
    spaces_by_property: Dict[str, List[dict]],
    debug: bool = False,
) -> EnrichedListing:
    """Join one listing with its brokers and active lease spaces."""
    lease = bool(listing.get("lease"))
    sale = bool(listing.get("sale"))
    property_type_id = _text(listing.get("property_type_id"))

    join_key = resolve_key(listing, LISTING_KEY_ACCESSORS)
    space_sizes = [get_space_size(s) for s in spaces_by_property.get(join_key, [])] if join_key else []
    total_available_sf = sum(space_sizes)
    building_size_sf = parse_size(listing.get("building_size_sf"))

    value, unit, display = size_display(total_available_sf, building_size_sf, property_type_id)

    chips = build_broker_chips(listing, broker_index)
    label = type_label(lease, sale)
    subtype = get_subtype_label(listing.get("property_subtype_id"))

    address = _text(listing.get("address"))
    city = _text(listing.get("city"))
    state = _text(listing.get("state"))
    zip_code = _text(listing.get("zip"))

    size_debug = None
    if debug:
        size_debug = SizeDebug(
            join_key=join_key,
            space_sizes=space_sizes,
            total_available_sf=total_available_sf,
            building_size_sf=building_size_sf,
        )

    return EnrichedListing(
        id=_text(listing.get("id")) or None,
        listing=listing,
        property_type_id=property_type_id,
        property_subtype_id=_text(listing.get("property_subtype_id")),
        lease=lease,
        sale=sale,
        address=address,
        city=city,
        state=state,
        zip=zip_code,
        location=format_location(address, city, state, zip_code),
        lease_listing_web_title=_text(listing.get("lease_listing_web_title")),
        sale_listing_web_title=_text(listing.get("sale_listing_web_title")),
        broker_display=", ".join(chip.name for chip in chips),
        brokers=chips,
        building_size_sf=building_size_sf,
        total_available_sf=total_available_sf,
        size_value=value,
        size_unit=unit,
        size_display=display,
        type_label=label,
        pill_class=pill_class(lease, sale),
        subtype_label=subtype,
        subtype_type_line=" – ".join(p for p in (subtype, label) if p),
        description=_description(listing, lease, sale),
        listing_url=listing.get("lease_listing_url") or listing.get("sale_listing_url") or "#",
        brochure_url=_brochure_url(listing, lease, sale),
        video_url=listing.get("you_tube_url") or listing.get("matterport_url") or None,
        image_url=_image_url(listing),
        highlights=_highlights(listing),
        size_debug=size_debug,
    )


def build_working_set(
    listings: Iterable[dict],
    brokers: Iterable[dict],
    lease_spaces: Iterable[dict],
    debug: bool = False,
) -> List[EnrichedListing]:
    """
    Enriched, active-only listings in upstream order.

    Missing brokers or spaces degrade per field (no chip, 0 available SF);
    they never drop the listing.
    """
    broker_index = index_brokers(brokers)
    spaces_by_property = group_active_spaces(lease_spaces)

    listings = [l for l in listings or [] if isinstance(l, dict)]
    active = [l for l in listings if is_active(l)]

    working_set = [enrich_listing(l, broker_index, spaces_by_property, debug=debug) for l in active]

    logger.info(
        f"[AGGREGATE] {len(working_set)}/{len(listings)} active listings, "
        f"{len(broker_index)} brokers, {sum(len(v) for v in spaces_by_property.values())} active spaces"
    )
    return working_set
