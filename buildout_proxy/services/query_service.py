"""
Query Service - filter, search and sort over the listings working set.

apply() is pure: it never touches the working set and returns a new list, so
repeated calls with the same state give the same rows.
"""
import html
from typing import Callable, Dict, Iterable, List, Optional

from buildout_proxy.models import EnrichedListing, FilterState, ListingType, SizeUnit, SortKey

SEARCH_FIELDS = (
    "address",
    "city",
    "state",
    "zip",
    "broker_display",
    "lease_listing_web_title",
    "sale_listing_web_title",
)

# Rank at equal size value: ascending puts AC before SF, descending SF before AC
SIZE_UNIT_RANK = {
    SizeUnit.UNKNOWN: 0,
    SizeUnit.AC: 1,
    SizeUnit.SF: 2,
}


def matches_property_type(item: EnrichedListing, property_type: str) -> bool:
    if not property_type:
        return True
    return item.property_type_id == str(property_type)


def matches_listing_type(item: EnrichedListing, listing_type: ListingType) -> bool:
    """Exclusive: a lease+sale listing only matches BOTH."""
    if listing_type == ListingType.LEASE:
        return item.lease and not item.sale
    if listing_type == ListingType.SALE:
        return item.sale and not item.lease
    if listing_type == ListingType.BOTH:
        return item.lease and item.sale
    return True


def _search_text(item: EnrichedListing, field: str) -> str:
    value = getattr(item, field) or ""
    if field == "broker_display":
        value = html.unescape(value)
    return value.lower()


def matches_search(item: EnrichedListing, query: str) -> bool:
    query = (query or "").lower()
    if not query:
        return True
    return any(query in _search_text(item, field) for field in SEARCH_FIELDS)


def _location_key(item: EnrichedListing):
    return f"{item.address} {item.city} {item.state} {item.zip}".lower()


def _size_key(item: EnrichedListing):
    return (item.size_value or 0, SIZE_UNIT_RANK[item.size_unit])


def _brokers_key(item: EnrichedListing):
    return html.unescape(item.broker_display).lower()


def _type_key(item: EnrichedListing):
    return item.type_label.lower()


SORT_KEYS: Dict[SortKey, Callable[[EnrichedListing], object]] = {
    SortKey.LOCATION: _location_key,
    SortKey.SIZE: _size_key,
    SortKey.BROKERS: _brokers_key,
    SortKey.TYPE: _type_key,
}


def sort_listings(items: Iterable[EnrichedListing], key: Optional[SortKey], direction: int = 1) -> List[EnrichedListing]:
    """Stable sort on one column; direction -1 reverses."""
    items = list(items)
    if key is None:
        return items
    return sorted(items, key=SORT_KEYS[SortKey(key)], reverse=direction == -1)


def apply(working_set: Iterable[EnrichedListing], state: FilterState) -> List[EnrichedListing]:
    """Type filters, then search, then sort."""
    rows = [
        item for item in working_set
        if matches_property_type(item, state.property_type)
        and matches_listing_type(item, state.listing_type)
    ]
    if state.search_text:
        rows = [item for item in rows if matches_search(item, state.search_text)]
    return sort_listings(rows, state.sort_key, state.sort_dir)
