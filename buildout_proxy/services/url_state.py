"""
FilterState <-> URL query string.

    ?ptype=industrial&lt=lease&q=austin&sort=-size

ptype takes a slug or a numeric type id; a legacy #slug fragment is honored
when ptype is absent. Defaults are left out of the query string.
"""
from typing import Mapping, Optional, Union
from urllib.parse import parse_qs, urlencode, urlsplit

from buildout_proxy.models import FilterState, ListingType, SortKey
from buildout_proxy.property_config import slug_for_type_id, type_id_from_slug

PARAM_PROPERTY_TYPE = "ptype"
PARAM_LISTING_TYPE = "lt"
PARAM_SEARCH = "q"
PARAM_SORT = "sort"
PARAM_NO_CACHE = "nocache"

Params = Union[str, Mapping[str, object]]


def _flatten(params: Params) -> dict:
    if isinstance(params, str):
        params = parse_qs(params.lstrip("?"), keep_blank_values=True)
    flat = {}
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            value = value[0] if value else ""
        flat[key] = "" if value is None else str(value)
    return flat


def state_to_params(state: FilterState) -> dict:
    params = {}
    if state.property_type:
        params[PARAM_PROPERTY_TYPE] = slug_for_type_id(state.property_type)
    if state.listing_type != ListingType.ANY:
        params[PARAM_LISTING_TYPE] = state.listing_type.value
    if state.search_text:
        params[PARAM_SEARCH] = state.search_text
    if state.sort_key is not None:
        prefix = "-" if state.sort_dir == -1 else ""
        params[PARAM_SORT] = f"{prefix}{state.sort_key.value}"
    return params


def state_to_query(state: FilterState) -> str:
    """Query string with leading "?", or "" for the default state."""
    params = state_to_params(state)
    return f"?{urlencode(params)}" if params else ""


def _parse_sort(value: str):
    value = (value or "").strip().lower()
    direction = 1
    if value.startswith("-"):
        direction, value = -1, value[1:]
    try:
        return SortKey(value), direction
    except ValueError:
        return None, 1


def state_from_params(params: Params, fragment: Optional[str] = None) -> FilterState:
    """Build a FilterState from query params; unknown values fall back to defaults."""
    flat = _flatten(params)

    ptype = flat.get(PARAM_PROPERTY_TYPE, "")
    property_type = type_id_from_slug(ptype)
    if not ptype and fragment:
        property_type = type_id_from_slug(fragment.lstrip("#"))

    try:
        listing_type = ListingType(flat.get(PARAM_LISTING_TYPE, "").strip().lower())
    except ValueError:
        listing_type = ListingType.ANY

    sort_key, sort_dir = _parse_sort(flat.get(PARAM_SORT, ""))

    return FilterState(
        property_type=property_type,
        listing_type=listing_type,
        search_text=flat.get(PARAM_SEARCH, ""),
        sort_key=sort_key,
        sort_dir=sort_dir,
    )


def state_from_url(url: str) -> FilterState:
    parts = urlsplit(url)
    return state_from_params(parts.query, fragment=parts.fragment)


def should_bypass_cache(params: Params) -> bool:
    """?nocache (any value except 0/false) skips the session cache."""
    flat = _flatten(params)
    if PARAM_NO_CACHE not in flat:
        return False
    return flat[PARAM_NO_CACHE].strip().lower() not in ("0", "false")
