"""
Consumer-side models: the enriched listing rows and the table filter state.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ListingType(str, Enum):
    """Listing-type filter. Matching is exclusive, see query_service."""
    ANY = ""
    LEASE = "lease"
    SALE = "sale"
    BOTH = "both"


class SortKey(str, Enum):
    """Sortable table columns."""
    LOCATION = "location"
    SIZE = "size"
    BROKERS = "brokers"
    TYPE = "type"


class SizeUnit(str, Enum):
    SF = "SF"
    AC = "AC"
    UNKNOWN = ""


class BrokerChip(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str  # HTML-escaped "First Last"
    email: Optional[str] = None


class Highlight(BaseModel):
    """One 'Key Property Highlights' stat (ceiling height, dock doors, ...)."""
    model_config = ConfigDict(frozen=True)

    label: str
    value: str


class SizeDebug(BaseModel):
    """Available-SF trace, only built when debug_sizes is on."""
    model_config = ConfigDict(frozen=True)

    join_key: Optional[str] = None
    space_sizes: List[float] = []
    total_available_sf: float = 0
    building_size_sf: Optional[float] = None


class EnrichedListing(BaseModel):
    """A Buildout listing joined with brokers and active lease spaces."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    listing: dict = {}

    property_type_id: str = ""
    property_subtype_id: str = ""
    lease: bool = False
    sale: bool = False

    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    location: str = ""
    lease_listing_web_title: str = ""
    sale_listing_web_title: str = ""

    broker_display: str = ""
    brokers: List[BrokerChip] = []

    building_size_sf: Optional[float] = None
    total_available_sf: float = 0
    size_value: Optional[float] = None
    size_unit: SizeUnit = SizeUnit.UNKNOWN
    size_display: str = ""

    type_label: str = ""
    pill_class: str = ""
    subtype_label: str = ""
    subtype_type_line: str = ""
    description: str = ""

    listing_url: str = "#"
    brochure_url: Optional[str] = None
    video_url: Optional[str] = None
    image_url: str = ""
    highlights: List[Highlight] = []

    size_debug: Optional[SizeDebug] = None


class FilterState(BaseModel):
    """
    Table state driven by the URL: property type, listing type, search text and
    the active sort column. Immutable; transitions return a new state.
    """
    model_config = ConfigDict(frozen=True)

    property_type: str = ""
    listing_type: ListingType = ListingType.ANY
    search_text: str = ""
    sort_key: Optional[SortKey] = None
    sort_dir: int = 1

    @model_validator(mode="before")
    @classmethod
    def _no_direction_without_key(cls, data):
        # No sort column: direction is always ascending
        if isinstance(data, dict) and data.get("sort_key") is None and data.get("sort_dir") == -1:
            data = {**data, "sort_dir": 1}
        return data

    @field_validator("sort_dir")
    @classmethod
    def _check_sort_dir(cls, v: int) -> int:
        if v not in (-1, 1):
            raise ValueError("sort_dir must be 1 or -1")
        return v

    def toggle_sort(self, key) -> "FilterState":
        """Same column flips direction, a new column starts ascending."""
        key = SortKey(key)
        if self.sort_key == key:
            return self.model_copy(update={"sort_dir": -self.sort_dir})
        return self.model_copy(update={"sort_key": key, "sort_dir": 1})

    def with_search(self, text: str) -> "FilterState":
        return self.model_copy(update={"search_text": text or ""})

    def with_property_type(self, type_id) -> "FilterState":
        return self.model_copy(update={"property_type": str(type_id or "")})

    def with_listing_type(self, listing_type) -> "FilterState":
        return self.model_copy(update={"listing_type": ListingType(listing_type or "")})
