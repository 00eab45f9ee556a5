# Models package
from .snapshot import (
    Snapshot,
    ListingsResponse,
    BrokersResponse,
    LeaseSpacesResponse,
    RefreshResponse,
    HealthResponse,
)
from .listing import (
    ListingType,
    SortKey,
    SizeUnit,
    BrokerChip,
    Highlight,
    SizeDebug,
    EnrichedListing,
    FilterState,
)
