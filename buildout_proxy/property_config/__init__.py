# Config package
from buildout_proxy.property_config.property_types import (
    PROPERTY_TYPES,
    PROPERTY_SUBTYPES,
    PROPERTY_TYPE_SLUGS,
    LAND_TYPE_ID,
    SQFT_PER_ACRE,
    get_type_label,
    get_subtype_label,
    type_id_from_slug,
    slug_for_type_id,
)
