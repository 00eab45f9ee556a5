"""
Snapshot and API response models.

The snapshot is the server's copy of the Buildout properties collection. It is
persisted as JSON and served as-is from GET /api/listings.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, model_validator


class Snapshot(BaseModel):
    """Last successfully fetched properties collection."""
    properties: List[dict] = []
    last_updated: Optional[datetime] = None
    count: int = 0

    @model_validator(mode="after")
    def _count_matches_properties(self):
        # count always mirrors the list, whatever was stored on disk
        self.count = len(self.properties)
        return self

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.properties


class ListingsResponse(BaseModel):
    """GET /api/listings. count is the snapshot total, even for a sliced page."""
    properties: List[dict]
    last_updated: Optional[datetime] = None
    count: int


class BrokersResponse(BaseModel):
    brokers: List[dict]


class LeaseSpacesResponse(BaseModel):
    message: str = "OK"
    count: int
    lease_spaces: List[dict]


class RefreshResponse(BaseModel):
    ok: bool = True
    count: int
    last_updated: Optional[datetime] = None


class HealthResponse(BaseModel):
    ok: bool = True
    count: int
    last_updated: Optional[datetime] = None
