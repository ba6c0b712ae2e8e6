"""Shared schema building blocks."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.domain import Location


class CamelModel(BaseModel):
    """Serialises with the platform's camelCase keys but accepts snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationModel(BaseModel):
    address: str
    postcode: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    def to_domain(self) -> Location:
        return Location(
            address=self.address,
            postcode=self.postcode,
            latitude=self.latitude,
            longitude=self.longitude,
        )
