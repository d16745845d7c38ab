# studysphere/schemas/billing.py
from enum import Enum
from typing import Any, Optional, Union

from pydantic import Field

from .base import CamelModel


class FeatureType(str, Enum):
    SINGLE_USE = "single_use"
    BOOLEAN = "boolean"


class Interval(str, Enum):
    MONTH = "month"
    YEAR = "year"


class Feature(CamelModel):
    id: str
    name: str
    type: FeatureType


class FeatureItem(CamelModel):
    feature_id: str
    included_usage: Optional[int] = None
    interval: Optional[Interval] = None


class PriceItem(CamelModel):
    price: float = Field(ge=0)
    interval: Interval


class Product(CamelModel):
    id: str
    name: str
    is_default: bool = False
    items: list[Union[PriceItem, FeatureItem]] = Field(default_factory=list)

    @property
    def feature_ids(self) -> list[str]:
        return [item.feature_id for item in self.items if isinstance(item, FeatureItem)]


class Catalog(CamelModel):
    features: list[Feature]
    products: list[Product]


class AttachRequest(CamelModel):
    # Optional so missing fields map to MISSING_* codes instead of a 422
    customer_id: Optional[str] = None
    product_id: Optional[str] = None


class AttachResponse(CamelModel):
    success: bool = True
    customer_id: str
    product_id: str
    result: Any = None


class CustomerData(CamelModel):
    name: str
    email: Optional[str] = None


class CustomerIdentity(CamelModel):
    customer_id: str
    customer_data: CustomerData

