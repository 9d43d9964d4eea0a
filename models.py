"""
Records that enter the system from outside: the extraction model's JSON and
rows read from vendor spreadsheets.

Validation happens here, once, so the cost and price math downstream can
trust what it is given. The extraction model answers in camelCase; both
camelCase and snake_case field names are accepted.
"""

import logging
import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from portal_data import LEGACY_CATEGORY_ALIASES

logger = logging.getLogger(__name__)


class Category(str, Enum):
    FOOD = "FOOD"
    DRINKS = "DRINKS"
    BOWLING = "BOWLING"
    DARTS = "DARTS"
    MINI_GOLF = "MINI_GOLF"
    SHUFFLEBOARD = "SHUFFLEBOARD"
    KARAOKE = "KARAOKE"
    OTHER_ENTERTAINMENT = "OTHER_ENTERTAINMENT"
    BOOKING_FEE = "BOOKING_FEE"


class _ExtractedModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class LineItem(_ExtractedModel):
    description: str = ""
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    total: Optional[float] = None
    category: Optional[Category] = None
    raw_category: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_category(cls, data):
        """
        Map the model's category text onto Category.

        Unknown values are not an error: the item keeps category=None and the
        original text in raw_category, and the breakdown reports it as dropped.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        raw = data.get("category")
        if raw is None or isinstance(raw, Category):
            return data

        text = str(raw).strip().upper()
        text = LEGACY_CATEGORY_ALIASES.get(text, text)
        if text in Category.__members__:
            data["category"] = text
        else:
            logger.warning("Unrecognized category %r on line item %r", raw, data.get("description"))
            data["category"] = None
            data.setdefault("raw_category", str(raw))
        return data

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value):
        return "" if value is None else str(value)


class PreloadedDrinks(_ExtractedModel):
    quantity: Optional[float] = None
    price_per_person: Optional[float] = None
    total: Optional[float] = None


class EventDetails(_ExtractedModel):
    model_config = ConfigDict(extra="allow")

    event_name: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    guests: Optional[int] = None
    contact: Optional[str] = None

    @field_validator("guests", mode="before")
    @classmethod
    def _lenient_guests(cls, value):
        # "approx. 40" and similar should not sink the whole document
        if value is None or isinstance(value, int):
            return value
        try:
            return int(float(str(value).strip()))
        except ValueError:
            return None

    @field_validator("event_name", "date", "time", "contact", mode="before")
    @classmethod
    def _as_text(cls, value):
        return None if value is None else str(value)


class PartySheetAnalysis(_ExtractedModel):
    event_details: EventDetails = Field(default_factory=EventDetails)
    line_items: List[LineItem] = Field(default_factory=list)
    preloaded_drinks: Optional[PreloadedDrinks] = None

    @field_validator("event_details", "line_items", mode="before")
    @classmethod
    def _null_is_empty(cls, value, info):
        if value is None:
            return {} if info.field_name == "event_details" else []
        return value


class PriceObservation(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_name: str
    unit_price: float
    date: datetime.date
    source_file: str
