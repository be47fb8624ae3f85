"""Contract for turning free-form lease text into a deadline.

The extractor itself (an LLM call in production) lives outside this package.
Whatever it returns is validated here before a sentinel is created from it.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class Extraction(BaseModel):
    """Event name and trigger date pulled out of a lease clause."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_name: str = Field(alias="eventName", min_length=1)
    trigger_date: date = Field(alias="triggerDate")

    @field_validator("trigger_date", mode="before")
    @classmethod
    def _iso_date_only(cls, value):
        # Only bare YYYY-MM-DD strings; no timestamps
        if isinstance(value, date):
            return value
        if not isinstance(value, str) or len(value) != 10:
            raise ValueError("triggerDate must be in YYYY-MM-DD format")
        return value


@runtime_checkable
class DeadlineExtractor(Protocol):
    """Anything that can read a clause and name its deadline.

    *today* is passed so relative phrases ("six months before expiry") can be
    resolved to an absolute date. Returns None when nothing usable was found.
    """

    async def extract(self, text: str, today: date) -> Extraction | None: ...


def parse_extraction(raw: str | dict) -> Extraction | None:
    """Validate an extractor's JSON response. Malformed output yields None."""
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning("Extractor returned invalid JSON")
        return None

    if not isinstance(data, dict):
        logger.warning("Extractor returned %s instead of an object", type(data).__name__)
        return None

    try:
        return Extraction.model_validate(data)
    except ValidationError as exc:
        logger.warning("Extractor output failed validation: %s", exc.errors())
        return None
