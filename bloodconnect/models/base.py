# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with shared configuration and field validation helpers.
"""

import re
from datetime import date
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def normalize_email(value: str) -> str:
    """Trim, lower-case and validate an email address."""
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError('Invalid email format')
    return value


def normalize_blood_group(value: str) -> str:
    """Normalize user input such as ' ab + ' to 'AB+'."""
    return re.sub(r'[^A-Z+-]', '', value.strip().upper())


def validate_iso_date(value: str) -> str:
    """Validate a YYYY-MM-DD date string."""
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError('Date must use the YYYY-MM-DD format')
    return value


def validate_clock_time(value: str) -> str:
    """Validate a 24h HH:MM time string."""
    if not TIME_PATTERN.match(value):
        raise ValueError('Time must use the HH:MM (24h) format')
    return value


class CamelModel(BaseModel):
    """Base model serialized with the camelCase keys stored in MongoDB."""

    model_config = ConfigDict(
        # Accept both snake_case field names and camelCase aliases
        alias_generator=to_camel,
        populate_by_name=True,
        # Use enum values instead of enum objects
        use_enum_values=True,
        validate_assignment=True
    )

    def to_document(self) -> dict:
        """Dump the model as a MongoDB document."""
        return self.model_dump(by_alias=True)


class StrictCamelModel(CamelModel):
    """Model for request bodies: unknown keys are rejected."""

    model_config = ConfigDict(extra='forbid')
