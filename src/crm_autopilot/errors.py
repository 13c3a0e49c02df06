"""Error taxonomy shared by the engines, adapters and the dispatcher."""

from __future__ import annotations


class CRMError(Exception):
    """Base class for every error raised by crm-autopilot."""


class DateParseError(CRMError, ValueError):
    """A date-like value could not be parsed. Recovered by the normalizer."""


class SetupLookupError(CRMError, LookupError):
    """A required attribute is missing from the SetUp table."""


class ColumnReferenceError(CRMError, ValueError):
    """A column reference is not a single letter A-Z."""


class TransportError(CRMError):
    """Notification delivery failed."""


class StructuralError(CRMError):
    """An expected table is missing from the store."""
