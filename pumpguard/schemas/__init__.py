"""
API Schemas
===========

Pydantic models for validating request payloads of the status/config API.
"""

from pumpguard.schemas.config import ConfigUpdateRequest, EventsQuery

__all__ = ["ConfigUpdateRequest", "EventsQuery"]
