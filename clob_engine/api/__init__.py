"""REST transport for the CLOB."""

from .base import BaseAPIClient, serialize_body
from .clob import CLOBAPI

__all__ = ["BaseAPIClient", "serialize_body", "CLOBAPI"]
