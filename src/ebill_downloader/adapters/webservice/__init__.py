"""Webservice adapters."""

from .b2b import B2BServiceAdapter

__all__ = ["B2BServiceAdapter"]
