"""Location resolution helpers."""

from .matcher import AddressMatch, match_address

__all__ = ["AddressMatch", "match_address"]
