"""Stash stack models."""

from stashnav.stash.listing import ListingParseError, parse_stash_listing
from stashnav.stash.models import StashEntry, StashList, describe_age

__all__ = [
    "ListingParseError",
    "StashEntry",
    "StashList",
    "describe_age",
    "parse_stash_listing",
]
