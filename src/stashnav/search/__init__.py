"""Fuzzy filtering of the stash list."""

from stashnav.search.fuzzy import FuzzyMatch, filter_indices, fuzzy_score, rank_entries

__all__ = ["FuzzyMatch", "filter_indices", "fuzzy_score", "rank_entries"]
