"""
Duplicate variant detection.

Two variants are duplicates when their differentiator entries are equal as a
set of (label, value) pairs. Every candidate is compared against every other
variant of the product, so a check costs O(n) extractions and comparisons and
checking a whole product is O(n^2). Variant counts per product are small, so
no index is kept.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence

from variant_engine.schemas.attribute import DifferentiatorEntry, canonical_value_key, describe_value, values_equal
from variant_engine.services.differentiator_extractor import VariantLike, extract_differentiators


@dataclass
class DuplicateMatch:
    index: int
    entries: List[DifferentiatorEntry]

    def describe(self) -> List[str]:
        return [f"{entry.label}={describe_value(entry.value)}" for entry in _sorted_entries(self.entries)]


def is_duplicate(candidate: Sequence[DifferentiatorEntry], existing: Sequence[DifferentiatorEntry]) -> bool:
    """
    True when both entry lists hold the same (label, value) pairs.

    Both sides are sorted by label (ties by a canonical rendering of the
    value) and compared position by position. Two empty lists are equal, so
    at most one variant without differentiators can exist per product.
    """
    if len(candidate) != len(existing):
        return False

    for left, right in zip(_sorted_entries(candidate), _sorted_entries(existing)):
        if left.label != right.label:
            return False
        if not values_equal(left.value, right.value):
            return False
    return True


def find_duplicate_variant(
    variants: Sequence[VariantLike],
    candidate: VariantLike,
    candidate_index: Optional[int] = None,
) -> Optional[DuplicateMatch]:
    """First variant (other than ``candidate_index``) whose differentiators equal the candidate's."""
    candidate_entries = extract_differentiators(candidate)
    for index, other in enumerate(variants):
        if index == candidate_index:
            continue
        other_entries = extract_differentiators(other)
        if is_duplicate(candidate_entries, other_entries):
            return DuplicateMatch(index=index, entries=other_entries)
    return None


def check_for_duplicate_variants(
    variants: Sequence[VariantLike],
    candidate: VariantLike,
    candidate_index: Optional[int] = None,
) -> bool:
    return find_duplicate_variant(variants, candidate, candidate_index) is not None


def _sorted_entries(entries: Sequence[DifferentiatorEntry]) -> List[DifferentiatorEntry]:
    return sorted(entries, key=lambda entry: (entry.label, canonical_value_key(entry.value)))
