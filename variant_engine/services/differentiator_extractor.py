from typing import Any, Iterable, List, Mapping, Set, Union

from variant_engine.schemas.attribute import AttributeGroup, DifferentiatorEntry, value_from_json
from variant_engine.schemas.variant import Variant

VariantLike = Union[Variant, Mapping[str, Any]]


def extract_differentiators(variant: VariantLike) -> List[DifferentiatorEntry]:
    """
    Flatten every attribute group of a variant into its differentiator entries.

    Only attributes flagged ``isDifferentiator`` (exactly True) are included.
    Accepts a Variant or a plain dict shaped like one, camelCase or
    snake_case; missing attribute groups count as empty. The result is a set
    in all but type: callers must not depend on its order.
    """
    if variant is None:
        return []
    if isinstance(variant, Variant):
        return _from_groups(variant.attribute_groups)

    groups = variant.get("attributeGroups")
    if groups is None:
        groups = variant.get("attribute_groups")
    return _from_raw_groups(groups or [])


def differentiator_labels(variant: VariantLike) -> Set[str]:
    return {entry.label for entry in extract_differentiators(variant)}


def _from_groups(groups: Iterable[AttributeGroup]) -> List[DifferentiatorEntry]:
    entries = []
    for group in groups:
        for attribute in group.attributes:
            if attribute.is_differentiator is True:
                entries.append(DifferentiatorEntry(
                    label=attribute.label,
                    value=attribute.value,
                    group_name=group.name,
                ))
    return entries


def _from_raw_groups(groups: Iterable[Mapping[str, Any]]) -> List[DifferentiatorEntry]:
    entries = []
    for group in groups:
        if isinstance(group, AttributeGroup):
            entries.extend(_from_groups([group]))
            continue
        group_name = group.get("name") or ""
        for attribute in group.get("attributes") or []:
            flag = attribute.get("isDifferentiator", attribute.get("is_differentiator"))
            if flag is True:
                entries.append(DifferentiatorEntry(
                    label=attribute.get("label", ""),
                    value=value_from_json(attribute.get("value")),
                    group_name=group_name,
                ))
    return entries
