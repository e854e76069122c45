from typing import Dict, List, Sequence

from variant_engine.schemas.attribute import describe_value, is_blank
from variant_engine.schemas.variant import ConsistencyReport, DifferentiatorSummary, Variant, VariantConsistencyRow
from variant_engine.services.differentiator_extractor import VariantLike, differentiator_labels, extract_differentiators


def check_consistency(all_variants: Sequence[VariantLike], candidate_index: int) -> ConsistencyReport:
    """
    Compare the candidate's differentiator labels with every other variant.

    The comparison is bidirectional: a label the other variant has and the
    candidate lacks is reported, and so is a label the candidate has and the
    other variant lacks. Labels are reported once, in first-seen order.
    Labels are ordered alphabetically within a single comparison so repeated
    runs over the same collection give the same list.
    """
    candidate_labels = differentiator_labels(all_variants[candidate_index])
    missing: List[str] = []

    for index, other in enumerate(all_variants):
        if index == candidate_index:
            continue
        other_labels = differentiator_labels(other)
        for label in sorted(other_labels - candidate_labels):
            missing.append(label)
        for label in sorted(candidate_labels - other_labels):
            missing.append(label)

    missing = list(dict.fromkeys(missing))
    return ConsistencyReport(is_valid=not missing, missing_attributes=missing)


def get_all_differentiator_attributes(all_variants: Sequence[VariantLike]) -> List[str]:
    """Union of every differentiator label in the product, first-seen order."""
    labels: Dict[str, None] = {}
    for variant in all_variants:
        for entry in extract_differentiators(variant):
            labels.setdefault(entry.label, None)
    return list(labels)


def detect_varying_attributes(all_variants: Sequence[VariantLike]) -> List[str]:
    """
    Labels whose non-empty values differ between variants.

    Looks at every attribute, flagged or not; this is what the editor shows as
    automatically detected differentiators.
    """
    values_by_label: Dict[str, set] = {}
    for variant in all_variants:
        for group in _groups_of(variant):
            for attribute in group.attributes:
                values = values_by_label.setdefault(attribute.label, set())
                if not is_blank(attribute.value):
                    values.add(describe_value(attribute.value))
    return [label for label, values in values_by_label.items() if len(values) > 1]


def summarize_differentiators(all_variants: Sequence[VariantLike]) -> DifferentiatorSummary:
    rows = []
    for index, variant in enumerate(all_variants):
        report = check_consistency(all_variants, index)
        rows.append(VariantConsistencyRow(
            index=index,
            variant_id=_field(variant, "id"),
            name=_field(variant, "name") or "",
            is_valid=report.is_valid,
            missing_attributes=report.missing_attributes,
        ))
    return DifferentiatorSummary(
        differentiator_attributes=get_all_differentiator_attributes(all_variants),
        varying_attributes=detect_varying_attributes(all_variants),
        variants=rows,
    )


def _groups_of(variant: VariantLike):
    if isinstance(variant, Variant):
        return variant.attribute_groups
    return Variant.model_validate(dict(variant)).attribute_groups


def _field(variant: VariantLike, name: str):
    if isinstance(variant, dict):
        return variant.get(name)
    return getattr(variant, name, None)
