import logging
from typing import Any, Dict, Iterable

import yaml
from pydantic import ValidationError

from services.ballot_engine.models import AssessmentSpec, Ballot

logger = logging.getLogger(__name__)

class SpecValidationError(ValueError):
    """Custom exception for content integrity errors not covered by Pydantic."""
    pass

def _check_unique(ids: Iterable[str], label: str) -> None:
    seen = set()
    for entity_id in ids:
        if entity_id in seen:
            raise SpecValidationError(f"Duplicate {label} ID found: {entity_id}")
        seen.add(entity_id)

def load_assessment_spec_data(data: Dict[str, Any]) -> AssessmentSpec:
    """
    Validates the raw dictionary data against the AssessmentSpec model
    and performs the cross-reference checks Pydantic cannot express.

    Meta-dimension mappings and archetype centroids that point at missing
    axes or dimensions are content defects and fail here. Items with an
    unknown axis key are only logged: the scorer skips that key and keeps
    the rest of the item.
    """
    try:
        spec = AssessmentSpec.model_validate(data)
    except ValidationError as e:
        raise SpecValidationError(f"Assessment spec failed schema validation: {e}") from e

    _check_unique((d.id for d in spec.domains), "domain")
    _check_unique((a.id for a in spec.axes), "axis")
    _check_unique((i.id for i in spec.items), "item")
    _check_unique((v.id for v in spec.vignettes), "vignette")
    # Responses address items and vignettes through the same item_id field
    _check_unique([i.id for i in spec.items] + [v.id for v in spec.vignettes], "item/vignette")
    _check_unique((m.id for m in spec.meta_dimensions), "meta-dimension")
    _check_unique((a.id for a in spec.archetypes), "archetype")

    domain_ids = {d.id for d in spec.domains}
    axis_ids = {a.id for a in spec.axes}

    for axis in spec.axes:
        if axis.domain_id not in domain_ids:
            raise SpecValidationError(f"Axis '{axis.id}' references unknown domain '{axis.domain_id}'")

    for item in spec.items:
        unknown = sorted(set(item.axis_keys) - axis_ids)
        if unknown:
            logger.warning(f"Item '{item.id}' references unknown axes {unknown}; they will be ignored during scoring")

    for vignette in spec.vignettes:
        _check_unique((o.id for o in vignette.options), f"option (vignette '{vignette.id}')")
        for option in vignette.options:
            unknown = sorted(set(option.axis_effects) - axis_ids)
            if unknown:
                logger.warning(f"Vignette option '{vignette.id}/{option.id}' references unknown axes {unknown}; they will be ignored during scoring")

    scale = spec.scoring.response_scale
    limit = spec.scoring.max_item_contribution
    if abs(scale.agree) > limit or abs(scale.disagree) > limit:
        raise SpecValidationError(
            f"Response scale ({scale.agree}, {scale.disagree}) exceeds max_item_contribution {limit}"
        )

    meta_ids = {m.id for m in spec.meta_dimensions}
    for meta in spec.meta_dimensions:
        if not meta.axes:
            raise SpecValidationError(f"Meta-dimension '{meta.id}' maps no axes")
        for mapping in meta.axes:
            if mapping.axis_id not in axis_ids:
                raise SpecValidationError(f"Meta-dimension '{meta.id}' references unknown axis '{mapping.axis_id}'")
        if meta.framing and set(meta.framing) != {"positive", "negative"}:
            raise SpecValidationError(f"Meta-dimension '{meta.id}' framing must cover both poles, got {sorted(meta.framing)}")
        if not meta.framing:
            logger.warning(f"Meta-dimension '{meta.id}' has no framing content; summaries fall back to its pole labels")

    for archetype in spec.archetypes:
        if set(archetype.centroid) != meta_ids:
            missing = sorted(meta_ids - set(archetype.centroid))
            extra = sorted(set(archetype.centroid) - meta_ids)
            raise SpecValidationError(
                f"Archetype '{archetype.id}' centroid does not match meta-dimensions (missing: {missing}, unknown: {extra})"
            )

    logger.info(
        f"Loaded assessment spec '{spec.name or spec.version}': {len(spec.axes)} axes, "
        f"{len(spec.items)} items, {len(spec.vignettes)} vignettes, {len(spec.archetypes)} archetypes"
    )
    return spec

def load_ballot_data(data: Dict[str, Any], spec: AssessmentSpec) -> Ballot:
    """Validates ballot content and checks every stance and effect against the assessment's axes."""
    try:
        ballot = Ballot.model_validate(data)
    except ValidationError as e:
        raise SpecValidationError(f"Ballot failed schema validation: {e}") from e

    axis_ids = {a.id for a in spec.axes}
    _check_unique((c.id for c in ballot.contests), "contest")
    _check_unique((m.id for m in ballot.measures), "measure")

    for contest in ballot.contests:
        _check_unique((c.id for c in contest.candidates), f"candidate (contest '{contest.id}')")
        for candidate in contest.candidates:
            for axis_id in candidate.axis_stances:
                if axis_id not in axis_ids:
                    raise SpecValidationError(f"Candidate '{candidate.id}' references unknown axis '{axis_id}'")

    for measure in ballot.measures:
        for axis_id in measure.yes_axis_effects:
            if axis_id not in axis_ids:
                raise SpecValidationError(f"Measure '{measure.id}' references unknown axis '{axis_id}'")

    logger.info(f"Loaded ballot {ballot.version}: {len(ballot.contests)} contests, {len(ballot.measures)} measures")
    return ballot

def _read_yaml(file_path: str) -> Dict[str, Any]:
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise SpecValidationError(f"File not found: {file_path}")
    except yaml.YAMLError as e:
        raise SpecValidationError(f"Error parsing YAML file {file_path}: {e}")

    if data is None:
        raise SpecValidationError(f"YAML file is empty or invalid: {file_path}")
    return data

def load_assessment_spec_from_file(file_path: str) -> AssessmentSpec:
    """
    Loads an assessment specification from a YAML file, validates it,
    and returns an AssessmentSpec object.
    """
    return load_assessment_spec_data(_read_yaml(file_path))

def load_ballot_from_file(file_path: str, spec: AssessmentSpec) -> Ballot:
    return load_ballot_data(_read_yaml(file_path), spec)
