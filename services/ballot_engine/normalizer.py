# services/ballot_engine/normalizer.py
# Turns one raw response into signed per-axis contributions.

import logging
from typing import Collection, List, Optional, Union

from .models import (
    AssessmentItem,
    AxisContribution,
    BinaryResponse,
    LikertResponse,
    ResponseValue,
    ScoringConfig,
    SliderResponse,
    Vignette,
    VignetteSelection,
    InvalidSubmissionError,
)

logger = logging.getLogger(__name__)

LIKERT_MIN, LIKERT_MAX, LIKERT_MID = 1, 5, 3
SLIDER_MIN, SLIDER_MAX, SLIDER_MID = 0, 10, 5

ScorableTarget = Union[AssessmentItem, Vignette]

def _directional(
    item: AssessmentItem,
    magnitude: float,
    known_axes: Optional[Collection[str]],
    unsure: bool = False,
) -> List[AxisContribution]:
    contributions = []
    for axis_id, direction in item.axis_keys.items():
        if known_axes is not None and axis_id not in known_axes:
            logger.warning(f"Ignoring unknown axis '{axis_id}' on item '{item.id}'")
            continue
        value = 0.0 if unsure else direction * magnitude
        contributions.append(AxisContribution(axis_id=axis_id, value=value, unsure=unsure))
    return contributions

def _normalize_binary(item, response: BinaryResponse, scoring, known_axes):
    if item.kind != "binary":
        raise InvalidSubmissionError(f"Item '{item.id}' expects a {item.kind} response, got binary")
    if response.answer == "unsure":
        return _directional(item, 0.0, known_axes, unsure=True)
    scale = scoring.response_scale.agree if response.answer == "agree" else scoring.response_scale.disagree
    return _directional(item, scale, known_axes)

def _normalize_likert(item, response: LikertResponse, scoring, known_axes):
    if item.kind != "likert":
        raise InvalidSubmissionError(f"Item '{item.id}' expects a {item.kind} response, got likert")
    if not LIKERT_MIN <= response.value <= LIKERT_MAX:
        raise InvalidSubmissionError(
            f"Likert value {response.value} for item '{item.id}' is outside {LIKERT_MIN}-{LIKERT_MAX}"
        )
    # (value - 3) spans -2..+2; rescale so a 5 weighs the same as a binary agree
    magnitude = (response.value - LIKERT_MID) * scoring.max_item_contribution / (LIKERT_MAX - LIKERT_MID)
    return _directional(item, magnitude, known_axes)

def _normalize_slider(item, response: SliderResponse, scoring, known_axes):
    if item.kind != "slider":
        raise InvalidSubmissionError(f"Item '{item.id}' expects a {item.kind} response, got slider")
    if not SLIDER_MIN <= response.tick <= SLIDER_MAX:
        raise InvalidSubmissionError(
            f"Slider tick {response.tick} for item '{item.id}' is outside {SLIDER_MIN}-{SLIDER_MAX}"
        )
    unit = (response.tick - SLIDER_MID) / (SLIDER_MAX - SLIDER_MID)
    return _directional(item, unit * scoring.max_item_contribution, known_axes)

def _normalize_vignette(vignette: Vignette, response: VignetteSelection, scoring, known_axes):
    if response.vignette_id != vignette.id:
        raise InvalidSubmissionError(
            f"Selection names vignette '{response.vignette_id}' but was submitted for '{vignette.id}'"
        )
    option = next((o for o in vignette.options if o.id == response.option_id), None)
    if option is None:
        raise InvalidSubmissionError(f"Unknown option '{response.option_id}' for vignette '{vignette.id}'")

    limit = scoring.max_item_contribution
    contributions = []
    for axis_id, effect in option.axis_effects.items():
        if known_axes is not None and axis_id not in known_axes:
            logger.warning(f"Ignoring unknown axis '{axis_id}' on vignette option '{vignette.id}/{option.id}'")
            continue
        value = max(-limit, min(limit, effect * limit))
        contributions.append(AxisContribution(axis_id=axis_id, value=value))
    return contributions

def normalize(
    target: ScorableTarget,
    response: ResponseValue,
    scoring: ScoringConfig,
    known_axes: Optional[Collection[str]] = None,
) -> List[AxisContribution]:
    """
    Converts a single response into signed contributions, one per affected axis.

    Args:
        target: The assessment item (binary/likert/slider) or vignette being answered.
        response: One of the tagged response variants.
        scoring: Scale constants shared by every modality feeding the same axes.
        known_axes: When given, axis keys outside this set are skipped and logged.

    Returns:
        A list of AxisContribution. 'unsure' answers yield zero-valued
        contributions flagged unsure so the scorer can count them separately.

    Raises:
        InvalidSubmissionError: If the response does not fit the target.
    """
    if isinstance(target, Vignette):
        if not isinstance(response, VignetteSelection):
            raise InvalidSubmissionError(f"Vignette '{target.id}' expects a vignette selection, got {response.kind}")
        return _normalize_vignette(target, response, scoring, known_axes)

    if isinstance(response, BinaryResponse):
        return _normalize_binary(target, response, scoring, known_axes)
    if isinstance(response, LikertResponse):
        return _normalize_likert(target, response, scoring, known_axes)
    if isinstance(response, SliderResponse):
        return _normalize_slider(target, response, scoring, known_axes)
    raise InvalidSubmissionError(f"Item '{target.id}' cannot take a {response.kind} response")
