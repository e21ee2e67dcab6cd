import logging
from typing import Any, Dict, List, Sequence

import numpy as np
import pandas as pd

from .axis_scoring import dedupe_latest
from .models import AssessmentSpec, InvalidSubmissionError, ResponseEvent
from .normalizer import normalize

logger = logging.getLogger(__name__)

def calculate_cronbach_alpha(contributions: pd.DataFrame) -> float:
    """
    Cronbach's alpha of one axis from its item covariance matrix.

    Rows are respondents and columns are the items keyed to the axis, with
    no missing cells. The covariance trace is the summed item variance and
    the sum of every entry is the variance of respondents' totals, so
    alpha = k / (k - 1) * (1 - trace / total). NaN for fewer than two items.
    When totals never vary the result is 1.0 if no item varies either, and
    0.0 when the items cancel each other out.
    """
    n_items = contributions.shape[1]
    if n_items < 2:
        return np.nan

    covariance = np.atleast_2d(np.cov(contributions.to_numpy(dtype=float), rowvar=False, ddof=1))
    summed_item_variance = float(np.trace(covariance))
    total_variance = float(covariance.sum())

    if np.isclose(total_variance, 0.0):
        return 1.0 if np.isclose(summed_item_variance, 0.0) else 0.0
    return n_items / (n_items - 1) * (1 - summed_item_variance / total_variance)

def build_contribution_frames(
    spec: AssessmentSpec,
    respondents: Sequence[Sequence[ResponseEvent]],
) -> Dict[str, pd.DataFrame]:
    """
    Pivots every respondent's signed contributions into one DataFrame per axis.

    Rows are respondents, columns are the items that feed the axis; a cell is
    NaN where the respondent skipped the item, answered 'unsure', or gave an
    invalid response.
    """
    targets = {item.id: item for item in spec.items}
    targets.update({vignette.id: vignette for vignette in spec.vignettes})
    axis_ids = [axis.id for axis in spec.axes]
    rows: Dict[str, List[Dict[str, float]]] = {axis_id: [] for axis_id in axis_ids}

    for index, responses in enumerate(respondents):
        per_axis: Dict[str, Dict[str, float]] = {axis_id: {} for axis_id in axis_ids}
        for event in dedupe_latest(responses):
            target = targets.get(event.item_id)
            if target is None:
                continue
            try:
                contributions = normalize(target, event.value, spec.scoring, known_axes=per_axis.keys())
            except InvalidSubmissionError as e:
                logger.debug(f"Respondent {index}: skipping '{event.item_id}': {e}")
                continue
            for contribution in contributions:
                if not contribution.unsure:
                    per_axis[contribution.axis_id][event.item_id] = contribution.value
        for axis_id in axis_ids:
            rows[axis_id].append(per_axis[axis_id])

    return {axis_id: pd.DataFrame(axis_rows) for axis_id, axis_rows in rows.items()}

def _native(obj: Any) -> Any:
    """Converts numpy/pandas scalars to plain Python types for JSON serialization."""
    if isinstance(obj, dict):
        return {k: _native(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_native(i) for i in obj]
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return None if np.isnan(obj) else float(obj)
    return obj

def generate_reliability_report(
    spec: AssessmentSpec,
    respondents: Sequence[Sequence[ResponseEvent]],
) -> Dict[str, Any]:
    """
    Internal-consistency report of the assessment content, one entry per axis.

    Alpha is computed over respondents who answered every item of the axis.
    Axes that cannot be tested (fewer than two items or complete respondents)
    report alpha None and do not affect overall_pass.

    Args:
        spec: The assessment whose items are checked.
        respondents: One response list per respondent (real or simulated).

    Returns:
        A JSON-serializable dictionary.
    """
    threshold = spec.scoring.reliability_alpha_threshold
    frames = build_contribution_frames(spec, respondents)
    report: Dict[str, Any] = {
        "cronbach_alpha_threshold": threshold,
        "respondent_count": len(respondents),
        "axes": {},
        "overall_pass": True,
    }

    for axis in spec.axes:
        frame = frames[axis.id]
        complete = frame.dropna() if not frame.empty else frame
        testable = frame.shape[1] >= 2 and complete.shape[0] >= 2
        alpha = calculate_cronbach_alpha(complete) if testable else np.nan
        is_pass = bool(testable and not np.isnan(alpha) and alpha >= threshold)

        report["axes"][axis.id] = {
            "name": axis.name,
            "cronbach_alpha": alpha,
            "pass": is_pass,
            "testable": testable,
            "item_count": frame.shape[1],
            "respondent_count": complete.shape[0],
            "item_statistics": {
                item_id: {
                    "mean": frame[item_id].mean(),
                    "variance": frame[item_id].var(ddof=1),
                    "stddev": frame[item_id].std(ddof=1),
                    "min": frame[item_id].min(),
                    "max": frame[item_id].max(),
                }
                for item_id in frame.columns
            },
        }
        if testable and not is_pass:
            report["overall_pass"] = False

    return _native(report)
