import copy
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from services.ballot_engine.engine import ValueEngine
from services.ballot_engine.loader import load_assessment_spec_data, load_ballot_data
from services.ballot_engine.models import (
    AxisPosition,
    BinaryResponse,
    BlueprintProfile,
    DomainProfile,
    LikertResponse,
    ResponseEvent,
    SliderResponse,
    VignetteSelection,
)

ASSETS_DIR = Path(__file__).resolve().parents[1] / "assets"
CIVIC_SPEC_PATH = str(ASSETS_DIR / "civic_axes.yml")
BALLOT_PATH = str(ASSETS_DIR / "ballot.yml")
SCHWARTZ_SPEC_PATH = str(ASSETS_DIR / "schwartz_values.yml")
VALUES_BALLOT_PATH = str(ASSETS_DIR / "ballot_values.yml")

BASE_TIME = datetime(2024, 10, 1, 12, 0, tzinfo=timezone.utc)

# --- Small inline content ---

MINIMAL_SPEC_DATA = {
    "version": "0.1.0",
    "name": "minimal",
    "scoring": {
        "shrinkage_k": 5,
        "max_item_contribution": 2,
        "top_driver_count": 5,
        "response_scale": {"agree": 2, "disagree": -2},
    },
    "domains": [
        {"id": "d1", "name": "Domain One"},
        {"id": "d2", "name": "Domain Two"},
    ],
    "axes": [
        {"id": "ax1", "domain_id": "d1", "name": "Axis One", "pole_a_label": "Alpha", "pole_b_label": "Beta"},
        {"id": "ax2", "domain_id": "d1", "name": "Axis Two", "pole_a_label": "Gamma", "pole_b_label": "Delta"},
        {"id": "ax3", "domain_id": "d2", "name": "Axis Three", "pole_a_label": "Up", "pole_b_label": "Down"},
    ],
    "items": [
        {"id": "b1", "text": "Statement one.", "axis_keys": {"ax1": 1}, "level": "local", "tags": ["tax"]},
        {"id": "b2", "text": "Statement two.", "axis_keys": {"ax1": -1}, "level": "state"},
        {"id": "b3", "text": "Statement three.", "axis_keys": {"ax1": 1}, "level": "local", "tags": ["rent"]},
        {"id": "l1", "kind": "likert", "text": "Rate this.", "axis_keys": {"ax2": 1}},
        {"id": "s1", "kind": "slider", "text": "Slide this.", "axis_keys": {"ax3": -1}},
        {"id": "m1", "text": "Two axes at once.", "axis_keys": {"ax1": 1, "ax2": -1}},
    ],
    "vignettes": [
        {
            "id": "v1",
            "prompt": "Pick one.",
            "options": [
                {"id": "o1", "text": "First", "axis_effects": {"ax1": 0.5, "ax3": -1.0}},
                {"id": "o2", "text": "Second", "axis_effects": {"ax2": 1.5}},
            ],
        }
    ],
    "meta_dimensions": [
        {
            "id": "m_a", "name": "Meta A",
            "positive_label": "Plus A", "negative_label": "Minus A",
            "positive_moderate_label": "Leans plus A", "negative_moderate_label": "Leans minus A",
            "axes": [{"axis_id": "ax1"}, {"axis_id": "ax2"}],
        },
        {
            "id": "m_b", "name": "Meta B",
            "positive_label": "Plus B", "negative_label": "Minus B",
            "axes": [{"axis_id": "ax3"}, {"axis_id": "ax1", "weight": -0.5}],
        },
    ],
    "archetypes": [
        {"id": "arch_one", "name": "One", "traits": ["a"], "centroid": {"m_a": 0.5, "m_b": 0.5}, "summary": "First."},
        {"id": "arch_two", "name": "Two", "traits": ["b"], "centroid": {"m_a": -0.5, "m_b": -0.5}, "summary": "Second."},
        {"id": "arch_three", "name": "Three", "traits": ["c"], "centroid": {"m_a": 0.5, "m_b": -0.5}, "summary": "Third."},
    ],
}

MINIMAL_BALLOT_DATA = {
    "version": "test",
    "contests": [
        {
            "id": "council",
            "office": "Council",
            "candidates": [
                {"id": "far", "name": "Far Candidate", "ballot_order": 1, "axis_stances": {"ax1": 10, "ax2": 0}},
                {"id": "near", "name": "Near Candidate", "ballot_order": 2, "axis_stances": {"ax1": 1, "ax2": 7}},
            ],
        }
    ],
    "measures": [
        {
            "id": "prop_a",
            "title": "Prop A",
            "description": "Moves Axis One toward Alpha.",
            "yes_axis_effects": {"ax1": -1.0},
            "outcomes": {"yes": "More alpha.", "no": "No change."},
        }
    ],
}

@pytest.fixture
def minimal_spec_data():
    """A fresh copy of the inline spec dictionary, safe to mutate."""
    return copy.deepcopy(MINIMAL_SPEC_DATA)

@pytest.fixture
def minimal_spec(minimal_spec_data):
    return load_assessment_spec_data(minimal_spec_data)

@pytest.fixture
def minimal_ballot_data():
    return copy.deepcopy(MINIMAL_BALLOT_DATA)

@pytest.fixture
def minimal_ballot(minimal_ballot_data, minimal_spec):
    return load_ballot_data(minimal_ballot_data, minimal_spec)

# --- Asset-backed content ---

@pytest.fixture(scope="session")
def civic_engine():
    return ValueEngine(spec_path=CIVIC_SPEC_PATH, ballot_path=BALLOT_PATH)

@pytest.fixture(scope="session")
def civic_spec(civic_engine):
    return civic_engine.spec

@pytest.fixture(scope="session")
def schwartz_engine():
    return ValueEngine(spec_path=SCHWARTZ_SPEC_PATH)

@pytest.fixture(scope="session")
def schwartz_ballot_engine():
    return ValueEngine(spec_path=SCHWARTZ_SPEC_PATH, ballot_path=VALUES_BALLOT_PATH)

# --- Builders ---

@pytest.fixture
def event():
    """
    Factory for response events. `offset` is seconds after BASE_TIME.

    event("b1", "agree"), event("l1", likert=4), event("s1", slider=10),
    event("v1", option="o1")
    """
    def _make(item_id, answer=None, likert=None, slider=None, option=None, offset=0, vignette_id=None):
        if likert is not None:
            value = LikertResponse(value=likert)
        elif slider is not None:
            value = SliderResponse(tick=slider)
        elif option is not None:
            value = VignetteSelection(vignette_id=vignette_id or item_id, option_id=option)
        else:
            value = BinaryResponse(answer=answer)
        return ResponseEvent(item_id=item_id, value=value, timestamp=BASE_TIME + timedelta(seconds=offset))
    return _make

@pytest.fixture
def make_profile():
    """
    Factory for hand-built profiles over the minimal spec layout.

    positions: {axis_id: value_0_10} for axes with evidence; the rest stay default.
    """
    layout = {"d1": ["ax1", "ax2"], "d2": ["ax3"]}

    def _make(positions, confidence=0.5, importance=None):
        importance = importance or {}
        domains = []
        for domain_id, axis_ids in layout.items():
            axes = []
            for axis_id in axis_ids:
                if axis_id in positions:
                    axes.append(AxisPosition(
                        axis_id=axis_id,
                        value_0_10=positions[axis_id],
                        confidence_0_1=confidence,
                        source="learned_from_swipes",
                    ))
                else:
                    axes.append(AxisPosition(axis_id=axis_id))
            domains.append(DomainProfile(domain_id=domain_id, importance=importance.get(domain_id, 5.0), axes=axes))
        return BlueprintProfile(domains=domains)
    return _make
