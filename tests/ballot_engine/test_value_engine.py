import random
from pathlib import Path

import pytest

from services.ballot_engine.alignment import AlignmentPolicy
from services.ballot_engine.engine import ValueEngine
from services.ballot_engine.models import (
    AxisPosition,
    BinaryResponse,
    BlueprintProfile,
    DomainProfile,
    InvalidSubmissionError,
    ResponseEvent,
    UnknownEntityError,
)

ASSETS_DIR = Path(__file__).resolve().parents[2] / "assets"

def _civic_profile(spec, positions, confidence=0.8):
    """Profile over the civic layout with evidence on `positions` only."""
    domains = []
    for domain in spec.domains:
        axes = []
        for axis in spec.axes:
            if axis.domain_id != domain.id:
                continue
            if axis.id in positions:
                axes.append(AxisPosition(
                    axis_id=axis.id,
                    value_0_10=positions[axis.id],
                    confidence_0_1=confidence,
                    source="learned_from_swipes",
                ))
            else:
                axes.append(AxisPosition(axis_id=axis.id))
        domains.append(DomainProfile(domain_id=domain.id, axes=axes))
    return BlueprintProfile(domains=domains)

# --- Construction ---

def test_missing_spec_file():
    with pytest.raises(FileNotFoundError, match="Assessment spec not found"):
        ValueEngine(spec_path="/nonexistent/civic_axes.yml")

def test_missing_ballot_file():
    with pytest.raises(FileNotFoundError, match="Ballot not found"):
        ValueEngine(spec_path=str(ASSETS_DIR / "civic_axes.yml"), ballot_path="/nonexistent/ballot.yml")

def test_engine_loads_content(civic_engine):
    assert len(civic_engine.spec.axes) == 15
    assert set(civic_engine.contests) == {"mayor", "council_d3"}
    assert "prop_housing_bond" in civic_engine.measures
    assert "vignette_budget" in civic_engine.targets
    assert "econ_01" in civic_engine.targets

# --- Session composition ---

def test_get_items_balanced(civic_engine):
    items = civic_engine.get_items(10, rng=random.Random(4))
    assert len(items) == 10
    assert len({i.id for i in items}) == 10

def test_get_items_random_with_level_filter(civic_engine):
    items = civic_engine.get_items(50, balanced=False, rng=random.Random(4), level="state")
    assert items
    assert all(i.level == "state" for i in items)

def test_get_items_balanced_with_level_filter(civic_engine):
    items = civic_engine.get_items(15, rng=random.Random(4), level="state")
    assert items
    assert all(i.level == "state" for i in items)

def test_get_items_balanced_with_tag_filter(civic_engine):
    # Both tagged items feed the same axis, so ask for two per axis
    items = civic_engine.get_items(30, rng=random.Random(4), tags=["benefits"])
    assert {i.id for i in items} == {"econ_01", "econ_02"}

def test_get_vignettes_in_catalog_order(civic_engine):
    vignettes = civic_engine.get_vignettes(randomize=False)
    assert [v.id for v in vignettes] == ["vignette_budget", "vignette_safety", "vignette_grid"]

# --- Validation ---

def test_validate_accepts_good_responses(civic_engine, event):
    civic_engine.validate([
        event("econ_01", "agree"),
        event("econ_03", likert=4, offset=1),
        event("econ_06", slider=2, offset=2),
        event("vignette_budget", option="rebate", offset=3),
    ])

def test_validate_rejects_unknown_item(civic_engine, event):
    with pytest.raises(InvalidSubmissionError, match="Unknown item 'nope'"):
        civic_engine.validate([event("econ_01", "agree"), event("nope", "agree")])

def test_validate_rejects_mismatched_kind(civic_engine, event):
    with pytest.raises(InvalidSubmissionError, match="expects a likert response"):
        civic_engine.validate([event("econ_03", "agree")])

def test_validate_rejects_out_of_range_likert(civic_engine, event):
    with pytest.raises(InvalidSubmissionError):
        civic_engine.validate([event("econ_03", likert=9)])

# --- Assessment ---

def test_assess_runs_full_pipeline(civic_engine, event):
    responses = [
        event("econ_01", "agree"),
        event("econ_02", "disagree", offset=1),
        event("econ_03", likert=5, offset=2),
        event("vignette_budget", option="expand_services", offset=3),
    ]
    result = civic_engine.assess(responses)
    assert set(result) == {
        "axis_scores", "profile", "meta_dimensions", "spectrum", "archetype",
        "confidence", "confidence_label", "value_summary", "value_framings",
    }
    assert len(result["axis_scores"]) == 15
    safetynet = result["profile"].positions()["econ_safetynet"]
    assert safetynet.source == "learned_from_swipes"
    assert safetynet.value_0_10 < 5
    assert result["meta_dimensions"]["responsibility_orientation"] > 0
    assert [s.meta_dimension for s in result["spectrum"]] == [
        "responsibility_orientation", "change_tempo", "governance_style",
    ]
    assert result["archetype"] is not None
    assert result["confidence_label"] in {"Low", "Medium", "High"}
    assert "collective wellbeing" in result["value_summary"]

def test_assess_skips_bad_responses(civic_engine, event):
    result = civic_engine.assess([event("unknown_item", "agree"), event("econ_03", "agree", offset=1)])
    assert all(s.n_answered == 0 for s in result["axis_scores"])

def test_assess_with_empty_responses(civic_engine):
    result = civic_engine.assess([])
    assert all(not p.has_evidence for p in result["profile"].positions().values())
    assert result["meta_dimensions"] == {
        "responsibility_orientation": 0.0, "change_tempo": 0.0, "governance_style": 0.0,
    }

def test_assess_honours_importance(civic_engine, event):
    result = civic_engine.assess([event("econ_01", "agree")], importance={"econ": 9})
    econ = next(d for d in result["profile"].domains if d.domain_id == "econ")
    assert econ.importance == 9

def test_assess_without_archetypes(schwartz_engine):
    result = schwartz_engine.assess([
        ResponseEvent(item_id="sv_univ_1", value={"kind": "likert", "value": 5}),
    ])
    assert result["archetype"] is None
    assert len(result["spectrum"]) == 2

def _openness_answers(event):
    return [
        event("sv_sdir_1", likert=5),
        event("sv_sdir_2", likert=5, offset=1),
        event("sv_stim_1", likert=5, offset=2),
        event("sv_stim_2", likert=4, offset=3),
    ]

def test_schwartz_assess_names_its_leading_value(schwartz_engine, event):
    result = schwartz_engine.assess(_openness_answers(event))
    assert result["meta_dimensions"]["openness_vs_conservation"] > 0.1
    assert result["meta_dimensions"]["self_transcendence_vs_enhancement"] == 0.0
    assert [(f.meta_dimension, f.pole) for f in result["value_framings"]] == [
        ("openness_vs_conservation", "positive"),
    ]
    assert result["value_summary"] == "Your value profile centers on independence and new experience."

# --- Ballot ---

def test_unknown_contest_and_measure(civic_engine):
    with pytest.raises(UnknownEntityError, match="Unknown contest 'governor'"):
        civic_engine.get_contest("governor")
    with pytest.raises(UnknownEntityError, match="Unknown measure 'prop_z'"):
        civic_engine.get_measure("prop_z")

def test_engine_without_ballot_knows_no_contests(schwartz_engine):
    assert schwartz_engine.ballot is None
    with pytest.raises(UnknownEntityError):
        schwartz_engine.get_contest("mayor")

def test_match_contest_ranks_closest_candidate_first(civic_engine):
    profile = _civic_profile(civic_engine.spec, {
        "econ_investment": 2,
        "econ_safetynet": 3,
        "housing_affordability_tools": 2,
        "housing_supply_zoning": 3,
        "climate_ambition": 2,
        "justice_policing_accountability": 3,
    })
    results = civic_engine.match_contest("mayor", profile)
    assert [r.entity_id for r in results] == ["martinez", "thompson"]
    assert results[0].match_percent == 100
    assert results[0].is_best_match
    assert results[1].match_percent < 50

def test_custom_policy_changes_categories():
    strict = ValueEngine(
        spec_path=str(ASSETS_DIR / "civic_axes.yml"),
        ballot_path=str(ASSETS_DIR / "ballot.yml"),
        policy=AlignmentPolicy(strong_max_difference=0, moderate_max_difference=0.5),
    )
    profile = _civic_profile(strict.spec, {"econ_investment": 4})
    results = strict.match_contest("council_d3", profile)
    okafor = next(r for r in results if r.entity_id == "okafor")
    assert okafor.per_axis_comparison[0].alignment_category == "disagree"

def test_recommend_with_resonance(civic_engine):
    profile = _civic_profile(civic_engine.spec, {
        "econ_investment": 0,
        "econ_safetynet": 0,
        "housing_affordability_tools": 0,
    })
    recommendation = civic_engine.recommend("prop_housing_bond", profile)
    assert recommendation.measure_id == "prop_housing_bond"
    assert recommendation.vote == "yes"
    assert recommendation.resonance == [
        "this aligns with your preference for solutions that spread risk and responsibility broadly"
    ]
    assert recommendation.tension == []

def test_recommend_with_tension(civic_engine):
    profile = _civic_profile(civic_engine.spec, {
        "econ_investment": 10,
        "econ_safetynet": 10,
        "housing_affordability_tools": 10,
    })
    recommendation = civic_engine.recommend("prop_housing_bond", profile)
    assert recommendation.vote == "no"
    assert recommendation.resonance == []
    assert len(recommendation.tension) == 1

def test_recommend_without_evidence(civic_engine):
    recommendation = civic_engine.recommend("prop_clean_energy", _civic_profile(civic_engine.spec, {}))
    assert recommendation.insufficient_data
    assert recommendation.vote is None
    assert recommendation.resonance == []
    assert recommendation.tension == []

def test_recommend_does_not_change_profile(civic_engine):
    profile = _civic_profile(civic_engine.spec, {"climate_ambition": 1})
    before = profile.model_dump()
    civic_engine.recommend("prop_clean_energy", profile)
    assert profile.model_dump() == before

def test_binary_response_model_rejects_unknown_answer():
    with pytest.raises(ValueError):
        BinaryResponse(answer="maybe")

# --- Value-vector matching ---

def test_match_contest_by_values(schwartz_ballot_engine, event):
    results = schwartz_ballot_engine.match_contest_by_values("school_board", _openness_answers(event))
    assert [r.entity_id for r in results] == ["ng", "brandt"]
    assert results[0].is_best_match
    assert results[0].match_percent > 90
    assert results[1].match_percent < 10
    assert {c.axis_id for c in results[0].per_axis_comparison} == {"self_direction", "stimulation"}

def test_match_contest_by_values_without_answers(civic_engine):
    results = civic_engine.match_contest_by_values("mayor", [])
    assert all(r.insufficient_data for r in results)
    assert [r.entity_id for r in results] == ["martinez", "thompson"]

def test_match_contest_by_values_unknown_contest(civic_engine):
    with pytest.raises(UnknownEntityError):
        civic_engine.match_contest_by_values("governor", [])

def test_values_ballot_recommendation_uses_schwartz_framing(schwartz_ballot_engine, event):
    responses = [
        event("sv_univ_1", likert=5),
        event("sv_univ_2", likert=5, offset=1),
        event("sv_univ_3", likert=5, offset=2),
    ]
    profile = schwartz_ballot_engine.profile(responses)
    recommendation = schwartz_ballot_engine.recommend("measure_open_space", profile)
    assert recommendation.vote == "yes"
    assert recommendation.resonance == [
        "this aligns with your preference for policies that protect others and the environment"
    ]
