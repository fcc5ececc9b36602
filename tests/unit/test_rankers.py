"""
Unit tests for Copeland, approval and plurality rankers.
"""

import pytest
from conftest import store_from_patterns

from analysis.ballots import BallotStore
from analysis.errors import EmptyCandidateUniverseError
from analysis.pairwise import calculate_pairwise_battles
from analysis.rankers import (
    APPROVAL,
    COPELAND,
    IR,
    PLURALITY,
    Placement,
    competition_places,
    copeland_scores,
    get_places_approval,
    get_places_copeland,
    get_places_plurality,
)


@pytest.mark.unit
class TestCompetitionPlaces:
    def test_distinct_scores(self):
        assert competition_places({"A": 3, "B": 2, "C": 1}) == {
            "A": 1,
            "B": 2,
            "C": 3,
        }

    def test_ties_share_place_and_skip(self):
        assert competition_places({"A": 5, "B": 5, "C": 3, "D": 3, "E": 1}) == {
            "A": 1,
            "B": 1,
            "C": 3,
            "D": 3,
            "E": 5,
        }

    def test_negative_scores(self):
        assert competition_places({"A": -1, "B": 0, "C": 1}) == {
            "A": 3,
            "B": 2,
            "C": 1,
        }


@pytest.mark.unit
def test_copeland_places(bird_store):
    placement = get_places_copeland(bird_store)
    assert placement.method == COPELAND
    assert placement.scores == {
        "Kea": 4,
        "Kakapo": 2,
        "Tui": 0,
        "Kereru": -2,
        "Hoiho": -4,
    }
    assert placement.places == {
        "Kea": 1,
        "Kakapo": 2,
        "Tui": 3,
        "Kereru": 4,
        "Hoiho": 5,
    }


@pytest.mark.unit
def test_copeland_pairwise_tie_scores_zero(scenario_store):
    # A and C tie head-to-head, which counts for neither
    placement = get_places_copeland(scenario_store)
    assert placement.scores == {"A": 1, "B": 0, "C": -1}


@pytest.mark.unit
def test_copeland_accepts_precomputed_matrix(bird_store):
    matrix = calculate_pairwise_battles(bird_store)
    assert get_places_copeland(bird_store, matrix) == get_places_copeland(bird_store)


@pytest.mark.unit
@pytest.mark.invariant
@pytest.mark.parametrize("fixture_name", ["bird_store", "scenario_store"])
def test_copeland_zero_sum(fixture_name, request):
    store = request.getfixturevalue(fixture_name)
    assert sum(copeland_scores(calculate_pairwise_battles(store)).values()) == 0


@pytest.mark.unit
def test_approval_places(bird_store):
    placement = get_places_approval(bird_store)
    assert placement.method == APPROVAL
    assert placement.scores["Kakapo"] == 85
    assert placement.scores["Kea"] == 85
    assert placement.places == {
        "Kakapo": 1,
        "Kea": 1,
        "Tui": 3,
        "Kereru": 4,
        "Hoiho": 5,
    }
    assert placement.winners == ["Kakapo", "Kea"]


@pytest.mark.unit
def test_plurality_places(bird_store):
    placement = get_places_plurality(bird_store)
    assert placement.method == PLURALITY
    assert placement.places == {
        "Kakapo": 1,
        "Kea": 2,
        "Tui": 3,
        "Kereru": 4,
        "Hoiho": 5,
    }


@pytest.mark.unit
def test_absent_candidates_score_zero():
    store = store_from_patterns([(2, ["A", "B"])], candidates=["Z"])
    assert get_places_plurality(store).scores == {"A": 2, "B": 0, "Z": 0}
    assert get_places_approval(store).scores == {"A": 2, "B": 2, "Z": 0}
    assert get_places_plurality(store).places == {"A": 1, "B": 2, "Z": 2}


@pytest.mark.unit
@pytest.mark.parametrize(
    "ranker", [get_places_copeland, get_places_approval, get_places_plurality]
)
def test_empty_universe_rejected(ranker):
    with pytest.raises(EmptyCandidateUniverseError):
        ranker(BallotStore.from_records([]))


@pytest.mark.unit
@pytest.mark.invariant
@pytest.mark.parametrize(
    "ranker", [get_places_copeland, get_places_approval, get_places_plurality]
)
def test_rankers_are_idempotent(ranker, bird_store):
    assert ranker(bird_store) == ranker(bird_store)


@pytest.mark.unit
def test_placement_frame():
    placement = Placement(PLURALITY, {"B": 2, "A": 1, "C": 2})
    df = placement.to_frame()
    assert list(df["candidate"]) == ["A", "B", "C"]
    assert list(df["place"]) == [1, 2, 2]
    assert set(df["method"]) == {PLURALITY}


@pytest.mark.unit
def test_placement_is_read_only(bird_store):
    source = {"A": 1, "B": 2}
    placement = Placement(IR, source)
    source["C"] = 3
    assert "C" not in placement.places

    with pytest.raises(TypeError):
        placement.places["A"] = 5

    approval = get_places_approval(bird_store)
    with pytest.raises(TypeError):
        approval.scores["Hoiho"] = 100
    assert approval.place_of("Hoiho") == 5
