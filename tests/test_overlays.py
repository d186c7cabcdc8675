import itertools

import pytest

from shared.vmix.overlays import (
    EXTERNAL,
    OverlayAction,
    OverlayBlocked,
    OverlayExclusivityController,
    OverlayPreconditionFailed,
    OverlayRefused,
    default_overlay_actions,
)


@pytest.fixture
def controller():
    return OverlayExclusivityController(default_overlay_actions())


def test_default_actions_share_one_input():
    actions = {a.action_id: a for a in default_overlay_actions("card", "pair")}
    shared = [a for a in actions.values() if a.input_key == "card"]
    assert {a.action_id for a in shared} == {"coachTeamA", "coachTeamB", "referee1Show", "referee2Show"}
    assert actions["refereesPair"].input_key == "pair"
    assert actions["coachTeamB"].field_values == {"Name": "teamB.coach"}


def test_activation_blocks_siblings_but_not_itself(controller):
    controller.activate("coachTeamA")

    assert controller.is_active("coachTeamA")
    assert not controller.is_blocked("coachTeamA")
    assert controller.is_blocked("referee1Show")
    assert not controller.is_blocked("refereesPair")


def test_blocked_activation_is_refused_without_state_change(controller, match):
    controller.activate("coachTeamA")

    with pytest.raises(OverlayBlocked) as exc:
        controller.check_activation("referee1Show", match)
    assert exc.value.holder == "coachTeamA"
    assert "Coach team A" in exc.value.reason

    with pytest.raises(OverlayBlocked):
        controller.activate("referee1Show")
    assert controller.is_active("coachTeamA")
    assert not controller.is_active("referee1Show")


def test_missing_data_fails_precondition(controller, match):
    with pytest.raises(OverlayPreconditionFailed) as exc:
        controller.check_activation("coachTeamB", match)
    assert exc.value.reason == "Team B coach name is not set"
    assert exc.value.data_map_key == "teamB.coach"

    with pytest.raises(OverlayRefused):
        controller.check_activation("refereesPair", match)

    assert controller.check_activation("referee1Show", match).action_id == "referee1Show"


def test_blocking_is_reported_before_preconditions(controller, match):
    controller.activate("referee1Show")
    with pytest.raises(OverlayBlocked):
        controller.check_activation("coachTeamB", match)


def test_deactivate_returns_input_to_idle(controller):
    controller.activate("coachTeamA")
    assert not controller.deactivate("referee1Show")
    assert controller.deactivate("coachTeamA")
    assert not controller.is_blocked("referee1Show")
    assert controller.holder("referee1") is None


def test_external_activation_blocks_nobody_and_can_be_claimed(controller):
    controller.observe("referee1", True)
    assert controller.holder("referee1") == EXTERNAL
    assert not controller.is_blocked("coachTeamA")
    assert not controller.is_active("coachTeamA")

    controller.activate("coachTeamA")
    assert controller.is_active("coachTeamA")

    # still on air: an owned input stays owned
    controller.observe("referee1", True)
    assert controller.is_active("coachTeamA")

    controller.observe("referee1", False)
    assert controller.holder("referee1") is None


def test_release_restores_previous_holder(controller):
    controller.observe("referee1", True)
    controller.activate("coachTeamA")
    controller.release("coachTeamA", EXTERNAL)
    assert controller.holder("referee1") == EXTERNAL

    controller.activate("coachTeamA")
    controller.release("coachTeamA")
    assert controller.holder("referee1") is None


def test_release_leaves_other_holders_alone(controller):
    controller.activate("referee1Show")
    controller.release("coachTeamA")
    assert controller.is_active("referee1Show")


def test_resolver_maps_bindings_to_one_identity():
    actions = [
        OverlayAction("byTitle", input_key="CARD"),
        OverlayAction("byId", input_key="input-card"),
    ]
    ids = {"CARD": "input-card", "input-card": "input-card"}
    controller = OverlayExclusivityController(actions, resolve=ids.get)

    controller.activate("byTitle")
    assert controller.is_blocked("byId")
    assert controller.resource_of("byId") == "input-card"


def test_at_most_one_active_per_input(controller):
    shared = ["coachTeamA", "coachTeamB", "referee1Show", "referee2Show"]
    for first, second in itertools.permutations(shared, 2):
        controller.reset()
        controller.activate(first)
        with pytest.raises(OverlayBlocked):
            controller.activate(second)
        assert sum(controller.is_active(a) for a in shared) == 1


def test_duplicate_and_unknown_actions():
    with pytest.raises(ValueError):
        OverlayExclusivityController([OverlayAction("a", "x"), OverlayAction("a", "y")])
    with pytest.raises(KeyError):
        OverlayExclusivityController().is_active("nope")
