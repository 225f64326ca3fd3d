import pathlib
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from botocore import exceptions as botocore_exceptions
from pytest import mark

from roller import _errors
from roller import _replacer
from roller import _state
from roller import _types
from roller.tests import _utils


@mark.parametrize("instance_count", [1, 2, 3, 5])
def test_run_replacement(instance_count: int):
    """Should replace every original instance, one instance at a time."""
    fleet = _utils.FakeFleet(instance_count=instance_count)
    fleet.template = _types.TemplateRef("lt-new", "web-new", "$Latest")
    fleet.template_images["lt-new"] = _utils.NEW_IMAGE
    fleet.max_capacity = instance_count + 1
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)
    originals = set(fleet.instances)

    with patch.multiple("roller._controller", **fleet.patches()):
        result = _replacer.run_replacement(configs, plan)

    assert result.phase == _types.Phase.DONE
    assert result.remaining == 0
    assert result.cycle == instance_count
    assert set(result.replaced_ids) == originals
    assert fleet.desired_history == [instance_count + 1, instance_count] * (
        instance_count
    )
    assert fleet.max_unavailable <= 1
    assert len(fleet.instances) == instance_count
    assert {i.image_id for i in fleet.instances.values()} == {_utils.NEW_IMAGE}


def test_run_replacement_empty_group():
    """Should finish immediately without touching a group that has no instances."""
    fleet = _utils.FakeFleet(instance_count=0)
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **fleet.patches()):
        result = _replacer.run_replacement(configs, plan)

    assert result.phase == _types.Phase.DONE
    assert result.cycle == 0
    assert not fleet.updates


def test_run_replacement_skip_final_removal_wait():
    """Should stop without waiting for the last original instance to leave."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3, termination_ticks=50)
    configs = _utils.make_configs(skip_final_removal_wait=True)
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **fleet.patches()):
        result = _replacer.run_replacement(configs, plan)

    assert result.remaining == 0
    assert result.cycle == 2
    assert result.replaced_ids == ["i-1"]
    assert fleet.instances["i-2"].lifecycle_state == _utils.TERMINATING


def test_run_replacement_never_healthy():
    """Should fail with a timeout when a new instance never becomes healthy."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    fleet.stuck_ids.add("i-3")
    configs = _utils.make_configs(health_timeout=0.05)
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.PollTimeoutError):
            _replacer.run_replacement(configs, plan)

    assert plan.phase == _types.Phase.AWAITING_NEW_INSTANCE_HEALTHY
    assert plan.remaining == 2


def test_run_replacement_new_instance_terminated():
    """Should fail when the group retires the instance it just launched."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    fleet.terminate_newest = True
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.UnexpectedTerminationError):
            _replacer.run_replacement(configs, plan)

    assert plan.remaining == 2


def test_run_replacement_cancelled():
    """Should abort when the run is cancelled while waiting on the fleet."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    configs = _utils.make_configs()
    fleet.on_tick = lambda f: f.launch_count > 2 and configs.cancelled.set()
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.RunCancelledError):
            _replacer.run_replacement(configs, plan)

    assert plan.remaining == 2


def test_run_replacement_group_removed():
    """Should fail when the group disappears in the middle of the run."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)
    fleet.name = "other"

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.NotFoundError):
            _replacer.run_replacement(configs, plan)


def test_run_replacement_resumes():
    """Should resume from the recorded phase of an interrupted cycle."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    fleet.template = _types.TemplateRef("lt-new", "web-new", "$Latest")
    fleet.template_images["lt-new"] = _utils.NEW_IMAGE
    fleet.desired_capacity = 3
    configs = _utils.make_configs()
    plan = _utils.make_plan(
        fleet,
        steady_capacity=2,
        phase=_types.Phase.AWAITING_NEW_INSTANCE_REGISTERED,
        existing_ids=("i-1", "i-2"),
    )

    with patch.multiple("roller._controller", **fleet.patches()):
        result = _replacer.run_replacement(configs, plan)

    assert result.remaining == 0
    assert result.replaced_ids == ["i-1", "i-2"]
    assert fleet.desired_history == [2, 3, 2]


def test_run_replacement_records_members_before_growing(tmp_path: pathlib.Path):
    """Should record the group members before requesting the extra instance."""
    fleet = _utils.FakeFleet(instance_count=2, max_capacity=3)
    patches = fleet.patches()
    patches["update_group"] = MagicMock(
        side_effect=botocore_exceptions.ClientError(
            {"Error": {"Code": "ValidationError", "Message": "Rejected"}},
            "UpdateAutoScalingGroup",
        )
    )
    configs = _utils.make_configs(state_path=str(tmp_path / "run.yaml"))
    plan = _utils.make_plan(fleet)

    with patch.multiple("roller._controller", **patches):
        with pytest.raises(botocore_exceptions.ClientError):
            _replacer.run_replacement(configs, plan)

    recorded = _state.load(configs, "G", _utils.NEW_IMAGE)
    assert recorded.phase == _types.Phase.GROWING
    assert recorded.existing_ids == ("i-1", "i-2")


def test_run_replacement_resumes_after_growth_request():
    """
    Should keep the recorded members when resuming after the capacity request.

    The group has already launched the new instance, which must still be
    treated as new so retiring it is detected.
    """
    fleet = _utils.FakeFleet(instance_count=1, desired_capacity=2, max_capacity=2)
    fleet.terminate_newest = True
    fleet.tick()
    assert set(fleet.instances) == {"i-1", "i-2"}
    configs = _utils.make_configs()
    plan = _utils.make_plan(
        fleet,
        steady_capacity=1,
        remaining=1,
        phase=_types.Phase.GROWING,
        existing_ids=("i-1",),
    )

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.UnexpectedTerminationError):
            _replacer.run_replacement(configs, plan)

    assert plan.existing_ids == ("i-1",)
    assert plan.remaining == 1
    assert not plan.replaced_ids
