import dataclasses
from unittest.mock import MagicMock
from unittest.mock import patch

from botocore import exceptions as botocore_exceptions

from roller import _configs
from roller import _errors
from roller import _verifier
from roller.tests import _utils


def test_verify_instances():
    """Should report each instance as updated or mismatched."""
    fleet = _utils.FakeFleet(instance_count=2)
    fleet.instances["i-2"].image_id = _utils.NEW_IMAGE
    configs = _utils.make_configs()

    with patch.multiple("roller._controller", **fleet.patches()):
        results = _verifier.verify_instances(configs, "G", _utils.NEW_IMAGE)

    assert results == [
        {
            "instance_id": "i-1",
            "status": _configs.MISMATCHED_STATUS,
            "image_id": _utils.OLD_IMAGE,
            "lifecycle_state": _utils.IN_SERVICE,
        },
        {
            "instance_id": "i-2",
            "status": _configs.UPDATED_STATUS,
            "image_id": _utils.NEW_IMAGE,
            "lifecycle_state": _utils.IN_SERVICE,
        },
    ]


@patch("roller._controller.get_instance_lifecycle_state")
@patch("roller._controller.get_instance_image")
@patch("roller._controller.list_group_instances")
def test_verify_instances_listed_images(
    list_group_instances: MagicMock,
    get_instance_image: MagicMock,
    get_instance_lifecycle_state: MagicMock,
):
    """Should only look up images that were not listed with the group."""
    listed = _utils.make_group(2).instances
    list_group_instances.return_value = [
        listed[0],
        dataclasses.replace(listed[1], image_id=None),
    ]
    get_instance_image.return_value = _utils.NEW_IMAGE
    get_instance_lifecycle_state.return_value = _utils.IN_SERVICE
    configs = _utils.make_configs()

    results = _verifier.verify_instances(configs, "G", _utils.NEW_IMAGE)
    assert [r["status"] for r in results] == [
        _configs.MISMATCHED_STATUS,
        _configs.UPDATED_STATUS,
    ]
    get_instance_image.assert_called_once_with(configs, "i-2")


@patch("roller._controller.get_instance_lifecycle_state")
@patch("roller._controller.list_group_instances")
def test_verify_instances_errors(
    list_group_instances: MagicMock,
    get_instance_lifecycle_state: MagicMock,
):
    """Should report instances that cannot be inspected without failing."""
    list_group_instances.return_value = list(_utils.make_group(1).instances)
    get_instance_lifecycle_state.side_effect = botocore_exceptions.ClientError(
        {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
        "DescribeAutoScalingInstances",
    )
    configs = _utils.make_configs()

    results = _verifier.verify_instances(configs, "G", _utils.NEW_IMAGE)
    assert len(results) == 1
    assert results[0]["status"] == _configs.UNKNOWN_STATUS


@patch("roller._controller.list_group_instances")
def test_verify_instances_group_removed(list_group_instances: MagicMock):
    """Should report nothing when the group no longer exists."""
    list_group_instances.side_effect = _errors.NotFoundError("gone")
    configs = _utils.make_configs()
    assert _verifier.verify_instances(configs, "G", _utils.NEW_IMAGE) == []


@patch("roller._controller.list_group_instances")
def test_verify_instances_unavailable(list_group_instances: MagicMock):
    """Should report nothing when the group cannot be listed."""
    list_group_instances.side_effect = botocore_exceptions.ClientError(
        {"Error": {"Code": "Throttling", "Message": "Rate exceeded"}},
        "DescribeAutoScalingGroups",
    )
    configs = _utils.make_configs()
    assert _verifier.verify_instances(configs, "G", _utils.NEW_IMAGE) == []
