import datetime
from unittest.mock import patch

import pytest

from roller import _configs
from roller import _errors
from roller import _preparer
from roller import _types
from roller.tests import _utils


def test_make_run_id():
    """Should derive the run id from the start time of the run."""
    now = datetime.datetime(2021, 10, 16, 12, 30, 5, tzinfo=datetime.timezone.utc)
    assert _preparer.make_run_id(now) == "20211016T123005Z"


def test_template_name():
    """Should append the run id and sequence to the source name."""
    assert _preparer.template_name("web", "20211016T120000Z", 2) == (
        "web-20211016T120000Z-2"
    )


def test_template_name_truncated():
    """Should truncate long source names to keep the run suffix."""
    name = _preparer.template_name("w" * 200, "20211016T120000Z", 12)
    assert len(name) == _configs.MAX_TEMPLATE_NAME_LENGTH
    assert name.endswith("-20211016T120000Z-12")


def test_prepare_template():
    """Should clone the group's template with only the image replaced."""
    fleet = _utils.FakeFleet()
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)
    image = fleet.images[_utils.NEW_IMAGE]

    with patch.multiple("roller._controller", **fleet.patches()):
        first = _preparer.prepare_template(configs, _utils.make_group(), image, plan)
        second = _preparer.prepare_template(configs, _utils.make_group(), image, plan)

    source = fleet.template_data["lt-source"]
    assert first.ref.name == "web-20211016T120000Z-1"
    assert second.ref.name == "web-20211016T120000Z-2"
    assert first.ref.template_id != second.ref.template_id
    assert first.image_id == second.image_id == _utils.NEW_IMAGE
    assert source["ImageId"] == _utils.OLD_IMAGE
    for template in (first, second):
        others = {k: v for k, v in template.data.items() if k != "ImageId"}
        assert others == {k: v for k, v in source.items() if k != "ImageId"}


def test_prepare_template_no_template():
    """Should fail for groups without a launch template."""
    fleet = _utils.FakeFleet()
    configs = _utils.make_configs()
    plan = _utils.make_plan(fleet)
    group = _types.FleetGroup("G", 2, 2, 0, None)

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.NotFoundError):
            _preparer.prepare_template(
                configs, group, fleet.images[_utils.NEW_IMAGE], plan
            )
    assert not fleet.created_templates


def test_resolve_image():
    """Should return the metadata of an available image."""
    fleet = _utils.FakeFleet()
    configs = _utils.make_configs()

    with patch.multiple("roller._controller", **fleet.patches()):
        image = _preparer.resolve_image(configs, _utils.NEW_IMAGE)
    assert image.image_id == _utils.NEW_IMAGE


def test_resolve_image_missing():
    """Should fail when the image does not exist."""
    fleet = _utils.FakeFleet()
    configs = _utils.make_configs()

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.NotFoundError):
            _preparer.resolve_image(configs, "ami-missing")


def test_resolve_image_unavailable():
    """Should fail when the image is not in the available state."""
    fleet = _utils.FakeFleet()
    fleet.images["ami-pending"] = _types.ImageMetadata("ami-pending", None, "pending")
    configs = _utils.make_configs()

    with patch.multiple("roller._controller", **fleet.patches()):
        with pytest.raises(_errors.NotFoundError):
            _preparer.resolve_image(configs, "ami-pending")
