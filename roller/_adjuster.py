import dataclasses

from roller import _configs
from roller import _controller
from roller import _types


def attach_template(
    configs: "_types.RollerConfigs",
    group: "_types.FleetGroup",
    template: "_types.LaunchTemplate",
):
    """
    Associate the launch template with the group.

    Any instance the group launches after this call uses the latest version
    of the template.
    """
    ref = dataclasses.replace(template.ref, version=_configs.LATEST_VERSION)
    _controller.update_group(configs, group.name, template=ref)
    configs.log(
        "attached_launch_template",
        {"group": group.name, "template": ref.to_dict()},
    )


def ensure_headroom(
    configs: "_types.RollerConfigs",
    group: "_types.FleetGroup",
) -> "_types.FleetGroup":
    """
    Make sure the group can grow by one instance beyond its desired capacity.

    When the desired capacity already equals the maximum capacity, the maximum
    is raised by exactly one. The maximum is never lowered again afterwards.

    :param configs:
        Current execution configuration for the roller.
    :param group:
        Current state of the group to check.
    :return:
        The group with its maximum capacity reflecting any change made.
    """
    if group.desired_capacity < group.max_capacity:
        return group

    max_capacity = group.max_capacity + 1
    _controller.update_group(configs, group.name, max_capacity=max_capacity)
    configs.log(
        "raised_max_capacity",
        {
            "group": group.name,
            "desired_capacity": group.desired_capacity,
            "previous_max_capacity": group.max_capacity,
            "max_capacity": max_capacity,
        },
    )
    return dataclasses.replace(group, max_capacity=max_capacity)


def set_desired_capacity(
    configs: "_types.RollerConfigs",
    group_name: str,
    capacity: int,
):
    """Request a new desired capacity for the group."""
    _controller.update_group(configs, group_name, desired_capacity=capacity)
    print(f"Setting {group_name} desired capacity to {capacity}.")
