import dataclasses
import typing

from roller import _configs
from roller import _controller
from roller import _errors
from roller import _types


def _to_template(group_data: dict) -> typing.Optional["_types.TemplateRef"]:
    """
    Find the launch template specification used by the group.

    Groups either reference a launch template directly or through their mixed
    instances policy. Groups that still use a launch configuration have no
    template and None is returned.
    """
    specification = group_data.get("LaunchTemplate") or (
        (group_data.get("MixedInstancesPolicy") or {})
        .get("LaunchTemplate", {})
        .get("LaunchTemplateSpecification")
    )
    if not specification:
        return None

    return _types.TemplateRef(
        template_id=specification.get("LaunchTemplateId"),
        name=specification.get("LaunchTemplateName"),
        version=str(specification.get("Version") or "$Default"),
    )


def _to_instance(instance_data: dict) -> "_types.InstanceRef":
    """Convert an autoscaling group instance description into an InstanceRef."""
    lifecycle_state = (
        instance_data.get("LifecycleState") or _configs.MISSING_LIFECYCLE_STATE
    )
    return _types.InstanceRef(
        instance_id=instance_data["InstanceId"],
        health=_controller.to_health(lifecycle_state, instance_data.get("HealthStatus")),
        lifecycle_state=lifecycle_state,
    )


def _to_group(group_data: dict) -> "_types.FleetGroup":
    """
    Convert a boto3 describe auto scaling groups object into a FleetGroup.

    This simplifies the information from the raw group data for use
    elsewhere within this application.
    """
    return _types.FleetGroup(
        name=group_data["AutoScalingGroupName"],
        desired_capacity=group_data["DesiredCapacity"],
        max_capacity=group_data["MaxSize"],
        min_capacity=group_data["MinSize"],
        template=_to_template(group_data),
        instances=tuple(_to_instance(i) for i in (group_data.get("Instances") or [])),
    )


def get_group(
    configs: "_types.RollerConfigs",
    name: str,
) -> typing.Optional["_types.FleetGroup"]:
    """
    Fetch the current state of the specified auto scaling group.

    :param configs:
        Current execution configuration for the roller.
    :param name:
        Name of the auto scaling group.
    :return:
        The group or None if no group with that name exists.
    """
    client = configs.session.client("autoscaling")
    response = client.describe_auto_scaling_groups(AutoScalingGroupNames=[name])
    return next((_to_group(g) for g in response["AutoScalingGroups"]), None)


def update_group(
    configs: "_types.RollerConfigs",
    name: str,
    template: "_types.TemplateRef" = None,
    desired_capacity: int = None,
    max_capacity: int = None,
):
    """
    Apply changes to the launch template and capacities of the group.

    Only the values that are specified are changed on the group.

    :param configs:
        Current execution configuration for the roller.
    :param name:
        Name of the auto scaling group to update.
    :param template:
        Launch template new instances in the group should be launched from.
    :param desired_capacity:
        Number of instances the group should converge upon.
    :param max_capacity:
        Upper bound on the number of instances in the group.
    """
    changes: typing.Dict[str, typing.Any] = {}
    if template is not None:
        changes["LaunchTemplate"] = template.to_specification()
    if desired_capacity is not None:
        changes["DesiredCapacity"] = desired_capacity
    if max_capacity is not None:
        changes["MaxSize"] = max_capacity

    if not changes:
        return

    client = configs.session.client("autoscaling")
    client.update_auto_scaling_group(AutoScalingGroupName=name, **changes)


def list_group_instances(
    configs: "_types.RollerConfigs",
    name: str,
) -> typing.List["_types.InstanceRef"]:
    """
    List the instances in the group along with the image each was launched from.

    :param configs:
        Current execution configuration for the roller.
    :param name:
        Name of the auto scaling group.
    """
    group = get_group(configs, name)
    if group is None:
        raise _errors.NotFoundError(f'No scaling group named "{name}" was found.')

    images = _controller.get_instance_images(configs, group.instance_ids)
    return [
        dataclasses.replace(i, image_id=images.get(i.instance_id))
        for i in group.instances
    ]
