import typing

from botocore import exceptions as botocore_exceptions

from roller import _configs
from roller import _types

#: Error codes from describe_instances that indicate none of the requested
#: instances exist anymore.
MISSING_INSTANCE_CODES = ("InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed")


def to_health(lifecycle_state: str, health_status: typing.Optional[str]) -> str:
    """
    Collapse an autoscaling lifecycle state and health status into a health value.

    Instances still launching or warming up are provisioning, instances
    leaving the group are terminating, and in-service instances are healthy
    only when the group's health check reports them as such. Everything else,
    including standby and unknown states, is treated as unhealthy.
    """
    if lifecycle_state.startswith(_configs.PROVISIONING_PREFIXES):
        return _configs.PROVISIONING

    if lifecycle_state.startswith(_configs.TERMINATING_PREFIXES):
        return _configs.TERMINATING

    if lifecycle_state == _configs.MISSING_LIFECYCLE_STATE:
        return _configs.TERMINATING

    is_healthy = (health_status or "").strip().lower() == _configs.HEALTHY
    if lifecycle_state == _configs.IN_SERVICE_LIFECYCLE_STATE and is_healthy:
        return _configs.HEALTHY

    return _configs.UNHEALTHY


def _describe_auto_scaling_instance(
    configs: "_types.RollerConfigs",
    instance_id: str,
) -> typing.Optional[dict]:
    """Fetch the autoscaling description of the instance if it is still in a group."""
    client = configs.session.client("autoscaling")
    response = client.describe_auto_scaling_instances(InstanceIds=[instance_id])
    return next(iter(response.get("AutoScalingInstances") or []), None)


def get_instance_lifecycle_state(
    configs: "_types.RollerConfigs",
    instance_id: str,
) -> str:
    """
    Fetch the autoscaling lifecycle state of the specified instance.

    :param configs:
        Current execution configuration for the roller.
    :param instance_id:
        EC2 instance identifier of the instance to inspect.
    :return:
        The raw lifecycle state, e.g. "InService", or the missing lifecycle
        state when the instance is no longer known to autoscaling.
    """
    instance = _describe_auto_scaling_instance(configs, instance_id)
    if not instance:
        return _configs.MISSING_LIFECYCLE_STATE
    return instance.get("LifecycleState") or _configs.MISSING_LIFECYCLE_STATE


def get_instance_health(configs: "_types.RollerConfigs", instance_id: str) -> str:
    """
    Fetch the normalized health of the specified instance.

    Instances that are no longer registered with autoscaling are reported as
    terminating, since they have left or are leaving the group.
    """
    instance = _describe_auto_scaling_instance(configs, instance_id)
    if not instance:
        return _configs.TERMINATING
    return to_health(instance["LifecycleState"], instance.get("HealthStatus"))


def get_instance_images(
    configs: "_types.RollerConfigs",
    instance_ids: typing.Iterable[str],
) -> typing.Dict[str, typing.Optional[str]]:
    """
    Fetch the image identifiers for the specified EC2 instances.

    :param configs:
        Current execution configuration for the roller.
    :param instance_ids:
        EC2 instance identifiers to describe.
    :return:
        Dictionary mapping instance ids to the image they were launched from.
        Instances that no longer exist are absent from the result.
    """
    instance_ids = list(instance_ids)
    if not instance_ids:
        return {}

    client = configs.session.client("ec2")
    try:
        response = client.describe_instances(InstanceIds=instance_ids)
    except botocore_exceptions.ClientError as error:
        if error.response.get("Error", {}).get("Code") in MISSING_INSTANCE_CODES:
            return {}
        raise

    return {
        instance["InstanceId"]: instance.get("ImageId")
        for reserve in (response.get("Reservations") or [])
        for instance in (reserve.get("Instances") or [])
    }


def get_instance_image(
    configs: "_types.RollerConfigs",
    instance_id: str,
) -> typing.Optional[str]:
    """Fetch the image identifier for the specified EC2 instance."""
    return get_instance_images(configs, [instance_id]).get(instance_id)
