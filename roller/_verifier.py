import typing

from roller import _configs
from roller import _controller
from roller import _errors
from roller import _polling
from roller import _types


def _verify_instance(
    configs: "_types.RollerConfigs",
    instance: "_types.InstanceRef",
    image_id: str,
) -> typing.Dict[str, typing.Any]:
    """Compare the observed image of a single instance against the target image."""
    instance_id = instance.instance_id
    try:
        observed_image_id = instance.image_id or _controller.get_instance_image(
            configs, instance_id
        )
        lifecycle_state = _controller.get_instance_lifecycle_state(configs, instance_id)
    except _polling.PROVIDER_ERRORS as error:
        return {
            "instance_id": instance_id,
            "status": _configs.UNKNOWN_STATUS,
            "error": f"{type(error).__name__}: {error}",
        }

    updated = observed_image_id == image_id
    return {
        "instance_id": instance_id,
        "status": _configs.UPDATED_STATUS if updated else _configs.MISMATCHED_STATUS,
        "image_id": observed_image_id,
        "lifecycle_state": lifecycle_state,
    }


def verify_instances(
    configs: "_types.RollerConfigs",
    group_name: str,
    image_id: str,
) -> typing.List[typing.Dict[str, typing.Any]]:
    """
    Report whether each instance currently in the group runs the target image.

    This is purely informational. Nothing is modified and failures to observe
    the group are logged rather than raised so they never fail the run.

    :param configs:
        Current execution configuration for the roller.
    :param group_name:
        Name of the scaling group that was replaced.
    :param image_id:
        Image every instance should now be running.
    :return:
        One result per instance with an "updated", "mismatched" or "unknown"
        status.
    """
    try:
        instances = _controller.list_group_instances(configs, group_name)
    except (_errors.NotFoundError, *_polling.PROVIDER_ERRORS) as error:
        configs.log(
            "verification_unavailable",
            {"group": group_name, "error": f"{type(error).__name__}: {error}"},
        )
        return []

    results = [_verify_instance(configs, i, image_id) for i in instances]
    for result in results:
        configs.log("verified_instance", {"group": group_name, **result})
    return results
