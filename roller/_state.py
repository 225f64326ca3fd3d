import pathlib
import typing

import yaml

from roller import _types


def _state_path(configs: "_types.RollerConfigs") -> typing.Optional[pathlib.Path]:
    """Location of the run-state record or None when runs are not persisted."""
    if not configs.state_path:
        return None
    return pathlib.Path(configs.state_path).expanduser()


def load(
    configs: "_types.RollerConfigs",
    group_name: str,
    image_id: str,
) -> typing.Optional["_types.ReplacementPlan"]:
    """
    Load the recorded plan of an interrupted run for the same group and image.

    :param configs:
        Current execution configuration for the roller.
    :param group_name:
        Scaling group the current invocation targets.
    :param image_id:
        Image the current invocation targets.
    :return:
        The recorded plan, or None if there is no record or the record
        belongs to a run against a different group or image.
    """
    path = _state_path(configs)
    if path is None:
        return None

    try:
        raw = yaml.safe_load(path.read_text())
    except FileNotFoundError:
        return None

    if not raw:
        return None

    plan = _types.ReplacementPlan.from_dict(raw)
    if plan.group_name != group_name or plan.image_id != image_id:
        configs.log(
            "ignoring_run_state",
            {
                "path": str(path),
                "recorded": {"group": plan.group_name, "image_id": plan.image_id},
                "requested": {"group": group_name, "image_id": image_id},
            },
        )
        return None

    return plan


def save(configs: "_types.RollerConfigs", plan: "_types.ReplacementPlan"):
    """Record the plan so that an interrupted run can be resumed."""
    path = _state_path(configs)
    if path is None:
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(plan.to_dict(), sort_keys=False))


def clear(configs: "_types.RollerConfigs"):
    """Remove the run-state record once a run has completed."""
    path = _state_path(configs)
    if path is not None and path.exists():
        path.unlink()
