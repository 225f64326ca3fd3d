import typing

from roller import _adjuster
from roller import _configs
from roller import _controller
from roller import _errors
from roller import _polling
from roller import _state
from roller import _types

Phase = _types.Phase


def _get_group(configs: "_types.RollerConfigs", name: str) -> "_types.FleetGroup":
    """Fetch the group, which must continue to exist throughout the run."""
    group = _controller.get_group(configs, name)
    if group is None:
        raise _errors.NotFoundError(f'Scaling group "{name}" no longer exists.')
    return group


def _await_size(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
    size: int,
    timeout: float,
) -> "_types.FleetGroup":
    """Poll the group until exactly the given number of instances are members."""

    def check() -> typing.Optional["_types.FleetGroup"]:
        group = _get_group(configs, plan.group_name)
        return group if group.size == size else None

    return _polling.wait_for(
        configs,
        f'group "{plan.group_name}" to contain {size} instance(s)',
        check,
        timeout,
    )


def _transition(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
    phase: "Phase",
):
    """Move the plan into the next phase and record the change."""
    plan.phase = phase
    _state.save(configs, plan)
    configs.log(
        "phase",
        {
            "group": plan.group_name,
            "phase": phase.value,
            "cycle": plan.cycle + (0 if phase == Phase.DONE else 1),
            "remaining": plan.remaining,
        },
    )


def _settle(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """Wait for the group to be at its steady-state size before the first cycle."""
    if plan.is_done:
        return Phase.DONE

    _await_size(configs, plan, plan.steady_capacity, configs.registration_timeout)
    return Phase.GROWING


def _grow(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """
    Request one instance beyond the steady-state capacity.

    The members of the group are recorded before the capacity request is
    made. A resumed run that already recorded them keeps the recorded ones,
    as the group may have launched the new instance in the meantime.
    """
    if not plan.existing_ids:
        group = _get_group(configs, plan.group_name)
        plan.existing_ids = group.instance_ids
        _state.save(configs, plan)

    _adjuster.set_desired_capacity(configs, plan.group_name, plan.steady_capacity + 1)
    return Phase.AWAITING_NEW_INSTANCE_REGISTERED


def _await_registered(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """
    Wait for the new instance to join the group and snapshot the membership.

    The snapshot contains both the original members and the new instance
    because the instance that will depart has not been chosen yet.
    """
    group = _await_size(
        configs, plan, plan.steady_capacity + 1, configs.registration_timeout
    )
    plan.snapshot_ids = group.instance_ids
    return Phase.SHRINKING


def _shrink(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """Request the steady-state capacity so the group retires one instance."""
    _adjuster.set_desired_capacity(configs, plan.group_name, plan.steady_capacity)
    return Phase.AWAITING_NEW_INSTANCE_HEALTHY


def _is_snapshot_healthy(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> bool:
    """
    Check the health of every instance in the snapshot.

    A single pre-existing instance is allowed to be terminating, as that is
    the instance the group retires after the capacity decrease. Instances
    launched by this cycle must never be the one leaving the group.
    """
    launched = plan.launched_ids
    departing = []
    pending = []
    for instance_id in plan.snapshot_ids:
        health = _controller.get_instance_health(configs, instance_id)
        if health == _configs.HEALTHY:
            continue

        if health != _configs.TERMINATING:
            pending.append(instance_id)
            continue

        if instance_id in launched:
            raise _errors.UnexpectedTerminationError(
                f'Newly launched instance "{instance_id}" is being terminated'
                f' by group "{plan.group_name}" instead of an original instance.'
            )
        departing.append(instance_id)

    if len(departing) > 1:
        raise _errors.UnexpectedTerminationError(
            f'Group "{plan.group_name}" is terminating {len(departing)} instances'
            f" at once: {', '.join(departing)}."
        )

    if pending:
        print(f"Waiting on {', '.join(pending)} to become healthy.")
    return not pending


def _await_healthy(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """Wait for every snapshotted instance to be healthy or departing."""
    _polling.wait_for(
        configs,
        f"instances {', '.join(plan.snapshot_ids)} to become healthy",
        lambda: _is_snapshot_healthy(configs, plan),
        configs.health_timeout,
    )
    return Phase.AWAITING_OLD_INSTANCE_TERMINATED


def _find_removed(
    plan: "_types.ReplacementPlan",
    group: "_types.FleetGroup",
) -> str:
    """
    Identify the single original instance removed from the group by this cycle.

    :raises UnexpectedTerminationError:
        When a newly launched instance was removed, or when anything other
        than exactly one instance left the group.
    """
    removed = sorted(set(plan.snapshot_ids) - set(group.instance_ids))
    unexpected = [i for i in removed if i in plan.launched_ids]
    if unexpected:
        raise _errors.UnexpectedTerminationError(
            f'Newly launched instance(s) {", ".join(unexpected)} were removed'
            f' from group "{plan.group_name}" instead of an original instance.'
        )

    if len(removed) != 1:
        raise _errors.UnexpectedTerminationError(
            f'Expected exactly one instance to leave group "{plan.group_name}"'
            f" but {len(removed)} did: {', '.join(removed) or 'none'}."
        )

    return removed[0]


def _await_terminated(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "Phase":
    """Wait for the retired instance to leave and complete the cycle."""
    if plan.is_final_cycle and configs.skip_final_removal_wait:
        plan.complete_cycle()
        return Phase.DONE

    group = _await_size(
        configs, plan, plan.steady_capacity, configs.termination_timeout
    )
    replaced_id = _find_removed(plan, group)
    print(f"Instance {replaced_id} has left {plan.group_name}.")
    plan.complete_cycle(replaced_id)
    return Phase.DONE if plan.is_done else Phase.GROWING


_HANDLERS: typing.Dict[
    "Phase",
    typing.Callable[["_types.RollerConfigs", "_types.ReplacementPlan"], "Phase"],
] = {
    Phase.IDLE: _settle,
    Phase.GROWING: _grow,
    Phase.AWAITING_NEW_INSTANCE_REGISTERED: _await_registered,
    Phase.SHRINKING: _shrink,
    Phase.AWAITING_NEW_INSTANCE_HEALTHY: _await_healthy,
    Phase.AWAITING_OLD_INSTANCE_TERMINATED: _await_terminated,
}


def run_replacement(
    configs: "_types.RollerConfigs",
    plan: "_types.ReplacementPlan",
) -> "_types.ReplacementPlan":
    """
    Replace every original instance in the group one instance at a time.

    Each cycle grows the group by one instance, waits for the new instance to
    register, requests the steady-state capacity again so the group retires
    an original instance, waits for the snapshotted instances to be healthy
    and finally waits for the retired instance to leave the group. The run
    performs exactly as many cycles as the plan has remaining instances.

    Instances added to the group by other actors during the run are not
    accounted for, and the group is assumed not to be modified by anything
    else while the run is in progress.

    :param configs:
        Current execution configuration for the roller.
    :param plan:
        Replacement plan to carry out. Plans restored from a run-state record
        resume from their recorded phase.
    :return:
        The completed plan.
    """
    while plan.phase != Phase.DONE:
        if configs.cancelled.is_set():
            raise _errors.RunCancelledError("The run was cancelled by the operator.")

        next_phase = _HANDLERS[plan.phase](configs, plan)
        _transition(configs, plan, next_phase)

    return plan
