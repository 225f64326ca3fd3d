import contextlib
import pathlib
import signal
import threading
import typing

from roller import _adjuster
from roller import _configs
from roller import _controller
from roller import _errors
from roller import _polling
from roller import _preparer
from roller import _replacer
from roller import _state
from roller import _types
from roller import _verifier

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextlib.contextmanager
def _cancel_on_signals(configs: "_types.RollerConfigs"):
    """
    Cancel the run when the process receives an interrupt or termination signal.

    The previous handlers are restored once the run is over. Signal handlers
    can only be installed from the main thread, so runs started elsewhere
    rely on their caller setting the cancellation event.
    """

    def handler(signum, frame):
        print(f"Received signal {signum}, cancelling the run.")
        configs.cancelled.set()

    previous = {}
    if threading.current_thread() is threading.main_thread():
        for signum in CANCEL_SIGNALS:
            previous[signum] = signal.signal(signum, handler)

    try:
        yield
    finally:
        for signum, original in previous.items():
            signal.signal(signum, original)


def _start(configs: "_types.RollerConfigs") -> "_types.ReplacementPlan":
    """
    Create the replacement plan for the run, or restore a recorded one.

    The group and image are both validated before anything is mutated. New
    runs clone the launch template with the target image, attach it to the
    group and make room for the group to grow by one instance.
    """
    group_name = typing.cast(str, configs.group_name)
    image_id = typing.cast(str, configs.image_id)

    group = _controller.get_group(configs, group_name)
    if group is None:
        raise _errors.NotFoundError(f'No scaling group named "{group_name}" was found.')

    image = _preparer.resolve_image(configs, image_id)

    recorded = _state.load(configs, group_name, image_id)
    if recorded:
        configs.log("resuming", recorded.to_dict())
        return recorded

    plan = _types.ReplacementPlan(
        group_name=group_name,
        image_id=image_id,
        run_id=_preparer.make_run_id(),
        steady_capacity=group.desired_capacity,
        remaining=group.size,
    )
    template = _preparer.prepare_template(configs, group, image, plan)
    plan.template = template.ref

    _adjuster.attach_template(configs, group, template)
    if not plan.is_done:
        _adjuster.ensure_headroom(configs, group)
    _state.save(configs, plan)

    configs.log("planned", plan.to_dict())
    return plan


def main(
    args: typing.Dict[str, typing.Any],
    config_path_override: typing.Union[str, pathlib.Path] = None,
) -> int:
    """
    Replace the image of every instance in a scaling group one instance at a time.

    :param args:
        Arguments parsed from the command line. These arguments will take precedence
        over arguments specified by other means during execution.
    :param config_path_override:
        An override for the config path that is only used during non-normal execution
        calls. Most commonly this will be for testing purposes, but alternative calling
        implementations of this code could utilize this as well.
    :return:
        Zero if the run completed, otherwise one.
    """
    configs = _types.RollerConfigs().load(args, config_path_override)
    configs.log("starting", configs.to_dict())

    with _cancel_on_signals(configs):
        try:
            plan = _start(configs)
            _replacer.run_replacement(configs, plan)
        except _errors.NotFoundError as error:
            configs.log("not_found", {"error": str(error)})
            return 1
        except (_errors.RollerError, *_polling.PROVIDER_ERRORS) as error:
            configs.log(
                "failed",
                {"error_type": type(error).__name__, "error": str(error)},
            )
            return 1

    _state.clear(configs)

    results = _verifier.verify_instances(configs, plan.group_name, plan.image_id)
    configs.log(
        "complete",
        {
            "group": plan.group_name,
            "image_id": plan.image_id,
            "cycles": plan.cycle,
            "replaced": plan.replaced_ids,
            "updated": sum(r["status"] == _configs.UPDATED_STATUS for r in results),
            "mismatched": sum(
                r["status"] == _configs.MISMATCHED_STATUS for r in results
            ),
        },
    )
    return 0
