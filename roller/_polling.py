import time
import typing

from botocore import exceptions as botocore_exceptions

from roller import _errors
from roller import _types

T = typing.TypeVar("T")

#: Errors raised by provider calls that are worth retrying while polling.
PROVIDER_ERRORS = (botocore_exceptions.ClientError, botocore_exceptions.BotoCoreError)


def backoff_delay(configs: "_types.RollerConfigs", failures: int) -> float:
    """Compute the delay before retrying after consecutive polling failures."""
    exponent = max(0, failures - 1)
    return min(configs.error_backoff_max, configs.error_backoff_base * 2 ** exponent)


def pause(configs: "_types.RollerConfigs", seconds: float):
    """
    Sleep for the specified number of seconds unless the run is cancelled.

    The sleep happens on the cancellation event of the configs so that an
    operator abort is noticed immediately instead of after the interval.
    """
    if configs.cancelled.wait(max(0.0, seconds)):
        raise _errors.RunCancelledError("The run was cancelled by the operator.")


def wait_for(
    configs: "_types.RollerConfigs",
    description: str,
    check: typing.Callable[[], typing.Optional[T]],
    timeout: float,
) -> T:
    """
    Repeatedly call the check until it returns a truthy value.

    Checks that return a falsy value are retried after the fixed poll interval.
    Checks that fail with a provider error are retried after an exponential
    backoff delay instead, and the error is re-raised once more than the
    configured number of consecutive failures has occurred.

    :param configs:
        Current execution configuration for the roller.
    :param description:
        Human readable description of the awaited state for logs and errors.
    :param check:
        Callable that observes the fleet and returns a truthy value once the
        awaited state has been reached.
    :param timeout:
        Number of seconds after which waiting is abandoned.
    :return:
        The first truthy value returned by the check.
    """
    deadline = time.monotonic() + timeout
    failures = 0
    attempts = 0

    while True:
        if configs.cancelled.is_set():
            raise _errors.RunCancelledError("The run was cancelled by the operator.")

        attempts += 1
        try:
            result = check()
        except PROVIDER_ERRORS as error:
            failures += 1
            if failures > configs.max_poll_errors:
                raise
            delay = backoff_delay(configs, failures)
            configs.log(
                "poll_error",
                {
                    "waiting_for": description,
                    "failures": failures,
                    "retry_in": delay,
                    "error": f"{type(error).__name__}: {error}",
                },
            )
        else:
            failures = 0
            if result:
                return result
            delay = configs.poll_interval

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise _errors.PollTimeoutError(
                f"Timed out after {timeout:g} seconds and {attempts} checks"
                f" waiting for {description}."
            )

        pause(configs, min(delay, remaining))
