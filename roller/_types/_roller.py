import dataclasses
import json
import os
import pathlib
import threading
import typing

import boto3
import yaml

from roller import _conversions


def _or(*args: typing.Any, default: typing.Any = None) -> typing.Any:
    """
    Find the first non-None element in the args.

    If none of the values are not None, the default value will be returned instead.
    """
    return next((x for x in args if x is not None), default)


def _or_truthy(*args: typing.Any, default: typing.Any = None) -> typing.Any:
    """
    Find the first truthy element in the args.

    If none of the values are truthy, the default value will be returned instead.
    """
    return next((x for x in args if x), default)


def _load_configs(
    args: typing.Dict[str, typing.Any],
    config_path: typing.Union[str, pathlib.Path] = None,
) -> typing.Dict[str, typing.Any]:
    """
    Load configuration data from the config path.

    Config path lookup is prioritized in the following way:
    - config_path argument specified in this function signature.
    - `--config-path` command line argument.
    - CONFIG_PATH environmental variable.
    - Default value of "fleet-roller.yaml" in the working directory.

    If the config file fails to load because the file is not found, a blank
    configuration will be used instead.
    """
    p = pathlib.Path(
        config_path
        or args.get("config_path")
        or os.environ.get("CONFIG_PATH")
        or "fleet-roller.yaml"
    )
    try:
        return yaml.safe_load(p.expanduser().resolve().read_text()) or {}
    except FileNotFoundError:
        return {}


@dataclasses.dataclass()
class RollerConfigs:
    """Configuration data structure for a fleet replacement run."""

    group_name: typing.Optional[str] = None
    image_id: typing.Optional[str] = None
    aws_profile: typing.Optional[str] = None
    aws_region: typing.Optional[str] = None
    pretty_print: bool = False
    #: Seconds between polls while the fleet is converging as expected.
    poll_interval: float = 15
    #: Deadlines for each of the polling phases of a replacement cycle.
    registration_timeout: float = 900
    health_timeout: float = 1800
    termination_timeout: float = 900
    #: Exponential backoff applied when polling calls fail, which is
    #: separate from the success-path poll interval.
    error_backoff_base: float = 2
    error_backoff_max: float = 60
    max_poll_errors: int = 5
    #: Skips waiting for the last original instance to leave the group.
    skip_final_removal_wait: bool = False
    #: Location of the run-state record. Runs are not resumable without one.
    state_path: typing.Optional[str] = None
    session: boto3.Session = dataclasses.field(
        hash=False, default_factory=lambda: boto3.Session()
    )
    #: Set to abort any in-progress polling.
    cancelled: threading.Event = dataclasses.field(
        hash=False, repr=False, default_factory=threading.Event
    )

    def load(
        self,
        args: typing.Dict[str, typing.Any],
        config_path: typing.Union[str, pathlib.Path] = None,
    ) -> "RollerConfigs":
        """
        Populate roller config with data from the arguments and a config file.

        Command line arguments take precedence over environment variables,
        which take precedence over the config file. Values that are not
        specified anywhere retain their defaults.
        """
        raw = _load_configs(args, config_path)

        self.group_name = _or_truthy(
            args.get("group_name"),
            os.environ.get("GROUP_NAME"),
            raw.get("group_name"),
        )
        if not self.group_name:
            raise ValueError("A scaling group name must be supplied.")

        self.image_id = _or_truthy(
            args.get("image_id"),
            os.environ.get("IMAGE_ID"),
            raw.get("image_id"),
        )
        if not self.image_id:
            raise ValueError("A target image id must be supplied.")

        self.aws_profile = _or(args.get("aws_profile"), raw.get("aws_profile"))
        self.aws_region = _or(args.get("aws_region"), raw.get("aws_region"))
        self.pretty_print = _or_truthy(
            self.pretty_print,
            args.get("pretty_print"),
            raw.get("pretty_print"),
            default=False,
        )
        self.poll_interval = _conversions.to_seconds(
            _or(os.environ.get("POLL_INTERVAL"), raw.get("poll_interval"), default=15)
        )
        self.registration_timeout = _conversions.to_seconds(
            _or(
                os.environ.get("REGISTRATION_TIMEOUT"),
                raw.get("registration_timeout"),
                default=900,
            )
        )
        self.health_timeout = _conversions.to_seconds(
            _or(
                os.environ.get("HEALTH_TIMEOUT"),
                raw.get("health_timeout"),
                default=1800,
            )
        )
        self.termination_timeout = _conversions.to_seconds(
            _or(
                os.environ.get("TERMINATION_TIMEOUT"),
                raw.get("termination_timeout"),
                default=900,
            )
        )
        self.error_backoff_base = _conversions.to_seconds(
            _or(
                os.environ.get("ERROR_BACKOFF_BASE"),
                raw.get("error_backoff_base"),
                default=2,
            )
        )
        self.error_backoff_max = _conversions.to_seconds(
            _or(
                os.environ.get("ERROR_BACKOFF_MAX"),
                raw.get("error_backoff_max"),
                default=60,
            )
        )
        self.max_poll_errors = int(
            _or(
                os.environ.get("MAX_POLL_ERRORS"),
                raw.get("max_poll_errors"),
                default=5,
            )
        )
        self.skip_final_removal_wait = bool(
            _or(raw.get("skip_final_removal_wait"), False)
        )
        self.state_path = _or_truthy(
            args.get("state_path"),
            os.environ.get("STATE_PATH"),
            raw.get("state_path"),
        )

        self.session = boto3.Session(
            profile_name=self.aws_profile,
            region_name=self.aws_region,
        )
        return self

    def log(self, message: str, data: dict):
        """Log the message and data for structured output."""
        print(
            json.dumps(
                {"message": message, "data": data},
                indent=2 if self.pretty_print else None,
            )
        )

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "group_name": self.group_name,
            "image_id": self.image_id,
            "aws_profile": self.aws_profile,
            "aws_region": self.aws_region,
            "poll_interval": self.poll_interval,
            "registration_timeout": self.registration_timeout,
            "health_timeout": self.health_timeout,
            "termination_timeout": self.termination_timeout,
            "error_backoff_base": self.error_backoff_base,
            "error_backoff_max": self.error_backoff_max,
            "max_poll_errors": self.max_poll_errors,
            "skip_final_removal_wait": self.skip_final_removal_wait,
            "state_path": self.state_path,
        }
