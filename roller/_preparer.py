import datetime
import typing

from roller import _configs
from roller import _controller
from roller import _errors
from roller import _types


def make_run_id(now: datetime.datetime = None) -> str:
    """Create a run identifier from the time at which the run started."""
    now = now or datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y%m%dT%H%M%SZ")


def template_name(source_name: str, run_id: str, sequence: int) -> str:
    """
    Derive the name of a launch template prepared within a run.

    The name is the source template name followed by the run id and the
    sequence number of the preparation within the run. The source name is
    truncated when needed so the run suffix always fits within the AWS limit.
    """
    suffix = f"-{run_id}-{sequence}"
    prefix = source_name[: _configs.MAX_TEMPLATE_NAME_LENGTH - len(suffix)]
    return f"{prefix}{suffix}"


def resolve_image(
    configs: "_types.RollerConfigs",
    image_id: str,
) -> "_types.ImageMetadata":
    """
    Fetch the target image and make sure it can be launched.

    :raises NotFoundError:
        When the image does not exist, is not accessible or is not available.
    """
    image = _controller.get_image(configs, image_id)
    if image is None:
        raise _errors.NotFoundError(f'No image "{image_id}" was found.')

    if not image.is_available:
        raise _errors.NotFoundError(
            f'Image "{image_id}" is not available (state="{image.state}").'
        )

    return image


def prepare_template(
    configs: "_types.RollerConfigs",
    group: "_types.FleetGroup",
    image: "_types.ImageMetadata",
    plan: "_types.ReplacementPlan",
) -> "_types.LaunchTemplate":
    """
    Clone the group's launch template with the image replaced.

    Every call creates a new template, even for the same source template and
    image, as the sequence number of the plan is incremented each time.

    :param configs:
        Current execution configuration for the roller.
    :param group:
        Scaling group whose current launch template is cloned.
    :param image:
        Image that instances launched from the new template will use.
    :param plan:
        Replacement plan of the run the template is prepared for.
    """
    if group.template is None:
        raise _errors.NotFoundError(
            f'Scaling group "{group.name}" has no launch template to clone.'
        )

    source = _controller.get_launch_template(configs, group.template)
    plan.template_sequence += 1
    name = template_name(
        typing.cast(str, source.ref.name or group.name),
        plan.run_id,
        plan.template_sequence,
    )
    template = _controller.create_launch_template(
        configs, name, source.with_image(image.image_id)
    )

    configs.log(
        "created_launch_template",
        {
            "group": group.name,
            "source": source.ref.to_dict(),
            "template": template.ref.to_dict(),
            "previous_image_id": source.image_id,
            "image_id": image.image_id,
        },
    )
    return template
