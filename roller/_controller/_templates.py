import typing

from roller import _errors
from roller import _types


def get_launch_template(
    configs: "_types.RollerConfigs",
    ref: "_types.TemplateRef",
) -> "_types.LaunchTemplate":
    """
    Fetch the launch template version referenced by a scaling group.

    :param configs:
        Current execution configuration for the roller.
    :param ref:
        Reference to the launch template and version of interest.
    """
    lookup: typing.Dict[str, typing.Any] = {"Versions": [ref.version]}
    if ref.template_id:
        lookup["LaunchTemplateId"] = ref.template_id
    else:
        lookup["LaunchTemplateName"] = ref.name

    client = configs.session.client("ec2")
    response = client.describe_launch_template_versions(**lookup)
    version = next(iter(response.get("LaunchTemplateVersions") or []), None)
    if not version:
        raise _errors.NotFoundError(
            f'Launch template "{ref.template_id or ref.name}" version'
            f' "{ref.version}" was not found.'
        )

    return _types.LaunchTemplate(
        ref=_types.TemplateRef(
            template_id=version.get("LaunchTemplateId") or ref.template_id,
            name=version.get("LaunchTemplateName") or ref.name,
            version=str(version.get("VersionNumber") or ref.version),
        ),
        data=version.get("LaunchTemplateData") or {},
    )


def create_launch_template(
    configs: "_types.RollerConfigs",
    name: str,
    data: typing.Dict[str, typing.Any],
) -> "_types.LaunchTemplate":
    """
    Create a new launch template from the given template data.

    :param configs:
        Current execution configuration for the roller.
    :param name:
        Name of the new launch template, which must not already exist.
    :param data:
        Complete launch template data for the first version of the template.
    """
    client = configs.session.client("ec2")
    response = client.create_launch_template(
        LaunchTemplateName=name,
        LaunchTemplateData=data,
    )
    template = response["LaunchTemplate"]
    return _types.LaunchTemplate(
        ref=_types.TemplateRef(
            template_id=template.get("LaunchTemplateId"),
            name=template.get("LaunchTemplateName") or name,
            version=str(template.get("LatestVersionNumber") or 1),
        ),
        data=data,
    )
