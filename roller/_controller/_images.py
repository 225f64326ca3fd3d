import typing

from botocore import exceptions as botocore_exceptions

from roller import _types

#: Error codes from describe_images that mean the image cannot be resolved.
MISSING_IMAGE_CODES = (
    "InvalidAMIID.NotFound",
    "InvalidAMIID.Malformed",
    "InvalidAMIID.Unavailable",
)


def get_image(
    configs: "_types.RollerConfigs",
    image_id: str,
) -> typing.Optional["_types.ImageMetadata"]:
    """
    Fetch metadata for the specified AMI.

    :param configs:
        Current execution configuration for the roller.
    :param image_id:
        Identifier of the image, e.g. "ami-0123456789abcdef0".
    :return:
        The image metadata or None if the image does not exist or is not
        accessible to the current account.
    """
    client = configs.session.client("ec2")
    try:
        response = client.describe_images(ImageIds=[image_id])
    except botocore_exceptions.ClientError as error:
        if error.response.get("Error", {}).get("Code") in MISSING_IMAGE_CODES:
            return None
        raise

    return next(
        (
            _types.ImageMetadata(
                image_id=image["ImageId"],
                name=image.get("Name"),
                state=image.get("State"),
            )
            for image in (response.get("Images") or [])
        ),
        None,
    )
