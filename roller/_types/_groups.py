import copy
import dataclasses
import typing

from roller import _configs


@dataclasses.dataclass(frozen=True)
class TemplateRef:
    """Reference to a specific version of an EC2 launch template."""

    template_id: typing.Optional[str]
    name: typing.Optional[str]
    #: Either a version number or one of the "$Latest" / "$Default" aliases.
    version: str = "$Default"

    def to_specification(self) -> typing.Dict[str, str]:
        """
        Convert into a launch template specification for autoscaling calls.

        The autoscaling API rejects specifications that contain both the id
        and the name, so the id is preferred when it is known.
        """
        specification = {"Version": self.version}
        if self.template_id:
            specification["LaunchTemplateId"] = self.template_id
        else:
            specification["LaunchTemplateName"] = typing.cast(str, self.name)
        return specification

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "template_id": self.template_id,
            "name": self.name,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: typing.Dict[str, typing.Any]) -> "TemplateRef":
        """Create a template reference from its dictionary representation."""
        return cls(
            template_id=data.get("template_id"),
            name=data.get("name"),
            version=str(data.get("version") or "$Default"),
        )


@dataclasses.dataclass(frozen=True)
class LaunchTemplate:
    """
    Immutable snapshot of the parameters used to create new instances.

    The data mapping is the raw ``LaunchTemplateData`` structure returned by
    the EC2 API, which holds the image, instance type, network, storage,
    profile and user data settings of the template.
    """

    ref: TemplateRef
    data: typing.Dict[str, typing.Any] = dataclasses.field(hash=False)

    @property
    def image_id(self) -> typing.Optional[str]:
        """Image that instances launched from this template will use."""
        return self.data.get("ImageId")

    def with_image(self, image_id: str) -> typing.Dict[str, typing.Any]:
        """
        Create a copy of the template data that only differs in its image.

        The returned dictionary is a deep copy so that the snapshot held by
        this object is never mutated.
        """
        data = copy.deepcopy(self.data)
        data["ImageId"] = image_id
        return data


@dataclasses.dataclass(frozen=True)
class ImageMetadata:
    """Data structure describing an AMI that instances can be launched from."""

    image_id: str
    name: typing.Optional[str] = None
    state: typing.Optional[str] = None

    @property
    def is_available(self) -> bool:
        """Whether or not the image can currently be used to launch instances."""
        return self.state == _configs.AVAILABLE_IMAGE_STATE


@dataclasses.dataclass(frozen=True)
class InstanceRef:
    """Observed state of an instance within the scaling group."""

    instance_id: str
    #: Normalized health value, one of the health constants in ``_configs``.
    health: str
    #: Raw autoscaling lifecycle state (e.g. "Pending", "InService").
    lifecycle_state: str
    #: Image the instance was launched from. Only populated by calls that
    #: also describe the underlying EC2 instances.
    image_id: typing.Optional[str] = None

    @property
    def is_healthy(self) -> bool:
        """Whether or not the instance is in service and passing health checks."""
        return self.health == _configs.HEALTHY

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "instance_id": self.instance_id,
            "health": self.health,
            "lifecycle_state": self.lifecycle_state,
            "image_id": self.image_id,
        }


@dataclasses.dataclass(frozen=True)
class FleetGroup:
    """Data structure that describes an EC2 auto scaling group on which to operate."""

    name: str
    desired_capacity: int
    max_capacity: int
    min_capacity: int
    #: Launch template the group currently launches new instances from. This
    #: is None for groups still configured with a legacy launch configuration.
    template: typing.Optional[TemplateRef]
    instances: typing.Tuple[InstanceRef, ...] = ()

    @property
    def size(self) -> int:
        """Number of instances currently registered with the group."""
        return len(self.instances)

    @property
    def instance_ids(self) -> typing.Tuple[str, ...]:
        """Identifiers of the instances currently registered with the group."""
        return tuple(i.instance_id for i in self.instances)

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "name": self.name,
            "desired_capacity": self.desired_capacity,
            "max_capacity": self.max_capacity,
            "min_capacity": self.min_capacity,
            "template": self.template.to_dict() if self.template else None,
            "instances": [i.to_dict() for i in self.instances],
        }
