import dataclasses
import enum
import typing

from roller import _types


class Phase(enum.Enum):
    """Phases of the replacement state machine."""

    IDLE = "idle"
    GROWING = "growing"
    AWAITING_NEW_INSTANCE_REGISTERED = "awaiting_new_instance_registered"
    SHRINKING = "shrinking"
    AWAITING_NEW_INSTANCE_HEALTHY = "awaiting_new_instance_healthy"
    AWAITING_OLD_INSTANCE_TERMINATED = "awaiting_old_instance_terminated"
    DONE = "done"


@dataclasses.dataclass()
class ReplacementPlan:
    """
    Progress of a replacement run through the scaling group.

    The plan is the only state the controller carries between polls. Every
    decision is still made from freshly observed group state, the plan only
    records where in the cycle the run is and how many of the original
    instances still need to be replaced.
    """

    group_name: str
    image_id: str
    #: Identifier of this run, used to derive the names of the launch
    #: templates created during the run.
    run_id: str
    #: Desired capacity of the group before the run started. The desired
    #: capacity only ever takes this value or this value + 1 during the run.
    steady_capacity: int
    #: Number of original instances still requiring replacement. This only
    #: ever decreases and the run is complete when it reaches zero.
    remaining: int
    template: typing.Optional["_types.TemplateRef"] = None
    #: Number of launch templates prepared within this run.
    template_sequence: int = 0
    #: Number of completed replacement cycles.
    cycle: int = 0
    phase: Phase = Phase.IDLE
    #: Group members observed before the current cycle grew the group.
    existing_ids: typing.Tuple[str, ...] = ()
    #: Group members observed once the new instance of the current cycle
    #: registered with the group.
    snapshot_ids: typing.Tuple[str, ...] = ()
    #: Instances removed from the group by completed cycles.
    replaced_ids: typing.List[str] = dataclasses.field(default_factory=lambda: [])

    @property
    def launched_ids(self) -> typing.FrozenSet[str]:
        """Instances launched by the current cycle."""
        return frozenset(self.snapshot_ids) - frozenset(self.existing_ids)

    @property
    def is_final_cycle(self) -> bool:
        """Whether or not the current cycle replaces the last original instance."""
        return self.remaining == 1

    @property
    def is_done(self) -> bool:
        """Whether or not every original instance has been replaced."""
        return self.remaining == 0

    def complete_cycle(self, replaced_id: typing.Optional[str] = None):
        """Record that one original instance has been fully cycled out."""
        if self.remaining < 1:
            raise ValueError("No instances remain to be replaced.")

        self.remaining -= 1
        self.cycle += 1
        if replaced_id:
            self.replaced_ids.append(replaced_id)
        self.existing_ids = ()
        self.snapshot_ids = ()

    def to_dict(self) -> typing.Dict[str, typing.Any]:
        """Convert to a dictionary representation that is JSON serializable for logs."""
        return {
            "group_name": self.group_name,
            "image_id": self.image_id,
            "run_id": self.run_id,
            "steady_capacity": self.steady_capacity,
            "remaining": self.remaining,
            "template": self.template.to_dict() if self.template else None,
            "template_sequence": self.template_sequence,
            "cycle": self.cycle,
            "phase": self.phase.value,
            "existing_ids": list(self.existing_ids),
            "snapshot_ids": list(self.snapshot_ids),
            "replaced_ids": list(self.replaced_ids),
        }

    @classmethod
    def from_dict(cls, data: typing.Dict[str, typing.Any]) -> "ReplacementPlan":
        """Restore a plan from its dictionary representation."""
        template = data.get("template")
        return cls(
            group_name=data["group_name"],
            image_id=data["image_id"],
            run_id=str(data["run_id"]),
            steady_capacity=int(data["steady_capacity"]),
            remaining=int(data["remaining"]),
            template=_types.TemplateRef.from_dict(template) if template else None,
            template_sequence=int(data.get("template_sequence") or 0),
            cycle=int(data.get("cycle") or 0),
            phase=Phase(data.get("phase") or Phase.IDLE.value),
            existing_ids=tuple(data.get("existing_ids") or []),
            snapshot_ids=tuple(data.get("snapshot_ids") or []),
            replaced_ids=list(data.get("replaced_ids") or []),
        )
