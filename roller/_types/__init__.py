from roller._types._groups import FleetGroup  # noqa: F401
from roller._types._groups import ImageMetadata  # noqa: F401
from roller._types._groups import InstanceRef  # noqa: F401
from roller._types._groups import LaunchTemplate  # noqa: F401
from roller._types._groups import TemplateRef  # noqa: F401
from roller._types._roller import RollerConfigs  # noqa: F401
from roller._types._plans import Phase  # noqa: F401
from roller._types._plans import ReplacementPlan  # noqa: F401
