from roller._controller._instances import to_health  # noqa: F401
from roller._controller._instances import get_instance_health  # noqa: F401
from roller._controller._instances import get_instance_image  # noqa: F401
from roller._controller._instances import get_instance_images  # noqa: F401
from roller._controller._instances import get_instance_lifecycle_state  # noqa: F401
from roller._controller._groups import get_group  # noqa: F401
from roller._controller._groups import list_group_instances  # noqa: F401
from roller._controller._groups import update_group  # noqa: F401
from roller._controller._images import get_image  # noqa: F401
from roller._controller._templates import create_launch_template  # noqa: F401
from roller._controller._templates import get_launch_template  # noqa: F401
