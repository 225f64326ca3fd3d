#: Normalized health values reported for instances in the scaling group. The
#: raw autoscaling lifecycle state and health status pair is collapsed into
#: one of these so that the replacement loop only has to reason about four
#: possible values.
PROVISIONING = "provisioning"
HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
TERMINATING = "terminating"

#: Lifecycle state reported for instances that are no longer known to the
#: autoscaling service at all.
MISSING_LIFECYCLE_STATE = "Missing"
IN_SERVICE_LIFECYCLE_STATE = "InService"

#: Lifecycle state prefixes that map onto the normalized health values.
PROVISIONING_PREFIXES = ("Pending", "Warmed")
TERMINATING_PREFIXES = ("Terminat", "Detach")

#: Only images in this state can be used to launch new instances.
AVAILABLE_IMAGE_STATE = "available"

#: AWS caps launch template names at this many characters.
MAX_TEMPLATE_NAME_LENGTH = 128

#: Version of the cloned launch template the scaling group launches from.
LATEST_VERSION = "$Latest"

UPDATED_STATUS = "updated"
MISMATCHED_STATUS = "mismatched"
UNKNOWN_STATUS = "unknown"
