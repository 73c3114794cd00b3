"""Label, annotation and finalizer names used by the operator."""

OPERATOR_PREFIX = "operator.kyma-project.io"
SEPARATOR = "/"
COMPONENT_OWNER = OPERATOR_PREFIX + SEPARATOR + "kyma-name"
CACHE_KEY = OPERATOR_PREFIX + SEPARATOR + "cache-key"
MANAGED_BY = OPERATOR_PREFIX + SEPARATOR + "managed-by"
LIFECYCLE_MANAGER = "lifecycle-manager"
MANIFEST_FINALIZER = "operator.kyma-project.io/manifest"
OPERATOR_NAME = "module-manager"
OWNED_BY_LABEL = OPERATOR_PREFIX + SEPARATOR + "owned-by"
OWNED_BY_FORMAT = "{}__{}"
WATCHED_BY_LABEL = OPERATOR_PREFIX + SEPARATOR + "watched-by"