"""Default post-render transforms applied to every rendered resource."""

from __future__ import annotations

from kdeclare.object import Object, Unstructured

DISCLAIMER_ANNOTATION = "reconciler.kyma-project.io/managed-by-reconciler-disclaimer"
DISCLAIMER_ANNOTATION_VALUE = (
    "DO NOT EDIT - This resource is managed by Kyma.\n"
    "Any modifications are discarded and the resource is reverted to the original state."
)
MANAGED_BY_LABEL = "reconciler.kyma-project.io/managed-by"
MANAGED_BY_LABEL_VALUE = "declarative-v2"
COMPONENT_LABEL = "app.kubernetes.io/component"
PART_OF_LABEL = "app.kubernetes.io/part-of"
PART_OF_VALUE = "Kyma"


def disclaimer_transform(obj: Object, resources: list[Unstructured]) -> None:
    """Annotate every resource with the do-not-edit disclaimer."""
    for resource in resources:
        annotations = resource.annotations
        annotations[DISCLAIMER_ANNOTATION] = DISCLAIMER_ANNOTATION_VALUE
        resource.annotations = annotations


def kyma_component_transform(obj: Object, resources: list[Unstructured]) -> None:
    """Label every resource with the component name and the product it belongs to."""
    for resource in resources:
        labels = resource.labels
        labels[COMPONENT_LABEL] = obj.component_name
        labels[PART_OF_LABEL] = PART_OF_VALUE
        resource.labels = labels


def managed_by_declarative_v2(obj: Object, resources: list[Unstructured]) -> None:
    """Label every resource as managed by the declarative reconciler."""
    for resource in resources:
        labels = resource.labels
        labels[MANAGED_BY_LABEL] = MANAGED_BY_LABEL_VALUE
        resource.labels = labels