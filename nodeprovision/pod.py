"""Scheduling and status predicates for pods."""

from __future__ import annotations

from typing import Iterable

from .functional import MultiError
from .objects import (
    POD_FAILED,
    POD_REASON_UNSCHEDULABLE,
    POD_SCHEDULED,
    Node,
    Pod,
    PodSpec,
    Taint,
    Toleration,
)

# Owners whose pods are not considered regular workloads, as (apiVersion, kind).
IGNORED_OWNERS: tuple[tuple[str, str], ...] = (("apps/v1", "DaemonSet"),)


class TaintNotToleratedError(ValueError):
    """A pod does not tolerate a taint."""

    def __init__(self, taint: Taint):
        self.taint = taint
        super().__init__(f"did not tolerate {taint.key}={taint.value}:{taint.effect}")


def failed_to_schedule(pod: Pod) -> bool:
    """Return True if the scheduler marked the pod unschedulable."""
    return any(
        condition.type == POD_SCHEDULED and condition.reason == POD_REASON_UNSCHEDULABLE
        for condition in pod.conditions
    )


def is_schedulable(spec: PodSpec, node: Node) -> bool:
    """Return True if a pod with this spec can schedule to the node."""
    try:
        tolerates_taints(spec, *node.spec.taints)
    except ValueError:
        return False
    labels = node.metadata.labels
    return all(key in labels and labels[key] == value for key, value in spec.node_selector.items())


def tolerates_taints(spec: PodSpec, *taints: Taint) -> None:
    """Raise if the pod spec does not tolerate every one of the taints.

    A single failure raises TaintNotToleratedError; several raise a MultiError
    holding one TaintNotToleratedError per taint.
    """
    errors = [TaintNotToleratedError(taint) for taint in taints if not tolerates(spec.tolerations, taint)]
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise MultiError(errors)


def tolerates(tolerations: Iterable[Toleration], taint: Taint) -> bool:
    """Return True if one of the tolerations tolerates the taint."""
    return any(toleration.tolerates_taint(taint) for toleration in tolerations)


def has_failed(pod: Pod) -> bool:
    return pod.phase == POD_FAILED


def is_owned_by_daemonset(pod: Pod) -> bool:
    """Return True if one of the pod's owners is a daemon set."""
    return any(
        owner.api_version == api_version and owner.kind == kind
        for api_version, kind in IGNORED_OWNERS
        for owner in pod.metadata.owner_references
    )