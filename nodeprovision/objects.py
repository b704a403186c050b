"""Cluster object model: pods, nodes, provisioners and the parts they share."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Optional

if TYPE_CHECKING:
    from .resources import Quantity

TOLERATION_OP_EQUAL = "Equal"
TOLERATION_OP_EXISTS = "Exists"

TAINT_EFFECT_NO_SCHEDULE = "NoSchedule"
TAINT_EFFECT_PREFER_NO_SCHEDULE = "PreferNoSchedule"
TAINT_EFFECT_NO_EXECUTE = "NoExecute"
TAINT_NODE_UNSCHEDULABLE = "node.kubernetes.io/unschedulable"

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

NODE_READY = "Ready"
POD_READY = "Ready"
POD_SCHEDULED = "PodScheduled"
POD_REASON_UNSCHEDULABLE = "Unschedulable"
POD_FAILED = "Failed"


@dataclass(frozen=True, order=True)
class NamespacedName:
    """Identifies an object by namespace and name."""

    namespace: str = ""
    name: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class OwnerReference:
    api_version: str = ""
    kind: str = ""
    name: str = ""
    uid: str = ""


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""
    uid: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[OwnerReference] = field(default_factory=list)
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None


@dataclass
class Taint:
    key: str = ""
    value: str = ""
    effect: str = ""


@dataclass
class Toleration:
    key: str = ""
    operator: str = ""
    value: str = ""
    effect: str = ""

    def tolerates_taint(self, taint: Taint) -> bool:
        """Return True if this toleration matches the taint."""
        if self.effect and self.effect != taint.effect:
            return False
        if self.key and self.key != taint.key:
            return False
        if self.operator in ("", TOLERATION_OP_EQUAL):
            return self.value == taint.value
        return self.operator == TOLERATION_OP_EXISTS


@dataclass
class Container:
    name: str = ""
    image: str = ""
    requests: dict[str, "Quantity"] = field(default_factory=dict)
    limits: dict[str, "Quantity"] = field(default_factory=dict)


@dataclass
class PodSpec:
    node_name: str = ""
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[Toleration] = field(default_factory=list)
    containers: list[Container] = field(default_factory=list)
    affinity: Any = None
    topology_spread_constraints: Optional[list[Any]] = None
    priority_class_name: str = ""


@dataclass
class PodCondition:
    type: str = ""
    status: str = ""
    reason: str = ""


class _Named:
    """Shortcuts to an object's name and namespace."""

    @property
    def name(self) -> str:
        return self.metadata.name  # type: ignore[attr-defined]

    @property
    def namespace(self) -> str:
        return self.metadata.namespace  # type: ignore[attr-defined]


@dataclass
class Pod(_Named):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: PodSpec = field(default_factory=PodSpec)
    phase: str = ""
    conditions: list[PodCondition] = field(default_factory=list)


@dataclass
class NodeCondition:
    type: str = ""
    status: str = ""


@dataclass
class NodeSpec:
    taints: list[Taint] = field(default_factory=list)
    unschedulable: bool = False
    provider_id: str = ""


@dataclass
class NodeStatus:
    conditions: list[NodeCondition] = field(default_factory=list)
    allocatable: dict[str, "Quantity"] = field(default_factory=dict)


@dataclass
class Node(_Named):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: NodeSpec = field(default_factory=NodeSpec)
    status: NodeStatus = field(default_factory=NodeStatus)


@dataclass
class Provisioner(_Named):
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    labels: dict[str, str] = field(default_factory=dict)
    taints: list[Taint] = field(default_factory=list)
    ttl_seconds_after_empty: Optional[int] = None
    ttl_seconds_until_expired: Optional[int] = None


def object_key(obj: Any) -> NamespacedName:
    """Return the namespaced name of any object carrying metadata."""
    return NamespacedName(namespace=obj.metadata.namespace, name=obj.metadata.name)


def pod_namespaced_names(pods: Iterable[Pod]) -> list[NamespacedName]:
    """Return the namespaced names of the pods, in order."""
    return [object_key(pod) for pod in pods]