"""Instance types as bins that pods can be packed into."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .functional import MultiError, contains_string, intersect_string_slice, validate_all
from .objects import Pod, Taint
from .resources import (
    AMD_GPU,
    AWS_NEURON,
    CPU,
    MEMORY,
    NVIDIA_GPU,
    PODS,
    Quantity,
    ResourceList,
    merge,
    requests_for_pods,
)

_log = logging.getLogger(__name__)


@dataclass
class InstanceType:
    """A kind of machine a cloud provider can launch, with its capacity."""

    name: str
    cpu: Quantity = Quantity()
    memory: Quantity = Quantity()
    nvidia_gpus: Quantity = Quantity()
    amd_gpus: Quantity = Quantity()
    aws_neurons: Quantity = Quantity()
    pods: Quantity = Quantity()
    architectures: list[str] = field(default_factory=list)
    operating_systems: list[str] = field(default_factory=list)
    zones: list[str] = field(default_factory=list)
    overhead: ResourceList = field(default_factory=dict)


@dataclass
class Constraints:
    """Node constraints plus the equivalently schedulable pods and per-node daemons."""

    pods: list[Pod] = field(default_factory=list)
    daemons: list[Pod] = field(default_factory=list)
    zones: list[str] = field(default_factory=list)
    instance_types: list[str] = field(default_factory=list)
    architecture: Optional[str] = None
    operating_system: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    taints: list[Taint] = field(default_factory=list)


@dataclass
class PackResult:
    """Pods that fit into a packable, and those set aside."""

    packed: list[Pod] = field(default_factory=list)
    unpacked: list[Pod] = field(default_factory=list)


def _requests_resource(pods: Iterable[Pod], resource: str) -> bool:
    return any(resource in container.requests for pod in pods for container in pod.spec.containers)


class Packable:
    """An instance type with the resources reserved on it so far."""

    def __init__(self, instance_type: InstanceType):
        self.instance_type = instance_type
        self.reserved: ResourceList = {}
        self.total: ResourceList = {
            CPU: instance_type.cpu,
            MEMORY: instance_type.memory,
            NVIDIA_GPU: instance_type.nvidia_gpus,
            AMD_GPU: instance_type.amd_gpus,
            AWS_NEURON: instance_type.aws_neurons,
            PODS: instance_type.pods,
        }

    @property
    def name(self) -> str:
        return self.instance_type.name

    def pack(self, pods: list[Pod]) -> PackResult:
        """Reserve capacity for as many of the pods as fit, in order.

        If the first pod does not fit, every pod is set aside.
        """
        result = PackResult()
        for pod in pods:
            if self._reserve_pod(pod):
                result.packed.append(pod)
                continue
            if not result.packed:
                result.unpacked.extend(pods)
                return result
            result.unpacked.append(pod)
        return result

    def _reserve(self, requests: ResourceList) -> bool:
        candidate = merge(self.reserved, requests)
        if any(quantity > self.total.get(name, Quantity()) for name, quantity in candidate.items()):
            return False
        self.reserved = candidate
        return True

    def _reserve_pod(self, pod: Pod) -> bool:
        requests = requests_for_pods(pod)
        requests[PODS] = Quantity(1)
        return self._reserve(requests)

    def _validate_instance_type(self, constraints: Constraints) -> None:
        if not constraints.instance_types:
            return
        if not contains_string(constraints.instance_types, self.name):
            raise ValueError(f"instance type {self.name} is not in {constraints.instance_types}")

    def _validate_architecture(self, constraints: Constraints) -> None:
        if constraints.architecture is None:
            return
        if not contains_string(self.instance_type.architectures, constraints.architecture):
            raise ValueError(
                f"architecture {constraints.architecture} is not in {self.instance_type.architectures}"
            )

    def _validate_operating_system(self, constraints: Constraints) -> None:
        if constraints.operating_system is None:
            return
        if not contains_string(self.instance_type.operating_systems, constraints.operating_system):
            raise ValueError(
                f"operating system {constraints.operating_system} is not in "
                f"{self.instance_type.operating_systems}"
            )

    def _validate_zones(self, constraints: Constraints) -> None:
        if not constraints.zones:
            return
        if not intersect_string_slice(constraints.zones, self.instance_type.zones):
            raise ValueError(f"zones {constraints.zones} are not in {self.instance_type.zones}")

    def _validate_accelerator(self, constraints: Constraints, amount: Quantity, resource: str, label: str) -> None:
        if amount.is_zero():
            return
        if not _requests_resource(constraints.pods, resource):
            raise ValueError(f"{label} is not required")

    def _validate_nvidia_gpus(self, constraints: Constraints) -> None:
        self._validate_accelerator(constraints, self.instance_type.nvidia_gpus, NVIDIA_GPU, "nvidia gpu")

    def _validate_amd_gpus(self, constraints: Constraints) -> None:
        self._validate_accelerator(constraints, self.instance_type.amd_gpus, AMD_GPU, "amd gpu")

    def _validate_aws_neurons(self, constraints: Constraints) -> None:
        self._validate_accelerator(constraints, self.instance_type.aws_neurons, AWS_NEURON, "aws neuron")

    def __repr__(self) -> str:
        return f"Packable({self.name!r}, reserved={self.reserved!r})"


def packable_for(instance_type: InstanceType) -> Packable:
    """Return an empty packable for the instance type."""
    return Packable(instance_type)


def packables_for(instance_types: Iterable[InstanceType], constraints: Constraints) -> list[Packable]:
    """Return packables for the instance types that satisfy the constraints.

    Instance types are excluded when they violate a constraint, or cannot hold
    their own overhead plus the daemons.
    """
    packables: list[Packable] = []
    for instance_type in instance_types:
        packable = packable_for(instance_type)
        try:
            validate_all(
                lambda: packable._validate_zones(constraints),
                lambda: packable._validate_instance_type(constraints),
                lambda: packable._validate_architecture(constraints),
                lambda: packable._validate_operating_system(constraints),
                lambda: packable._validate_nvidia_gpus(constraints),
                lambda: packable._validate_amd_gpus(constraints),
                lambda: packable._validate_aws_neurons(constraints),
            )
        except (ValueError, MultiError):
            continue
        if not packable._reserve(instance_type.overhead):
            _log.debug(
                "Excluding instance type %s because there are not enough resources for kubelet and system overhead",
                packable.name,
            )
            continue
        if packable.pack(constraints.daemons).unpacked:
            _log.debug(
                "Excluding instance type %s because there are not enough resources for daemons",
                packable.name,
            )
            continue
        packables.append(packable)
    return packables