"""First-fit-decreasing bin packing of pods onto instance types."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .objects import Pod, object_key, pod_namespaced_names
from .packable import Constraints, InstanceType, packables_for
from .resources import CPU, MEGA, MEMORY, Quantity, requests_for_pods

# Number of instance type options handed to the cloud provider per packing.
MAX_INSTANCE_TYPES = 20

_log = logging.getLogger(__name__)


@dataclass
class Packing:
    """A set of pods that fit together on any one of the instance type options."""

    pods: list[Pod] = field(default_factory=list)
    constraints: Optional[Constraints] = None
    instance_type_options: list[InstanceType] = field(default_factory=list)


def _names(instance_types: Iterable[InstanceType]) -> list[str]:
    return [instance_type.name for instance_type in instance_types]


def _cpu_memory(pod: Pod) -> tuple[Quantity, Quantity]:
    requests = requests_for_pods(pod)
    return requests.get(CPU, Quantity()), requests.get(MEMORY, Quantity())


def sort_pods_by_resources(pods: Iterable[Pod]) -> list[Pod]:
    """Return the pods largest first: by CPU requested, then memory requested."""
    return sorted(pods, key=_cpu_memory, reverse=True)


def euclidean(*values: float) -> float:
    """The distance of the point from the origin."""
    return math.sqrt(sum(value * value for value in values))


def weight_of(instance_type: InstanceType) -> float:
    """A size heuristic where 1 cpu weighs as 1 GB and accelerators weigh heavily."""
    return euclidean(
        float(instance_type.cpu.value()),
        float(instance_type.memory.scaled_value(MEGA)),
        float(instance_type.nvidia_gpus.value()) * 1000,
        float(instance_type.aws_neurons.value()) * 1000,
    )


def sort_by_resources(instance_types: list[InstanceType]) -> None:
    """Sort instance types in place, smallest first."""
    instance_types.sort(key=weight_of)


def pods_match(first: Iterable[Pod], second: Iterable[Pod]) -> bool:
    """Return True if both hold the same pods, by namespaced name, in any order."""
    first, second = list(first), list(second)
    if len(first) != len(second):
        return False
    return Counter(map(object_key, first)) == Counter(map(object_key, second))


class Packer:
    """Computes node packings for pods across instance types."""

    def __init__(self, max_instance_types: int = MAX_INSTANCE_TYPES):
        self.max_instance_types = max_instance_types

    def pack(self, constraints: Constraints, instance_types: list[InstanceType]) -> list[Packing]:
        """Return packings for the constraints' pods, largest pods first.

        Each packing carries every instance type that fits its pods, smallest
        first. Pods that fit no instance type are dropped with a warning.
        """
        constraints.pods = sort_pods_by_resources(constraints.pods)
        packings: list[Packing] = []
        remaining = constraints.pods
        while remaining:
            packing, remaining = self._pack_with_largest_pod(remaining, constraints, instance_types)
            if not packing.pods:
                _log.warning(
                    "Failed to compute packing for pod(s) %s with instance type option(s) %s",
                    [str(name) for name in pod_namespaced_names(remaining)],
                    _names(instance_types),
                )
                remaining = remaining[1:]
                continue
            packings.append(packing)
            _log.info(
                "Computed packing for %d pod(s) with instance type option(s) %s",
                len(packing.pods),
                _names(packing.instance_type_options),
            )
        return packings

    def _pack_with_largest_pod(
        self,
        unpacked: list[Pod],
        constraints: Constraints,
        instance_types: list[InstanceType],
    ) -> tuple[Packing, list[Pod]]:
        best_pods: list[Pod] = []
        best_instances: list[InstanceType] = []
        remaining = unpacked
        for packable in packables_for(instance_types, constraints):
            result = packable.pack(unpacked)
            if not result.packed:
                continue
            if pods_match(best_pods, result.packed):
                best_instances.append(packable.instance_type)
            elif len(result.packed) > len(best_pods):
                best_pods = result.packed
                remaining = result.unpacked
                best_instances = [packable.instance_type]
        sort_by_resources(best_instances)
        del best_instances[self.max_instance_types :]
        return Packing(pods=best_pods, constraints=constraints, instance_type_options=best_instances), remaining