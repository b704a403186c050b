"""Resource quantities and resource lists."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING, Mapping, Union

if TYPE_CHECKING:
    from .objects import Pod

CPU = "cpu"
MEMORY = "memory"
PODS = "pods"
NVIDIA_GPU = "nvidia.com/gpu"
AMD_GPU = "amd.com/gpu"
AWS_NEURON = "aws.amazon.com/neuron"

MILLI = -3
KILO = 3
MEGA = 6
GIGA = 9

_SUFFIXES: dict[str, Fraction] = {
    "": Fraction(1),
    "n": Fraction(1, 10**9),
    "u": Fraction(1, 10**6),
    "m": Fraction(1, 10**3),
    "k": Fraction(10**3),
    "M": Fraction(10**6),
    "G": Fraction(10**9),
    "T": Fraction(10**12),
    "P": Fraction(10**15),
    "E": Fraction(10**18),
    "Ki": Fraction(2**10),
    "Mi": Fraction(2**20),
    "Gi": Fraction(2**30),
    "Ti": Fraction(2**40),
    "Pi": Fraction(2**50),
    "Ei": Fraction(2**60),
}

_QUANTITY = re.compile(
    r"(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(?:[eE](?P<exponent>[+-]?\d+)|(?P<suffix>Ki|Mi|Gi|Ti|Pi|Ei|[numkMGTPE]))?"
)


@dataclass(frozen=True, order=True)
class Quantity:
    """An exact amount of a resource."""

    amount: Fraction = Fraction(0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", Fraction(self.amount))

    def value(self) -> int:
        """The amount rounded up to a whole unit."""
        return math.ceil(self.amount)

    def scaled_value(self, scale: int) -> int:
        """The amount in units of 10**scale, rounded up."""
        return math.ceil(self.amount / Fraction(10) ** scale)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __add__(self, other: object) -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Quantity(self.amount + other.amount)

    def __str__(self) -> str:
        if self.amount.denominator == 1:
            return str(self.amount.numerator)
        for factor, suffix in ((10**3, "m"), (10**6, "u"), (10**9, "n")):
            scaled = self.amount * factor
            if scaled.denominator == 1:
                return f"{scaled.numerator}{suffix}"
        return repr(float(self.amount))


ResourceList = dict[str, Quantity]


def parse_quantity(value: Union[str, int]) -> Quantity:
    """Parse a quantity such as "500m", "4Gi" or "1e3"; raise ValueError if malformed."""
    match = _QUANTITY.fullmatch(str(value).strip())
    if match is None:
        raise ValueError(f"quantities must match the regular expression, got {value!r}")
    amount = Fraction(match["number"])
    if match["exponent"] is not None:
        amount *= Fraction(10) ** int(match["exponent"])
    else:
        amount *= _SUFFIXES[match["suffix"] or ""]
    return Quantity(amount)


def merge(*resource_lists: Mapping[str, Quantity]) -> ResourceList:
    """Sum resource lists into a single resource list."""
    result: ResourceList = {}
    for resource_list in resource_lists:
        for name, quantity in resource_list.items():
            result[name] = result.get(name, Quantity()) + quantity
    return result


def requests_for_pods(*pods: "Pod") -> ResourceList:
    """Total the container resource requests of the pods."""
    return merge(*(container.requests for pod in pods for container in pod.spec.containers))