"""Small helpers over strings, string lists and string maps."""

from __future__ import annotations

from typing import Callable, Iterable, Mapping


class MultiError(Exception):
    """Several errors reported together."""

    def __init__(self, errors: Iterable[BaseException]):
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors))


def union_string_maps(*maps: Mapping[str, str]) -> dict[str, str]:
    """Merge all key value pairs into one map; the last write wins."""
    result: dict[str, str] = {}
    for mapping in maps:
        result.update(mapping)
    return result


def string_slice_without(vals: Iterable[str], remove: str) -> list[str]:
    """Return the values with every occurrence of remove dropped."""
    return [val for val in vals if val != remove]


def unique_strings(strings: Iterable[str]) -> list[str]:
    """Return the distinct strings, in order of first appearance."""
    return list(dict.fromkeys(strings))


def intersect_string_slice(*slices: Iterable[str]) -> list[str]:
    """Return the strings that occur in every one of the slices."""
    counts: dict[str, int] = {}
    for strings in slices:
        for s in unique_strings(strings):
            counts[s] = counts.get(s, 0) + 1
    return [key for key, count in counts.items() if count == len(slices)]


def contains_string(strings: Iterable[str], candidate: str) -> bool:
    return candidate in strings


def validate_all(*validators: Callable[[], object]) -> None:
    """Run every validator; raise the failure, or a MultiError if several fail."""
    errors: list[Exception] = []
    for validator in validators:
        try:
            validator()
        except Exception as error:  # noqa: BLE001 - collected and re-raised
            errors.append(error)
    if len(errors) == 1:
        raise errors[0]
    if errors:
        raise MultiError(errors)


def has_any_prefix(s: str, *prefixes: str) -> bool:
    return any(s.startswith(prefix) for prefix in prefixes)


def invert_string_map(string_map: Mapping[str, str]) -> dict[str, str]:
    """Swap keys and values. All values should be distinct."""
    return {v: k for k, v in string_map.items()}