"""Predicates over nodes."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Iterable

from .objects import CONDITION_TRUE, NODE_READY, Node, Pod
from .pod import has_failed, is_owned_by_daemonset

PROVISIONER_TTL_AFTER_EMPTY_KEY = "nodeprovision.io/ttl-after-empty"

_RFC3339 = re.compile(
    r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?(?P<zone>Z|[+-]\d{2}:\d{2})"
)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp with an explicit zone; raise ValueError otherwise."""
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    zone = match["zone"]
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
    parsed = datetime.fromisoformat(match["base"]).replace(tzinfo=tz)
    if match["fraction"]:
        parsed += timedelta(microseconds=int(match["fraction"][:6].ljust(6, "0")))
    return parsed


def format_rfc3339(moment: datetime) -> str:
    """Format an aware datetime as an RFC 3339 timestamp to the second."""
    text = moment.astimezone(moment.tzinfo or timezone.utc).isoformat(timespec="seconds")
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def is_ready_and_schedulable(node: Node) -> bool:
    """Return True if the node reports Ready=True and is not cordoned."""
    for condition in node.status.conditions:
        if condition.type == NODE_READY:
            return condition.status == CONDITION_TRUE and not node.spec.unschedulable
    return False


def is_past_empty_ttl(node: Node) -> bool:
    """Return True if the node's empty TTL annotation lies in the past."""
    ttl = node.metadata.annotations.get(PROVISIONER_TTL_AFTER_EMPTY_KEY)
    if ttl is None:
        return False
    try:
        deadline = parse_rfc3339(ttl)
    except ValueError:
        return False
    return datetime.now(timezone.utc) > deadline


def is_empty(node: Node, pods: Iterable[Pod]) -> bool:
    """Return True if none of the pods is a live, non-daemon pod."""
    return all(has_failed(pod) or is_owned_by_daemonset(pod) for pod in pods)