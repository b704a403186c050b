# nodeprovision

Building blocks for a cluster node provisioner, written in plain Python with
no dependencies outside the standard library.

## What is in the package

- `nodeprovision.objects`: dataclasses for the cluster objects the rest of
  the package works on. These are `Pod`, `PodSpec`, `Container`, `Node`,
  `NodeSpec`, `NodeStatus`, `Provisioner`, `ObjectMeta`, `Taint`,
  `Toleration`, `NamespacedName` and a few more. `object_key(obj)` returns an
  object's `NamespacedName`. `Toleration.tolerates_taint(taint)` matches
  tolerations against taints.
- `nodeprovision.resources`: `Quantity` is an exact resource amount.
  `parse_quantity` accepts forms such as `"500m"`, `"4Gi"` and `"1e3"`, and
  raises `ValueError` on malformed input. `merge` sums resource lists.
  `requests_for_pods` totals the container requests of one or more pods.
- `nodeprovision.functional`: helpers over strings and string maps.
  `union_string_maps` (the last write wins), `intersect_string_slice`,
  `unique_strings` and `string_slice_without` are among them. `validate_all`
  runs every validator and raises the single failure, or a `MultiError` when
  several validators fail.
- `nodeprovision.pod`: scheduling predicates for pods. These are
  `failed_to_schedule`, `is_schedulable` (taints and node selector only),
  `tolerates`, `tolerates_taints`, `has_failed` and `is_owned_by_daemonset`.
  `tolerates_taints` raises `TaintNotToleratedError` for one untolerated
  taint, or a `MultiError` for several.
- `nodeprovision.node`: predicates for nodes. These are
  `is_ready_and_schedulable`, `is_empty` and `is_past_empty_ttl`.
  `is_past_empty_ttl` reads the RFC 3339 annotation
  `nodeprovision.io/ttl-after-empty`. The module also provides
  `parse_rfc3339` and `format_rfc3339`.
- `nodeprovision.packable`: `InstanceType`, `Constraints`, `Packable` and
  `packables_for`. `packables_for` keeps only the instance types that meet
  the zone, instance-type, architecture and operating-system constraints. It
  drops accelerator instance types when no pod requests that accelerator. It
  also drops instance types that cannot hold their own overhead plus the
  daemon pods.
- `nodeprovision.packer`: `Packer` performs first-fit-decreasing bin
  packing. Pods are ordered by CPU request and then by memory request,
  largest first. Each `Packing` carries the instance types that fit its pods,
  smallest first by `weight_of`, and at most 20 of them by default
  (`Packer(max_instance_types=...)`). Pods that fit no instance type are
  dropped, and the packer logs a warning for them.
- `nodeprovision.batcher`: `Batcher` keeps one batching window per key. A
  window ends after `idle_period` seconds with no `add`, or after
  `max_period` seconds in total. When it ends, every `wait` on it returns. Use
  `start()`/`stop()` or the batcher as a context manager.
- `nodeprovision.workqueue`: `ItemExponentialFailureRateLimiter`,
  `BucketRateLimiter` and `RateLimitingQueue` form a deduplicating queue with
  delayed re-adds. `get()` raises `ShutDown` once the queue is shut down and
  empty. `WorkQueue` runs callables concurrently, subject to a token-bucket
  rate. It returns a `concurrent.futures.Future` for each callable.
- `nodeprovision.pretty`: `pretty(obj)` renders dataclasses, quantities and
  containers as indented JSON. `pretty_info` and `pretty_infof` log those
  renderings at info level through the standard `logging` module.

## Installation

```
pip install nodeprovision
```

To run the tests:

```
pip install "nodeprovision[test]"
pytest
```

## Example: bin packing

```python
from nodeprovision.objects import Container, ObjectMeta, Pod, PodSpec
from nodeprovision.packable import Constraints, InstanceType
from nodeprovision.packer import Packer
from nodeprovision.resources import CPU, MEMORY, parse_quantity

pod = Pod(
    metadata=ObjectMeta(name="web", namespace="default"),
    spec=PodSpec(containers=[Container(requests={
        CPU: parse_quantity("500m"),
        MEMORY: parse_quantity("1Gi"),
    })]),
)
small = InstanceType(
    name="small",
    cpu=parse_quantity("2"),
    memory=parse_quantity("4Gi"),
    pods=parse_quantity("10"),
)

for packing in Packer().pack(Constraints(pods=[pod]), [small]):
    print(len(packing.pods), [it.name for it in packing.instance_type_options])
```

`Packer.pack` replaces `constraints.pods` with the pods in sorted order.

## Example: batching

```python
from nodeprovision.batcher import Batcher

with Batcher(max_period=10.0, idle_period=2.0) as batcher:
    batcher.add("default")   # from event handlers; never blocks
    batcher.wait("default")  # blocks until the "default" window ends
```

## What the package does not do

The package does not connect to a cluster, and it has no command-line entry
point. It contains no controllers. It does not fetch, create, patch, bind,
evict or delete pods or nodes, and it does not call any cloud provider. You
pass objects in from your own cluster and instance-type sources, and you act
on the results yourself.