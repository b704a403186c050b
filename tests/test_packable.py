from nodeprovision.objects import Container, ObjectMeta, Pod, PodSpec
from nodeprovision.packable import (
    Constraints,
    InstanceType,
    PackResult,
    Packable,
    packable_for,
    packables_for,
)
from nodeprovision.resources import AMD_GPU, AWS_NEURON, CPU, MEMORY, NVIDIA_GPU, PODS, Quantity, parse_quantity


def make_pod(name, cpu="0", memory="0", extra=None):
    requests = {CPU: parse_quantity(cpu), MEMORY: parse_quantity(memory)}
    requests.update(extra or {})
    return Pod(
        metadata=ObjectMeta(name=name, namespace="default"),
        spec=PodSpec(containers=[Container(name=name, requests=requests)]),
    )


def make_instance(name="m5.large", cpu="2", memory="8Gi", pods="10", **kwargs):
    return InstanceType(
        name=name,
        cpu=parse_quantity(cpu),
        memory=parse_quantity(memory),
        pods=parse_quantity(pods),
        architectures=kwargs.pop("architectures", ["amd64"]),
        operating_systems=kwargs.pop("operating_systems", ["linux"]),
        zones=kwargs.pop("zones", ["test-zone-1"]),
        **kwargs,
    )


def test_packable_for_totals_follow_instance_type():
    instance = make_instance(nvidia_gpus=Quantity(1))
    packable = packable_for(instance)
    assert packable.name == instance.name
    assert packable.total[CPU] == instance.cpu
    assert packable.total[MEMORY] == instance.memory
    assert packable.total[PODS] == instance.pods
    assert packable.total[NVIDIA_GPU] == instance.nvidia_gpus
    assert packable.reserved == {}


def test_pack_fits_pods_until_capacity_runs_out():
    pods = [make_pod("a", "1"), make_pod("b", "1"), make_pod("c", "1")]
    result = Packable(make_instance(cpu="2")).pack(pods)
    assert result == PackResult(packed=pods[:2], unpacked=pods[2:])


def test_pack_sets_all_aside_when_first_pod_does_not_fit():
    pods = [make_pod("big", "8"), make_pod("small", "1")]
    result = Packable(make_instance(cpu="2")).pack(pods)
    assert result.packed == []
    assert result.unpacked == pods


def test_pack_skips_pod_that_does_not_fit_but_continues():
    pods = [make_pod("a", "1"), make_pod("b", "4"), make_pod("c", "1")]
    result = Packable(make_instance(cpu="2")).pack(pods)
    assert result.packed == [pods[0], pods[2]]
    assert result.unpacked == [pods[1]]


def test_pack_respects_pod_count_limit():
    pods = [make_pod("a"), make_pod("b")]
    result = Packable(make_instance(pods="1")).pack(pods)
    assert result.packed == [pods[0]]
    assert result.unpacked == [pods[1]]


def test_pack_reserves_resources_cumulatively():
    packable = Packable(make_instance(cpu="4"))
    packable.pack([make_pod("a", "1")])
    packable.pack([make_pod("b", "2")])
    assert packable.reserved[CPU] == parse_quantity("3")
    assert packable.reserved[PODS] == parse_quantity("2")


def test_pack_rejects_unknown_resource():
    pod = make_pod("a", extra={"ephemeral-storage": parse_quantity("1Gi")})
    result = Packable(make_instance()).pack([pod])
    assert result.unpacked == [pod]


def test_packables_for_without_constraints_keeps_all():
    instances = [make_instance("a"), make_instance("b")]
    packables = packables_for(instances, Constraints(pods=[make_pod("p")]))
    assert [p.name for p in packables] == ["a", "b"]


def test_packables_for_filters_zones():
    instances = [make_instance("a", zones=["test-zone-1"]), make_instance("b", zones=["test-zone-2"])]
    packables = packables_for(instances, Constraints(zones=["test-zone-2"]))
    assert [p.name for p in packables] == ["b"]


def test_packables_for_filters_instance_type_names():
    instances = [make_instance("a"), make_instance("b")]
    packables = packables_for(instances, Constraints(instance_types=["a"]))
    assert [p.name for p in packables] == ["a"]


def test_packables_for_filters_architecture_and_os():
    instances = [
        make_instance("arm", architectures=["arm64"]),
        make_instance("win", operating_systems=["windows"]),
        make_instance("plain"),
    ]
    assert [p.name for p in packables_for(instances, Constraints(architecture="arm64"))] == ["arm"]
    assert [p.name for p in packables_for(instances, Constraints(operating_system="windows"))] == ["win"]


def test_packables_for_excludes_accelerators_not_requested():
    instances = [
        make_instance("nvidia", nvidia_gpus=Quantity(1)),
        make_instance("amd", amd_gpus=Quantity(1)),
        make_instance("neuron", aws_neurons=Quantity(1)),
        make_instance("plain"),
    ]
    packables = packables_for(instances, Constraints(pods=[make_pod("p")]))
    assert [p.name for p in packables] == ["plain"]


def test_packables_for_keeps_accelerators_when_requested():
    instances = [
        make_instance("nvidia", nvidia_gpus=Quantity(1)),
        make_instance("amd", amd_gpus=Quantity(1)),
        make_instance("neuron", aws_neurons=Quantity(1)),
    ]
    for resource, name in ((NVIDIA_GPU, "nvidia"), (AMD_GPU, "amd"), (AWS_NEURON, "neuron")):
        pod = make_pod("p", extra={resource: Quantity(1)})
        packables = packables_for(instances, Constraints(pods=[pod]))
        assert [p.name for p in packables] == [name]


def test_packables_for_excludes_when_overhead_too_large():
    instances = [
        make_instance("tight", cpu="1", overhead={CPU: parse_quantity("2")}),
        make_instance("roomy", cpu="4", overhead={CPU: parse_quantity("2")}),
    ]
    packables = packables_for(instances, Constraints())
    assert [p.name for p in packables] == ["roomy"]
    assert packables[0].reserved[CPU] == parse_quantity("2")


def test_packables_for_excludes_when_daemons_do_not_fit():
    daemon = make_pod("daemon", "2")
    instances = [make_instance("small", cpu="1"), make_instance("large", cpu="4")]
    packables = packables_for(instances, Constraints(daemons=[daemon]))
    assert [p.name for p in packables] == ["large"]
    assert packables[0].reserved[CPU] == daemon.spec.containers[0].requests[CPU]


def test_daemon_reservation_limits_further_packing():
    daemon = make_pod("daemon", "1")
    pods = [make_pod("a", "1"), make_pod("b", "1")]
    (packable,) = packables_for([make_instance(cpu="2")], Constraints(pods=pods, daemons=[daemon]))
    result = packable.pack(pods)
    assert result.packed == [pods[0]]
    assert result.unpacked == [pods[1]]