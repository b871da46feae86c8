"""
오케스트레이터 (Up / Down / Sync) 테스트
"""

import pytest

from conftest import RecordingDevice, RecordingHooks
from wg_quick_agent.errors import AlreadyExists, HookFailed, KernelOperationFailed, NotFound
from wg_quick_agent.orchestrator import (
    DNS_REGISTER_COMMAND,
    DNS_UNREGISTER_COMMAND,
    TunnelOrchestrator,
)


@pytest.fixture
def events():
    return []


@pytest.fixture
def hooks(events):
    return RecordingHooks(events=events)


@pytest.fixture
def device(events):
    return RecordingDevice(events=events)


@pytest.fixture
def orchestrator(kernel, hooks, device):
    return TunnelOrchestrator(kernel, hooks=hooks, device=device)


def test_sync_creates_and_configures(orchestrator, kernel, device, cfg, log):
    """링크 생성, 디바이스 설정, 주소/라우트 적용"""
    cfg.mtu = 1420
    link = orchestrator.sync(cfg, "wg0", log)

    assert kernel.get_link("wg0") == link
    assert link.mtu == 1420
    assert "wg0" in kernel.up
    assert device.calls == ["wg0"]
    assert [a.key for a in kernel.list_addresses(link)] == ["10.0.0.1/24"]
    assert {str(r.dst) for r in kernel.list_routes(link)} == {"10.0.0.0/24", "192.168.10.0/24"}


def test_sync_twice_makes_no_mutations(orchestrator, kernel, cfg, log):
    """두 번째 Sync 는 변경 없음"""
    orchestrator.sync(cfg, "wg0", log)
    kernel.mutations.clear()

    orchestrator.sync(cfg, "wg0", log)

    assert kernel.mutations == []


def test_sync_reuses_existing_link(orchestrator, kernel, cfg, log):
    """이미 존재하는 링크는 재생성하지 않음"""
    kernel.add_link("wg0")
    kernel.mutations.clear()

    orchestrator.sync(cfg, "wg0", log)

    assert ("add_link", "wg0") not in kernel.mutations


def test_sync_aborts_after_device_failure(kernel, hooks, cfg, log):
    """디바이스 실패 시 주소/라우트 단계 미실행"""
    device = RecordingDevice(error=KernelOperationFailed("configure device wg0"))
    orchestrator = TunnelOrchestrator(kernel, hooks=hooks, device=device)

    with pytest.raises(KernelOperationFailed):
        orchestrator.sync(cfg, "wg0", log)

    link = kernel.get_link("wg0")
    assert link is not None
    assert kernel.list_addresses(link) == []
    assert kernel.list_routes(link) == []


def test_sync_link_failure(orchestrator, kernel, device, cfg, log):
    """링크 생성 실패 시 이후 단계 미실행"""
    kernel.fail["add_link"] = KernelOperationFailed("create link wg0")

    with pytest.raises(KernelOperationFailed):
        orchestrator.sync(cfg, "wg0", log)

    assert device.calls == []


def test_up_registers_dns_and_runs_hooks_in_order(orchestrator, hooks, events, cfg, log):
    """DNS 등록 -> PreUp -> Sync -> PostUp"""
    cfg.dns = ["1.1.1.1"]
    cfg.pre_up = "echo pre %i"
    cfg.post_up = "echo post %i"

    orchestrator.up(cfg, "wg0", log)

    assert hooks.calls[0] == (DNS_REGISTER_COMMAND, "wg0", "nameserver 1.1.1.1\n")
    assert events == [
        ("hook", DNS_REGISTER_COMMAND),
        ("hook", "echo pre %i"),
        ("device", "wg0"),
        ("hook", "echo post %i"),
    ]


def test_up_registers_every_dns_entry(orchestrator, hooks, cfg, log):
    """DNS 항목마다 등록"""
    cfg.dns = ["1.1.1.1", "9.9.9.9"]

    orchestrator.up(cfg, "wg0", log)

    assert [c[2] for c in hooks.calls] == ["nameserver 1.1.1.1\n", "nameserver 9.9.9.9\n"]


def test_up_existing_link_fails_without_mutation(orchestrator, kernel, hooks, device, cfg, log):
    """이미 존재하는 링크에 Up 시 AlreadyExists"""
    kernel.add_link("wg0")
    kernel.mutations.clear()
    cfg.dns = ["1.1.1.1"]

    with pytest.raises(AlreadyExists):
        orchestrator.up(cfg, "wg0", log)

    assert kernel.mutations == []
    assert hooks.calls == []
    assert device.calls == []


def test_pre_up_failure_skips_sync(kernel, device, cfg, log):
    """PreUp 실패 시 Sync 미실행"""
    cfg.pre_up = "false"
    hooks = RecordingHooks(failing={"false"})
    orchestrator = TunnelOrchestrator(kernel, hooks=hooks, device=device)

    with pytest.raises(HookFailed):
        orchestrator.up(cfg, "wg0", log)

    assert kernel.get_link("wg0") is None
    assert kernel.mutations == []
    assert device.calls == []


def test_post_up_failure_leaves_state_applied(kernel, device, cfg, log):
    """PostUp 실패해도 터널 상태는 이미 적용됨"""
    cfg.post_up = "false"
    hooks = RecordingHooks(failing={"false"})
    orchestrator = TunnelOrchestrator(kernel, hooks=hooks, device=device)

    with pytest.raises(HookFailed):
        orchestrator.up(cfg, "wg0", log)

    link = kernel.get_link("wg0")
    assert link is not None
    assert [a.key for a in kernel.list_addresses(link)] == ["10.0.0.1/24"]
    assert len(kernel.list_routes(link)) == 2


def test_down_missing_link_fails_without_mutation(orchestrator, kernel, hooks, cfg, log):
    """없는 링크에 Down 시 NotFound"""
    cfg.dns = ["1.1.1.1", "9.9.9.9"]
    cfg.pre_down = "echo bye"

    with pytest.raises(NotFound):
        orchestrator.down(cfg, "wg0", log)

    assert kernel.mutations == []
    assert hooks.calls == []


def test_down_runs_hooks_and_deletes_link(orchestrator, kernel, events, cfg, log):
    """PreDown -> 링크 삭제 -> PostDown"""
    orchestrator.sync(cfg, "wg0", log)
    events.clear()
    cfg.pre_down = "echo pre"
    cfg.post_down = "echo post"

    orchestrator.down(cfg, "wg0", log)

    assert kernel.get_link("wg0") is None
    assert kernel.routes == []
    assert events == [("hook", "echo pre"), ("hook", "echo post")]


def test_down_single_dns_entry_is_not_deregistered(orchestrator, kernel, hooks, cfg, log):
    """DNS 항목이 하나뿐이면 해제하지 않음"""
    kernel.add_link("wg0")
    cfg.dns = ["1.1.1.1"]

    orchestrator.down(cfg, "wg0", log)

    assert hooks.calls == []


def test_down_multiple_dns_entries_deregistered(orchestrator, kernel, hooks, cfg, log):
    """DNS 항목이 둘 이상이면 해제"""
    kernel.add_link("wg0")
    cfg.dns = ["1.1.1.1", "9.9.9.9"]

    orchestrator.down(cfg, "wg0", log)

    assert hooks.calls == [(DNS_UNREGISTER_COMMAND, "wg0", None)]


def test_pre_down_failure_keeps_link(kernel, device, cfg, log):
    """PreDown 실패 시 링크 유지"""
    kernel.add_link("wg0")
    cfg.pre_down = "false"
    orchestrator = TunnelOrchestrator(kernel, hooks=RecordingHooks(failing={"false"}), device=device)

    with pytest.raises(HookFailed):
        orchestrator.down(cfg, "wg0", log)

    assert kernel.get_link("wg0") is not None


def test_sync_table_off_skips_routes(orchestrator, kernel, cfg, log):
    """Table = off 이면 라우트를 건드리지 않음"""
    cfg.manage_routes = False

    link = orchestrator.sync(cfg, "wg0", log)

    assert kernel.list_routes(link) == []
    assert [a.key for a in kernel.list_addresses(link)] == ["10.0.0.1/24"]
