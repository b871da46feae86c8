"""
테스트 공용 픽스처
메모리 기반 가짜 커널, 훅/디바이스 기록기
"""

import errno
import ipaddress
import logging

import pytest

from wg_quick_agent.config import Config, DeviceConfig, Peer
from wg_quick_agent.errors import HookFailed, KernelOperationFailed
from wg_quick_agent.hooks import HookRunner
from wg_quick_agent.kernel import Address, Link, Route
from wg_quick_agent.logger import bind

PRIVATE_KEY = "yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk="
PEER_KEY = "xTIBA5rboUvnH4htodjb6e697QjLERt1NAB4mZqp8Dg="
PEER_KEY_2 = "TrMvSoP4jYQlY6RIzBgbssQqY3vxI2Pi+y71lOWWXX0="


class FakeKernel:
    """커널 어댑터 대체 (상태 변경만 mutations 에 기록)"""

    def __init__(self):
        self.links = {}
        self.up = set()
        self.addresses = {}
        self.routes = []
        self.mutations = []
        self.fail = {}
        self._next_index = 10

    def _check(self, operation):
        if operation in self.fail:
            raise self.fail[operation]

    def get_link(self, name):
        return self.links.get(name)

    def add_link(self, name, kind="wireguard", mtu=0):
        self._check("add_link")
        self._next_index += 1
        self.links[name] = Link(name=name, index=self._next_index, mtu=mtu)
        self.addresses[self._next_index] = []
        self.mutations.append(("add_link", name))

    def set_link_up(self, link):
        self._check("set_link_up")
        if link.name not in self.up:
            self.up.add(link.name)
            self.mutations.append(("set_link_up", link.name))

    def delete_link(self, link):
        self._check("delete_link")
        del self.links[link.name]
        self.up.discard(link.name)
        self.addresses.pop(link.index, None)
        self.routes = [r for r in self.routes if r.link_index != link.index]
        self.mutations.append(("delete_link", link.name))

    def list_addresses(self, link):
        return list(self.addresses.get(link.index, []))

    def add_address(self, link, interface, label=""):
        self._check("add_address")
        current = self.addresses.setdefault(link.index, [])
        if any(a.interface == interface for a in current):
            raise KernelOperationFailed(f"add address {interface}", errno=errno.EEXIST)
        current.append(Address(interface=interface, label=label))
        self.mutations.append(("add_address", str(interface)))

    def delete_address(self, link, address):
        self._check("delete_address")
        self.addresses[link.index].remove(address)
        self.mutations.append(("delete_address", address.key))

    def list_routes(self, link):
        return [r for r in self.routes if r.link_index == link.index]

    def replace_route(self, route):
        self._check("replace_route")
        # Kernel replace matches on destination, table and metric.
        for i, existing in enumerate(self.routes):
            if (existing.dst, existing.table, existing.metric) == (route.dst, route.table, route.metric):
                if existing != route:
                    self.routes[i] = route
                    self.mutations.append(("replace_route", route.key))
                return
        self.routes.append(route)
        self.mutations.append(("add_route", route.key))

    def delete_route(self, route):
        self._check("delete_route")
        self.routes.remove(route)
        self.mutations.append(("delete_route", route.key))

    def close(self):
        pass


class RecordingHooks(HookRunner):
    """실행 대신 명령 기록"""

    def __init__(self, failing=(), events=None):
        super().__init__()
        self.failing = set(failing)
        self.calls = []
        self.events = events if events is not None else []

    def run(self, command, iface, log, stdin=None):
        self.calls.append((command, iface, stdin))
        self.events.append(("hook", command))
        if command in self.failing:
            raise HookFailed(command, 1, "boom")


class RecordingDevice:
    """wg setconf 대신 호출 기록"""

    def __init__(self, events=None, error=None):
        self.calls = []
        self.events = events if events is not None else []
        self.error = error

    def sync(self, cfg, link, log):
        self.calls.append(link.name)
        self.events.append(("device", link.name))
        if self.error is not None:
            raise self.error


def make_route(dst, link_index, table=254, protocol=3, metric=0, type=1):
    return Route(
        dst=ipaddress.ip_network(dst),
        link_index=link_index,
        table=table,
        protocol=protocol,
        metric=metric,
        type=type,
    )


@pytest.fixture
def log():
    return bind(logging.getLogger("wg_quick_agent.tests"))


@pytest.fixture
def kernel():
    return FakeKernel()


@pytest.fixture
def cfg():
    return Config(
        address=[ipaddress.ip_interface("10.0.0.1/24")],
        device=DeviceConfig(
            private_key=PRIVATE_KEY,
            listen_port=51820,
            peers=[
                Peer(
                    public_key=PEER_KEY,
                    allowed_ips=[ipaddress.ip_network("10.0.0.0/24")],
                    endpoint="198.51.100.1:51820",
                ),
                Peer(
                    public_key=PEER_KEY_2,
                    allowed_ips=[
                        ipaddress.ip_network("192.168.10.0/24"),
                        ipaddress.ip_network("fd00::/64"),
                    ],
                ),
            ],
        ),
    )
