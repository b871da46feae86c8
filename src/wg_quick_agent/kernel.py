"""
커널 제어 모듈 (pyroute2)
링크/주소/라우트 netlink 작업을 값 타입으로 감싸고 실패를 KernelOperationFailed로 변환
"""

import errno
import ipaddress
import socket
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import List, Optional

from pyroute2 import IPRoute, NetlinkError

from .errors import KernelOperationFailed

RT_TABLE_MAIN = 254
RTPROT_BOOT = 3
RTN_UNICAST = 1

WIREGUARD_KIND = "wireguard"


@dataclass(frozen=True)
class Link:
    """커널 링크 핸들"""
    name: str
    index: int
    mtu: int = 0


@dataclass(frozen=True)
class Address:
    """링크에 바인딩된 IPv4 주소"""
    interface: ipaddress.IPv4Interface
    label: str = ""

    @property
    def key(self) -> str:
        return str(self.interface)


@dataclass(frozen=True)
class Route:
    """링크 범위 IPv4 라우트"""
    dst: ipaddress.IPv4Network
    link_index: int
    table: int = 0
    protocol: int = 0
    metric: int = 0
    type: int = 0

    @property
    def key(self) -> str:
        return str(self.dst)

    def with_defaults(self) -> "Route":
        """0으로 남은 table/protocol/type에 기본값 채우기"""
        return replace(
            self,
            table=self.table or RT_TABLE_MAIN,
            protocol=self.protocol or RTPROT_BOOT,
            type=self.type or RTN_UNICAST,
        )


@contextmanager
def _netlink(operation: str):
    try:
        yield
    except (NetlinkError, OSError) as e:
        raise KernelOperationFailed(operation, e) from e


class Kernel:
    """netlink 제어 평면 어댑터"""

    def __init__(self, ipr=None):
        # Lazy-loaded pyroute2 IPRoute instance
        self._ipr = ipr

    def _get_ipr(self):
        """IPRoute 인스턴스 가져오기"""
        if self._ipr is None:
            with _netlink("open netlink socket"):
                self._ipr = IPRoute()
        return self._ipr

    def close(self):
        """IPRoute 연결 종료"""
        if self._ipr is not None:
            self._ipr.close()
            self._ipr = None

    # --- link ---

    def get_link(self, name: str) -> Optional[Link]:
        """이름으로 링크 조회 (없으면 None)"""
        ipr = self._get_ipr()
        try:
            indices = ipr.link_lookup(ifname=name)
            if not indices:
                return None
            msg = ipr.link("get", index=indices[0])[0]
        except NetlinkError as e:
            if e.code == errno.ENODEV:
                return None
            raise KernelOperationFailed(f"read link {name}", e) from e
        return Link(
            name=msg.get_attr("IFLA_IFNAME") or name,
            index=msg["index"],
            mtu=msg.get_attr("IFLA_MTU") or 0,
        )

    def add_link(self, name: str, kind: str = WIREGUARD_KIND, mtu: int = 0):
        kwargs = {"ifname": name, "kind": kind}
        if mtu:
            kwargs["mtu"] = mtu
        with _netlink(f"create link {name}"):
            self._get_ipr().link("add", **kwargs)

    def set_link_up(self, link: Link):
        with _netlink(f"set link {link.name} up"):
            self._get_ipr().link("set", index=link.index, state="up")

    def delete_link(self, link: Link):
        with _netlink(f"delete link {link.name}"):
            self._get_ipr().link("del", index=link.index)

    # --- address ---

    def list_addresses(self, link: Link) -> List[Address]:
        """링크의 IPv4 주소 목록"""
        with _netlink(f"list addresses of {link.name}"):
            messages = list(self._get_ipr().get_addr(index=link.index, family=socket.AF_INET))

        addresses = []
        for msg in messages:
            if msg["index"] != link.index:
                continue
            ip = msg.get_attr("IFA_LOCAL") or msg.get_attr("IFA_ADDRESS")
            addresses.append(Address(
                interface=ipaddress.IPv4Interface(f"{ip}/{msg['prefixlen']}"),
                label=msg.get_attr("IFA_LABEL") or "",
            ))
        return addresses

    def add_address(self, link: Link, interface: ipaddress.IPv4Interface, label: str = ""):
        kwargs = {
            "index": link.index,
            "address": str(interface.ip),
            "prefixlen": interface.network.prefixlen,
        }
        if label:
            kwargs["label"] = label
        with _netlink(f"add address {interface}"):
            self._get_ipr().addr("add", **kwargs)

    def delete_address(self, link: Link, address: Address):
        with _netlink(f"delete address {address.interface}"):
            self._get_ipr().addr(
                "del",
                index=link.index,
                address=str(address.interface.ip),
                prefixlen=address.interface.network.prefixlen,
            )

    # --- route ---

    def list_routes(self, link: Link) -> List[Route]:
        """링크를 출력 인터페이스로 하는 IPv4 라우트 목록 (모든 테이블)"""
        with _netlink(f"list routes of {link.name}"):
            messages = list(self._get_ipr().get_routes(family=socket.AF_INET, oif=link.index))

        routes = []
        for msg in messages:
            oif = msg.get_attr("RTA_OIF")
            if oif != link.index:
                continue
            dst = msg.get_attr("RTA_DST") or "0.0.0.0"
            routes.append(Route(
                dst=ipaddress.IPv4Network(f"{dst}/{msg['dst_len']}", strict=False),
                link_index=oif,
                table=msg.get_attr("RTA_TABLE") or msg["table"],
                protocol=msg["proto"],
                metric=msg.get_attr("RTA_PRIORITY") or 0,
                type=msg["type"],
            ))
        return routes

    def _route_kwargs(self, route: Route) -> dict:
        kwargs = {
            "dst": str(route.dst.network_address),
            "dst_len": route.dst.prefixlen,
            "oif": route.link_index,
            "table": route.table,
            "proto": route.protocol,
            "type": route.type,
        }
        if route.metric:
            kwargs["priority"] = route.metric
        return kwargs

    def replace_route(self, route: Route):
        with _netlink(f"replace route {route.dst}"):
            self._get_ipr().route("replace", **self._route_kwargs(route))

    def delete_route(self, route: Route):
        with _netlink(f"delete route {route.dst}"):
            self._get_ipr().route("del", **self._route_kwargs(route))
