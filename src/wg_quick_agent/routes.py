"""
라우트 동기화 모듈
피어 AllowedIPs 기반 crypto-key 라우트를 설정과 일치시킴
프로토콜 태그가 다른 라우트는 다른 프로세스 소유로 간주하여 건드리지 않음
"""

from collections import defaultdict
from typing import Dict, Iterable, List

from .config import Config, IPNetwork
from .errors import KernelOperationFailed
from .kernel import Kernel, Link, Route, RT_TABLE_MAIN, RTPROT_BOOT
from .logger import ContextAdapter


def managed_routes(cfg: Config) -> List[IPNetwork]:
    """모든 피어의 AllowedIPs 합집합 (설정 순서 유지)"""
    networks = []
    for peer in cfg.peers:
        networks.extend(peer.allowed_ips)
    return networks


def effective_table(cfg: Config) -> int:
    return cfg.table or RT_TABLE_MAIN


def effective_protocol(cfg: Config) -> int:
    return cfg.route_protocol or RTPROT_BOOT


def _route_log(log: ContextAdapter, route: Route) -> ContextAdapter:
    return log.bind(
        route=route.key,
        protocol=route.protocol,
        table=route.table,
        type=route.type,
        metric=route.metric,
    )


class RouteReconciler:
    """라우트 동기화 클래스"""

    def __init__(self, kernel: Kernel):
        self.kernel = kernel

    def desired_routes(self, cfg: Config, link: Link, networks: Iterable[IPNetwork],
                       log: ContextAdapter) -> Dict[str, List[Route]]:
        """목적지 문자열별 원하는 라우트 목록"""
        wanted: Dict[str, List[Route]] = defaultdict(list)
        for network in networks:
            if network.version != 4:
                log.debug(f"skipping non-IPv4 route {network}")
                continue
            log.debug(f"managing route [dst={network}]")
            route = Route(
                dst=network,
                link_index=link.index,
                table=cfg.table,
                protocol=cfg.route_protocol,
                metric=cfg.route_metric,
            ).with_defaults()
            wanted[route.key].append(route)
        return wanted

    def sync(self, cfg: Config, link: Link, networks: Iterable[IPNetwork], log: ContextAdapter):
        """원하는 라우트 upsert 후 소유한 불필요 라우트 삭제"""
        present = self.kernel.list_routes(link)
        wanted = self.desired_routes(cfg, link, networks, log)

        for routes in wanted.values():
            for route in routes:
                route_log = _route_log(log, route)
                try:
                    self.kernel.replace_route(route)
                except KernelOperationFailed as e:
                    route_log.error(f"cannot add/replace route: {e}")
                    raise
                route_log.info("route added/replaced")

        table = effective_table(cfg)
        protocol = effective_protocol(cfg)
        for route in present:
            route_log = _route_log(log, route)
            if route.table != table:
                route_log.debug("wrong table for route, skipping")
                continue

            if route.protocol != protocol:
                route_log.info("skipping route deletion, not owned by this daemon")
                continue

            if route in wanted.get(route.key, []):
                route_log.debug("route wanted, skipping deleting")
                continue

            try:
                self.kernel.delete_route(route)
            except KernelOperationFailed as e:
                route_log.error(f"cannot delete route: {e}")
                raise
            route_log.info("route deleted")
