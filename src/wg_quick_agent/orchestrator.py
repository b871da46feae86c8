"""
터널 오케스트레이터
Up / Down / Sync 단계 순서 제어 및 라이프사이클 훅 실행
실패 시 남은 단계를 중단하며 롤백하지 않음
"""

from typing import Optional

from .address import AddressReconciler
from .config import Config
from .device import DeviceReconciler
from .errors import AlreadyExists, NotFound, WgQuickError
from .hooks import HookRunner
from .kernel import Kernel, Link
from .link import LinkReconciler
from .logger import ContextAdapter
from .routes import RouteReconciler, managed_routes

DNS_REGISTER_COMMAND = "resolvconf -a tun.%i -m 0 -x"
DNS_UNREGISTER_COMMAND = "resolvconf -d tun.%i"


class TunnelOrchestrator:
    """터널 오케스트레이터"""

    def __init__(self, kernel: Kernel, hooks: Optional[HookRunner] = None,
                 device: Optional[DeviceReconciler] = None):
        self.kernel = kernel
        self.hooks = hooks or HookRunner()
        self.links = LinkReconciler(kernel)
        self.device = device or DeviceReconciler()
        self.addresses = AddressReconciler(kernel)
        self.routes = RouteReconciler(kernel)

    def up(self, cfg: Config, iface: str, log: ContextAdapter) -> Link:
        """인터페이스 생성 및 설정 (wg-quick up)"""
        log = log.bind(iface=iface)
        if self.kernel.get_link(iface) is not None:
            raise AlreadyExists(f"link {iface} already exists")

        for dns in cfg.dns:
            self.hooks.run(DNS_REGISTER_COMMAND, iface, log, stdin=f"nameserver {dns}\n")

        if cfg.pre_up:
            self.hooks.run(cfg.pre_up, iface, log)
            log.info("applied pre-up command")

        link = self.sync(cfg, iface, log)

        if cfg.post_up:
            self.hooks.run(cfg.post_up, iface, log)
            log.info("applied post-up command")
        return link

    def down(self, cfg: Config, iface: str, log: ContextAdapter):
        """인터페이스 삭제 (wg-quick down)"""
        log = log.bind(iface=iface)
        link = self.kernel.get_link(iface)
        if link is None:
            raise NotFound(f"link {iface} not found")

        # Only deregisters with two or more DNS entries, unlike up which registers any.
        if len(cfg.dns) > 1:
            self.hooks.run(DNS_UNREGISTER_COMMAND, iface, log)

        if cfg.pre_down:
            self.hooks.run(cfg.pre_down, iface, log)
            log.info("applied pre-down command")

        self.kernel.delete_link(link)
        log.info("link deleted")

        if cfg.post_down:
            self.hooks.run(cfg.post_down, iface, log)
            log.info("applied post-down command")

    def sync(self, cfg: Config, iface: str, log: ContextAdapter) -> Link:
        """Link -> Device -> Address -> Route 순서로 동기화"""
        log = log.bind(iface=iface)

        try:
            link = self.links.sync(cfg, iface, log)
        except WgQuickError as e:
            log.error(f"cannot sync wireguard link: {e}")
            raise
        log.info("synced link")

        try:
            self.device.sync(cfg, link, log)
        except WgQuickError as e:
            log.error(f"cannot sync wireguard device: {e}")
            raise
        log.info("synced device")

        try:
            self.addresses.sync(cfg, link, log)
        except WgQuickError as e:
            log.error(f"cannot sync addresses: {e}")
            raise
        log.info("synced addresses")

        if not cfg.manage_routes:
            log.info("route management disabled (Table = off), skipping routes")
        else:
            try:
                self.routes.sync(cfg, link, managed_routes(cfg), log)
            except WgQuickError as e:
                log.error(f"cannot sync routes: {e}")
                raise
            log.info("synced routes")

        log.info("successfully synced device")
        return link
