"""
링크 동기화 모듈
WireGuard 링크 존재 및 활성화(admin up) 보장
"""

from .config import Config
from .errors import KernelOperationFailed
from .kernel import Kernel, Link, WIREGUARD_KIND
from .logger import ContextAdapter


class LinkReconciler:
    """링크 동기화 클래스"""

    def __init__(self, kernel: Kernel):
        self.kernel = kernel

    def sync(self, cfg: Config, iface: str, log: ContextAdapter) -> Link:
        """링크가 없으면 생성 후 항상 up 으로 설정"""
        link = self.kernel.get_link(iface)
        if link is None:
            log.info("link not found, creating")
            self.kernel.add_link(iface, kind=WIREGUARD_KIND, mtu=cfg.mtu)

            link = self.kernel.get_link(iface)
            if link is None:
                raise KernelOperationFailed(f"read link {iface} after create")

        self.kernel.set_link_up(link)
        log.info("set device up")
        return link
