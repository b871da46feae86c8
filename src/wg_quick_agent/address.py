"""
주소 동기화 모듈
링크에 바인딩된 IPv4 주소를 설정과 일치시킴
"""

import errno

from .config import Config
from .errors import KernelOperationFailed
from .kernel import Kernel, Link
from .logger import ContextAdapter


class AddressReconciler:
    """IPv4 주소 동기화 클래스"""

    def __init__(self, kernel: Kernel):
        self.kernel = kernel

    def sync(self, cfg: Config, link: Link, log: ContextAdapter):
        """설정에 없는 주소 삭제, 누락된 주소 추가"""
        present = {}
        for addr in self.kernel.list_addresses(link):
            log.debug(f"found existing address {addr.key} label={addr.label!r}")
            present[addr.key] = addr

        wanted = set()
        for interface in cfg.address:
            if interface.version != 4:
                log.debug(f"skipping non-IPv4 address {interface}")
                continue

            key = str(interface)
            addr_log = log.bind(addr=key)
            wanted.add(key)
            if key in present:
                addr_log.info("address present")
                continue

            try:
                self.kernel.add_address(link, interface, cfg.address_label)
            except KernelOperationFailed as e:
                if e.errno != errno.EEXIST:
                    addr_log.error(f"cannot add addr: {e}")
                    raise
            addr_log.info("address added")

        for key, addr in present.items():
            if key in wanted:
                continue
            addr_log = log.bind(addr=key, label=addr.label)
            try:
                self.kernel.delete_address(link, addr)
            except KernelOperationFailed as e:
                addr_log.error(f"cannot delete addr: {e}")
                raise
            addr_log.info("addr deleted")
