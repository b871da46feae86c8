"""
디바이스 동기화 모듈
wg setconf 로 키/피어 설정 전체 교체
"""

import subprocess

from .config import Config, render_setconf
from .errors import KernelOperationFailed
from .kernel import Link
from .logger import ContextAdapter


class DeviceReconciler:
    """WireGuard 디바이스 설정 클래스"""

    def __init__(self, wg_binary: str = "wg"):
        self.wg_binary = wg_binary

    def sync(self, cfg: Config, link: Link, log: ContextAdapter):
        """디바이스 설정 전체 교체 (이전 상태와 비교하지 않음)"""
        cmd = [self.wg_binary, "setconf", link.name, "/dev/stdin"]
        try:
            result = subprocess.run(
                cmd,
                input=render_setconf(cfg.device),
                capture_output=True,
                text=True
            )
        except OSError as e:
            log.error(f"cannot setup wireguard device: {e}")
            raise KernelOperationFailed(f"configure device {link.name}", e) from e

        if result.returncode != 0:
            error_msg = (result.stderr or result.stdout).strip()
            log.error(f"cannot configure device: {error_msg}")
            raise KernelOperationFailed(f"configure device {link.name}: {error_msg}")

        log.debug(f"configured device with {len(cfg.device.peers)} peer(s)")
