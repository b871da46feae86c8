"""
훅 실행 모듈
%i 치환 후 sh -ce 로 사용자 명령 실행
"""

import subprocess
from typing import Optional

from .errors import HookFailed
from .logger import ContextAdapter

IFACE_MARKER = "%i"


class HookRunner:
    """셸 훅 실행 클래스"""

    def __init__(self, shell: str = "sh"):
        self.shell = shell

    def build_command(self, command: str, iface: str) -> list:
        return [self.shell, "-ce", command.replace(IFACE_MARKER, iface)]

    def run(self, command: str, iface: str, log: ContextAdapter, stdin: Optional[str] = None):
        """명령 실행 (실패 시 HookFailed)"""
        args = self.build_command(command, iface)
        if stdin is not None:
            log = log.bind(stdin=stdin.strip())

        try:
            result = subprocess.run(
                args,
                input=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True
            )
        except OSError as e:
            log.error(f"failed to execute {args}: {e}")
            raise HookFailed(args[-1]) from e

        output = result.stdout or ""
        if result.returncode != 0:
            log.error(f"failed to execute {args} (exit {result.returncode}): {output.strip()}")
            raise HookFailed(args[-1], result.returncode, output)

        log.info(f"executed {args}: {output.strip()}")
