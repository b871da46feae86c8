"""
에러 정의
모든 실패는 WgQuickError 하위 타입으로 분류됨
"""

from typing import Optional


class WgQuickError(Exception):
    """에이전트 기본 예외"""


class AlreadyExists(WgQuickError):
    """이미 존재하는 인터페이스"""


class NotFound(WgQuickError):
    """인터페이스 또는 설정 파일 없음"""


class KernelOperationFailed(WgQuickError):
    """링크/주소/라우트/디바이스 작업 실패"""

    def __init__(self, operation: str, cause: Optional[BaseException] = None, errno: Optional[int] = None):
        self.operation = operation
        self.cause = cause
        if errno is None and cause is not None:
            errno = getattr(cause, "code", None) or getattr(cause, "errno", None)
        self.errno = errno
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class HookFailed(WgQuickError):
    """훅 명령 실행 실패 (non-zero exit 또는 실행 불가)"""

    def __init__(self, command: str, returncode: Optional[int] = None, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        if returncode is None:
            message = f"cannot execute hook: {command}"
        else:
            message = f"hook exited with status {returncode}: {command}"
        super().__init__(message)


class ParseFailed(WgQuickError):
    """설정 파일 파싱 실패"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
