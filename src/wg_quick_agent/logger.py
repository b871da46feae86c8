"""
로깅 시스템
콘솔(Rich) 및 파일 로깅, 인터페이스 컨텍스트 바인딩 지원
"""

import logging
import os
from datetime import datetime
from typing import Optional, Union
from rich.logging import RichHandler
from rich.console import Console

console = Console(stderr=True)

LOGGER_NAME = "wg_quick_agent"


class ContextAdapter(logging.LoggerAdapter):
    """컨텍스트(key=value)를 메시지에 덧붙이는 로거 어댑터"""

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, dict(extra or {}))

    def bind(self, **context) -> "ContextAdapter":
        """컨텍스트가 추가된 새 어댑터 반환"""
        merged = dict(self.extra)
        merged.update(context)
        return ContextAdapter(self.logger, merged)

    def process(self, msg, kwargs):
        if self.extra:
            fields = " ".join(f"{key}={value}" for key, value in self.extra.items())
            msg = f"{msg} [{fields}]"
        return msg, kwargs


def bind(log: Union[logging.Logger, ContextAdapter], **context) -> ContextAdapter:
    """로거 또는 어댑터에 컨텍스트 바인딩"""
    if isinstance(log, ContextAdapter):
        return log.bind(**context)
    return ContextAdapter(log, context)


class AgentLogger:
    """에이전트 로거"""

    def __init__(self, log_dir: Optional[str] = None, log_level: str = "INFO", debug: bool = False):
        self.log_dir = log_dir
        level = logging.getLevelName(str(log_level).upper())
        invalid_level = not isinstance(level, int)
        if invalid_level:
            level = logging.INFO
        self.log_level = logging.DEBUG if debug else level
        self.log_file = None
        self.error_file = None

        # 로거 설정
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(self.log_level)

        # 기존 핸들러 제거
        self.logger.handlers.clear()

        # 파일 핸들러 (log_dir 지정 시)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.log_file = os.path.join(log_dir, f"agent_{timestamp}.log")
            self.error_file = os.path.join(log_dir, f"error_{timestamp}.log")

            file_formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(self.log_level)
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

            # 에러 파일 핸들러
            error_handler = logging.FileHandler(self.error_file, encoding='utf-8')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(file_formatter)
            self.logger.addHandler(error_handler)

        # 콘솔 핸들러 (Rich)
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            show_time=False,
            show_path=debug
        )
        rich_handler.setLevel(self.log_level)
        self.logger.addHandler(rich_handler)

        if invalid_level:
            self.logger.warning(f"unknown log level {log_level!r}, using INFO")

    def bind(self, **context) -> ContextAdapter:
        """컨텍스트가 바인딩된 로깅 핸들 반환"""
        return ContextAdapter(self.logger, context)

    def get_log_files(self) -> dict:
        """로그 파일 경로 반환"""
        return {
            "main_log": self.log_file,
            "error_log": self.error_file,
            "log_dir": self.log_dir
        }


def init_logger(log_dir: Optional[str], log_level: str, debug: bool) -> AgentLogger:
    """로거 초기화"""
    return AgentLogger(log_dir, log_level, debug)
