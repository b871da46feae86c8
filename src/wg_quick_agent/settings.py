"""
에이전트 설정 관리 모듈
YAML 기반 설정 파일 관리 및 기본값 제공
"""

import os
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict


@dataclass
class LoggingSettings:
    """로깅 설정"""
    log_dir: Optional[str] = None
    log_level: str = "INFO"


@dataclass
class RoutingSettings:
    """라우트 기본값 (0이면 터널 설정 값 사용)"""
    route_protocol: int = 0
    route_metric: int = 0


@dataclass
class PathSettings:
    """경로 설정"""
    config_dir: str = "/etc/wireguard"


class Settings:
    """전체 설정 관리 클래스"""

    DEFAULT_SETTINGS_PATHS = [
        "/etc/wg-quick-agent/settings.yaml",
        "~/.wg-quick-agent/settings.yaml",
        "./settings.yaml",
    ]

    def __init__(self, settings_path: Optional[str] = None):
        self.settings_path = settings_path
        self.logging = LoggingSettings()
        self.routing = RoutingSettings()
        self.paths = PathSettings()

        if settings_path:
            self.load(settings_path)
        else:
            self._load_from_default_paths()

    def _load_from_default_paths(self):
        """기본 경로에서 설정 파일 로드"""
        for path in self.DEFAULT_SETTINGS_PATHS:
            expanded_path = os.path.expanduser(path)
            if os.path.exists(expanded_path):
                self.load(expanded_path)
                return

    def load(self, path: str):
        """설정 파일 로드"""
        path = os.path.expanduser(path)
        if not os.path.exists(path):
            return

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        self._update_from_dict(data)
        self.settings_path = path

    def _update_from_dict(self, data: Dict[str, Any]):
        """딕셔너리에서 설정 업데이트"""
        for section in ("logging", "routing", "paths"):
            target = getattr(self, section)
            for key, value in (data.get(section) or {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'logging': asdict(self.logging),
            'routing': asdict(self.routing),
            'paths': asdict(self.paths),
        }
