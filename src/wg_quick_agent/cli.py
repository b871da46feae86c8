"""
CLI 메인 인터페이스
Click 및 Rich 기반 wg-quick 호환 CLI (up / down / sync)
"""

import os
import sys
from typing import Optional, Tuple

import click
from rich.console import Console

from . import __version__
from .config import Config, load_config
from .errors import NotFound, WgQuickError
from .kernel import Kernel
from .logger import init_logger
from .orchestrator import TunnelOrchestrator
from .settings import Settings

console = Console()

ACTION_MESSAGES = {
    "up": "인터페이스 활성화 완료",
    "down": "인터페이스 삭제 완료",
    "sync": "인터페이스 동기화 완료",
}


def resolve_target(target: str, iface: Optional[str] = None,
                   config_dir: str = "/etc/wireguard") -> Tuple[str, str]:
    """인자를 (설정 파일 경로, 인터페이스 이름)으로 해석

    인자가 존재하는 파일이면 설정 파일로 사용하고 인터페이스 이름은 파일명에서 가져온다.
    아니면 인터페이스 이름으로 보고 <config_dir>/<name>.conf 를 사용한다.
    """
    if os.path.isfile(target):
        name = iface or os.path.splitext(os.path.basename(target))[0]
        return target, name

    path = os.path.join(config_dir, f"{target}.conf")
    if not os.path.isfile(path):
        raise NotFound(f"cannot find config file {path}")
    return path, iface or target


def apply_route_overrides(cfg: Config, settings: Settings,
                          route_protocol: Optional[int], route_metric: Optional[int]):
    """CLI 옵션 > 설정 파일 > 에이전트 설정 순으로 라우트 값 결정"""
    if route_protocol is not None:
        cfg.route_protocol = route_protocol
    elif not cfg.route_protocol:
        cfg.route_protocol = settings.routing.route_protocol

    if route_metric is not None:
        cfg.route_metric = route_metric
    elif not cfg.route_metric:
        cfg.route_metric = settings.routing.route_metric


def run_action(action: str, target: str, iface: Optional[str], verbose: bool,
               route_protocol: Optional[int], route_metric: Optional[int],
               settings_path: Optional[str]):
    """설정 로드 후 오케스트레이터 실행"""
    settings = Settings(settings_path)
    agent_logger = init_logger(settings.logging.log_dir, settings.logging.log_level, verbose)
    log = agent_logger.bind(iface=iface or target)

    kernel = Kernel()
    try:
        path, iface = resolve_target(target, iface, settings.paths.config_dir)
        log = agent_logger.bind(iface=iface)
        log.debug(f"settings {settings.to_dict()}")
        log.debug(f"loading config {path}")

        cfg = load_config(path)
        apply_route_overrides(cfg, settings, route_protocol, route_metric)

        orchestrator = TunnelOrchestrator(kernel)
        getattr(orchestrator, action)(cfg, iface, log)
    except WgQuickError as e:
        log.error(f"cannot {action} interface: {e}")
        console.print(f"[red]✗ {action} 실패: {e}[/red]")
        log_files = agent_logger.get_log_files()
        if log_files["main_log"]:
            console.print(f"  Main: {log_files['main_log']}")
            console.print(f"  Error: {log_files['error_log']}")
        sys.exit(1)
    finally:
        kernel.close()

    console.print(f"[green]✓ {iface}: {ACTION_MESSAGES[action]}[/green]")


def tunnel_options(func):
    """up/down/sync 공통 인자 및 옵션"""
    options = [
        click.argument('target'),
        click.option('--iface', default=None, help='인터페이스 이름 (기본값: 설정 파일명)'),
        click.option('--verbose', '-v', is_flag=True, help='디버그 로그 출력'),
        click.option('--route-protocol', type=int, default=None, help='관리 라우트 프로토콜 태그'),
        click.option('--route-metric', type=int, default=None, help='관리 라우트 메트릭'),
        click.option('--settings', 'settings_path', type=click.Path(exists=True),
                     help='에이전트 설정 파일 경로'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
def cli():
    """WireGuard Quick Agent

    설정 파일 경로 또는 인터페이스 이름을 받아 WireGuard 인터페이스를 관리합니다.
    """
    pass


@cli.command()
@tunnel_options
def up(target, iface, verbose, route_protocol, route_metric, settings_path):
    """인터페이스 생성 및 설정"""
    run_action("up", target, iface, verbose, route_protocol, route_metric, settings_path)


@cli.command()
@tunnel_options
def down(target, iface, verbose, route_protocol, route_metric, settings_path):
    """인터페이스 삭제"""
    run_action("down", target, iface, verbose, route_protocol, route_metric, settings_path)


@cli.command()
@tunnel_options
def sync(target, iface, verbose, route_protocol, route_metric, settings_path):
    """현재 인터페이스를 설정과 동기화"""
    run_action("sync", target, iface, verbose, route_protocol, route_metric, settings_path)


def main():
    """메인 엔트리 포인트"""
    cli()


if __name__ == '__main__':
    main()
