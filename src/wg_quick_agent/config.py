"""
터널 설정 모듈
wg-quick 형식(.conf) 및 YAML/JSON 설정 로드, wg setconf 형식 렌더링
"""

import base64
import binascii
import ipaddress
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import NotFound, ParseFailed

IPInterface = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


@dataclass
class Peer:
    """피어 설정"""
    public_key: str = ""
    preshared_key: str = ""
    allowed_ips: List[IPNetwork] = field(default_factory=list)
    endpoint: str = ""
    persistent_keepalive: int = 0


@dataclass
class DeviceConfig:
    """WireGuard 디바이스 설정 (항상 전체 교체)"""
    private_key: str = ""
    listen_port: int = 0
    fwmark: int = 0
    peers: List[Peer] = field(default_factory=list)


@dataclass
class Config:
    """터널 설정"""
    address: List[IPInterface] = field(default_factory=list)
    address_label: str = ""
    dns: List[str] = field(default_factory=list)
    mtu: int = 0
    table: int = 0
    manage_routes: bool = True
    route_protocol: int = 0
    route_metric: int = 0
    pre_up: str = ""
    post_up: str = ""
    pre_down: str = ""
    post_down: str = ""
    device: DeviceConfig = field(default_factory=DeviceConfig)

    @property
    def peers(self) -> List[Peer]:
        return self.device.peers

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """딕셔너리(YAML/JSON)에서 설정 생성"""
        if not isinstance(data, dict):
            raise ParseFailed("config must be a mapping")
        try:
            cfg = cls(
                address=[_parse_interface(a) for a in _as_list(data.get("address"))],
                address_label=str(data.get("address_label") or ""),
                dns=[str(d) for d in _as_list(data.get("dns"))],
                mtu=int(data.get("mtu") or 0),
                table=_parse_table(str(data.get("table") or 0)),
                manage_routes=str(data.get("table") or "").strip().lower() != "off",
                route_protocol=int(data.get("route_protocol") or 0),
                route_metric=int(data.get("route_metric") or 0),
                pre_up=str(data.get("pre_up") or ""),
                post_up=str(data.get("post_up") or ""),
                pre_down=str(data.get("pre_down") or ""),
                post_down=str(data.get("post_down") or ""),
                device=DeviceConfig(
                    private_key=_parse_key(data.get("private_key") or ""),
                    listen_port=int(data.get("listen_port") or 0),
                    fwmark=int(data.get("fwmark") or 0),
                ),
            )
            for item in _as_list(data.get("peers")):
                if not isinstance(item, dict):
                    raise ParseFailed("peer entry must be a mapping")
                cfg.device.peers.append(Peer(
                    public_key=_parse_key(item.get("public_key") or ""),
                    preshared_key=_parse_key(item.get("preshared_key") or ""),
                    allowed_ips=[_parse_network(n) for n in _as_list(item.get("allowed_ips"))],
                    endpoint=str(item.get("endpoint") or ""),
                    persistent_keepalive=int(item.get("persistent_keepalive") or 0),
                ))
        except (TypeError, ValueError) as e:
            raise ParseFailed(str(e)) from e
        return cfg


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


def _parse_interface(value: str) -> IPInterface:
    try:
        return ipaddress.ip_interface(str(value).strip())
    except ValueError as e:
        raise ParseFailed(f"invalid address {value!r}") from e


def _parse_network(value: str) -> IPNetwork:
    try:
        return ipaddress.ip_network(str(value).strip(), strict=False)
    except ValueError as e:
        raise ParseFailed(f"invalid allowed IP {value!r}") from e


def _parse_key(value: str) -> str:
    """base64 32바이트 키 검증"""
    value = str(value).strip()
    if not value:
        return ""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ParseFailed(f"invalid key {value[:8]}...") from e
    if len(raw) != 32:
        raise ParseFailed(f"key must be 32 bytes, got {len(raw)}")
    return value


def _parse_table(value: str) -> int:
    value = value.strip().lower()
    if value in ("auto", "off"):
        return 0
    if value == "main":
        return 254
    try:
        return int(value)
    except ValueError as e:
        raise ParseFailed(f"invalid table {value!r}") from e


def _append_command(current: str, command: str) -> str:
    return f"{current}; {command}" if current else command


def parse_config(text: str) -> Config:
    """wg-quick 형식 텍스트 파싱"""
    cfg = Config()
    section = None
    peer: Optional[Peer] = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue

        if line.startswith("[") and line.endswith("]"):
            name = line[1:-1].strip().lower()
            if name == "interface":
                section = "interface"
            elif name == "peer":
                section = "peer"
                peer = Peer()
                cfg.device.peers.append(peer)
            else:
                raise ParseFailed(f"unknown section {line}", lineno)
            continue

        key, sep, value = line.partition("=")
        if not sep:
            raise ParseFailed(f"expected key = value, got {line!r}", lineno)
        key = key.strip().lower()
        value = value.strip()

        try:
            if section == "interface":
                _set_interface_key(cfg, key, value)
            elif section == "peer":
                _set_peer_key(peer, key, value)
            else:
                raise ParseFailed("key outside of a section")
        except ParseFailed as e:
            if e.line is None:
                raise ParseFailed(str(e), lineno) from e
            raise
        except ValueError as e:
            raise ParseFailed(f"invalid value for {key}: {value!r}", lineno) from e

    return cfg


def _set_interface_key(cfg: Config, key: str, value: str):
    if key == "privatekey":
        cfg.device.private_key = _parse_key(value)
    elif key == "listenport":
        cfg.device.listen_port = int(value)
    elif key == "fwmark":
        cfg.device.fwmark = 0 if value == "off" else int(value, 0)
    elif key == "address":
        cfg.address.extend(_parse_interface(a) for a in _as_list(value))
    elif key == "dns":
        cfg.dns.extend(_as_list(value))
    elif key == "mtu":
        cfg.mtu = int(value)
    elif key == "table":
        cfg.table = _parse_table(value)
        cfg.manage_routes = value.lower() != "off"
    elif key == "routeprotocol":
        cfg.route_protocol = int(value)
    elif key == "routemetric":
        cfg.route_metric = int(value)
    elif key == "addresslabel":
        cfg.address_label = value
    elif key == "preup":
        cfg.pre_up = _append_command(cfg.pre_up, value)
    elif key == "postup":
        cfg.post_up = _append_command(cfg.post_up, value)
    elif key == "predown":
        cfg.pre_down = _append_command(cfg.pre_down, value)
    elif key == "postdown":
        cfg.post_down = _append_command(cfg.post_down, value)
    elif key == "saveconfig":
        pass
    else:
        raise ParseFailed(f"unknown interface key {key!r}")


def _set_peer_key(peer: Peer, key: str, value: str):
    if key == "publickey":
        peer.public_key = _parse_key(value)
    elif key == "presharedkey":
        peer.preshared_key = _parse_key(value)
    elif key == "allowedips":
        peer.allowed_ips.extend(_parse_network(n) for n in _as_list(value))
    elif key == "endpoint":
        peer.endpoint = value
    elif key == "persistentkeepalive":
        peer.persistent_keepalive = 0 if value == "off" else int(value)
    else:
        raise ParseFailed(f"unknown peer key {key!r}")


def load_config(path: str) -> Config:
    """설정 파일 로드 (.conf / .yaml / .yml / .json)"""
    path = os.path.expanduser(path)
    if not os.path.isfile(path):
        raise NotFound(f"config file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise ParseFailed(f"config file is not valid UTF-8: {path}: {e}") from e
    except OSError as e:
        raise ParseFailed(f"cannot read config file {path}: {e}") from e

    if path.endswith('.json'):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseFailed(str(e), e.lineno) from e
        return Config.from_dict(data)

    if path.endswith(('.yaml', '.yml')):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ParseFailed(str(e)) from e
        return Config.from_dict(data)

    return parse_config(text)


def render_setconf(device: DeviceConfig) -> str:
    """wg setconf 형식으로 디바이스 설정 렌더링"""
    lines = ["[Interface]"]
    if device.private_key:
        lines.append(f"PrivateKey = {device.private_key}")
    if device.listen_port:
        lines.append(f"ListenPort = {device.listen_port}")
    if device.fwmark:
        lines.append(f"FwMark = {device.fwmark}")

    for peer in device.peers:
        lines.append("")
        lines.append("[Peer]")
        lines.append(f"PublicKey = {peer.public_key}")
        if peer.preshared_key:
            lines.append(f"PresharedKey = {peer.preshared_key}")
        if peer.allowed_ips:
            lines.append("AllowedIPs = " + ", ".join(str(n) for n in peer.allowed_ips))
        if peer.endpoint:
            lines.append(f"Endpoint = {peer.endpoint}")
        if peer.persistent_keepalive:
            lines.append(f"PersistentKeepalive = {peer.persistent_keepalive}")

    return "\n".join(lines) + "\n"
