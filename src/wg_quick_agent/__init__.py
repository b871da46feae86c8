"""
WireGuard Quick Agent
WireGuard 인터페이스의 커널 상태를 선언된 설정에 맞춰 수렴시키는 에이전트

Features:
- 링크 생성 및 활성화
- wg setconf 기반 디바이스(키/피어) 설정
- IPv4 주소 및 crypto-key 라우트 동기화
- 라우트 프로토콜 태그 기반 소유권 보호
- PreUp/PostUp/PreDown/PostDown 훅 실행
"""

__version__ = "1.0.0"
__author__ = "DevOps Team"
