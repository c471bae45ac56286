"""
site_deploy_kit
---------------

정적 웹사이트 배포 CLI 패키지.
S3 버킷을 웹사이트 호스팅용으로 만들고(호스팅 설정, 버킷 정책, CORS),
로컬 빌드 결과물을 업로드하거나 버킷을 통째로 제거하는 것을 목표로 한다.
"""

__all__ = [
    "config",
    "orchestrator",
]
