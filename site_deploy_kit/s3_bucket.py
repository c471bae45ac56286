"""
s3_bucket
---------

S3 버킷 존재 확인 / 생성 / 비우기 / 삭제를 담당하는 모듈.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from .config import SiteConfig
from .logging_utils import get_logger


logger = get_logger(__name__)

# delete_objects 한 번에 지울 수 있는 최대 키 개수
_DELETE_BATCH_SIZE = 1000

_NOT_FOUND_CODES = {"404", "NoSuchBucket", "NotFound"}


def make_client(cfg: SiteConfig) -> Any:
    """
    설정의 프로필/리전으로 S3 클라이언트를 만든다.
    자격 증명은 boto3 기본 체인(환경변수, ~/.aws, 인스턴스 롤)을 따른다.
    """
    session = boto3.session.Session(
        profile_name=cfg.aws_profile,
        region_name=cfg.region,
    )
    return session.client("s3")


def bucket_exists(client: Any, name: str) -> bool:
    """
    버킷이 존재하고 접근 가능한지 확인한다.
    404 계열은 False, 그 외(권한 없음 등)는 그대로 예외를 올린다.
    """
    try:
        client.head_bucket(Bucket=name)
        return True
    except ClientError as e:
        code = str(e.response.get("Error", {}).get("Code", ""))
        if code in _NOT_FOUND_CODES:
            return False
        logger.error("버킷 확인 실패: %s (%s)", name, code)
        raise


def create_bucket(client: Any, name: str, region: Optional[str] = None) -> None:
    """
    버킷을 생성한다. us-east-1 이 아니면 LocationConstraint 를 지정해야 한다.
    region 이 없으면 클라이언트의 리전(프로필 설정 등에서 결정된 값)을 쓴다.
    """
    region = region or client.meta.region_name
    params: Dict[str, Any] = {"Bucket": name}
    if region and region != "us-east-1":
        params["CreateBucketConfiguration"] = {"LocationConstraint": region}

    logger.info("S3 버킷 생성: %s (region=%s)", name, region or "us-east-1")
    client.create_bucket(**params)
    logger.info("S3 버킷을 생성했습니다: %s", name)


def _delete_batch(client: Any, name: str, batch: List[Dict[str, str]]) -> None:
    response = client.delete_objects(
        Bucket=name,
        Delete={"Objects": batch, "Quiet": True},
    )
    errors = response.get("Errors") or []
    if errors:
        first = errors[0]
        raise RuntimeError(
            f"버킷 {name} 의 객체 {len(errors)}개를 삭제하지 못했습니다. "
            f"(예: {first.get('Key')} - {first.get('Code')}: {first.get('Message')})"
        )


def empty_bucket(client: Any, name: str) -> int:
    """
    버킷 안의 모든 객체(버전/삭제 마커 포함)를 지운다.

    Returns:
        삭제한 객체(버전) 개수
    """
    logger.info("S3 버킷 비우기: %s", name)

    deleted = 0
    batch: List[Dict[str, str]] = []

    # list_object_versions 는 버전 관리가 꺼진 버킷에서도 현재 객체를 null 버전으로 돌려준다.
    paginator = client.get_paginator("list_object_versions")
    for page in paginator.paginate(Bucket=name):
        for item in page.get("Versions", []) + page.get("DeleteMarkers", []):
            batch.append({"Key": item["Key"], "VersionId": item["VersionId"]})
            if len(batch) >= _DELETE_BATCH_SIZE:
                _delete_batch(client, name, batch)
                deleted += len(batch)
                batch = []

    if batch:
        _delete_batch(client, name, batch)
        deleted += len(batch)

    logger.info("S3 버킷을 비웠습니다: %s (삭제 %d개)", name, deleted)
    return deleted


def delete_bucket(client: Any, name: str) -> None:
    """
    빈 버킷을 삭제한다. 비어 있지 않으면 S3 가 BucketNotEmpty 로 거절한다.
    """
    logger.info("S3 버킷 삭제: %s", name)
    client.delete_bucket(Bucket=name)
    logger.info("S3 버킷을 삭제했습니다: %s", name)
