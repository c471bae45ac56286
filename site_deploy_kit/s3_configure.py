"""
s3_configure
------------

버킷에 웹사이트 호스팅 설정, 버킷 정책, CORS 규칙을 적용하는 모듈.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

from .config import SiteConfig
from .logging_utils import get_logger


logger = get_logger(__name__)


DEFAULT_CORS_RULES: List[Dict[str, Any]] = [
    {
        "AllowedHeaders": ["*"],
        "AllowedMethods": ["PUT", "POST", "DELETE"],
        "AllowedOrigins": ["https://*.amazonaws.com"],
        "MaxAgeSeconds": 0,
    },
    {
        "AllowedHeaders": ["*"],
        "AllowedMethods": ["GET"],
        "AllowedOrigins": ["*"],
        "MaxAgeSeconds": 0,
    },
]


def default_policy(bucket_name: str) -> Dict[str, Any]:
    """버킷 전체 객체를 누구나 읽을 수 있게 하는 기본 정책."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "PublicReadGetObject",
                "Effect": "Allow",
                "Principal": "*",
                "Action": "s3:GetObject",
                "Resource": f"arn:aws:s3:::{bucket_name}/*",
            }
        ],
    }


def _redirect_target(value: str) -> Dict[str, str]:
    """
    "example.com" 또는 "https://example.com" 을 RedirectAllRequestsTo 형식으로 바꾼다.
    """
    target = value.strip()
    redirect: Dict[str, str] = {}
    if "://" in target:
        protocol, target = target.split("://", 1)
        redirect["Protocol"] = protocol.lower()
    redirect["HostName"] = target.rstrip("/")
    return redirect


def build_website_configuration(cfg: SiteConfig) -> Dict[str, Any]:
    if cfg.redirect_all_requests_to:
        return {"RedirectAllRequestsTo": _redirect_target(cfg.redirect_all_requests_to)}

    website: Dict[str, Any] = {
        "IndexDocument": {"Suffix": cfg.index_document},
        "ErrorDocument": {"Key": cfg.error_document},
    }
    if cfg.routing_rules:
        website["RoutingRules"] = list(cfg.routing_rules)
    return website


def configure_bucket(client: Any, cfg: SiteConfig) -> None:
    """
    버킷에 정적 웹사이트 호스팅 설정을 적용한다.
    (index/error 문서 + 라우팅 규칙, 또는 전체 리다이렉트)
    """
    website = build_website_configuration(cfg)
    logger.info("웹사이트 호스팅 설정 적용: %s", cfg.bucket_name)
    logger.debug("WebsiteConfiguration: %s", website)

    client.put_bucket_website(
        Bucket=cfg.bucket_name,
        WebsiteConfiguration=website,
    )


def configure_policy_for_bucket(client: Any, cfg: SiteConfig) -> None:
    """
    버킷 정책을 적용한다. 설정된 정책이 없으면 공개 읽기 정책을 쓴다.

    새로 만든 버킷은 Block Public Access 가 켜져 있어 공개 정책이 거절되므로
    정책 적용 전에 public access block 을 먼저 해제한다.
    """
    policy = cfg.policy if cfg.policy is not None else default_policy(cfg.bucket_name)

    logger.info("Public access block 해제: %s", cfg.bucket_name)
    client.delete_public_access_block(Bucket=cfg.bucket_name)

    logger.info("버킷 정책 적용: %s", cfg.bucket_name)
    logger.debug("Policy: %s", policy)
    client.put_bucket_policy(
        Bucket=cfg.bucket_name,
        Policy=json.dumps(policy),
    )


def configure_cors_for_bucket(client: Any, cfg: SiteConfig) -> None:
    """
    CORS 규칙을 적용한다. 설정된 규칙이 없으면 DEFAULT_CORS_RULES 를 쓴다.
    """
    rules = list(cfg.cors) if cfg.cors is not None else DEFAULT_CORS_RULES

    logger.info("CORS 규칙 적용: %s (%d개)", cfg.bucket_name, len(rules))
    client.put_bucket_cors(
        Bucket=cfg.bucket_name,
        CORSConfiguration={"CORSRules": rules},
    )
