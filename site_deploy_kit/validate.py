"""
validate
--------

SiteConfig 의 값이 S3 웹사이트 배포에 쓸 수 있는지 검사한다.
네트워크 호출은 하지 않는다.
"""

from __future__ import annotations

import ipaddress
import os
import re
from typing import Any, List, Optional

from .config import SiteConfig


_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")
_BUCKET_FORBIDDEN_PREFIXES = ("xn--", "sthree-")
_BUCKET_FORBIDDEN_SUFFIXES = ("-s3alias", "--ol-s3")

CORS_ALLOWED_METHODS = {"GET", "PUT", "POST", "DELETE", "HEAD"}


class ConfigValidationError(Exception):
    """설정 검증 실패. messages 에 사람이 읽을 수 있는 문제 목록을 담는다."""

    def __init__(self, messages: List[str]) -> None:
        self.messages = list(messages)
        super().__init__("\n".join(self.messages))


def _bucket_name_errors(name: str) -> List[str]:
    if not name:
        return ["SITE_BUCKET_NAME 이 설정되지 않았습니다."]

    errors: List[str] = []
    if not _BUCKET_NAME_RE.match(name):
        errors.append(
            f"버킷 이름 '{name}' 이(가) 올바르지 않습니다. "
            "3~63자의 소문자/숫자/'.'/'-' 로 구성되고 소문자나 숫자로 시작/끝나야 합니다."
        )
    if ".." in name:
        errors.append(f"버킷 이름 '{name}' 에 연속된 '.' 을 쓸 수 없습니다.")
    try:
        ipaddress.IPv4Address(name)
        errors.append(f"버킷 이름 '{name}' 은(는) IP 주소 형식일 수 없습니다.")
    except ValueError:
        pass
    if name.startswith(_BUCKET_FORBIDDEN_PREFIXES):
        errors.append(f"버킷 이름 '{name}' 은(는) 예약된 접두사로 시작합니다.")
    if name.endswith(_BUCKET_FORBIDDEN_SUFFIXES):
        errors.append(f"버킷 이름 '{name}' 은(는) 예약된 접미사로 끝납니다.")
    return errors


def _policy_errors(policy: Any) -> List[str]:
    if not isinstance(policy, dict):
        return ["버킷 정책은 JSON 객체여야 합니다."]

    statements = policy.get("Statement")
    if isinstance(statements, dict):
        statements = [statements]
    if not isinstance(statements, list) or not statements:
        return ["버킷 정책에 Statement 가 비어 있거나 없습니다."]

    errors: List[str] = []
    for i, stmt in enumerate(statements):
        if not isinstance(stmt, dict):
            errors.append(f"버킷 정책 Statement[{i}] 는 JSON 객체여야 합니다.")
            continue
        if stmt.get("Effect") not in ("Allow", "Deny"):
            errors.append(f"버킷 정책 Statement[{i}] 의 Effect 는 Allow 또는 Deny 여야 합니다.")
        if not stmt.get("Action"):
            errors.append(f"버킷 정책 Statement[{i}] 에 Action 이 없습니다.")
    return errors


def _cors_errors(cors: Any) -> List[str]:
    if not isinstance(cors, list) or not cors:
        return ["CORS 설정은 비어 있지 않은 규칙 목록이어야 합니다."]

    errors: List[str] = []
    for i, rule in enumerate(cors):
        if not isinstance(rule, dict):
            errors.append(f"CORS 규칙[{i}] 은(는) JSON 객체여야 합니다.")
            continue
        methods = rule.get("AllowedMethods")
        if not isinstance(methods, list) or not methods:
            errors.append(f"CORS 규칙[{i}] 에 AllowedMethods 가 없습니다.")
        else:
            invalid = sorted({str(m) for m in methods} - CORS_ALLOWED_METHODS)
            if invalid:
                errors.append(
                    f"CORS 규칙[{i}] 에 허용되지 않는 메서드가 있습니다: {', '.join(invalid)}"
                )
        origins = rule.get("AllowedOrigins")
        if not isinstance(origins, list) or not origins:
            errors.append(f"CORS 규칙[{i}] 에 AllowedOrigins 가 없습니다.")
    return errors


def _object_rules_errors(label: str, rules: Any) -> List[str]:
    """
    {"<pattern>": [{"name": ..., "value": ...}, ...]} 형태인지 확인한다.
    """
    if not isinstance(rules, dict):
        return [f"{label} 설정은 JSON 객체여야 합니다."]

    errors: List[str] = []
    for pattern, entries in rules.items():
        if not isinstance(entries, list):
            errors.append(f"{label}['{pattern}'] 은(는) 목록이어야 합니다.")
            continue
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("name") or "value" not in entry:
                errors.append(f"{label}['{pattern}'] 항목은 name/value 를 가져야 합니다.")
                break
    return errors


def validate_config(cfg: SiteConfig, base_dir: Optional[str] = None) -> Optional[List[str]]:
    """
    설정을 검사하고 문제가 있으면 메시지 목록을, 없으면 None 을 리턴한다.

    base_dir 가 주어지면 배포 폴더가 실제로 있는지도 확인한다.
    """
    errors: List[str] = []

    errors.extend(_bucket_name_errors(cfg.bucket_name))

    if not cfg.distribution_folder:
        errors.append("SITE_DISTRIBUTION_FOLDER 가 비어 있습니다.")
    elif base_dir is not None and not os.path.isdir(cfg.local_dir(base_dir)):
        errors.append(f"배포 폴더가 없습니다: {cfg.local_dir(base_dir)}")

    if cfg.redirect_all_requests_to is not None:
        if not cfg.redirect_all_requests_to.strip():
            errors.append("SITE_REDIRECT_ALL_REQUESTS_TO 가 비어 있습니다.")
        if cfg.routing_rules:
            errors.append(
                "SITE_REDIRECT_ALL_REQUESTS_TO 와 SITE_ROUTING_RULES_FILE 은 함께 쓸 수 없습니다."
            )

    if cfg.routing_rules is not None and not isinstance(cfg.routing_rules, list):
        errors.append("라우팅 규칙은 목록이어야 합니다.")

    if cfg.policy is not None:
        errors.extend(_policy_errors(cfg.policy))

    if cfg.cors is not None:
        errors.extend(_cors_errors(cfg.cors))

    if cfg.object_headers is not None:
        errors.extend(_object_rules_errors("objectHeaders", cfg.object_headers))

    if cfg.object_params is not None:
        errors.extend(_object_rules_errors("objectParams", cfg.object_params))

    for pattern in cfg.upload_order:
        try:
            re.compile(pattern)
        except re.error as e:
            errors.append(f"SITE_UPLOAD_ORDER 의 정규식 '{pattern}' 이(가) 올바르지 않습니다: {e}")

    return errors or None
