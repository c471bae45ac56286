from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.site"]

DEFAULT_DISTRIBUTION_FOLDER = os.path.join("client", "dist")
DEFAULT_INDEX_DOCUMENT = "index.html"
DEFAULT_ERROR_DOCUMENT = "error.html"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name) or ""
    return tuple(p.strip() for p in raw.split(",") if p.strip())


def _load_json_file(env_name: str, base_dir: str) -> Any:
    """
    env_name 환경변수가 가리키는 JSON 파일을 읽는다.
    환경변수가 비어 있으면 None. 상대 경로는 base_dir 기준이다.
    """
    path = os.getenv(env_name)
    if not path:
        return None
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise ValueError(f"{env_name} 파일을 읽을 수 없습니다: {path} ({e})") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"{env_name} 파일이 올바른 JSON 이 아닙니다: {path} ({e})") from e


@dataclass(frozen=True)
class SiteConfig:
    # 필수
    bucket_name: str

    # 업로드
    distribution_folder: str = DEFAULT_DISTRIBUTION_FOLDER
    bucket_prefix: Optional[str] = None
    upload_order: Tuple[str, ...] = ()
    object_headers: Optional[Mapping[str, Any]] = None
    object_params: Optional[Mapping[str, Any]] = None

    # 웹사이트 호스팅
    index_document: str = DEFAULT_INDEX_DOCUMENT
    error_document: str = DEFAULT_ERROR_DOCUMENT
    redirect_all_requests_to: Optional[str] = None
    routing_rules: Optional[List[Any]] = None

    # 정책 / CORS 덮어쓰기
    policy: Optional[Mapping[str, Any]] = None
    cors: Optional[List[Any]] = None

    # AWS
    region: Optional[str] = None
    aws_profile: Optional[str] = None

    @classmethod
    def from_env(cls, base_dir: str = ".") -> "SiteConfig":
        """
        환경변수(및 그 환경변수가 가리키는 JSON 파일)에서 설정을 만든다.
        값의 타당성 검사는 validate.validate_config 가 담당하므로
        여기서는 파일을 읽지 못하는 경우에만 ValueError 를 던진다.
        """
        return cls(
            bucket_name=(os.getenv("SITE_BUCKET_NAME") or "").strip(),
            distribution_folder=os.getenv("SITE_DISTRIBUTION_FOLDER") or DEFAULT_DISTRIBUTION_FOLDER,
            bucket_prefix=os.getenv("SITE_BUCKET_PREFIX") or None,
            upload_order=_get_list("SITE_UPLOAD_ORDER"),
            object_headers=_load_json_file("SITE_OBJECT_HEADERS_FILE", base_dir),
            object_params=_load_json_file("SITE_OBJECT_PARAMS_FILE", base_dir),
            index_document=os.getenv("SITE_INDEX_DOCUMENT") or DEFAULT_INDEX_DOCUMENT,
            error_document=os.getenv("SITE_ERROR_DOCUMENT") or DEFAULT_ERROR_DOCUMENT,
            redirect_all_requests_to=os.getenv("SITE_REDIRECT_ALL_REQUESTS_TO") or None,
            routing_rules=_load_json_file("SITE_ROUTING_RULES_FILE", base_dir),
            policy=_load_json_file("SITE_POLICY_FILE", base_dir),
            cors=_load_json_file("SITE_CORS_FILE", base_dir),
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or None,
            aws_profile=os.getenv("AWS_PROFILE") or None,
        )

    def local_dir(self, base_dir: str = ".") -> str:
        """배포 폴더 경로. 상대 경로는 base_dir 기준이다."""
        if os.path.isabs(self.distribution_folder):
            return self.distribution_folder
        return os.path.join(base_dir, self.distribution_folder)


@dataclass(frozen=True)
class RuntimeFlags:
    # 모두 기본 True, --no-xxx 로 끈다.
    delete_contents: bool = True
    config_change: bool = True
    policy_change: bool = True
    cors_change: bool = True
    confirm: bool = True

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "RuntimeFlags":
        """
        CLI 옵션 dict 로부터 플래그를 만든다.
        "delete-contents" / "delete_contents" 어느 표기든 받으며,
        키가 없거나 None 이면 기본값(True)을 쓴다.
        """
        opts = options or {}

        def flag(name: str) -> bool:
            for key in (name, name.replace("_", "-")):
                value = opts.get(key)
                if value is not None:
                    return bool(value)
            return True

        return cls(
            delete_contents=flag("delete_contents"),
            config_change=flag("config_change"),
            policy_change=flag("policy_change"),
            cors_change=flag("cors_change"),
            confirm=flag("confirm"),
        )

