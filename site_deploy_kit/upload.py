"""
upload
------

로컬 빌드 디렉토리를 재귀적으로 S3 버킷에 업로드하는 모듈.
파일별 헤더(objectHeaders)와 업로드 파라미터(objectParams) 규칙을 적용한다.

규칙 키 형식:
    "ALL_OBJECTS"     모든 파일
    "assets/"         해당 폴더 아래 모든 파일 ('/' 로 끝남)
    "index.html"      특정 파일 (또는 "*.js" 같은 glob)

적용 순서는 ALL_OBJECTS -> 폴더(얕은 것부터) -> 파일/glob 이며, 뒤에 적용된 값이 이긴다.
"""

from __future__ import annotations

import fnmatch
import mimetypes
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .config import SiteConfig
from .logging_utils import get_logger


logger = get_logger(__name__)

ALL_OBJECTS = "ALL_OBJECTS"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# HTTP 헤더 이름 -> boto3 upload_file ExtraArgs 키
_HEADER_TO_EXTRA_ARG = {
    "cache-control": "CacheControl",
    "content-type": "ContentType",
    "content-encoding": "ContentEncoding",
    "content-disposition": "ContentDisposition",
    "content-language": "ContentLanguage",
    "expires": "Expires",
    "website-redirect-location": "WebsiteRedirectLocation",
    "x-amz-website-redirect-location": "WebsiteRedirectLocation",
}

_META_PREFIX = "x-amz-meta-"


def list_files(local_dir: str) -> List[str]:
    """
    local_dir 아래 모든 파일의 상대 경로('/' 구분)를 정렬해서 리턴한다.
    """
    if not os.path.isdir(local_dir):
        raise FileNotFoundError(f"업로드할 디렉토리가 없습니다: {local_dir}")

    files: List[str] = []
    for root, dirs, names in os.walk(local_dir):
        dirs.sort()
        for name in sorted(names):
            full = os.path.join(root, name)
            rel = os.path.relpath(full, local_dir)
            files.append(rel.replace(os.sep, "/"))
    return files


def order_files(files: Iterable[str], upload_order: Iterable[str]) -> List[str]:
    """
    upload_order 의 정규식 순서대로 매칭되는 파일을 앞에 둔다.
    어느 정규식에도 매칭되지 않는 파일은 원래 순서대로 뒤에 붙는다.
    """
    remaining = list(files)
    ordered: List[str] = []
    for pattern in upload_order:
        regex = re.compile(pattern)
        matched = [f for f in remaining if regex.search(f)]
        ordered.extend(matched)
        remaining = [f for f in remaining if f not in matched]
    return ordered + remaining


def _matching_rules(rel_path: str, rules: Optional[Mapping[str, Any]]) -> List[Tuple[str, Any]]:
    if not rules:
        return []

    all_objects: List[Tuple[str, Any]] = []
    folders: List[Tuple[str, Any]] = []
    files: List[Tuple[str, Any]] = []

    for pattern, entries in rules.items():
        if pattern == ALL_OBJECTS:
            all_objects.append((pattern, entries))
        elif pattern.endswith("/"):
            if rel_path.startswith(pattern.lstrip("/")):
                folders.append((pattern, entries))
        elif fnmatch.fnmatch(rel_path, pattern.lstrip("/")):
            files.append((pattern, entries))

    folders.sort(key=lambda item: item[0].count("/"))
    return all_objects + folders + files


def build_extra_args(rel_path: str, cfg: SiteConfig) -> Dict[str, Any]:
    """
    파일 하나에 대해 upload_file 에 넘길 ExtraArgs 를 만든다.
    """
    content_type, _ = mimetypes.guess_type(rel_path)
    extra: Dict[str, Any] = {"ContentType": content_type or DEFAULT_CONTENT_TYPE}
    metadata: Dict[str, str] = {}

    for _, entries in _matching_rules(rel_path, cfg.object_headers):
        for entry in entries:
            header = str(entry["name"])
            value = str(entry["value"])
            key = header.lower()
            if key in _HEADER_TO_EXTRA_ARG:
                extra[_HEADER_TO_EXTRA_ARG[key]] = value
            elif key.startswith(_META_PREFIX):
                metadata[key[len(_META_PREFIX):]] = value
            else:
                metadata[header] = value

    for _, entries in _matching_rules(rel_path, cfg.object_params):
        for entry in entries:
            extra[str(entry["name"])] = entry["value"]

    if metadata:
        extra["Metadata"] = {**extra.get("Metadata", {}), **metadata}
    return extra


def object_key(rel_path: str, prefix: Optional[str]) -> str:
    if not prefix:
        return rel_path
    return f"{prefix.strip('/')}/{rel_path}"


def upload_directory(client: Any, local_dir: str, cfg: SiteConfig) -> int:
    """
    local_dir 의 모든 파일을 cfg.bucket_name 버킷에 업로드한다.

    Returns:
        업로드한 파일 개수
    """
    files = order_files(list_files(local_dir), cfg.upload_order)

    logger.info(
        "업로드 시작: %s -> s3://%s/%s (%d개)",
        local_dir,
        cfg.bucket_name,
        (cfg.bucket_prefix or "").strip("/"),
        len(files),
    )

    for rel_path in files:
        key = object_key(rel_path, cfg.bucket_prefix)
        extra = build_extra_args(rel_path, cfg)
        logger.debug("업로드: %s -> %s %s", rel_path, key, extra)
        client.upload_file(
            os.path.join(local_dir, *rel_path.split("/")),
            cfg.bucket_name,
            key,
            ExtraArgs=extra,
        )

    logger.info("업로드 완료: %s (%d개)", cfg.bucket_name, len(files))
    return len(files)
