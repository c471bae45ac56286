from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

import click

from .config import RuntimeFlags, SiteConfig
from .logging_utils import get_logger
from .validate import ConfigValidationError
from . import (
    s3_bucket,
    s3_configure,
    upload,
    validate,
)


logger = get_logger(__name__)

PROCEEDED = "proceeded"
ABORTED = "aborted"

DEPLOY_PROMPT = "Do you want to proceed?"
REMOVE_PROMPT = "Are you sure you want to delete bucket '{bucket_name}'?"

# plan 출력에 쓰는 deploy 단계 이름
DEPLOY_STEPS: List[str] = [
    "bucket",
    "website",
    "policy",
    "cors",
    "upload",
]

Confirm = Callable[[str], bool]


@dataclass
class RunResult:
    outcome: str
    executed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.outcome == ABORTED


def _prompt(message: str) -> bool:
    return click.confirm(message, default=False)


def _validate_config(cfg: SiteConfig, base_dir: Optional[str] = None) -> None:
    """
    설정을 한 번 검증하고, 문제가 있으면 ConfigValidationError 를 던진다.
    """
    errors = validate.validate_config(cfg, base_dir=base_dir)
    if errors:
        logger.debug("설정 검증 실패: %s", errors)
        raise ConfigValidationError(errors)


def _ask(flags: RuntimeFlags, confirm: Optional[Confirm], message: str) -> bool:
    if not flags.confirm:
        logger.debug("--no-confirm 이므로 확인 프롬프트를 건너뜁니다.")
        return True
    ask = confirm or _prompt
    return bool(ask(message))


def deploy_site(
    cfg: SiteConfig,
    flags: Optional[RuntimeFlags] = None,
    *,
    base_dir: str = ".",
    confirm: Optional[Confirm] = None,
    client: Any = None,
) -> RunResult:
    """
    버킷을 준비하고(생성 또는 비우기) 호스팅/정책/CORS 를 적용한 뒤 빌드 결과물을 업로드한다.

    각 설정 단계는 자기 플래그로만 켜고 끈다. 중간 단계에서 예외가 나면
    그대로 올리며, 이미 적용된 변경은 되돌리지 않는다.
    """
    flags = flags or RuntimeFlags()

    _validate_config(cfg, base_dir)

    if not _ask(flags, confirm, DEPLOY_PROMPT):
        logger.debug("사용자가 배포를 취소했습니다.")
        return RunResult(outcome=ABORTED)

    client = client or s3_bucket.make_client(cfg)
    bucket = cfg.bucket_name
    result = RunResult(outcome=PROCEEDED)

    if not s3_bucket.bucket_exists(client, bucket):
        s3_bucket.create_bucket(client, bucket, cfg.region)
        result.executed.append("create_bucket")
    elif flags.delete_contents:
        s3_bucket.empty_bucket(client, bucket)
        result.executed.append("empty_bucket")
    else:
        logger.info("--no-delete-contents: 기존 버킷 %s 의 객체를 유지합니다.", bucket)
        result.skipped.append("empty_bucket")

    if flags.config_change:
        s3_configure.configure_bucket(client, cfg)
        result.executed.append("website")
    else:
        result.skipped.append("website")

    if flags.policy_change:
        s3_configure.configure_policy_for_bucket(client, cfg)
        result.executed.append("policy")
    else:
        result.skipped.append("policy")

    if flags.cors_change:
        s3_configure.configure_cors_for_bucket(client, cfg)
        result.executed.append("cors")
    else:
        result.skipped.append("cors")

    upload.upload_directory(client, cfg.local_dir(base_dir), cfg)
    result.executed.append("upload")

    logger.info("배포 완료: %s", bucket)
    return result


def remove_site(
    cfg: SiteConfig,
    flags: Optional[RuntimeFlags] = None,
    *,
    confirm: Optional[Confirm] = None,
    client: Any = None,
) -> RunResult:
    """
    버킷이 있으면 비운 뒤 삭제한다. 없으면 아무 것도 하지 않는다.
    """
    flags = flags or RuntimeFlags()

    _validate_config(cfg)

    bucket = cfg.bucket_name
    if not _ask(flags, confirm, REMOVE_PROMPT.format(bucket_name=bucket)):
        logger.debug("사용자가 삭제를 취소했습니다.")
        return RunResult(outcome=ABORTED)

    client = client or s3_bucket.make_client(cfg)
    result = RunResult(outcome=PROCEEDED)

    if not s3_bucket.bucket_exists(client, bucket):
        logger.info("버킷 %s 이(가) 없어 삭제할 것이 없습니다.", bucket)
        result.skipped.extend(["empty_bucket", "delete_bucket"])
        return result

    s3_bucket.empty_bucket(client, bucket)
    result.executed.append("empty_bucket")
    s3_bucket.delete_bucket(client, bucket)
    result.executed.append("delete_bucket")

    logger.info("삭제 완료: %s", bucket)
    return result


def _step_enabled(name: str, flags: RuntimeFlags) -> bool:
    if name == "website":
        return flags.config_change
    if name == "policy":
        return flags.policy_change
    if name == "cors":
        return flags.cors_change
    return True


def plan_site(
    cfg: SiteConfig,
    flags: Optional[RuntimeFlags] = None,
    *,
    base_dir: Optional[str] = None,
) -> str:
    """
    현재 설정과 deploy 시 각 단계가 실행될지 요약 텍스트로 리턴한다.
    실제 AWS 호출은 하지 않는다.
    """
    flags = flags or RuntimeFlags()

    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- bucket: {cfg.bucket_name or '(not set)'}")
    lines.append(f"- region: {cfg.region or '(default)'}")
    lines.append("")

    lines.append("## Config summary")
    lines.append(f"- distribution_folder: {cfg.distribution_folder}")
    lines.append(f"- bucket_prefix: {cfg.bucket_prefix or '(not set)'}")
    if cfg.redirect_all_requests_to:
        lines.append(f"- redirect_all_requests_to: {cfg.redirect_all_requests_to}")
    else:
        lines.append(f"- index_document: {cfg.index_document}")
        lines.append(f"- error_document: {cfg.error_document}")
        lines.append(f"- routing_rules: {len(cfg.routing_rules or [])}")
    lines.append(f"- policy: {'custom' if cfg.policy is not None else 'default (public read)'}")
    lines.append(f"- cors: {'custom' if cfg.cors is not None else 'default'}")
    lines.append(f"- upload_order: {', '.join(cfg.upload_order) or '(none)'}")
    lines.append("")

    lines.append("## Steps")
    for name in DEPLOY_STEPS:
        if name == "bucket":
            mode = "create or empty" if flags.delete_contents else "create only (keep contents)"
            lines.append(f"- bucket: ENABLED ({mode})")
            continue
        status = "ENABLED" if _step_enabled(name, flags) else "SKIPPED"
        lines.append(f"- {name}: {status}")

    errors = validate.validate_config(cfg, base_dir=base_dir)
    if errors:
        lines.append("")
        lines.append("## Config errors")
        for e in errors:
            lines.append(f"- {e}")

    return "\n".join(lines)


def format_result(title: str, cfg: SiteConfig, result: RunResult) -> str:
    lines: List[str] = []
    lines.append(f"# {title}")
    lines.append(f"- bucket: {cfg.bucket_name}")
    lines.append("")

    lines.append("## Executed steps")
    if result.executed:
        for s in result.executed:
            lines.append(f"- {s}")
    else:
        lines.append("- (none)")

    lines.append("")
    lines.append("## Skipped steps")
    if result.skipped:
        for s in result.skipped:
            lines.append(f"- {s}")
    else:
        lines.append("- (none)")

    return "\n".join(lines)
