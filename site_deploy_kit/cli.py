import sys
from typing import Any

import click

from .config import load_env_files, RuntimeFlags, SiteConfig
from .logging_utils import setup_logging, get_logger
from .orchestrator import deploy_site, format_result, plan_site, remove_site
from .validate import ConfigValidationError


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리). .env 파일과 배포 폴더를 이 기준으로 찾습니다.",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 boto 로그까지 출력)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """S3 정적 웹사이트 배포/삭제 CLI"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_config_from_ctx(ctx: click.Context) -> SiteConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = SiteConfig.from_env(base_dir)
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _load_or_exit(ctx: click.Context) -> SiteConfig:
    try:
        return _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)


def _report_validation_error(e: ConfigValidationError) -> None:
    for message in e.messages:
        click.echo(f"[ERROR] {message}", err=True)
    sys.exit(1)


def _confirm_option(func):  # noqa: ANN001, ANN202
    return click.option(
        "--confirm/--no-confirm",
        "confirm",
        default=True,
        help="실행 전 확인 프롬프트를 띄웁니다. (--no-confirm 으로 생략)",
    )(func)


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """현재 설정을 요약하고 deploy 단계별 ENABLED/SKIPPED 상태를 출력"""
    cfg = _load_or_exit(ctx)
    click.echo(plan_site(cfg, base_dir=ctx.obj["chdir"]))


@main.command(name="deploy")
@click.option(
    "--delete-contents/--no-delete-contents",
    "delete_contents",
    default=True,
    help="기존 버킷이 있으면 업로드 전에 모든 객체를 지웁니다.",
)
@click.option(
    "--config-change/--no-config-change",
    "config_change",
    default=True,
    help="웹사이트 호스팅 설정(index/error 문서, 리다이렉트)을 적용합니다.",
)
@click.option(
    "--policy-change/--no-policy-change",
    "policy_change",
    default=True,
    help="버킷 정책을 적용합니다.",
)
@click.option(
    "--cors-change/--no-cors-change",
    "cors_change",
    default=True,
    help="CORS 규칙을 적용합니다.",
)
@_confirm_option
@click.pass_context
def deploy(ctx: click.Context, **options: Any) -> None:
    """버킷을 준비하고 빌드 결과물을 업로드하여 배포"""
    cfg = _load_or_exit(ctx)
    flags = RuntimeFlags.from_options(options)

    try:
        result = deploy_site(cfg, flags, base_dir=ctx.obj["chdir"])
    except ConfigValidationError as e:
        _report_validation_error(e)
        return
    except click.Abort:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 오류 발생")
        click.echo(f"[ERROR] 배포 실패: {e}", err=True)
        sys.exit(1)

    if result.aborted:
        return

    click.echo(format_result("Deploy summary", cfg, result))


@main.command(name="remove")
@_confirm_option
@click.pass_context
def remove(ctx: click.Context, confirm: bool) -> None:
    """버킷을 비우고 삭제"""
    cfg = _load_or_exit(ctx)
    flags = RuntimeFlags.from_options({"confirm": confirm})

    try:
        result = remove_site(cfg, flags)
    except ConfigValidationError as e:
        _report_validation_error(e)
        return
    except click.Abort:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("삭제 중 오류 발생")
        click.echo(f"[ERROR] 삭제 실패: {e}", err=True)
        sys.exit(1)

    if result.aborted:
        return

    click.echo(format_result("Remove summary", cfg, result))
