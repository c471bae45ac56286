from __future__ import annotations

from typing import Any, Callable, List, Optional

import os

import pytest

from site_deploy_kit import orchestrator
from site_deploy_kit.config import RuntimeFlags, SiteConfig
from site_deploy_kit.validate import ConfigValidationError


BUCKET_CALLS = ["bucket_exists", "create_bucket", "empty_bucket", "delete_bucket"]
CONFIGURE_CALLS = [
    "configure_bucket",
    "configure_policy_for_bucket",
    "configure_cors_for_bucket",
]


def _cfg() -> SiteConfig:
    return SiteConfig(bucket_name="valid-simple", distribution_folder="dist")


class _Recorder:
    """collaborator 호출 순서를 기록한다."""

    def __init__(self, base_dir: str = ".") -> None:
        self.base_dir = base_dir
        self.calls: List[str] = []
        self.prompts: List[str] = []

    def count(self, name: str) -> int:
        return self.calls.count(name)

    def record(self, name: str, result: Any = None) -> Callable[..., Any]:
        def fake(*args: Any, **kwargs: Any) -> Any:  # noqa: ARG001
            self.calls.append(name)
            return result

        return fake

    def confirm(self, answer: bool) -> Callable[[str], bool]:
        def fake(message: str) -> bool:
            self.prompts.append(message)
            return answer

        return fake


@pytest.fixture
def rec(monkeypatch: pytest.MonkeyPatch, tmp_path) -> _Recorder:
    (tmp_path / "dist").mkdir()
    r = _Recorder(str(tmp_path))
    _set_bucket_exists(monkeypatch, r, True)
    for name in BUCKET_CALLS[1:]:
        monkeypatch.setattr(orchestrator.s3_bucket, name, r.record(name))
    for name in CONFIGURE_CALLS:
        monkeypatch.setattr(orchestrator.s3_configure, name, r.record(name))
    monkeypatch.setattr(orchestrator.upload, "upload_directory", r.record("upload_directory", 0))

    def no_client(cfg: SiteConfig) -> Any:  # noqa: ARG001
        raise AssertionError("client 는 테스트에서 직접 넘긴다")

    monkeypatch.setattr(orchestrator.s3_bucket, "make_client", no_client)
    return r


def _set_bucket_exists(monkeypatch: pytest.MonkeyPatch, r: _Recorder, exists: bool) -> None:
    monkeypatch.setattr(orchestrator.s3_bucket, "bucket_exists", r.record("bucket_exists", exists))


def _fail_validation(monkeypatch: pytest.MonkeyPatch, messages: Optional[List[str]]) -> List[int]:
    seen: List[int] = []

    def fake_validate(cfg: SiteConfig, base_dir: Optional[str] = None) -> Optional[List[str]]:  # noqa: ARG001
        seen.append(1)
        return messages

    monkeypatch.setattr(orchestrator.validate, "validate_config", fake_validate)
    return seen


def _deploy(rec: _Recorder, flags: Optional[RuntimeFlags] = None, answer: bool = True) -> orchestrator.RunResult:
    return orchestrator.deploy_site(
        _cfg(),
        flags,
        base_dir=rec.base_dir,
        confirm=rec.confirm(answer),
        client=object(),
    )


def _remove(rec: _Recorder, flags: Optional[RuntimeFlags] = None, answer: bool = True) -> orchestrator.RunResult:
    return orchestrator.remove_site(
        _cfg(),
        flags,
        confirm=rec.confirm(answer),
        client=object(),
    )


# ---------------------------------------------------------------- deploy


def test_deploy_validates_config_once(monkeypatch: pytest.MonkeyPatch, rec: _Recorder) -> None:
    seen = _fail_validation(monkeypatch, None)

    _deploy(rec)

    assert len(seen) == 1


def test_deploy_invalid_config_raises_before_any_call(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    _fail_validation(monkeypatch, ["Some error message"])

    with pytest.raises(ConfigValidationError) as excinfo:
        _deploy(rec)

    assert excinfo.value.messages == ["Some error message"]
    assert rec.prompts == []
    assert rec.calls == []


def test_deploy_missing_distribution_folder_fails_before_touching_bucket(
    rec: _Recorder,
) -> None:
    cfg = SiteConfig(bucket_name="valid-simple", distribution_folder="no-such-dir")

    with pytest.raises(ConfigValidationError) as excinfo:
        orchestrator.deploy_site(
            cfg,
            base_dir=rec.base_dir,
            confirm=rec.confirm(True),
            client=object(),
        )

    assert any("no-such-dir" in m for m in excinfo.value.messages)
    assert rec.prompts == []
    assert rec.calls == []


def test_deploy_prompts_for_confirmation(rec: _Recorder) -> None:
    _deploy(rec)

    assert rec.prompts == ["Do you want to proceed?"]


def test_deploy_quits_if_user_does_not_confirm(rec: _Recorder) -> None:
    result = _deploy(rec, answer=False)

    assert result.aborted
    assert len(rec.prompts) == 1
    assert rec.calls == []


def test_deploy_existing_bucket_all_flags(rec: _Recorder) -> None:
    result = _deploy(rec)

    assert not result.aborted
    assert rec.calls == [
        "bucket_exists",
        "empty_bucket",
        "configure_bucket",
        "configure_policy_for_bucket",
        "configure_cors_for_bucket",
        "upload_directory",
    ]
    assert rec.count("create_bucket") == 0


def test_deploy_creates_and_does_not_empty_missing_bucket(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    _set_bucket_exists(monkeypatch, rec, False)

    _deploy(rec)

    assert rec.count("create_bucket") == 1
    assert rec.count("empty_bucket") == 0
    for name in CONFIGURE_CALLS + ["upload_directory"]:
        assert rec.count(name) == 1


def test_deploy_no_delete_contents_keeps_existing_objects(rec: _Recorder) -> None:
    result = _deploy(rec, RuntimeFlags.from_options({"delete-contents": False}))

    assert rec.count("empty_bucket") == 0
    assert rec.count("create_bucket") == 0
    for name in CONFIGURE_CALLS + ["upload_directory"]:
        assert rec.count(name) == 1
    assert "empty_bucket" in result.skipped


def test_deploy_no_delete_contents_still_creates_missing_bucket(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    _set_bucket_exists(monkeypatch, rec, False)

    _deploy(rec, RuntimeFlags(delete_contents=False))

    assert rec.count("create_bucket") == 1
    assert rec.count("empty_bucket") == 0


@pytest.mark.parametrize(
    "option, skipped_call",
    [
        ("config-change", "configure_bucket"),
        ("policy-change", "configure_policy_for_bucket"),
        ("cors-change", "configure_cors_for_bucket"),
    ],
)
@pytest.mark.parametrize("exists", [True, False])
def test_deploy_each_configure_step_follows_only_its_flag(
    monkeypatch: pytest.MonkeyPatch,
    rec: _Recorder,
    option: str,
    skipped_call: str,
    exists: bool,
) -> None:
    _set_bucket_exists(monkeypatch, rec, exists)

    _deploy(rec, RuntimeFlags.from_options({option: False}))

    assert rec.count(skipped_call) == 0
    for name in CONFIGURE_CALLS:
        if name != skipped_call:
            assert rec.count(name) == 1
    assert rec.count("upload_directory") == 1


def test_deploy_uploads_even_with_every_flag_off(rec: _Recorder) -> None:
    flags = RuntimeFlags(
        delete_contents=False,
        config_change=False,
        policy_change=False,
        cors_change=False,
    )

    result = _deploy(rec, flags)

    assert rec.calls == ["bucket_exists", "upload_directory"]
    assert result.executed == ["upload"]


def test_deploy_uploads_distribution_folder_under_base_dir(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    dirs: List[str] = []

    def fake_upload(client: Any, local_dir: str, cfg: SiteConfig) -> int:  # noqa: ARG001
        dirs.append(local_dir)
        return 0

    monkeypatch.setattr(orchestrator.upload, "upload_directory", fake_upload)

    _deploy(rec)

    assert dirs == [os.path.join(rec.base_dir, "dist")]


def test_deploy_no_confirm_skips_prompt(rec: _Recorder) -> None:
    _deploy(rec, RuntimeFlags(confirm=False))

    assert rec.prompts == []
    assert rec.count("upload_directory") == 1


def test_deploy_collaborator_failure_propagates_without_rollback(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    def failing_policy(client: Any, cfg: SiteConfig) -> None:  # noqa: ARG001
        rec.calls.append("configure_policy_for_bucket")
        raise RuntimeError("boom")

    monkeypatch.setattr(orchestrator.s3_configure, "configure_policy_for_bucket", failing_policy)

    with pytest.raises(RuntimeError, match="boom"):
        _deploy(rec)

    assert rec.calls == [
        "bucket_exists",
        "empty_bucket",
        "configure_bucket",
        "configure_policy_for_bucket",
    ]


def test_deploy_builds_client_after_confirmation(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    clients: List[str] = []

    def fake_make_client(cfg: SiteConfig) -> str:
        clients.append(cfg.bucket_name)
        return "client"

    monkeypatch.setattr(orchestrator.s3_bucket, "make_client", fake_make_client)

    orchestrator.deploy_site(_cfg(), base_dir=rec.base_dir, confirm=rec.confirm(False))
    assert clients == []

    orchestrator.deploy_site(_cfg(), base_dir=rec.base_dir, confirm=rec.confirm(True))
    assert clients == ["valid-simple"]


# ---------------------------------------------------------------- remove


def test_remove_validates_config_once(monkeypatch: pytest.MonkeyPatch, rec: _Recorder) -> None:
    seen = _fail_validation(monkeypatch, None)

    _remove(rec)

    assert len(seen) == 1


def test_remove_invalid_config_raises_before_any_call(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    _fail_validation(monkeypatch, ["Some error message"])

    with pytest.raises(ConfigValidationError):
        _remove(rec)

    assert rec.prompts == []
    assert rec.calls == []


def test_remove_prompts_with_bucket_name(rec: _Recorder) -> None:
    _remove(rec)

    assert rec.prompts == ["Are you sure you want to delete bucket 'valid-simple'?"]


def test_remove_quits_if_user_does_not_confirm(rec: _Recorder) -> None:
    result = _remove(rec, answer=False)

    assert result.aborted
    assert rec.calls == []


def test_remove_empties_then_deletes(rec: _Recorder) -> None:
    result = _remove(rec)

    assert rec.calls == ["bucket_exists", "empty_bucket", "delete_bucket"]
    assert result.executed == ["empty_bucket", "delete_bucket"]


def test_remove_missing_bucket_is_a_no_op(monkeypatch: pytest.MonkeyPatch, rec: _Recorder) -> None:
    _set_bucket_exists(monkeypatch, rec, False)

    result = _remove(rec)

    assert not result.aborted
    assert rec.calls == ["bucket_exists"]


def test_remove_delete_not_attempted_when_empty_fails(
    monkeypatch: pytest.MonkeyPatch, rec: _Recorder
) -> None:
    def failing_empty(client: Any, name: str) -> None:  # noqa: ARG001
        raise RuntimeError("access denied")

    monkeypatch.setattr(orchestrator.s3_bucket, "empty_bucket", failing_empty)

    with pytest.raises(RuntimeError):
        _remove(rec)

    assert rec.count("delete_bucket") == 0


# ---------------------------------------------------------------- plan


def test_plan_marks_disabled_steps() -> None:
    report = orchestrator.plan_site(_cfg(), RuntimeFlags(cors_change=False))

    assert "- website: ENABLED" in report
    assert "- policy: ENABLED" in report
    assert "- cors: SKIPPED" in report
    assert "- upload: ENABLED" in report
    assert "Config errors" not in report


def test_plan_lists_config_errors() -> None:
    report = orchestrator.plan_site(SiteConfig(bucket_name=""))

    assert "## Config errors" in report
    assert "SITE_BUCKET_NAME" in report


def test_format_result_lists_steps() -> None:
    result = orchestrator.RunResult(
        outcome=orchestrator.PROCEEDED,
        executed=["create_bucket", "upload"],
        skipped=["cors"],
    )

    summary = orchestrator.format_result("Deploy summary", _cfg(), result)

    assert "## Executed steps\n- create_bucket\n- upload" in summary
    assert "## Skipped steps\n- cors" in summary
