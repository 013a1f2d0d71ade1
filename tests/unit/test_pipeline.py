"""Tests for the release pipeline."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relnotes.config import RelnotesConfig
from relnotes.errors import ExternalServiceError, PackageNotFoundError, ShellCommandError
from relnotes.pipeline import ReleasePipeline, ReleaseStage
from relnotes.providers.github import Release

TAG = "elements_v1.2.0"
PR_URL = "https://github.com/acme/docs/pull/7"

HEADER = [
    "# Elements",
    "",
    "Release notes for the Elements component library.",
    "",
    "Newest releases first.",
    "",
    "---",
    "",
]


@pytest.fixture
def docs_dir(tmp_path: Path) -> Path:
    changelog = tmp_path / "changelogs" / "elements.md"
    changelog.parent.mkdir()
    existing = [*HEADER, "## Elements 1.1.0 - 2020-01-02", "- initial", ""]
    changelog.write_text("\n".join(existing) + "\n")
    return tmp_path


@pytest.fixture
def config(docs_dir: Path) -> RelnotesConfig:
    return RelnotesConfig(
        cwd=str(docs_dir),
        owner="acme",
        repo="foundations",
        docs_repo="docs",
        line_terminator="lf",
    )


def _github(release: Release | None = None) -> MagicMock:
    gh = MagicMock()
    gh.fetch_release = AsyncMock(
        return_value=release
        or Release(
            tag=TAG,
            name="Elements 1.2.0",
            body="- fix button",
            published_at=datetime(2020, 2, 20, tzinfo=UTC),
            html_url="https://github.com/acme/foundations/releases/tag/elements_v1.2.0",
        )
    )
    gh.create_pull_request = AsyncMock(return_value=PR_URL)
    return gh


def _changelog_lines(docs_dir: Path) -> list[str]:
    return (docs_dir / "changelogs" / "elements.md").read_text().splitlines()


class TestReleasePipeline:
    @pytest.mark.asyncio
    async def test_full_run(self, config: RelnotesConfig, docs_dir: Path) -> None:
        gh = _github()
        with patch("relnotes.pipeline.commit_and_push", AsyncMock(return_value=TAG)) as push:
            result = await ReleasePipeline(config, github=gh).run(TAG)

        assert result.status == "achieved"
        assert result.pr_url == PR_URL
        assert result.branch == TAG
        assert result.completed == list(ReleaseStage)
        assert result.changelog_updated

        lines = _changelog_lines(docs_dir)
        assert lines[:8] == HEADER
        assert lines[8:12] == [
            "## Elements 1.2.0 - 2020-02-20",
            "- fix button",
            "",
            "## Elements 1.1.0 - 2020-01-02",
        ]

        gh.fetch_release.assert_awaited_once_with("acme", "foundations", TAG)
        push.assert_awaited_once_with(
            config.cwd,
            "changelogs/elements.md",
            TAG,
            f"docs: release notes for {TAG}",
            "origin",
        )
        kwargs = gh.create_pull_request.await_args.kwargs
        assert gh.create_pull_request.await_args.args == ("acme", "docs")
        assert kwargs["head"] == TAG
        assert kwargs["base"] == "master"

    @pytest.mark.asyncio
    async def test_unknown_package_touches_nothing(self, config: RelnotesConfig) -> None:
        gh = _github()
        push = AsyncMock()
        with (
            patch("relnotes.pipeline.commit_and_push", push),
            patch("relnotes.pipeline.insert_into_line", AsyncMock()) as insert,
        ):
            with pytest.raises(PackageNotFoundError):
                await ReleasePipeline(config, github=gh).run("mystery_v1.0.0")

        insert.assert_not_awaited()
        gh.fetch_release.assert_not_awaited()
        push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_tag(self, config: RelnotesConfig) -> None:
        with pytest.raises(ValueError, match="Malformed"):
            await ReleasePipeline(config, github=_github()).run("elements")

    @pytest.mark.asyncio
    async def test_missing_configuration(self, docs_dir: Path) -> None:
        cfg = RelnotesConfig(cwd=str(docs_dir), owner="acme", repo="foundations")
        gh = _github()
        with pytest.raises(ValueError, match="docs_repo"):
            await ReleasePipeline(cfg, github=gh).run(TAG)
        gh.fetch_release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dry_run_needs_no_docs_repo(self, docs_dir: Path) -> None:
        cfg = RelnotesConfig(cwd=str(docs_dir), owner="acme", repo="foundations")
        push = AsyncMock()
        with patch("relnotes.pipeline.commit_and_push", push):
            result = await ReleasePipeline(cfg, github=_github(), dry_run=True).run(TAG)

        assert result.status == "dry_run"
        assert result.completed[-1] == ReleaseStage.UPDATE_CHANGELOG
        assert result.changelog_path == docs_dir / "changelogs" / "elements.md"
        push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_failure_raises(self, config: RelnotesConfig, docs_dir: Path) -> None:
        before = _changelog_lines(docs_dir)
        gh = _github()
        gh.fetch_release.side_effect = ExternalServiceError("Not Found", status_code=404)
        with pytest.raises(ExternalServiceError):
            await ReleasePipeline(config, github=gh).run(TAG)
        assert _changelog_lines(docs_dir) == before

    @pytest.mark.asyncio
    async def test_missing_changelog_raises(self, config: RelnotesConfig, docs_dir: Path) -> None:
        (docs_dir / "changelogs" / "elements.md").unlink()
        with pytest.raises(FileNotFoundError):
            await ReleasePipeline(config, github=_github()).run(TAG)

    @pytest.mark.asyncio
    async def test_push_failure_is_partial(self, config: RelnotesConfig, docs_dir: Path) -> None:
        gh = _github()
        error = ShellCommandError(["git", "push"], 1, "rejected")
        with patch("relnotes.pipeline.commit_and_push", AsyncMock(side_effect=error)):
            result = await ReleasePipeline(config, github=gh).run(TAG)

        assert result.status == "partial"
        assert result.failed_stage == ReleaseStage.PUSH_BRANCH
        assert "rejected" in (result.error or "")
        assert result.changelog_updated
        assert "## Elements 1.2.0 - 2020-02-20" in _changelog_lines(docs_dir)
        gh.create_pull_request.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pull_request_failure_is_partial(self, config: RelnotesConfig) -> None:
        gh = _github()
        gh.create_pull_request.side_effect = ExternalServiceError("Validation Failed", 422)
        with patch("relnotes.pipeline.commit_and_push", AsyncMock(return_value=TAG)):
            result = await ReleasePipeline(config, github=gh).run(TAG)

        assert result.status == "partial"
        assert result.failed_stage == ReleaseStage.OPEN_PULL_REQUEST
        assert result.branch == TAG
        assert result.pr_url is None
        assert ReleaseStage.PUSH_BRANCH in result.completed

    @pytest.mark.asyncio
    async def test_on_stage_callback(self, config: RelnotesConfig) -> None:
        stages: list[ReleaseStage] = []

        async def on_stage(stage: ReleaseStage) -> None:
            stages.append(stage)

        with patch("relnotes.pipeline.commit_and_push", AsyncMock(return_value=TAG)):
            await ReleasePipeline(config, github=_github(), on_stage=on_stage).run(TAG)

        assert stages == list(ReleaseStage)

    @pytest.mark.asyncio
    async def test_package_override_line(self, config: RelnotesConfig, docs_dir: Path) -> None:
        config.packages = {"elements": {"path": "changelogs/elements.md", "line": 1}}
        with patch("relnotes.pipeline.commit_and_push", AsyncMock(return_value=TAG)):
            await ReleasePipeline(config, github=_github()).run(TAG)
        assert _changelog_lines(docs_dir)[0] == "## Elements 1.2.0 - 2020-02-20"
