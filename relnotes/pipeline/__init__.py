"""Release pipeline — tag → changelog entry → branch → pull request."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from relnotes.config import RelnotesConfig
from relnotes.errors import ExternalServiceError, ShellCommandError
from relnotes.notes import format_pr_body, format_pr_title, format_release_notes
from relnotes.packages import ChangelogTarget, lookup_changelog, parse_release_tag
from relnotes.providers.github import GitHubClient
from relnotes.tools.git_ops import commit_and_push
from relnotes.tools.line_insert import insert_into_line

logger = logging.getLogger(__name__)


class ReleaseStage(StrEnum):
    """Pipeline stages, in execution order."""

    LOOKUP = "lookup"
    FETCH_RELEASE = "fetch_release"
    UPDATE_CHANGELOG = "update_changelog"
    PUSH_BRANCH = "push_branch"
    OPEN_PULL_REQUEST = "open_pull_request"


StageCallback = Callable[[ReleaseStage], Awaitable[None]]


@dataclass
class ReleaseResult:
    """Outcome of a pipeline run.

    ``status`` is ``"achieved"`` when the pull request was opened,
    ``"dry_run"`` when the run stopped after editing the changelog, and
    ``"partial"`` when the changelog was edited but publishing it failed.
    """

    tag: str
    status: str = "pending"
    completed: list[ReleaseStage] = field(default_factory=list)
    target: ChangelogTarget | None = None
    changelog_path: Path | None = None
    branch: str | None = None
    pr_url: str | None = None
    failed_stage: ReleaseStage | None = None
    error: str | None = None

    @property
    def changelog_updated(self) -> bool:
        return ReleaseStage.UPDATE_CHANGELOG in self.completed


class ReleasePipeline:
    """Insert a release's notes into its changelog and open a docs PR.

    Usage:
        pipeline = ReleasePipeline(resolve_config("/path/to/docs"))
        result = await pipeline.run("elements_v1.2.0")

    Failures before the changelog is edited are raised unchanged
    (``PackageNotFoundError``, ``ExternalServiceError``, ``OSError``).
    Failures after it are recorded on a ``"partial"`` result instead.
    """

    def __init__(
        self,
        config: RelnotesConfig,
        github: GitHubClient | None = None,
        dry_run: bool = False,
        on_stage: StageCallback | None = None,
    ) -> None:
        self.config = config
        self.dry_run = dry_run
        self._github = github
        self._on_stage = on_stage

    async def run(self, tag: str) -> ReleaseResult:
        result = ReleaseResult(tag=tag)
        cfg = self.config

        release_tag = parse_release_tag(tag)
        target = lookup_changelog(release_tag.package, cfg.packages)
        result.target = target
        await self._complete(result, ReleaseStage.LOOKUP)

        required = ["owner", "repo"] if self.dry_run else cfg.missing_repositories()
        missing = [name for name in required if not getattr(cfg, name)]
        if missing:
            raise ValueError(f"Missing configuration: {', '.join(missing)}")

        async with self._client() as gh:
            try:
                release = await gh.fetch_release(cfg.owner, cfg.repo, release_tag.tag)
            except ExternalServiceError as e:
                logger.error("Could not fetch release %s: %s", tag, e)
                raise
            await self._complete(result, ReleaseStage.FETCH_RELEASE)

            path = Path(cfg.cwd) / target.path
            content = format_release_notes(release, cfg.line_terminator)
            try:
                result.changelog_path = await insert_into_line(
                    path, target.line, content, cfg.line_terminator
                )
            except OSError as e:
                logger.error("Could not update changelog %s: %s", path, e)
                raise
            await self._complete(result, ReleaseStage.UPDATE_CHANGELOG)

            if self.dry_run:
                result.status = "dry_run"
                return result

            title = format_pr_title(release_tag.tag)
            stage = ReleaseStage.PUSH_BRANCH
            try:
                result.branch = await commit_and_push(
                    cfg.cwd, target.path, release_tag.tag, title, cfg.remote
                )
                await self._complete(result, stage)

                stage = ReleaseStage.OPEN_PULL_REQUEST
                result.pr_url = await gh.create_pull_request(
                    cfg.docs_owner,
                    cfg.docs_repo,
                    head=result.branch,
                    base=cfg.base_branch,
                    title=title,
                    body=format_pr_body(release, target),
                )
                await self._complete(result, stage)
            except (ShellCommandError, ExternalServiceError) as e:
                logger.error("Changelog %s was updated but %s failed: %s", path, stage, e)
                result.status = "partial"
                result.failed_stage = stage
                result.error = str(e)
                return result

        result.status = "achieved"
        return result

    async def _complete(self, result: ReleaseResult, stage: ReleaseStage) -> None:
        result.completed.append(stage)
        logger.info("Release %s: %s done", result.tag, stage)
        if self._on_stage:
            await self._on_stage(stage)

    @contextlib.asynccontextmanager
    async def _client(self) -> AsyncIterator[GitHubClient]:
        if self._github is not None:
            yield self._github
            return
        async with GitHubClient(
            token=self.config.token,
            api_url=self.config.api_url,
            timeout=self.config.timeout,
        ) as gh:
            yield gh
