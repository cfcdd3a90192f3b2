"""Sequential, rate limited creation of GitLab issues from validated rows."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Sequence

from .core.logging import get_logger
from .models.gitlab import CreateIssuePayload
from .models.wizard import IssueMappingConfig, PreviewRow, ProcessingResult, ProcessingState
from .services.gitlab_client import IssueTrackerClient, describe_client_error
from .validation import rows_to_process

logger = get_logger(__name__)

ClientFactory = Callable[[], IssueTrackerClient]
ProgressCallback = Callable[[ProcessingResult, ProcessingState], None]
SleepFn = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_fallback_description(source_row: dict[str, str], title_column: str | None) -> str:
    """Render the CSV row as ``**Column:** value`` paragraphs, leaving out the title."""

    return "\n\n".join(f"**{key}:** {value}" for key, value in source_row.items() if key != title_column)


def build_issue_payload(row: PreviewRow, issue_mapping: IssueMappingConfig) -> CreateIssuePayload:
    description = row.description or ""
    if not description and row.source_row:
        description = build_fallback_description(row.source_row, issue_mapping.title_column)

    return CreateIssuePayload(
        title=row.title,
        description=description or None,
        labels=",".join(row.labels) if row.labels else None,
    )


class BatchSubmitter:
    """Create one issue per row, strictly in order, waiting between submissions.

    A failing row is recorded as a ``failed`` result and the loop carries on;
    only errors outside a single row (building the client) fail the run.
    ``pause`` suspends the loop before the next submission and ``resume``
    continues from the same row. Neither interrupts a request or wait already
    in progress.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        issue_mapping: IssueMappingConfig,
        *,
        rate_limit_seconds: float = 1.0,
        on_progress: ProgressCallback | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if rate_limit_seconds < 0:
            raise ValueError("rate_limit_seconds cannot be negative")
        self._client_factory = client_factory
        self.issue_mapping = issue_mapping
        self.rate_limit_seconds = rate_limit_seconds
        self._on_progress = on_progress
        self._sleep = sleep
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self._cancel_requested = False
        self.state = ProcessingState()

    @property
    def is_active(self) -> bool:
        return self.state.status in ("running", "paused")

    def pause(self) -> bool:
        if self.state.status != "running":
            return False
        self.state.status = "paused"
        self._resume_event.clear()
        logger.info("submission.paused", processed=self.state.current_index)
        return True

    def resume(self) -> bool:
        if self.state.status != "paused":
            return False
        self.state.status = "running"
        self._resume_event.set()
        logger.info("submission.resumed", processed=self.state.current_index)
        return True

    def cancel(self) -> None:
        """Mark every row not yet submitted as ``skipped`` and finish the run."""

        self._cancel_requested = True
        if self.state.status == "paused":
            self.state.status = "running"
        self._resume_event.set()

    async def run(self, rows: Sequence[PreviewRow]) -> ProcessingState:
        if self.is_active:
            raise RuntimeError("A submission run is already in progress.")

        records = rows_to_process(rows)
        self._cancel_requested = False
        self._resume_event.set()
        self.state = ProcessingState(status="running", total_count=len(records), started_at=_utcnow())
        logger.info("submission.started", total=len(records), rate_limit_seconds=self.rate_limit_seconds)

        try:
            client = self._client_factory()
            for position, row in enumerate(records):
                await self._resume_event.wait()
                if self._cancel_requested:
                    self._record(self._result(row, "skipped", error="Import cancelled"))
                    continue

                self._record(await self._submit(client, row))

                if position < len(records) - 1 and not self._cancel_requested:
                    await self._sleep(self.rate_limit_seconds)
        except Exception as exc:
            self.state.status = "failed"
            self.state.error = describe_client_error(exc)
            self.state.completed_at = _utcnow()
            logger.exception("submission.failed", error=self.state.error, processed=self.state.current_index)
            return self.state

        self.state.status = "completed"
        self.state.completed_at = _utcnow()
        logger.info(
            "submission.completed",
            succeeded=self.state.success_count,
            failed=self.state.failed_count,
            total=self.state.total_count,
        )
        return self.state

    async def _submit(self, client: IssueTrackerClient, row: PreviewRow) -> ProcessingResult:
        try:
            if row.repository is None:
                raise ValueError("Repository ID is missing")
            payload = build_issue_payload(row, self.issue_mapping)
            issue = await asyncio.to_thread(client.create_issue, row.repository.id, payload)
        except Exception as exc:  # noqa: BLE001 - a failed row is recorded and the run continues
            message = describe_client_error(exc)
            logger.warning("submission.record.failed", row_id=row.id, notion_id=row.notion_id, error=message)
            return self._result(row, "failed", error=message)

        logger.info("submission.record.created", row_id=row.id, issue_iid=issue.iid, url=issue.web_url)
        return self._result(row, "success", issue_url=issue.web_url, issue_iid=issue.iid)

    def _result(
        self,
        row: PreviewRow,
        status: str,
        *,
        issue_url: str | None = None,
        issue_iid: int | None = None,
        error: str | None = None,
    ) -> ProcessingResult:
        return ProcessingResult(
            row_id=row.id,
            notion_id=row.notion_id,
            title=row.title,
            status=status,  # type: ignore[arg-type]
            issue_url=issue_url,
            issue_iid=issue_iid,
            error=error,
            timestamp=_utcnow(),
        )

    def _record(self, result: ProcessingResult) -> None:
        self.state.results.append(result)
        self.state.current_index += 1
        if self._on_progress is not None:
            self._on_progress(result, self.state)


def submit_rows(
    rows: Sequence[PreviewRow],
    client_factory: ClientFactory,
    issue_mapping: IssueMappingConfig,
    *,
    rate_limit_seconds: float = 1.0,
    on_progress: ProgressCallback | None = None,
) -> ProcessingState:
    """Blocking helper running a fresh ``BatchSubmitter`` to completion."""

    submitter = BatchSubmitter(
        client_factory,
        issue_mapping,
        rate_limit_seconds=rate_limit_seconds,
        on_progress=on_progress,
    )
    return asyncio.run(submitter.run(rows))
