from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from codeguard.errors import JobNotFoundError, JobStateError, RepositoryNotFoundError

pytestmark = pytest.mark.anyio


@pytest.fixture
async def repository(result_store):
    return await result_store.add_repository("acme", "acme/api")


async def test_enqueue_creates_pending_job(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)

    assert job.status == "pending"
    assert job.progress == 0
    assert job.scan_type == "full"
    assert await job_store.get_status(job.id) == {"status": "pending", "progress": 0, "error_message": None}


async def test_enqueue_unknown_repository(job_store, session_local) -> None:
    with pytest.raises(RepositoryNotFoundError):
        await job_store.enqueue(999)


async def test_upload_scan_keeps_storage_key(job_store, repository) -> None:
    with pytest.raises(JobStateError):
        await job_store.enqueue(repository.id, "upload")

    job = await job_store.enqueue(repository.id, "upload", "acme/upload-1.json")
    assert job.scan_type == "upload"
    assert job.summary == {"upload_storage_key": "acme/upload-1.json"}


async def test_get_missing_job(job_store, session_local) -> None:
    with pytest.raises(JobNotFoundError):
        await job_store.get(12345)


async def test_claim_next_takes_oldest_pending(job_store, repository) -> None:
    first = await job_store.enqueue(repository.id)
    second = await job_store.enqueue(repository.id)

    claimed = await job_store.claim_next("worker-a")
    assert claimed.id == first.id
    assert claimed.status == "running"
    assert claimed.lease_owner == "worker-a"
    assert claimed.started_at is not None

    assert (await job_store.claim_next("worker-b")).id == second.id
    assert await job_store.claim_next("worker-c") is None


async def test_claim_next_reads_past_candidates_taken_by_other_workers(job_store, repository, monkeypatch) -> None:
    jobs = [await job_store.enqueue(repository.id) for _ in range(7)]
    claim = job_store.claim
    stolen = []

    async def contended(job_id, worker_id):
        # Another worker wins the first six rows this worker tries.
        if len(stolen) < 6:
            stolen.append(await claim(job_id, "worker-other"))
        return await claim(job_id, worker_id)

    monkeypatch.setattr(job_store, "claim", contended)

    claimed = await job_store.claim_next("worker-a")

    assert [job.id for job in stolen] == [job.id for job in jobs[:6]]
    assert claimed.id == jobs[6].id
    assert claimed.lease_owner == "worker-a"
    assert await job_store.claim_next("worker-a") is None


async def test_concurrent_claims_have_one_winner(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)

    results = await asyncio.gather(job_store.claim(job.id, "worker-a"), job_store.claim(job.id, "worker-b"))

    winners = [result for result in results if result is not None]
    assert len(winners) == 1
    assert (await job_store.get(job.id)).lease_owner == winners[0].lease_owner


async def test_progress_is_monotonic_and_owned(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)
    await job_store.claim(job.id, "worker-a")

    assert await job_store.update_progress(job.id, 40, worker_id="worker-a")
    assert await job_store.update_progress(job.id, 20, worker_id="worker-a")
    assert (await job_store.get(job.id)).progress == 40

    assert not await job_store.update_progress(job.id, 60, worker_id="worker-b")
    assert (await job_store.get(job.id)).progress == 40


async def test_complete_requires_lease_owner(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)
    await job_store.claim(job.id, "worker-a")

    with pytest.raises(JobStateError):
        await job_store.complete(job.id, {"total_files_scanned": 0}, worker_id="worker-b")

    await job_store.complete(job.id, {"total_files_scanned": 0}, worker_id="worker-a")
    done = await job_store.get(job.id)
    assert done.status == "completed"
    assert done.progress == 100
    assert done.summary == {"total_files_scanned": 0}
    assert done.lease_owner is None
    assert done.completed_at is not None

    assert not await job_store.fail(job.id, "too late", worker_id="worker-a")
    assert (await job_store.get(job.id)).status == "completed"


async def test_fail_records_message(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)
    await job_store.claim(job.id, "worker-a")

    assert await job_store.fail(job.id, "Failed to fetch file tree", worker_id="worker-a")
    assert await job_store.get_status(job.id) == {
        "status": "failed",
        "progress": 0,
        "error_message": "Failed to fetch file tree",
    }


async def test_reaper_fails_old_pending_jobs(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)

    assert (await job_store.reap_stale()).total == 0

    reaped = await job_store.reap_stale(now=datetime.now(timezone.utc) + timedelta(minutes=11))
    assert (reaped.pending, reaped.running) == (1, 0)
    status = await job_store.get_status(job.id)
    assert status["status"] == "failed"
    assert status["error_message"] == "Scan timed out: stuck in pending state for over 10 minutes"


async def test_reaper_fails_running_jobs_with_lapsed_lease(job_store, repository) -> None:
    job = await job_store.enqueue(repository.id)
    await job_store.claim(job.id, "worker-a")

    assert (await job_store.reap_stale()).total == 0

    reaped = await job_store.reap_stale(now=datetime.now(timezone.utc) + timedelta(minutes=11))
    assert (reaped.pending, reaped.running) == (0, 1)
    failed = await job_store.get(job.id)
    assert failed.status == "failed"
    assert failed.error_message == "Scan timed out: stuck in running state for over 10 minutes"
    assert not await job_store.update_progress(job.id, 50, worker_id="worker-a")


def _row(scan_id: int, repository_id: int, path) -> dict:
    return {"scan_id": scan_id, "repository_id": repository_id, "file_path": path, "total_loc": 10, "ai_loc": 2}


async def test_malformed_result_row_is_dropped_alone(job_store, result_store, repository) -> None:
    job = await job_store.enqueue(repository.id)
    rows = [
        _row(job.id, repository.id, "a.py"),
        _row(job.id, repository.id, None),
        _row(job.id, repository.id, "b.py"),
        _row(job.id, repository.id, "c.py"),
    ]

    report = await result_store.insert_results(rows)

    assert report.inserted == 3
    assert report.dropped == ["None"]
    assert report.attempted == 4
    stored = await result_store.results_for_scan(job.id)
    assert [record.file_path for record in stored] == ["a.py", "b.py", "c.py"]


async def test_latest_scores_ignore_rollups_and_older_scores(result_store, repository) -> None:
    other = await result_store.add_repository("acme", "acme/web")
    elsewhere = await result_store.add_repository("globex", "globex/api")

    await result_store.insert_score("acme", 60, "caution", {}, repository_id=repository.id)
    await result_store.insert_score("acme", 85, "healthy", {}, repository_id=repository.id)
    await result_store.insert_score("acme", 70, "caution", {}, repository_id=other.id)
    await result_store.insert_score("acme", 78, "caution", {"repositories": 2}, repository_id=None)
    await result_store.insert_score("globex", 10, "critical", {}, repository_id=elsewhere.id)

    assert await result_store.latest_scores_for_company("acme") == {repository.id: 85, other.id: 70}


async def test_repository_scan_status(result_store, repository) -> None:
    await result_store.update_repository_scan(repository.id, "failed")

    stored = await result_store.get_repository(repository.id)
    assert stored.last_scan_status == "failed"
    assert stored.last_scan_at is not None


async def test_team_metrics_upsert_replaces_the_week_row(result_store) -> None:
    week = (date(2024, 4, 29), date(2024, 5, 5))
    row = {
        "github_username": "alice",
        "display_name": "Alice",
        "ai_usage_level": "low",
        "review_quality": "weak",
        "risk_index": "low",
        "governance_score": 85,
        "total_commits": 1,
        "ai_loc_authored": 0,
        "total_loc_authored": 10,
        "coaching_suggestions": [],
    }

    assert await result_store.upsert_team_metrics("acme", *week, [row]) == 1
    await result_store.upsert_team_metrics("acme", *week, [{**row, "total_commits": 4, "ai_usage_level": "high"}])
    await result_store.upsert_team_metrics("acme", date(2024, 5, 6), date(2024, 5, 12), [row])
    await result_store.upsert_team_metrics("globex", *week, [row])

    stored = await result_store.team_metrics_for_company("acme")
    assert [(record.period_start, record.total_commits, record.ai_usage_level) for record in stored] == [
        (date(2024, 5, 6), 1, "low"),
        (date(2024, 4, 29), 4, "high"),
    ]
    assert await result_store.upsert_team_metrics("acme", *week, []) == 0
