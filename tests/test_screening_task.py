"""Celery task wiring: outcome, retry and rejection paths (no broker or DB needed)."""

import pytest
from celery.exceptions import Reject
from conftest import FakeScorer, make_candidate, make_role

from app.workers import screening as screening_worker
from app.workers.celery_app import celery_app


class FakeSession:
    def __init__(self):
        self.rolled_back = False
        self.closed = False

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


@pytest.fixture()
def session(monkeypatch, store):
    session = FakeSession()
    monkeypatch.setattr(screening_worker, "get_sync_session", lambda: session)
    monkeypatch.setattr(screening_worker, "ScreeningStore", lambda _session: store)
    store.add_role(make_role("R1"))
    store.add_candidate(make_candidate("C1"), skills=["Python"])
    return session


def test_task_is_registered_on_screening_queue():
    task = celery_app.tasks["screening.screen_candidate"]
    assert task.max_retries == 3
    assert celery_app.conf.task_routes["screening.*"] == {"queue": "screening"}


def test_task_returns_completed_outcome(monkeypatch, session, store):
    monkeypatch.setattr(screening_worker, "get_scorer", lambda: FakeScorer(score=72.5))

    result = screening_worker.screen_candidate_task("R1", "C1")

    assert result == {
        "status": "completed",
        "role_id": "R1",
        "candidate_id": "C1",
        "score_total": 72.5,
        "reason": None,
    }
    assert ("R1", "C1") in store.screenings
    assert session.closed


def test_task_reports_skip_for_inactive_role(monkeypatch, session, store):
    store.roles["R1"].is_active = False
    monkeypatch.setattr(screening_worker, "get_scorer", lambda: FakeScorer())

    result = screening_worker.screen_candidate_task("R1", "C1")

    assert result["status"] == "skipped"
    assert result["reason"] == "role_inactive"
    assert store.screenings == {}


def test_task_rejects_without_requeue_when_role_missing(monkeypatch, session):
    monkeypatch.setattr(screening_worker, "get_scorer", lambda: FakeScorer())

    with pytest.raises(Reject) as exc_info:
        screening_worker.screen_candidate_task("missing", "C1")

    assert exc_info.value.requeue is False
    assert session.rolled_back
    assert session.closed


def test_task_rejects_without_requeue_when_candidate_missing(monkeypatch, session):
    monkeypatch.setattr(screening_worker, "get_scorer", lambda: FakeScorer())

    with pytest.raises(Reject):
        screening_worker.screen_candidate_task("R1", "missing")


def test_transient_scoring_error_goes_through_retry(monkeypatch, session):
    monkeypatch.setattr(
        screening_worker, "get_scorer", lambda: FakeScorer(error=TimeoutError("rate limited"))
    )
    retries = []

    def fake_retry(exc=None, countdown=None, **kwargs):
        retries.append(countdown)
        return RuntimeError("retry scheduled")

    monkeypatch.setattr(screening_worker.screen_candidate_task, "retry", fake_retry)

    with pytest.raises(RuntimeError, match="retry scheduled"):
        screening_worker.screen_candidate_task("R1", "C1")

    assert retries == [30]
    assert session.rolled_back


def test_exhausted_retries_fail_terminally(monkeypatch, session):
    monkeypatch.setattr(
        screening_worker, "get_scorer", lambda: FakeScorer(error=TimeoutError("still down"))
    )
    task = screening_worker.screen_candidate_task

    task.push_request(retries=task.max_retries, id="task-1")
    try:
        with pytest.raises(TimeoutError):
            task.run("R1", "C1")
    finally:
        task.pop_request()
