"""Unit tests for behavior_log_service."""

import threading
import time
from datetime import UTC, date, datetime, timedelta

import pytest

from pet_of_the_day.core.errors import AuthorizationError, DomainValidationError, NotFoundError, RateLimitError
from pet_of_the_day.core.memory_store import DatabaseError
from pet_of_the_day.domain.behavior_log import BehaviorLogFilter
from pet_of_the_day.domain.daily_score import DailyScoreFilter
from pet_of_the_day.domain.settings import UserTimezoneSettings


DAY = date(2024, 6, 15)


def _score(backend, pet_id, group_id, day=DAY):
    scores = backend.daily_scores.find(DailyScoreFilter(pet_id=pet_id, group_id=group_id, day=day))
    return scores[0] if scores else None


def _fail_nth_score_update(monkeypatch, backend, failing_call):
    """Make the daily score store's update raise on one call."""
    real_update = backend.daily_scores.update
    calls = []

    def _update(daily_score):
        calls.append(daily_score.group_id)
        if len(calls) == failing_call:
            raise DatabaseError("score store unavailable")
        return real_update(daily_score)

    monkeypatch.setattr(backend.daily_scores, "update", _update)


@pytest.fixture
def potty(behavior_named):
    return behavior_named("Went potty outside")


@pytest.fixture
def accident(behavior_named):
    return behavior_named("Indoor accident")


@pytest.mark.unit
class TestRecordBehavior:
    """Tests for record_behavior."""

    def test_record_scores_every_shared_group(self, engine, backend, household, potty, now):
        """Points land on the daily score of each group the log is shared with."""
        result = engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[household.family, household.park],
            now=now,
        )

        assert result.behavior_log.points_awarded == 5
        assert result.day == DAY
        assert len(result.daily_scores) == 2
        assert "Went potty outside" in result.message
        for group_id in (household.family, household.park):
            score = _score(backend, household.rex, group_id)
            assert score.total_points == 5
            assert score.positive_behaviors == 1
            assert score.last_activity_at == now

    def test_record_without_groups_stores_log_only(self, engine, backend, household, potty, now):
        result = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        )

        assert backend.behavior_logs.get_by_id(result.behavior_log.id) is not None

    def test_scoring_failure_discards_log(self, engine, backend, household, potty, now, monkeypatch):
        """A failure on the second group undoes the first and removes the log."""
        _fail_nth_score_update(monkeypatch, backend, failing_call=2)

        with pytest.raises(DatabaseError, match="score store unavailable"):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex,
                behavior_id=potty.id,
                user_id=household.alice,
                group_ids=[household.family, household.park],
                now=now,
            )

        assert backend.behavior_logs.find(BehaviorLogFilter(pet_id=household.rex)) == []
        for group_id in (household.family, household.park):
            score = _score(backend, household.rex, group_id)
            assert score is None or (score.total_points, score.positive_behaviors) == (0, 0)
        assert result.daily_scores == []

    def test_points_frozen_at_recording_time(self, engine, backend, household, potty, now):
        """Editing the catalog afterwards does not change recorded points."""
        result = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[household.family], now=now
        )
        engine.catalog.update_behavior(
            potty.id,
            name=potty.name,
            description=potty.description,
            category=potty.category,
            point_value=9,
            min_interval_minutes=potty.min_interval_minutes,
            species=potty.species,
            icon=potty.icon,
            is_active=True,
        )

        stored = backend.behavior_logs.get_by_id(result.behavior_log.id)
        assert stored.points_awarded == 5
        assert _score(backend, household.rex, household.family).total_points == 5

    def test_user_without_pet_access_rejected(self, engine, household, potty, now):
        with pytest.raises(AuthorizationError):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex, behavior_id=potty.id, user_id=household.bob, group_ids=[], now=now
            )

    def test_empty_ids_rejected(self, engine, household, potty, now):
        with pytest.raises(DomainValidationError, match="pet ID is required"):
            engine.behavior_logs.record_behavior(
                pet_id="", behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
            )

    def test_unknown_behavior(self, engine, household, now):
        with pytest.raises(NotFoundError, match="behavior not found"):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex, behavior_id="missing", user_id=household.alice, group_ids=[], now=now
            )

    def test_inactive_behavior_rejected(self, engine, household, potty, now):
        engine.catalog.update_behavior(
            potty.id,
            name=potty.name,
            description=potty.description,
            category=potty.category,
            point_value=potty.point_value,
            min_interval_minutes=potty.min_interval_minutes,
            species=potty.species,
            icon=potty.icon,
            is_active=False,
        )

        with pytest.raises(DomainValidationError, match="not active"):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
            )

    def test_species_mismatch_rejected(self, engine, household, behavior_named, now):
        leash = behavior_named("Walked nicely on leash")

        with pytest.raises(DomainValidationError, match="not valid for cat"):
            engine.behavior_logs.record_behavior(
                pet_id=household.whiskers, behavior_id=leash.id, user_id=household.bob, group_ids=[], now=now
            )

    def test_group_without_membership_rejected(self, engine, backend, household, potty, now):
        """Bob is not in the park group; nothing is stored."""
        backend.authorization.add_pet_to_group(household.park, household.whiskers)

        with pytest.raises(AuthorizationError, match="does not have access to group"):
            engine.behavior_logs.record_behavior(
                pet_id=household.whiskers,
                behavior_id=potty.id,
                user_id=household.bob,
                group_ids=[household.family, household.park],
                now=now,
            )

        assert backend.behavior_logs.find(BehaviorLogFilter(pet_id=household.whiskers)) == []
        assert _score(backend, household.whiskers, household.family) is None

    def test_pet_not_in_group_rejected(self, engine, backend, household, potty, now):
        backend.authorization.add_member(household.park, household.bob)

        with pytest.raises(AuthorizationError, match="is not a member of group"):
            engine.behavior_logs.record_behavior(
                pet_id=household.whiskers,
                behavior_id=potty.id,
                user_id=household.bob,
                group_ids=[household.park],
                now=now,
            )

    def test_duplicate_group_rejected(self, engine, household, potty, now):
        with pytest.raises(DomainValidationError, match="already shared"):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex,
                behavior_id=potty.id,
                user_id=household.alice,
                group_ids=[household.family, household.family],
                now=now,
            )

    def test_future_logged_at_rejected(self, engine, household, potty, now):
        with pytest.raises(DomainValidationError, match="future"):
            engine.behavior_logs.record_behavior(
                pet_id=household.rex,
                behavior_id=potty.id,
                user_id=household.alice,
                group_ids=[],
                logged_at=now + timedelta(minutes=5),
                now=now,
            )

    def test_logical_day_follows_recorder_timezone(self, engine, backend, household, potty):
        """A 21:00 New York reset moves 21:00 local onto the next day."""
        backend.user_settings.save_timezone_settings(
            UserTimezoneSettings(user_id=household.alice, timezone="America/New_York", daily_reset_time="21:00")
        )
        now = datetime(2024, 6, 16, 1, 30, tzinfo=UTC)

        before = engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[household.family],
            logged_at=datetime(2024, 6, 16, 0, 29, tzinfo=UTC),
            now=now,
        )
        after = engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[household.family],
            logged_at=datetime(2024, 6, 16, 1, 0, tzinfo=UTC),
            now=now,
        )

        assert before.day == date(2024, 6, 15)
        assert after.day == date(2024, 6, 16)
        assert _score(backend, household.rex, household.family, date(2024, 6, 15)).total_points == 5
        assert _score(backend, household.rex, household.family, date(2024, 6, 16)).total_points == 5


@pytest.mark.unit
class TestDuplicatePrevention:
    """Tests for the minimum re-log interval."""

    def test_relog_inside_interval_rejected(self, engine, household, potty, now):
        engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[],
            logged_at=now - timedelta(minutes=20),
            now=now,
        )

        with pytest.raises(RateLimitError, match="must wait 10 minutes") as exc_info:
            engine.behavior_logs.record_behavior(
                pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
            )

        assert exc_info.value.retry_after == timedelta(minutes=10)
        assert exc_info.value.elapsed == timedelta(minutes=20)

    def test_relog_exactly_at_interval_allowed(self, engine, household, potty, now):
        engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[],
            logged_at=now - timedelta(minutes=30),
            now=now,
        )

        result = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        )

        assert result.behavior_log.logged_at == now

    def test_interval_is_per_pet_and_behavior(self, engine, backend, household, potty, accident, now):
        backend.authorization.add_pet(
            backend.authorization.get_pet_info(household.luna), co_owner_ids=(household.alice,)
        )
        engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        )

        engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=accident.id, user_id=household.alice, group_ids=[], now=now
        )
        engine.behavior_logs.record_behavior(
            pet_id=household.luna, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        )

    def test_concurrent_records_only_one_succeeds(self, engine, backend, household, potty, now, monkeypatch):
        """Two simultaneous records of the same behavior cannot both pass the interval check."""
        real_last_logged_at = backend.behavior_logs.get_last_logged_at

        def _slow_last_logged_at(pet_id, behavior_id):
            last_logged_at = real_last_logged_at(pet_id, behavior_id)
            time.sleep(0.05)
            return last_logged_at

        monkeypatch.setattr(backend.behavior_logs, "get_last_logged_at", _slow_last_logged_at)
        outcomes = []

        def _record():
            try:
                engine.behavior_logs.record_behavior(
                    pet_id=household.rex,
                    behavior_id=potty.id,
                    user_id=household.alice,
                    group_ids=[household.family],
                    now=now,
                )
                outcomes.append("logged")
            except RateLimitError:
                outcomes.append("rate_limited")

        threads = [threading.Thread(target=_record) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["logged", "rate_limited"]
        assert _score(backend, household.rex, household.family).total_points == 5


@pytest.mark.unit
class TestDeleteBehaviorLog:
    """Tests for delete_behavior_log."""

    def _record(self, engine, household, behavior, now, **overrides):
        fields = {
            "pet_id": household.rex,
            "behavior_id": behavior.id,
            "user_id": household.alice,
            "group_ids": [household.family, household.park],
            "now": now,
        }
        fields.update(overrides)
        return engine.behavior_logs.record_behavior(**fields).behavior_log

    def test_delete_reverses_scores(self, engine, backend, household, potty, accident, now):
        self._record(engine, household, potty, now)
        log = self._record(engine, household, accident, now)

        engine.behavior_logs.delete_behavior_log(log.id, household.alice)

        assert backend.behavior_logs.get_by_id(log.id) is None
        for group_id in (household.family, household.park):
            score = _score(backend, household.rex, group_id)
            assert score.total_points == 5
            assert score.negative_behaviors == 0
            assert score.positive_behaviors == 1

    def test_delete_returns_single_group_score_to_zero(self, engine, backend, household, potty, now):
        log = self._record(engine, household, potty, now, group_ids=[household.family])

        engine.behavior_logs.delete_behavior_log(log.id, household.alice)

        assert _score(backend, household.rex, household.family).total_points == 0

    def test_delete_by_co_owner_allowed(self, engine, backend, household, potty, now):
        backend.authorization.add_pet(
            backend.authorization.get_pet_info(household.rex), co_owner_ids=(household.bob,)
        )
        log = self._record(engine, household, potty, now)

        engine.behavior_logs.delete_behavior_log(log.id, household.bob)

        assert backend.behavior_logs.get_by_id(log.id) is None

    def test_delete_by_stranger_rejected(self, engine, backend, household, potty, now):
        log = self._record(engine, household, potty, now)

        with pytest.raises(AuthorizationError):
            engine.behavior_logs.delete_behavior_log(log.id, household.bob)

        assert backend.behavior_logs.get_by_id(log.id) is not None

    def test_delete_missing_log(self, engine, household):
        with pytest.raises(NotFoundError):
            engine.behavior_logs.delete_behavior_log("missing", household.alice)

    def test_failed_reversal_keeps_log(self, engine, backend, household, potty, now, monkeypatch):
        log = self._record(engine, household, potty, now)

        def _fail(behavior_log):
            raise RuntimeError("score store unavailable")

        monkeypatch.setattr(engine.daily_scores, "reverse_log", _fail)

        with pytest.raises(RuntimeError, match="score store unavailable"):
            engine.behavior_logs.delete_behavior_log(log.id, household.alice)

        assert backend.behavior_logs.get_by_id(log.id) is not None
        assert _score(backend, household.rex, household.family).total_points == 5

    def test_partial_reversal_is_rolled_back(self, engine, backend, household, potty, now, monkeypatch):
        """If the second group cannot be reversed, the first is restored and the log kept."""
        log = self._record(engine, household, potty, now)
        _fail_nth_score_update(monkeypatch, backend, failing_call=2)

        with pytest.raises(DatabaseError, match="score store unavailable"):
            engine.behavior_logs.delete_behavior_log(log.id, household.alice)

        assert backend.behavior_logs.get_by_id(log.id) is not None
        for group_id in (household.family, household.park):
            score = _score(backend, household.rex, group_id)
            assert (score.total_points, score.positive_behaviors) == (5, 1)

        monkeypatch.undo()
        engine.behavior_logs.delete_behavior_log(log.id, household.alice)

        for group_id in (household.family, household.park):
            assert _score(backend, household.rex, group_id).total_points == 0


@pytest.mark.unit
class TestSharing:
    """Tests for sharing and unsharing an existing log."""

    def test_share_adds_points_to_new_group(self, engine, backend, household, potty, now):
        log = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[household.family], now=now
        ).behavior_log

        engine.behavior_logs.share_with_group(log.id, household.alice, household.park)

        assert _score(backend, household.rex, household.park).total_points == 5
        assert backend.behavior_logs.get_by_id(log.id).is_shared_with_group(household.park)

    def test_unshare_removes_points(self, engine, backend, household, potty, now):
        log = engine.behavior_logs.record_behavior(
            pet_id=household.rex,
            behavior_id=potty.id,
            user_id=household.alice,
            group_ids=[household.family, household.park],
            now=now,
        ).behavior_log

        engine.behavior_logs.unshare_from_group(log.id, household.alice, household.park)

        assert _score(backend, household.rex, household.park).total_points == 0
        assert _score(backend, household.rex, household.family).total_points == 5
        assert backend.behavior_logs.get_by_id(log.id).shared_group_ids() == [household.family]

    def test_unshare_unknown_group(self, engine, household, potty, now):
        log = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        ).behavior_log

        with pytest.raises(NotFoundError):
            engine.behavior_logs.unshare_from_group(log.id, household.alice, household.family)


@pytest.mark.unit
class TestQueries:
    """Tests for reading logs back."""

    def test_group_member_can_read_shared_log(self, engine, household, potty, now):
        log = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[household.family], now=now
        ).behavior_log

        assert engine.behavior_logs.get_behavior_log(log.id, household.bob).id == log.id

    def test_outsider_cannot_read_log(self, engine, household, potty, now):
        log = engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[household.family], now=now
        ).behavior_log

        with pytest.raises(AuthorizationError):
            engine.behavior_logs.get_behavior_log(log.id, household.outsider)

    def test_search_by_group_requires_membership(self, engine, household, potty, now):
        engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[household.family], now=now
        )

        logs = engine.behavior_logs.get_behavior_logs(household.bob, BehaviorLogFilter(group_id=household.family))
        assert len(logs) == 1

        with pytest.raises(AuthorizationError):
            engine.behavior_logs.get_behavior_logs(household.outsider, BehaviorLogFilter(group_id=household.family))

    def test_search_without_scope_returns_own_logs(self, engine, household, potty, now):
        engine.behavior_logs.record_behavior(
            pet_id=household.rex, behavior_id=potty.id, user_id=household.alice, group_ids=[], now=now
        )

        assert len(engine.behavior_logs.get_behavior_logs(household.alice)) == 1
        assert engine.behavior_logs.get_behavior_logs(household.bob) == []
