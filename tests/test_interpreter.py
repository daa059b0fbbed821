"""Tests for the notice interpreter and its naming and phase rules."""

from __future__ import annotations

import logging

import pytest

from tm_fieldcontrol.errors import ProtocolError
from tm_fieldcontrol.interpreter import (
    NoticeInterpreter,
    build_match_name,
    derive_phase,
    normalize_legacy_state,
)
from tm_fieldcontrol.models import (
    FieldActivated,
    FieldInfo,
    FieldList,
    FieldRegistry,
    LegacyDisplayUpdated,
    LegacyMatchAssigned,
    LegacyMatchStarted,
    LegacyMatchStopped,
    LegacyTimeUpdated,
    MatchAborted,
    MatchIdentity,
    MatchPaused,
    MatchQueued,
    MatchRound,
    MatchStarted,
    TimeUpdated,
    TimingPhase,
)


class TestBuildMatchName:
    """Tests for build_match_name()."""

    @pytest.mark.parametrize(
        ("match", "expected"),
        [
            (MatchIdentity(MatchRound.QUAL, match=12), "Q12"),
            (MatchIdentity(MatchRound.SF, 1, 2), "SF 1-2"),
            (MatchIdentity(MatchRound.R16, 3, 1), "R16 3-1"),
            (MatchIdentity(MatchRound.F, 1, 3), "F 1-3"),
            (MatchIdentity(MatchRound.TOP_N, 1, 2), "F 2"),
            (MatchIdentity(MatchRound.PRACTICE, 1, 7), "P0"),
            (MatchIdentity(MatchRound.SKILLS, 2), "D Skills"),
            (MatchIdentity(MatchRound.SKILLS, 1), "A Coding"),
            (MatchIdentity(MatchRound.TIMEOUT), "TO"),
            (MatchIdentity(MatchRound.NONE), "OTHER"),
            (MatchIdentity(MatchRound.TIERED_TOP_N_SF, 1, 1), "OTHER"),
        ],
    )
    def test_names(self, match, expected):
        assert build_match_name(match) == expected


class TestDerivePhase:
    """Tests for derive_phase()."""

    def test_autonomous_start(self):
        assert derive_phase("Q3", 15) is TimingPhase.AUTO
        assert derive_phase("SF 1-1", 44) is TimingPhase.AUTO

    def test_programming_skills_starts_in_auto(self):
        assert derive_phase("A Coding", 60) is TimingPhase.AUTO

    def test_driving_skills_starts_in_driver(self):
        assert derive_phase("D Skills", 60) is TimingPhase.DRIVER
        assert derive_phase("Q3", 59) is TimingPhase.DRIVER

    def test_default_is_driver(self):
        assert derive_phase("Q3", 30) is TimingPhase.DRIVER
        assert derive_phase(None, 0) is TimingPhase.DRIVER

    def test_timeout_wins(self):
        assert derive_phase("TO", 15) is TimingPhase.TIMEOUT


class TestNormalizeLegacyState:
    """Tests for normalize_legacy_state()."""

    def test_disabled_shortened(self):
        assert normalize_legacy_state("DISABLED") is TimingPhase.DISABLED
        assert TimingPhase.DISABLED.value == "DSBL"

    def test_known_tokens(self):
        assert normalize_legacy_state("AUTO") is TimingPhase.AUTO
        assert normalize_legacy_state("PAUSED") is TimingPhase.PAUSED

    def test_unknown_passes_through(self):
        assert normalize_legacy_state("SCORING") == "SCORING"

    def test_missing(self):
        assert normalize_legacy_state(None) is TimingPhase.UNKNOWN


class TestFieldRegistry:
    """Tests for FieldRegistry."""

    def test_id_zero_always_empty(self):
        registry = FieldRegistry([FieldInfo(0, "Bogus"), FieldInfo(1, "Field 1")])
        assert registry.name_of(0) == ""
        assert registry.name_of(1) == "Field 1"

    def test_empty_registry_resolves_zero(self):
        registry = FieldRegistry()
        assert 0 in registry
        assert registry.name_of(0) == ""

    def test_unknown_id_falls_back_to_number(self):
        assert FieldRegistry().name_of(7) == "7"


class TestBinaryNotices:
    """Tests for NoticeInterpreter with binary notices."""

    def test_queue_then_start(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(FieldList((FieldInfo(1, "Field A"),)))
        snapshot = interpreter.handle(
            MatchQueued(MatchIdentity(MatchRound.QUAL, match=4), field_id=1)
        )
        assert snapshot.match_name == "Q4"
        assert snapshot.field_name == "Field A"
        assert not snapshot.is_running

        interpreter.handle(TimeUpdated(15))
        snapshot = interpreter.handle(MatchStarted(field_id=1))
        assert snapshot.is_running
        assert snapshot.phase is TimingPhase.AUTO
        assert snapshot.remaining_seconds == 15

    def test_timeout_match(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(MatchQueued(MatchIdentity(MatchRound.TIMEOUT)))
        interpreter.handle(TimeUpdated(15))
        assert interpreter.handle(MatchStarted()).phase is TimingPhase.TIMEOUT

    def test_abort_and_pause(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(MatchStarted(field_id=2))
        snapshot = interpreter.handle(MatchAborted(field_id=2))
        assert not snapshot.is_running
        assert snapshot.phase is TimingPhase.DISABLED

        interpreter.handle(MatchStarted(field_id=2))
        snapshot = interpreter.handle(MatchPaused(field_id=2))
        assert snapshot.phase is TimingPhase.PAUSED
        assert not interpreter.running

    def test_time_update_leaves_phase(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(TimeUpdated(45))
        interpreter.handle(MatchStarted(field_id=1))
        snapshot = interpreter.handle(TimeUpdated(30))
        assert snapshot.remaining_seconds == 30
        assert snapshot.phase is TimingPhase.AUTO
        assert snapshot.field_id == 1

    def test_field_activated(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(FieldList((FieldInfo(3, "Skills"),)))
        snapshot = interpreter.handle(FieldActivated(3))
        assert snapshot.field_id == 3
        assert snapshot.field_name == "Skills"

    def test_field_list_resolves_zero(self):
        interpreter = NoticeInterpreter()
        snapshot = interpreter.handle(FieldList((FieldInfo(0, "N/A"),)))
        assert snapshot.field_id == 0
        assert snapshot.field_name == ""

    def test_assume_field_is_silent_until_superseded(self):
        interpreter = NoticeInterpreter()
        interpreter.assume_field(4)
        assert interpreter.field_id == 4
        interpreter.handle(MatchQueued(MatchIdentity(MatchRound.SKILLS, 2), field_id=2))
        assert interpreter.field_id == 2

    def test_reset(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(FieldList((FieldInfo(1, "A"),)))
        interpreter.handle(MatchStarted(field_id=1))
        interpreter.reset()
        assert not interpreter.running
        assert interpreter.snapshot().field_name == ""
        assert len(interpreter.fields) == 1

    def test_unknown_notice_raises(self):
        with pytest.raises(ProtocolError, match="Unhandled notice"):
            NoticeInterpreter().handle(object())


class TestLegacyNotices:
    """Tests for NoticeInterpreter with legacy notices."""

    def test_assigned_keeps_field_when_null(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(LegacyMatchAssigned(name="Q1", field_id=2))
        snapshot = interpreter.handle(LegacyMatchAssigned(name="Q2", field_id=None))
        assert snapshot.field_id == 2
        assert snapshot.match_name == "Q2"

    def test_assigned_keeps_field_when_zero(self):
        interpreter = NoticeInterpreter()
        interpreter.handle(LegacyMatchAssigned(name="Q1", field_id=2))
        assert interpreter.handle(LegacyMatchAssigned("Q2", 0)).field_id == 2

    def test_started_and_stopped(self):
        interpreter = NoticeInterpreter()
        assert interpreter.handle(LegacyMatchStarted(field_id=1)).is_running
        snapshot = interpreter.handle(LegacyMatchStopped(field_id=1, aborted=True))
        assert not snapshot.is_running
        assert snapshot.phase is TimingPhase.DISABLED

    def test_abort_is_logged(self, caplog):
        interpreter = NoticeInterpreter()
        with caplog.at_level(logging.DEBUG, logger="tm_fieldcontrol.interpreter"):
            interpreter.handle(LegacyMatchStopped(field_id=2, aborted=True))
            interpreter.handle(LegacyMatchStopped(field_id=2))

        messages = [r.getMessage() for r in caplog.records]
        assert "Match aborted on field 2" in messages
        assert "Match stopped on field 2" in messages

    def test_time_update_carries_phase(self):
        interpreter = NoticeInterpreter()
        snapshot = interpreter.handle(LegacyTimeUpdated(state="DISABLED", remaining=0))
        assert snapshot.phase is TimingPhase.DISABLED
        snapshot = interpreter.handle(LegacyTimeUpdated(state="DRIVER", remaining=90))
        assert snapshot.phase is TimingPhase.DRIVER
        assert snapshot.remaining_seconds == 90

    def test_display_is_not_a_match_event(self):
        interpreter = NoticeInterpreter()
        assert interpreter.handle(LegacyDisplayUpdated(display=3)) is None
        assert interpreter.display == 3
