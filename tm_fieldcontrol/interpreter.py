"""Notice interpreter: derives match state from field-set notices.

The interpreter is the only writer of ``MatchState`` and the field registry.
Clients feed it notices in arrival order and forward the returned snapshot
to observers.
"""

from __future__ import annotations

import logging

from .errors import ProtocolError
from .models import (
    BRACKET_ROUNDS,
    DRIVING_SKILLS_INSTANCE,
    FieldActivated,
    FieldList,
    FieldRegistry,
    LegacyDisplayUpdated,
    LegacyMatchAssigned,
    LegacyMatchPaused,
    LegacyMatchStarted,
    LegacyMatchStopped,
    LegacyTimeUpdated,
    MatchAborted,
    MatchIdentity,
    MatchPaused,
    MatchQueued,
    MatchRound,
    MatchSnapshot,
    MatchStarted,
    MatchState,
    MatchStopped,
    TimeUpdated,
    TimingPhase,
)

_LOGGER = logging.getLogger(__name__)

TIMEOUT_MATCH_NAME = "TO"
DRIVING_SKILLS_NAME = "D Skills"
PROGRAMMING_SKILLS_NAME = "A Coding"
OTHER_MATCH_NAME = "OTHER"

# Remaining seconds seen at the start of an autonomous period
AUTO_START_TIMES = frozenset({15, 14, 45, 44})
# A skills run starts with a full minute on the clock
SKILLS_START_TIMES = frozenset({60, 59})

_LEGACY_STATE_ALIASES = {"DISABLED": TimingPhase.DISABLED.value}


def build_match_name(match: MatchIdentity) -> str:
    """Build the short display name of a queued match."""
    round_ = match.round
    if round_ is MatchRound.QUAL:
        return f"Q{match.match}"
    if round_ in BRACKET_ROUNDS:
        return f"{round_.name} {match.instance}-{match.match}"
    if round_ is MatchRound.TOP_N:
        return f"F {match.match}"
    if round_ is MatchRound.PRACTICE:
        return "P0"
    if round_ is MatchRound.TIMEOUT:
        return TIMEOUT_MATCH_NAME
    if round_ is MatchRound.SKILLS:
        if match.instance == DRIVING_SKILLS_INSTANCE:
            return DRIVING_SKILLS_NAME
        return PROGRAMMING_SKILLS_NAME
    return OTHER_MATCH_NAME


def derive_phase(match_name: str | None, remaining: int) -> TimingPhase:
    """Infer the timing phase of a match that just started."""
    if match_name == TIMEOUT_MATCH_NAME:
        return TimingPhase.TIMEOUT
    if remaining in AUTO_START_TIMES:
        return TimingPhase.AUTO
    if remaining in SKILLS_START_TIMES:
        if match_name == PROGRAMMING_SKILLS_NAME:
            return TimingPhase.AUTO
        return TimingPhase.DRIVER
    return TimingPhase.DRIVER


def normalize_legacy_state(state: str | None) -> TimingPhase | str:
    """Map a legacy state token onto a timing phase.

    ``"DISABLED"`` is shortened to ``"DSBL"``; unknown tokens pass through.
    """
    if state is None:
        return TimingPhase.UNKNOWN
    token = _LEGACY_STATE_ALIASES.get(state, state)
    try:
        return TimingPhase(token)
    except ValueError:
        return token


class NoticeInterpreter:
    """Apply notices to the match state of one field set."""

    def __init__(self) -> None:
        self._state = MatchState()
        self._fields = FieldRegistry()

    @property
    def fields(self) -> FieldRegistry:
        return self._fields

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def field_id(self) -> int:
        return self._state.field_id

    @property
    def display(self) -> str | int | None:
        return self._state.display

    def snapshot(self) -> MatchSnapshot:
        state = self._state
        return MatchSnapshot(
            match_name=state.match_name,
            phase=state.phase,
            remaining_seconds=state.remaining,
            is_running=state.running,
            field_name=self._fields.name_of(state.field_id),
            field_id=state.field_id,
        )

    def assume_field(self, field_id: int) -> None:
        """Record a field id before the server confirms it.

        The next field-activated or match-queued notice supersedes it.
        """
        self._state.field_id = int(field_id)

    def reset(self) -> None:
        """Forget everything learned from the previous stream."""
        self._state = MatchState()
        self._fields = FieldRegistry()

    def handle(self, notice: object) -> MatchSnapshot | None:
        """Apply one notice.

        Returns:
            The new snapshot when the notice changed match info, else None.

        Raises:
            ProtocolError: If the notice type is not one this interpreter knows.
        """
        state = self._state

        # Binary generation
        if isinstance(notice, MatchQueued):
            state.field_id = notice.field_id
            state.match_name = build_match_name(notice.match)
        elif isinstance(notice, MatchStarted):
            state.phase = derive_phase(state.match_name, state.remaining)
            state.running = True
            state.field_id = notice.field_id
        elif isinstance(notice, (MatchStopped, MatchAborted)):
            state.running = False
            state.phase = TimingPhase.DISABLED
            state.field_id = notice.field_id
        elif isinstance(notice, MatchPaused):
            state.running = False
            state.phase = TimingPhase.PAUSED
            state.field_id = notice.field_id
        elif isinstance(notice, TimeUpdated):
            state.remaining = notice.remaining
        elif isinstance(notice, FieldList):
            self._fields.replace(notice.fields)
            _LOGGER.debug("Field list: %d fields", len(notice.fields))
        elif isinstance(notice, FieldActivated):
            state.field_id = notice.field_id

        # Legacy generation
        elif isinstance(notice, LegacyMatchAssigned):
            # A null field id in this notice does not clear the current field
            if notice.field_id:
                state.field_id = notice.field_id
            state.match_name = notice.name
        elif isinstance(notice, LegacyMatchStarted):
            state.running = True
            state.field_id = notice.field_id or 0
        elif isinstance(notice, LegacyMatchStopped):
            state.running = False
            state.field_id = notice.field_id or 0
            state.phase = TimingPhase.DISABLED
            _LOGGER.debug(
                "Match %s on field %d",
                "aborted" if notice.aborted else "stopped",
                state.field_id,
            )
        elif isinstance(notice, LegacyMatchPaused):
            state.running = False
            state.field_id = notice.field_id or 0
            state.phase = TimingPhase.PAUSED
        elif isinstance(notice, LegacyTimeUpdated):
            state.phase = normalize_legacy_state(notice.state)
            state.remaining = notice.remaining
        elif isinstance(notice, LegacyDisplayUpdated):
            state.display = notice.display
            return None

        else:
            raise ProtocolError(f"Unhandled notice: {type(notice).__name__}")

        return self.snapshot()
