"""Match state and message models for field-set control.

Both protocol generations are modelled as closed sets of frozen dataclasses.
The binary generation carries raw round codes and field ids; the legacy
generation carries server-built match names and state tokens. The two sets
are kept apart and the interpreter dispatches over each exhaustively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

NO_FIELD_ID = 0
NO_FIELD_NAME = ""


class MatchRound(IntEnum):
    """Round designator codes used on the binary wire."""

    NONE = 0
    PRACTICE = 1
    QUAL = 2
    QF = 3
    SF = 4
    F = 5
    R16 = 6
    R32 = 7
    R64 = 8
    R128 = 9
    TOP_N = 10
    TIERED_TOP_N_QF = 11
    TIERED_TOP_N_SF = 12
    TIERED_TOP_N_F = 13
    SKILLS = 14
    TIMEOUT = 15


BRACKET_ROUNDS: frozenset[MatchRound] = frozenset(
    {
        MatchRound.R128,
        MatchRound.R64,
        MatchRound.R32,
        MatchRound.R16,
        MatchRound.QF,
        MatchRound.SF,
        MatchRound.F,
    }
)

# Skills instance numbering used by the server
DRIVING_SKILLS_INSTANCE = 2


class TimingPhase(str, Enum):
    """Segment of match play, valued by its short display token."""

    AUTO = "AUTO"
    DRIVER = "DRIVER"
    DISABLED = "DSBL"
    PAUSED = "PAUSED"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = ""


class CommandResult(Enum):
    """Outcome of a fire-and-forget command."""

    SENT = "sent"
    SKIPPED = "skipped"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class MatchIdentity:
    """Round, instance and match number of a queued match."""

    round: MatchRound
    instance: int = 0
    match: int = 0


@dataclass(frozen=True)
class FieldInfo:
    """One field of a field set."""

    id: int
    name: str


class FieldRegistry:
    """Mapping of field id to display name.

    Id 0 always denotes "no field" and resolves to an empty name, whatever
    the server sent.
    """

    def __init__(self, fields: list[FieldInfo] | tuple[FieldInfo, ...] = ()) -> None:
        self._names: dict[int, str] = {}
        self.replace(fields)

    def replace(self, fields: list[FieldInfo] | tuple[FieldInfo, ...]) -> None:
        names = {f.id: f.name for f in fields}
        names[NO_FIELD_ID] = NO_FIELD_NAME
        self._names = names

    def name_of(self, field_id: int) -> str:
        if field_id in self._names:
            return self._names[field_id]
        return str(field_id)

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._names

    def __len__(self) -> int:
        return len(self._names)


@dataclass
class MatchState:
    """Live match state; written only by the notice interpreter."""

    field_id: int = NO_FIELD_ID
    running: bool = False
    phase: TimingPhase | str = TimingPhase.UNKNOWN
    remaining: int = 0
    match_name: str | None = None
    display: str | int | None = None


@dataclass(frozen=True)
class MatchSnapshot:
    """Immutable view of the match state pushed to observers."""

    match_name: str | None
    phase: TimingPhase | str
    remaining_seconds: int
    is_running: bool
    field_name: str
    field_id: int


# -----------------------------------------------------------------------------
# Binary generation notices
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchQueued:
    match: MatchIdentity
    field_id: int = NO_FIELD_ID


@dataclass(frozen=True)
class MatchStarted:
    field_id: int = NO_FIELD_ID


@dataclass(frozen=True)
class MatchStopped:
    field_id: int = NO_FIELD_ID


@dataclass(frozen=True)
class MatchAborted:
    field_id: int = NO_FIELD_ID


@dataclass(frozen=True)
class MatchPaused:
    field_id: int = NO_FIELD_ID


@dataclass(frozen=True)
class TimeUpdated:
    remaining: int


@dataclass(frozen=True)
class FieldList:
    fields: tuple[FieldInfo, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FieldActivated:
    field_id: int = NO_FIELD_ID


BinaryNotice = (
    MatchQueued
    | MatchStarted
    | MatchStopped
    | MatchAborted
    | MatchPaused
    | TimeUpdated
    | FieldList
    | FieldActivated
)


# -----------------------------------------------------------------------------
# Legacy generation notices
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class LegacyMatchAssigned:
    name: str | None
    field_id: int | None = None


@dataclass(frozen=True)
class LegacyMatchStarted:
    field_id: int | None = None


@dataclass(frozen=True)
class LegacyMatchStopped:
    field_id: int | None = None
    aborted: bool = False


@dataclass(frozen=True)
class LegacyMatchPaused:
    field_id: int | None = None


@dataclass(frozen=True)
class LegacyTimeUpdated:
    state: str | None
    remaining: int


@dataclass(frozen=True)
class LegacyDisplayUpdated:
    display: str | int | None


LegacyNotice = (
    LegacyMatchAssigned
    | LegacyMatchStarted
    | LegacyMatchStopped
    | LegacyMatchPaused
    | LegacyTimeUpdated
    | LegacyDisplayUpdated
)


# -----------------------------------------------------------------------------
# Binary generation commands
# -----------------------------------------------------------------------------


class FieldControlAction(IntEnum):
    START = 1
    END_EARLY = 2
    ABORT = 3
    RESET_TIMER = 4


class QueueKind(IntEnum):
    NEXT = 1
    DRIVING_SKILLS = 2
    PROGRAMMING_SKILLS = 3


@dataclass(frozen=True)
class FieldControlCommand:
    action: FieldControlAction
    field_id: int


@dataclass(frozen=True)
class QueueMatchCommand:
    kind: QueueKind


@dataclass(frozen=True)
class SetActiveFieldCommand:
    field_id: int


BinaryCommand = FieldControlCommand | QueueMatchCommand | SetActiveFieldCommand
