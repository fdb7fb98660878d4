from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class RegionId(StrEnum):
    perlis = "perlis"
    kedah = "kedah"
    pulau_pinang = "pulau-pinang"
    perak = "perak"
    selangor = "selangor"
    kuala_lumpur = "kuala-lumpur"
    negeri_sembilan = "negeri-sembilan"
    melaka = "melaka"
    johor = "johor"
    pahang = "pahang"
    terengganu = "terengganu"
    kelantan = "kelantan"
    sabah = "sabah"
    sarawak = "sarawak"


# Submitted answer shapes. The crossword answer maps word id -> typed word.
AnswerValue = Union[str, bool, list[str], dict[str, str]]


class PlayerProfile(BaseModel):
    name: str
    age: int


class TimerRecord(BaseModel):
    """Pausable countdown.

    Times are wall-clock milliseconds; `duration` and `paused_duration` are seconds.
    """

    start_time: int
    duration: int
    is_paused: bool = False
    paused_at: int | None = None
    paused_duration: float = 0.0

    @model_validator(mode="after")
    def _paused_at_matches_flag(self) -> "TimerRecord":
        if self.is_paused != (self.paused_at is not None):
            raise ValueError("paused_at must be set if and only if is_paused is true")
        return self


# ---- Questions (static content, never written by the engine) ----


class _QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    state: RegionId
    question: str
    explanation: str | None = None
    image_path: str | None = None


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multipleChoice"] = "multipleChoice"
    options: tuple[str, str, str, str]
    correct_answer: str


class TrueFalseQuestion(_QuestionBase):
    type: Literal["trueFalse"] = "trueFalse"
    correct_answer: bool


class FillBlankQuestion(_QuestionBase):
    type: Literal["fillBlank"] = "fillBlank"
    correct_answer: str
    acceptable_answers: tuple[str, ...] = ()
    case_sensitive: bool = False


class MatchingQuestion(_QuestionBase):
    type: Literal["matching"] = "matching"
    title: str
    options: tuple[str, str, str, str, str, str, str, str, str]
    correct_answers: tuple[str, ...]


class CrosswordWord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    answer: str
    direction: Literal["across", "down"]
    start_row: int = Field(..., ge=0)
    start_col: int = Field(..., ge=0)
    clue: str = ""


class GridSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: int = Field(..., ge=1)
    cols: int = Field(..., ge=1)


class CrosswordQuestion(_QuestionBase):
    type: Literal["crossword"] = "crossword"
    grid_size: GridSize
    words: tuple[CrosswordWord, ...]

    @model_validator(mode="after")
    def _words_fit_grid(self) -> "CrosswordQuestion":
        for w in self.words:
            end_row = w.start_row + (len(w.answer) - 1 if w.direction == "down" else 0)
            end_col = w.start_col + (len(w.answer) - 1 if w.direction == "across" else 0)
            if end_row >= self.grid_size.rows or end_col >= self.grid_size.cols:
                raise ValueError(f"Crossword word '{w.id}' does not fit the {self.grid_size.rows}x{self.grid_size.cols} grid")
        return self


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        TrueFalseQuestion,
        FillBlankQuestion,
        MatchingQuestion,
        CrosswordQuestion,
    ],
    Field(discriminator="type"),
]

QUESTION_LIST_ADAPTER: TypeAdapter[list[Question]] = TypeAdapter(list[Question])


class AnswerResult(BaseModel):
    is_correct: bool
    explanation: str | None = None
    # Resource effects of this verdict (0 when correct).
    money_change: int = 0
    health_change: int = 0


# ---- Game state ----

INITIAL_MONEY = 100
INITIAL_HEALTH = 100


class GameState(BaseModel):
    current_state: RegionId | None = None

    # Set semantics, insertion ordered. Only a full reset shrinks it.
    completed_states: list[RegionId] = Field(default_factory=list)

    # question id -> raw submitted answer (see AnswerValue).
    answers: dict[str, Any] = Field(default_factory=dict)

    # Resume cursor per region.
    question_index_by_state: dict[RegionId, int] = Field(default_factory=dict)
    current_question_index: int = 0

    wrong_answer_count: int = Field(0, ge=0)
    money: int = INITIAL_MONEY
    health: int = INITIAL_HEALTH

    has_seen_tutorial: bool = False
    player_profile: PlayerProfile | None = None
    state_timer: TimerRecord | None = None

    # UI preference, passed through unchanged.
    allow_font_scaling: bool = False

    # Transient UI signals; never persisted.
    show_success_modal: bool = False
    show_gagal_modal: bool = False


class PersistedProgress(BaseModel):
    """On-disk projection of GameState.

    Transient UI flags, the active question cursor and `wrong_answer_count`
    are not stored; the wrong-answer tally resets every session.
    """

    completed_states: list[RegionId] = Field(default_factory=list)
    has_seen_tutorial: bool = False
    last_played_state: RegionId | None = None
    timestamp: int = 0
    player_profile: PlayerProfile | None = None
    allow_font_scaling: bool = False
    answers: dict[str, Any] = Field(default_factory=dict)
    question_index_by_state: dict[RegionId, int] = Field(default_factory=dict)
    state_timer: TimerRecord | None = None
    money: int = INITIAL_MONEY
    health: int = INITIAL_HEALTH


class ProgressEnvelope(BaseModel):
    version: int
    progress: PersistedProgress


# ---- HTTP request/response bodies ----


class AnswerRequest(BaseModel):
    question_id: str = Field(..., min_length=1)
    answer: AnswerValue


class QuestionIndexRequest(BaseModel):
    index: int = Field(..., ge=0)


class ProfileRequest(BaseModel):
    name: str
    # Checked by validate_profile_form so the login form gets its own messages.
    age: str | int | None = None


class FontScalingRequest(BaseModel):
    allow: bool


class ModalsRequest(BaseModel):
    show_success_modal: bool | None = None
    show_gagal_modal: bool | None = None


class TimerResponse(BaseModel):
    timer: TimerRecord | None
    remaining: int | None
    expired: bool
    display: str | None = None
    color: str | None = None


class EngineSnapshot(BaseModel):
    game_state: GameState
    is_loading: bool
    save_error: str | None = None
    load_warning: str | None = None


class RegionSummary(BaseModel):
    id: RegionId
    name: str
    timer_seconds: int | None
    question_count: int
    is_completed: bool
