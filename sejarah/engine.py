from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from sejarah.api.models import (
    AnswerResult,
    EngineSnapshot,
    GameState,
    PersistedProgress,
    PlayerProfile,
    RegionId,
)
from sejarah.content.regions import STATE_TIMERS, to_region_id
from sejarah.evaluator import evaluate
from sejarah.fsm import EngineLifecycle
from sejarah.persistence import DebouncedSaver
from sejarah.progress_store import LOAD_FAILED_MESSAGE, ProgressLoadError, ProgressStore
from sejarah.settings import EngineSettings
from sejarah.timer import is_expired, now_ms, pause_timer, resume_timer, start_timer, time_remaining

logger = logging.getLogger(__name__)

MONEY_PENALTY = 2
HEALTH_PENALTY = 5

# Question ids use both "<region>-<n>" and "<region>_<n>". Matching both is a
# compatibility shim; drop "_" once every content file uses "-".
QUESTION_ID_SEPARATORS = ("-", "_")


class GameEngine:
    """Owns the authoritative GameState for one running process.

    Construct exactly one per process, `await load()` once, then route every
    mutation through the named operations. All operations are synchronous; the
    only suspension points are `load()` and the debounced save. Operations that
    change saved progress must run on the event loop that owns the saver; called
    from anywhere else they raise `SaveLoopError` and leave the state untouched.
    """

    def __init__(
        self,
        *,
        store: ProgressStore,
        settings: EngineSettings | None = None,
        clock: Callable[[], int] = now_ms,
        timers: Mapping[RegionId, int | None] = STATE_TIMERS,
    ) -> None:
        cfg = settings or EngineSettings()
        self._store = store
        self._clock = clock
        self._timers = timers
        self._lifecycle = EngineLifecycle()
        self._state = GameState()
        self._save_error: str | None = None
        self._load_warning: str | None = None
        self._saver = DebouncedSaver(
            store=store,
            delay_s=cfg.save_debounce_s,
            on_saved=self._on_saved,
            on_failed=self._on_save_failed,
        )

    # ---- read side ----

    @property
    def is_loading(self) -> bool:
        return not self._lifecycle.has_loaded

    @property
    def game_state(self) -> GameState:
        """A copy; mutate through the engine operations only."""

        self._lifecycle.require_ready(action="game_state")
        return self._state.model_copy(deep=True)

    @property
    def save_error(self) -> str | None:
        return self._save_error

    @property
    def load_warning(self) -> str | None:
        return self._load_warning

    @property
    def saver(self) -> DebouncedSaver:
        return self._saver

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            game_state=self.game_state,
            is_loading=self.is_loading,
            save_error=self._save_error,
            load_warning=self._load_warning,
        )

    # ---- lifecycle ----

    async def load(self) -> None:
        """Hydrate from the store once. Always ends ready, on defaults if loading failed."""

        if not self.is_loading:
            return

        try:
            progress = self._store.load()
        except ProgressLoadError as e:
            logger.warning("Falling back to a fresh game: %s", e)
            self._load_warning = LOAD_FAILED_MESSAGE
            progress = None

        if progress is None:
            logger.info("No saved progress; starting a fresh game")
        else:
            self._state = self._state_from_progress(progress)
            logger.info("Loaded progress: %d completed region(s)", len(self._state.completed_states))

        self._lifecycle.loaded()

    async def shutdown(self) -> None:
        await self._saver.flush()

    # ---- answers ----

    def answer_question(self, question_id: str, answer: Any, question: object) -> AnswerResult:
        """Score an answer and record it under `question_id`.

        Re-answering overwrites the earlier answer. Wrong answers cost money and
        health and bump `wrong_answer_count`; nothing here marks a region complete.
        """

        self._require_writable(action="answer_question")

        is_correct = evaluate(question, answer)
        money_change = 0 if is_correct else -MONEY_PENALTY
        health_change = 0 if is_correct else -HEALTH_PENALTY

        s = self._state
        s.answers[question_id] = answer
        if not is_correct:
            s.wrong_answer_count += 1
            s.money = max(0, s.money + money_change)
            s.health = max(0, s.health + health_change)

        self._commit()
        return AnswerResult(
            is_correct=is_correct,
            explanation=getattr(question, "explanation", None),
            money_change=money_change,
            health_change=health_change,
        )

    def clear_state_answers(self, state_id: RegionId | str) -> None:
        self._require_writable(action="clear_state_answers")
        region = to_region_id(state_id)

        prefixes = tuple(f"{region.value}{sep}" for sep in QUESTION_ID_SEPARATORS)
        s = self._state
        s.answers = {qid: a for qid, a in s.answers.items() if not qid.startswith(prefixes)}
        s.question_index_by_state.pop(region, None)
        self._commit()

    def set_question_index_for_state(self, state_id: RegionId | str, index: int) -> None:
        self._require_writable(action="set_question_index_for_state")
        region = to_region_id(state_id)
        if index < 0:
            raise ValueError("index must be >= 0")
        self._state.question_index_by_state[region] = index
        self._commit()

    def reset_wrong_answer_count(self) -> None:
        self._lifecycle.require_ready(action="reset_wrong_answer_count")
        # Not part of the persisted projection.
        self._state.wrong_answer_count = 0

    # ---- region outcome ----

    def set_current_state(self, state_id: RegionId | str | None) -> None:
        """Select the active region (map screen). None returns to the map."""

        self._require_writable(action="set_current_state")
        self._state.current_state = None if state_id is None else to_region_id(state_id)
        self._commit()

    def complete_state(self, state_id: RegionId | str) -> None:
        """Mark a region permanently complete. Repeating it leaves the set unchanged."""

        self._require_writable(action="complete_state")
        region = to_region_id(state_id)

        s = self._state
        if region not in s.completed_states:
            s.completed_states.append(region)
        # Kept so screens can still tell which region just finished after the quiz closes.
        s.current_state = region
        s.current_question_index = 0
        s.show_success_modal = True
        s.state_timer = None

        logger.info("Region completed: %s (%d total)", region.value, len(s.completed_states))
        self._commit()

    def fail_state(self, state_id: RegionId | str) -> None:
        """The quiz ended with wrong answers: signal the failure modal and stop the clock."""

        self._require_writable(action="fail_state")
        region = to_region_id(state_id)

        s = self._state
        s.current_state = region
        s.show_gagal_modal = True
        s.state_timer = None
        self._commit()

    # ---- timer ----

    def start_state_timer(self, state_id: RegionId | str) -> None:
        """Start the region's countdown, or clear the timer if the region has none."""

        self._require_writable(action="start_state_timer")
        region = to_region_id(state_id)
        self._state.state_timer = start_timer(self._timers.get(region), now=self._clock())
        self._commit()

    def pause_state_timer(self) -> None:
        self._require_writable(action="pause_state_timer")
        timer = self._state.state_timer
        if timer is None or timer.is_paused:
            return
        self._state.state_timer = pause_timer(timer, now=self._clock())
        self._commit()

    def resume_state_timer(self) -> None:
        self._require_writable(action="resume_state_timer")
        timer = self._state.state_timer
        if timer is None or not timer.is_paused:
            return
        self._state.state_timer = resume_timer(timer, now=self._clock())
        self._commit()

    def clear_state_timer(self) -> None:
        self._require_writable(action="clear_state_timer")
        if self._state.state_timer is None:
            return
        self._state.state_timer = None
        self._commit()

    def get_time_remaining(self) -> int | None:
        self._lifecycle.require_ready(action="get_time_remaining")
        timer = self._state.state_timer
        if timer is None:
            return None
        return time_remaining(timer, now=self._clock())

    def is_timer_expired(self) -> bool:
        self._lifecycle.require_ready(action="is_timer_expired")
        timer = self._state.state_timer
        return timer is not None and is_expired(timer, now=self._clock())

    # ---- profile & settings ----

    def set_player_profile(self, name: str, age: int) -> None:
        # Range checks belong to the login form (sejarah.profile); stored as given.
        self._require_writable(action="set_player_profile")
        self._state.player_profile = PlayerProfile(name=name, age=age)
        self._commit()

    def mark_tutorial_complete(self) -> None:
        self._require_writable(action="mark_tutorial_complete")
        self._state.has_seen_tutorial = True
        self._commit()

    def set_allow_font_scaling(self, allow: bool) -> None:
        self._require_writable(action="set_allow_font_scaling")
        self._state.allow_font_scaling = allow
        self._commit()

    def set_show_success_modal(self, show: bool) -> None:
        self._lifecycle.require_ready(action="set_show_success_modal")
        self._state.show_success_modal = show

    def set_show_gagal_modal(self, show: bool) -> None:
        self._lifecycle.require_ready(action="set_show_gagal_modal")
        self._state.show_gagal_modal = show

    async def reset_game(self) -> None:
        """Erase saved progress (best effort) and start over on defaults.

        The in-memory reset happens whether or not the erase worked; the fresh
        defaults are then saved so a failed erase cannot bring old progress back.
        """

        self._lifecycle.require_ready(action="reset_game")

        self._saver.cancel()
        await self._saver.wait_idle()
        if not self._store.erase():
            logger.warning("Reset continues without erasing saved progress")

        self._state = GameState()
        self._save_error = None
        logger.info("Game reset")
        self._commit()

    # ---- persistence ----

    def to_progress(self) -> PersistedProgress:
        s = self._state.model_copy(deep=True)
        return PersistedProgress(
            completed_states=s.completed_states,
            has_seen_tutorial=s.has_seen_tutorial,
            last_played_state=s.current_state,
            timestamp=self._clock(),
            player_profile=s.player_profile,
            allow_font_scaling=s.allow_font_scaling,
            answers=s.answers,
            question_index_by_state=s.question_index_by_state,
            state_timer=s.state_timer,
            money=s.money,
            health=s.health,
        )

    @staticmethod
    def _state_from_progress(progress: PersistedProgress) -> GameState:
        return GameState(
            current_state=progress.last_played_state,
            completed_states=list(dict.fromkeys(progress.completed_states)),
            answers=dict(progress.answers),
            question_index_by_state=dict(progress.question_index_by_state),
            money=progress.money,
            health=progress.health,
            has_seen_tutorial=progress.has_seen_tutorial,
            player_profile=progress.player_profile,
            state_timer=progress.state_timer,
            allow_font_scaling=progress.allow_font_scaling,
        )

    def _require_writable(self, *, action: str) -> None:
        # Checked before mutating: a change that cannot be scheduled for saving is refused.
        self._lifecycle.require_ready(action=action)
        self._saver.require_loop(action=action)

    def _commit(self) -> None:
        self._saver.schedule(self.to_progress())

    def _on_saved(self) -> None:
        self._save_error = None

    def _on_save_failed(self, message: str) -> None:
        self._save_error = message
