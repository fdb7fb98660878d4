from __future__ import annotations

from statemachine import State, StateMachine


class EngineNotReadyError(RuntimeError):
    """The engine was used before its startup load finished."""


class EngineLifecycle(StateMachine):
    """loading -> ready.

    The single startup load always ends in `ready`, even when it fails (the
    engine then runs on defaults). Nothing transitions back to loading.
    """

    loading = State("loading", value="loading", initial=True)
    ready = State("ready", value="ready", final=True)

    loaded = loading.to(ready)

    @property
    def has_loaded(self) -> bool:
        return self.current_state.value == "ready"

    def require_ready(self, *, action: str) -> None:
        if not self.has_loaded:
            raise EngineNotReadyError(f"'{action}' called while the engine is still loading")
