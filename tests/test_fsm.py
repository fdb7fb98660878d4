from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from sejarah.fsm import EngineLifecycle, EngineNotReadyError


def test_lifecycle_loads_once() -> None:
    fsm = EngineLifecycle()
    assert fsm.has_loaded is False
    with pytest.raises(EngineNotReadyError, match="answer_question"):
        fsm.require_ready(action="answer_question")

    fsm.loaded()

    assert fsm.has_loaded is True
    fsm.require_ready(action="answer_question")
    with pytest.raises(TransitionNotAllowed):
        fsm.loaded()
