"""Process-wide question bank, loaded once by the app lifespan."""
from __future__ import annotations

import logging
from pathlib import Path

from sejarah.content.registry import DEFAULT_CONTENT_ROOT, QuestionBank, load_question_bank

logger = logging.getLogger(__name__)

_BANK: QuestionBank | None = None


def init_content(*, project_root: Path = DEFAULT_CONTENT_ROOT) -> QuestionBank:
    global _BANK
    if _BANK is None:
        _BANK = load_question_bank(root=project_root)
        logger.info("Loaded %d question(s) across %d region(s)", len(_BANK), len(_BANK.by_region))
    return _BANK


def reset_content_for_tests() -> None:
    global _BANK
    _BANK = None


def get_content() -> QuestionBank:
    if _BANK is None:
        raise RuntimeError("Question bank not loaded; call init_content() first")
    return _BANK
