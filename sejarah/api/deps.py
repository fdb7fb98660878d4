from __future__ import annotations

from fastapi import Request

from sejarah.content.registry import QuestionBank
from sejarah.content.singleton import get_content
from sejarah.engine import GameEngine


def get_engine(request: Request) -> GameEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise RuntimeError("Engine not initialized. It is created in the app lifespan.")
    return engine


def get_questions() -> QuestionBank:
    return get_content()
