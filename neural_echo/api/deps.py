from fastapi import Request

from neural_echo.engine import EngineContext


def get_engine(request: Request) -> EngineContext:
    return request.app.state.engine
