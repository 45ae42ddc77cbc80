"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize the shared registry + runtime ONCE per process
- Register routes
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from observability.logger import set_log_level
from session.registry import SessionRegistry
from store.runtime import PileupRuntime
from store.state_dataclass import PileupState

from server.routes import register_routes


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Passing a config lets tests build isolated apps; otherwise it is read
    from the environment.
    """
    if config is None:
        config = AppConfig.load_from_env()

    set_log_level(config.log_level)

    app = FastAPI(title="CW Pileup Relay")

    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One authoritative state per process
    registry = SessionRegistry()
    app.state.registry = registry
    app.state.runtime = PileupRuntime(
        registry=registry,
        initial_state=PileupState(config=config.initial_session_config()),
    )

    register_routes(app)

    return app
