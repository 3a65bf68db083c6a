import json
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import AsyncGenerator, List, Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response, StreamingResponse
from loguru import logger
from sqlalchemy.engine import Engine

from .config import Settings, get_settings
from .datasources.auth_api import AuthApi
from .datasources.github_api import GithubApi
from .db import create_db_engine, init_db
from .errors import (
    AuthError,
    ConfigurationError,
    InvalidQuery,
    InvalidTransition,
    MissingCode,
    MissingLoginData,
    NetworkError,
    NotFound,
    SimpleGithubError,
    Unauthenticated,
)
from .schemas import Repository, RepositoryDetail, SearchState, SignInStatus
from .services.credentials import CredentialStore
from .services.history import SearchHistoryStore
from .services.repository_detail import RepositoryDetailFlow, resolve_timezone
from .services.search import SearchFlow
from .services.signin import SignInFlow

ERROR_STATUS = {
    Unauthenticated: 401,
    AuthError: 401,
    NotFound: 404,
    InvalidQuery: 400,
    MissingCode: 400,
    MissingLoginData: 400,
    InvalidTransition: 409,
    ConfigurationError: 500,
    NetworkError: 502,
}


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


@dataclass
class Services:
    settings: Settings
    engine: Engine
    credentials: CredentialStore
    history: SearchHistoryStore
    auth_api: AuthApi
    github_api: GithubApi
    sign_in: SignInFlow
    search: SearchFlow
    display_timezone: tzinfo

    def detail_flow(self) -> RepositoryDetailFlow:
        return RepositoryDetailFlow(self.github_api, self.display_timezone)

    async def aclose(self) -> None:
        self.sign_in.close()
        self.search.close()
        self.history.close()
        await self.auth_api.aclose()
        await self.github_api.aclose()
        self.engine.dispose()


def build_services(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Services:
    display_timezone = resolve_timezone(settings.display_timezone)
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    credentials = CredentialStore(engine)
    history = SearchHistoryStore(engine)
    auth_api = AuthApi(settings, transport=transport)
    github_api = GithubApi(settings, credentials, transport=transport)
    return Services(
        settings=settings,
        engine=engine,
        credentials=credentials,
        history=history,
        auth_api=auth_api,
        github_api=github_api,
        sign_in=SignInFlow(
            auth_api,
            credentials,
            settings.github_client_id,
            settings.github_client_secret,
        ),
        search=SearchFlow(github_api, history),
        display_timezone=display_timezone,
    )


def sse(event: str, data) -> str:
    # default=str converts types like HttpUrl/Enum to JSON-friendly strings
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"


async def history_events(history: SearchHistoryStore) -> AsyncGenerator[str, None]:
    async for items in history.observe():
        yield sse("history", [repo.model_dump(mode="json", by_alias=True) for repo in items])


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings, transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        token = await services.sign_in.load_access_token()
        logger.info(f"[app] started, signed in: {token is not None}")
        yield
        await services.aclose()
        logger.info("[app] stopped")

    app = FastAPI(title="Simple GitHub", version="0.1.0", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SimpleGithubError)
    async def handle_error(request: Request, exc: SimpleGithubError):
        status = 500
        for error_type, code in ERROR_STATUS.items():
            if isinstance(exc, error_type):
                status = code
                break
        return JSONResponse(status_code=status, content={"detail": exc.message})

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}

    @app.get("/auth/login")
    async def login():
        return RedirectResponse(services.sign_in.start_sign_in())

    @app.get("/auth/callback", response_model=SignInStatus)
    async def callback(request: Request):
        task = services.sign_in.handle_redirect(str(request.url))
        await task
        return services.sign_in.status()

    @app.get("/auth/status", response_model=SignInStatus)
    async def auth_status():
        return services.sign_in.status()

    @app.get("/search", response_model=SearchState)
    async def search(q: str = Query(default="")):
        state = await services.search.search(q)
        if state is None:
            raise HTTPException(status_code=409, detail="Superseded by a newer search")
        return state

    @app.get("/repos/{owner}/{name}", response_model=RepositoryDetail)
    async def repository(owner: str, name: str):
        flow = services.detail_flow()
        try:
            return await flow.show(owner, name)
        finally:
            flow.close()

    @app.get("/history", response_model=List[Repository])
    async def history():
        return await services.history.list()

    @app.post("/history", response_model=List[Repository], status_code=201)
    async def select_repository(repo: Repository):
        await services.search.select(repo)
        return await services.history.list()

    @app.delete("/history", status_code=204)
    async def clear_history():
        await services.history.clear()
        return Response(status_code=204)

    @app.delete("/history/{owner}/{name}", status_code=204)
    async def remove_history_entry(owner: str, name: str):
        if not await services.history.remove(f"{owner}/{name}"):
            raise HTTPException(status_code=404, detail="Not in history")
        return Response(status_code=204)

    @app.get("/history/stream")
    async def history_stream():
        return StreamingResponse(history_events(services.history), media_type="text/event-stream")

    return app


def run() -> None:
    import uvicorn

    uvicorn.run(create_app(), host="127.0.0.1", port=8000)
