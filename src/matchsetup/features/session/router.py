from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from ...core.errors import (
    AuthorizationError,
    ConfigurationError,
    PersistenceError,
    ProtocolStateError,
    SessionNotFound,
    SetupError,
)
from ...core.formatting import transcript_block, transcript_lines
from ...core.interfaces import MapCatalog
from ...core.models import MapPoolEntry, Team
from .schemas import ErrorPayload, SideChoiceRequest, StartSetupRequest, StepRequest, TranscriptPayload
from .service import SessionRegistry, match_config_payload, session_payload

__all__ = ["create_setup_router"]

_STATUS_BY_CATEGORY: dict[type[SetupError], int] = {
    AuthorizationError: 403,
    ProtocolStateError: 409,
    ConfigurationError: 400,
}


def _http_error(exc: SetupError) -> HTTPException:
    status = next((code for base, code in _STATUS_BY_CATEGORY.items() if isinstance(exc, base)), 400)
    return HTTPException(status, ErrorPayload(**exc.to_dict()).to_dict())


def _storage_error(exc: PersistenceError) -> HTTPException:
    payload = ErrorPayload(code="persistence_failed", category="storage", message=str(exc))
    return HTTPException(503, payload.to_dict())


class _SetupController:
    def __init__(self, registry: SessionRegistry, catalog: MapCatalog | None = None) -> None:
        self.registry = registry
        self.catalog = catalog

    # ------------------------------------------------------------------ helpers
    def _json_response(self, data: dict[str, object], status_code: int = 200) -> JSONResponse:
        return JSONResponse(data, status_code=status_code)

    def _pool(self, body: StartSetupRequest) -> list[MapPoolEntry]:
        if body.maps is not None:
            return [MapPoolEntry(id=item.id, name=item.name) for item in body.maps]
        if self.catalog is None:
            payload = ErrorPayload(code="missing_map_pool", category="configuration", message="no map pool supplied")
            raise HTTPException(400, payload.to_dict())
        return self.catalog.active_maps()

    # ------------------------------------------------------------------ actions
    async def start(self, body: StartSetupRequest) -> JSONResponse:
        pool = self._pool(body)
        try:
            session = await self.registry.start_setup_async(
                body.series_id,
                Team(id=body.team_one.id, name=body.team_one.name, role=body.team_one.role),
                Team(id=body.team_two.id, name=body.team_two.name, role=body.team_two.role),
                body.series_type,
                pool,
                ttl=body.ttl,
            )
        except SetupError as exc:
            raise _http_error(exc) from exc
        except PersistenceError as exc:
            raise _storage_error(exc) from exc
        return self._json_response(session_payload(session).to_dict(), status_code=201)

    async def show(self, series_id: str) -> JSONResponse:
        try:
            session = await self.registry.get_async(series_id)
        except SessionNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        return self._json_response(session_payload(session).to_dict())

    async def step(self, series_id: str, body: StepRequest) -> JSONResponse:
        try:
            session = await self.registry.submit_step_async(series_id, body.actor, body.map, body.kind)
        except SessionNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        except SetupError as exc:
            raise _http_error(exc) from exc
        except PersistenceError as exc:
            raise _storage_error(exc) from exc
        return self._json_response(session_payload(session).to_dict())

    async def side(self, series_id: str, body: SideChoiceRequest) -> JSONResponse:
        try:
            session = await self.registry.submit_side_choice_async(series_id, body.actor, body.map, body.side)
        except SessionNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        except SetupError as exc:
            raise _http_error(exc) from exc
        except PersistenceError as exc:
            raise _storage_error(exc) from exc
        return self._json_response(session_payload(session).to_dict())

    async def finalize(self, series_id: str) -> JSONResponse:
        try:
            config = await self.registry.finalize_async(series_id)
            session = await self.registry.get_async(series_id)
        except SessionNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        except SetupError as exc:
            raise _http_error(exc) from exc
        return self._json_response(match_config_payload(config, session).to_dict())

    async def transcript(self, series_id: str) -> JSONResponse:
        try:
            session = await self.registry.get_async(series_id)
        except SessionNotFound as exc:
            raise HTTPException(404, str(exc)) from exc
        payload = TranscriptPayload(
            series_id=series_id,
            lines=transcript_lines(session),
            text=transcript_block(session),
        )
        return self._json_response(payload.model_dump())


def create_setup_router(registry: SessionRegistry, catalog: MapCatalog | None = None) -> APIRouter:
    controller = _SetupController(registry, catalog)
    router = APIRouter(prefix="/api/v1/setup", tags=["setup"])

    @router.post("")
    async def start_setup(body: StartSetupRequest) -> JSONResponse:
        return await controller.start(body)

    @router.get("/{series_id}")
    async def get_setup(series_id: str) -> JSONResponse:
        return await controller.show(series_id)

    @router.post("/{series_id}/step")
    async def submit_step(series_id: str, body: StepRequest) -> JSONResponse:
        return await controller.step(series_id, body)

    @router.post("/{series_id}/side")
    async def submit_side_choice(series_id: str, body: SideChoiceRequest) -> JSONResponse:
        return await controller.side(series_id, body)

    @router.post("/{series_id}/finalize")
    async def finalize_setup(series_id: str) -> JSONResponse:
        return await controller.finalize(series_id)

    @router.get("/{series_id}/transcript")
    async def get_transcript(series_id: str) -> JSONResponse:
        return await controller.transcript(series_id)

    return router
