from fastapi import APIRouter, Depends, Request

from api.schemas import HealthResponse, PersistenceDiagnosticsResponse
from persistence.diagnostics import describe_persistence
from persistence.initializer import InitState, Persistence

router = APIRouter()


def get_persistence(request: Request) -> Persistence:
    return request.app.state.persistence


@router.get("/health", response_model=HealthResponse)
def health(persistence: Persistence = Depends(get_persistence)) -> HealthResponse:
    ready = persistence.state is InitState.READY
    return HealthResponse(
        status="ok" if ready else "starting",
        state=persistence.state.value,
        engine=persistence.adapter.engine if ready else None,
    )


@router.get("/diagnostics/persistence", response_model=PersistenceDiagnosticsResponse)
def persistence_diagnostics(persistence: Persistence = Depends(get_persistence)) -> PersistenceDiagnosticsResponse:
    return PersistenceDiagnosticsResponse(**describe_persistence(persistence.config, persistence.state))
