"""Period, auth and health endpoints."""

from typing import Any

from fastapi import APIRouter

from musicreg import __version__
from musicreg.api.dependencies import ActorDep, ContainerDep, PeriodContextDep
from musicreg.api.models import AccessCodeLogin, ActorResponse, APIResponse

router = APIRouter(tags=["periods"])


@router.get("/periods/current", response_model=APIResponse[dict[str, Any]])
def get_current_period(_actor: ActorDep, context: PeriodContextDep) -> APIResponse[dict[str, Any]]:
    """Current and next enrollment period with visible trimesters."""
    return APIResponse(data=context.to_dict())


@router.post("/auth/access-code", response_model=APIResponse[ActorResponse])
def authenticate_by_access_code(
    body: AccessCodeLogin, container: ContainerDep
) -> APIResponse[ActorResponse]:
    """Sign in with an access code."""
    actor = container.authenticator.authenticate(body.access_code)
    return APIResponse(data=ActorResponse.model_validate(actor))


@router.get("/health", response_model=APIResponse[dict[str, str]])
def health() -> APIResponse[dict[str, str]]:
    """Liveness check."""
    return APIResponse(data={"status": "ok", "version": __version__})
