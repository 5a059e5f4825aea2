"""Credential generation endpoint.

Lets support staff (re)issue app credentials for a customer outside the
webhook flow.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.status import HTTP_200_OK, HTTP_400_BAD_REQUEST

from provisioning.models import ErrorResponse
from provisioning.services.user_provisioner import UserProvisioner
from provisioning.utils.logging import get_logger
from webhook_api.dependencies import get_user_provisioner
from webhook_api.models.credentials import (
    CredentialErrorResponse,
    CredentialRequest,
    CredentialResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/credentials", tags=["credentials"])

MISSING_FIELDS_MESSAGE = "Email e duração do plano são obrigatórios"


@router.post(
    "/generate",
    summary="Generate and e-mail app credentials",
    response_model=CredentialResponse,
    responses={
        400: {"description": "Missing or invalid email/planDuration", "model": CredentialErrorResponse},
        500: {"description": "Identity provider or store failure", "model": ErrorResponse},
    },
)
async def generate_credentials(
    request: Request,
    provisioner: UserProvisioner = Depends(get_user_provisioner),
) -> JSONResponse:
    try:
        body = await request.json()
        credential_request = CredentialRequest.model_validate(body)
    except (ValueError, ValidationError) as e:
        logger.warning("Invalid credential request: %s", e)
        error = CredentialErrorResponse(message=MISSING_FIELDS_MESSAGE, error=str(e))
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content=error.model_dump(mode="json", exclude_none=True),
        )

    result = provisioner.generate_and_send_credentials(
        str(credential_request.email), credential_request.plan_duration
    )
    response = CredentialResponse(
        success=result.success,
        message=result.message,
        email=result.email,
        username=result.username,
        created=result.created,
        notification=result.notification,
    )
    return JSONResponse(status_code=HTTP_200_OK, content=response.model_dump(mode="json"))
