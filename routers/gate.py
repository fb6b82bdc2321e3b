import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

import GateAuth as gate
from domain.gate import GateAction, GateLock, GateStatus, PasswordVerifier

logger = logging.getLogger('uvicorn.error')

router = APIRouter(tags=["gate"])


class VerifyPasswordRequest(BaseModel):
    password: Optional[str] = None
    type: Optional[GateAction] = None


class VerifyPasswordResponse(BaseModel):
    isValid: bool


@router.post("/gate/auth", response_model=gate.Token)
async def authenticate_for_writing(
    payload: gate.GatePassword,
    lock: Annotated[GateLock, Depends(gate.get_auth_lock)],
) -> gate.Token:
    await gate.pass_gate(lock, payload.password)
    logger.info("Writing gate opened for this browser session.")
    return gate.Token(access_token=gate.create_gate_token(), token_type="bearer")


@router.post("/gate/delete", response_model=VerifyPasswordResponse)
async def check_delete_password(
    payload: gate.GatePassword,
    lock: Annotated[GateLock, Depends(gate.get_delete_lock)],
):
    await gate.pass_gate(lock, payload.password)
    return VerifyPasswordResponse(isValid=True)


@router.get("/gate/{action}", response_model=GateStatus)
async def get_gate_status(action: GateAction, request: Request):
    return gate.build_gate_lock(request, action).status()


@router.post("/verify-password", response_model=VerifyPasswordResponse)
async def verify_password(
    payload: VerifyPasswordRequest,
    verifier: Annotated[PasswordVerifier, Depends(gate.get_password_verifier)],
):
    """Stateless password check; does not count towards any lockout."""
    if not payload.password or payload.type is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")
    try:
        is_valid = await verifier.verify(payload.password, payload.type)
    except gate.PasswordNotConfigured:
        logger.error(f"Password for '{payload.type.value}' is not configured.")
        raise HTTPException(status_code=500, detail="Password not configured")
    except Exception as e:
        logger.exception(f"Error verifying '{payload.type.value}' password: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")
    return VerifyPasswordResponse(isValid=is_valid)
