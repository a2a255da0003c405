from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import AppError
from ..logs import ActivityLogContext
from ..ratelimit import limit_auth
from ..services import auth_svc
from ..services.user_svc import update_user
from .deps import current_user, ok

router = APIRouter()

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterFamilyBody(BaseModel):
    familyName: str = Field(min_length=2, max_length=100)
    adminName: str | None = Field(default=None, max_length=100)
    adminEmail: str = Field(pattern=EMAIL_PATTERN)
    adminPassword: str = Field(min_length=6)


class RegisterUserBody(BaseModel):
    familyCode: str = Field(min_length=6, max_length=10)
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    role: str = Field(pattern=r"^(parent|child)$")


class LoginBody(BaseModel):
    familyCode: str = Field(min_length=6, max_length=10)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)


class FamilyCodeBody(BaseModel):
    familyCode: str = Field(min_length=6, max_length=10)


class AddMemberBody(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    role: str = Field(pattern=r"^(parent|child)$")
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    password: str | None = Field(default=None, min_length=6)


class UpdateMeBody(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    preferences: dict | None = None


def _token_response(result: dict, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "success", "token": result["token"], "data": {"user": result["user"]}},
    )


@router.post("/api/auth/register", dependencies=[Depends(limit_auth)])
def api_register(body: RegisterFamilyBody, request: Request):
    log = ActivityLogContext("REGISTER_FAMILY", request=request)
    log.set_details({"familyName": body.familyName, "adminEmail": body.adminEmail})
    result = auth_svc.register_family(body.familyName, body.adminName, body.adminEmail, body.adminPassword)
    log.set_user(result["user"])
    log.set_entity("family", result["user"]["family_id"])
    log.write("OK")
    return _token_response(result, 201)


@router.post("/api/auth/register-user", dependencies=[Depends(limit_auth)])
def api_register_user(body: RegisterUserBody):
    result = auth_svc.register_user(body.familyCode, body.name, body.email, body.password, body.role)
    return _token_response(result, 201)


@router.post("/api/auth/login", dependencies=[Depends(limit_auth)])
def api_login(body: LoginBody, request: Request):
    log = ActivityLogContext("LOGIN", request=request)
    log.set_details({"familyCode": body.familyCode, "email": body.email})
    try:
        result = auth_svc.login(body.familyCode, body.email, body.password)
    except AppError as e:
        log.write("ERROR", e.message)
        raise
    log.set_user(result["user"])
    log.set_entity("user", result["user"]["id"])
    log.write("OK")
    return _token_response(result, 200)


@router.post("/api/auth/family-members")
def api_family_members(body: FamilyCodeBody):
    return ok(auth_svc.family_by_code(body.familyCode))


@router.post("/api/auth/check-family-code")
def api_check_family_code(body: FamilyCodeBody):
    fam = auth_svc.family_by_code(body.familyCode)["family"]
    return ok({"family": fam, "valid": True})


@router.post("/api/auth/add-member", status_code=201)
def api_add_member(body: AddMemberBody, request: Request, user: dict = Depends(current_user)):
    log = ActivityLogContext("ADD_MEMBER", user, request)
    log.set_details({"name": body.name, "role": body.role, "email": body.email})
    member = auth_svc.add_member(user, body.name, body.role, body.email, body.password)
    log.set_entity("user", member["id"])
    log.write("OK")
    return ok({"user": member}, "Family member added successfully")


@router.get("/api/auth/verify")
def api_verify(user: dict = Depends(current_user)):
    return ok({"user": user, "valid": True})


@router.get("/api/auth/me")
def api_me(user: dict = Depends(current_user)):
    return ok({"user": auth_svc.me(user)})


@router.patch("/api/auth/me")
def api_update_me(body: UpdateMeBody, user: dict = Depends(current_user)):
    updated = update_user(user, user["id"], body.dict(exclude_unset=True))
    return ok({"user": updated}, "Profile updated successfully")


@router.post("/api/auth/logout")
def api_logout(user: dict = Depends(current_user)):
    return ok(message="Logged out successfully")


@router.get("/api/auth/family-info")
def api_family_info(user: dict = Depends(current_user)):
    return ok(auth_svc.family_info(user))
