"""Account registration, login/logout and the current user."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from story_engine import auth, config, storage

from .models import LoginBody, RegisterBody

router = APIRouter()


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        auth.SESSION_COOKIE,
        session_id,
        max_age=config.session_ttl(),
        httponly=True,
        samesite="lax",
    )


@router.post("/auth/register", status_code=201)
async def register(body: RegisterBody, response: Response):
    """Create an account and log it in."""
    try:
        user = auth.register_user(body.email, body.name, body.password)
    except ValueError as e:
        status = 409 if "already exists" in str(e) else 400
        raise HTTPException(status, str(e))
    session = storage.create_session(user["id"], ttl=config.session_ttl())
    _set_session_cookie(response, session["id"])
    return {"user": user, "session_id": session["id"]}


@router.post("/auth/login")
async def login(body: LoginBody, response: Response):
    result = auth.login(body.email, body.password)
    if result is None:
        raise HTTPException(401, "Invalid email or password")
    user, session = result
    _set_session_cookie(response, session["id"])
    return {"user": user, "session_id": session["id"]}


@router.post("/auth/logout")
async def logout(request: Request, response: Response):
    session_id = auth.session_id_from_request(request)
    if session_id:
        storage.destroy_session(session_id)
    response.delete_cookie(auth.SESSION_COOKIE)
    return {"ok": True}


@router.get("/auth/me")
async def me(user: dict = Depends(auth.require_auth)):
    return {"user": user}
