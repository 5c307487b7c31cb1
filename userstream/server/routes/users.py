"""
MODULE OVERVIEW:
Server-rendered user management pages.

WHAT IS HAPPENING HERE:
Plain HTML forms post back to the same URL. `/users` multiplexes create and
delete through a hidden `action` field, `/users/{id}` updates one row.
After a successful POST we redirect (303) back to the page so a browser
refresh does not resubmit the form.
Any store failure is wrapped in `UserActionError` with a readable prefix;
the app-level handler renders it as a 500.
"""
from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.orm import Session

from userstream.server import user_store
from userstream.server.database import get_session
from userstream.server.templating import templates
from userstream.shared.models import UserCreate, UserRead, UserUpdate
from userstream.shared.route_utils import UserActionError

router = APIRouter(prefix="/users")


@router.get("", response_class=HTMLResponse, name="users_index")
def users_index(request: Request, session: Session = Depends(get_session)):
    try:
        users = user_store.list_users(session)
    except Exception as e:
        raise UserActionError(f"Failed to fetch users: {e}") from e
    return templates.TemplateResponse(request, "users/index.html", {"users": users})


@router.post("", name="users_action")
def users_action(
    request: Request,
    action: str = Form(""),
    name: str = Form(""),
    email: str = Form(""),
    id: str = Form(""),
    session: Session = Depends(get_session),
):
    try:
        if action == "create":
            user_store.create_user(session, UserCreate(name=name, email=email, age=0))
        elif action == "delete":
            user_store.delete_user(session, int(id))
        else:
            raise ValueError("Invalid action")
    except Exception as e:
        raise UserActionError(f"Failed to perform action: {e}") from e
    return RedirectResponse(request.url_for("users_index"), status_code=303)


@router.get("/{user_id}", response_class=HTMLResponse, name="user_edit")
def user_edit(request: Request, user_id: int, session: Session = Depends(get_session)):
    try:
        user = user_store.get_user_by_id(session, user_id)
    except Exception as e:
        raise UserActionError(f"Failed to fetch user: {e}") from e
    if user is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return templates.TemplateResponse(request, "users/item.html", {"user": user})


@router.post("/{user_id}", name="user_update")
def user_update(
    request: Request,
    user_id: int,
    name: str = Form(...),
    email: str = Form(...),
    session: Session = Depends(get_session),
):
    try:
        user = user_store.update_user(session, user_id, UserUpdate(name=name, email=email))
    except Exception as e:
        raise UserActionError(f"Failed to update user: {e}") from e
    if user is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return RedirectResponse(request.url_for("user_edit", user_id=user_id), status_code=303)


api_router = APIRouter(prefix="/api/users")


@api_router.get("", response_model=list[UserRead])
def api_list_users(session: Session = Depends(get_session)):
    try:
        return user_store.list_users(session)
    except Exception as e:
        raise UserActionError(f"Failed to fetch users: {e}") from e


@api_router.get("/{user_id}", response_model=UserRead)
def api_get_user(user_id: int, session: Session = Depends(get_session)):
    try:
        user = user_store.get_user_by_id(session, user_id)
    except Exception as e:
        raise UserActionError(f"Failed to fetch user: {e}") from e
    if user is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return user
