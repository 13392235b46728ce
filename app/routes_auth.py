# routes_auth.py
"""
Routes for login, registration and logout (cookie session).
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.deps import get_db, get_optional_user, flash, render
from app.schemas import LoginInput, RegisterInput, errors_by_field
from app.services.auth import CurrentUser, EmailTakenError, authenticate, register_user

router = APIRouter()


@router.get("/login")
def login_page(request: Request, user: Optional[CurrentUser] = Depends(get_optional_user)):
    if user is not None:
        return RedirectResponse(url="/dashboard", status_code=303)
    return render(request, "login.html", {"form": {}, "errors": {}})


@router.post("/login")
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
):
    form = {"email": email}
    try:
        data = LoginInput(email=email, password=password)
    except ValidationError as e:
        return render(request, "login.html", {"form": form, "errors": errors_by_field(e)}, status_code=400)

    user = authenticate(db, data.email, data.password)
    if user is None:
        return render(
            request,
            "login.html",
            {"form": form, "errors": {"__all__": "Invalid email or password."}},
            status_code=401,
        )

    request.session["user_id"] = user.id
    flash(request, f"Welcome back, {user.display_name or user.email}!", "success")
    return RedirectResponse(url="/dashboard", status_code=303)


@router.get("/register")
def register_page(request: Request, user: Optional[CurrentUser] = Depends(get_optional_user)):
    if user is not None:
        return RedirectResponse(url="/dashboard", status_code=303)
    return render(request, "register.html", {"form": {}, "errors": {}})


@router.post("/register")
def register_submit(
    request: Request,
    display_name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    db: Session = Depends(get_db),
):
    form = {"display_name": display_name, "email": email}
    try:
        data = RegisterInput(
            display_name=display_name,
            email=email,
            password=password,
            confirm_password=confirm_password,
        )
    except ValidationError as e:
        return render(request, "register.html", {"form": form, "errors": errors_by_field(e)}, status_code=400)

    try:
        user = register_user(db, data)
    except EmailTakenError:
        return render(
            request,
            "register.html",
            {"form": form, "errors": {"email": "An account with this email already exists."}},
            status_code=400,
        )

    request.session["user_id"] = user.id
    flash(request, "Account created.", "success")
    return RedirectResponse(url="/dashboard", status_code=303)


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse(url="/login", status_code=303)
