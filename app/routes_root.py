# routes_root.py
"""
Root / basic endpoints (health, landing).
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

router = APIRouter()


@router.get("/")
def read_root():
    """
    Landing endpoint: the dashboard is the home page.
    Anonymous visitors are bounced on to /login from there.
    """
    return RedirectResponse(url="/dashboard", status_code=302)


@router.get("/health")
def health():
    return {"status": "ok"}
