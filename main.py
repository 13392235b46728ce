# main.py
# Role: Application entry point for the budget tracker.
#       Initializes the FastAPI app, configures logging and sessions,
#       creates database tables, mounts static assets, and registers
#       all route modules.

"""
Main FastAPI app for the personal budget tracker.

Here we only:
- configure logging
- create the FastAPI app and the session middleware
- set up static files
- create DB tables
- include route modules
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

import config
from db import Base, engine
from app.deps import LoginRequired
from app.routes_root import router as root_router
from app.routes_auth import router as auth_router
from app.routes_transactions import router as transactions_router
from app.routes_dashboard import router as dashboard_router
from app.routes_profile import router as profile_router
from app.routes_advisor import router as advisor_router
from app.routes_export import router as export_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# App & DB setup
# -------------------------------------------------------------------

# Create database tables (only if they don't exist yet).
Base.metadata.create_all(bind=engine)

# FastAPI application instance
app = FastAPI(title="Budget Tracker")

# Signed cookie session: holds the user id and pending flash messages
app.add_middleware(SessionMiddleware, secret_key=config.SESSION_SECRET)

# Serve static files (CSS) from /static
app.mount("/static", StaticFiles(directory=config.STATIC_DIR), name="static")


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(url="/login", status_code=303)


# -------------------------------------------------------------------
# Include routers
# -------------------------------------------------------------------

# Root / health
app.include_router(root_router)

# Sign in, sign up, sign out
app.include_router(auth_router)

# Transactions list, forms, JSON API and live stream
app.include_router(transactions_router)

# Dashboard (overview cards, health score, budget comparison, charts)
app.include_router(dashboard_router)

# Profile: name, currency, budgets, avatar
app.include_router(profile_router)

# AI budget advisor
app.include_router(advisor_router)

# CSV / text downloads
app.include_router(export_router)

logger.info("[startup] database at %r", engine.url)
