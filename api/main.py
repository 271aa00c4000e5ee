"""
api/main.py — FastAPI application entry point.

Run with:
    uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.db.session import Database
from app.logging_config import setup_logging
from api.endpoints.activity_routes import router as activity_router
from api.endpoints.candidate_routes import router as candidate_router
from api.endpoints.company_routes import router as company_router
from api.endpoints.contact_routes import router as contact_router
from api.endpoints.deal_routes import router as deal_router
from api.endpoints.icp_routes import router as icp_router
from api.endpoints.job_routes import router as job_router
from api.endpoints.sequence_routes import router as sequence_router
from api.endpoints.submission_routes import router as submission_router
from api.endpoints.template_routes import router as template_router
from api.endpoints.tools_routes import router as tools_router
from api.endpoints.widget_routes import router as widget_router
from api.errors import register_error_handlers

setup_logging()
logger = logging.getLogger(__name__)


# ── Lifespan ─────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the connection pool, verify the server is reachable, close on shutdown."""
    database = Database().open()
    app.state.database = database
    server_time = database.test_connection()
    logger.info("✅ Database connection verified (server time %s).", server_time)
    yield
    database.close()
    logger.info("🛑 Application shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Talent CRM",
    description=(
        "Recruiting and business-development CRM: companies, contacts, deals, "
        "jobs, candidates, pipelines and outreach sequences."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

# Open CORS: the application widget is embedded on third-party sites
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(company_router, prefix="/api/companies", tags=["Companies"])
app.include_router(contact_router, prefix="/api/contacts", tags=["Contacts"])
app.include_router(deal_router, prefix="/api/deals", tags=["Deals"])
app.include_router(job_router, prefix="/api/jobs", tags=["Jobs"])
app.include_router(candidate_router, prefix="/api/candidates", tags=["Candidates"])
app.include_router(submission_router, prefix="/api/submissions", tags=["Submissions"])
app.include_router(sequence_router, prefix="/api/sequences", tags=["Sequences"])
app.include_router(template_router, prefix="/api/email-templates", tags=["Email templates"])
app.include_router(icp_router, prefix="/api/icps", tags=["ICPs"])
app.include_router(activity_router, prefix="/api/activities", tags=["Activities"])
app.include_router(widget_router, prefix="/api/widget", tags=["Widget"])
app.include_router(tools_router, prefix="/api", tags=["Tools"])


# ── Health check ─────────────────────────────────────────────────────────────

@app.get("/health", tags=["System"])
def health_check():
    """Returns service liveness status."""
    return {"status": "ok", "service": "talent-crm", "env": settings.app_env}


@app.get("/", tags=["System"])
def root():
    return {"message": "Talent CRM API is running.", "docs": "/docs"}
