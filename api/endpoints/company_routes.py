"""
api/endpoints/company_routes.py — Company CRUD, search and bulk import.

GET    /api/companies           — List companies (filters, job / contact counts)
POST   /api/companies           — Create a company
GET    /api/companies/search    — Name / domain / industry lookup (q ≥ 2 chars)
POST   /api/companies/import    — Bulk lookup-or-insert
GET    /api/companies/{id}      — Company with its jobs, contacts and deals
PUT    /api/companies/{id}      — Update fields
DELETE /api/companies/{id}      — Delete (cascades to dependents)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.models import ActivityType, PartnerStatus
from app.db.repository import (
    create_company,
    delete_company,
    get_company,
    list_companies,
    log_activity,
    search_companies,
    update_company,
)
from app.db.session import get_db
from app.services.import_service import import_companies
from api.schemas import (
    CompanyCreate,
    CompanyDetail,
    CompanyImportRequest,
    CompanyListItem,
    CompanyOut,
    CompanyUpdate,
    ImportResponse,
    OKResponse,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[CompanyListItem], summary="List companies")
def list_companies_route(
    industry: Optional[str] = None,
    size: Optional[str] = None,
    hiring_urgency: Optional[str] = None,
    partner_status: Optional[PartnerStatus] = None,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Newest first, each with its published-job and contact counts."""
    rows = list_companies(
        db,
        industry=industry,
        size=size,
        hiring_urgency=hiring_urgency,
        partner_status=partner_status,
        limit=limit,
    )
    return [
        CompanyListItem(
            **CompanyOut.model_validate(company).model_dump(),
            active_jobs_count=active_jobs,
            contacts_count=contacts,
        )
        for company, active_jobs, contacts in rows
    ]


@router.post("", response_model=CompanyOut, status_code=201, summary="Create company")
def create_company_route(payload: CompanyCreate, db: Session = Depends(get_db)):
    company = create_company(db, **payload.model_dump(exclude_none=True))
    log_activity(
        db,
        subject_type="company",
        subject_id=company.id,
        type=ActivityType.NOTE,
        title="Company created",
        is_automated=False,
    )
    db.commit()
    logger.info("Company %s created via API.", company.name)
    return company


@router.get("/search", response_model=list[CompanyOut], summary="Search companies")
def search_companies_route(q: str = "", db: Session = Depends(get_db)):
    """Queries shorter than two characters return an empty list."""
    if len(q.strip()) < 2:
        return []
    return search_companies(db, q, limit=10)


@router.post("/import", response_model=ImportResponse, summary="Bulk import companies")
def import_companies_route(payload: CompanyImportRequest, db: Session = Depends(get_db)):
    """
    Each record is imported independently: failures are reported per record
    and never roll back the records that succeeded.
    """
    if not isinstance(payload.companies, list) or not payload.companies:
        raise HTTPException(status_code=400, detail="Invalid companies data")

    results = import_companies(db, payload.companies)
    db.commit()
    return ImportResponse(results=results.to_dict(), message=results.message)


@router.get("/{company_id}", response_model=CompanyDetail, summary="Get company")
def get_company_route(company_id: uuid.UUID, db: Session = Depends(get_db)):
    company = get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.put("/{company_id}", response_model=CompanyOut, summary="Update company")
def update_company_route(company_id: uuid.UUID, payload: CompanyUpdate, db: Session = Depends(get_db)):
    company = get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    update_company(db, company, payload.model_dump(exclude_unset=True))
    db.commit()
    return company


@router.delete("/{company_id}", response_model=OKResponse, summary="Delete company")
def delete_company_route(company_id: uuid.UUID, db: Session = Depends(get_db)):
    if not delete_company(db, company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    db.commit()
    return OKResponse(message="Company deleted successfully")
