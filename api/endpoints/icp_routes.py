"""
api/endpoints/icp_routes.py — Ideal company profiles.

GET   /api/icps                  — List active ICPs
POST  /api/icps                  — Create an ICP
GET   /api/icps/{id}/companies   — Companies matching the profile
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.repository import create_icp, get_icp, list_companies_for_icp, list_icps
from app.db.session import get_db
from app.services.matching import match_company_to_icp
from api.schemas import CompanyOut, IcpCompanyMatch, IcpCreate, IcpOut

router = APIRouter()


@router.get("", response_model=list[IcpOut], summary="List ICPs")
def list_icps_route(include_inactive: bool = False, db: Session = Depends(get_db)):
    return list_icps(db, active_only=not include_inactive)


@router.post("", response_model=IcpOut, status_code=201, summary="Create ICP")
def create_icp_route(payload: IcpCreate, db: Session = Depends(get_db)):
    icp = create_icp(db, **payload.model_dump())
    db.commit()
    return icp


@router.get("/{icp_id}/companies", response_model=list[IcpCompanyMatch], summary="Companies matching ICP")
def icp_companies_route(
    icp_id: uuid.UUID,
    partial: bool = Query(default=False, description="Include companies meeting only some criteria"),
    db: Session = Depends(get_db),
):
    """Full matches only by default; with partial, anything scoring above zero, best first."""
    icp = get_icp(db, icp_id)
    if not icp:
        raise HTTPException(status_code=404, detail="ICP not found")

    results = []
    for company in list_companies_for_icp(db, icp):
        match = match_company_to_icp(company, icp)
        if match.matches or (partial and match.score > 0):
            results.append(IcpCompanyMatch(
                company=CompanyOut.model_validate(company),
                score=match.score,
                reasons=match.reasons,
            ))
    results.sort(key=lambda m: m.score, reverse=True)
    return results
