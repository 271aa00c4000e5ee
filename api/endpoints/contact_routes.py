"""
api/endpoints/contact_routes.py — Contacts at companies.

GET   /api/contacts         — List contacts (optionally for one company)
POST  /api/contacts         — Create a contact
GET   /api/contacts/{id}    — Get one contact
PUT   /api/contacts/{id}    — Update a contact
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.repository import create_contact, get_company, get_contact, list_contacts, update_contact
from app.db.session import get_db
from api.schemas import ContactCreate, ContactOut, ContactUpdate

router = APIRouter()


@router.get("", response_model=list[ContactOut], summary="List contacts")
def list_contacts_route(
    company_id: Optional[uuid.UUID] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Primary contacts first, then newest."""
    return list_contacts(db, company_id=company_id, limit=limit)


@router.post("", response_model=ContactOut, status_code=201, summary="Create contact")
def create_contact_route(payload: ContactCreate, db: Session = Depends(get_db)):
    if payload.company_id and not get_company(db, payload.company_id):
        raise HTTPException(status_code=404, detail="Company not found")
    values = payload.model_dump(exclude_none=True)
    values["email"] = values["email"].strip().lower()
    contact = create_contact(db, **values)
    db.commit()
    return contact


@router.get("/{contact_id}", response_model=ContactOut, summary="Get contact")
def get_contact_route(contact_id: uuid.UUID, db: Session = Depends(get_db)):
    contact = get_contact(db, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    return contact


@router.put("/{contact_id}", response_model=ContactOut, summary="Update contact")
def update_contact_route(contact_id: uuid.UUID, payload: ContactUpdate, db: Session = Depends(get_db)):
    contact = get_contact(db, contact_id)
    if not contact:
        raise HTTPException(status_code=404, detail="Contact not found")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("company_id") and not get_company(db, changes["company_id"]):
        raise HTTPException(status_code=404, detail="Company not found")
    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
    update_contact(db, contact, changes)
    db.commit()
    return contact
