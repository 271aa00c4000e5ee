"""
api/endpoints/template_routes.py — Reusable email templates.

GET   /api/email-templates               — List active templates
POST  /api/email-templates               — Create a template
POST  /api/email-templates/{id}/render   — Fill {{variables}} and render HTML / text
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.repository import create_email_template, get_email_template, list_email_templates
from app.db.session import get_db
from app.outreach.templates import extract_variables, render_template
from api.schemas import EmailTemplateCreate, EmailTemplateOut, RenderedEmailOut, RenderRequest

router = APIRouter()


@router.get("", response_model=list[EmailTemplateOut], summary="List email templates")
def list_templates_route(
    category: Optional[str] = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
):
    return list_email_templates(db, category=category, active_only=not include_inactive)


@router.post("", response_model=EmailTemplateOut, status_code=201, summary="Create email template")
def create_template_route(payload: EmailTemplateCreate, db: Session = Depends(get_db)):
    """variables defaults to the placeholders found in subject and body."""
    values = payload.model_dump()
    if values["variables"] is None:
        values["variables"] = extract_variables(payload.subject, payload.body)
    template = create_email_template(db, **values)
    db.commit()
    return template


@router.post("/{template_id}/render", response_model=RenderedEmailOut, summary="Render email template")
def render_template_route(template_id: uuid.UUID, payload: RenderRequest, db: Session = Depends(get_db)):
    template = get_email_template(db, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    rendered = render_template(template.subject, template.body, payload.variables, payload.sender_name)
    return RenderedEmailOut(
        subject=rendered.subject,
        html_body=rendered.html_body,
        plain_body=rendered.plain_body,
        missing_variables=rendered.missing_variables,
    )
