from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.dependencies.auth import CurrentUser
from rbac_api.api.v1.dependencies.permissions import admin_required
from rbac_api.api.v1.schemas.common import MessageResponse
from rbac_api.api.v1.schemas.email_template import (
    EmailTemplate,
    EmailTemplateCreate,
    EmailTemplateList,
    EmailTemplateSummary,
    EmailTemplateUpdate,
    PreviewRequest,
    PreviewResponse,
    SendTestEmailRequest,
    TemplateVariables,
)
from rbac_api.api.v1.services.email import EmailService, get_email_service
from rbac_api.api.v1.services.email_template import EmailTemplateService
from rbac_api.core.db.session import get_db

router = APIRouter(prefix="", tags=["Email Templates"])


@router.get("", response_model=EmailTemplateList)
async def read_templates(
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    templates = await EmailTemplateService.get_all_templates(db)
    return EmailTemplateList(templates=[EmailTemplateSummary.model_validate(t) for t in templates])


@router.post("", response_model=EmailTemplate, status_code=status.HTTP_201_CREATED)
async def create_template(
    template_in: EmailTemplateCreate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await EmailTemplateService.create_template(db, template_in)


@router.get("/{template_id}", response_model=EmailTemplate)
async def read_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await EmailTemplateService.get_template_or_404(db, template_id)


@router.put("/{template_id}", response_model=EmailTemplate)
async def update_template(
    template_id: str,
    template_in: EmailTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await EmailTemplateService.update_template(db, template_id, template_in)


@router.delete("/{template_id}", response_model=MessageResponse)
async def delete_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    await EmailTemplateService.delete_template(db, template_id)
    return MessageResponse(message="Email template deleted successfully")


@router.post("/{template_id}/preview", response_model=PreviewResponse)
async def preview_template(
    template_id: str,
    preview_in: PreviewRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    return await EmailTemplateService.preview(db, template_id, preview_in.variables)


@router.post("/{template_id}/test", response_model=MessageResponse)
async def send_test_email(
    template_id: str,
    test_in: SendTestEmailRequest,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
    email_service: EmailService = Depends(get_email_service),
):
    await EmailTemplateService.send_test(db, template_id, test_in.email, test_in.variables, email_service)
    return MessageResponse(message=f"Test email sent to {test_in.email}")


@router.get("/{template_id}/variables", response_model=TemplateVariables)
async def read_template_variables(
    template_id: str,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_required),
):
    template = await EmailTemplateService.get_template_or_404(db, template_id)
    return TemplateVariables(variables=template.variables or [])
