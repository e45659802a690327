"""
Stored email templates.

Templates use ``{{.Name}}`` placeholders. Values are HTML-escaped when the
HTML body is rendered. A placeholder with no value renders as ``<no value>``
in the subject and text body, and as nothing in the HTML body.
"""
import html
import re
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_api.api.v1.models.email_template import EmailTemplate as EmailTemplateModel
from rbac_api.api.v1.schemas.email_template import (
    EmailTemplateCreate,
    EmailTemplateUpdate,
    PreviewResponse,
)
from rbac_api.api.v1.services.email import EmailDeliveryError, EmailMessage, EmailService
from rbac_api.api.v1.validators.email_template import ensure_unique_template_name

ACTION = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
PLACEHOLDER = re.compile(r"^\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*$")
MISSING_VALUE = "<no value>"
# HTML bodies render a missing value as nothing
MISSING_HTML_VALUE = ""
VALIDATION_VALUE = "test_value"


class TemplateSyntaxError(ValueError):
    pass


def render_template(source: str, variables: Dict[str, str], escape: bool = False) -> str:
    """
    Substitutes ``{{.Name}}`` placeholders in ``source``.

    :raises TemplateSyntaxError: on an unclosed ``{{`` or an action other than a placeholder.
    """
    parts: List[str] = []
    position = 0
    for match in ACTION.finditer(source):
        parts.append(source[position:match.start()])
        placeholder = PLACEHOLDER.match(match.group(1))
        if placeholder is None:
            raise TemplateSyntaxError(f"unsupported template action: {{{{{match.group(1)}}}}}")
        name = placeholder.group(1)
        if escape:
            parts.append(html.escape(variables[name]) if name in variables else MISSING_HTML_VALUE)
        else:
            parts.append(variables.get(name, MISSING_VALUE))
        position = match.end()
    tail = source[position:]
    if "{{" in tail:
        raise TemplateSyntaxError(f"unclosed action at offset {source.index('{{', position)}")
    parts.append(tail)
    return "".join(parts)


def render_email(template: EmailTemplateModel, variables: Dict[str, str]) -> PreviewResponse:
    return PreviewResponse(
        subject=render_template(template.subject, variables),
        html_content=render_template(template.html_template, variables, escape=True),
        text_content=render_template(template.text_template, variables),
    )


def validate_template(subject: str, html_template: str, text_template: str, variables: List[dict]) -> None:
    """
    Renders every part with each declared variable set to a sample value.
    Raises HTTPException 400 if any part fails to render.
    """
    sample = {variable["name"]: VALIDATION_VALUE for variable in variables}
    for label, source in (("subject", subject), ("html_template", html_template), ("text_template", text_template)):
        try:
            render_template(source, sample)
        except TemplateSyntaxError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid {label}: {e}"
            )


class EmailTemplateService:
    @staticmethod
    async def get_all_templates(db: AsyncSession) -> List[EmailTemplateModel]:
        result = await db.execute(select(EmailTemplateModel).order_by(EmailTemplateModel.name))
        return list(result.scalars().all())

    @staticmethod
    async def get_template_or_404(db: AsyncSession, template_id: str) -> EmailTemplateModel:
        template = await db.get(EmailTemplateModel, template_id)
        if template is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Email template not found")
        return template

    @staticmethod
    async def get_active_template_by_name(db: AsyncSession, name: str) -> Optional[EmailTemplateModel]:
        result = await db.execute(
            select(EmailTemplateModel).where(
                EmailTemplateModel.name == name,
                EmailTemplateModel.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_template(db: AsyncSession, template_in: EmailTemplateCreate) -> EmailTemplateModel:
        data = template_in.model_dump()
        await ensure_unique_template_name(data["name"], db)
        validate_template(data["subject"], data["html_template"], data["text_template"], data["variables"])
        template = EmailTemplateModel(**data)
        db.add(template)
        await db.commit()
        await db.refresh(template)
        logger.info(f"Created email template {template.name}")
        return template

    @staticmethod
    async def update_template(db: AsyncSession, template_id: str, template_in: EmailTemplateUpdate) -> EmailTemplateModel:
        template = await EmailTemplateService.get_template_or_404(db, template_id)
        changes = template_in.model_dump(exclude_unset=True)
        if not changes:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
        for required in ("name", "subject", "html_template", "text_template", "is_active"):
            if required in changes and changes[required] is None:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{required} cannot be empty")
        if "name" in changes and changes["name"] != template.name:
            await ensure_unique_template_name(changes["name"], db, exclude_template_id=template.id)
        if changes.get("variables") is None:
            changes.pop("variables", None)

        validate_template(
            changes.get("subject", template.subject),
            changes.get("html_template", template.html_template),
            changes.get("text_template", template.text_template),
            changes.get("variables", template.variables or []),
        )
        for key, value in changes.items():
            setattr(template, key, value)
        await db.commit()
        await db.refresh(template)
        return template

    @staticmethod
    async def delete_template(db: AsyncSession, template_id: str) -> None:
        template = await EmailTemplateService.get_template_or_404(db, template_id)
        await db.delete(template)
        await db.commit()
        logger.info(f"Deleted email template {template.name}")

    @staticmethod
    async def preview(db: AsyncSession, template_id: str, variables: Dict[str, str]) -> PreviewResponse:
        template = await EmailTemplateService.get_template_or_404(db, template_id)
        try:
            return render_email(template, variables)
        except TemplateSyntaxError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Failed to render template: {e}")

    @staticmethod
    async def send_test(
        db: AsyncSession, template_id: str, to: str, variables: Dict[str, str], email_service: EmailService
    ) -> None:
        rendered = await EmailTemplateService.preview(db, template_id, variables)
        message = EmailMessage(
            to=to,
            subject=f"[TEST] {rendered.subject}",
            html=rendered.html_content,
            text=rendered.text_content,
        )
        try:
            await email_service.send(message)
        except EmailDeliveryError as e:
            logger.error(f"Failed to send test email to {to}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send test email"
            )
