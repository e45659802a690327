"""
Default roles, permissions, grants and email templates.

Seeding is idempotent: rows are matched by name and only missing ones are
inserted, so it runs safely after every ``migrate up``.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from rbac_api.api.v1.models.email_template import EmailTemplate
from rbac_api.api.v1.models.permission import Permission
from rbac_api.api.v1.models.role import Role
from rbac_api.api.v1.models.role_permission import RolePermission

DEFAULT_ROLES = {
    "user": "Basic user access - can view and edit own profile",
    "admin": "Full administrative access - can manage all users and system settings",
    "moderator": "Content moderation access - can moderate user content",
    "premium": "Premium features access - can access premium functionality",
}

# name -> (resource, action, description)
DEFAULT_PERMISSIONS = {
    "profile.read": ("profile", "read", "View own profile"),
    "profile.write": ("profile", "write", "Edit own profile"),
    "users.read": ("users", "read", "View user profiles"),
    "users.write": ("users", "write", "Edit user profiles"),
    "users.delete": ("users", "delete", "Delete users"),
    "users.roles.manage": ("users", "roles", "Manage user roles"),
    "admin.access": ("admin", "access", "Access admin panel"),
    "admin.settings": ("admin", "settings", "Manage system settings"),
    "content.moderate": ("content", "moderate", "Moderate user content"),
    "content.delete": ("content", "delete", "Delete user content"),
    "premium.access": ("premium", "access", "Access premium features"),
}

# admin receives every permission
ROLE_PERMISSIONS = {
    "user": ["profile.read", "profile.write"],
    "admin": list(DEFAULT_PERMISSIONS),
    "moderator": ["profile.read", "profile.write", "users.read", "content.moderate", "content.delete"],
    "premium": ["profile.read", "profile.write", "premium.access"],
}

PASSWORD_RESET_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Password Reset</title>
</head>
<body style="font-family: sans-serif; color: #333333; background-color: #f5f5f5;">
    <div style="max-width: 600px; margin: 20px auto; background: #ffffff; padding: 30px;">
        <h1>{{.CompanyName}}</h1>
        <h2>Reset your password</h2>
        <p>We received a request to reset your password. Click the button below to choose a new one.</p>
        <p><a href="{{.ResetURL}}" style="background: #667eea; color: white; padding: 15px 30px; text-decoration: none;">Reset Password</a></p>
        <p>If the button does not work, copy this link into your browser:</p>
        <p>{{.ResetURL}}</p>
        <p>This link expires in 15 minutes. If you did not request a reset, you can ignore this email.</p>
    </div>
</body>
</html>
"""

PASSWORD_RESET_TEXT = """Reset your password

We received a request to reset your {{.CompanyName}} password.
Open the link below to choose a new one:

{{.ResetURL}}

This link expires in 15 minutes. If you did not request a reset, you can ignore this email.
"""

DEFAULT_EMAIL_TEMPLATES = [
    {
        "name": "password_reset",
        "subject": "Reset Your Password",
        "html_template": PASSWORD_RESET_HTML,
        "text_template": PASSWORD_RESET_TEXT,
        "variables": [
            {"name": "ResetURL", "description": "Password reset link"},
            {"name": "CompanyName", "description": "Company or application name"},
        ],
    },
]


async def seed_roles(db: AsyncSession) -> dict:
    existing = {role.name: role for role in (await db.execute(select(Role))).scalars().all()}
    for name, description in DEFAULT_ROLES.items():
        if name not in existing:
            role = Role(name=name, description=description)
            db.add(role)
            existing[name] = role
            logger.info(f"Seeded role {name}")
    await db.flush()
    return existing


async def seed_permissions(db: AsyncSession) -> dict:
    existing = {perm.name: perm for perm in (await db.execute(select(Permission))).scalars().all()}
    for name, (resource, action, description) in DEFAULT_PERMISSIONS.items():
        if name not in existing:
            perm = Permission(name=name, resource=resource, action=action, description=description)
            db.add(perm)
            existing[name] = perm
            logger.info(f"Seeded permission {name}")
    await db.flush()
    return existing


async def seed_role_permissions(db: AsyncSession, roles: dict, permissions: dict) -> None:
    rows = (await db.execute(select(RolePermission.role_id, RolePermission.permission_id))).all()
    granted = {(row.role_id, row.permission_id) for row in rows}
    for role_name, permission_names in ROLE_PERMISSIONS.items():
        role = roles[role_name]
        for permission_name in permission_names:
            key = (role.id, permissions[permission_name].id)
            if key not in granted:
                db.add(RolePermission(role_id=key[0], permission_id=key[1]))
                granted.add(key)
    await db.flush()


async def seed_email_templates(db: AsyncSession) -> None:
    names = set((await db.execute(select(EmailTemplate.name))).scalars().all())
    for template in DEFAULT_EMAIL_TEMPLATES:
        if template["name"] not in names:
            db.add(EmailTemplate(**template))
            logger.info(f"Seeded email template {template['name']}")
    await db.flush()


async def seed_defaults(db: AsyncSession) -> None:
    roles = await seed_roles(db)
    permissions = await seed_permissions(db)
    await seed_role_permissions(db, roles, permissions)
    await seed_email_templates(db)
    await db.commit()
