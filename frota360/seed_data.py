"""Seed roles, the first admin account and the default business settings.

Usage: python -m frota360.seed_data
"""
import logging
import os
import uuid

from flask_security.utils import hash_password

from frota360.server import create_app, _config_from_env
from frota360.extensions import db
from frota360.models.role import Role
from frota360.models.user import User
from frota360.models.system_settings import SystemSettings
from frota360.services.settings_service import SANITIZERS

logger = logging.getLogger(__name__)


# Helper: get or create
def get_or_create(model, defaults=None, **kwargs):
    instance = model.query.filter_by(**kwargs).first()
    if instance:
        return instance
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    instance = model(**params)
    db.session.add(instance)
    db.session.commit()
    return instance


def seed_roles():
    admin_role = get_or_create(Role, name='admin', defaults={'description': 'Fleet administrator'})
    driver_role = get_or_create(Role, name='driver', defaults={'description': 'Driver (self-service panel)'})
    return admin_role, driver_role


def seed_admin(admin_role):
    email = os.environ.get('ADMIN_EMAIL', 'admin@conduz.pt')
    admin = get_or_create(User, email=email, defaults={
        'name': 'Administrador',
        'password': hash_password(os.environ.get('ADMIN_PASSWORD', 'adminpass')),
        'active': True,
        'fs_uniquifier': str(uuid.uuid4())
    })
    if admin_role not in admin.roles:
        admin.roles.append(admin_role)
        db.session.commit()
    return admin


def seed_settings():
    """Store sanitized defaults for every settings key that has no row yet."""
    for key, sanitize in SANITIZERS.items():
        if SystemSettings.query.filter_by(setting_key=key).first():
            continue
        db.session.add(SystemSettings(setting_key=key, setting_value=sanitize(None)))
        logger.info(f"Seeded default settings for {key}")
    db.session.commit()


def main():
    app = create_app(_config_from_env())
    with app.app_context():
        admin_role, _ = seed_roles()
        admin = seed_admin(admin_role)
        seed_settings()
        logger.info(f"Seeding complete. Admin account: {admin.email}")


if __name__ == '__main__':
    main()
