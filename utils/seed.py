from flask import current_app

from models import db
from models.user import Role, User
from security.password import hash_password

DEFAULT_ROLES = ["CUSTOMER", "ADMIN"]


def seed_roles():
    existing = {r.name for r in Role.query.all()}
    for name in DEFAULT_ROLES:
        if name not in existing:
            db.session.add(Role(name=name))
    db.session.commit()


def ensure_admin(email: str, password: str, full_name: str | None = None) -> User:
    """Creates (or promotes) an admin account. Idempotent."""
    email = email.strip().lower()
    admin_role = Role.query.filter_by(name="ADMIN").first()
    if not admin_role:
        admin_role = Role(name="ADMIN")
        db.session.add(admin_role)

    user = User.query.filter_by(email=email).first()
    if not user:
        user = User(email=email, password_hash=hash_password(password, current_app.config.get("BCRYPT_ROUNDS", 12)), full_name=full_name)
        db.session.add(user)

    if admin_role not in user.roles:
        user.roles.append(admin_role)
    db.session.commit()
    return user
