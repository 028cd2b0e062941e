"""Seed script: creates the system roles and a bootstrap administrator."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.auth import hash_password
from app.core.database import Base, SessionLocal, engine
from app.core.rbac import ROLE_PERMISSIONS, ROLES, SUPER_ADMIN_ROLE
from app.models.role import Role
from app.models.user import User

ADMIN_EMAIL = os.environ.get("SEED_ADMIN_EMAIL", "adm@alumni.com")
ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "Alumni@2024")


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        roles: dict[str, Role] = {}
        for info in ROLES:
            role = db.query(Role).filter(Role.name == info["name"]).first()
            if role is None:
                role = Role(
                    name=info["name"],
                    display_name=info["display_name"],
                    description=info["description"],
                    is_system=True,
                    permissions=list(ROLE_PERMISSIONS[info["name"]]),
                )
                db.add(role)
                print(f"Role created: {info['name']}")
            roles[info["name"]] = role
        db.commit()

        if db.query(User).filter(User.email == ADMIN_EMAIL).first():
            print(f"User '{ADMIN_EMAIL}' already exists")
            return

        admin = User(
            name="Administrador",
            email=ADMIN_EMAIL,
            cargo="Diretor de TI",
            role_id=roles[SUPER_ADMIN_ROLE].id,
            password_hash=hash_password(ADMIN_PASSWORD),
        )
        db.add(admin)
        db.commit()
        print(f"Admin user created: {ADMIN_EMAIL}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
