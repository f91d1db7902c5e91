import os
import sys

from portal import create_app
from portal.extensions import db
from portal.models import Role, User
from portal.utils.passwords import hash_password, validate_password

EMAIL = (os.environ.get("ADMIN_EMAIL") or "").strip().lower()
PASSWORD = os.environ.get("ADMIN_PASSWORD") or ""
FULL_NAME = os.environ.get("ADMIN_NAME") or "Keyline Studio Admin"

if not EMAIL or not PASSWORD:
    sys.exit("Set ADMIN_EMAIL and ADMIN_PASSWORD.")

ok, msg = validate_password(PASSWORD)
if not ok:
    sys.exit(msg)

app = create_app()

with app.app_context():
    existing = User.query.filter(db.func.lower(User.email) == EMAIL).first()

    if existing:
        print("🔁 Promoting existing user to admin...")
        existing.role = Role.ADMIN
        existing.is_active = True
        existing.password_hash = hash_password(PASSWORD)
    else:
        print("🔐 Creating new admin user...")
        db.session.add(
            User(
                email=EMAIL,
                full_name=FULL_NAME,
                role=Role.ADMIN,
                password_hash=hash_password(PASSWORD),
            )
        )

    db.session.commit()

    print("✅ Admin ready:", EMAIL)
