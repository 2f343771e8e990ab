"""
Provision the portal's admin account.

Run once per deployment, after the database is reachable::

    python -m app.bootstrap

Credentials come from ADMIN_EMAIL / ADMIN_PASSWORD (and optionally
ADMIN_USERNAME / ADMIN_FULL_NAME). Running it again is a no-op.
"""
import logging
import sys

from app import auth_flow
from app.core.config import settings
from app.core.exceptions import PortalError
from app.core.logging_config import setup_logging
from app.database import Base, SessionLocal, engine

logger = logging.getLogger("app.bootstrap")


def main() -> int:
    setup_logging()

    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.error("ADMIN_EMAIL and ADMIN_PASSWORD must be set to provision the admin user")
        return 1

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user, created = auth_flow.provision_admin(
            db,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            username=settings.ADMIN_USERNAME,
            full_name=settings.ADMIN_FULL_NAME
        )
    except PortalError as e:
        logger.error("Admin provisioning failed: %s", e.message)
        return 1
    finally:
        db.close()

    if created:
        logger.info("Admin user created: %s", user.email)
    else:
        logger.info("Admin user already present: %s", user.email)
    return 0


if __name__ == "__main__":
    sys.exit(main())
