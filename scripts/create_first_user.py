import logging

from sqlmodel import Session, select

from app.core.config import settings
from app.core.logging import configure_logging
from app.core.security import get_password_hash
from app.db.session import engine, init_db
from app.models.user import User, UserRole

logger = logging.getLogger("scripts.create_first_user")


def create_initial_admin(db: Session) -> User:
    """Create the bootstrap admin, replacing any existing account with the same email."""
    email = settings.FIRST_ADMIN_EMAIL.strip().lower()

    existing = db.exec(select(User).where(User.email == email)).first()
    if existing:
        logger.info("Replacing existing account %s", email)
        db.delete(existing)
        db.commit()

    admin = User(
        name=settings.FIRST_ADMIN_NAME,
        email=email,
        password=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Admin created: %s", admin.email)
    return admin


if __name__ == "__main__":
    configure_logging(settings.LOG_LEVEL)
    init_db()
    with Session(engine) as session:
        create_initial_admin(session)
