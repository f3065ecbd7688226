import logging

from pos_backend.core.config import settings
from pos_backend.core.security import get_password_hash
from pos_backend.models.user import User, UserRole

logger = logging.getLogger(__name__)


async def ensure_super_admin() -> User | None:
    """
    Create the super admin account once.
    Safe to call on every start: does nothing while any super admin exists.
    """
    existing = await User.find_one(User.role == UserRole.SUPER_ADMIN)
    if existing:
        logger.debug("Super admin '%s' already present", existing.username)
        return None

    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.warning("No super admin exists and SUPER_ADMIN_EMAIL / SUPER_ADMIN_PASSWORD are not set")
        return None

    admin = User(
        username=settings.SUPER_ADMIN_USERNAME,
        email=settings.SUPER_ADMIN_EMAIL.strip().lower(),
        hashed_password=get_password_hash(settings.SUPER_ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN,
    )
    await admin.insert()
    logger.info("Super admin '%s' created", admin.email)
    return admin
