import logging

from ..config import INSECURE_JWT_SECRET

logger = logging.getLogger(__name__)


def log_security_warnings(jwt_secret: str, database_url: str) -> None:
    if jwt_secret == INSECURE_JWT_SECRET:
        logger.warning("JWT secret is using the insecure default; set JWT_SECRET in the environment.")
    if database_url.startswith("sqlite"):
        logger.warning("Using SQLite at %s; configure DATABASE_URL for a shared deployment.", database_url)
