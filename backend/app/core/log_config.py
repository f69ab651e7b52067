import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def configure_logging(level: str = "INFO"):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)

def mask_user_id(user_id: str) -> str:
    """Log-safe form of a user id."""
    if not user_id:
        return "<anonymous>"
    return user_id[:8] + "..."
