"""
Logging configuration.

Development logs everything from DEBUG up; production only WARNING and
above unless LOG_LEVEL says otherwise.
"""
import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(settings) -> int:
    if settings.log_level:
        return logging.getLevelName(settings.log_level.upper())
    if settings.is_production:
        return logging.WARNING
    if settings.is_development:
        return logging.DEBUG
    return logging.INFO


def setup_logging(settings) -> None:
    logging.basicConfig(level=resolve_level(settings), format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger("clinic_api").setLevel(resolve_level(settings))
    # Keep the HTTP client chatter of the cache and media libraries out of debug logs
    logging.getLogger("urllib3").setLevel(logging.WARNING)
