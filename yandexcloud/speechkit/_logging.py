import logging

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger under the ``yandexcloud.speechkit`` hierarchy.

    A NullHandler is attached, so the package prints nothing until the
    application configures logging. What the package logs, by level:

    - DEBUG: recognition and synthesis parameters with elapsed time,
      encoder command lines and encoder stderr on failure.
    - INFO: IAM token refreshes.
    - WARNING: temporary files or HTTP sessions that could not be cleaned up.
    - ERROR: failed HTTP requests and unparseable responses.

    OAuth tokens, IAM tokens and API keys are never logged.

    Args:
        name: Logger name, the calling module's __name__.

    Returns:
        Logger instance.

    Examples:
        Show token refreshes and errors only:
            import logging
            logging.basicConfig()
            logging.getLogger("yandexcloud.speechkit").setLevel(logging.INFO)

        Trace the requests sent to the API:
            logging.getLogger("yandexcloud.speechkit._async_client").setLevel(logging.DEBUG)
    """
    module_logger = logging.getLogger(name)
    module_logger.addHandler(logging.NullHandler())
    return module_logger


__all__ = ["get_logger"]
