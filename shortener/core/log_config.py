import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once, at process start."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
