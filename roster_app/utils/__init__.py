from .logging_config import JSONFormatter, TextFormatter, setup_logging

__all__ = ["JSONFormatter", "TextFormatter", "setup_logging"]
