"""Privacy-safe logging configuration for Surveyinator.

By default, code hashes, session tokens and participant IDs are redacted.
Set LOG_SENSITIVE=true to enable full logging for debugging.

Plaintext access codes are NEVER logged regardless of settings.
"""

import logging
import os
import re

import colorlog


def anonymize_code_hash(code_hash: str) -> str:
    """Shorten an access-code hash to its first 8 hex characters.

    Args:
        code_hash: Full SHA-256 hex digest

    Returns:
        First 8 characters prefixed with "code:" (e.g., "code:3fa2b1c0")
    """
    if not code_hash:
        return "code:none"
    return f"code:{code_hash[:8]}"


def anonymize_participant(participant_id: str) -> str:
    """Anonymize a participant ID to its last 2 characters.

    Args:
        participant_id: Participant identifier (e.g., "P004211")

    Returns:
        "P**" followed by the last 2 characters (e.g., "P**11")
    """
    if not participant_id:
        return "none"
    return f"P**{participant_id[-2:]}"


def anonymize_token(token: str) -> str:
    """Collapse a signed token to a fixed marker keeping its first 6 chars."""
    if not token:
        return "token:none"
    return f"token:{token[:6]}..."


class PrivacyFilter(logging.Filter):
    """Logging filter that redacts sensitive data unless LOG_SENSITIVE=true.

    Redacts:
    - SHA-256 hex digests (access-code hashes)
    - Signed session tokens ("<base64url>.<base64url>")

    Participant IDs are free-form, so use anonymize_participant() explicitly.
    """

    CODE_HASH_PATTERN = re.compile(r'\b[0-9a-f]{64}\b')
    TOKEN_PATTERN = re.compile(r'(?<![A-Za-z0-9_-])[A-Za-z0-9_-]{16,}\.[A-Za-z0-9_-]{43}(?![A-Za-z0-9_-])')

    def __init__(self, sensitive_logging: bool = False):
        super().__init__()
        self.sensitive_logging = sensitive_logging

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log record, redacting sensitive data if needed."""
        if self.sensitive_logging:
            return True

        if hasattr(record, 'msg') and isinstance(record.msg, str):
            msg = record.msg
            # Tokens first: their body segment may contain hex runs
            msg = self.TOKEN_PATTERN.sub(lambda m: anonymize_token(m.group(0)), msg)
            msg = self.CODE_HASH_PATTERN.sub(lambda m: anonymize_code_hash(m.group(0)), msg)
            record.msg = msg

        return True


def setup_logging(
    level: str = None,
    sensitive: bool = None,
    suppress_noisy: bool = True
) -> None:
    """Configure logging with colorlog and privacy filters.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Default from LOG_LEVEL env or INFO.
        sensitive: Enable sensitive data logging. Default from LOG_SENSITIVE env or False.
        suppress_noisy: Suppress noisy library logs (uvicorn access, urllib3). Default True.
    """
    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO').upper()
    if sensitive is None:
        sensitive = os.getenv('LOG_SENSITIVE', 'false').lower() in ('true', '1', 'yes')

    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(
        '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))

    privacy_filter = PrivacyFilter(sensitive_logging=sensitive)
    handler.addFilter(privacy_filter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level, logging.INFO))

    if suppress_noisy:
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={level}, sensitive={sensitive}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
