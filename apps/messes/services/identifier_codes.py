"""
Identifier code generation.

Codes are 6-digit strings in the range 100000-999999 that members share to
find a mess. A code is drawn at random and redrawn until it is unused.
"""

import logging
import secrets

from apps.messes.models import Mess

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_SPACE = 900000


def draw_identifier_code() -> str:
    """Draw one random 6-digit code, without checking uniqueness."""
    return str(CODE_MIN + secrets.randbelow(CODE_SPACE))


def generate_identifier_code() -> str:
    """
    Return a code no existing mess uses.

    There is no bound on attempts: with 900,000 codes and few messes a
    collision is rare, and on a nearly full space the loop still ends once
    a free code is drawn. The unique index on ``Mess.identifier_code``
    catches a concurrent insert of the same code.
    """
    attempts = 0
    while True:
        attempts += 1
        code = draw_identifier_code()
        if not Mess.objects.filter(identifier_code=code).exists():
            if attempts > 1:
                logger.info("Identifier code found after %d draws", attempts)
            return code
