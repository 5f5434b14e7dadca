from __future__ import annotations

import logging
import sys
from typing import Iterable

logger = logging.getLogger(__name__)


def ask(question: str, *, accept: Iterable[str] = ("y", "yes"), assume_yes: bool = False) -> bool:
    """Ask a y/N question on the terminal.

    With assume_yes, or when stdin is not a TTY, no prompt is shown and the
    answer is assume_yes.
    """

    if assume_yes:
        logger.info("%s -> yes (assumed)", question)
        return True
    if not sys.stdin or not sys.stdin.isatty():
        logger.info("%s -> no (non-interactive)", question)
        return False

    try:
        answer = input(f"{question} ").strip().lower()
    except EOFError:
        answer = ""
    accepted = {a.lower() for a in accept}
    logger.debug("Prompt %r answered %r", question, answer)
    return answer in accepted
