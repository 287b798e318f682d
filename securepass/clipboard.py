"""SecurePass - clipboard copy via pyperclip."""

import logging

import pyperclip

from .errors import ClipboardUnavailable

logger = logging.getLogger(__name__)


def copy_to_clipboard(text: str) -> None:
    """
    Put text on the system clipboard.

    Raises:
        ClipboardUnavailable: pyperclip found no copy mechanism (e.g. headless
            Linux without xclip/xsel/wl-copy)
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logger.warning("Clipboard unavailable: %s", e)
        raise ClipboardUnavailable(str(e)) from e
