"""Strip path-shaped fragments from messages that leave the trust boundary."""

from __future__ import annotations

import re

PATH_PLACEHOLDER = "[path]"
UNKNOWN_ERROR = "Unknown error"

# Absolute (/a/b) and relative (a/b, ./a, ../a) slash-delimited paths
_PATH_PATTERN = re.compile(r"[\w\-.]*(?:/[\w\-.]+)+/?")
_DANGLING_LABEL = re.compile(r":\s*" + re.escape(PATH_PLACEHOLDER))


def sanitize_error(message: object) -> str:
    """Return *message* with every path-shaped substring replaced.

    ``"No such file: /x/y"`` becomes ``"No such file"``; quoted or embedded
    paths become ``[path]``. Never raises.
    """
    if not isinstance(message, str) or not message:
        return UNKNOWN_ERROR
    sanitized = _PATH_PATTERN.sub(PATH_PLACEHOLDER, message)
    return _DANGLING_LABEL.sub("", sanitized)
