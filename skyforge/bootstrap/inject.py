"""Bootstrap template injection.

Scripts reference cluster values with ``{{ .KEY }}`` markers. ``inject``
replaces each marker with the value from the cluster's substitution map
and turns the result into droplet user data.
"""

from __future__ import annotations

import re
import secrets
import string
from collections.abc import Mapping
from typing import Final

from skyforge.core.exceptions import TemplateError

INJECTED_MASTER: Final = "INJECTEDMASTER"
INJECTED_NAME: Final = "INJECTEDNAME"
INJECTED_PORT: Final = "INJECTEDPORT"
INJECTED_TOKEN: Final = "INJECTEDTOKEN"

RESERVED_KEYS: Final = (INJECTED_MASTER, INJECTED_NAME, INJECTED_PORT)

MARKER_OPEN: Final = "{{"
MARKER_CLOSE: Final = "}}"

_DIRECTIVE = re.compile(r"\s*\.([A-Za-z_][A-Za-z0-9_]*)\s*")
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def inject(template: bytes, values: Mapping[str, str]) -> bytes:
    """Substitute every ``{{ .KEY }}`` marker in a script template.

    Substituted values are not rescanned, so a value containing ``{{`` is
    emitted verbatim.

    Args:
        template: Raw script bytes (UTF-8).
        values: Substitution map.

    Returns:
        The rendered script bytes.

    Raises:
        TemplateError: On an unterminated marker, a marker that is not a
            ``.KEY`` reference, or a key missing from ``values``.
    """
    try:
        text = template.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TemplateError(f"Bootstrap template is not valid UTF-8: {e}") from e

    out: list[str] = []
    pos = 0
    while (start := text.find(MARKER_OPEN, pos)) != -1:
        end = text.find(MARKER_CLOSE, start + len(MARKER_OPEN))
        if end == -1:
            raise TemplateError(f"Unterminated marker at line {_line_of(text, start)}")

        body = text[start + len(MARKER_OPEN) : end]
        match = _DIRECTIVE.fullmatch(body)
        if match is None:
            raise TemplateError(
                f"Unknown directive '{body.strip()}' at line {_line_of(text, start)}"
            )

        key = match.group(1)
        if key not in values:
            raise TemplateError(f"No value for key '{key}' at line {_line_of(text, start)}")

        out.append(text[pos:start])
        out.append(values[key])
        pos = end + len(MARKER_CLOSE)

    out.append(text[pos:])
    return "".join(out).encode("utf-8")


def kubeadm_token() -> str:
    """Random bootstrap token in kubeadm's ``[a-z0-9]{6}.[a-z0-9]{16}`` format."""
    head = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))
    tail = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(16))
    return f"{head}.{tail}"
