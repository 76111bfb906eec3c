"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Resolves the Content-Type for files sent with Header.send_file().

    ┌────────────────────────────────────────────────────────────────────┐
    │                    LOOKUP ORDER                                    │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  1. MIME_TYPES table by extension                                  │
    │     Some types are ambiguous to content sniffers (a CSS file       │
    │     looks like plain text), so known web extensions win.           │
    │                                                                     │
    │  2. mimetypes.guess_type() from the standard library              │
    │                                                                     │
    │  3. `file --brief --mime <path>` if the binary is available       │
    │     Handles extensionless files by looking at the content.         │
    │                                                                     │
    │  4. application/octet-stream                                       │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘
=============================================================================
"""

from pathlib import Path
from typing import Optional, Union
import logging
import mimetypes
import re
import shutil
import subprocess


logger = logging.getLogger(__name__)


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # Documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
    ".map": "application/json",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# `file` output must at least look like "type/subtype".
_FILE_OUTPUT_PATTERN = re.compile(r"^[a-z0-9\-]+/", re.IGNORECASE)


def is_text_type(mime_type: str) -> bool:
    """Check whether a MIME type is text and should carry a charset."""
    if mime_type.startswith("text/"):
        return True
    return mime_type in {
        "application/json",
        "application/xml",
        "application/javascript",
        "image/svg+xml",
    }


def get_mime_type(
    path: Union[str, Path],
    file_command: Optional[str] = None,
) -> str:
    """
    Get the MIME type for a file.

    Args:
        path: File path. It does not need to exist for the extension
              lookups; the `file` fallback only runs on existing files.
        file_command: Explicit path to the `file` binary. Looked up on
                      PATH when not given.

    Returns:
        MIME type string, e.g. "text/css" or "image/png".

    Examples:
        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    path = Path(path)
    extension = path.suffix.lower()

    if extension in MIME_TYPES:
        return MIME_TYPES[extension]

    guessed, _ = mimetypes.guess_type(path.name)
    if guessed and guessed != DEFAULT_MIME_TYPE:
        return guessed

    sniffed = _sniff_with_file_command(path, file_command)
    if sniffed:
        return sniffed

    return DEFAULT_MIME_TYPE


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Get a Content-Type header value, adding a charset for text types.

        >>> get_content_type("page.html")
        'text/html; charset=utf-8'
    """
    mime_type = get_mime_type(path)
    if "charset=" not in mime_type and is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type


def _sniff_with_file_command(path: Path, file_command: Optional[str]) -> Optional[str]:
    if not path.is_file():
        return None

    binary = file_command or shutil.which("file")
    if not binary:
        return None

    try:
        result = subprocess.run(
            [binary, "--brief", "--mime", str(path)],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"file command failed for {path}: {e}")
        return None

    output = result.stdout.strip()
    if result.returncode != 0 or not _FILE_OUTPUT_PATTERN.match(output):
        return None
    return output
