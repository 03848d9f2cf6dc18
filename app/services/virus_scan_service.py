from __future__ import annotations

import logging
import shlex
import subprocess
import tempfile

from app.core.config import settings

logger = logging.getLogger(__name__)


class VirusScanError(RuntimeError):
    pass


def scan_bytes(data: bytes, filename: str | None = None) -> None:
    """Run the configured scanner over ``data``; a non-zero exit rejects the file."""
    if not settings.virus_scan_enabled:
        return
    if not settings.virus_scan_command:
        raise VirusScanError("VIRUS_SCAN_COMMAND must be set when scanning is enabled")

    with tempfile.NamedTemporaryFile(delete=True) as tmp:
        tmp.write(data)
        tmp.flush()
        result = subprocess.run(_scan_args(tmp.name), capture_output=True, text=True, check=False)
    if result.returncode != 0:
        output = result.stderr.strip() or result.stdout.strip()
        logger.warning("Virus scan rejected %s: %s", filename or "upload", output)
        raise VirusScanError(f"File failed the virus scan: {output or 'infected'}")


def _scan_args(file_path: str) -> list[str]:
    parts = shlex.split(settings.virus_scan_command or "")
    if any("{file}" in part for part in parts):
        return [part.replace("{file}", file_path) for part in parts]
    return parts + [file_path]
