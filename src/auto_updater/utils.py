"""Utility helpers for the auto-updater.

Small helpers shared by the CLI and the built-in sources:
 - Version discovery for the installed/package build
 - Lightweight HTTP JSON fetch and streaming file download

Fail safe: ``get_version`` never raises; the HTTP helpers report errors
in a shape the caller can turn into a source-level failure.
"""

from __future__ import annotations

import json
import shutil
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from importlib.metadata import PackageNotFoundError, version as pkg_version

USER_AGENT = "auto-updater"


def get_version() -> str:
    """Return the tool version string.

    Lookup order (first match wins):
    1) ``importlib.metadata.version('auto-updater')`` (installed package)
    2) Parse ``pyproject.toml`` for ``project.version`` (source checkout)
    3) Fallback string ``"0.0.0+unknown"``
    """
    try:
        return pkg_version("auto-updater")
    except PackageNotFoundError:
        pass

    pyproj = Path(__file__).resolve().parents[2] / "pyproject.toml"
    if pyproj.exists():
        try:
            import re

            text = pyproj.read_text(encoding="utf-8")
            m = re.search(r"(?ms)^\[project\].*?^version\s*=\s*\"([^\"]+)\"", text)
            if m:
                return m.group(1)
        except OSError:
            pass

    return "0.0.0+unknown"


def _request(url: str, headers: Optional[Dict[str, str]]) -> urllib.request.Request:
    merged = {"User-Agent": USER_AGENT}
    merged.update(headers or {})
    return urllib.request.Request(url, headers=merged)


def http_get_json(
    url: str, timeout: float = 3.0, headers: Optional[Dict[str, str]] = None
) -> Tuple[Optional[Any], Optional[str]]:
    """Fetch a small JSON document.

    Parameters
    - ``url``: Absolute URL to request.
    - ``timeout``: Socket timeout in seconds (defaults to 3.0).
    - ``headers``: Extra request headers (e.g. ``Authorization``).

    Returns
    - Tuple ``(data, error)`` where ``data`` is the decoded JSON value on
      success and ``error`` is ``None``; on failure, ``data`` is ``None``
      and ``error`` contains a short message (e.g., ``"HTTP 404: Not Found"``).
    """
    try:
        with urllib.request.urlopen(_request(url, headers), timeout=timeout) as resp:
            return json.loads(resp.read().decode("utf-8", errors="ignore")), None
    except urllib.error.HTTPError as e:
        return None, f"HTTP {e.code}: {e.reason}"
    except (urllib.error.URLError, OSError, ValueError) as e:
        return None, str(e)


def http_download(
    url: str,
    dest: Path,
    timeout: float = 30.0,
    headers: Optional[Dict[str, str]] = None,
) -> Path:
    """Stream ``url`` into ``dest`` and return ``dest``.

    Raises ``urllib.error.URLError``/``OSError`` on failure; the caller
    decides how to report it.
    """
    with urllib.request.urlopen(_request(url, headers), timeout=timeout) as resp:
        with open(dest, "wb") as fh:
            shutil.copyfileobj(resp, fh)
    return dest


__all__ = ["get_version", "http_get_json", "http_download"]
