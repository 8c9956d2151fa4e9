"""
Utilities for choosing where a download is written.
"""

from pathlib import Path
from urllib.parse import unquote

from multidict import CIMultiDict
from pathvalidate import sanitize_filename
from yarl import URL

DEFAULT_FILENAME = "index.html"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def filename_from_content_disposition(value: str | None) -> str | None:
    """
    Extracts the file name from a Content-Disposition header.

    `filename*=UTF-8''...` (RFC 6266) takes precedence over a plain `filename=`.
    """
    if not value:
        return None

    params: dict[str, str] = {}
    for part in value.split(";")[1:]:
        key, sep, param = part.strip().partition("=")
        if sep:
            params[key.strip().lower()] = param.strip()

    if extended := params.get("filename*"):
        _charset, _, encoded = extended.partition("''")
        if encoded:
            return unquote(encoded.strip('"'))
    if plain := params.get("filename"):
        return plain.strip('"') or None
    return None


def filename_from_url(url: str | URL) -> str | None:
    """Returns the last path segment of a URL, if it has one."""
    name = URL(str(url)).name
    return unquote(name) or None


def pick_filename(headers: CIMultiDict[str], url: str | URL) -> str:
    """
    Chooses a safe file name for a download from its response headers,
    falling back to the URL and then to 'index.html'.
    """
    name = (
        filename_from_content_disposition(headers.get("Content-Disposition"))
        or filename_from_url(url)
        or DEFAULT_FILENAME
    )
    return sanitize_filename(name, platform="auto") or DEFAULT_FILENAME


def resolve_output_path(
    output: Path | None, output_dir: Path, headers: CIMultiDict[str], url: str | URL
) -> Path:
    """
    Resolves the destination file. An explicit `output` wins; a directory
    `output` receives the picked file name.
    """
    if output is not None and not output.is_dir():
        return output
    directory = output if output is not None else output_dir
    return directory / pick_filename(headers, url)
