"""Line list loading.

A line list is a delimited text file with a header row and one row per
case.  It may live on disk or behind an HTTP(S) URL; remote sources are
fetched with ``requests`` so that network problems and parse problems
surface as distinct errors.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any

import pandas as pd
import requests

from .config import DEFAULT_SEP, REQUEST_TIMEOUT
from .errors import DataParseError, FetchError

logger = logging.getLogger(__name__)


def is_url(source: str | Path) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def _resolve_stream(source: str | Path, timeout: int) -> BytesIO | Path:
    """
    Return a file-like object (for URLs) or Path (for local files).
    """
    source_str = str(source)
    if is_url(source_str):
        try:
            response = requests.get(source_str, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Could not fetch line list from {source_str}: {exc}") from exc
        return BytesIO(response.content)

    path = Path(source)
    if not path.exists():
        raise FetchError(f"Line list not found at {path}")
    return path


def load_linelist(
    source: str | Path,
    sep: str = DEFAULT_SEP,
    *,
    timeout: int = REQUEST_TIMEOUT,
    **read_kwargs: Any,
) -> pd.DataFrame:
    """Load a case line list into a DataFrame.

    Parameters
    ----------
    source : str or Path
        URL or local path of the delimited file.
    sep : str, optional
        Column delimiter; defaults to ``","``.
    timeout : int, optional
        Seconds to wait for a remote source.
    **read_kwargs
        Passed through to :func:`pandas.read_csv`.

    Returns
    -------
    pd.DataFrame
        One row per data line, columns named after the header tokens.
        Date columns are left as text; modules parse them on demand.

    Raises
    ------
    FetchError
        The source is unreachable, answers with a non-2xx status or the
        file does not exist.
    DataParseError
        The content is empty or not well-formed delimited text.
    """
    logger.info("Loading line list from %s", source)
    stream = _resolve_stream(source, timeout)
    try:
        df = pd.read_csv(stream, sep=sep, **read_kwargs)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise DataParseError(f"Could not parse line list from {source}: {exc}") from exc

    logger.info("Loaded line list with %d rows and %d columns", len(df), df.shape[1])
    return df
