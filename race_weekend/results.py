from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from race_weekend.config import RESULTS_PATH
from race_weekend.errors import ResultFileError
from race_weekend.schemas import SessionResults


logger = logging.getLogger(__name__)


def result_file_path(name: str, results_path: Optional[str] = None) -> Path:
    return Path(results_path or RESULTS_PATH) / f"{name}.json"


def load_result(name: str, results_path: Optional[str] = None) -> SessionResults:
    """Load a results file by name (without the .json extension)."""
    path = result_file_path(name, results_path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ResultFileError(f"could not read results file {path}: {exc}") from exc

    try:
        results = SessionResults.model_validate_json(raw)
    except (ValidationError, UnicodeDecodeError) as exc:
        raise ResultFileError(f"could not parse results file {path}: {exc}") from exc

    logger.debug("loaded results file %s (%d drivers)", path, len(results.result))
    return results
