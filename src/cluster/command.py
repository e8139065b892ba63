from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Dict, Optional, Sequence

from src.common.errors import ResolutionError

logger = logging.getLogger(__name__)


def run_command(command: Sequence[str], timeout: Optional[float] = None) -> str:
    logger.debug("Running %s", " ".join(command))
    try:
        completed = subprocess.run(
            list(command),
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise ResolutionError(f"Required binary not found: {command[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ResolutionError(f"Command timed out after {exc.timeout}s ({' '.join(command)})") from exc
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.strip() if exc.stderr else ""
        stdout = exc.stdout.strip() if exc.stdout else ""
        raise ResolutionError(f"Command failed ({' '.join(command)}): {stderr or stdout}") from exc
    return completed.stdout


def load_json_object(raw_output: str, what: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw_output)
    except json.JSONDecodeError as exc:
        raise ResolutionError(f"Could not parse {what} output: {exc}") from exc
    if not isinstance(data, dict):
        raise ResolutionError(f"{what} output must be a JSON object")
    return data


__all__ = ["load_json_object", "run_command"]
