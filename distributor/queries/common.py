from decimal import Decimal
from typing import Any, Optional

import requests

from distributor.errors import SourceUnavailableError


def get_json(url: str, params: Optional[dict[str, Any]] = None, timeout: float = 30.0) -> Any:
    """
    GET a JSON document with a bounded timeout.
    Floats are parsed as `Decimal` so display amounts never pass through binary floating point.
    Any failure, including a non-2xx status, is raised as a `SourceUnavailableError`
    """
    try:
        response = requests.get(
            url,
            params=params,
            headers={"accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise SourceUnavailableError(f"Request to {url} failed: {e}") from e

    if not response.ok:
        raise SourceUnavailableError(
            f"Request to {url} failed: {response.status_code} {response.reason}"
        )

    try:
        return response.json(parse_float=Decimal)
    except ValueError as e:
        raise SourceUnavailableError(f"Invalid JSON returned by {url}") from e
