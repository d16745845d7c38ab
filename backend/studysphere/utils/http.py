# studysphere/utils/http.py
import json
from typing import Any

import httpx


async def read_payload(response: httpx.Response) -> Any:
    """Body of an upstream response as JSON, or ``{"message": text}`` when it is not JSON."""
    await response.aread()
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"message": response.text}
