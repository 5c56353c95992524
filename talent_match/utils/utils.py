import json
from typing import List

import requests

from talent_match.utils.exceptions import retry_with_logging
from talent_match.utils.logging_config import get_logger

logger = get_logger(__name__)


@retry_with_logging(max_attempts=3, backoff_factor=0.5, exceptions=(requests.ConnectionError, requests.Timeout), logger=logger)
def ollama_generate(prompt: str, model: str, base_url: str, temperature: float = 0.2, timeout: int = 120) -> str:
    url = f"{base_url}/api/generate"
    resp = requests.post(
        url,
        json={
            "model": model,
            "prompt": prompt,
            "format": "json",
            "options": {"temperature": temperature},
            "stream": False  # important
        },
        timeout=timeout,
    )
    resp.raise_for_status()
    return resp.json().get("response", "") or ""


@retry_with_logging(max_attempts=3, backoff_factor=0.5, exceptions=(requests.ConnectionError, requests.Timeout), logger=logger)
def ollama_embed(text: str, model: str, base_url: str, timeout: int = 30) -> List[float]:
    url = f"{base_url}/api/embed"
    resp = requests.post(url, json={"model": model, "input": text}, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    embeddings = data.get("embeddings") or []
    return [float(x) for x in embeddings[0]] if embeddings else []


def safe_json(s: str, fallback: dict):
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end >= 0:
            return json.loads(s[start:end+1])
        return fallback
    except (TypeError, ValueError):
        return fallback
