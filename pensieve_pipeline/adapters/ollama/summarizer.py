"""OllamaSummarizer: transcript summaries from a local Ollama server."""

import json
import logging
from typing import Any, Optional

import requests

from pensieve_pipeline.domain.errors import SummarizationError
from pensieve_pipeline.models import LlmSettings, Transcript
from pensieve_pipeline.ports.summarizer import SummarizerPort

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You summarize meeting transcripts. Reply with a JSON object of the form "
    '{"summary": "<markdown summary>"}. Keep the summary short, list decisions '
    "and action items when there are any."
)


class OllamaSummarizer(SummarizerPort):
    def __init__(self, settings: LlmSettings, session: Optional[requests.Session] = None):
        self._settings = settings
        self._session = session or requests.Session()

    def _request(self, target: str, body: Optional[dict] = None) -> Any:
        method, path = target.split(" ", 1)
        url = f"{self._settings.base_url.rstrip('/')}{path}"
        logger.debug(f"Fetching: {url}")
        payload = None if method == "GET" else {**(body or {}), "format": "json", "stream": False}
        try:
            resp = self._session.request(method, url, json=payload, timeout=self._settings.timeout)
        except requests.RequestException as e:
            raise SummarizationError(f"Failed to fetch {target}: {e}", url=url) from e
        logger.debug(f"Fetch complete: {url}, status: {resp.status_code}")
        if not resp.ok:
            raise SummarizationError(f"Failed to fetch {target}: {resp.reason}", status=resp.status_code)
        return resp.json()

    def has_model(self, name: str) -> bool:
        models = self._request("GET /api/tags")
        return any(m.get("name") == name for m in models.get("models", []))

    def pull_model(self, name: str) -> None:
        if self.has_model(name):
            return
        logger.info(f"Pulling Ollama model {name}")
        self._request("POST /api/pull", {"name": name})

    def summarize(self, transcript: Transcript) -> str:
        model = self._settings.model
        self.pull_model(model)

        data = self._request("POST /api/chat", {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": transcript.plain_text()},
            ],
        })
        content = data.get("message", {}).get("content", "")
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            logger.warning("Summary response was not JSON, using raw content")
            return content.strip()

        if isinstance(parsed, dict) and isinstance(parsed.get("summary"), str):
            return parsed["summary"].strip()
        return content.strip()
