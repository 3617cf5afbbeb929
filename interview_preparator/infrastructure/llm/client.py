"""
Vertex AI REST client for LLM interactions.
"""
import json
import logging
from typing import Optional, Dict, Any, List

import requests
import google.auth
import google.auth.transport.requests
from google.auth import exceptions as auth_exceptions
from google.oauth2 import service_account

from ...config import VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS

logger = logging.getLogger("llm_client")

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class LLMError(Exception):
    """Raised when the model cannot produce a usable response."""


class VertexRestClient:
    """
    Gemini on Vertex AI over plain REST.

    Every failure (credentials, transport, HTTP status, blocked prompt)
    surfaces as LLMError so the API layer can report it as a 500.
    """

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.timeout = timeout
        self.session = session or requests.Session()
        self.endpoint = (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project}"
            f"/locations/{location}/publishers/google/models/{model}:generateContent"
        )
        self._token: Optional[str] = None

    def _refresh_token(self) -> None:
        try:
            if self.credentials_json:
                creds = service_account.Credentials.from_service_account_file(self.credentials_json, scopes=SCOPES)
            else:
                creds, _ = google.auth.default(scopes=SCOPES)
            creds.refresh(google.auth.transport.requests.Request())
        except (auth_exceptions.GoogleAuthError, OSError) as e:
            raise LLMError(f"Could not authenticate with Vertex AI: {e}")
        self._token = creds.token
        logger.debug("Vertex access token refreshed")

    def generate_content(
        self,
        prompt_text: str,
        temperature: float = 0.0,
        max_output_tokens: int = MAX_OUTPUT_TOKENS,
        top_k: Optional[int] = None,
        top_p: Optional[float] = None,
        stop_sequences: Optional[List[str]] = None,
    ) -> str:
        """
        Single-turn generation. Returns "" when the model produced no text.

        An expired token (HTTP 401) is refreshed and the request retried once.
        """
        generation_config: Dict[str, Any] = {
            "temperature": float(temperature),
            "maxOutputTokens": int(max_output_tokens),
        }
        if top_k is not None:
            generation_config["topK"] = int(top_k)
        if top_p is not None:
            generation_config["topP"] = float(top_p)
        if stop_sequences:
            generation_config["stopSequences"] = list(stop_sequences)

        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt_text}]}],
            "generationConfig": generation_config,
        }

        resp = self._post(body)
        if resp.status_code == 401:
            logger.info("Vertex token rejected, refreshing and retrying")
            self._token = None
            resp = self._post(body)
            if resp.status_code == 401:
                self._token = None

        return self._parse_response_text(self._checked_payload(resp))

    def _post(self, body: Dict[str, Any]) -> requests.Response:
        if not self._token:
            self._refresh_token()
        headers = {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}
        try:
            return self.session.post(self.endpoint, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise LLMError(f"Vertex REST request failed: {e}")

    @staticmethod
    def _checked_payload(resp: requests.Response) -> Dict[str, Any]:
        if resp.status_code >= 400:
            logger.error(f"Vertex REST error {resp.status_code}: {resp.text[:500]}")
            raise LLMError(f"Vertex REST error {resp.status_code}: {resp.text}")
        try:
            payload = resp.json()
        except ValueError:
            raise LLMError("Vertex REST returned a non-JSON body")
        if not isinstance(payload, dict):
            raise LLMError("Vertex REST returned an unexpected body")

        block_reason = (payload.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise LLMError(f"Prompt was blocked by the model: {block_reason}")
        return payload

    @staticmethod
    def _parse_response_text(resp_json: Dict[str, Any]) -> str:
        """First text part of the first candidate, else the content or top-level text."""
        candidates = resp_json.get("candidates") or []
        content = candidates[0].get("content") if candidates and isinstance(candidates[0], dict) else None
        if isinstance(content, dict):
            texts = [p["text"] for p in content.get("parts") or []
                     if isinstance(p, dict) and isinstance(p.get("text"), str)]
            if texts:
                return texts[0]
            if isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        finish = candidates[0].get("finishReason") if candidates and isinstance(candidates[0], dict) else None
        logger.warning(f"LLM response carried no text (finishReason={finish})")
        return ""

    def generate_json(self, prompt: str) -> Dict[str, Any]:
        """
        Ask for a JSON object and parse it.

        Models sometimes wrap the object in prose or code fences, so the
        outermost {...} span is tried when the whole text does not parse.

        Raises:
            LLMError: request failure, or no JSON object in the reply
        """
        text = self.generate_content(prompt.strip() + "\n\nRespond ONLY with minified JSON.", temperature=0.0)
        logger.debug("Raw LLM output: %r", text)

        try:
            parsed = json.loads(text)
        except ValueError as e:
            logger.warning("json.loads failed: %s", e)
            start, end = text.find("{"), text.rfind("}")
            if start == -1 or end <= start:
                raise LLMError("Failed to parse feedback JSON")
            try:
                parsed = json.loads(text[start:end + 1])
            except ValueError as e2:
                logger.warning("Substring parse also failed: %s", e2)
                raise LLMError("Failed to parse feedback JSON")

        if not isinstance(parsed, dict):
            raise LLMError("Failed to parse feedback JSON")
        return parsed
