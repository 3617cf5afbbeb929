"""
HTTP clients the final-round session uses to reach the backend.

Both clients are blocking; the session controller runs them in worker
threads. Every failure surfaces as the matching fault with a message fit
for the user.
"""
import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Sequence, Type

import requests

from ..config import API_BASE_URL, REQUEST_TIMEOUT, TRANSCRIPTION_REQUEST_TIMEOUT
from ..faults import DialogueFault, InterviewFault, TranscriptionFault
from .models import FollowUpQuestion, OpeningQuestion, Speaker, TranscriptionResult, Turn

logger = logging.getLogger("services")

VALID_ROLES = {s.value for s in Speaker}


def decode_audio(encoded: Optional[str]) -> Optional[bytes]:
    """Decode base64 audio from the server; missing or malformed audio counts as absent."""
    if not encoded:
        return None
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, TypeError, ValueError) as e:
        logger.warning(f"Discarding malformed audio payload: {e}")
        return None


class _BackendClient:
    """Shared request handling for the backend routes."""

    fault_type: Type[InterviewFault] = InterviewFault

    def __init__(self,
                 base_url: str = API_BASE_URL,
                 timeout: float = REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout:
            raise self.fault_type("The interview server did not respond in time")
        except requests.RequestException as e:
            raise self.fault_type(f"Could not reach the interview server: {e}")

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if resp.status_code >= 400:
            message = payload.get("error") if isinstance(payload, dict) else None
            logger.error(f"{method} {path} failed with {resp.status_code}: {message or resp.text[:200]}")
            raise self.fault_type(message or f"Server error {resp.status_code}")

        if not isinstance(payload, dict):
            raise self.fault_type("Invalid response from server")
        return payload


class DialogueClient(_BackendClient):
    """Fetches the opening question and follow-up questions."""

    fault_type = DialogueFault

    def start(self, role: str) -> OpeningQuestion:
        payload = self._request("GET", "/api/finalround/start", params={"role": role})
        text = payload.get("firstQuestionText")
        if not isinstance(text, str) or not text.strip():
            raise DialogueFault("Invalid response from server")
        logger.info(f"Opening question received: {text}")
        return OpeningQuestion(text=text, audio=decode_audio(payload.get("audioData")))

    def next(self, history: Sequence[Turn], role: str) -> FollowUpQuestion:
        """Submit the whole transcript and get the interviewer's next turn."""
        body = {"history": [turn.to_wire() for turn in history], "role": role}
        payload = self._request("POST", "/api/finalround/next", json=body)

        received_role = payload.get("role", Speaker.INTERVIEWER.value)
        if not isinstance(received_role, str) or received_role not in VALID_ROLES:
            raise DialogueFault(f"Invalid role received: {received_role}")

        text = payload.get("nextQuestion")
        if not isinstance(text, str) or not text.strip():
            raise DialogueFault("Invalid response from server")

        is_closing = payload.get("isClosing", False)
        if not isinstance(is_closing, bool):
            raise DialogueFault("Invalid response from server")
        logger.info(f"Next question received (closing={is_closing}): {text}")
        return FollowUpQuestion(text=text, audio=decode_audio(payload.get("audioData")), is_closing=is_closing)


class TranscriptionClient(_BackendClient):
    """Uploads a finished recording and returns its transcript."""

    fault_type = TranscriptionFault

    def __init__(self,
                 base_url: str = API_BASE_URL,
                 timeout: float = TRANSCRIPTION_REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None):
        super().__init__(base_url=base_url, timeout=timeout, session=session)

    def submit(self, recording) -> TranscriptionResult:
        data = getattr(recording, "data", recording)
        if not data:
            raise TranscriptionFault("No audio to transcribe")

        files = {"audio": ("user_audio.wav", data, "audio/wav")}
        payload = self._request("POST", "/api/finalround/submit", files=files)

        text = payload.get("transcript")
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise TranscriptionFault("Invalid response from server")
        topics: Optional[List[Any]] = payload.get("keywords")
        if topics is None:
            topics = []
        if not isinstance(topics, list):
            raise TranscriptionFault("Invalid response from server")
        logger.info(f"Transcript received: {text or '(empty)'}")
        return TranscriptionResult(text=text, topics=list(topics))
