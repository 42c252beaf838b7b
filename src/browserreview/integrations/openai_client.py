# -*- coding: utf-8 -*-
"""OpenAI chat-completions wrapper for vision prompts."""

from __future__ import annotations

import json
from typing import Any
from urllib import error, request

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIClientError(RuntimeError):
    """Raised when the API call fails for a reason other than rate limiting."""

    def __init__(self, message: str, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


class RateLimitError(OpenAIClientError):
    """HTTP 429 or an error body that mentions a rate limit."""


class OpenAIClient:
    """Thin wrapper for key checks and multimodal text generation."""

    def __init__(self, api_key: str = "", base_url: str = DEFAULT_BASE_URL, timeout: float = 60.0) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def has_key(self) -> bool:
        return bool(self.api_key.strip())

    def validate_key(
        self,
        api_key: str | None = None,
        *,
        check_remote: bool = False,
        timeout: float = 2.0,
    ) -> bool:
        """Validate a key format and optionally verify it against the models endpoint."""
        key = (api_key if api_key is not None else self.api_key).strip()
        if not key:
            return False
        if not check_remote:
            return True
        status, _ = self._request_json("GET", f"{self.base_url}/models", api_key=key, timeout=timeout)
        return status == 200

    def generate_text(
        self,
        model: str,
        prompt: str,
        image_urls: list[str],
        *,
        max_tokens: int = 500,
    ) -> str:
        """Send one user message made of `prompt` plus `data:` image URLs and return the reply text."""
        if not self.has_key():
            raise OpenAIClientError("OpenAI API key missing")

        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        for url in image_urls:
            content.append({"type": "image_url", "image_url": {"url": url}})

        payload = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": max_tokens,
        }
        status, response_payload = self._request_json(
            "POST",
            f"{self.base_url}/chat/completions",
            api_key=self.api_key,
            timeout=self.timeout,
            data=payload,
        )
        if status != 200 or not isinstance(response_payload, dict):
            message = _error_message(response_payload) or f"request failed (status={status})"
            if status == 429 or "rate limit" in message.lower():
                raise RateLimitError(message, status)
            raise OpenAIClientError(message, status)

        choices = response_payload.get("choices", [])
        if not isinstance(choices, list) or not choices:
            raise OpenAIClientError("OpenAI response has no choices", status)
        message = choices[0].get("message", {}) if isinstance(choices[0], dict) else {}
        content_value = message.get("content", "") if isinstance(message, dict) else ""
        if isinstance(content_value, list):
            return "\n".join(
                str(item.get("text", "")) for item in content_value if isinstance(item, dict) and item.get("type") == "text"
            ).strip()
        return str(content_value or "").strip()

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        api_key: str,
        timeout: float,
        data: dict[str, Any] | None = None,
    ) -> tuple[int, dict[str, Any] | None]:
        body = None
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if data is not None:
            body = json.dumps(data).encode("utf-8")
        req = request.Request(url, headers=headers, data=body, method=method)
        try:
            with request.urlopen(req, timeout=timeout) as response:
                status = int(getattr(response, "status", 200))
                raw_body = response.read().decode("utf-8", errors="ignore")
                try:
                    payload = json.loads(raw_body) if raw_body else {}
                except json.JSONDecodeError:
                    payload = {}
                return status, payload if isinstance(payload, dict) else {}
        except error.HTTPError as exc:
            raw_body = exc.read().decode("utf-8", errors="ignore")
            try:
                payload = json.loads(raw_body) if raw_body else {}
            except json.JSONDecodeError:
                payload = {"error": {"message": raw_body[:200]}}
            return int(exc.code), payload if isinstance(payload, dict) else {}
        except (error.URLError, OSError) as exc:
            return 0, {"error": {"message": str(exc)}}


def _error_message(payload: dict[str, Any] | None) -> str:
    if not isinstance(payload, dict):
        return ""
    err = payload.get("error")
    if isinstance(err, dict):
        return str(err.get("message", ""))
    if isinstance(err, str):
        return err
    return ""
