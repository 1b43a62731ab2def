import logging
import json
import os
import re
from typing import Dict, Any, Optional

import requests

try:
    import ollama
except ImportError:
    ollama = None


GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class LLMRequestError(Exception):
    """The provider answered with a non-2xx status."""
    def __init__(self, status_code: int, body: str):
        super().__init__(f"API call failed with status: {status_code}. Body: {body}")
        self.status_code = status_code
        self.body = body


class LLMRateLimitError(LLMRequestError):
    """The provider rejected the call with HTTP 429."""


class LLMResponseError(Exception):
    """The provider answered but the payload held no usable text."""


class LLMClient:
    """
    Thin wrapper around the supported LLM providers.

    The active provider is taken from ``llm.active_provider`` in config.yaml
    (gemini, openai or ollama). Every call is a single request; nothing is
    retried.
    """
    def __init__(self, config: Dict[str, Any]):
        self.llm_config = config.get('llm', {})
        self.provider = self.llm_config.get('active_provider', 'gemini')
        self.timeout = self.llm_config.get('timeout_seconds', 90)
        self.logger = logging.getLogger(__name__)

    def generate_json(self, prompt: str, schema: Dict[str, Any]) -> str:
        """
        Sends the prompt with a response schema and returns the raw JSON text
        produced by the model.
        """
        self.logger.debug(f"Using LLM provider: {self.provider} for extraction.")
        if self.provider == 'gemini':
            return self._call_gemini(prompt, schema)
        elif self.provider == 'openai':
            return self._call_openai(prompt, schema)
        elif self.provider == 'ollama':
            return self._call_ollama(prompt, schema)
        raise ValueError(f"Unsupported LLM provider: {self.provider}")

    def count_tokens(self, prompt: str) -> Optional[int]:
        """Returns the prompt size in tokens, or None when it cannot be counted."""
        if self.provider != 'gemini':
            self.logger.debug(f"Token counting is not available for provider '{self.provider}'.")
            return None

        cfg = self.llm_config.get('gemini', {})
        url = f"{cfg.get('base_url', GEMINI_BASE_URL)}/{cfg.get('model', 'gemini-2.0-flash')}:countTokens"
        payload = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        try:
            response = requests.post(url, params={"key": self._api_key(cfg, 'GEMINI_API_KEY')},
                                     json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.warning(f"Token count request failed: {e}")
            return None
        if not response.ok:
            self.logger.warning(f"Token count request returned status {response.status_code}.")
            return None
        return response.json().get('totalTokens')

    def _call_gemini(self, prompt: str, schema: Dict[str, Any]) -> str:
        cfg = self.llm_config.get('gemini', {})
        url = f"{cfg.get('base_url', GEMINI_BASE_URL)}/{cfg.get('model', 'gemini-2.0-flash')}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        response = requests.post(url, params={"key": self._api_key(cfg, 'GEMINI_API_KEY')},
                                 json=payload, timeout=self.timeout)
        self._raise_for_status(response)

        result = response.json()
        try:
            return result['candidates'][0]['content']['parts'][0]['text']
        except (KeyError, IndexError, TypeError):
            raise LLMResponseError("No valid data received from the model.")

    def _call_openai(self, prompt: str, schema: Dict[str, Any]) -> str:
        cfg = self.llm_config.get('openai', {})
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key(cfg, 'OPENAI_API_KEY')}",
        }
        payload = {
            "model": cfg.get('model'),
            "messages": [{"role": "user", "content": f"{prompt}\n\nJSON SCHEMA: {json.dumps(schema, ensure_ascii=False)}"}],
            "temperature": 0.0,
            "response_format": {"type": "json_object"},
        }
        response = requests.post(cfg.get('base_url'), headers=headers, json=payload, timeout=self.timeout)
        self._raise_for_status(response)
        try:
            return response.json()['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError):
            raise LLMResponseError("No valid data received from the model.")

    def _call_ollama(self, prompt: str, schema: Dict[str, Any]) -> str:
        if not ollama:
            raise ImportError("Ollama library not installed.")
        cfg = self.llm_config.get('ollama', {})
        response = ollama.chat(
            model=cfg.get('model'),
            messages=[{'role': 'user', 'content': prompt}],
            format=schema if cfg.get('structured_output', False) else 'json',
            options={"temperature": 0.0},
        )
        return response['message']['content']

    def _api_key(self, provider_config: Dict[str, Any], default_env: str) -> str:
        env_name = provider_config.get('api_key_env', default_env)
        api_key = os.getenv(env_name, "")
        if not api_key:
            self.logger.warning(f"Environment variable {env_name} is not set.")
        return api_key

    def _raise_for_status(self, response: requests.Response):
        if response.ok:
            return
        if response.status_code == 429:
            raise LLMRateLimitError(response.status_code, response.text)
        raise LLMRequestError(response.status_code, response.text)


def clean_json_response(response: str) -> str:
    """Extracts a JSON object from a string, even if it's embedded in other text."""
    match = re.search(r'\{.*\}', response, re.DOTALL)
    return match.group(0) if match else "{}"
