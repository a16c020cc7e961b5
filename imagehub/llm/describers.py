"""Describer adapters: image + prompt in, text out.

Architectural role:
    Wraps the external multimodal model providers behind one narrow interface,
    `describe_image(base64_data, mime_type, prompt) -> str`, so callers never depend
    on a concrete provider.

Providers:
    - `OllamaDescriber`: local inference endpoint (`/api/generate`).
    - `GeminiDescriber`: API-key generative endpoint (`:generateContent`).
    - `VertexDescriber`: cloud prediction endpoint addressed by a
      project/location/model resource name.

Retry behavior:
    No retry loop is implemented. Each HTTP call is attempted once with the
    configured timeout.

Failure handling model:
    Every call is a single best-effort round trip. Network, auth and response-shape
    failures are logged and converted into readable diagnostic strings; nothing is
    raised to the caller.
"""

import copy
import logging

import requests

from imagehub.llm.provider_config import (
    DESCRIBER_PROVIDER,
    DESCRIBER_PROVIDERS,
    GENERATION_CONFIG,
    REQUEST_TIMEOUT,
    VERTEX_RESOURCE_TEMPLATE,
    load_key,
)


logger = logging.getLogger(__name__)

ERROR_BODY_LIMIT = 600


def truncate(text, limit=ERROR_BODY_LIMIT):
    if not text or len(text) <= limit:
        return text
    return text[:limit] + "..."


def _http_error_message(provider_name, err):
    """Build provider-labeled HTTP error text with status and a truncated body."""
    label = str(provider_name or "provider").upper()
    response = getattr(err, "response", None)
    if response is None:
        return f"{label} HTTP ERROR: {err.__class__.__name__}"
    body = truncate(getattr(response, "text", "") or "")
    return f"{label} HTTP ERROR ({response.status_code}): {body}".rstrip(": ")


class Describer:
    """Interface for services that turn an image and a prompt into text."""

    name = "describer"

    def __init__(self, model, timeout=REQUEST_TIMEOUT, session=None):
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def __repr__(self):
        return f"<{self.__class__.__name__} model={self.model!r}>"

    def with_model(self, model):
        """Return a copy that uses `model`; `self` is left unchanged."""
        if not model or not model.strip():
            return self
        clone = copy.copy(self)
        clone.model = model.strip()
        return clone

    def describe_image(self, base64_data, mime_type, prompt):
        """Return the provider's text answer or a diagnostic string."""
        if not base64_data:
            return "No image data provided."
        try:
            return self._describe(base64_data, mime_type or "image/png", prompt or "")
        except requests.exceptions.Timeout:
            logger.warning("%s request timed out", self.name)
            return "Request canceled (timeout)."
        except requests.exceptions.RequestException as err:
            logger.warning("%s request failed: %s", self.name, err)
            return _http_error_message(self.name, err)
        except (AttributeError, KeyError, IndexError, TypeError, ValueError):
            logger.exception("%s returned an unexpected response", self.name)
            return f"{self.name.upper()} RESPONSE MALFORMED"

    def _describe(self, base64_data, mime_type, prompt):
        raise NotImplementedError

    def _post(self, url, payload, headers=None, params=None):
        response = self.session.post(
            url,
            json=payload,
            headers=headers,
            params=params,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


# ============================================================
# Local inference endpoint
# ============================================================

class OllamaDescriber(Describer):
    """Local vision model served by an Ollama-compatible `/api/generate` endpoint."""

    name = "ollama"

    def __init__(self, url=None, model=None, **kwargs):
        config = DESCRIBER_PROVIDERS["ollama"]
        super().__init__(model or config["model"], **kwargs)
        self.url = (url or config["url"]).rstrip("/")

    def build_payload(self, base64_data, mime_type, prompt):
        # The inline reference keeps prompt-only models working; `images` feeds vision models.
        full_prompt = f"{prompt}\n![image](data:{mime_type};base64,{base64_data})"
        return {
            "model": self.model,
            "prompt": full_prompt,
            "images": [base64_data],
            "stream": False,
        }

    def _describe(self, base64_data, mime_type, prompt):
        data = self._post(
            f"{self.url}/api/generate",
            self.build_payload(base64_data, mime_type, prompt),
        )
        if not isinstance(data, dict):
            raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
        text = str(data.get("response") or "").strip()
        return text or "(no text response)"


# ============================================================
# Gemini-style generateContent endpoints
# ============================================================

def build_generate_content_payload(base64_data, mime_type, prompt):
    """Payload with one text part and one inline-data part plus generation config."""
    parts = []
    if prompt and prompt.strip():
        parts.append({"text": prompt})
    parts.append({"inline_data": {"mime_type": mime_type, "data": base64_data}})
    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": dict(GENERATION_CONFIG),
    }


def extract_candidate_text(data):
    """Join every non-blank `candidates[].content.parts[].text`, one per line."""
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        return "(no candidates)"

    texts = []
    for candidate in candidates:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        for part in parts if isinstance(parts, list) else []:
            text = part.get("text") if isinstance(part, dict) else None
            if isinstance(text, str) and text.strip():
                texts.append(text.strip())

    return "\n".join(texts) if texts else "(no text response)"


class GeminiDescriber(Describer):
    """Generative Language API authenticated with an API key."""

    name = "gemini"

    def __init__(self, api_key=None, model=None, key_file=None, **kwargs):
        config = DESCRIBER_PROVIDERS["gemini"]
        super().__init__(model or config["model"], **kwargs)
        self.api_key = load_key(
            key_file or config["key_file"],
            env_name=config["key_env"],
            explicit=api_key,
        )
        self.url = config["url"].rstrip("/")

    @property
    def has_api_key(self):
        return bool(self.api_key)

    def _describe(self, base64_data, mime_type, prompt):
        if not self.has_api_key:
            return "Gemini API key missing (env GEMINI_API_KEY or key file)."

        data = self._post(
            f"{self.url}/{self.model}:generateContent",
            build_generate_content_payload(base64_data, mime_type, prompt),
            headers={"x-goog-api-key": self.api_key},
        )
        return extract_candidate_text(data)


class VertexDescriber(Describer):
    """Vertex AI prediction endpoint for a publisher model.

    Authenticates with an OAuth access token (for example one minted from a
    service account) when available, otherwise with an API key.
    """

    name = "vertex"

    def __init__(self, project=None, location=None, model=None, access_token=None, api_key=None, **kwargs):
        config = DESCRIBER_PROVIDERS["vertex"]
        super().__init__(model or config["model"], **kwargs)
        self.project = project or config["project"]
        self.location = location or config["location"]
        self.base_url = config["url"]
        self.access_token = load_key(None, env_name=config["token_env"], explicit=access_token)
        self.api_key = load_key(None, env_name=config["key_env"], explicit=api_key)

    @property
    def resource_name(self):
        return VERTEX_RESOURCE_TEMPLATE.format(
            project=self.project,
            location=self.location,
            model=self.model,
        )

    @property
    def endpoint(self):
        base = self.base_url.format(location=self.location)
        return f"{base}/{self.resource_name}:generateContent"

    def _auth(self):
        if self.access_token:
            return {"Authorization": f"Bearer {self.access_token}"}, None
        return None, {"key": self.api_key}

    def _describe(self, base64_data, mime_type, prompt):
        if not self.project:
            return "Vertex project missing (env VERTEX_PROJECT)."
        if not (self.access_token or self.api_key):
            return "Vertex credentials missing (env VERTEX_ACCESS_TOKEN or VERTEX_API_KEY)."

        headers, params = self._auth()
        data = self._post(
            self.endpoint,
            build_generate_content_payload(base64_data, mime_type, prompt),
            headers=headers,
            params=params,
        )
        return extract_candidate_text(data)


DESCRIBERS = {
    "ollama": OllamaDescriber,
    "gemini": GeminiDescriber,
    "vertex": VertexDescriber,
}


def get_describer(name=None, **kwargs):
    """Instantiate the describer registered under `name` (default: configured provider)."""
    provider = (name or DESCRIBER_PROVIDER).lower()
    describer_cls = DESCRIBERS.get(provider)
    if describer_cls is None:
        raise ValueError(f"Unknown describer provider: {provider}")
    return describer_cls(**kwargs)
