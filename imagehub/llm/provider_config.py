"""Provider/runtime configuration for the client side of imagehub.

Architectural role:
    Centralizes API endpoint, describer provider selection and credential lookup for
    `imagehub.llm.client`, `imagehub.llm.describers` and `imagehub.llm.service`.

Determinism:
    Deterministic for a fixed process environment and key files. Values are resolved
    at import time (plus runtime key-file reads in `load_key`).

Failure behavior:
    Missing key material is represented as `None` and handled by the describers as
    provider-specific diagnostic strings.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Base URL of the imagehub HTTP API consumed by `ApiClient`.
API_BASE_URL = os.getenv("IMAGEHUB_API_URL", "http://127.0.0.1:5115")

# Shared HTTP timeout (seconds) for API and provider calls.
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "120"))

# Active describer used when callers do not pick one explicitly.
DESCRIBER_PROVIDER = os.getenv("DESCRIBER_PROVIDER", "ollama")

DEFAULT_PROMPT = "What can you see in the given picture?"

# Generation parameters forwarded to Gemini-style endpoints.
GENERATION_CONFIG = {
    "temperature": 0.2,
    "maxOutputTokens": 1024,
}

DESCRIBER_PROVIDERS = {

    "ollama": {
        "url": os.getenv("OLLAMA_URL", "http://localhost:11434"),
        "model": os.getenv("OLLAMA_MODEL", "gemma3:12b"),
    },

    "gemini": {
        "url": "https://generativelanguage.googleapis.com/v1beta/models",
        "model": os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
        "key_env": "GEMINI_API_KEY",
        "key_file": os.getenv("GEMINI_KEY_FILE", "gemini_api_key.txt"),
    },

    "vertex": {
        "url": "https://{location}-aiplatform.googleapis.com/v1",
        "model": os.getenv("VERTEX_MODEL", "gemini-1.5-flash"),
        "project": os.getenv("VERTEX_PROJECT", ""),
        "location": os.getenv("VERTEX_LOCATION", "us-central1"),
        "token_env": "VERTEX_ACCESS_TOKEN",
        "key_env": "VERTEX_API_KEY",
    },

}

VERTEX_RESOURCE_TEMPLATE = (
    "projects/{project}/locations/{location}/publishers/google/models/{model}"
)


def resolve_key_file(path):
    """Locate a key file.

    Absolute paths are returned unchanged. Relative paths are searched in the
    working directory, then in `secrets/`; the first existing candidate wins and the
    working-directory candidate is returned when none exists.
    """
    if not path:
        return None
    if os.path.isabs(path):
        return path
    candidates = [
        os.path.join(os.getcwd(), path),
        os.path.join(os.getcwd(), "secrets", path),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return candidates[0]


def load_key(path, env_name=None, explicit=None):
    """Load an API key.

    Resolution order:
        1. `explicit` value (stripped), when non-blank.
        2. Environment variable `env_name`.
        3. Contents of the key file at `path` (see `resolve_key_file`).

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - Blank values at any step fall through to the next one.
        - Unreadable key files are treated as missing.
    """
    if explicit and explicit.strip():
        return explicit.strip()

    if env_name:
        env_value = os.getenv(env_name)
        if env_value and env_value.strip():
            return env_value.strip()

    key_path = resolve_key_file(path)
    if not key_path or not os.path.exists(key_path):
        return None
    try:
        with open(key_path, "r") as f:
            return f.read().strip() or None
    except OSError:
        return None
