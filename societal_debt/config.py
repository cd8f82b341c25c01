"""Classifier settings resolved from the process environment.

Only the CLI loads ``.env``; library code reads whatever is already set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MODEL: str = "gpt-5"
DEFAULT_TIMEOUT_SEC: float = 120.0

_FALSE_VALUES = {"0", "false", "no", "off"}
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    v = raw.strip().lower()
    if v in _FALSE_VALUES:
        return False
    if v in _TRUE_VALUES:
        return True
    raise ValueError(f"{name} must be a boolean flag (got {raw!r})")


def _env_positive_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        val = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number (got {raw!r})") from e
    if val <= 0:
        raise ValueError(f"{name} must be positive (got {raw!r})")
    return val


@dataclass(frozen=True, slots=True)
class ClassifierSettings:
    """Settings for the OpenAI classifier call.

    Attributes
    ----------
    model:
        Responses API model name (``SOCIETAL_DEBT_MODEL``).
    timeout_sec:
        Request timeout handed to the SDK (``SOCIETAL_DEBT_TIMEOUT_SEC``).
    web_search:
        Whether the web-search tool is offered to the model
        (``SOCIETAL_DEBT_WEB_SEARCH``). Citations only appear when enabled.
    """

    model: str = DEFAULT_MODEL
    timeout_sec: float = DEFAULT_TIMEOUT_SEC
    web_search: bool = True

    @classmethod
    def from_env(cls) -> ClassifierSettings:
        model = (os.getenv("SOCIETAL_DEBT_MODEL") or "").strip() or DEFAULT_MODEL
        return cls(
            model=model,
            timeout_sec=_env_positive_float("SOCIETAL_DEBT_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
            web_search=_env_bool("SOCIETAL_DEBT_WEB_SEARCH", True),
        )
