"""Pytest configuration for test isolation.

Settings are read from the environment at call time, so a developer's shell
(or a local ``.env`` loaded by an earlier CLI test) could leak model names or
flags into tests. An autouse fixture clears every ``SOCIETAL_DEBT_*`` variable
and provides a dummy ``OPENAI_API_KEY`` so no test depends on real
credentials. Tests never reach the network: the OpenAI client is stubbed.
"""

from __future__ import annotations

import logging
import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("SOCIETAL_DEBT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-dummy")
    # The CLI configures logging with propagate=False; keep caplog working after it.
    monkeypatch.setattr(logging.getLogger("societal_debt"), "propagate", True)


@pytest.fixture
def stub_openai(monkeypatch: pytest.MonkeyPatch):
    """Return an installer that swaps ``invoker.OpenAI`` for an ``OpenAIStub``."""

    import societal_debt.invoker as invoker_mod

    def _install(stub):
        monkeypatch.setattr(invoker_mod, "OpenAI", stub.factory)
        return stub

    return _install
