"""Exception types raised by ``societal_debt``.

Classifier parse failures are not exceptions; they are absorbed into
zero-debt fallback entries. Only failures where no classification attempt
could be made surface here.
"""

from __future__ import annotations


class SocietalDebtError(Exception):
    """Base class for errors raised by this package."""


class ClassifierTransportError(SocietalDebtError):
    """The classifier could not be reached (missing credentials, network, timeout, HTTP error).

    The caller may retry the whole operation; nothing was written anywhere.
    """
