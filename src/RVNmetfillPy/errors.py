# SPDX-License-Identifier: MIT
"""
Exceptions and warnings raised by RVNmetfillPy.

Fatal problems (bad projection, bad parameters) are ``ValueError``
subclasses and abort the call before any output is produced. Cells that
cannot be infilled are reported with :class:`MissingDataWarning` and the
run continues.
"""

from __future__ import annotations

import warnings


class InvalidProjectionError(ValueError):
    """The target projection identifier is malformed, unknown or not planar."""


class InvalidParameterError(ValueError):
    """A numeric parameter is outside its valid range (strict mode only)."""


class MissingDataWarning(UserWarning):
    """No donor station has a value for a (station, date, variable) cell."""


def set_warning_policy(silence: bool = False) -> None:
    """
    Show or hide :class:`MissingDataWarning` messages.

    Parameters
    ----------
    silence : bool
        If True, ignore missing-data warnings (the report returned with
        ``return_report=True`` still lists every unfilled cell). If False,
        restore the default display of each warning.
    """
    action = "ignore" if silence else "default"
    warnings.filterwarnings(action, category=MissingDataWarning)


__all__ = [
    "InvalidProjectionError",
    "InvalidParameterError",
    "MissingDataWarning",
    "set_warning_policy",
]
