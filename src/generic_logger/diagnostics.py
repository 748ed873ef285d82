"""
Diagnostic side channel.

Failures inside the pipeline (adapter errors, teardown errors, deprecated
config) are reported here instead of through the repository, which would
recurse. Warnings go through the stdlib `warnings` machinery so hosts can
filter, escalate or capture them.
"""

import warnings


class LoggerWarning(RuntimeWarning):
    """Non-fatal problem inside the logging pipeline."""


def warn(message: str, error: BaseException | None = None) -> None:
    """Report a non-fatal pipeline problem."""
    if error is not None:
        message = f"{message}: {type(error).__name__}: {error}"
    warnings.warn(message, LoggerWarning, stacklevel=3)
