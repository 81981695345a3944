#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
The diagnostic sink that sessions report debug output and swallowed errors to.

Any object with debug(msg) and error(msg) methods works, including a logging.Logger.
"""

from __future__ import annotations

from typing_extensions import Protocol

from .pkg_logging import logger

class DiagnosticSink(Protocol):
    def debug(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

class LoggerDiagnosticSink:
    """The default sink; forwards to the package logger. Errors are logged at WARNING since
       they never terminate the session."""

    def debug(self, message: str) -> None:
        logger.debug(message)

    def error(self, message: str) -> None:
        logger.warning(message)

default_diagnostic_sink = LoggerDiagnosticSink()
