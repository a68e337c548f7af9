# log_utils.py -- Logging utilities for gitcore
# Copyright (C) 2026 The gitcore authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitcore is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Logging utilities for gitcore.

gitcore is a library first, so the ``gitcore`` logger carries a handler that
discards records until an application decides otherwise. Applications that
want output call :func:`default_logging_config`, which also honours the
``GIT_TRACE`` environment variable the way git does.
"""

__all__ = [
    "configure_trace_logging",
    "default_logging_config",
    "getLogger",
    "remove_null_handler",
    "trace_target",
]

import logging
import os
import sys

getLogger = logging.getLogger

_TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
_DEFAULT_FORMAT = "%(message)s"

_NULL_HANDLER = logging.NullHandler()
_GITCORE_LOGGER = getLogger("gitcore")
_GITCORE_LOGGER.addHandler(_NULL_HANDLER)


def trace_target(environ: dict[str, str] | None = None) -> str | int | None:
    """Work out where GIT_TRACE output should go.

    Args:
      environ: Environment to consult; defaults to ``os.environ``.

    Returns:
      None if tracing is off, 2 for stderr, an int 3-9 for a file
      descriptor, or an absolute path (file or directory).
    """
    if environ is None:
        environ = dict(os.environ)
    value = environ.get("GIT_TRACE", "")
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    try:
        fd = int(value)
    except ValueError:
        pass
    else:
        if 3 <= fd <= 9:
            return fd
        return None
    if os.path.isabs(value):
        return value
    return None


def configure_trace_logging(environ: dict[str, str] | None = None) -> bool:
    """Configure DEBUG logging according to GIT_TRACE.

    Returns: True if tracing was configured, False otherwise.
    """
    target = trace_target(environ)
    if target is None:
        return False
    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=_TRACE_FORMAT)
        return True
    if isinstance(target, int):
        try:
            stream = os.fdopen(target, "w", buffering=1)
        except OSError as e:
            sys.stderr.write(f"warning: cannot open GIT_TRACE fd {target}: {e}\n")
            return False
        logging.basicConfig(level=logging.DEBUG, stream=stream, format=_TRACE_FORMAT)
        return True
    if os.path.isdir(target):
        filename = os.path.join(target, f"trace.{os.getpid()}")
    else:
        filename = target
    try:
        logging.basicConfig(
            level=logging.DEBUG, filename=filename, filemode="a", format=_TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(f"warning: cannot open GIT_TRACE file {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up the default gitcore loggers.

    Tracing via GIT_TRACE takes precedence; otherwise INFO and above go to
    stderr.
    """
    remove_null_handler()
    if configure_trace_logging():
        return
    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format=_DEFAULT_FORMAT)


def remove_null_handler() -> None:
    """Remove the null handler from the gitcore loggers."""
    _GITCORE_LOGGER.removeHandler(_NULL_HANDLER)
