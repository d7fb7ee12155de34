# This file is part of BirdWatch.
#
# BirdWatch is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# BirdWatch is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with BirdWatch.  If not, see <https://www.gnu.org/licenses/>.

"""Start a user configured command when the unread count changes."""

import logging

from PyQt6 import QtCore


logger = logging.getLogger(__name__)


PLACEHOLDER_NEW = '%NEW%'
PLACEHOLDER_OLD = '%OLD%'


def expand_command(cmdline, old, new):
    return (cmdline
            .replace(PLACEHOLDER_NEW, str(new))
            .replace(PLACEHOLDER_OLD, str(old)))


def run_count_change_command(cmdline, old, new):
    """Start ``cmdline`` detached, with the placeholders replaced.

    Returns whether the process could be started. An empty command
    line does nothing.
    """

    if not cmdline:
        return False

    cmdline = expand_command(cmdline, old, new)
    args = QtCore.QProcess.splitCommand(cmdline)
    if not args:
        logger.warning(f'Empty count change command: {cmdline!r}')
        return False

    logger.debug(f'Running count change command: {args}')
    started, _pid = QtCore.QProcess.startDetached(args[0], args[1:])
    if not started:
        logger.warning(f'Unable to start count change command {cmdline!r}')
    return started
