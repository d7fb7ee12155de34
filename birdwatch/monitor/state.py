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

"""Per file state of the unread monitor."""

import enum
import logging


logger = logging.getLogger(__name__)


class WatchPhase(enum.Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    PARSING = 'parsing'


class IndexFile:
    """The last successful read of an index file.

    ``mtime`` is informational only; reads are triggered by change
    notifications and the reread timer, never by comparing it.
    """

    __slots__ = ('path', 'mtime', 'database', 'unread')

    def __init__(self, path, mtime, database, unread):
        self.path = path
        self.mtime = mtime
        self.database = database
        self.unread = unread

    def __repr__(self):
        return (f'IndexFile(path={self.path!r}, mtime={self.mtime}, '
                f'unread={self.unread})')


class WatchState:
    """Everything the monitor knows about one watched index file.

    ``timer`` is the debounce timer, owned by the monitor. ``unread``
    is None until the file has been read successfully once.
    ``ignored`` is the baseline of unread messages that are not
    reported.
    """

    def __init__(self, path, timer):
        self.path = path
        self.timer = timer
        self.phase = WatchPhase.IDLE
        self.index_file = None
        self.ignored = 0
        self.warning = None
        self.disabled = False

    @property
    def unread(self):
        if self.index_file is None:
            return None
        return self.index_file.unread

    @property
    def reported(self):
        """Unread count minus the ignored baseline, never negative."""
        if self.unread is None:
            return 0
        return max(self.unread - self.ignored, 0)

    def set_phase(self, phase):
        if phase != self.phase:
            logger.debug(f'{self.path}: {self.phase.value} -> {phase.value}')
            self.phase = phase

    def ignore_current(self):
        self.ignored = self.unread or 0

    def update(self, index_file, ignore_all=False):
        """Replace the index file after a successful read.

        The baseline follows the unread count down, so that mail
        arriving after messages were read is reported again.
        """
        self.index_file = index_file
        if ignore_all:
            self.ignored = index_file.unread
        elif index_file.unread < self.ignored:
            self.ignored = index_file.unread

    def __repr__(self):
        return (f'WatchState(path={self.path!r}, phase={self.phase.value}, '
                f'unread={self.unread}, ignored={self.ignored}, '
                f'disabled={self.disabled})')
