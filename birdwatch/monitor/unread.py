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

from datetime import datetime
from functools import partial
import logging
import os.path

from PyQt6 import QtCore

from birdwatch.fileio import MorkParseError, load_index
from birdwatch.monitor.state import IndexFile, WatchPhase, WatchState


logger = logging.getLogger(__name__)


def _normalize(paths):
    """Absolute paths without duplicates, in the given order."""
    return list(dict.fromkeys(os.path.abspath(p) for p in paths))


class UnreadMonitor(QtCore.QObject):
    """Watch mail folder index files and keep their unread counts.

    Runs entirely in the thread of the Qt event loop. Each watched file
    has its own state: a change notification arms (or re-arms) the
    file's debounce timer, and only when the timer runs out is the file
    read. Reading failures keep the last known count and set a warning
    for the file.
    """

    # path, baseline adjusted unread count; after every successful read
    file_parsed = QtCore.pyqtSignal(str, int)
    # path, old count, new count
    unread_changed = QtCore.pyqtSignal(str, int, int)
    # old total, new total
    total_changed = QtCore.pyqtSignal(int, int)
    # path whose warning was set or cleared
    warning_changed = QtCore.pyqtSignal(str)

    def __init__(self,
                 paths=(),
                 watch_file_timeout=150,
                 reread_interval=0,
                 ignore_unread_on_start=False,
                 parent=None):
        super().__init__(parent)
        self.paths = _normalize(paths)
        self.watch_file_timeout = watch_file_timeout
        self.reread_interval = reread_interval
        self.ignore_unread_on_start = ignore_unread_on_start
        self.states = {}
        self.total = 0
        self.running = False

        self.watcher = QtCore.QFileSystemWatcher(self)
        self.watcher.fileChanged.connect(self.on_file_changed)
        self.watcher.directoryChanged.connect(self.on_directory_changed)

        self.reread_timer = QtCore.QTimer(self)
        self.reread_timer.timeout.connect(self.on_reread_timeout)

    def start(self):
        if self.running:
            return
        logger.info(f'Starting to watch {len(self.paths)} index files')
        self.running = True
        for path in self.paths:
            self._add_state(path)
        for state in list(self.states.values()):
            if not state.disabled:
                self._parse(state)
        self.set_reread_interval(self.reread_interval)

    def stop(self):
        if not self.running:
            return
        logger.info('Stopping unread monitor')
        self.running = False
        self.reread_timer.stop()
        for path in list(self.states.keys()):
            self._remove_state(path)
        self._update_total()

    def set_paths(self, paths):
        """Change the set of watched files.

        Files that stay keep their state, including the ignored
        baseline. New files are read right away.
        """
        paths = _normalize(paths)
        logger.debug(f'Setting watched files to: {paths}')
        self.paths = paths
        if not self.running:
            return

        for path in list(self.states.keys()):
            if path not in paths:
                self._remove_state(path)

        added = [self._add_state(path) for path in paths
                 if path not in self.states]
        # Keep the configured order
        self.states = {path: self.states[path] for path in paths}
        for state in added:
            if not state.disabled:
                self._parse(state)
        self._update_total()

    def set_watch_file_timeout(self, msec):
        self.watch_file_timeout = msec
        for state in self.states.values():
            state.timer.setInterval(msec)

    def set_reread_interval(self, seconds):
        self.reread_interval = seconds
        self.reread_timer.stop()
        if self.running and seconds > 0:
            logger.debug(f'Rereading index files every {seconds}s')
            self.reread_timer.start(seconds * 1000)

    def unread_count(self, path):
        """The reported unread count of a watched file."""
        return self.states[os.path.abspath(path)].reported

    def warnings(self):
        """Current warnings as a mapping of path to message."""
        return {path: state.warning
                for path, state in self.states.items()
                if state.warning}

    def reparse_all(self):
        """Read all watched files now, dropping pending timers."""
        for state in list(self.states.values()):
            if not state.disabled:
                self._parse(state)

    def ignore_current_unread(self):
        """Stop reporting the messages that are unread right now.

        Only mail that arrives afterwards is counted.
        """
        logger.info('Ignoring currently unread messages')
        self._change_baselines(WatchState.ignore_current)

    def clear_ignored(self):
        logger.info('No longer ignoring any unread messages')

        def clear(state):
            state.ignored = 0

        self._change_baselines(clear)

    def on_file_changed(self, path):
        state = self.states.get(path)
        if state is None or state.disabled:
            return
        logger.debug(f'File changed: {path}')
        if path not in self.watcher.files() and os.path.exists(path):
            # The mail client replaced the file; the watcher dropped it
            logger.debug(f'Watching replaced file {path} again')
            self.watcher.addPath(path)
        self._schedule(state)

    def on_directory_changed(self, directory):
        watched = self.watcher.files()
        for state in list(self.states.values()):
            if state.disabled or os.path.dirname(state.path) != directory:
                continue
            if state.path not in watched and os.path.exists(state.path):
                logger.debug(f'Index file reappeared: {state.path}')
                self.watcher.addPath(state.path)
                self._schedule(state)

    def on_debounce_timeout(self, path):
        state = self.states.get(path)
        if state is None or state.phase != WatchPhase.PENDING:
            logger.debug(f'Ignoring stale timer for {path}')
            return
        self._parse(state)

    def on_reread_timeout(self):
        logger.debug('Periodic reread of index files')
        for state in list(self.states.values()):
            if not state.disabled and state.phase == WatchPhase.IDLE:
                self._parse(state)

    def _add_state(self, path):
        timer = QtCore.QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(self.watch_file_timeout)
        timer.timeout.connect(partial(self.on_debounce_timeout, path))
        state = WatchState(path, timer)
        self.states[path] = state

        if not self.watcher.addPath(path):
            logger.warning(f'Unable to watch {path} for changes')
            state.disabled = True
            self._set_warning(
                state,
                self.tr('Unable to watch %1 for changes.').replace('%1', path))
            return state

        directory = os.path.dirname(path)
        if (directory not in self.watcher.directories()
                and not self.watcher.addPath(directory)):
            logger.debug(f'Unable to watch directory {directory}')
        return state

    def _remove_state(self, path):
        state = self.states.pop(path)
        state.timer.stop()
        state.timer.deleteLater()
        if path in self.watcher.files():
            self.watcher.removePath(path)
        directory = os.path.dirname(path)
        still_needed = any(os.path.dirname(p) == directory
                           for p in self.states)
        if not still_needed and directory in self.watcher.directories():
            self.watcher.removePath(directory)
        if state.warning:
            self.warning_changed.emit(path)

    def _schedule(self, state):
        state.set_phase(WatchPhase.PENDING)
        # Restarts the timer if it is already running
        state.timer.start()

    def _read_index(self, path):
        mtime = os.path.getmtime(path)
        database, unread = load_index(path)
        return IndexFile(path, mtime, database, unread)

    def _parse(self, state):
        state.timer.stop()
        state.set_phase(WatchPhase.PARSING)
        old = state.reported
        error = None
        try:
            index_file = self._read_index(state.path)
        except (MorkParseError, OSError) as e:
            error = e
        if state.phase == WatchPhase.PARSING:
            state.set_phase(WatchPhase.IDLE)

        if error is not None:
            logger.warning(f'Unable to read {state.path}: {error}')
            self._set_warning(
                state,
                self.tr('Unable to read from %1.').replace('%1', state.path))
            return

        first_read = state.index_file is None
        state.update(
            index_file,
            ignore_all=first_read and self.ignore_unread_on_start)
        self._set_warning(state, None)

        new = state.reported
        logger.debug(
            f'{state.path}: {index_file.unread} unread, '
            f'{state.ignored} ignored, modified '
            f'{datetime.fromtimestamp(index_file.mtime).isoformat()}')
        self.file_parsed.emit(state.path, new)
        if new != old:
            self.unread_changed.emit(state.path, old, new)
        self._update_total()

    def _change_baselines(self, func):
        for state in list(self.states.values()):
            old = state.reported
            func(state)
            if state.reported != old:
                self.unread_changed.emit(state.path, old, state.reported)
        self._update_total()

    def _set_warning(self, state, message):
        if state.warning == message:
            return
        state.warning = message
        self.warning_changed.emit(state.path)

    def _update_total(self):
        total = sum(state.reported for state in self.states.values())
        if total != self.total:
            old = self.total
            self.total = total
            logger.info(f'Unread messages: {old} -> {total}')
            self.total_changed.emit(old, total)
