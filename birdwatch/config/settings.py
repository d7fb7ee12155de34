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

import argparse
import logging
import os
import os.path

from PyQt6 import QtCore

from birdwatch import constants


logger = logging.getLogger(__name__)


parser = argparse.ArgumentParser(
    prog=constants.APPNAME.lower(),
    description=f'{constants.APPNAME_FULL} {constants.VERSION}')
parser.add_argument(
    'filenames',
    nargs='*',
    default=None,
    help=('Mail folder index files (.msf) to watch. '
          'Overrides the watched files stored in the settings'))
parser.add_argument(
    '-l', '--loglevel',
    default=os.environ.get('BIRDWATCH_LOGLEVEL', 'INFO'),
    choices=list(logging._nameToLevel.keys()),
    help='log level for console output')
parser.add_argument(
    '--settings-dir',
    help='settings directory to use instead of default location')
parser.add_argument(
    '--once',
    default=False,
    action='store_true',
    help='read each index file once, print the unread counts and exit')
parser.add_argument(
    '--watch-file-timeout',
    type=int,
    help=('milliseconds to wait after the last change of an index file '
          'before reading it'))
parser.add_argument(
    '--reread-interval',
    type=int,
    help=('reread all index files every N seconds even if they did not '
          'change (0 disables)'))
parser.add_argument(
    '--run-on-count-change',
    help=('command to start when the unread count changes; %%NEW%% and '
          '%%OLD%% are replaced by the new and old count'))
parser.add_argument(
    '--ignore-unread-on-start',
    default=None,
    action='store_true',
    help='ignore messages that are already unread at startup')
parser.add_argument(
    '--debug-raise-error',
    default='',
    help='Immediately exit with given error message')


class CommandlineArgs:
    """Wrapper around argument parsing.

    This is a singleton so that the command line is only parsed once.
    Unknown arguments are only rejected when ``with_check`` is given,
    which is what the real application does; everything else (tests,
    modules reading the log level at import time) tolerates them.
    """

    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None or kwargs.get('with_check'):
            cls._instance = super().__new__(cls)
            cls._instance._args = None
        return cls._instance

    def __init__(self, with_check=False):
        if self._args is None:
            if with_check:
                self._args = parser.parse_args()
            else:
                self._args = parser.parse_known_args()[0]

    def __getattribute__(self, name):
        if name == '_args':
            return super().__getattribute__(name)
        return getattr(self._args, name)


def _to_bool(value):
    if isinstance(value, str):
        return value.lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def _to_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [str(v) for v in value]


class BirdSettingsEvents(QtCore.QObject):
    restore_defaults = QtCore.pyqtSignal()
    watched_files_changed = QtCore.pyqtSignal()


# We want to send and receive settings events globally, not per
# BirdSettings instance. Since we can't create class attributes of type
# pyqtSignal for BirdSettings (it's not a QObject), we need a separate
# instance.
settings_events = BirdSettingsEvents()


class BirdSettings(QtCore.QSettings):

    FIELDS = {
        'Monitor/watched_files': {
            'default': [],
            'cast': _to_list,
        },
        'Monitor/watch_file_timeout': {
            'default': 150,
            'cast': int,
            'validate': lambda x: 0 <= x <= 60000,
        },
        'Monitor/reread_interval': {
            'default': 0,
            'cast': int,
            'validate': lambda x: 0 <= x <= 86400,
        },
        'Monitor/ignore_unread_on_start': {
            'default': False,
            'cast': _to_bool,
        },
        'Monitor/run_on_count_change': {
            'default': '',
            'cast': str,
        },
        'General/language': {
            'default': 'system',
            'cast': str,
        },
    }

    def __init__(self):
        settings_format = QtCore.QSettings.Format.IniFormat
        settings_scope = QtCore.QSettings.Scope.UserScope
        settings_dir = self.get_settings_dir()
        if settings_dir:
            QtCore.QSettings.setPath(
                settings_format, settings_scope, settings_dir)
        super().__init__(
            settings_format,
            settings_scope,
            constants.APPNAME,
            constants.APPNAME)

    @staticmethod
    def get_settings_dir():
        return (CommandlineArgs().settings_dir
                or os.environ.get('BIRDWATCH_SETTINGS_DIR'))

    def valueOrDefault(self, key):
        """Get the value for key, or the default value specified in FIELDS.

        Values that cannot be cast to the expected type or that fail
        validation are replaced by the default.
        """

        field = self.FIELDS[key]
        default = field['default']
        val = self.value(key, default)

        if 'cast' in field:
            try:
                val = field['cast'](val)
            except (TypeError, ValueError):
                logger.warning(
                    f'Invalid value for setting {key}: {val!r}, using '
                    f'default {default!r}')
                return default

        if 'validate' in field and not field['validate'](val):
            logger.warning(
                f'Setting {key} out of range: {val!r}, using '
                f'default {default!r}')
            return default
        return val

    def value_changed(self, key):
        """Whether the given setting differs from its default value."""
        return self.valueOrDefault(key) != self.FIELDS[key]['default']

    def restore_defaults(self):
        logger.debug('Restoring settings to defaults')
        for key in self.FIELDS.keys():
            self.remove(key)
        settings_events.restore_defaults.emit()

    def on_startup(self):
        """Settings cleanup to be run on application start."""

        # Drop keys that are no longer supported
        for key in self.allKeys():
            if key not in self.FIELDS:
                logger.debug(f'Removing obsolete setting {key}')
                self.remove(key)

    def watched_files(self):
        return self.valueOrDefault('Monitor/watched_files')

    def set_watched_files(self, filenames):
        filenames = [os.path.abspath(f) for f in filenames]
        # Keep the order the user added them, without duplicates
        filenames = list(dict.fromkeys(filenames))
        logger.debug(f'Setting watched files to: {filenames}')
        self.setValue('Monitor/watched_files', filenames)
        settings_events.watched_files_changed.emit()
