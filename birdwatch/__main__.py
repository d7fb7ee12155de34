#!/usr/bin/env python3

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

from functools import partial
import logging
import os
import platform
import signal
import sys

from PyQt6 import QtCore
from PyQt6.QtCore import QTranslator, QLocale, QLibraryInfo

from birdwatch import constants
from birdwatch.translations import TRANSLATIONS_PATH
from birdwatch.config import (
    BirdSettings,
    CommandlineArgs,
    logfile_name,
    settings_events,
)
from birdwatch.fileio import MorkParseError, load_index
from birdwatch.monitor import UnreadMonitor, run_count_change_command

logger = logging.getLogger(__name__)


class BirdWatchApplication(QtCore.QCoreApplication):

    def __init__(self, argv):
        super().__init__(argv)
        self.setOrganizationName(constants.APPNAME)
        self.setApplicationName(constants.APPNAME)
        self.setApplicationVersion(constants.VERSION)


def monitor_options(settings, args):
    """Combine settings and command line into UnreadMonitor arguments.

    Command line options win over stored settings.
    """

    def pick(arg_value, key):
        if arg_value is None:
            return settings.valueOrDefault(key)
        return arg_value

    return {
        'paths': (args.filenames or settings.watched_files()),
        'watch_file_timeout': pick(args.watch_file_timeout,
                                   'Monitor/watch_file_timeout'),
        'reread_interval': pick(args.reread_interval,
                                'Monitor/reread_interval'),
        'ignore_unread_on_start': pick(args.ignore_unread_on_start,
                                       'Monitor/ignore_unread_on_start'),
    }


def read_once(paths):
    """Print the unread count of each file. Returns the exit status."""
    status = 0
    for path in paths:
        try:
            _, unread = load_index(path)
        except MorkParseError as e:
            logger.debug(f'Reading {path} failed', exc_info=True)
            print(f'{path}: {e}', file=sys.stderr)
            status = 1
            continue
        print(f'{path}: {unread}')
    return status


def install_translators(app, settings):
    # Qt base translations
    qt_translator = QTranslator(app)
    qt_path = QLibraryInfo.path(QLibraryInfo.LibraryPath.TranslationsPath)
    if qt_translator.load(QLocale.system(), 'qtbase', '_', qt_path):
        app.installTranslator(qt_translator)

    translator = QTranslator(app)
    # Check user preference first, fall back to system locale
    lang_setting = settings.valueOrDefault('General/language')
    if lang_setting and lang_setting != 'system':
        locale = lang_setting
    else:
        locale = QLocale.system().name()  # e.g., fr_FR

    if translator.load(f'birdwatch_{locale}', TRANSLATIONS_PATH):
        app.installTranslator(translator)
        logger.info(f'Loaded translation for locale: {locale}')
    else:
        # Try language code only (e.g., 'fr' from 'fr_FR')
        lang = locale.split('_')[0]
        if translator.load(f'birdwatch_{lang}', TRANSLATIONS_PATH):
            app.installTranslator(translator)
            logger.info(f'Loaded translation for language: {lang}')


def on_warning_changed(monitor, path):
    message = monitor.warnings().get(path)
    if message:
        logger.warning(f'Warning: {message}')
    else:
        logger.info(f'No more warnings for {path}')


def on_watched_files_changed(monitor):
    monitor.set_paths(BirdSettings().watched_files())


def safe_timer(timeout, func, *args, **kwargs):
    """Create a timer that is safe against garbage collection and
    overlapping calls.
    See: http://ralsina.me/weblog/posts/BB974.html
    """
    def timer_event():
        try:
            func(*args, **kwargs)
        finally:
            QtCore.QTimer.singleShot(timeout, timer_event)
    QtCore.QTimer.singleShot(timeout, timer_event)


def handle_sigint(signum, frame):
    logger.info('Received interrupt. Exiting...')
    QtCore.QCoreApplication.quit()


def handle_uncaught_exception(exc_type, exc, traceback):
    logger.critical('Unhandled exception',
                    exc_info=(exc_type, exc, traceback))
    QtCore.QCoreApplication.quit()


sys.excepthook = handle_uncaught_exception


def main():
    logger.info(f'Starting {constants.APPNAME} version {constants.VERSION}')
    logger.debug('System: %s', ' '.join(platform.uname()))
    logger.debug('Python: %s', platform.python_version())
    logger.debug('LD_LIBRARY_PATH: %s', os.environ.get('LD_LIBRARY_PATH'))
    settings = BirdSettings()
    logger.info(f'Using settings: {settings.fileName()}')
    logger.info(f'Logging to: {logfile_name()}')
    settings.on_startup()
    args = CommandlineArgs(with_check=True)  # Force checking
    assert not args.debug_raise_error, args.debug_raise_error

    app = BirdWatchApplication(sys.argv)
    install_translators(app, settings)

    options = monitor_options(settings, args)
    if not options['paths']:
        logger.error('No index files configured')
        print('No index files to watch. Pass .msf files on the command line '
              'or add them to the settings.', file=sys.stderr)
        return 2

    if args.once:
        return read_once(options['paths'])

    monitor = UnreadMonitor(**options)
    monitor.warning_changed.connect(partial(on_warning_changed, monitor))
    cmdline = (args.run_on_count_change
               or settings.valueOrDefault('Monitor/run_on_count_change'))
    if cmdline:
        monitor.total_changed.connect(
            partial(run_count_change_command, cmdline))
    if not args.filenames:
        settings_events.watched_files_changed.connect(
            partial(on_watched_files_changed, monitor))
    monitor.start()

    signal.signal(signal.SIGINT, handle_sigint)
    # Repeatedly run python-noop to give the interpreter time to
    # handle signals
    safe_timer(50, lambda: None)

    app.exec()
    monitor.stop()
    del monitor
    del app
    logger.debug(f'{constants.APPNAME} closed')
    QtCore.qInstallMessageHandler(None)
    return 0


if __name__ == '__main__':
    sys.exit(main())  # pragma: no cover
