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

"""Settings, command line and logging setup.

Importing this package configures logging, so it should be imported
before anything logs.
"""

import logging
import logging.config
import os.path

from PyQt6 import QtCore

from birdwatch import constants
from birdwatch.config.settings import (   # noqa F401
    BirdSettings,
    CommandlineArgs,
    settings_events,
)
from birdwatch.logging import qt_message_handler


logger = logging.getLogger(__name__)


def logfile_name():
    """The log file lives next to the settings file."""
    return os.path.join(
        os.path.dirname(BirdSettings().fileName()), f'{constants.APPNAME}.log')


def build_logging_conf(loglevel, logfile):
    # Console output goes to stderr; stdout is reserved for the unread
    # counts printed with --once
    handlers = ['console', 'file']
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'verbose': {
                'format': '{asctime} {levelname:<7} {name}: {message}',
                'style': '{',
            },
            'simple': {
                'format': '{levelname} {name}: {message}',
                'style': '{',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'stream': 'ext://sys.stderr',
                'formatter': 'simple',
                'level': loglevel,
            },
            'file': {
                'class': 'birdwatch.logging.BirdRotatingFileHandler',
                'formatter': 'verbose',
                'filename': logfile,
                'maxBytes': 1024 * 1000,  # 1MB
                'backupCount': 1,
                'level': 'DEBUG',
                'delay': True,
            },
        },
        'loggers': {
            'birdwatch': {
                'handlers': handlers,
                'level': 'TRACE',
                'propagate': False,
            },
            'Qt': {
                'handlers': handlers,
                'level': 'DEBUG',
                'propagate': False,
            },
        },
        'root': {
            'handlers': handlers,
            'level': 'WARNING',
        },
    }


logging_conf = build_logging_conf(CommandlineArgs().loglevel, logfile_name())
logging.config.dictConfig(logging_conf)

# Redirect Qt logging to Python logger:
QtCore.qInstallMessageHandler(qt_message_handler)
