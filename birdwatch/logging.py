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

import logging
from logging.handlers import RotatingFileHandler
import os

from PyQt6 import QtCore


TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, 'TRACE')


class BirdLogger(logging.getLoggerClass()):

    def trace(self, msg, *args, **kwargs):
        self.log(TRACE, msg, *args, **kwargs)


logging.setLoggerClass(BirdLogger)


class BirdRotatingFileHandler(RotatingFileHandler):
    """Rotating file handler that creates the log directory on demand."""

    def __init__(self, filename, **kwargs):
        dirname = os.path.dirname(filename)
        if dirname and not os.path.exists(dirname):
            os.makedirs(dirname)
        super().__init__(filename, **kwargs)


qtlogger = logging.getLogger('Qt')


def qt_message_handler(mode, context, msg):
    """Redirect messages from Qt's own logging to the ``Qt`` logger."""

    if context and context.file:
        msg = (f'{msg}: File {context.file}, line {context.line}, '
               f'in {context.function}')

    if mode == QtCore.QtMsgType.QtDebugMsg:
        qtlogger.debug(msg)
    elif mode == QtCore.QtMsgType.QtInfoMsg:
        qtlogger.info(msg)
    elif mode == QtCore.QtMsgType.QtWarningMsg:
        qtlogger.warning(msg)
    elif mode == QtCore.QtMsgType.QtCriticalMsg:
        qtlogger.error(msg)
    elif mode == QtCore.QtMsgType.QtFatalMsg:
        qtlogger.critical(msg)
    else:
        qtlogger.info(msg)
