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

import enum

from PyQt6 import QtCore


class BirdFileIOError(Exception):
    def __init__(self, msg, filename):
        super().__init__(msg)
        self.msg = msg
        self.filename = filename


class MorkErrorKind(enum.Enum):
    """Reasons for a failed index file read.

    The value is the untranslated message shown to the user.
    """

    FILE_NOT_OPENABLE = "Couldn't open file: "
    UNSUPPORTED_VERSION = 'Unsupported version.'
    INVALID_FORMAT = 'Invalid format.'
    PARSE_ERROR = 'Parsing error.'
    UNEXPECTED_EOF = 'Unexpected EOF.'
    INVALID_COMMENT = 'Invalid comment.'
    UNEXPECTED_END_OF_GROUP = 'Unexpected end of group.'


class MorkParseError(BirdFileIOError):
    """Reading a Mork index file failed.

    ``pos`` is the character offset at which the reader gave up, or
    ``None`` if the error is not tied to a position.
    """

    def __init__(self, kind, filename=None, pos=None, detail=None):
        msg = QtCore.QCoreApplication.translate('MorkParser', kind.value)
        if kind == MorkErrorKind.FILE_NOT_OPENABLE:
            msg = f'{msg}{filename}'
        super().__init__(msg, filename)
        self.kind = kind
        self.pos = pos
        self.detail = detail

    def __str__(self):
        parts = [self.msg]
        if self.pos is not None:
            parts.append(f'(at offset {self.pos})')
        if self.detail:
            parts.append(self.detail)
        return ' '.join(parts)
