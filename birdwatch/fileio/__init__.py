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

from birdwatch.fileio.errors import (
    BirdFileIOError,
    MorkErrorKind,
    MorkParseError,
)
from birdwatch.fileio.mork import MorkDatabase, Record, read_mork_file


__all__ = [
    'load_index',
    'count_unread',
    'is_unread',
    'MSGS_SCOPE',
    'BirdFileIOError',
    'MorkErrorKind',
    'MorkParseError',
    'MorkDatabase',
    'Record',
]

logger = logging.getLogger(__name__)


# Row scope of the message headers in a mail folder index
MSGS_SCOPE = 'ns:msg:db:row:scope:msgs:all'

MSG_FLAG_READ = 0x1
MSG_FLAG_EXPUNGED = 0x8
MSG_FLAG_IMAP_DELETED = 0x200000


def is_unread(record):
    """Whether the message header ``record`` is an unread message."""

    flags = record.get('flags')
    if flags is None:
        # Thunderbird omits the column for flags == 0
        return True
    try:
        flags = int(flags, 16)
    except ValueError:
        logger.debug(f'Ignoring row {record.row_id:#x} with flags {flags!r}')
        return False
    if flags & (MSG_FLAG_EXPUNGED | MSG_FLAG_IMAP_DELETED):
        return False
    return not flags & MSG_FLAG_READ


def count_unread(database):
    """Count unread messages in a parsed mail folder index."""
    return sum(1 for record in database.records(MSGS_SCOPE)
               if len(record) and is_unread(record))


def load_index(filename):
    """Read a mail folder index file.

    :returns: tuple of the :class:`MorkDatabase` and its unread count
    :raises MorkParseError: if the file can't be read
    """
    logger.debug(f'Loading index file {filename}...')
    database = read_mork_file(filename)
    unread = count_unread(database)
    logger.debug(f'{filename}: {unread} unread')
    return database, unread
