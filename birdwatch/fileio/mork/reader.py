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

"""Reader for the Mork text database format.

Mork is what Thunderbird and Betterbird use for their ``.msf`` mail
folder index files. A file starts with a version header and then
contains, in any order:

* dictionaries ``< (80=value) ... >`` mapping hex ids to strings; a
  ``<(a=c)>`` meta marks a dictionary of column names,
* tables ``{1:^80 {(k^81:c)} [rows] rowrefs }``,
* rows ``[1:^80 (^82^90)(^83=literal)]``,
* groups ``@$${1A{@ ... @$$}1A}@`` whose content only counts once the
  group is committed,
* comments ``// ...`` up to the end of the line.

Later sections may update rows and tables defined earlier, so the
reader collects everything in mutable builders and only produces the
immutable :class:`~birdwatch.fileio.mork.items.MorkDatabase` at the end.
"""

import logging
import re
import string

from birdwatch.fileio.errors import MorkErrorKind, MorkParseError
from birdwatch.fileio.mork.items import MorkDatabase, MorkTable, Record


logger = logging.getLogger(__name__)

MORK_MAGIC = '// <!-- <mdb:mork:z v="1.4"/> -->'
SUPPORTED_VERSIONS = ('1.4',)

HEADER_RE = re.compile(
    r'^//\s*<!--\s*<mdb:mork:z\s+v="(?P<version>[^"]*)"\s*/>\s*-->\s*$')

WHITESPACE = ' \t\r\n\f\v'
HEXDIGITS = frozenset(string.hexdigits)

# Dictionary namespaces
NS_ATOMS = 'a'
NS_COLUMNS = 'c'

GROUP_START = '$${'
GROUP_END = '@$$}'
GROUP_ABORT = '~abort~'


class _RowBuilder:
    __slots__ = ('row_id', 'scope', 'cells')

    def __init__(self, row_id, scope):
        self.row_id = row_id
        self.scope = scope
        self.cells = {}


class _TableBuilder:
    __slots__ = ('table_id', 'scope', 'kind', 'row_keys')

    def __init__(self, table_id, scope):
        self.table_id = table_id
        self.scope = scope
        self.kind = None
        # Used as an ordered set
        self.row_keys = {}


def _decode(value):
    """Turn the collected bytes of a literal into text.

    The reader works on latin-1 decoded input so that every character
    is one byte of the file; literals are UTF-8.
    """
    return value.encode('latin-1').decode('utf-8', errors='replace')


class MorkReader:
    """Read Mork content into a :class:`MorkDatabase`.

    A reader is good for one :meth:`read` call. Its atom dictionaries
    live only as long as the reader; the returned records hold their
    own copies of all values.
    """

    def __init__(self, content, filename=None):
        if isinstance(content, str):
            content = content.encode('utf-8')
        # One character per byte of the file
        content = bytes(content).decode('latin-1')
        self.text = content
        self.filename = filename
        self.pos = 0
        self.end = len(content)
        self.in_group = False
        self.atoms = {}
        self.columns = {}
        self.rows = {}
        self.tables = {}

    def read(self):
        self._read_header()
        self._read_content()
        db = self._materialize()
        logger.debug(
            f'Read {self.filename or "<data>"}: {len(db.tables)} tables, '
            f'{len(db.rows)} rows, {len(self.atoms)} atoms, '
            f'{len(self.columns)} columns')
        return db

    # Errors

    def _error(self, kind, detail=None):
        return MorkParseError(
            kind, filename=self.filename, pos=self.pos, detail=detail)

    def _eof(self):
        if self.in_group:
            return self._error(MorkErrorKind.UNEXPECTED_END_OF_GROUP)
        return self._error(MorkErrorKind.UNEXPECTED_EOF)

    # Low level scanning

    def _peek(self):
        if self.pos < self.end:
            return self.text[self.pos]
        return None

    def _next(self):
        char = self._peek()
        if char is not None:
            self.pos += 1
        return char

    def _skip_whitespace(self):
        while self.pos < self.end and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def _next_token_char(self):
        self._skip_whitespace()
        return self._next()

    def _scan_until(self, stop_chars, stop_at_whitespace=False):
        """Advance to the next char in ``stop_chars`` without consuming it
        and return what was skipped."""
        start = self.pos
        while True:
            char = self._peek()
            if char is None:
                raise self._eof()
            if char in stop_chars:
                break
            if stop_at_whitespace and char in WHITESPACE:
                break
            self.pos += 1
        return self.text[start:self.pos]

    def _hex(self, token):
        token = token.strip()
        if not token or not HEXDIGITS.issuperset(token):
            raise self._error(
                MorkErrorKind.PARSE_ERROR, f'invalid id {token!r}')
        return int(token, 16)

    # Header

    def _read_header(self):
        eol = self.text.find('\n')
        line = self.text if eol == -1 else self.text[:eol]
        match = HEADER_RE.match(line.strip())
        if not match:
            raise self._error(
                MorkErrorKind.INVALID_FORMAT, 'missing Mork header')
        version = match.group('version')
        if version not in SUPPORTED_VERSIONS:
            raise self._error(
                MorkErrorKind.UNSUPPORTED_VERSION, f'version {version}')
        self.pos = len(line)

    # Top level

    def _read_content(self):
        while True:
            char = self._next_token_char()
            if char is None:
                return
            if char == '<':
                self._read_dict()
            elif char == '/':
                self._read_comment()
            elif char == '{':
                self._read_table()
            elif char == '[':
                self._read_row(None)
            elif char == '@':
                self._read_group()
            else:
                raise self._error(
                    MorkErrorKind.INVALID_FORMAT, f'unexpected {char!r}')

    def _read_comment(self):
        char = self._next()
        if char is None:
            raise self._eof()
        if char != '/':
            raise self._error(MorkErrorKind.INVALID_COMMENT)
        eol = self.text.find('\n', self.pos, self.end)
        self.pos = self.end if eol == -1 else eol + 1

    # Dictionaries

    def _read_dict(self):
        namespace = NS_ATOMS
        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == '>':
                return
            if char == '<':
                namespace = self._read_dict_meta(namespace)
            elif char == '(':
                self._read_alias(namespace)
            elif char == '/':
                self._read_comment()
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR,
                    f'unexpected {char!r} in dictionary')

    def _read_dict_meta(self, namespace):
        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == '>':
                return namespace
            if char == '(':
                name = self._scan_until('=)')
                if self._next() != '=':
                    raise self._error(
                        MorkErrorKind.PARSE_ERROR, 'bad dictionary meta')
                value = self._read_literal()
                if name.strip() == 'a':
                    namespace = value.strip()
            elif char == '/':
                self._read_comment()
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR,
                    f'unexpected {char!r} in dictionary meta')

    def _read_alias(self, namespace):
        alias_id = self._hex(self._scan_until('=)'))
        if self._next() != '=':
            raise self._error(
                MorkErrorKind.PARSE_ERROR, f'alias {alias_id:X} has no value')
        value = self._read_literal()
        if namespace == NS_COLUMNS:
            self.columns[alias_id] = value
        else:
            self.atoms[alias_id] = value

    def _read_literal(self):
        """Read a literal value up to and including the closing ``)``."""
        chars = []
        while True:
            char = self._next()
            if char is None:
                raise self._eof()
            if char == ')':
                break
            if char == '\\':
                char = self._next()
                if char is None:
                    raise self._eof()
                if char == '\r':
                    if self._peek() == '\n':
                        self.pos += 1
                    continue
                if char == '\n':
                    continue
                chars.append(char)
            elif char == '$':
                if self.pos + 2 > self.end:
                    self.pos = self.end
                    raise self._eof()
                digits = self.text[self.pos:self.pos + 2]
                if not HEXDIGITS.issuperset(digits):
                    raise self._error(
                        MorkErrorKind.PARSE_ERROR,
                        f'invalid escape ${digits}')
                chars.append(chr(int(digits, 16)))
                self.pos += 2
            else:
                chars.append(char)
        return _decode(''.join(chars))

    # Ids and references

    def _read_object_id(self, default_scope, stop_chars):
        """Read ``[-]ID[:SCOPE]`` and return ``(cut, id, scope)``."""
        self._skip_whitespace()
        cut = False
        if self._peek() == '-':
            cut = True
            self.pos += 1
        token = self._scan_until(stop_chars, stop_at_whitespace=True)
        ident, sep, scope = token.partition(':')
        object_id = self._hex(ident)
        if sep:
            scope = self._resolve_scope(scope)
        else:
            scope = default_scope
        return cut, object_id, scope

    def _resolve_scope(self, scope):
        if not scope.startswith('^'):
            return scope
        ref = self._hex(scope[1:])
        name = self.columns.get(ref, self.atoms.get(ref))
        if name is None:
            logger.debug(f'Unresolved scope reference {scope}')
            return scope
        return name

    def _column_name(self, column_id):
        name = self.columns.get(column_id, self.atoms.get(column_id))
        if name is None:
            logger.debug(f'Unresolved column reference ^{column_id:X}')
        return name

    def _atom_value(self, token):
        ident, _, namespace = token.partition(':')
        atom_id = self._hex(ident)
        if namespace == NS_COLUMNS:
            value = self.columns.get(atom_id)
        else:
            value = self.atoms.get(atom_id)
        if value is None:
            logger.debug(f'Unresolved atom reference ^{token}')
        return value

    # Cells and rows

    def _read_cell(self):
        """Read a cell after its ``(`` and return ``(column, value)``.

        Either part is None when it refers to an unknown atom; a cell
        without a value like ``(^81)`` also has None as its value.
        """
        if self._peek() == '^':
            self.pos += 1
            column = self._column_name(self._hex(self._scan_until('=^)')))
        else:
            column = self._scan_until('=^)').strip()
            if not column:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR, 'cell without column')

        char = self._next()
        if char == '=':
            value = self._read_literal()
        elif char == '^':
            token = self._scan_until(')')
            self.pos += 1
            value = self._atom_value(token)
        else:
            value = None
        return column, value

    def _read_row(self, default_scope):
        """Read a row after its ``[`` and return its key."""
        cut, row_id, scope = self._read_object_id(default_scope, '([]')
        key = (scope, row_id)
        row = self.rows.get(key)
        if row is None:
            row = self.rows[key] = _RowBuilder(row_id, scope)
        elif cut:
            row.cells.clear()

        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == ']':
                return key
            if char == '(':
                column, value = self._read_cell()
                if column is not None and value is not None:
                    row.cells[column] = value
            elif char == '-':
                if self._next_token_char() != '(':
                    if self.pos >= self.end:
                        raise self._eof()
                    raise self._error(
                        MorkErrorKind.PARSE_ERROR, 'bad cell removal')
                column, _ = self._read_cell()
                row.cells.pop(column, None)
            elif char == '[':
                self._read_row_meta()
            elif char == '/':
                self._read_comment()
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR, f'unexpected {char!r} in row')

    def _read_row_meta(self):
        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == ']':
                return
            if char == '(':
                self._read_cell()
            elif char == '/':
                self._read_comment()
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR,
                    f'unexpected {char!r} in row meta')

    def _ensure_row(self, key):
        if key not in self.rows:
            self.rows[key] = _RowBuilder(key[1], key[0])

    # Tables

    def _read_table(self):
        cut, table_id, scope = self._read_object_id(None, '{[(}')
        key = (scope, table_id)
        table = self.tables.get(key)
        if table is None:
            table = self.tables[key] = _TableBuilder(table_id, scope)
        elif cut:
            table.row_keys.clear()

        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == '}':
                return
            if char == '{':
                self._read_table_meta(table)
            elif char == '[':
                table.row_keys[self._read_row(scope)] = None
            elif char == '-':
                if self._peek() == '[':
                    self.pos += 1
                    row_key = self._read_row(scope)
                else:
                    _, row_id, row_scope = self._read_object_id(
                        scope, '{[(}')
                    row_key = (row_scope, row_id)
                table.row_keys.pop(row_key, None)
            elif char == '/':
                self._read_comment()
            elif char in HEXDIGITS:
                self.pos -= 1
                _, row_id, row_scope = self._read_object_id(scope, '{[(}')
                row_key = (row_scope, row_id)
                self._ensure_row(row_key)
                table.row_keys[row_key] = None
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR,
                    f'unexpected {char!r} in table')

    def _read_table_meta(self, table):
        while True:
            char = self._next_token_char()
            if char is None:
                raise self._eof()
            if char == '}':
                return
            if char == '(':
                column, value = self._read_cell()
                if column == 'k' and value is not None:
                    table.kind = value
            elif char == '/':
                self._read_comment()
            else:
                raise self._error(
                    MorkErrorKind.PARSE_ERROR,
                    f'unexpected {char!r} in table meta')

    # Groups

    def _read_group(self):
        if self.in_group:
            raise self._error(MorkErrorKind.PARSE_ERROR, 'nested group')
        if not self.text.startswith(GROUP_START, self.pos, self.end):
            if self.pos + len(GROUP_START) > self.end:
                self.pos = self.end
                raise self._eof()
            raise self._error(MorkErrorKind.PARSE_ERROR, 'bad group start')
        self.pos += len(GROUP_START)

        brace = self.text.find('{@', self.pos, self.end)
        if brace == -1:
            self.pos = self.end
            raise self._eof()
        group_id = self._hex(self.text[self.pos:brace])
        content_start = brace + 2

        marker = self.text.find(GROUP_END, content_start, self.end)
        if marker == -1:
            self.pos = self.end
            raise self._eof()
        nested = self.text.find('@' + GROUP_START, content_start, marker)
        if nested != -1:
            self.pos = nested
            raise self._error(MorkErrorKind.PARSE_ERROR, 'nested group')
        aborted, after = self._read_group_end(marker, group_id)

        if aborted:
            logger.debug(f'Skipping aborted group {group_id:X}')
            self.pos = after
            return

        outer_end = self.end
        self.pos = content_start
        self.end = marker
        self.in_group = True
        try:
            self._read_content()
        finally:
            self.end = outer_end
            self.in_group = False
        self.pos = after

    def _read_group_end(self, marker, group_id):
        """Check the terminator at ``marker``.

        Returns whether the group was aborted and the position after the
        terminator.
        """
        self.pos = marker
        start = marker + len(GROUP_END)
        close = self.text.find('}', start, self.end)
        if close == -1:
            self.pos = self.end
            raise self._eof()
        if close + 1 >= self.end:
            self.pos = self.end
            raise self._eof()
        if self.text[close + 1] != '@':
            raise self._error(MorkErrorKind.UNEXPECTED_END_OF_GROUP)

        token = self.text[start:close]
        if token == '~~':
            return True, close + 2
        aborted = token.startswith(GROUP_ABORT)
        if aborted:
            token = token[len(GROUP_ABORT):]
        token = token.strip()
        if (not token or not HEXDIGITS.issuperset(token)
                or int(token, 16) != group_id):
            raise self._error(
                MorkErrorKind.UNEXPECTED_END_OF_GROUP,
                f'group {group_id:X} closed as {token!r}')
        return aborted, close + 2

    # Result

    def _materialize(self):
        records = {
            key: Record(row.row_id, row.scope, row.cells)
            for key, row in self.rows.items()
        }
        tables = [
            MorkTable(table.table_id,
                      table.scope,
                      table.kind,
                      [records[key] for key in table.row_keys])
            for table in self.tables.values()
        ]
        return MorkDatabase(tables, records.values())


def read_mork_file(filename):
    """Read the Mork file at ``filename`` into a :class:`MorkDatabase`.

    :raises MorkParseError: if the file can't be opened or isn't valid
        Mork.
    """
    try:
        with open(filename, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise MorkParseError(
            MorkErrorKind.FILE_NOT_OPENABLE,
            filename=filename,
            detail=e.strerror) from e
    return MorkReader(data, filename).read()
