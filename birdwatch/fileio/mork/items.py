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

"""Immutable result objects of a Mork read."""

from collections.abc import Mapping


class Record(Mapping):
    """One row of a Mork table: column name -> value.

    Records are read-only. All values are plain strings owned by the
    record, so a record stays valid after the reader and its atom
    dictionaries are gone.
    """

    __slots__ = ('_row_id', '_scope', '_cells')

    def __init__(self, row_id, scope, cells):
        self._row_id = row_id
        self._scope = scope
        self._cells = dict(cells)

    @property
    def row_id(self):
        return self._row_id

    @property
    def scope(self):
        return self._scope

    def __getitem__(self, column):
        return self._cells[column]

    def __iter__(self):
        return iter(self._cells)

    def __len__(self):
        return len(self._cells)

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented
        return ((self._row_id, self._scope, self._cells)
                == (other._row_id, other._scope, other._cells))

    __hash__ = None

    def __repr__(self):
        return (f'Record(row_id={self._row_id:#x}, scope={self._scope!r}, '
                f'cells={self._cells!r})')


class MorkTable:
    """A table of records sharing a scope."""

    __slots__ = ('_table_id', '_scope', '_kind', '_records')

    def __init__(self, table_id, scope, kind, records):
        self._table_id = table_id
        self._scope = scope
        self._kind = kind
        self._records = tuple(records)

    @property
    def table_id(self):
        return self._table_id

    @property
    def scope(self):
        return self._scope

    @property
    def kind(self):
        return self._kind

    @property
    def records(self):
        return self._records

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __eq__(self, other):
        if not isinstance(other, MorkTable):
            return NotImplemented
        return ((self._table_id, self._scope, self._kind, self._records)
                == (other._table_id, other._scope, other._kind,
                    other._records))

    __hash__ = None

    def __repr__(self):
        return (f'MorkTable(table_id={self._table_id:#x}, '
                f'scope={self._scope!r}, kind={self._kind!r}, '
                f'records={len(self._records)})')


class MorkDatabase:
    """Everything read from one Mork file.

    ``tables`` keeps the order in which tables first appeared in the
    file. ``rows`` holds every row, including rows that were defined
    outside of any table.
    """

    __slots__ = ('_tables', '_rows')

    def __init__(self, tables, rows):
        self._tables = tuple(tables)
        self._rows = tuple(rows)

    @property
    def tables(self):
        return self._tables

    @property
    def rows(self):
        return self._rows

    def table(self, scope, kind=None):
        """Return the first table in ``scope`` (and of ``kind``), or None."""
        for table in self._tables:
            if table.scope != scope:
                continue
            if kind is None or table.kind == kind:
                return table
        return None

    def records(self, scope):
        """All records in ``scope`` that belong to at least one table."""
        seen = set()
        result = []
        for table in self._tables:
            if table.scope != scope:
                continue
            for record in table:
                key = (record.scope, record.row_id)
                if key not in seen:
                    seen.add(key)
                    result.append(record)
        return result

    def __eq__(self, other):
        if not isinstance(other, MorkDatabase):
            return NotImplemented
        return (self._tables, self._rows) == (other._tables, other._rows)

    __hash__ = None

    def __repr__(self):
        return (f'MorkDatabase(tables={len(self._tables)}, '
                f'rows={len(self._rows)})')
