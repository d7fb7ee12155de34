import pytest

from birdwatch.fileio import (
    MSGS_SCOPE,
    MorkErrorKind,
    MorkParseError,
    Record,
    count_unread,
    is_unread,
    load_index,
)
from birdwatch.fileio.mork import MorkReader


@pytest.mark.parametrize('flags,expected', [
    ('0', True),
    ('1', False),
    ('10000', True),
    ('10001', False),
    ('8', False),
    ('200000', False),
    ('A', False),
    ('nonsense', False),
])
def test_is_unread(flags, expected):
    assert is_unread(Record(1, MSGS_SCOPE, {'flags': flags})) is expected


def test_is_unread_without_flags():
    assert is_unread(Record(1, MSGS_SCOPE, {'subject': 'Spam'})) is True


def test_count_unread_sample(inbox_msf):
    database, unread = load_index(inbox_msf)
    assert unread == 3
    assert count_unread(database) == 3


def test_count_unread_ignores_other_scopes_and_empty_rows():
    database = MorkReader(
        '// <!-- <mdb:mork:z v="1.4"/> -->\n'
        '< <(a=c)> (80=ns:msg:db:row:scope:msgs:all)(81=flags)'
        '(82=other:scope)>\n'
        '{1:^80 [1(^81=0)] [2] [3(^81=1)]}\n'
        '{1:^82 [1(^81=0)]}\n').read()
    assert count_unread(database) == 1


def test_count_unread_without_message_table():
    database = MorkReader('// <!-- <mdb:mork:z v="1.4"/> -->\n').read()
    assert count_unread(database) == 0


def test_load_index_generated(write_index):
    path = write_index('Inbox.msf', unread=4, read=6)
    _, unread = load_index(path)
    assert unread == 4


def test_load_index_raises_for_broken_file(write_index):
    path = write_index('Broken.msf', 0, content='not a mork file')
    with pytest.raises(MorkParseError) as exc_info:
        load_index(path)
    assert exc_info.value.kind == MorkErrorKind.INVALID_FORMAT
    assert exc_info.value.filename == path
