import os.path
import pytest
import uuid

from unittest.mock import MagicMock, patch


MORK_HEADER = '// <!-- <mdb:mork:z v="1.4"/> -->'


def pytest_configure(config):
    # Ignore logging configuration for BirdWatch during test runs. This
    # avoids logging to the regular log file and spamming test output
    # with debug messages.
    #
    # This needs to be done before the application code is even loaded since
    # logging configuration happens on module level
    import logging.config
    logging.config.dictConfig = MagicMock

    # Disable translations during tests by setting locale to C
    # This must be done before the application is created
    import os
    os.environ['LANGUAGE'] = 'C'
    os.environ['LC_ALL'] = 'C'
    os.environ['LANG'] = 'C'


@pytest.fixture(autouse=True)
def settings(tmpdir):
    from birdwatch.config import BirdSettings
    dir_patcher = patch('birdwatch.config.BirdSettings.get_settings_dir',
                        return_value=str(tmpdir))
    dir_patcher.start()
    settings = BirdSettings()
    yield settings
    settings.clear()
    dir_patcher.stop()


@pytest.fixture
def commandline_args():
    from birdwatch.config import CommandlineArgs
    yield CommandlineArgs
    CommandlineArgs._instance = None


@pytest.fixture
def assetsdir():
    yield os.path.join(os.path.dirname(__file__), 'assets')


@pytest.fixture
def inbox_msf(assetsdir):
    yield os.path.join(assetsdir, 'inbox.msf')


@pytest.fixture
def tmpfile(tmpdir):
    yield os.path.join(tmpdir, str(uuid.uuid4()))


def mork_index(unread, read=0):
    """Content of a minimal folder index with the given message counts."""
    lines = [
        MORK_HEADER,
        '< <(a=c)> (80=ns:msg:db:row:scope:msgs:all)(81=subject)'
        '(87=flags)(90=ns:msg:db:table:kind:msgs)>',
        '{1:^80 {(k^90:c)(s=9)}',
    ]
    for i in range(unread + read):
        flags = '1' if i >= unread else '0'
        lines.append(f'  [{i + 1:X}(^81=Message {i + 1})(^87={flags})]')
    lines.append('}')
    return '\n'.join(lines) + '\n'


@pytest.fixture
def write_index(tmpdir):
    def write(name, unread, read=0, content=None):
        path = os.path.join(tmpdir, name)
        if content is None:
            content = mork_index(unread, read)
        with open(path, 'w') as f:
            f.write(content)
        return path
    yield write


@pytest.fixture(scope="session")
def qapp():
    from birdwatch.__main__ import BirdWatchApplication
    yield BirdWatchApplication([])
