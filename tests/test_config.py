import os.path
from unittest.mock import MagicMock, patch

from birdwatch.config import BirdSettings, settings_events


def test_value_or_default_returns_default(settings):
    assert settings.valueOrDefault('Monitor/watch_file_timeout') == 150
    assert settings.valueOrDefault('Monitor/reread_interval') == 0
    assert settings.valueOrDefault('Monitor/ignore_unread_on_start') is False
    assert settings.valueOrDefault('Monitor/run_on_count_change') == ''
    assert settings.valueOrDefault('Monitor/watched_files') == []
    assert settings.valueOrDefault('General/language') == 'system'


def test_value_or_default_casts_stored_strings(settings):
    settings.setValue('Monitor/watch_file_timeout', '500')
    settings.setValue('Monitor/ignore_unread_on_start', 'true')
    assert settings.valueOrDefault('Monitor/watch_file_timeout') == 500
    assert settings.valueOrDefault('Monitor/ignore_unread_on_start') is True


def test_value_or_default_invalid_value(settings):
    settings.setValue('Monitor/reread_interval', 'often')
    assert settings.valueOrDefault('Monitor/reread_interval') == 0


def test_value_or_default_out_of_range(settings):
    settings.setValue('Monitor/watch_file_timeout', -5)
    assert settings.valueOrDefault('Monitor/watch_file_timeout') == 150


def test_value_changed(settings):
    assert settings.value_changed('Monitor/reread_interval') is False
    settings.setValue('Monitor/reread_interval', 60)
    assert settings.value_changed('Monitor/reread_interval') is True


def test_restore_defaults(settings):
    handler = MagicMock()
    settings_events.restore_defaults.connect(handler)
    settings.setValue('Monitor/reread_interval', 60)
    settings.restore_defaults()
    assert settings.valueOrDefault('Monitor/reread_interval') == 0
    handler.assert_called_once_with()
    settings_events.restore_defaults.disconnect(handler)


def test_on_startup_removes_obsolete_keys(settings):
    settings.setValue('Tray/blink_speed', 5)
    settings.setValue('Monitor/reread_interval', 60)
    settings.on_startup()
    assert settings.contains('Tray/blink_speed') is False
    assert settings.valueOrDefault('Monitor/reread_interval') == 60


def test_watched_files(settings, tmpdir):
    inbox = os.path.join(tmpdir, 'Inbox.msf')
    lists = os.path.join(tmpdir, 'Lists.msf')
    handler = MagicMock()
    settings_events.watched_files_changed.connect(handler)
    settings.set_watched_files([inbox, lists, inbox])
    assert BirdSettings().watched_files() == [inbox, lists]
    handler.assert_called_once_with()
    settings_events.watched_files_changed.disconnect(handler)


def test_watched_files_single(settings, tmpdir):
    inbox = os.path.join(tmpdir, 'Inbox.msf')
    settings.set_watched_files([inbox])
    assert BirdSettings().watched_files() == [inbox]


def test_commandline_args_defaults(commandline_args):
    with patch('sys.argv', ['birdwatch']):
        args = commandline_args(with_check=True)
    assert args.filenames == []
    assert args.once is False
    assert args.watch_file_timeout is None
    assert args.reread_interval is None
    assert args.ignore_unread_on_start is None
    assert args.run_on_count_change is None


def test_commandline_args_options(commandline_args):
    with patch('sys.argv', ['birdwatch', '--once', '--reread-interval', '30',
                            '--ignore-unread-on-start', 'a.msf', 'b.msf']):
        args = commandline_args(with_check=True)
    assert args.filenames == ['a.msf', 'b.msf']
    assert args.once is True
    assert args.reread_interval == 30
    assert args.ignore_unread_on_start is True


def test_commandline_args_is_singleton(commandline_args):
    with patch('sys.argv', ['birdwatch', 'a.msf']):
        args = commandline_args(with_check=True)
    assert commandline_args() is args
    assert commandline_args().filenames == ['a.msf']


def test_logfile_next_to_settings(settings):
    from birdwatch.config import logfile_name
    assert os.path.dirname(logfile_name()) == os.path.dirname(
        settings.fileName())
    assert logfile_name().endswith('BirdWatch.log')


def test_build_logging_conf():
    from birdwatch.config import build_logging_conf
    conf = build_logging_conf('WARNING', '/tmp/birdwatch/BirdWatch.log')
    assert conf['handlers']['console']['level'] == 'WARNING'
    assert conf['handlers']['console']['stream'] == 'ext://sys.stderr'
    assert conf['handlers']['file']['filename'] == (
        '/tmp/birdwatch/BirdWatch.log')
    assert conf['loggers']['birdwatch']['level'] == 'TRACE'
