import unittest
from unittest.mock import Mock, patch

from hamcrest import assert_that, is_, none

from linecast.cli import parse_args, overrides, main, run
from linecast.config.config import ConfigError
from linecast.credentials import CredentialError


class ParseArgsTest(unittest.TestCase):
    def test_short_options(self):
        args = parse_args(['-f', 'feed.txt', '-p', '9000', '-a', 'feedhost', '-r', '-d', '0.5', '-i',
                           '-s', 'feedcert', '-c', 'feed.cfg', '-v'])
        assert_that(args.file, is_('feed.txt'))
        assert_that(args.port, is_(9000))
        assert_that(args.host, is_('feedhost'))
        assert_that(args.repeat, is_(True))
        assert_that(args.delay, is_(0.5))
        assert_that(args.include_terminator, is_(True))
        assert_that(args.credential, is_('feedcert'))
        assert_that(args.config, is_('feed.cfg'))
        assert_that(args.verbose, is_(True))

    def test_options_not_given(self):
        args = parse_args(['-f', 'feed.txt', '-p', '9000'])
        assert_that(args.host, is_(none()))
        assert_that(args.repeat, is_(none()))
        assert_that(args.delay, is_(none()))
        assert_that(args.include_terminator, is_(none()))
        assert_that(args.credential, is_(none()))

    def test_overrides_leave_out_options_not_given(self):
        args = parse_args(['-f', 'feed.txt', '-p', '9000', '-d', '0'])
        assert_that(overrides(args), is_({'broadcast': {'file': 'feed.txt', 'port': 9000, 'delay': 0.0},
                                          'tls': {}}))

    def test_overrides_credential(self):
        args = parse_args(['-s', 'feedcert', '-r', '-i'])
        assert_that(overrides(args), is_({'broadcast': {'repeat': True, 'include_terminator': True},
                                          'tls': {'credential': 'feedcert'}}))


@patch('linecast.cli.configure_logging')
class MainTest(unittest.TestCase):
    def test_invalid_configuration(self, configure_logging):
        with patch('linecast.cli.configure', side_effect=ConfigError("port 0 is not valid")), \
                patch('linecast.cli.run') as run_:
            assert_that(main(['-f', 'feed.txt', '-p', '0']), is_(2))
            run_.assert_not_called()

    def test_missing_credential(self, configure_logging):
        with patch('linecast.cli.configure', side_effect=CredentialError("certificate 'x' not found")), \
                patch('linecast.cli.run') as run_:
            assert_that(main(['-f', 'feed.txt', '-p', '9000', '-s', 'x']), is_(2))
            run_.assert_not_called()

    def test_runs_with_configuration(self, configure_logging):
        with patch('linecast.cli.configure') as configure, patch('linecast.cli.run', return_value=0) as run_:
            assert_that(main(['-f', 'feed.txt', '-p', '9000', '-c', 'feed.cfg']), is_(0))
            configure.assert_called_once_with('feed.cfg', {'broadcast': {'file': 'feed.txt', 'port': 9000},
                                                           'tls': {}})
            run_.assert_called_once_with(configure.return_value)
        configure_logging.assert_called_once_with(False)


class RunTest(unittest.TestCase):
    def setUp(self):
        self.config = Mock()
        self.config.stop_timeout = 8
        self.task = Mock()

    def test_runs_until_finished(self):
        self.task.await_stop.side_effect = [False, False, True]
        with patch('linecast.cli.start', return_value=self.task):
            assert_that(run(self.config), is_(0))
        assert_that(self.task.publish.call_count, is_(3))
        self.task.request_stop.assert_not_called()

    def test_interrupt_requests_stop(self):
        self.task.await_stop.side_effect = [KeyboardInterrupt, True]
        with patch('linecast.cli.start', return_value=self.task):
            assert_that(run(self.config), is_(0))
        self.task.request_stop.assert_called_once_with()
        self.task.await_stop.assert_called_with(8)

    def test_interrupt_stop_timeout(self):
        self.task.await_stop.side_effect = [KeyboardInterrupt, False]
        with patch('linecast.cli.start', return_value=self.task):
            assert_that(run(self.config), is_(0))

    def test_fatal_error(self):
        def start(config, listeners, on_fatal_error):
            on_fatal_error(IOError("disk gone"))
            self.task.await_stop.return_value = True
            return self.task
        with patch('linecast.cli.start', side_effect=start):
            assert_that(run(self.config), is_(1))
