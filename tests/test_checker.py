"""
Tests for the Link Checker and CLI
==================================
End-to-end runs over local trees; remote validators are never reached
because the trees only hold local links, or are mocked.
"""

import json
import signal
from unittest.mock import MagicMock, patch

import pytest

from markdown_link_check.checker import LinkChecker
from markdown_link_check.cli import build_parser, interrupt_cancels, main
from markdown_link_check.config_logging import (
    BatchError,
    CancelledError,
    CheckError,
    GitHubCredentials,
    LinkCheckConfig,
    PathError,
)
from markdown_link_check.validators import (
    CheckContext,
    FileValidator,
    GitHubValidator,
    HeadlessBrowser,
    MailValidator,
    WebValidator,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('MLC_LOG_LEVEL', 'MLC_LOG_FORMAT', 'MLC_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def browser():
    return MagicMock(spec=HeadlessBrowser)


class TestLinkChecker:
    """Tests for LinkChecker."""

    def test_validator_order(self, browser):
        """Test mail, one GitHub per owner, web, then file."""
        config = LinkCheckConfig(github=[
            GitHubCredentials('first', 't1', 'a'),
            GitHubCredentials('second', 't2', 'b'),
        ])
        validators = LinkChecker('.', config, browser=browser).build_validators()

        assert [type(v) for v in validators] == [
            MailValidator, GitHubValidator, GitHubValidator, WebValidator, FileValidator,
        ]
        assert [v.name for v in validators[1:3]] == ['github:a', 'github:b']
        assert validators[3].browser is browser

    def test_local_tree(self, local_tree, browser):
        """Test every link of a local tree is resolved."""
        records = LinkChecker(str(local_tree), browser=browser).run(CheckContext())

        outcomes = {r.target: r.valid for r in records}
        assert outcomes == {
            'guide/usage.md#getting-started': True,
            '#getting-help': True,
            '../README.md': True,
            '../CHANGELOG.md': False,
        }
        browser.close.assert_called_once()

    def test_ignored_links(self, local_tree, browser):
        """Test ignore rules from the configuration apply."""
        config = LinkCheckConfig(ignore_links=['CHANGELOG'])
        records = LinkChecker(str(local_tree), config, browser=browser).run(CheckContext())
        assert all(r.valid for r in records)

    def test_missing_root(self, tmp_path, browser):
        """Test a missing root fails before validation."""
        with pytest.raises(PathError):
            LinkChecker(str(tmp_path / 'absent'), browser=browser).run(CheckContext())

    def test_check_error_fails_batch(self, local_tree, browser):
        """Test one check error discards the whole run."""
        with patch.object(FileValidator, 'has_heading', side_effect=CheckError('disk gone')):
            with pytest.raises(BatchError):
                LinkChecker(str(local_tree), browser=browser).run(CheckContext())
        browser.close.assert_called_once()

    def test_close_failure_keeps_batch_error(self, local_tree, browser):
        """Test a failing teardown does not replace the run's own error."""
        browser.close.side_effect = CheckError('browser already gone')
        with patch.object(FileValidator, 'has_heading', side_effect=CheckError('disk gone')):
            with pytest.raises(BatchError):
                LinkChecker(str(local_tree), browser=browser).run(CheckContext())

    def test_close_failure_keeps_records(self, local_tree, browser, caplog):
        """Test a failing teardown still returns the records and is logged."""
        browser.close.side_effect = CheckError('browser already gone')

        records = LinkChecker(str(local_tree), browser=browser).run(CheckContext())
        assert len(records) == 4
        assert 'browser already gone' in caplog.text

    def test_progress(self, local_tree, browser):
        """Test progress is reported per link."""
        callback = MagicMock()
        LinkChecker(str(local_tree), browser=browser).run(CheckContext(), progress_callback=callback)
        assert callback.call_count == 4
        assert callback.call_args.args[:2] == (4, 4)


class TestCli:
    """Tests for the command line interface."""

    @pytest.fixture
    def config_path(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("ignore:\n  link: []\n", encoding='utf-8')
        return path

    def test_parser(self):
        """Test the check subcommand arguments."""
        args = build_parser().parse_args(['check', 'docs', '--config', 'c.yaml', '--timeout', '5'])
        assert args.command == 'check'
        assert args.path == 'docs'
        assert args.config == 'c.yaml'
        assert args.timeout == 5.0
        assert args.output == 'text'

    def test_config_required(self):
        """Test the configuration path is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(['check', 'docs'])

    def test_invalid_links_exit_1(self, local_tree, config_path, capsys):
        """Test invalid links are reported with exit code 1."""
        assert main(['check', str(local_tree), '--config', str(config_path)]) == 1

        out = capsys.readouterr().out
        assert out.startswith('guide')
        assert '- ../CHANGELOG.md' in out

    def test_valid_tree_exit_0(self, local_tree, config_path, capsys):
        """Test a clean tree exits 0 and prints nothing."""
        (local_tree / 'CHANGELOG.md').write_text('# Changes\n', encoding='utf-8')

        assert main(['check', str(local_tree), '--config', str(config_path)]) == 0
        assert capsys.readouterr().out == ''

    def test_json_output(self, local_tree, config_path, capsys):
        """Test the JSON report."""
        code = main(['check', str(local_tree), '--config', str(config_path), '--output', 'json'])

        data = json.loads(capsys.readouterr().out)
        assert code == 1
        assert data['summary']['invalid'] == 1

    def test_missing_config(self, local_tree, tmp_path, capsys):
        """Test configuration errors exit 1 with a single message."""
        code = main(['check', str(local_tree), '--config', str(tmp_path / 'absent.yaml')])

        assert code == 1
        assert 'configuration file not found' in capsys.readouterr().err

    def test_missing_path(self, tmp_path, config_path, capsys):
        """Test a missing documentation root exits 1."""
        assert main(['check', str(tmp_path / 'absent'), '--config', str(config_path)]) == 1
        assert 'path does not exist' in capsys.readouterr().err

    def test_invalid_timeout(self, local_tree, config_path, capsys):
        """Test command line overrides are validated."""
        code = main(['check', str(local_tree), '--config', str(config_path), '--timeout', '0'])
        assert code == 1
        assert 'timeout' in capsys.readouterr().err


class TestInterrupt:
    """Tests for SIGINT handling."""

    def test_interrupt_cancels_context(self):
        """Test SIGINT cancels the context and raises."""
        context = CheckContext()
        previous = signal.getsignal(signal.SIGINT)

        with pytest.raises(CancelledError):
            with interrupt_cancels(context):
                handler = signal.getsignal(signal.SIGINT)
                handler(signal.SIGINT, None)

        assert context.cancelled
        assert signal.getsignal(signal.SIGINT) is previous
