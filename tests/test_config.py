"""
Tests for Configuration & Logging
=================================
Tests for YAML loading, environment overrides, the error family and the
structured logging helpers.
"""

import io
import json
import logging

import pytest

from markdown_link_check.config_logging import (
    BatchError,
    CheckError,
    ConfigError,
    HeaderOverride,
    JsonFormatter,
    LinkCheckConfig,
    WebConfig,
    configure_logging,
    get_logger,
    load_config,
    log_operation,
    parse_config,
)


FULL_CONFIG = """
ignore:
  file:
    - "drafts/"
  link:
    - "^https://localhost"
provider:
  web:
    header:
      User-Agent: "link-check"
      Accept:
        - "text/html"
        - "application/xhtml+xml"
    overwrite:
      - endpoint: "^https://intranet\\\\."
        header:
          Authorization: "Bearer internal"
      - endpoint: "intranet"
        header:
          Authorization: "Bearer other"
  github:
    main:
      owner: "acme"
      token: "${MLC_TEST_TOKEN}"
timeout: 12
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep MLC_* overrides from the host out of the tests."""
    for name in ('MLC_LOG_LEVEL', 'MLC_LOG_FORMAT', 'MLC_TIMEOUT'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.setenv('MLC_TEST_TOKEN', 'secret-token')
    path = tmp_path / 'config.yaml'
    path.write_text(FULL_CONFIG, encoding='utf-8')
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_full_config(self, config_file):
        """Test every section is mapped."""
        config = load_config(config_file)

        assert config.ignore_files == ['drafts/']
        assert config.ignore_links == ['^https://localhost']
        assert config.timeout == 12.0
        assert config.web.headers == {
            'User-Agent': 'link-check',
            'Accept': 'text/html, application/xhtml+xml',
        }
        assert [o.endpoint for o in config.web.overrides] == ['^https://intranet\\.', 'intranet']
        assert len(config.github) == 1
        assert config.github[0].owner == 'acme'
        assert config.github[0].token == 'secret-token'
        assert config.github[0].label == 'main'

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test an empty document yields the defaults."""
        path = tmp_path / 'config.yaml'
        path.write_text('', encoding='utf-8')

        config = load_config(path)
        assert config.ignore_files == []
        assert config.github == []
        assert config.web.headers == {}
        assert config.timeout == 30

    def test_missing_file(self, tmp_path):
        """Test a missing file raises ConfigError."""
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / 'absent.yaml')
        assert 'not found' in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        """Test a syntax error raises ConfigError."""
        path = tmp_path / 'config.yaml'
        path.write_text('ignore: [unclosed\n', encoding='utf-8')
        with pytest.raises(ConfigError):
            load_config(path)

    def test_unset_token_variable(self, tmp_path, monkeypatch):
        """Test a token expanding to nothing is rejected."""
        monkeypatch.delenv('MLC_TEST_TOKEN', raising=False)
        path = tmp_path / 'config.yaml'
        path.write_text(FULL_CONFIG, encoding='utf-8')
        with pytest.raises(ConfigError) as exc_info:
            load_config(path)
        assert exc_info.value.field == 'provider.github.main.token'

    def test_env_overrides(self, config_file, monkeypatch):
        """Test MLC_* variables override file values."""
        monkeypatch.setenv('MLC_TIMEOUT', '5')
        monkeypatch.setenv('MLC_LOG_FORMAT', 'JSON')
        monkeypatch.setenv('MLC_LOG_LEVEL', 'debug')

        config = load_config(config_file)
        assert config.timeout == 5.0
        assert config.log_format == 'json'
        assert config.log_level == 'DEBUG'

    def test_invalid_env_override(self, config_file, monkeypatch):
        """Test an unsupported log format is reported."""
        monkeypatch.setenv('MLC_LOG_FORMAT', 'xml')
        with pytest.raises(ConfigError) as exc_info:
            load_config(config_file)
        assert 'log format' in str(exc_info.value)


class TestParseConfig:
    """Tests for parse_config() validation."""

    def test_root_must_be_mapping(self):
        """Test a list at the root is rejected."""
        with pytest.raises(ConfigError):
            parse_config(['not', 'a', 'mapping'])

    def test_invalid_regex(self):
        """Test an invalid ignore pattern names its field."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({'ignore': {'link': ['(unclosed']}})
        assert exc_info.value.field == 'ignore.link'

    def test_github_owner_required(self):
        """Test a code-host entry without owner is rejected."""
        with pytest.raises(ConfigError) as exc_info:
            parse_config({'provider': {'github': {'main': {'token': 'abc'}}}})
        assert exc_info.value.field == 'provider.github.main.owner'

    def test_override_endpoint_required(self):
        """Test an override without endpoint is rejected."""
        data = {'provider': {'web': {'overwrite': [{'header': {'A': 'b'}}]}}}
        with pytest.raises(ConfigError):
            parse_config(data)

    def test_github_entries_keep_order(self):
        """Test code-host entries keep file order."""
        data = {'provider': {'github': {
            'second': {'owner': 'b', 'token': 't2'},
            'first': {'owner': 'a', 'token': 't1'},
        }}}
        config = parse_config(data)
        assert [c.owner for c in config.github] == ['b', 'a']

    def test_timeout_must_be_number(self):
        """Test a non-numeric timeout is rejected."""
        with pytest.raises(ConfigError):
            parse_config({'timeout': 'soon'})


class TestWebConfig:
    """Tests for header override resolution."""

    def test_first_matching_override_wins(self):
        """Test only the first matching override is merged."""
        web = WebConfig(
            headers={'Accept': 'text/html', 'Authorization': 'base'},
            overrides=[
                HeaderOverride('example\\.com', {'Authorization': 'first'}),
                HeaderOverride('example', {'Authorization': 'second', 'X-Extra': '1'}),
            ]
        )
        assert web.headers_for('https://example.com/page') == {
            'Accept': 'text/html',
            'Authorization': 'first',
        }

    def test_no_override(self):
        """Test the base headers apply when nothing matches."""
        web = WebConfig(headers={'Accept': 'text/html'},
                        overrides=[HeaderOverride('intranet', {'Authorization': 'x'})])
        assert web.headers_for('https://example.com') == {'Accept': 'text/html'}

    def test_base_headers_not_mutated(self):
        """Test merging does not leak into the base set."""
        web = WebConfig(headers={'A': '1'}, overrides=[HeaderOverride('.', {'A': '2'})])
        web.headers_for('https://example.com')
        assert web.headers == {'A': '1'}


class TestErrors:
    """Tests for the error family."""

    def test_check_error_to_dict(self):
        """Test serialization carries code and target."""
        error = CheckError("lookup failed", target="https://example.com")
        assert error.to_dict() == {
            'code': 'CHECK_ERROR',
            'message': 'lookup failed',
            'details': {'target': 'https://example.com'},
        }

    def test_batch_error_single(self):
        """Test a single failure keeps its own message."""
        error = BatchError([(None, CheckError("boom"))])
        assert str(error) == "boom"

    def test_batch_error_multiple(self):
        """Test several failures are joined."""
        error = BatchError([(None, CheckError("a")), (None, CheckError("b"))])
        assert str(error) == "multiple errors detected ('a', 'b')"
        assert len(error.failures) == 2


class TestLogging:
    """Tests for the logging helpers."""

    def test_json_formatter(self):
        """Test records become one JSON object with extras."""
        record = logging.LogRecord('markdown_link_check.test', logging.INFO, __file__, 1,
                                   'hello %s', ('world',), None)
        record.operation = 'scan'

        data = json.loads(JsonFormatter().format(record))
        assert data['message'] == 'hello world'
        assert data['level'] == 'INFO'
        assert data['operation'] == 'scan'
        assert data['timestamp'].endswith('Z')

    def test_configure_logging_replaces_handlers(self):
        """Test repeated configuration does not stack handlers."""
        stream = io.StringIO()
        configure_logging('INFO', 'text', stream=stream)
        logger = configure_logging('DEBUG', 'json', stream=stream)

        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_get_logger_namespacing(self):
        """Test loggers live under the package hierarchy."""
        assert get_logger('cli').name == 'markdown_link_check.cli'
        assert get_logger('markdown_link_check.scanner').name == 'markdown_link_check.scanner'
        assert get_logger().name == 'markdown_link_check'

    def test_log_operation_failure(self):
        """Test failures are logged and re-raised."""
        stream = io.StringIO()
        logger = configure_logging('INFO', 'json', stream=stream)

        with pytest.raises(ValueError):
            with log_operation(logger, 'scan', root='docs'):
                raise ValueError('broken')

        entries = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert [e['status'] for e in entries] == ['started', 'failed']
        assert entries[-1]['root'] == 'docs'
        assert 'duration_ms' in entries[-1]

    def test_default_config_is_valid(self):
        """Test the defaults pass validation."""
        assert LinkCheckConfig().validate() == []
