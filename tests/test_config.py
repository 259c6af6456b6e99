"""
Tests for capture configuration and the YAML loader.
"""

import tempfile
from pathlib import Path

import pytest
import yaml

from functrace.config import CaptureConfig, ConfigLoader, DEFAULT_COMMAND
from functrace.exceptions import ConfigValidationError


class TestCaptureConfig:
    """Defaults, validation and working directory resolution."""

    def test_defaults(self):
        config = CaptureConfig()

        assert config.command == ["dotnet", "run", "--no-build"]
        assert config.working_dir == "../../.."
        assert config.encoding == "utf-8"
        assert config.timeout_sec is None
        assert config.env == {}
        assert config.validate() == []

    def test_default_command_not_shared(self):
        config = CaptureConfig()
        config.command.append("--extra")

        assert CaptureConfig().command == DEFAULT_COMMAND
        assert "--extra" not in DEFAULT_COMMAND

    def test_default_working_dir_is_three_levels_up(self, tmp_path, monkeypatch):
        nested = tmp_path / "bin" / "Debug" / "net8.0"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert CaptureConfig().resolve_working_dir() == tmp_path.resolve()

    def test_absolute_working_dir_ignores_base(self, tmp_path):
        config = CaptureConfig(working_dir=tmp_path, base_dir=Path("/elsewhere"))

        assert config.resolve_working_dir() == tmp_path.resolve()

    def test_validate_reports_problems(self):
        config = CaptureConfig(command=[], timeout_sec=0, encoding="no-such-codec")

        errors = config.validate()

        assert "command cannot be empty" in errors
        assert any("timeout_sec must be positive" in e for e in errors)
        assert any("Unknown encoding" in e for e in errors)

    def test_validate_rejects_non_string_tokens(self):
        config = CaptureConfig(command=["dotnet", 3])

        assert config.validate() == ["command must contain only non-empty strings"]


class TestConfigLoader:
    """YAML loading with strict key and type checks."""

    @pytest.fixture
    def config_dir(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir)

    def _write(self, config_dir: Path, content) -> Path:
        config_file = config_dir / "functrace.yaml"
        with open(config_file, 'w') as f:
            yaml.dump(content, f)
        return config_file

    def test_load_full_config(self, config_dir):
        config_file = self._write(config_dir, {
            'command': ['dotnet', 'run', '--no-build', '--project', 'Tracer'],
            'working_dir': 'src',
            'encoding': 'latin-1',
            'timeout_sec': 30,
            'env': {'DOTNET_NOLOGO': 1},
        })

        config = ConfigLoader().load(config_file)

        assert config.command == ['dotnet', 'run', '--no-build', '--project', 'Tracer']
        assert config.encoding == 'latin-1'
        assert config.timeout_sec == 30
        assert config.env == {'DOTNET_NOLOGO': '1'}
        # Relative working_dir is anchored at the config file's directory
        assert config.resolve_working_dir() == (config_dir / 'src').resolve()

    def test_empty_file_uses_defaults(self, config_dir):
        config_file = config_dir / "empty.yaml"
        config_file.write_text("")

        config = ConfigLoader().load(config_file)

        assert config.command == DEFAULT_COMMAND
        assert config.resolve_working_dir() == (config_dir / "../../..").resolve()

    def test_command_string_is_shell_split(self, config_dir):
        config_file = config_dir / "functrace.yaml"
        config_file.write_text('command: dotnet run --no-build --project "My Tracer"\n')

        config = ConfigLoader().load(config_file)

        assert config.command == ['dotnet', 'run', '--no-build', '--project', 'My Tracer']

    def test_unbalanced_quote_in_command(self):
        with pytest.raises(ConfigValidationError, match="could not be split"):
            ConfigLoader().from_dict({'command': 'dotnet run "unterminated'})

    def test_null_env_value_rejected(self, config_dir):
        config_file = config_dir / "functrace.yaml"
        config_file.write_text("env:\n  DOTNET_NOLOGO: 1\n  TRACE_LEVEL: null\n")

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(config_file)

        assert [error.path for error in exc_info.value.errors] == ['env.TRACE_LEVEL']

    def test_collects_all_errors(self, config_dir):
        config_file = self._write(config_dir, {
            'command': {'bad': 'type'},
            'timeout_sec': 'soon',
            'env': ['A=1'],
            'retries': 3,
        })

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(config_file)

        errors = exc_info.value.errors
        paths = {error.path for error in errors}
        assert {'command', 'timeout_sec', 'env', 'retries'} <= paths
        assert exc_info.value.exit_code == 2
        assert "Unknown field 'retries'" in str(exc_info.value)

    def test_boolean_timeout_rejected(self, config_dir):
        config_file = self._write(config_dir, {'timeout_sec': True})

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load(config_file)

        assert exc_info.value.errors[0].path == 'timeout_sec'

    def test_negative_timeout_rejected(self, config_dir):
        config_file = self._write(config_dir, {'timeout_sec': -1})

        with pytest.raises(ConfigValidationError, match="timeout_sec must be positive"):
            ConfigLoader().load(config_file)

    def test_non_mapping_rejected(self, config_dir):
        config_file = config_dir / "list.yaml"
        config_file.write_text("- dotnet\n- run\n")

        with pytest.raises(ConfigValidationError, match="YAML object"):
            ConfigLoader().load(config_file)

    def test_missing_file(self, config_dir):
        with pytest.raises(ConfigValidationError, match="Failed to load config"):
            ConfigLoader().load(config_dir / "absent.yaml")

    def test_malformed_yaml(self, config_dir):
        config_file = config_dir / "broken.yaml"
        config_file.write_text("command: [dotnet, run\n")

        with pytest.raises(ConfigValidationError, match="Failed to load config"):
            ConfigLoader().load(config_file)

    def test_loader_is_reusable(self, config_dir):
        loader = ConfigLoader()
        with pytest.raises(ConfigValidationError):
            loader.from_dict({'unknown': 1})

        config = loader.from_dict({'command': ['tracer']})

        assert config.command == ['tracer']
