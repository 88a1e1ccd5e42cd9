# lambda_sync/config.py
"""
Deployment configuration: the desired state of one function and its triggers
"""
import json
import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import dotenv_values

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = 'lambda.config.json'
PYPROJECT_FILE_NAME = 'pyproject.toml'
PYPROJECT_TABLE = 'lambda-sync'

DEFAULT_RUNTIME = 'python3.12'
DEFAULT_HANDLER = 'lambda_function.lambda_handler'
DEFAULT_DESCRIPTION = 'Deployed with lambda-sync'
DEFAULT_TIMEOUT = 30
DEFAULT_MEMORY_SIZE = 128
DEFAULT_INCLUDES = ('lambda_function.py',)

DEFAULT_BATCH_SIZE = 10
DEFAULT_MAX_BATCHING_WINDOW = 0

# Lambda rejects environments larger than 4 KB
MAX_ENV_VARS_SIZE = 4096


@dataclass(frozen=True)
class TriggerSpec:
    """One SQS event source for the function"""

    queue_arn: str
    batch_size: Optional[int] = None
    max_batching_window: Optional[int] = None
    enabled: Optional[bool] = None

    @property
    def effective_batch_size(self) -> int:
        return DEFAULT_BATCH_SIZE if self.batch_size is None else self.batch_size

    @property
    def effective_batching_window(self) -> int:
        return DEFAULT_MAX_BATCHING_WINDOW if self.max_batching_window is None else self.max_batching_window

    @property
    def effective_enabled(self) -> bool:
        return self.enabled is not False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TriggerSpec':
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Each sqs_triggers entry must be a table, got: {data!r}")
        _reject_unknown_keys(cls, data, 'sqs_triggers entry')
        if not data.get('queue_arn'):
            raise ConfigurationError("queue_arn is required for every sqs_triggers entry")
        return cls(**data)

    def validate(self) -> None:
        if self.batch_size is not None and (not _is_int(self.batch_size) or self.batch_size < 1):
            raise ConfigurationError(
                f"batch_size for {self.queue_arn} must be a positive integer, got {self.batch_size!r}")
        if self.max_batching_window is not None and (
                not _is_number(self.max_batching_window) or self.max_batching_window < 0):
            raise ConfigurationError(
                f"max_batching_window for {self.queue_arn} must be >= 0, got {self.max_batching_window!r}")
        if self.enabled is not None and not isinstance(self.enabled, bool):
            raise ConfigurationError(f"enabled for {self.queue_arn} must be true or false")


@dataclass(frozen=True)
class DeployConfig:
    """Desired state of the function, loaded once per deployment run"""

    function_name: str
    source_dir: Path = Path('.')

    # Function settings; None means "not configured"
    role_arn: Optional[str] = None
    handler: Optional[str] = None
    runtime: Optional[str] = None
    description: Optional[str] = None
    timeout: Optional[int] = None
    memory_size: Optional[int] = None
    environment: Optional[Dict[str, str]] = None
    layers: Optional[Tuple[str, ...]] = None

    # Packaging
    includes: Tuple[str, ...] = DEFAULT_INCLUDES
    requirements_file: str = 'requirements.txt'

    # Triggers
    sqs_triggers: Tuple[TriggerSpec, ...] = ()

    # Connection overrides
    region: Optional[str] = None
    profile: Optional[str] = None

    env_file: Optional[Path] = None

    @property
    def package_path(self) -> Path:
        """Location of the deployment artifact"""
        return self.source_dir / f"{self.function_name}.zip"

    @property
    def has_configuration_changes(self) -> bool:
        """True when any field applied by a configuration update is set"""
        return any(value is not None for value in (
            self.layers, self.environment, self.timeout, self.memory_size, self.description
        ))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_dir: Path = Path('.')) -> 'DeployConfig':
        """Build a validated config from a parsed configuration table"""
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration must be a table of settings")
        _reject_unknown_keys(cls, data, 'configuration')

        values = dict(data)
        if not values.get('function_name'):
            raise ConfigurationError("function_name is required in configuration")

        values['source_dir'] = base_dir / values.get('source_dir', '.')
        if values.get('env_file') is not None:
            values['env_file'] = base_dir / values['env_file']
        if values.get('layers') is not None:
            values['layers'] = _string_list(values['layers'], 'layers')
        if 'includes' in values:
            values['includes'] = _string_list(values['includes'], 'includes')
        if values.get('environment') is not None and not isinstance(values['environment'], Mapping):
            raise ConfigurationError(
                f"environment must be a table of variable names to values, got {values['environment']!r}")
        if not isinstance(values.get('sqs_triggers') or [], (list, tuple)):
            raise ConfigurationError("sqs_triggers must be a list of trigger tables")
        values['sqs_triggers'] = tuple(
            TriggerSpec.from_dict(trigger) for trigger in values.get('sqs_triggers') or ()
        )

        if values.get('env_file') is not None:
            values['environment'] = _merge_env_file(values['env_file'], values.get('environment'))
        elif values.get('environment') is not None:
            values['environment'] = dict(values['environment'])

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Reject settings that can never be deployed"""
        if self.timeout is not None and (not _is_int(self.timeout) or self.timeout <= 0):
            raise ConfigurationError(f"timeout must be a positive number of seconds, got {self.timeout!r}")
        if self.memory_size is not None and (not _is_int(self.memory_size) or self.memory_size <= 0):
            raise ConfigurationError(f"memory_size must be a positive number of MB, got {self.memory_size!r}")

        if self.environment is not None:
            for name, value in self.environment.items():
                if not isinstance(value, str):
                    raise ConfigurationError(f"Environment variable {name} must be a string, got {value!r}")
            if not validate_env_vars_size(self.environment):
                raise ConfigurationError(
                    f"Environment variables exceed the Lambda {MAX_ENV_VARS_SIZE} byte limit")

        if not self.includes:
            raise ConfigurationError("includes must list at least one file or pattern")

        seen = set()
        for trigger in self.sqs_triggers:
            trigger.validate()
            if trigger.queue_arn in seen:
                raise ConfigurationError(f"Duplicate sqs_triggers entry for {trigger.queue_arn}")
            seen.add(trigger.queue_arn)


def validate_env_vars_size(env_vars: Mapping[str, str]) -> bool:
    """Validate that environment variables don't exceed Lambda limits"""
    total_size = sum(len(key) + len(value) for key, value in env_vars.items())
    return total_size <= MAX_ENV_VARS_SIZE


def load_config(config_path: Optional[Path] = None, cwd: Optional[Path] = None) -> DeployConfig:
    """
    Load the deployment configuration

    An explicit path is read as JSON. Otherwise lambda.config.json in the
    working directory is used, then the [tool.lambda-sync] table of
    pyproject.toml. Relative paths inside the file resolve against the
    directory holding it.
    """
    cwd = Path(cwd) if cwd else Path.cwd()

    if config_path is not None:
        path = Path(config_path)
        if not path.is_absolute():
            path = cwd / path
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        return DeployConfig.from_dict(_read_json(path), base_dir=path.parent)

    json_path = cwd / CONFIG_FILE_NAME
    if json_path.exists():
        return DeployConfig.from_dict(_read_json(json_path), base_dir=cwd)

    pyproject_path = cwd / PYPROJECT_FILE_NAME
    if pyproject_path.exists():
        with open(pyproject_path, 'rb') as f:
            try:
                pyproject = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"Invalid {pyproject_path}: {e}") from e
        table = pyproject.get('tool', {}).get(PYPROJECT_TABLE)
        if table is not None:
            logger.info(f"📋 Using [tool.{PYPROJECT_TABLE}] from {pyproject_path}")
            return DeployConfig.from_dict(table, base_dir=cwd)

    raise ConfigurationError(
        f"No configuration found. Create {CONFIG_FILE_NAME} or add a "
        f"[tool.{PYPROJECT_TABLE}] table to {PYPROJECT_FILE_NAME}")


def _read_json(path: Path) -> Dict[str, Any]:
    logger.info(f"📋 Loading configuration from {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e


def _merge_env_file(env_file: Path, environment: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Variables from the dotenv file, overridden by explicitly configured ones"""
    if not env_file.exists():
        raise ConfigurationError(f"env_file not found: {env_file}")

    merged = {key: value for key, value in dotenv_values(env_file).items() if value is not None}
    logger.info(f"✅ Loaded {len(merged)} environment variables from {env_file}")
    merged.update(environment or {})
    return merged


def _string_list(value: Any, key: str) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{key} must be a list of strings, got {value!r}")
    return tuple(value)


def _reject_unknown_keys(cls, data: Mapping[str, Any], where: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {where} keys: {', '.join(unknown)}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
