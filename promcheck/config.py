"""Configuration models using Pydantic for validation."""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
import os


DEFAULT_URL = "http://localhost:9182/metrics"


class ConfigurationError(ValueError):
    """Raised when the check cannot run with the given configuration."""


class LabelFilter(BaseModel):
    """A `name:value` pair a sample's label set must carry."""
    name: str
    value: str

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, text: str) -> "LabelFilter":
        """Parse an operator supplied `name:value` string.

        Only the first colon separates name from value, so values may contain
        colons themselves (`instance:host:9100`).
        """
        if ":" not in text:
            raise ConfigurationError(f"Label filter '{text}' must look like name:value")
        name, value = text.split(":", 1)
        name = name.strip()
        if not name:
            raise ConfigurationError(f"Label filter '{text}' has an empty label name")
        return cls(name=name, value=value.strip())

    def matches(self, labels: Dict[str, str]) -> bool:
        # An absent label reads as the empty string, as in Prometheus
        return labels.get(self.name, "") == self.value

    def __str__(self) -> str:
        return f"{self.name}:{self.value}"


class Thresholds(BaseModel):
    """Numeric conditions for the metric. `None` means not checked."""
    value: Optional[float] = None
    minimum: Optional[float] = Field(default=None, alias="min")
    maximum: Optional[float] = Field(default=None, alias="max")

    model_config = {"populate_by_name": True, "frozen": True}

    def is_empty(self) -> bool:
        return self.value is None and self.minimum is None and self.maximum is None


class BasicAuthConfig(BaseModel):
    """Basic auth credentials. Applied only when both parts are present."""
    user: str = ""
    password: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.user) and bool(self.password)


class TLSConfig(BaseModel):
    """Client certificate material and server verification settings."""
    cert: str = ""
    key: str = ""
    cacert: str = ""
    insecure_skip_verify: bool = False

    @property
    def client_cert_enabled(self) -> bool:
        return bool(self.cert or self.key or self.cacert)

    @model_validator(mode='after')
    def validate_client_material(self):
        """If any client TLS file is configured, all three must be readable."""
        if not self.client_cert_enabled:
            return self

        for option, path in (("cert", self.cert), ("key", self.key), ("cacert", self.cacert)):
            if not path:
                raise ValueError(f"--{option} is required when using mTLS (cert, key and cacert go together)")
            if not os.path.isfile(path):
                raise ValueError(f"could not load {option} ({path}): file not found")
            try:
                with open(path, 'rb') as f:
                    f.read(1)
            except OSError as e:
                raise ValueError(f"could not load {option} ({path}): {e}")
        return self


class CheckConfig(BaseModel):
    """Root configuration for one check invocation."""
    url: str = DEFAULT_URL
    metric: str = ""
    thresholds: Thresholds = Field(default_factory=Thresholds)
    labels: List[LabelFilter] = Field(default_factory=list)
    auth: BasicAuthConfig = Field(default_factory=BasicAuthConfig)
    tls: TLSConfig = Field(default_factory=TLSConfig)
    timeout: float = Field(default=10.0, gt=0)
    log_level: str = "WARNING"

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        if not v or not v.strip():
            raise ValueError("--url must not be empty")
        return v.strip()

    @field_validator('labels', mode='before')
    @classmethod
    def parse_labels(cls, v):
        """Accept `name:value` strings as well as already built filters."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [LabelFilter.parse(item) if isinstance(item, str) else item for item in v]

    @model_validator(mode='after')
    def validate_check(self):
        """Reject configurations the check cannot evaluate meaningfully."""
        if not self.metric:
            raise ValueError("--metric is required")
        if self.thresholds.is_empty():
            raise ValueError("at least one of --min, --max or --value must be set")
        return self


# Flat option names (CLI flags and YAML keys) mapped onto the nested model.
_THRESHOLD_KEYS = ("min", "max", "value")
_AUTH_KEYS = ("user", "password")
_TLS_KEYS = ("cert", "key", "cacert", "insecure_skip_verify")


def build_config(options: Dict[str, Any]) -> CheckConfig:
    """Build a validated CheckConfig from flat option names.

    Keys that are missing or set to None keep their defaults.
    """
    options = {k: v for k, v in options.items() if v is not None}

    raw: Dict[str, Any] = {
        "thresholds": {k: options.pop(k) for k in _THRESHOLD_KEYS if k in options},
        "auth": {k: options.pop(k) for k in _AUTH_KEYS if k in options},
        "tls": {k: options.pop(k) for k in _TLS_KEYS if k in options},
    }
    if "label" in options:
        raw["labels"] = options.pop("label")
    raw.update(options)

    try:
        return CheckConfig(**raw)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e))


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        msg = err.get("msg", "")
        # pydantic prefixes errors raised in validators with "Value error, "
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        location = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{location}: {msg}" if location else msg)
    return "; ".join(messages)


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load flat check options from a YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw_config = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read configuration file {config_path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse configuration file {config_path}: {e}")

    if raw_config is None:
        return {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

    # `labels` reads better in YAML, the CLI flag is the repeatable `--label`
    if "labels" in raw_config:
        raw_config["label"] = raw_config.pop("labels")
    return raw_config


def apply_env_overrides(options: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides on top of file options."""
    options = dict(options)

    if env_url := os.getenv('PROMCHECK_URL'):
        options['url'] = env_url

    if env_user := os.getenv('PROMCHECK_USER'):
        options['user'] = env_user

    if env_password := os.getenv('PROMCHECK_PASSWORD'):
        options['password'] = env_password

    if env_log_level := os.getenv('LOG_LEVEL'):
        options['log_level'] = env_log_level

    return options
