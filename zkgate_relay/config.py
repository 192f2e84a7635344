"""
Runtime settings for zkgate-relay.

Settings are loaded once at startup: defaults, then an optional YAML file,
then environment overrides. The resulting ``Settings`` value is passed into
the constructors that need it; nothing below the entry points reads the
environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigurationError
from .proving.constants import DEFAULT_TOOL_TIMEOUT, NARGO, SUNSPOT
from .relayer.constants import (
    DEFAULT_COMPUTE_UNIT_LIMIT,
    DEFAULT_COMPUTE_UNIT_PRICE,
    DEFAULT_CONFIRM_MAX_POLLS,
    DEFAULT_CONFIRM_POLL_INTERVAL,
)

TOOLCHAINS = ("sunspot", "fixture")
COMMITMENTS = ("processed", "confirmed", "finalized")
SECRET_KEY_BYTES = 64

DEFAULT_RPC_URL = "https://api.devnet.solana.com"

# environment variable -> settings field
ENV_OVERRIDES = {
    "RPC_ENDPOINT": "rpc_url",
    "PROGRAM_ID": "program_id",
    "RELAYER_PRIVATE_KEY": "relayer_secret",
    "CIRCUIT_ROOT": "circuit_root",
    "KEYS_DIR": "keys_dir",
    "ZKGATE_TOOLCHAIN": "toolchain",
    "NARGO_BIN": "nargo_bin",
    "SUNSPOT_BIN": "sunspot_bin",
    "LOG_LEVEL": "log_level",
}


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    program_id: Optional[str] = None
    relayer_secret: Optional[bytes] = field(default=None, repr=False)
    circuit_root: Path = Path("circuits")
    keys_dir: Path = Path("keys")
    toolchain: str = "sunspot"
    nargo_bin: str = NARGO
    sunspot_bin: str = SUNSPOT
    tool_timeout: float = DEFAULT_TOOL_TIMEOUT
    auto_compile: bool = True
    verify_eligibility_proofs: bool = False
    commitment: str = "confirmed"
    rpc_timeout: float = 30.0
    confirm_poll_interval: float = DEFAULT_CONFIRM_POLL_INTERVAL
    confirm_max_polls: int = DEFAULT_CONFIRM_MAX_POLLS
    compute_unit_limit: int = DEFAULT_COMPUTE_UNIT_LIMIT
    compute_unit_price: int = DEFAULT_COMPUTE_UNIT_PRICE
    log_level: str = "INFO"


def parse_secret_key(raw: Any) -> bytes:
    """Parse a relay key given as a JSON array (or list) of 64 byte values."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ConfigurationError(
                "Failed to parse RELAYER_PRIVATE_KEY. Ensure it is a JSON array of numbers."
            ) from exc
    if not isinstance(raw, list) or any(
        isinstance(b, bool) or not isinstance(b, int) or not 0 <= b <= 255 for b in raw
    ):
        raise ConfigurationError(
            "Failed to parse RELAYER_PRIVATE_KEY. Ensure it is a JSON array of numbers."
        )
    if len(raw) != SECRET_KEY_BYTES:
        raise ConfigurationError(
            f"RELAYER_PRIVATE_KEY must contain {SECRET_KEY_BYTES} bytes, got {len(raw)}"
        )
    return bytes(raw)


def load_settings(
    path: Optional[Path | str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    config_path = path or environ.get("ZKGATE_CONFIG")
    if config_path:
        values.update(_read_config_file(Path(config_path)))

    for env_name, field_name in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value not in (None, ""):
            values[field_name] = value

    return _build(values)


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Unable to read config file {path}", str(exc)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}", str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")
    return data


def _build(values: dict[str, Any]) -> Settings:
    converted: dict[str, Any] = {}
    for spec in fields(Settings):
        if spec.name not in values:
            continue
        converted[spec.name] = _convert(spec.name, values[spec.name])
    return Settings(**converted)


def _convert(name: str, value: Any) -> Any:
    if name == "relayer_secret":
        return None if value is None else parse_secret_key(value)
    if name in ("circuit_root", "keys_dir"):
        return Path(os.path.expanduser(str(value)))
    if name in ("auto_compile", "verify_eligibility_proofs"):
        return _to_bool(name, value)
    if name in ("confirm_max_polls", "compute_unit_limit", "compute_unit_price"):
        return _to_number(name, value, int, minimum=0 if name == "compute_unit_price" else 1)
    if name in ("tool_timeout", "rpc_timeout", "confirm_poll_interval"):
        return _to_number(name, value, float, minimum=0)
    if name == "toolchain":
        return _choice(name, str(value).lower(), TOOLCHAINS)
    if name == "commitment":
        return _choice(name, str(value).lower(), COMMITMENTS)
    if name == "log_level":
        # unknown names are handled by setup_logging with a fallback to INFO
        return str(value).upper()
    if name == "program_id":
        return None if value is None else str(value)
    return str(value)


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def _to_number(name: str, value: Any, kind: type, minimum: float) -> Any:
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid number for {name}: {value!r}")
    try:
        number = kind(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number for {name}: {value!r}") from exc
    if number < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}")
    return number


def _choice(name: str, value: str, allowed: tuple[str, ...]) -> str:
    if value not in allowed:
        raise ConfigurationError(
            f"Invalid {name}: {value!r}", f"expected one of: {', '.join(allowed)}"
        )
    return value
