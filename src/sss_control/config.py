# src/sss_control/config.py
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from sss_control.crypto.pubkey import Pubkey, parse_pubkey
from sss_control.errors import ValidationError
from sss_control.pda import CORE_PROGRAM_ID, HOOK_PROGRAM_ID

Json = Dict[str, Any]


def _as_float(v: Any, default: float) -> float:
    if v is None or isinstance(v, bool):
        return float(default)
    try:
        return float(v)
    except (TypeError, ValueError):
        return float(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class ClientConfig:
    rpc_url: str
    commitment: str  # "processed" | "confirmed" | "finalized"
    core_program_id: Pubkey
    hook_program_id: Pubkey
    timeout_s: float
    log_level: str


_ALLOWED_COMMITMENTS = {"processed", "confirmed", "finalized"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_client_config(cfg: ClientConfig) -> None:
    """Fail-fast validation; a bad endpoint or program id is never silently used."""
    url = str(cfg.rpc_url or "").strip()
    if not (url.startswith("http://") or url.startswith("https://")):
        raise ValidationError("rpc_url must be an http(s) URL", {"rpc_url": cfg.rpc_url})

    if cfg.commitment not in _ALLOWED_COMMITMENTS:
        raise ValidationError(
            f"commitment must be one of {sorted(_ALLOWED_COMMITMENTS)}",
            {"commitment": cfg.commitment},
        )

    if not isinstance(cfg.core_program_id, Pubkey) or not isinstance(cfg.hook_program_id, Pubkey):
        raise ValidationError("program ids must be pubkeys")
    if cfg.core_program_id == cfg.hook_program_id:
        raise ValidationError("core and hook program ids must differ")

    if not cfg.timeout_s > 0:
        raise ValidationError("timeout_s must be > 0", {"timeout_s": cfg.timeout_s})

    if str(cfg.log_level).upper() not in _ALLOWED_LOG_LEVELS:
        raise ValidationError("unknown log_level", {"log_level": cfg.log_level})


def default_client_config() -> ClientConfig:
    return ClientConfig(
        rpc_url="http://127.0.0.1:8899",
        commitment="confirmed",
        core_program_id=CORE_PROGRAM_ID,
        hook_program_id=HOOK_PROGRAM_ID,
        timeout_s=30.0,
        log_level="INFO",
    )


def client_config_from_mapping(raw: Mapping[str, Any]) -> ClientConfig:
    d = default_client_config()
    core = raw.get("core_program_id")
    hook = raw.get("hook_program_id")
    cfg = ClientConfig(
        rpc_url=_as_str(raw.get("rpc_url"), d.rpc_url).strip(),
        commitment=_as_str(raw.get("commitment"), d.commitment).strip().lower(),
        core_program_id=parse_pubkey(core, field="core_program_id") if core else d.core_program_id,
        hook_program_id=parse_pubkey(hook, field="hook_program_id") if hook else d.hook_program_id,
        timeout_s=_as_float(raw.get("timeout_s"), d.timeout_s),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )
    validate_client_config(cfg)
    return cfg


def read_client_config_file(path: str) -> ClientConfig:
    """JSON, or YAML when the file ends in .yaml/.yml."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        import yaml

        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationError("client config is not valid YAML", {"path": str(p)}) from e
    else:
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError("client config is not valid JSON", {"path": str(p)}) from e

    if not isinstance(raw, dict):
        raise ValidationError("client config must be an object", {"path": str(p)})
    return client_config_from_mapping(raw)


_ENV_KEYS = {
    "SSS_RPC_URL": "rpc_url",
    "SSS_COMMITMENT": "commitment",
    "SSS_CORE_PROGRAM_ID": "core_program_id",
    "SSS_HOOK_PROGRAM_ID": "hook_program_id",
    "SSS_RPC_TIMEOUT_S": "timeout_s",
    "SSS_LOG_LEVEL": "log_level",
}


def client_config_from_env(environ: Mapping[str, str]) -> ClientConfig:
    """Build from the given mapping only (pass os.environ explicitly)."""
    raw: Json = {}
    for env_key, field in _ENV_KEYS.items():
        v = environ.get(env_key)
        if v is not None and str(v).strip():
            raw[field] = v
    return client_config_from_mapping(raw)


__all__ = [
    "ClientConfig",
    "validate_client_config",
    "default_client_config",
    "client_config_from_mapping",
    "read_client_config_file",
    "client_config_from_env",
]
