# tests/test_config.py
from __future__ import annotations

import json
from pathlib import Path

import pytest

from sss_control.config import (
    client_config_from_env,
    client_config_from_mapping,
    default_client_config,
    read_client_config_file,
)
from sss_control.errors import ValidationError
from sss_control.pda import CORE_PROGRAM_ID, HOOK_PROGRAM_ID
from sss_control.testing.keys import deterministic_keypair


def test_defaults() -> None:
    cfg = default_client_config()
    assert cfg.rpc_url.startswith("http://")
    assert cfg.commitment == "confirmed"
    assert cfg.core_program_id == CORE_PROGRAM_ID
    assert cfg.hook_program_id == HOOK_PROGRAM_ID


def test_json_file(tmp_path: Path) -> None:
    core = deterministic_keypair("core").pubkey
    p = tmp_path / "client.json"
    p.write_text(
        json.dumps({"rpc_url": "https://rpc.example.invalid", "commitment": "Finalized", "core_program_id": str(core), "timeout_s": "5"}),
        encoding="utf-8",
    )
    cfg = read_client_config_file(str(p))
    assert cfg.rpc_url == "https://rpc.example.invalid"
    assert cfg.commitment == "finalized"
    assert cfg.core_program_id == core
    assert cfg.hook_program_id == HOOK_PROGRAM_ID
    assert cfg.timeout_s == 5.0


def test_yaml_file(tmp_path: Path) -> None:
    p = tmp_path / "client.yaml"
    p.write_text("rpc_url: http://localhost:8899\nlog_level: debug\n", encoding="utf-8")
    cfg = read_client_config_file(str(p))
    assert cfg.rpc_url == "http://localhost:8899"
    assert cfg.log_level == "DEBUG"


@pytest.mark.parametrize(
    "name, text",
    [
        ("bad.json", "{not json"),
        ("list.json", "[1, 2]"),
        ("bad.yml", "rpc_url: [unclosed\n"),
    ],
)
def test_bad_files(tmp_path: Path, name: str, text: str) -> None:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ValidationError):
        read_client_config_file(str(p))


@pytest.mark.parametrize(
    "raw",
    [
        {"rpc_url": "ftp://example.invalid"},
        {"commitment": "fast"},
        {"timeout_s": 0},
        {"log_level": "LOUD"},
        {"core_program_id": "not-base58-0OIl"},
        {"core_program_id": str(HOOK_PROGRAM_ID)},
    ],
)
def test_invalid_values_fail_fast(raw) -> None:
    with pytest.raises(ValidationError):
        client_config_from_mapping(raw)


def test_env_mapping() -> None:
    cfg = client_config_from_env(
        {
            "SSS_RPC_URL": "http://10.0.0.1:8899",
            "SSS_RPC_TIMEOUT_S": "2.5",
            "SSS_COMMITMENT": "  ",
            "UNRELATED": "x",
        }
    )
    assert cfg.rpc_url == "http://10.0.0.1:8899"
    assert cfg.timeout_s == 2.5
    assert cfg.commitment == "confirmed"
