# src/sss_control/__init__.py
"""
SSS control plane: client for Solana Stablecoin Standard mints.

Layers, bottom-up:
  - codec / state: borsh and Token-2022 account layouts
  - pda: program-derived addresses
  - presets / roles: the preset and role models
  - instructions: pure instruction builders (core, hook, token-2022)
  - confidential: sss-3 confidential balance lifecycle
  - error_map: program failures -> error taxonomy
  - client: the Stablecoin facade
  - rpc: JSON-RPC AccountReader

Signing and sending are delegated to a TransactionExecutor; see execution.
"""

from __future__ import annotations

from sss_control.client import Stablecoin, creation_instructions
from sss_control.config import ClientConfig, default_client_config, read_client_config_file
from sss_control.crypto.keypair import Keypair
from sss_control.crypto.pubkey import Pubkey, parse_pubkey
from sss_control.errors import (
    CorruptState,
    DerivationExhausted,
    PreconditionFailed,
    PresetMismatch,
    ProgramError,
    ProgramErrorKind,
    SssError,
    TransportError,
    ValidationError,
)
from sss_control.presets import Preset
from sss_control.roles import Role

__all__ = [
    "Stablecoin",
    "creation_instructions",
    "ClientConfig",
    "default_client_config",
    "read_client_config_file",
    "Keypair",
    "Pubkey",
    "parse_pubkey",
    "Preset",
    "Role",
    "SssError",
    "ValidationError",
    "PreconditionFailed",
    "PresetMismatch",
    "DerivationExhausted",
    "CorruptState",
    "TransportError",
    "ProgramErrorKind",
    "ProgramError",
]
