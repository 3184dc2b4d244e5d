"""Parameter schemas for operator-supplied options.

Shape and bound checks run here, before any derivation or I/O. The programs
enforce the same bounds; checking early turns a wasted transaction into a
ValidationError with field-level details.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from sss_control.codec import U64_MAX
from sss_control.errors import ValidationError
from sss_control.presets import Preset, infer_preset, parse_preset
from sss_control.state import MAX_NAME_LEN, MAX_REASON_LEN, MAX_SYMBOL_LEN, MAX_URI_LEN

Json = Dict[str, Any]

M = TypeVar("M", bound=BaseModel)


class _StrictModel(BaseModel):
    """Reject unknown keys. Scalar fields opt into strict typing one by one."""

    model_config = ConfigDict(extra="forbid")


def _max_bytes(v: str, limit: int, what: str) -> str:
    if len(v.encode("utf-8")) > limit:
        raise ValueError(f"{what} exceeds {limit} bytes")
    return v


class ExtensionSelection(_StrictModel):
    permanent_delegate: bool = Field(default=True, strict=True)
    transfer_hook: bool = Field(default=False, strict=True)
    default_account_frozen: Optional[bool] = Field(default=None, strict=True)
    confidential_transfer: bool = Field(default=False, strict=True)


class CreateOptions(_StrictModel):
    preset: Optional[str] = Field(default=None, strict=True)
    extensions: Optional[ExtensionSelection] = None
    name: str = Field(..., min_length=1, strict=True)
    symbol: str = Field(..., min_length=1, strict=True)
    uri: str = Field(default="", strict=True)
    decimals: int = Field(default=6, ge=0, le=255, strict=True)
    supply_cap: Optional[int] = Field(default=None, ge=0, le=U64_MAX, strict=True)
    auto_approve_new_accounts: bool = Field(default=True, strict=True)
    auditor_elgamal_pubkey: Optional[str] = Field(default=None, strict=True)

    @field_validator("name")
    @classmethod
    def _name_len(cls, v: str) -> str:
        return _max_bytes(v, MAX_NAME_LEN, "name")

    @field_validator("symbol")
    @classmethod
    def _symbol_len(cls, v: str) -> str:
        return _max_bytes(v, MAX_SYMBOL_LEN, "symbol")

    @field_validator("uri")
    @classmethod
    def _uri_len(cls, v: str) -> str:
        return _max_bytes(v, MAX_URI_LEN, "uri")

    @field_validator("preset", mode="before")
    @classmethod
    def _preset_known(cls, v: Any) -> Any:
        if isinstance(v, Preset):
            return v.label
        if not isinstance(v, str):
            return v
        try:
            return parse_preset(v).label
        except ValidationError as e:
            raise ValueError(e.reason) from e

    @field_validator("auditor_elgamal_pubkey")
    @classmethod
    def _auditor_hex(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            raw = bytes.fromhex(v)
        except ValueError as e:
            raise ValueError("auditor_elgamal_pubkey must be hex") from e
        if len(raw) != 32:
            raise ValueError("auditor_elgamal_pubkey must be 32 bytes")
        return v.lower()

    @model_validator(mode="after")
    def _preset_or_extensions(self) -> "CreateOptions":
        if self.preset is None and self.extensions is None:
            raise ValueError("either preset or extensions is required")
        return self

    def resolved_preset(self) -> Preset:
        if self.preset is not None:
            return parse_preset(self.preset)
        ext = self.extensions or ExtensionSelection()
        return infer_preset(confidential=ext.confidential_transfer, transfer_hook=ext.transfer_hook)

    def auditor_key_bytes(self) -> Optional[bytes]:
        return bytes.fromhex(self.auditor_elgamal_pubkey) if self.auditor_elgamal_pubkey else None


class BlacklistAddParams(_StrictModel):
    address: str = Field(..., min_length=1, strict=True)
    reason: str = Field(default="", strict=True)

    @field_validator("reason")
    @classmethod
    def _reason_len(cls, v: str) -> str:
        return _max_bytes(v, MAX_REASON_LEN, "reason")


def validate_model(schema: Type[M], data: Any) -> M:
    """Validate `data` (a model or a mapping) and re-raise failures as ValidationError."""
    if isinstance(data, schema):
        return data
    if not isinstance(data, dict):
        raise ValidationError("options must be an object", {"type": type(data).__name__})
    try:
        return schema(**data)
    except PydanticValidationError as ve:
        errors = [
            {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg", "")}
            for err in ve.errors()
        ]
        raise ValidationError(f"invalid {schema.__name__}", {"errors": errors}) from ve


__all__ = [
    "ExtensionSelection",
    "CreateOptions",
    "BlacklistAddParams",
    "validate_model",
]
