# src/sss_control/rpc.py
"""JSON-RPC AccountReader over plain HTTP.

Only the two reads the client needs: getAccountInfo (base64) and
getMinimumBalanceForRentExemption. Every failure surfaces as TransportError;
there are no retries here.
"""

from __future__ import annotations

import base64
import binascii
import json
import socket
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from sss_control.config import ClientConfig, default_client_config
from sss_control.crypto.pubkey import Pubkey, parse_pubkey
from sss_control.errors import TransportError, ValidationError
from sss_control.execution import AccountInfo
from sss_control.logging_utils import get_logger, log_event

Json = Dict[str, Any]

_log = get_logger("rpc")


class JsonRpcAccountReader:
    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        self.config = config or default_client_config()
        self._next_id = 0

    def _post(self, method: str, params: List[Any]) -> Any:
        self._next_id += 1
        body = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params}
        req = urllib.request.Request(
            self.config.rpc_url,
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout_s) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            log_event(_log, "rpc_http_error", method=method, status=int(getattr(e, "code", 0) or 0))
            raise TransportError(
                "rpc http error",
                {"method": method, "status": int(getattr(e, "code", 0) or 0)},
                retryable=int(getattr(e, "code", 0) or 0) >= 500,
            ) from e
        except urllib.error.URLError as e:
            log_event(_log, "rpc_url_error", method=method, reason=str(getattr(e, "reason", e)))
            raise TransportError("rpc connection failed", {"method": method, "reason": str(getattr(e, "reason", e))}) from e
        except (socket.timeout, TimeoutError) as e:
            log_event(_log, "rpc_timeout", method=method, timeout_s=self.config.timeout_s)
            raise TransportError("rpc request timed out", {"method": method, "timeout_s": self.config.timeout_s}) from e

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise TransportError("rpc returned invalid JSON", {"method": method, "raw": raw[:200]}) from e

        if not isinstance(payload, dict):
            raise TransportError("rpc returned a non-object", {"method": method})
        if payload.get("error") is not None:
            err = payload["error"]
            log_event(_log, "rpc_error", method=method, error=err)
            raise TransportError("rpc error", {"method": method, "error": err}, retryable=False)
        if "result" not in payload:
            raise TransportError("rpc response has no result", {"method": method})
        return payload["result"]

    def get_account(self, address: Pubkey) -> Optional[AccountInfo]:
        result = self._post(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.config.commitment}],
        )
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return None
        try:
            data_field = value["data"]
            raw = base64.b64decode(data_field[0] if isinstance(data_field, list) else data_field)
            return AccountInfo(
                owner=parse_pubkey(value["owner"], field="owner"),
                lamports=int(value["lamports"]),
                data=raw,
                executable=bool(value.get("executable", False)),
            )
        except (KeyError, IndexError, TypeError, ValueError, binascii.Error, ValidationError) as e:
            raise TransportError("malformed getAccountInfo result", {"address": str(address)}) from e

    def minimum_balance_for_rent_exemption(self, size: int) -> int:
        result = self._post("getMinimumBalanceForRentExemption", [int(size), {"commitment": self.config.commitment}])
        if isinstance(result, bool) or not isinstance(result, int):
            raise TransportError("malformed rent exemption result", {"result": result})
        return result


__all__ = ["JsonRpcAccountReader"]
