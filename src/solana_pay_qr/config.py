import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

CONFIG_ENV_VAR = "SOLANA_PAY_CONFIG"


@dataclass(frozen=True)
class SolanaPayConfig:
    rpc_endpoint: str = "https://api.devnet.solana.com"
    commitment: str = "confirmed"
    poll_interval_sec: float = 5.0
    signature_limit: int = 10
    payment_timeout_sec: Optional[float] = None
    label: str = "Solana Pay Demo"
    rpc_timeout_sec: float = 10
    rpc_max_retries: int = 3
    rpc_backoff_factor: float = 0.2

    def with_overrides(self, **overrides: Any) -> "SolanaPayConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


def _load_json(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as config_fh:
        return json.load(config_fh)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def load_config(path: str) -> SolanaPayConfig:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Configuration file does not exist: {path}")

    raw = _load_json(path)
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration root must be a JSON object: {path}")

    known = {item.name for item in fields(SolanaPayConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")

    defaults = SolanaPayConfig()
    return SolanaPayConfig(
        rpc_endpoint=raw.get("rpc_endpoint", defaults.rpc_endpoint),
        commitment=raw.get("commitment", defaults.commitment),
        poll_interval_sec=float(raw.get("poll_interval_sec", defaults.poll_interval_sec)),
        signature_limit=int(raw.get("signature_limit", defaults.signature_limit)),
        payment_timeout_sec=_optional_float(raw.get("payment_timeout_sec")),
        label=raw.get("label", defaults.label),
        rpc_timeout_sec=float(raw.get("rpc_timeout_sec", defaults.rpc_timeout_sec)),
        rpc_max_retries=int(raw.get("rpc_max_retries", defaults.rpc_max_retries)),
        rpc_backoff_factor=float(raw.get("rpc_backoff_factor", defaults.rpc_backoff_factor)),
    )


def config_from_env(path: Optional[str] = None) -> SolanaPayConfig:
    """
    Load configuration from path, else from $SOLANA_PAY_CONFIG, else defaults.
    """
    config_path = path or os.environ.get(CONFIG_ENV_VAR)
    if not config_path:
        return SolanaPayConfig()
    return load_config(config_path)
