import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from .exceptions import TransientLedgerError
from .models import SignatureInfo, TransactionStatus

logger = logging.getLogger(__name__)

_RETRYABLE_HTTP_STATUS = {429, 503}


class SolanaRpcClient:
    def __init__(
        self,
        endpoint: str,
        timeout: float = 10,
        max_retries: int = 3,
        backoff_factor: float = 0.2,
    ):
        self._endpoint = endpoint
        self._timeout = timeout
        self._request_id = 0
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _backoff(self, attempt: int) -> float:
        return self._backoff_factor * (2 ** (attempt - 1))

    def call(self, method: str, params: Optional[list] = None) -> Any:
        """
        Perform a JSON-RPC call and return its ``result`` member.

        Rate limiting and connection errors are retried with exponential
        backoff; anything still failing afterwards is a TransientLedgerError.
        """
        payload = json.dumps(
            {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": params or []}
        ).encode("utf-8")
        req = urllib.request.Request(
            self._endpoint,
            data=payload,
            headers={"Content-Type": "application/json"},
        )

        attempt = 0
        while True:
            try:
                with urllib.request.urlopen(req, timeout=self._timeout) as response:
                    raw_body = response.read()
                    logger.debug(
                        "Solana RPC call method=%s params=%s status=%s len=%s",
                        method,
                        params,
                        response.status,
                        len(raw_body),
                    )
                    break
            except urllib.error.HTTPError as exc:
                attempt += 1
                if exc.code in _RETRYABLE_HTTP_STATUS and attempt <= self._max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        "Solana RPC rate limited (status=%s). Retrying in %.2fs (attempt %d/%d)",
                        exc.code,
                        delay,
                        attempt,
                        self._max_retries,
                    )
                    time.sleep(delay)
                    continue
                raise TransientLedgerError(
                    f"Solana RPC HTTP error method={method} status={exc.code}"
                ) from exc
            except (OSError, http.client.HTTPException) as exc:
                attempt += 1
                if attempt <= self._max_retries:
                    delay = self._backoff(attempt)
                    logger.warning(
                        "Solana RPC connection error (%s). Retrying in %.2fs (attempt %d/%d)",
                        exc,
                        delay,
                        attempt,
                        self._max_retries,
                    )
                    time.sleep(delay)
                    continue
                raise TransientLedgerError(
                    f"Failed to reach Solana RPC endpoint {self._endpoint}: {exc}"
                ) from exc

        try:
            body = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransientLedgerError(
                f"Solana RPC returned invalid JSON for method={method}"
            ) from exc

        if not isinstance(body, dict):
            raise TransientLedgerError(f"Unexpected Solana RPC response for method={method}")
        if body.get("error"):
            raise TransientLedgerError(
                f"Solana RPC error method={method}: {body['error']}"
            )
        return body.get("result")

    def get_signatures_for_address(
        self,
        address: str,
        limit: int = 10,
        commitment: str = "confirmed",
    ) -> List[SignatureInfo]:
        result = self.call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": commitment}],
        )
        if result is None:
            return []
        if not isinstance(result, list):
            raise TransientLedgerError(
                f"Unexpected getSignaturesForAddress result for {address}: {result!r}"
            )

        signatures: List[SignatureInfo] = []
        for entry in result:
            if not isinstance(entry, dict):
                raise TransientLedgerError(f"Unexpected signature entry: {entry!r}")
            signature = entry.get("signature")
            if not signature:
                continue
            signatures.append(
                SignatureInfo(
                    signature=signature,
                    slot=entry.get("slot"),
                    block_time=entry.get("blockTime"),
                    err=entry.get("err"),
                )
            )
        return signatures

    def get_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
    ) -> Optional[TransactionStatus]:
        result: Optional[Dict[str, Any]] = self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if not result:
            return None
        if not isinstance(result, dict):
            raise TransientLedgerError(
                f"Unexpected getTransaction result for {signature}: {result!r}"
            )

        meta = result.get("meta")
        if meta is not None and not isinstance(meta, dict):
            raise TransientLedgerError(f"Unexpected transaction meta for {signature}: {meta!r}")
        return TransactionStatus(
            signature=signature,
            succeeded=meta is not None and meta.get("err") is None,
            slot=result.get("slot"),
            raw=result,
        )
