import hashlib
import json
from typing import Any, Union


def sha256_hex(data: Union[bytes, bytearray, memoryview]) -> str:
    h = hashlib.sha256()
    h.update(bytes(data))
    return h.hexdigest()


def canonical_json_hash(payload: Any) -> str:
    # Key order and whitespace must not change the digest.
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return sha256_hex(raw)
