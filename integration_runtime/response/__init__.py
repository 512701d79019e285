"""Response decoding and output extraction."""

from integration_runtime.response.decoder import XMLTreeParser, decode, decode_payload, unwrap_nested
from integration_runtime.response.extractor import SCRIPT_RESULT_KEY, extract, with_script_result

__all__ = [
    "SCRIPT_RESULT_KEY",
    "XMLTreeParser",
    "decode",
    "decode_payload",
    "extract",
    "unwrap_nested",
    "with_script_result",
]
