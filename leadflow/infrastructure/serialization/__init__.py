"""传输格式编解码"""

from leadflow.infrastructure.serialization.flow_wire import (
    FlowPayload,
    FlowSummaryPayload,
    decode_flow,
    decode_graph,
    decode_summaries,
    encode_flow,
    encode_graph,
)

__all__ = [
    "FlowPayload",
    "FlowSummaryPayload",
    "decode_flow",
    "decode_graph",
    "decode_summaries",
    "encode_flow",
    "encode_graph",
]
