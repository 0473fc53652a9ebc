"""
Chat Completions Base Package

Exports the wire schema, request assembly, response decoding, streaming and
client facade used to talk to OpenAI-compatible chat completion services.

Layers:
- Schema: content parts, messages, tools and parameter schemas (pydantic)
- Request / Response: the ``chat/completions`` payload and its decoded result
- Streaming: SSE parsing, delta merging, threaded delivery with cancellation
- Transport: the HTTP boundary (httpx by default)
- Client: builder + ``call`` dispatch (complete or streaming)
"""

from .auth import Authenticator, BearerAuth, HeaderKeyAuth, NoAuth, authenticator_for
from .cancellation import CancellationToken
from .client import ChatClient, ChatClientBuilder, ChatCompletionResult, Complete, Streaming, call
from .errors import (
    ApiError,
    BuildError,
    CallError,
    ChatError,
    ErrorCode,
    InvalidValue,
    MalformedResponse,
    MissingField,
    StreamCancelled,
    StreamDecodeError,
    StreamTruncated,
    TransportError,
)
from .request import ChatCompletionRequest, ChatCompletionRequestBuilder, build_request
from .response import ChatCompletionResponse, Choice, ModelInfo, ModelList, ResponseMessage, Usage, decode_response
from .schema import (
    ContentPart,
    Function,
    FunctionBuilder,
    FunctionCall,
    ImageUrl,
    Message,
    MessageBuilder,
    ParameterProperty,
    ParameterPropertyBuilder,
    Parameters,
    ParametersBuilder,
    ParameterType,
    Role,
    Tool,
    ToolCall,
    ToolCallBuilder,
)
from .streaming import StreamChunk, StreamEvent, StreamHandle, StreamMergeEngine, StreamState
from .timeouts import TimeoutConfig, get_timeout_config
from .transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    # Schema
    "Role",
    "ContentPart",
    "ImageUrl",
    "Message",
    "MessageBuilder",
    "FunctionCall",
    "ToolCall",
    "ToolCallBuilder",
    "Function",
    "FunctionBuilder",
    "Tool",
    "ParameterType",
    "ParameterProperty",
    "ParameterPropertyBuilder",
    "Parameters",
    "ParametersBuilder",
    # Request / Response
    "ChatCompletionRequest",
    "ChatCompletionRequestBuilder",
    "build_request",
    "ChatCompletionResponse",
    "Choice",
    "ResponseMessage",
    "Usage",
    "ModelInfo",
    "ModelList",
    "decode_response",
    # Errors
    "ErrorCode",
    "ChatError",
    "BuildError",
    "MissingField",
    "InvalidValue",
    "CallError",
    "ApiError",
    "MalformedResponse",
    "StreamDecodeError",
    "StreamTruncated",
    "StreamCancelled",
    "TransportError",
    # Streaming
    "StreamChunk",
    "StreamEvent",
    "StreamState",
    "StreamMergeEngine",
    "StreamHandle",
    # Transport & Auth
    "Transport",
    "TransportResponse",
    "HttpxTransport",
    "Authenticator",
    "BearerAuth",
    "HeaderKeyAuth",
    "NoAuth",
    "authenticator_for",
    # Timeouts & Cancellation
    "TimeoutConfig",
    "get_timeout_config",
    "CancellationToken",
    # Client
    "ChatClient",
    "ChatClientBuilder",
    "ChatCompletionResult",
    "Complete",
    "Streaming",
    "call",
]
