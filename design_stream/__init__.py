"""design-stream: decode streamed, delimiter-tagged UI screens from a generative model."""

from design_stream.callbacks import StreamCallbacks
from design_stream.config import AVAILABLE_MODELS, ConfigStore, StreamConfig
from design_stream.decoder import StreamDecoder, decode_chunks
from design_stream.envelopes import Chunk, Done, Envelope, Error, Usage, decode_envelopes
from design_stream.errors import (
    DesignStreamError,
    ModelRestrictedError,
    QuotaExceededError,
    ServerStreamError,
    TransportError,
)
from design_stream.events import (
    DecoderEvent,
    MessageReceived,
    ProjectIconSuggested,
    ProjectNameSuggested,
    ScreenCompleted,
    ScreenOpened,
    ScreenUpdated,
)
from design_stream.models import (
    ParseMode,
    ParseState,
    QuotaExceededData,
    Screen,
    SessionResult,
    SessionStatus,
    UsageData,
)
from design_stream.screen_name import ScreenName, parse_screen_name
from design_stream.session import SessionHandle, StreamController
from design_stream.transport import iter_envelopes

__version__ = "0.1.0"

__all__ = [
    # Models
    "Screen",
    "UsageData",
    "QuotaExceededData",
    "ParseMode",
    "ParseState",
    "SessionResult",
    "SessionStatus",
    # Decoder
    "StreamDecoder",
    "decode_chunks",
    "DecoderEvent",
    "MessageReceived",
    "ProjectNameSuggested",
    "ProjectIconSuggested",
    "ScreenOpened",
    "ScreenUpdated",
    "ScreenCompleted",
    "ScreenName",
    "parse_screen_name",
    # Transport
    "Envelope",
    "Chunk",
    "Usage",
    "Done",
    "Error",
    "decode_envelopes",
    "iter_envelopes",
    # Session
    "StreamController",
    "SessionHandle",
    "StreamCallbacks",
    "StreamConfig",
    "ConfigStore",
    "AVAILABLE_MODELS",
    # Errors
    "DesignStreamError",
    "TransportError",
    "ServerStreamError",
    "ModelRestrictedError",
    "QuotaExceededError",
]
