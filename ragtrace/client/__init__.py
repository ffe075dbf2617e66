"""Client side: trace reducer and HTTP client."""

from .reducer import AnswerMessage, TraceReducer, TraceState, TraceStreamDecoder, reduce

__all__ = ["AnswerMessage", "TraceReducer", "TraceState", "TraceStreamDecoder", "reduce"]
