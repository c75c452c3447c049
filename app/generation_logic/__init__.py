"""Generation logic package.

This package groups the streaming pieces of the design pipeline: the SSE frame
codec shared by server and client, and the two-stage orchestrator that turns a
generation request into a sequence of encoded events.
Keeping them here allows `app/api/routes.py` to stay minimal and focused on
HTTP routing while core business logic lives in composable modules.
"""

# Re-export most commonly-used helpers for convenience
from .frame_codec import FrameDecoder  # noqa: F401
from .frame_codec import encode_event  # noqa: F401
from .stream_orchestrator import stream_design_generation  # noqa: F401
