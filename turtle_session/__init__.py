"""Session wiring: config models, persistence and the session builder."""

from .config import (  # noqa: F401
    TurtleConfig,
    CanvasConfig,
    RunnerConfig,
    SessionConfig,
    load_json,
    save_json,
    load_session_config,
)
from .persistence import (  # noqa: F401
    StateFormatError,
    TurtleState,
    encode_state,
    decode_state,
    apply_state,
    save_state,
    load_state,
    timestamped_name,
    local_path,
)
from .session import Session, build_session  # noqa: F401
